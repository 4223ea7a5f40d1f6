from __future__ import annotations

import json
import os
from typing import Any, Dict, Iterable, Optional, Set

import boto3

from .models import MatchRecord


class MatchCache:
    """Match store addressed by player id, then match id.

    Writes are additive: an id already present is never overwritten.
    """

    def read_all(self, player_id: str) -> Dict[str, MatchRecord]:
        raise NotImplementedError

    def match_ids(self, player_id: str) -> Set[str]:
        raise NotImplementedError

    def put_many(self, player_id: str, records: Iterable[MatchRecord]) -> int:
        raise NotImplementedError

    def delete(self, player_id: str, match_id: str) -> None:
        raise NotImplementedError


def _encode(record: MatchRecord) -> str:
    return json.dumps(record.to_dict(include_rounds=False), default=str)


def _decode(payload: str) -> MatchRecord:
    return MatchRecord.from_dict(json.loads(payload))


class MemoryMatchCache(MatchCache):
    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, str]] = {}

    def read_all(self, player_id: str) -> Dict[str, MatchRecord]:
        return {mid: _decode(p) for mid, p in self._data.get(player_id, {}).items()}

    def match_ids(self, player_id: str) -> Set[str]:
        return set(self._data.get(player_id, {}))

    def put_many(self, player_id: str, records: Iterable[MatchRecord]) -> int:
        bucket = self._data.setdefault(player_id, {})
        written = 0
        for rec in records:
            if not rec.match_id or rec.match_id in bucket:
                continue
            bucket[rec.match_id] = _encode(rec)
            written += 1
        return written

    def delete(self, player_id: str, match_id: str) -> None:
        self._data.get(player_id, {}).pop(match_id, None)


class DynamoMatchCache(MatchCache):
    def __init__(self, region: str, table_name: Optional[str] = None) -> None:
        self.table_name = table_name or os.getenv("VALDASH_CACHE_TABLE", "valdash_matches")
        self._client = boto3.client("dynamodb", region_name=region)

    def _query(self, player_id: str, **kwargs: Any) -> Iterable[Dict[str, Any]]:
        paginator = self._client.get_paginator("query")
        for page in paginator.paginate(
            TableName=self.table_name,
            KeyConditionExpression="player_id = :p",
            ExpressionAttributeValues={":p": {"S": player_id}},
            **kwargs,
        ):
            yield from page.get("Items", [])

    def read_all(self, player_id: str) -> Dict[str, MatchRecord]:
        out: Dict[str, MatchRecord] = {}
        for item in self._query(player_id):
            out[item["match_id"]["S"]] = _decode(item["payload"]["S"])
        return out

    def match_ids(self, player_id: str) -> Set[str]:
        return {item["match_id"]["S"] for item in self._query(player_id, ProjectionExpression="match_id")}

    def put_many(self, player_id: str, records: Iterable[MatchRecord]) -> int:
        written = 0
        for rec in records:
            if not rec.match_id:
                continue
            item = {
                "player_id": {"S": player_id},
                "match_id": {"S": rec.match_id},
                "payload": {"S": _encode(rec)},
            }
            if rec.season_id:
                item["season_id"] = {"S": rec.season_id}
            try:
                self._client.put_item(
                    TableName=self.table_name,
                    Item=item,
                    ConditionExpression="attribute_not_exists(match_id)",
                )
            except self._client.exceptions.ConditionalCheckFailedException:
                continue
            written += 1
        return written

    def delete(self, player_id: str, match_id: str) -> None:
        self._client.delete_item(
            TableName=self.table_name,
            Key={
                "player_id": {"S": player_id},
                "match_id": {"S": match_id},
            },
        )


def build_cache(cache_cfg: Dict[str, Any]) -> MatchCache:
    backend = cache_cfg.get("backend", "memory")
    if backend == "dynamodb":
        return DynamoMatchCache(cache_cfg.get("aws_region", "eu-west-1"), cache_cfg.get("table_name"))
    if backend == "memory":
        return MemoryMatchCache()
    raise ValueError(f"Unknown cache backend: {backend}")
