"""Shared test fixtures for the valdash test suite.

Provides a moto-backed DynamoDB cache table, an in-memory cache, a config
and an httpx.MockTransport-backed provider that serves canned responses.
"""

from __future__ import annotations

import os
from typing import Any, Callable, List, Optional, Tuple

import boto3
import httpx
import pytest
from moto import mock_aws

from valdash.api_client import ApiClient, ApiConfig, ProviderClient
from valdash.cache import MemoryMatchCache
from valdash.config import Config
from valdash.endpoints import build_registry
from valdash.reconcile import ReconciliationEngine
from valdash.season import SeasonFilter

from helpers import CURRENT


# ---------------------------------------------------------------------------
# AWS credential safety: prevent accidental real AWS calls
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True, scope="session")
def aws_credentials():
    """Set fake AWS credentials for the entire test session."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "eu-west-1"
    yield
    for key in (
        "AWS_ACCESS_KEY_ID",
        "AWS_SECRET_ACCESS_KEY",
        "AWS_SECURITY_TOKEN",
        "AWS_SESSION_TOKEN",
        "AWS_DEFAULT_REGION",
    ):
        os.environ.pop(key, None)


@pytest.fixture()
def dynamodb_table():
    """Create a moto mock DynamoDB table 'valdash_matches'.

    Hash key: player_id (S), Range key: match_id (S).
    Yields the boto3 DynamoDB client.
    """
    with mock_aws():
        client = boto3.client("dynamodb", region_name="eu-west-1")
        client.create_table(
            TableName="valdash_matches",
            KeySchema=[
                {"AttributeName": "player_id", "KeyType": "HASH"},
                {"AttributeName": "match_id", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "player_id", "AttributeType": "S"},
                {"AttributeName": "match_id", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        yield client


# ---------------------------------------------------------------------------
# Configuration and core objects
# ---------------------------------------------------------------------------

@pytest.fixture()
def sample_config() -> Config:
    return Config({
        "region": "eu",
        "platform": "pc",
        "api": {
            "base_url": "https://api.test.com",
            "timeout_seconds": 5,
            "max_concurrency": 3,
            "rate_limit_per_sec": 100,
            "retry": {
                "max_attempts": 3,
                "base_delay_seconds": 0.001,
                "max_delay_seconds": 0.01,
            },
        },
        "endpoints": {},
        "cache": {"backend": "memory"},
        "season": {"current_id": CURRENT, "name": "Episode 9 - Act III"},
        "media": {},
    })


@pytest.fixture()
def memory_cache() -> MemoryMatchCache:
    return MemoryMatchCache()


@pytest.fixture()
def engine(memory_cache) -> ReconciliationEngine:
    return ReconciliationEngine(memory_cache, SeasonFilter(CURRENT))


# ---------------------------------------------------------------------------
# Provider backed by httpx.MockTransport
# ---------------------------------------------------------------------------

Route = Callable[[httpx.Request], httpx.Response]


def _static(status: int, body: Any) -> Route:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=body)

    return handler


class FakeUpstream:
    """Routes requests by path prefix and records every request seen."""

    def __init__(self) -> None:
        self.routes: List[Tuple[str, Route]] = []
        self.requests: List[httpx.Request] = []

    def on(self, prefix: str, body: Any = None, status: int = 200, handler: Optional[Route] = None) -> None:
        if handler is None:
            handler = _static(status, body)
        self.routes.append((prefix, handler))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for prefix, handler in self.routes:
            if request.url.path.startswith(prefix):
                return handler(request)
        return httpx.Response(404, json={"status": 404, "errors": [{"message": "Not found"}]})

    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]


@pytest.fixture()
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture()
def provider(sample_config, upstream) -> ProviderClient:
    api = ApiClient("test-token", ApiConfig(**sample_config.api), transport=httpx.MockTransport(upstream))
    return ProviderClient(api, build_registry(sample_config.endpoints), sample_config.platform)
