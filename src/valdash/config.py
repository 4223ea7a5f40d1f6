from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict

import yaml


@dataclass
class Config:
    raw: Dict[str, Any]

    @property
    def region(self) -> str:
        return self.raw.get("region", "eu")

    @property
    def platform(self) -> str:
        return self.raw.get("platform", "pc")

    @property
    def api(self) -> Dict[str, Any]:
        return self.raw["api"]

    @property
    def endpoints(self) -> Dict[str, Any]:
        return self.raw.get("endpoints", {})

    @property
    def cache(self) -> Dict[str, Any]:
        return self.raw.get("cache", {"backend": "memory"})

    @property
    def season(self) -> Dict[str, Any]:
        return self.raw["season"]

    @property
    def current_season_id(self) -> str:
        return self.season["current_id"]

    @property
    def season_name(self) -> str:
        return self.season.get("name", "")

    @property
    def media(self) -> Dict[str, str]:
        return self.raw.get("media", {})


def load_config(path: str = "config.yaml") -> Config:
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    season = raw.get("season") or {}
    if not season.get("current_id"):
        raise ValueError("season.current_id must be set")
    return Config(raw)


def get_api_token() -> str:
    token = os.getenv("HENRIK_API_KEY") or os.getenv("VALDASH_API_KEY")
    if not token:
        raise RuntimeError("Missing API token; set HENRIK_API_KEY")
    return token
