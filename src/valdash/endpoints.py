from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict
from urllib.parse import quote

DEFAULT_ENDPOINTS: Dict[str, Dict[str, Any]] = {
    "account": {"path": "/valorant/v2/account/{name}/{tag}"},
    "mmr": {"path": "/valorant/v3/mmr/{region}/{platform}/{name}/{tag}"},
    "matches": {"path": "/valorant/v4/matches/{region}/{platform}/{name}/{tag}"},
    "match": {"path": "/valorant/v4/match/{region}/{match_id}"},
}


@dataclass
class EndpointSpec:
    name: str
    path: str

    def render(self, **params: Any) -> str:
        return self.path.format(**{k: quote(str(v), safe="") for k, v in params.items()})


def build_endpoint(name: str, spec: Dict[str, Any]) -> EndpointSpec:
    return EndpointSpec(name=name, path=spec["path"])


def build_registry(config_endpoints: Dict[str, Any]) -> Dict[str, EndpointSpec]:
    registry = {}
    for name, default in DEFAULT_ENDPOINTS.items():
        spec = dict(default)
        spec.update(config_endpoints.get(name) or {})
        registry[name] = build_endpoint(name, spec)
    return registry
