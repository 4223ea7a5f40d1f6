"""Builders for raw provider payloads in both upstream shapes."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

CURRENT = "season-current"
PREVIOUS = "season-previous"


def v4_player(
    name: str = "Tenz",
    tag: str = "EU1",
    team: str = "Red",
    kills: int = 20,
    deaths: int = 10,
    assists: int = 5,
    score: int = 5000,
    headshots: int = 10,
    bodyshots: int = 30,
    legshots: int = 0,
    agent_id: Optional[str] = "agent-jett",
    agent_name: str = "Jett",
) -> Dict[str, Any]:
    player: Dict[str, Any] = {
        "puuid": f"puuid-{name.lower()}",
        "name": name,
        "tag": tag,
        "team_id": team,
        "tier": {"id": 21, "name": "Ascendant 1"},
        "stats": {
            "score": score,
            "kills": kills,
            "deaths": deaths,
            "assists": assists,
            "headshots": headshots,
            "bodyshots": bodyshots,
            "legshots": legshots,
            "damage": {"dealt": 3200, "received": 2800},
        },
    }
    if agent_id is not None:
        player["agent"] = {"id": agent_id, "name": agent_name}
    return player


def v4_match(
    match_id: str,
    started_at: str = "2025-03-01T20:00:00Z",
    season_id: Optional[str] = CURRENT,
    red: int = 13,
    blue: int = 5,
    players: Optional[List[Dict[str, Any]]] = None,
    rounds: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {
        "match_id": match_id,
        "map": {"id": "map-ascent", "name": "Ascent"},
        "game_length_in_ms": 2_400_000,
        "started_at": started_at,
        "queue": {"id": "competitive", "name": "Competitive"},
    }
    if season_id is not None:
        metadata["season"] = {"id": season_id, "short": "e9a3"}
    match: Dict[str, Any] = {
        "metadata": metadata,
        "players": players if players is not None else [v4_player()],
        "teams": [
            {"team_id": "Red", "rounds": {"won": red, "lost": blue}, "won": red > blue},
            {"team_id": "Blue", "rounds": {"won": blue, "lost": red}, "won": blue > red},
        ],
    }
    if rounds is not None:
        match["rounds"] = rounds
    return match


def legacy_match(
    match_id: str,
    started_at: str = "2025-03-01T20:00:00Z",
    season_id: Optional[str] = CURRENT,
    red: int = 13,
    blue: int = 7,
    team: str = "Red",
) -> Dict[str, Any]:
    """Older stored-match shape: ``meta`` block and the searched player's ``stats`` only."""
    return {
        "meta": {
            "id": match_id,
            "map": {"id": "map-bind", "name": "Bind"},
            "mode": "Competitive",
            "started_at": started_at,
            "season": {"id": season_id, "short": "e9a3"},
            "region": "eu",
        },
        "stats": {
            "puuid": "puuid-tenz",
            "team": team,
            "character": {"id": "agent-sova", "name": "Sova"},
            "score": 4200,
            "kills": 18,
            "deaths": 12,
            "assists": 7,
            "shots": {"head": 8, "body": 20, "leg": 2},
            "damage": {"made": 2900, "received": 2500},
        },
        "teams": {"red": red, "blue": blue},
    }


def envelope(data: Any, status: int = 200) -> Dict[str, Any]:
    return {"status": status, "data": data}
