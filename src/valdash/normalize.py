"""Map raw provider match payloads onto :class:`valdash.models.MatchRecord`.

Two payload families exist upstream:

* ``MatchShape.METADATA``: the current ``metadata`` / ``players`` / ``teams``
  layout returned by the v3/v4 match endpoints.
* ``MatchShape.META``: the older stored-match layout with a ``meta`` block and
  a single ``stats`` object describing only the searched player.

Each canonical field is resolved through an ordered tuple of dotted paths in
``FIELD_RULES`` / ``PLAYER_RULES`` / ``ROUND_RULES``; the first non-null value
wins. ``{block}`` in a rule is replaced by the detected shape's metadata key.
Nothing in this module raises on missing or malformed input.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .models import (
    Agent,
    MatchRecord,
    PlayerMatchStats,
    RoundEndType,
    RoundEvent,
    RoundPlayerStat,
    RoundScore,
    TeamScores,
    TeamSide,
)
from .utils import EPOCH, dig, first_present, parse_timestamp, safe_int

AGENT_ICON_URL = "https://media.valorant-api.com/agents/{agent_id}/displayicon.png"

Owner = Tuple[str, str]


class MatchShape(str, Enum):
    METADATA = "metadata"
    META = "meta"


FIELD_RULES: Dict[str, Tuple[str, ...]] = {
    "match_id": ("metadata.match_id", "meta.id"),
    "started_at": ("metadata.started_at", "meta.started_at", "metadata.game_start"),
    "season_id": ("{block}.season.id", "{block}.season_id"),
    "map": ("{block}.map.name", "{block}.map"),
    "mode": ("{block}.queue.name", "{block}.mode"),
    "duration_ms": ("metadata.game_length_in_ms",),
    "duration_s": ("{block}.game_length",),
}

PLAYER_RULES: Dict[str, Tuple[str, ...]] = {
    "name": ("name", "game_name"),
    "tag": ("tag", "tag_line"),
    "puuid": ("puuid",),
    "team": ("team_id", "team"),
    "kills": ("stats.kills", "kills"),
    "deaths": ("stats.deaths", "deaths"),
    "assists": ("stats.assists", "assists"),
    "score": ("stats.score", "score"),
    "headshots": ("stats.headshots", "stats.shots.head", "shots.head"),
    "bodyshots": ("stats.bodyshots", "stats.shots.body", "shots.body"),
    "legshots": ("stats.legshots", "stats.shots.leg", "shots.leg"),
    "damage_dealt": ("stats.damage.dealt", "damage_made", "stats.damage.made", "damage.made"),
    "agent_id": ("agent.id", "character.id"),
    "agent_name": ("agent.name", "character.name", "character"),
    "agent_icon": ("assets.agent.small",),
    "rank_label": ("tier.name", "currenttier_patched"),
}

ROUND_RULES: Dict[str, Tuple[str, ...]] = {
    "winning_team": ("winning_team",),
    "end_type": ("end_type", "result"),
    "player_stats": ("player_stats", "stats"),
    "player_name": ("player_display_name", "player.name"),
    "player_tag": ("player.tag",),
    "kills": ("kills", "stats.kills"),
}


def detect_shape(raw: Any) -> MatchShape:
    if isinstance(raw, dict):
        if isinstance(raw.get("metadata"), dict):
            return MatchShape.METADATA
        if isinstance(raw.get("meta"), dict):
            return MatchShape.META
    return MatchShape.METADATA


def _rule(name: str, shape: MatchShape) -> List[str]:
    return [path.format(block=shape.value) for path in FIELD_RULES[name]]


def _first_str(obj: Any, paths: Iterable[str], default: Optional[str] = None) -> Optional[str]:
    for path in paths:
        value = dig(obj, path)
        if isinstance(value, str) and value:
            return value
    return default


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def resolve_team_scores(teams: Any) -> TeamScores:
    """Numeric form first, then list form, then nested-object form."""
    if isinstance(teams, dict) and _is_number(teams.get("red")):
        return TeamScores(
            red=RoundScore(safe_int(teams.get("red"))),
            blue=RoundScore(safe_int(teams.get("blue"))),
        )
    if isinstance(teams, list):
        won: Dict[str, int] = {}
        for entry in teams:
            if not isinstance(entry, dict):
                continue
            side = str(entry.get("team_id") or "").lower()
            if side in ("red", "blue") and side not in won:
                won[side] = safe_int(dig(entry, "rounds.won"))
        if won:
            return TeamScores(
                red=RoundScore(won.get("red", 0)),
                blue=RoundScore(won.get("blue", 0)),
            )
    if isinstance(teams, dict) and (
        isinstance(teams.get("red"), dict) or isinstance(teams.get("blue"), dict)
    ):
        return TeamScores(
            red=RoundScore(safe_int(dig(teams, "red.rounds_won"))),
            blue=RoundScore(safe_int(dig(teams, "blue.rounds_won"))),
        )
    return TeamScores()


def normalize_player(
    node: Any,
    owner: Optional[Owner] = None,
    agent_icon_template: str = AGENT_ICON_URL,
) -> PlayerMatchStats:
    if not isinstance(node, dict):
        node = {}
    name = _first_str(node, PLAYER_RULES["name"])
    tag = _first_str(node, PLAYER_RULES["tag"])
    if owner is not None:
        name = name or owner[0]
        tag = tag or owner[1]
    agent_id = _first_str(node, PLAYER_RULES["agent_id"], "")
    if agent_id:
        icon = agent_icon_template.format(agent_id=agent_id)
    else:
        icon = _first_str(node, PLAYER_RULES["agent_icon"], "")
    return PlayerMatchStats(
        name=name or "Unknown",
        tag=tag or "",
        puuid=_first_str(node, PLAYER_RULES["puuid"], ""),
        team_side=TeamSide.parse(first_present(node, PLAYER_RULES["team"])),
        kills=safe_int(first_present(node, PLAYER_RULES["kills"])),
        deaths=safe_int(first_present(node, PLAYER_RULES["deaths"])),
        assists=safe_int(first_present(node, PLAYER_RULES["assists"])),
        score=safe_int(first_present(node, PLAYER_RULES["score"])),
        headshots=safe_int(first_present(node, PLAYER_RULES["headshots"])),
        bodyshots=safe_int(first_present(node, PLAYER_RULES["bodyshots"])),
        legshots=safe_int(first_present(node, PLAYER_RULES["legshots"])),
        damage_dealt=safe_int(first_present(node, PLAYER_RULES["damage_dealt"])),
        agent=Agent(
            id=agent_id,
            display_name=_first_str(node, PLAYER_RULES["agent_name"], "Unknown"),
            icon_url=icon,
        ),
        rank_label=_first_str(node, PLAYER_RULES["rank_label"]),
    )


def _player_nodes(raw: Dict[str, Any]) -> Tuple[List[Any], bool]:
    players = raw.get("players")
    if isinstance(players, list):
        return players, False
    if isinstance(players, dict) and isinstance(players.get("all_players"), list):
        return players["all_players"], False
    stats = raw.get("stats")
    if isinstance(stats, dict):
        return [stats], True
    return [], False


def normalize_round(node: Any) -> RoundEvent:
    if not isinstance(node, dict):
        node = {}
    entries = first_present(node, ROUND_RULES["player_stats"], [])
    player_stats = []
    for entry in entries if isinstance(entries, list) else []:
        if not isinstance(entry, dict):
            continue
        name = _first_str(entry, ROUND_RULES["player_name"], "Unknown")
        tag = _first_str(entry, ROUND_RULES["player_tag"])
        if tag and "#" not in name:
            name = f"{name}#{tag}"
        player_stats.append(
            RoundPlayerStat(player_name=name, kills=safe_int(first_present(entry, ROUND_RULES["kills"])))
        )
    return RoundEvent(
        winning_team=TeamSide.parse(first_present(node, ROUND_RULES["winning_team"])),
        end_type=RoundEndType.parse(first_present(node, ROUND_RULES["end_type"])),
        player_stats=tuple(player_stats),
    )


def _duration_minutes(raw: Dict[str, Any], shape: MatchShape) -> float:
    ms = first_present(raw, _rule("duration_ms", shape))
    if _is_number(ms):
        return round(ms / 60000, 1)
    seconds = first_present(raw, _rule("duration_s", shape))
    if _is_number(seconds):
        return round(seconds / 60, 1)
    return 0.0


def normalize_match(
    raw: Any,
    owner: Optional[Owner] = None,
    agent_icon_template: str = AGENT_ICON_URL,
) -> MatchRecord:
    """Build one canonical record from one raw provider match.

    ``owner`` is the searched player's ``(name, tag)``; it fills the identity
    of the synthetic player built from a slim ``stats``-only payload.
    """
    if not isinstance(raw, dict):
        raw = {}
    shape = detect_shape(raw)
    season_id = _first_str(raw, _rule("season_id", shape))
    nodes, synthetic = _player_nodes(raw)
    players = tuple(
        normalize_player(node, owner if synthetic else None, agent_icon_template)
        for node in nodes
        if isinstance(node, dict)
    )
    raw_rounds = raw.get("rounds")
    rounds = (
        tuple(normalize_round(r) for r in raw_rounds if isinstance(r, dict))
        if isinstance(raw_rounds, list)
        else None
    )
    match_id = first_present(raw, _rule("match_id", shape), "")
    return MatchRecord(
        match_id=str(match_id),
        started_at=parse_timestamp(first_present(raw, _rule("started_at", shape))) or EPOCH,
        season_id=season_id,
        map=_first_str(raw, _rule("map", shape), "Unknown"),
        mode=_first_str(raw, _rule("mode", shape), "Competitive"),
        duration_minutes=_duration_minutes(raw, shape),
        teams=resolve_team_scores(raw.get("teams")),
        players=players,
        rounds=rounds,
    )


def normalize_matches(
    raws: Sequence[Any],
    owner: Optional[Owner] = None,
    agent_icon_template: str = AGENT_ICON_URL,
) -> List[MatchRecord]:
    return [normalize_match(raw, owner, agent_icon_template) for raw in raws or []]


def dedupe_records(records: Iterable[MatchRecord]) -> List[MatchRecord]:
    seen: Set[str] = set()
    out: List[MatchRecord] = []
    for rec in records:
        if rec.match_id in seen:
            continue
        seen.add(rec.match_id)
        out.append(rec)
    return out
