"""Canonical in-memory shapes for match history.

Raw provider payloads never leave :mod:`valdash.normalize`; everything
downstream (reconciliation, aggregation, cache, HTTP responses) works on the
dataclasses defined here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from .utils import EPOCH, parse_timestamp, safe_float, safe_int


class TeamSide(str, Enum):
    RED = "red"
    BLUE = "blue"

    @classmethod
    def parse(cls, value: Any) -> "TeamSide":
        if isinstance(value, str) and value.strip().lower() == "red":
            return cls.RED
        return cls.BLUE

    @property
    def opponent(self) -> "TeamSide":
        return TeamSide.BLUE if self is TeamSide.RED else TeamSide.RED


class RoundEndType(str, Enum):
    ELIMINATED = "Eliminated"
    BOMB_DEFUSED = "BombDefused"
    BOMB_DETONATED = "BombDetonated"
    TIME_EXPIRED = "TimeExpired"
    SURRENDERED = "Surrendered"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: Any) -> "RoundEndType":
        if isinstance(value, RoundEndType):
            return value
        if not isinstance(value, str):
            return cls.UNKNOWN
        text = value.strip().lower()
        for member in cls:
            if text == member.value.lower():
                return member
        if "elimin" in text:
            return cls.ELIMINATED
        if "defus" in text:
            return cls.BOMB_DEFUSED
        if "deton" in text or "explod" in text:
            return cls.BOMB_DETONATED
        if "time" in text:
            return cls.TIME_EXPIRED
        if "surrender" in text:
            return cls.SURRENDERED
        return cls.UNKNOWN


@dataclass(frozen=True)
class RoundScore:
    rounds_won: int = 0


@dataclass(frozen=True)
class TeamScores:
    red: RoundScore = field(default_factory=RoundScore)
    blue: RoundScore = field(default_factory=RoundScore)

    def for_side(self, side: TeamSide) -> RoundScore:
        return self.red if side is TeamSide.RED else self.blue

    def against_side(self, side: TeamSide) -> RoundScore:
        return self.for_side(side.opponent)

    @property
    def total_rounds(self) -> int:
        return self.red.rounds_won + self.blue.rounds_won


@dataclass(frozen=True)
class Agent:
    id: str = ""
    display_name: str = "Unknown"
    icon_url: str = ""


@dataclass(frozen=True)
class PlayerMatchStats:
    name: str = "Unknown"
    tag: str = ""
    puuid: str = ""
    team_side: TeamSide = TeamSide.BLUE
    kills: int = 0
    deaths: int = 0
    assists: int = 0
    score: int = 0
    headshots: int = 0
    bodyshots: int = 0
    legshots: int = 0
    damage_dealt: int = 0
    agent: Agent = field(default_factory=Agent)
    rank_label: Optional[str] = None

    @property
    def riot_id(self) -> str:
        return f"{self.name}#{self.tag}"

    @property
    def total_shots(self) -> int:
        return self.headshots + self.bodyshots + self.legshots

    def matches(self, name: str, tag: str) -> bool:
        return self.name.lower() == name.lower() and self.tag.lower() == tag.lower()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "tag": self.tag,
            "puuid": self.puuid,
            "team_side": self.team_side.value,
            "kills": self.kills,
            "deaths": self.deaths,
            "assists": self.assists,
            "score": self.score,
            "headshots": self.headshots,
            "bodyshots": self.bodyshots,
            "legshots": self.legshots,
            "damage_dealt": self.damage_dealt,
            "agent": {
                "id": self.agent.id,
                "display_name": self.agent.display_name,
                "icon_url": self.agent.icon_url,
            },
            "rank_label": self.rank_label,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlayerMatchStats":
        agent = data.get("agent") or {}
        return cls(
            name=data.get("name") or "Unknown",
            tag=data.get("tag") or "",
            puuid=data.get("puuid") or "",
            team_side=TeamSide.parse(data.get("team_side")),
            kills=safe_int(data.get("kills")),
            deaths=safe_int(data.get("deaths")),
            assists=safe_int(data.get("assists")),
            score=safe_int(data.get("score")),
            headshots=safe_int(data.get("headshots")),
            bodyshots=safe_int(data.get("bodyshots")),
            legshots=safe_int(data.get("legshots")),
            damage_dealt=safe_int(data.get("damage_dealt")),
            agent=Agent(
                id=agent.get("id") or "",
                display_name=agent.get("display_name") or "Unknown",
                icon_url=agent.get("icon_url") or "",
            ),
            rank_label=data.get("rank_label"),
        )


@dataclass(frozen=True)
class RoundPlayerStat:
    player_name: str = "Unknown"
    kills: int = 0


@dataclass(frozen=True)
class RoundEvent:
    winning_team: TeamSide = TeamSide.BLUE
    end_type: RoundEndType = RoundEndType.UNKNOWN
    player_stats: Tuple[RoundPlayerStat, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "winning_team": self.winning_team.value,
            "end_type": self.end_type.value,
            "player_stats": [
                {"player_name": s.player_name, "kills": s.kills} for s in self.player_stats
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoundEvent":
        return cls(
            winning_team=TeamSide.parse(data.get("winning_team")),
            end_type=RoundEndType.parse(data.get("end_type")),
            player_stats=tuple(
                RoundPlayerStat(
                    player_name=s.get("player_name") or "Unknown",
                    kills=safe_int(s.get("kills")),
                )
                for s in data.get("player_stats") or []
            ),
        )


@dataclass(frozen=True)
class MatchRecord:
    match_id: str
    started_at: datetime = EPOCH
    season_id: Optional[str] = None
    map: str = "Unknown"
    mode: str = "Competitive"
    duration_minutes: float = 0.0
    teams: TeamScores = field(default_factory=TeamScores)
    players: Tuple[PlayerMatchStats, ...] = ()
    rounds: Optional[Tuple[RoundEvent, ...]] = None

    def to_dict(self, include_rounds: bool = True) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "match_id": self.match_id,
            "started_at": self.started_at.isoformat(),
            "season_id": self.season_id,
            "map": self.map,
            "mode": self.mode,
            "duration_minutes": self.duration_minutes,
            "teams": {
                "red": {"rounds_won": self.teams.red.rounds_won},
                "blue": {"rounds_won": self.teams.blue.rounds_won},
            },
            "players": [p.to_dict() for p in self.players],
        }
        if include_rounds and self.rounds is not None:
            out["rounds"] = [r.to_dict() for r in self.rounds]
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MatchRecord":
        teams = data.get("teams") or {}
        rounds = data.get("rounds")
        return cls(
            match_id=data.get("match_id") or "",
            started_at=parse_timestamp(data.get("started_at")) or EPOCH,
            season_id=data.get("season_id"),
            map=data.get("map") or "Unknown",
            mode=data.get("mode") or "Competitive",
            duration_minutes=safe_float(data.get("duration_minutes")),
            teams=TeamScores(
                red=RoundScore(safe_int((teams.get("red") or {}).get("rounds_won"))),
                blue=RoundScore(safe_int((teams.get("blue") or {}).get("rounds_won"))),
            ),
            players=tuple(PlayerMatchStats.from_dict(p) for p in data.get("players") or []),
            rounds=None if rounds is None else tuple(RoundEvent.from_dict(r) for r in rounds),
        )


@dataclass(frozen=True)
class Stats:
    kd: Union[str, int] = 0
    hs_percent: int = 0
    win_rate: int = 0
    total_matches: int = 0
    wins: int = 0
    losses: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kd": self.kd,
            "hs_percent": self.hs_percent,
            "win_rate": self.win_rate,
            "total_matches": self.total_matches,
            "wins": self.wins,
            "losses": self.losses,
        }
