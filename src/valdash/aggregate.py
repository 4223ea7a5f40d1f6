"""Aggregate performance statistics over normalized match records.

``aggregate`` implements the dashboard's headline numbers. A drawn match is
not a win, and ``losses`` is ``total_matches - wins``, so draws land in the
loss column. That arithmetic mirrors the dashboard's win-rate panel and is
kept as-is pending product confirmation.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from .models import MatchRecord, PlayerMatchStats, Stats, TeamSide
from .utils import round_half_up


def find_player(record: MatchRecord, name: str, tag: str) -> Optional[PlayerMatchStats]:
    for player in record.players:
        if player.matches(name, tag):
            return player
    return None


def is_win(record: MatchRecord, player: PlayerMatchStats) -> bool:
    side = player.team_side
    return record.teams.for_side(side).rounds_won > record.teams.against_side(side).rounds_won


def match_outcome(record: MatchRecord, name: str, tag: str) -> Optional[str]:
    player = find_player(record, name, tag)
    if player is None:
        return None
    own = record.teams.for_side(player.team_side).rounds_won
    other = record.teams.against_side(player.team_side).rounds_won
    if own == other:
        return "draw"
    return "win" if own > other else "loss"


def format_kd(kills: int, deaths: int) -> Union[str, int]:
    """Two-decimal K/D rounded half-up on the float quotient, or the kill count without deaths."""
    if deaths > 0:
        return str(Decimal(kills / deaths).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
    return kills


def hs_percent(headshots: int, bodyshots: int, legshots: int) -> int:
    total = headshots + bodyshots + legshots
    if total == 0:
        return 0
    return round_half_up(headshots / total * 100)


def aggregate(matches: Sequence[MatchRecord], player_name: str, player_tag: str) -> Stats:
    kills = deaths = headshots = bodyshots = legshots = wins = 0
    for record in matches:
        player = find_player(record, player_name, player_tag)
        if player is None:
            continue
        kills += player.kills
        deaths += player.deaths
        headshots += player.headshots
        bodyshots += player.bodyshots
        legshots += player.legshots
        if is_win(record, player):
            wins += 1
    total = len(matches)
    return Stats(
        kd=format_kd(kills, deaths),
        hs_percent=hs_percent(headshots, bodyshots, legshots),
        win_rate=round_half_up(wins / total * 100) if total else 0,
        total_matches=total,
        wins=wins,
        losses=total - wins,
    )


def rounds_played(record: MatchRecord) -> int:
    if record.rounds:
        return len(record.rounds)
    return record.teams.total_rounds


def acs(player: PlayerMatchStats, record: MatchRecord) -> int:
    played = rounds_played(record)
    if played == 0:
        return 0
    return round_half_up(player.score / played)


def player_kd(player: PlayerMatchStats) -> Union[str, int]:
    return format_kd(player.kills, player.deaths)


def player_hs_percent(player: PlayerMatchStats) -> int:
    return hs_percent(player.headshots, player.bodyshots, player.legshots)


def round_kills(record: MatchRecord, name: str, tag: str) -> List[int]:
    """Kills per round for one player, empty when round detail is missing."""
    if not record.rounds:
        return []
    riot_id = f"{name}#{tag}".lower()
    out = []
    for event in record.rounds:
        kills = 0
        for stat in event.player_stats:
            if stat.player_name.lower() == riot_id:
                kills = stat.kills
                break
        out.append(kills)
    return out


@dataclass(frozen=True)
class PlayerLine:
    riot_id: str
    agent: str
    agent_icon: str
    kills: int
    deaths: int
    assists: int
    kd: Union[str, int]
    acs: int
    hs_percent: int
    is_searched_player: bool

    @property
    def kda(self) -> str:
        return f"{self.kills}/{self.deaths}/{self.assists}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "riot_id": self.riot_id,
            "agent": self.agent,
            "agent_icon": self.agent_icon,
            "kda": self.kda,
            "kd": self.kd,
            "acs": self.acs,
            "hs_percent": self.hs_percent,
            "is_searched_player": self.is_searched_player,
        }


def scoreboard(
    record: MatchRecord,
    name: Optional[str] = None,
    tag: Optional[str] = None,
) -> Dict[TeamSide, List[PlayerLine]]:
    board: Dict[TeamSide, List[PlayerLine]] = {TeamSide.RED: [], TeamSide.BLUE: []}
    ordered: Iterable[PlayerMatchStats] = sorted(record.players, key=lambda p: p.score, reverse=True)
    for player in ordered:
        board[player.team_side].append(
            PlayerLine(
                riot_id=player.riot_id,
                agent=player.agent.display_name,
                agent_icon=player.agent.icon_url,
                kills=player.kills,
                deaths=player.deaths,
                assists=player.assists,
                kd=player_kd(player),
                acs=acs(player, record),
                hs_percent=player_hs_percent(player),
                is_searched_player=bool(name and tag and player.matches(name, tag)),
            )
        )
    return board
