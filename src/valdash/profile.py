from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from .utils import dig, round_half_up, safe_int

CARD_WIDE_URL = "https://media.valorant-api.com/playercards/{card_id}/wideart.png"
CARD_SMALL_URL = "https://media.valorant-api.com/playercards/{card_id}/smallart.png"


@dataclass(frozen=True)
class PlayerProfile:
    puuid: str
    name: str
    tag: str
    region: str
    account_level: int
    card_wide: Optional[str]
    card_small: Optional[str]
    current_rank: str
    current_rr: int
    rr_change: int
    peak_rank: str
    peak_season: str
    season_wins: int
    season_games: int
    season_win_rate: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _card_urls(card: Any, media: Dict[str, str]):
    if isinstance(card, str) and card:
        wide = media.get("card_wide", CARD_WIDE_URL)
        small = media.get("card_small", CARD_SMALL_URL)
        return wide.format(card_id=card), small.format(card_id=card)
    if isinstance(card, dict):
        return card.get("wide") or None, card.get("small") or None
    return None, None


def build_profile(
    account: Dict[str, Any],
    mmr: Optional[Dict[str, Any]] = None,
    media: Optional[Dict[str, str]] = None,
    default_region: str = "eu",
) -> PlayerProfile:
    """Combine the account and MMR payloads into the profile card fields.

    ``mmr`` is optional; a player with no ranked data shows as ``Unranked``.
    """
    mmr = mmr if isinstance(mmr, dict) else {}
    card_wide, card_small = _card_urls(account.get("card"), media or {})
    current_rank = dig(mmr, "current.tier.name") or "Unranked"
    seasonal = mmr.get("seasonal")
    latest = seasonal[0] if isinstance(seasonal, list) and seasonal and isinstance(seasonal[0], dict) else {}
    wins = safe_int(latest.get("wins"))
    games = safe_int(latest.get("games"))
    return PlayerProfile(
        puuid=account.get("puuid") or "",
        name=account.get("name") or "Unknown",
        tag=account.get("tag") or "",
        region=account.get("region") or default_region,
        account_level=safe_int(account.get("account_level")),
        card_wide=card_wide,
        card_small=card_small,
        current_rank=current_rank,
        current_rr=safe_int(dig(mmr, "current.rr")),
        rr_change=safe_int(dig(mmr, "current.rr_change_to_last_game")),
        peak_rank=dig(mmr, "peak.tier.name") or current_rank,
        peak_season=dig(mmr, "peak.season.short") or "-",
        season_wins=wins,
        season_games=games,
        season_win_rate=round_half_up(wins / games * 100) if games > 0 else 0,
    )
