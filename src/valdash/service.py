from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import httpx

from .aggregate import aggregate, match_outcome, round_kills, scoreboard
from .api_client import NOT_FOUND_MESSAGE, ApiClient, ApiConfig, ProviderClient, match_list
from .cache import MatchCache, build_cache
from .config import Config, get_api_token
from .endpoints import build_registry
from .logging_utils import log_json
from .models import MatchRecord, Stats
from .normalize import AGENT_ICON_URL, normalize_match
from .profile import PlayerProfile, build_profile
from .reconcile import PAGE_SIZE, ReconciliationEngine
from .season import SeasonFilter


class CleanupState(str, Enum):
    NOT_STARTED = "not_started"
    DONE = "done"


@dataclass
class MatchHistorySession:
    """Per-visit state for one searched player.

    ``cleanup`` gates the season-rollover pass to the first reconcile of the
    session; ``loading_more`` keeps a second "load more" from starting while
    one is outstanding.
    """

    player_id: str
    name: str
    tag: str
    region: str
    matches: List[MatchRecord] = field(default_factory=list)
    offset: int = PAGE_SIZE
    cleanup: CleanupState = CleanupState.NOT_STARTED
    loading_more: bool = False
    last_error: Optional[str] = None

    @property
    def owner(self) -> Tuple[str, str]:
        return (self.name, self.tag)

    def mark_cleanup_done(self) -> None:
        self.cleanup = CleanupState.DONE


def session_match_cards(session: MatchHistorySession) -> List[Dict[str, Any]]:
    cards = []
    for rec in session.matches:
        item = rec.to_dict(include_rounds=False)
        item["outcome"] = match_outcome(rec, session.name, session.tag)
        cards.append(item)
    return cards


def match_summary(record: MatchRecord, name: Optional[str] = None, tag: Optional[str] = None) -> Dict[str, Any]:
    """Match detail body: the record, per-team scoreboard and the searched player's kills per round."""
    body = record.to_dict()
    board = scoreboard(record, name, tag)
    return {
        "match": body,
        "rounds": body.get("rounds", []),
        "players": body["players"],
        "scoreboard": {side.value: [line.to_dict() for line in lines] for side, lines in board.items()},
        "round_kills": round_kills(record, name, tag) if name and tag else [],
    }


@dataclass
class PlayerPage:
    profile: Optional[PlayerProfile]
    session: Optional[MatchHistorySession]
    stats: Stats = field(default_factory=Stats)
    season_name: str = ""
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.profile is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "profile": self.profile.to_dict() if self.profile else None,
            "stats": self.stats.to_dict(),
            "season": self.season_name,
            "matches": session_match_cards(self.session) if self.session else [],
            "next_offset": self.session.offset if self.session else None,
            "error": self.error,
        }


def build_provider(
    config: Config,
    logger=None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ProviderClient:
    api = ApiClient(get_api_token(), ApiConfig(**config.api), transport=transport)
    return ProviderClient(api, build_registry(config.endpoints), config.platform, logger)


def build_engine(config: Config, cache: Optional[MatchCache] = None, logger=None) -> ReconciliationEngine:
    return ReconciliationEngine(
        cache if cache is not None else build_cache(config.cache),
        SeasonFilter(config.current_season_id),
        logger,
        config.media.get("agent_icon", AGENT_ICON_URL),
    )


class DashboardService:
    def __init__(self, config: Config, provider: ProviderClient, engine: ReconciliationEngine, logger=None) -> None:
        self.config = config
        self.provider = provider
        self.engine = engine
        self.logger = logger or engine.logger

    async def close(self) -> None:
        await self.provider.close()

    async def load_player(self, name: str, tag: str) -> PlayerPage:
        account = await self.provider.get_account(name, tag)
        if not account.ok or not isinstance(account.data, dict):
            log_json(self.logger, "player_not_found", name=name, tag=tag, error=account.error)
            return PlayerPage(profile=None, session=None, error=account.error or NOT_FOUND_MESSAGE)
        region = account.data.get("region") or self.config.region
        mmr, first_page = await asyncio.gather(
            self.provider.get_mmr(region, name, tag),
            self.provider.get_matches(region, name, tag, start=0, size=PAGE_SIZE),
        )
        profile = build_profile(account.data, mmr.data if mmr.ok else None, self.config.media, self.config.region)
        session = MatchHistorySession(player_id=profile.puuid, name=name, tag=tag, region=region)
        self.refresh(session, match_list(first_page))
        return PlayerPage(
            profile=profile,
            session=session,
            stats=self.stats(session),
            season_name=self.config.season_name,
            error=first_page.error,
        )

    def refresh(self, session: MatchHistorySession, fresh_raw: List[Any]) -> List[MatchRecord]:
        run_cleanup = session.cleanup is CleanupState.NOT_STARTED
        session.matches = self.engine.reconcile(
            session.player_id,
            fresh_raw,
            owner=session.owner,
            run_cleanup=run_cleanup,
        )
        if run_cleanup:
            session.mark_cleanup_done()
        return session.matches

    async def load_more(self, session: MatchHistorySession) -> List[MatchRecord]:
        if session.loading_more:
            return session.matches
        session.loading_more = True
        try:
            result = await self.provider.get_matches(
                session.region, session.name, session.tag, start=session.offset, size=PAGE_SIZE
            )
            session.last_error = result.error
            raw = match_list(result)
            if raw:
                session.matches = self.engine.load_more(
                    session.player_id, session.matches, raw, owner=session.owner
                )
                session.offset += PAGE_SIZE
            log_json(
                self.logger,
                "load_more_done",
                player_id=session.player_id,
                fetched=len(raw),
                total=len(session.matches),
                next_offset=session.offset,
                error=result.error,
            )
        finally:
            session.loading_more = False
        return session.matches

    async def resume(
        self, name: str, tag: str, start: int
    ) -> Tuple[Optional[MatchHistorySession], Optional[str]]:
        """Rebuild a session from cached history and load the page at ``start``."""
        account = await self.provider.get_account(name, tag)
        if not account.ok or not isinstance(account.data, dict):
            return None, account.error or NOT_FOUND_MESSAGE
        player_id = account.data.get("puuid") or ""
        session = MatchHistorySession(
            player_id=player_id,
            name=name,
            tag=tag,
            region=account.data.get("region") or self.config.region,
            matches=self.engine.held_matches(player_id),
            offset=start,
            cleanup=CleanupState.DONE,
        )
        await self.load_more(session)
        return session, None

    def stats(self, session: MatchHistorySession) -> Stats:
        return aggregate(session.matches, session.name, session.tag)

    async def match_detail(self, region: str, match_id: str) -> Tuple[Optional[MatchRecord], Optional[str]]:
        result = await self.provider.get_match(region, match_id)
        if not result.ok:
            return None, result.error
        return normalize_match(result.data, agent_icon_template=self.engine.agent_icon_template), None
