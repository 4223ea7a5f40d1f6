"""Merge cached and freshly fetched match records for one player.

The cache is a durable, additive-only store; the live provider returns the
newest page of matches. ``reconcile`` combines both into one season-filtered,
de-duplicated list sorted newest first. Cache trouble is logged and degrades
to provider-only data; nothing here raises to the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional, Sequence

from .cache import MatchCache
from .logging_utils import log_json, log_warning
from .models import MatchRecord
from .normalize import AGENT_ICON_URL, Owner, dedupe_records, normalize_matches
from .season import SeasonFilter

PAGE_SIZE = 10


def sort_newest_first(records: Iterable[MatchRecord]) -> List[MatchRecord]:
    return sorted(records, key=lambda rec: rec.started_at, reverse=True)


def merge_records(primary: Iterable[MatchRecord], extra: Iterable[MatchRecord]) -> List[MatchRecord]:
    """Union by match id; records in ``primary`` win ties."""
    return sort_newest_first(dedupe_records(list(primary) + list(extra)))


class ReconciliationEngine:
    def __init__(
        self,
        cache: MatchCache,
        season_filter: SeasonFilter,
        logger: Optional[logging.Logger] = None,
        agent_icon_template: str = AGENT_ICON_URL,
    ) -> None:
        self.cache = cache
        self.season_filter = season_filter
        self.logger = logger or logging.getLogger(__name__)
        self.agent_icon_template = agent_icon_template

    def _normalize(self, fresh_raw: Sequence[Any], owner: Optional[Owner]) -> List[MatchRecord]:
        return normalize_matches(fresh_raw, owner, self.agent_icon_template)

    def _select_new(self, fresh: Iterable[MatchRecord], known_ids: Iterable[str]) -> List[MatchRecord]:
        known = set(known_ids)
        out = []
        for rec in fresh:
            if not rec.match_id or rec.match_id in known:
                continue
            if not self.season_filter.is_current(rec):
                continue
            known.add(rec.match_id)
            out.append(rec)
        return out

    def provider_only(self, fresh: Iterable[MatchRecord]) -> List[MatchRecord]:
        current = [rec for rec in self.season_filter.keep_current(fresh) if rec.match_id]
        return sort_newest_first(dedupe_records(current))

    def held_matches(self, player_id: str) -> List[MatchRecord]:
        """Current-season cached records, newest first; empty when the cache is unreachable."""
        if not player_id:
            return []
        try:
            cached = self.cache.read_all(player_id)
        except Exception as exc:
            log_warning(self.logger, "cache_unavailable", player_id=player_id, error=str(exc))
            return []
        return sort_newest_first(self.season_filter.keep_current(cached.values()))

    def cleanup_stale_seasons(self, player_id: str) -> int:
        cached = self.cache.read_all(player_id)
        stale = [mid for mid, rec in cached.items() if not self.season_filter.is_current(rec)]
        for match_id in stale:
            self.cache.delete(player_id, match_id)
        if stale:
            log_json(self.logger, "season_cleanup", player_id=player_id, deleted=len(stale))
        return len(stale)

    def reconcile(
        self,
        player_id: str,
        fresh_raw: Sequence[Any],
        owner: Optional[Owner] = None,
        run_cleanup: bool = True,
    ) -> List[MatchRecord]:
        fresh = self._normalize(fresh_raw, owner)
        if not player_id:
            return self.provider_only(fresh)
        try:
            if run_cleanup:
                self.cleanup_stale_seasons(player_id)
            cached = self.cache.read_all(player_id)
            known_ids = self.cache.match_ids(player_id)
            new = self._select_new(fresh, known_ids)
            saved = self.cache.put_many(player_id, new) if new else 0
        except Exception as exc:
            log_warning(self.logger, "cache_unavailable", player_id=player_id, error=str(exc))
            return self.provider_only(fresh)
        # Stale rows can survive when cleanup was skipped for this session.
        merged = merge_records(self.season_filter.keep_current(cached.values()), new)
        log_json(
            self.logger,
            "reconcile_done",
            player_id=player_id,
            cached=len(cached),
            fresh=len(fresh),
            saved=saved,
            total=len(merged),
        )
        return merged

    def load_more(
        self,
        player_id: str,
        held: Sequence[MatchRecord],
        fresh_raw: Sequence[Any],
        owner: Optional[Owner] = None,
    ) -> List[MatchRecord]:
        fresh = self._normalize(fresh_raw, owner)
        new = self._select_new(fresh, (rec.match_id for rec in held))
        if new and player_id:
            try:
                saved = self.cache.put_many(player_id, new)
                log_json(self.logger, "load_more_saved", player_id=player_id, saved=saved)
            except Exception as exc:
                log_warning(self.logger, "cache_unavailable", player_id=player_id, error=str(exc))
        return merge_records(held, new)
