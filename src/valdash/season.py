from __future__ import annotations

from typing import Iterable, List

from .models import MatchRecord


def is_current_season(record: MatchRecord, current_season_id: str) -> bool:
    return record.season_id is not None and record.season_id == current_season_id


class SeasonFilter:
    """Exact-match filter against the configured competitive season.

    Rolling over to a new season is a config change (``season.current_id``);
    records from the previous season then become eligible for cache cleanup.
    """

    def __init__(self, current_season_id: str) -> None:
        if not current_season_id:
            raise ValueError("current_season_id must be non-empty")
        self.current_season_id = current_season_id

    def is_current(self, record: MatchRecord) -> bool:
        return is_current_season(record, self.current_season_id)

    def keep_current(self, records: Iterable[MatchRecord]) -> List[MatchRecord]:
        return [rec for rec in records if self.is_current(rec)]
