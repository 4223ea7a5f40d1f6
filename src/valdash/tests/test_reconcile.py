"""Tests for merging cached and fresh match history."""

from __future__ import annotations

import logging

from valdash.cache import MemoryMatchCache
from valdash.normalize import normalize_match
from valdash.reconcile import ReconciliationEngine, merge_records, sort_newest_first
from valdash.season import SeasonFilter

from helpers import CURRENT, PREVIOUS, legacy_match, v4_match


def _ids(records):
    return [r.match_id for r in records]


class BrokenCache(MemoryMatchCache):
    def read_all(self, player_id):
        raise ConnectionError("cache offline")


class WriteFailingCache(MemoryMatchCache):
    def put_many(self, player_id, records):
        raise ConnectionError("write refused")


class TestHelpers:
    def test_sort_newest_first(self):
        older = normalize_match(v4_match("a", started_at="2025-01-01T00:00:00Z"))
        newer = normalize_match(v4_match("b", started_at="2025-02-01T00:00:00Z"))
        assert _ids(sort_newest_first([older, newer])) == ["b", "a"]

    def test_merge_primary_wins_ties(self):
        cached = normalize_match(v4_match("a", red=13, blue=2))
        fresh = normalize_match(v4_match("a", red=2, blue=13))
        merged = merge_records([cached], [fresh])
        assert len(merged) == 1
        assert merged[0].teams.red.rounds_won == 13


class TestReconcile:
    def test_first_visit_caches_fresh_current_season(self, engine, memory_cache):
        fresh = [
            v4_match("m1", started_at="2025-03-01T20:00:00Z"),
            v4_match("m2", started_at="2025-03-02T20:00:00Z"),
            v4_match("old", season_id=PREVIOUS),
        ]
        merged = engine.reconcile("p1", fresh)
        assert _ids(merged) == ["m2", "m1"]
        assert memory_cache.match_ids("p1") == {"m1", "m2"}

    def test_stale_season_cleanup_and_union(self, engine, memory_cache):
        memory_cache.put_many("p1", [
            normalize_match(v4_match("A", started_at="2025-03-01T10:00:00Z", season_id=CURRENT)),
            normalize_match(v4_match("B", started_at="2025-03-05T10:00:00Z", season_id=PREVIOUS)),
        ])
        merged = engine.reconcile("p1", [v4_match("C", started_at="2025-03-03T10:00:00Z")])
        assert _ids(merged) == ["C", "A"]
        assert memory_cache.match_ids("p1") == {"A", "C"}

    def test_output_invariants(self, engine, memory_cache):
        memory_cache.put_many("p1", [normalize_match(v4_match("m1", started_at="2025-03-01T00:00:00Z"))])
        fresh = [
            v4_match("m1", started_at="2025-03-01T00:00:00Z"),
            v4_match("m2", started_at="2025-03-04T00:00:00Z"),
            v4_match("m2", started_at="2025-03-04T00:00:00Z"),
            v4_match("m3", started_at="2025-02-01T00:00:00Z"),
            v4_match("", started_at="2025-03-09T00:00:00Z"),
            v4_match("m4", season_id=None),
        ]
        merged = engine.reconcile("p1", fresh)
        ids = _ids(merged)
        assert ids == ["m2", "m1", "m3"]
        assert len(ids) == len(set(ids))
        assert all(r.season_id == CURRENT for r in merged)
        times = [r.started_at for r in merged]
        assert times == sorted(times, reverse=True)

    def test_cached_record_wins_over_fresh(self, engine, memory_cache):
        memory_cache.put_many("p1", [normalize_match(v4_match("m1", red=13, blue=3))])
        merged = engine.reconcile("p1", [v4_match("m1", red=3, blue=13)])
        assert merged[0].teams.red.rounds_won == 13

    def test_idempotent(self, engine, memory_cache):
        fresh = [v4_match("m1"), v4_match("m2", started_at="2025-03-02T00:00:00Z")]
        first = engine.reconcile("p1", fresh)
        second = engine.reconcile("p1", fresh)
        assert _ids(first) == _ids(second)
        assert memory_cache.match_ids("p1") == {"m1", "m2"}

    def test_skipped_cleanup_still_filters_output(self, engine, memory_cache):
        memory_cache.put_many("p1", [normalize_match(v4_match("old", season_id=PREVIOUS))])
        merged = engine.reconcile("p1", [v4_match("m1")], run_cleanup=False)
        assert _ids(merged) == ["m1"]
        assert "old" in memory_cache.match_ids("p1")

    def test_empty_player_id_is_provider_only(self, engine, memory_cache):
        merged = engine.reconcile("", [v4_match("m1"), v4_match("x", season_id=PREVIOUS)])
        assert _ids(merged) == ["m1"]
        assert memory_cache.read_all("") == {}

    def test_cache_failure_falls_back_to_provider(self, caplog):
        engine = ReconciliationEngine(BrokenCache(), SeasonFilter(CURRENT))
        with caplog.at_level(logging.WARNING):
            merged = engine.reconcile("p1", [
                v4_match("m1", started_at="2025-03-01T00:00:00Z"),
                v4_match("m2", started_at="2025-03-02T00:00:00Z"),
                v4_match("x", season_id=PREVIOUS),
            ])
        assert _ids(merged) == ["m2", "m1"]
        assert any(r.getMessage() == "cache_unavailable" for r in caplog.records)

    def test_legacy_shape_uses_owner(self, engine):
        merged = engine.reconcile("p1", [legacy_match("old-1")], owner=("Tenz", "EU1"))
        assert merged[0].players[0].riot_id == "Tenz#EU1"


class TestCleanup:
    def test_removes_only_stale_rows(self, engine, memory_cache):
        memory_cache.put_many("p1", [
            normalize_match(v4_match("a", season_id=CURRENT)),
            normalize_match(v4_match("b", season_id=PREVIOUS)),
            normalize_match(v4_match("c", season_id=None)),
        ])
        assert engine.cleanup_stale_seasons("p1") == 2
        assert memory_cache.match_ids("p1") == {"a"}

    def test_second_run_is_a_noop(self, engine, memory_cache):
        memory_cache.put_many("p1", [normalize_match(v4_match("b", season_id=PREVIOUS))])
        engine.cleanup_stale_seasons("p1")
        assert engine.cleanup_stale_seasons("p1") == 0


class TestLoadMore:
    def test_appends_unseen_current_matches(self, engine, memory_cache):
        held = engine.reconcile("p1", [v4_match("m1", started_at="2025-03-05T00:00:00Z")])
        merged = engine.load_more("p1", held, [
            v4_match("m1", started_at="2025-03-05T00:00:00Z"),
            v4_match("m0", started_at="2025-03-01T00:00:00Z"),
            v4_match("prev", season_id=PREVIOUS),
        ])
        assert _ids(merged) == ["m1", "m0"]
        assert memory_cache.match_ids("p1") == {"m1", "m0"}

    def test_write_failure_still_returns_merged(self):
        engine = ReconciliationEngine(WriteFailingCache(), SeasonFilter(CURRENT))
        held = [normalize_match(v4_match("m1", started_at="2025-03-05T00:00:00Z"))]
        merged = engine.load_more("p1", held, [v4_match("m0", started_at="2025-03-01T00:00:00Z")])
        assert _ids(merged) == ["m1", "m0"]


class TestHeldMatches:
    def test_current_season_newest_first(self, engine, memory_cache):
        memory_cache.put_many("p1", [
            normalize_match(v4_match("a", started_at="2025-03-01T00:00:00Z")),
            normalize_match(v4_match("b", started_at="2025-03-04T00:00:00Z")),
            normalize_match(v4_match("old", season_id=PREVIOUS)),
        ])
        assert _ids(engine.held_matches("p1")) == ["b", "a"]

    def test_empty_player_id(self, engine):
        assert engine.held_matches("") == []

    def test_cache_failure_yields_empty(self):
        engine = ReconciliationEngine(BrokenCache(), SeasonFilter(CURRENT))
        assert engine.held_matches("p1") == []
