"""Tests for the snapshot cache and cached runs."""

from __future__ import annotations

import json

import pytest
from conftest import StaticCheck, StaticSource

from healthdesk.health.cache import CacheStore, ttl_to_minutes
from healthdesk.health.engine import CACHE_GROUP, CACHE_KEY
from healthdesk.health.models import HealthStatus


class FakeClock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


# ── CacheStore ───────────────────────────────────────────────────────────────


class TestCacheStore:
    def test_store_and_get(self, cache: CacheStore) -> None:
        cache.store('{"a": 1}', "k", "g", 5)
        assert cache.get("k", "g") == '{"a": 1}'

    def test_missing_key(self, cache: CacheStore) -> None:
        assert cache.get("absent", "g") is None

    def test_groups_are_isolated(self, cache: CacheStore) -> None:
        cache.store("one", "k", "g1", 5)
        cache.store("two", "k", "g2", 5)
        assert cache.get("k", "g1") == "one"
        assert cache.get("k", "g2") == "two"

    def test_store_replaces(self, cache: CacheStore) -> None:
        cache.store("old", "k", "g", 5)
        cache.store("new", "k", "g", 5)
        assert cache.get("k", "g") == "new"
        assert cache.count("g") == 1

    def test_expiry(self, tmp_path) -> None:
        clock = FakeClock()
        store = CacheStore(tmp_path / "expiry.db", clock=clock)
        store.store("value", "k", "g", 1)

        clock.now += 59
        assert store.get("k", "g") == "value"
        clock.now += 1
        assert store.get("k", "g") is None
        assert store.count("g") == 0
        store.close()

    def test_clean_removes_only_group(self, cache: CacheStore) -> None:
        cache.store("a", "k1", "g", 5)
        cache.store("b", "k2", "g", 5)
        cache.store("c", "k1", "other", 5)

        assert cache.clean("g") == 2
        assert cache.count("g") == 0
        assert cache.count() == 1

    def test_persists_across_instances(self, tmp_path) -> None:
        path = tmp_path / "persist.db"
        first = CacheStore(path)
        first.store("value", "k", "g", 5)
        first.close()

        second = CacheStore(path)
        assert second.get("k", "g") == "value"
        second.close()


@pytest.mark.parametrize(
    "seconds, minutes",
    [(1, 1), (30, 1), (60, 1), (90, 1), (120, 2), (900, 15), (3599, 59)],
)
def test_ttl_to_minutes(seconds: int, minutes: int) -> None:
    assert ttl_to_minutes(seconds) == minutes


# ── Cached runs ──────────────────────────────────────────────────────────────


class TestRunWithCache:
    def _source(self, standard_categories):
        return StaticSource(
            categories=standard_categories,
            checks=[
                StaticCheck("system.a", "system", HealthStatus.GOOD),
                StaticCheck("security.a", "security", HealthStatus.CRITICAL),
            ],
        )

    def test_second_call_served_from_cache(self, make_runner, standard_categories) -> None:
        source = self._source(standard_categories)
        first = make_runner(source)
        first.run_with_cache(60)

        second = make_runner(source)
        second.run_with_cache(60)

        assert all(c.calls == 1 for c in source.checks)
        assert second.results == first.results
        assert second.last_run == first.last_run

    def test_cached_results_keep_aggregate_order(self, make_runner, standard_categories) -> None:
        source = self._source(standard_categories)
        make_runner(source).run_with_cache(60)

        cached = make_runner(source)
        cached.run_with_cache(60)
        assert [r.status for r in cached.results] == [HealthStatus.CRITICAL, HealthStatus.GOOD]
        # registries are rebuilt so grouping still knows the categories
        assert cached.categories.has("security")
        assert list(cached.results_by_category()) == ["system", "security"]

    @pytest.mark.parametrize("ttl", [0, -5, None])
    def test_non_positive_ttl_bypasses_cache(self, make_runner, standard_categories, cache, ttl) -> None:
        source = self._source(standard_categories)
        make_runner(source).run_with_cache(ttl)
        make_runner(source).run_with_cache(ttl)

        assert all(c.calls == 2 for c in source.checks)
        assert cache.get(CACHE_KEY, CACHE_GROUP) is None

    def test_payload_is_plain_json(self, make_runner, standard_categories, cache) -> None:
        runner = make_runner(self._source(standard_categories))
        runner.run_with_cache(900)

        payload = json.loads(cache.get(CACHE_KEY, CACHE_GROUP))
        assert payload["lastRun"] == runner.last_run
        assert [r["slug"] for r in payload["results"]] == ["security.a", "system.a"]

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "[]",
            '{"results": []}',
            '{"results": "nope", "lastRun": null}',
            '{"results": [{"status": "fatal", "title": "t", "slug": "s", "category": "c"}], "lastRun": null}',
            '{"results": [], "lastRun": "yesterday"}',
        ],
    )
    def test_unreadable_payload_is_a_miss(self, make_runner, standard_categories, cache, raw) -> None:
        cache.store(raw, CACHE_KEY, CACHE_GROUP, 15)
        source = self._source(standard_categories)
        runner = make_runner(source)
        runner.run_with_cache(900)

        assert all(c.calls == 1 for c in source.checks)
        assert len(runner.results) == 2
        # the bad entry is overwritten by the fresh run
        assert json.loads(cache.get(CACHE_KEY, CACHE_GROUP))["lastRun"] == runner.last_run

    def test_clear_cache_forces_rerun(self, make_runner, standard_categories) -> None:
        source = self._source(standard_categories)
        runner = make_runner(source)
        runner.run_with_cache(60)
        runner.clear_cache()

        make_runner(source).run_with_cache(60)
        assert all(c.calls == 2 for c in source.checks)

    def test_stats_with_cache(self, make_runner, standard_categories) -> None:
        runner = make_runner(self._source(standard_categories))
        stats = runner.get_stats_with_cache(60)
        assert stats == {
            "critical": 1,
            "warning": 0,
            "good": 1,
            "total": 2,
            "lastRun": runner.last_run,
        }

    def test_runner_without_cache_always_runs(self, context, standard_categories) -> None:
        from healthdesk.health.engine import CheckRunner

        source = self._source(standard_categories)
        CheckRunner([source], context).run_with_cache(60)
        CheckRunner([source], context).run_with_cache(60)
        assert all(c.calls == 2 for c in source.checks)
