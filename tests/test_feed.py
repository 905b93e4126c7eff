"""
Tests for the citizen feed scanner and log.
"""

import numpy as np
import pytest

from city_sim.core.feed import (
    MESSAGE_POOLS,
    RECOVERY_MESSAGES,
    CitySnapshot,
    FeedEvent,
    FeedLog,
    FeedOptions,
    FeedScanner,
)


def snapshot(**overrides):
    values = dict(
        goods=100,
        has_commercial=False,
        water_shortage=0,
        electricity_shortage=0,
        workforce_required=0,
        workforce_assigned=0,
        uncovered_residentials=0,
        satisfaction=50,
    )
    values.update(overrides)
    return CitySnapshot(**values)


class TestFeedLog:
    """Test retention order."""

    def test_newest_first_and_bounded(self):
        log = FeedLog(max_entries=3)
        for i in range(5):
            log.add(FeedEvent(text=str(i), icon="x", timestamp=i, mood="positive"))
        assert [e.text for e in log.events] == ["4", "3", "2"]
        assert len(log) == 3

    def test_clear(self):
        log = FeedLog()
        log.add(FeedEvent(text="a", icon="x", timestamp=0, mood="negative"))
        log.clear()
        assert log.events == []


class TestFeedScanner:
    """Test condition evaluation."""

    def setup_method(self):
        self.scanner = FeedScanner(FeedOptions(), np.random.default_rng(42))

    def test_quiet_city_emits_nothing(self):
        assert self.scanner.scan(snapshot(), now=0) == []

    def test_goods_shortage_needs_a_shop(self):
        assert self.scanner.scan(snapshot(goods=0), now=0) == []
        events = self.scanner.scan(snapshot(goods=5, has_commercial=True), now=0)
        assert [e.icon for e in events] == ["shop"]
        assert events[0].mood == "negative"

    def test_one_event_per_condition(self):
        events = self.scanner.scan(
            snapshot(
                goods=0,
                has_commercial=True,
                water_shortage=10,
                electricity_shortage=10,
                workforce_required=50,
                workforce_assigned=0,
                uncovered_residentials=3,
                satisfaction=10,
            ),
            now=123.0,
        )
        assert [e.icon for e in events] == ["shop", "trouble", "trouble", "trouble", "park", "sad"]
        assert events[1].text in MESSAGE_POOLS["water"]
        assert events[2].text in MESSAGE_POOLS["electricity"]
        assert events[3].text in MESSAGE_POOLS["workforce"]
        assert all(e.timestamp == 123.0 for e in events)

    def test_workforce_slack(self):
        assert self.scanner.scan(snapshot(workforce_required=20, workforce_assigned=10), now=0) == []
        events = self.scanner.scan(snapshot(workforce_required=21, workforce_assigned=10), now=0)
        assert len(events) == 1

    def test_happy(self):
        events = self.scanner.scan(snapshot(satisfaction=90), now=0)
        assert [(e.icon, e.mood) for e in events] == [("happy", "positive")]

    def test_recovery_messages(self):
        self.scanner.scan(snapshot(water_shortage=5, uncovered_residentials=1), now=0)
        events = self.scanner.scan(snapshot(), now=1)
        assert [e.text for e in events] == [RECOVERY_MESSAGES["water"], RECOVERY_MESSAGES["park"]]
        assert all(e.icon == "thanks" for e in events)
        assert self.scanner.scan(snapshot(), now=2) == []

    def test_seeded_selection_is_reproducible(self):
        state = snapshot(water_shortage=1, satisfaction=10)
        first = FeedScanner(FeedOptions(), np.random.default_rng(7))
        second = FeedScanner(FeedOptions(), np.random.default_rng(7))
        for _ in range(5):
            assert [e.text for e in first.scan(state, now=0)] == [e.text for e in second.scan(state, now=0)]

    def test_options_from_settings(self, settings):
        options = FeedOptions.from_settings(settings)
        assert options.goods_shortage_threshold == settings.goods_shortage_threshold
        assert options.satisfaction_low == settings.satisfaction_low

    @pytest.mark.parametrize("pool", sorted(MESSAGE_POOLS))
    def test_pools_are_not_empty(self, pool):
        assert MESSAGE_POOLS[pool]
