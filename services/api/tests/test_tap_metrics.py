"""Tests for the pure tap aggregations."""

from datetime import datetime, timedelta
from uuid import uuid4

import pytest

from app.aggregators import tap_metrics

from tests.factories import make_tap

CARD = uuid4()
NOW = datetime(2024, 3, 15, 12, 0, 0)


def _tap(**kwargs):
    return make_tap(CARD, timestamp=kwargs.pop("timestamp", NOW), **kwargs)


class TestPeriods:
    """Window resolution."""

    @pytest.mark.parametrize(("period", "days"), [("7d", 7), ("30d", 30), ("90d", 90)])
    def test_known_periods(self, period, days):
        key, start, end = tap_metrics.resolve_period(period, NOW)

        assert key == period
        assert end == NOW
        assert end - start == timedelta(days=days)

    @pytest.mark.parametrize("period", [None, "", "1y", "365d", "bogus"])
    def test_unknown_period_falls_back_to_seven_days(self, period):
        key, start, end = tap_metrics.resolve_period(period, NOW)

        assert key == "7d"
        assert end - start == timedelta(days=7)

    def test_previous_window_is_adjacent_and_equal_length(self):
        _, start, end = tap_metrics.resolve_period("30d", NOW)
        previous_start, previous_end = tap_metrics.previous_window(start, end)

        assert previous_end == start
        assert previous_end - previous_start == end - start


class TestTrend:
    """Period-over-period change."""

    def test_growth(self):
        assert tap_metrics.trend_percent(150, 100) == 50.0

    def test_decline(self):
        assert tap_metrics.trend_percent(50, 200) == -75.0

    def test_no_previous_period(self):
        assert tap_metrics.trend_percent(10, 0) == 0.0
        assert tap_metrics.trend_percent(0, 0) == 0.0

    def test_rounded_to_one_decimal(self):
        assert tap_metrics.trend_percent(4, 3) == 33.3


class TestRates:
    """Conversion, engagement and action rates."""

    def test_empty_scope(self):
        assert tap_metrics.conversion_rate([]) == 0.0
        assert tap_metrics.engagement_rate([]) == 0.0
        assert tap_metrics.action_rate([]) == 0.0

    def test_rates(self):
        taps = [
            _tap(actions=["card_view", "save_contact_click"]),
            _tap(actions=["card_view", "book_now_click", "save_contact_click"]),
            _tap(actions=["card_view"]),
            _tap(actions=["bio_expanded"]),
            _tap(actions=[]),
            _tap(actions=[]),
        ]

        # Each tap counts once even with several converting actions
        assert tap_metrics.conversion_rate(taps) == 33.3
        assert tap_metrics.engagement_rate(taps) == 50.0
        assert tap_metrics.action_rate(taps) == 66.7

    def test_rates_are_bounded(self):
        taps = [_tap(actions=["save_contact_click", "save_contact_click"]) for _ in range(3)]

        for rate in (
            tap_metrics.conversion_rate(taps),
            tap_metrics.engagement_rate(taps),
            tap_metrics.action_rate(taps),
        ):
            assert 0.0 <= rate <= 100.0
        assert tap_metrics.conversion_rate(taps) == 100.0


class TestActionDistribution:
    """Counting unwound actions."""

    def test_counts_every_action(self):
        taps = [
            _tap(actions=["card_view", "save_contact_click"]),
            _tap(actions=["card_view"]),
            _tap(actions=["card_view", "social_link_click", "save_contact_click"]),
        ]

        buckets = tap_metrics.action_distribution(taps)

        assert [(b.key, b.count) for b in buckets] == [
            ("card_view", 3),
            ("save_contact_click", 2),
            ("social_link_click", 1),
        ]
        assert buckets[0].percentage == 50.0

    def test_ties_are_ordered_by_key(self):
        taps = [_tap(actions=["bio_expanded", "bio_collapsed"])]

        assert [b.key for b in tap_metrics.action_distribution(taps)] == [
            "bio_collapsed",
            "bio_expanded",
        ]

    def test_no_actions(self):
        assert tap_metrics.action_distribution([_tap()]) == []


class TestTimeline:
    """Daily views and taps with actions."""

    def test_groups_by_utc_day_ascending(self):
        day1 = datetime(2024, 3, 10, 23, 59)
        day2 = datetime(2024, 3, 12, 0, 1)
        taps = [
            _tap(timestamp=day2, actions=["card_view"]),
            _tap(timestamp=day1),
            _tap(timestamp=day1, actions=["card_view"]),
        ]

        points = tap_metrics.timeline(taps)

        assert [(p.date, p.views, p.actions) for p in points] == [
            ("2024-03-10", 2, 1),
            ("2024-03-12", 1, 1),
        ]


class TestGeographicBreakdown:
    """Location counts."""

    def test_excludes_taps_without_country(self):
        taps = [
            _tap(geo={"city": "Makati", "region": "Metro Manila", "country": "Philippines"}),
            _tap(geo={"city": "Makati", "region": "Metro Manila", "country": "Philippines"}),
            _tap(geo={"city": "Cebu City", "region": "Central Visayas", "country": "Philippines"}),
            _tap(geo={"city": "Nowhere"}),
            _tap(geo=None),
        ]

        buckets = tap_metrics.geographic_breakdown(taps)

        assert [(b.city, b.count) for b in buckets] == [("Makati", 2), ("Cebu City", 1)]
        assert buckets[0].percentage == 66.7

    def test_without_city_merges_cities(self):
        taps = [
            _tap(geo={"city": "Makati", "region": "Metro Manila", "country": "Philippines"}),
            _tap(geo={"city": "Taguig", "region": "Metro Manila", "country": "Philippines"}),
        ]

        buckets = tap_metrics.geographic_breakdown(taps, include_city=False)

        assert len(buckets) == 1
        assert buckets[0].city is None
        assert buckets[0].count == 2

    def test_limit(self):
        taps = [_tap(geo={"country": f"Country {i}"}) for i in range(5)]

        assert len(tap_metrics.geographic_breakdown(taps, limit=3)) == 3

    def test_unique_countries(self):
        taps = [
            _tap(geo={"country": "Philippines"}),
            _tap(geo={"country": "Philippines"}),
            _tap(geo={"country": "Japan"}),
            _tap(geo=None),
        ]

        assert tap_metrics.unique_countries(taps) == 2


class TestDevices:
    """User agent classification."""

    @pytest.mark.parametrize(
        ("user_agent", "device"),
        [
            ("Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X)", "Mobile"),
            ("Mozilla/5.0 (Linux; Android 14; Pixel 8)", "Mobile"),
            ("Mozilla/5.0 (X11; Linux x86_64) MOBILE Safari", "Mobile"),
            ("Mozilla/5.0 (Windows NT 10.0; Win64; x64)", "Desktop"),
            (None, "Desktop"),
            ("", "Desktop"),
        ],
    )
    def test_classify(self, user_agent, device):
        assert tap_metrics.classify_device(user_agent) == device

    def test_breakdown(self):
        taps = [
            _tap(user_agent="iPhone"),
            _tap(user_agent="Android"),
            _tap(user_agent="Windows"),
        ]

        buckets = tap_metrics.device_breakdown(taps)

        assert [(b.key, b.count, b.percentage) for b in buckets] == [
            ("Mobile", 2, 66.7),
            ("Desktop", 1, 33.3),
        ]


class TestGalleryEngagement:
    """Gallery clicks per item."""

    def test_counts_per_label(self):
        tap = _tap()
        tap.actions = [
            {"type": "gallery_item_click", "label": "Portfolio 1"},
            {"type": "gallery_item_click", "label": "Portfolio 2"},
            {"type": "gallery_item_click", "label": "Portfolio 1"},
            {"type": "social_link_click", "label": "LinkedIn"},
            {"type": "gallery_item_click", "mediaId": "img-9"},
        ]

        buckets = tap_metrics.gallery_engagement([tap])

        assert [(b.key, b.count) for b in buckets] == [
            ("Portfolio 1", 2),
            ("Portfolio 2", 1),
            ("img-9", 1),
        ]


class TestLeaderboards:
    """Card and city rankings."""

    def test_card_performance(self):
        first, second = uuid4(), uuid4()
        taps = [make_tap(first), make_tap(second), make_tap(second)]

        ranked = tap_metrics.card_performance(taps, {first: "First", second: "Second"})

        assert [(c.label, c.count) for c in ranked] == [("Second", 2), ("First", 1)]

    def test_top_cities(self):
        taps = [
            _tap(geo={"city": "Makati"}),
            _tap(geo={"city": "Makati"}),
            _tap(geo={"city": "Pasig"}),
            _tap(geo={"country": "Philippines"}),
        ]

        assert [(c.city, c.taps) for c in tap_metrics.top_cities(taps)] == [
            ("Makati", 2),
            ("Pasig", 1),
        ]


class TestEventBreakdown:
    """At-venue versus remote split."""

    def test_breakdown(self):
        taps = [
            _tap(
                timestamp=datetime(2024, 3, 15, 1, 10),
                geo={"method": "event_location", "city": "Manila", "region": "Metro Manila", "country": "Philippines"},
            ),
            _tap(
                timestamp=datetime(2024, 3, 15, 1, 50),
                geo={"method": "event_location", "city": "Manila", "region": "Metro Manila", "country": "Philippines"},
            ),
            _tap(
                timestamp=datetime(2024, 3, 15, 3, 5),
                geo={"method": "user_location_during_event", "city": "Quezon City"},
            ),
        ]

        analytics = tap_metrics.event_breakdown(taps, "Asia/Manila")

        assert analytics.total_taps == 3
        assert analytics.at_event_taps == 2
        assert analytics.remote_taps == 1
        assert analytics.event_effectiveness == 67
        assert analytics.breakdown.remote_percent == 33
        assert analytics.location_stats == {
            "Manila, Metro Manila, Philippines": 2,
            "Quezon City, Unknown Region, Unknown Country": 1,
        }
        # UTC+8
        assert [(h.hour, h.count) for h in analytics.timeline] == [("09:00", 2), ("11:00", 1)]

    def test_no_taps(self):
        analytics = tap_metrics.event_breakdown([], "Asia/Manila")

        assert analytics.total_taps == 0
        assert analytics.event_effectiveness == 0
        assert analytics.timeline == []

    def test_half_percent_rounds_up(self):
        taps = [_tap(geo={"method": "event_location"})] + [
            _tap(geo={"method": "user_location_during_event"}) for _ in range(7)
        ]

        analytics = tap_metrics.event_breakdown(taps, "Asia/Manila")

        assert analytics.event_effectiveness == 13
        assert analytics.breakdown.at_event_percent == 13
        assert analytics.breakdown.remote_percent == 88

    def test_unknown_timezone_falls_back(self):
        taps = [_tap(timestamp=datetime(2024, 3, 15, 0, 0))]

        analytics = tap_metrics.event_breakdown(taps, "Mars/Olympus")

        assert analytics.timeline[0].hour == "08:00"
