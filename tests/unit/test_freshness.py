"""Unit tests for freshness classification."""

from datetime import UTC, datetime, timedelta

import pytest


NOW = datetime(2024, 4, 1, 12, 0, tzinfo=UTC)


@pytest.mark.core
@pytest.mark.tra("Service.Freshness")
@pytest.mark.tier(0)
class TestClassify:
    """Tests for classify()."""

    @pytest.mark.parametrize(
        ("age", "expected"),
        [
            (timedelta(minutes=30), "fresh"),
            (timedelta(hours=10), "recent"),
            (timedelta(days=3), "stale"),
            (timedelta(days=10), "outdated"),
        ],
    )
    def test_buckets(self, age: timedelta, expected: str) -> None:
        """Each age falls in the expected bucket."""
        from timeslab.core.freshness import classify

        assert classify(NOW - age, NOW).value == expected

    @pytest.mark.parametrize(
        ("age", "expected"),
        [
            (timedelta(hours=1), "recent"),
            (timedelta(hours=24), "stale"),
            (timedelta(days=7), "outdated"),
        ],
    )
    def test_thresholds_are_exclusive_upper_bounds(self, age: timedelta, expected: str) -> None:
        """Reaching a threshold moves data to the next bucket."""
        from timeslab.core.freshness import classify

        assert classify(NOW - age, NOW).value == expected

    def test_negative_age_is_fresh(self) -> None:
        """Clock skew (timestamp in the future) is treated as fresh."""
        from timeslab.core.freshness import classify
        from timeslab.core.models import Freshness

        assert classify(NOW + timedelta(hours=3), NOW) is Freshness.FRESH

    def test_monotonic_in_age(self) -> None:
        """An older timestamp is never classified fresher than a newer one."""
        from timeslab.core.freshness import classify

        ages = [timedelta(minutes=m) for m in range(0, 60 * 24 * 10, 37)]
        ranks = [classify(NOW - age, NOW).rank for age in ages]
        assert ranks == sorted(ranks)

    def test_naive_timestamp_is_utc(self) -> None:
        """Naive timestamps are compared as UTC."""
        from timeslab.core.freshness import classify
        from timeslab.core.models import Freshness

        assert classify(datetime(2024, 4, 1, 11, 30), NOW) is Freshness.FRESH

    def test_age_of(self) -> None:
        """age_of() is the difference between now and the timestamp."""
        from timeslab.core.freshness import age_of

        assert age_of(NOW - timedelta(hours=2), NOW) == timedelta(hours=2)

    @pytest.mark.property
    def test_monotonic_in_age_property(self) -> None:
        """Property: the older of two timestamps is never classified fresher."""
        from hypothesis import given
        from hypothesis.strategies import integers

        from timeslab.core.freshness import classify

        @given(
            first=integers(min_value=-3600, max_value=30 * 86400),
            second=integers(min_value=-3600, max_value=30 * 86400),
        )
        def _test_monotonic(first: int, second: int) -> None:
            younger, older = sorted((first, second))
            assert (
                classify(NOW - timedelta(seconds=younger), NOW).rank
                <= classify(NOW - timedelta(seconds=older), NOW).rank
            )

        _test_monotonic()
