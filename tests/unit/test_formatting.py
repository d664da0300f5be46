"""Unit tests for core formatting utilities."""

from __future__ import annotations

from datetime import timedelta

import pytest

from timeslab.core.formatting import format_age, format_size, status_to_color


@pytest.mark.core
@pytest.mark.tra("Domain.Format.StatusColor")
@pytest.mark.tier(0)
@pytest.mark.parametrize(
    ("status", "color"),
    [
        ("fresh", "green"),
        ("recent", "blue"),
        ("stale", "yellow"),
        ("outdated", "red"),
        ("offline", "magenta"),
        ("missing", "red"),
    ],
)
def test_status_to_color(status: str, color: str) -> None:
    """Each freshness and availability status has a color."""
    assert status_to_color(status) == color


@pytest.mark.core
@pytest.mark.tra("Domain.Format.StatusColor")
@pytest.mark.tier(0)
def test_status_to_color_invalid_returns_empty_string() -> None:
    """Test that invalid status returns empty string."""
    assert status_to_color("invalid") == ""


@pytest.mark.core
@pytest.mark.tra("Domain.Format.Age")
@pytest.mark.tier(0)
@pytest.mark.parametrize(
    ("age", "expected"),
    [
        (timedelta(seconds=-30), "just now"),
        (timedelta(seconds=59), "just now"),
        (timedelta(minutes=5), "5m ago"),
        (timedelta(hours=3, minutes=59), "3h ago"),
        (timedelta(days=2), "2d ago"),
        (timedelta(days=15), "2w ago"),
    ],
)
def test_format_age(age: timedelta, expected: str) -> None:
    """Ages render in the largest whole unit."""
    assert format_age(age) == expected


@pytest.mark.core
@pytest.mark.tra("Domain.Format.Size")
@pytest.mark.tier(0)
@pytest.mark.parametrize(
    ("size", "expected"),
    [
        (0, "0.0 B"),
        (512, "512.0 B"),
        (2048, "2.0 KB"),
        (5 * 1024 * 1024, "5.0 MB"),
        (3 * 1024**4, "3.0 TB"),
    ],
)
def test_format_size(size: int, expected: str) -> None:
    """Sizes render with one decimal in binary units."""
    assert format_size(size) == expected
