"""Formatting utilities for domain logic."""

from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from datetime import timedelta


def status_to_color(status: str) -> str:
    """Map a freshness or availability status to a color name.

    Args:
        status: "fresh", "recent", "stale", "outdated", "offline" or "missing".

    Returns:
        Color name string, or an empty string for unknown statuses.
    """
    color_map = {
        "fresh": "green",
        "recent": "blue",
        "stale": "yellow",
        "outdated": "red",
        "offline": "magenta",
        "missing": "red",
    }
    return color_map.get(status, "")


def format_age(age: timedelta) -> str:
    """Render an age the way the dashboard badges do ("5m ago", "2d ago").

    Ages under a minute, including negative ages, render as "just now".
    """
    seconds = int(age.total_seconds())
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    if seconds < 604800:
        return f"{seconds // 86400}d ago"
    return f"{seconds // 604800}w ago"


def format_size(size_bytes: int) -> str:
    """Format size in bytes to human-readable format."""
    size = float(size_bytes)
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} TB"
