"""Freshness classification of retrieved data."""

from __future__ import annotations

from datetime import datetime, timedelta

from timeslab.core.models import Freshness, as_utc, utcnow


FRESH_LIMIT = timedelta(hours=1)
RECENT_LIMIT = timedelta(hours=24)
STALE_LIMIT = timedelta(days=7)


def age_of(timestamp: datetime, now: datetime | None = None) -> timedelta:
    """Elapsed time between timestamp and now (negative under clock skew)."""
    if now is None:
        now = utcnow()
    return as_utc(now) - as_utc(timestamp)


def classify_age(age: timedelta) -> Freshness:
    """Map an age to its freshness bucket.

    Negative ages fall into FRESH.
    """
    if age < FRESH_LIMIT:
        return Freshness.FRESH
    if age < RECENT_LIMIT:
        return Freshness.RECENT
    if age < STALE_LIMIT:
        return Freshness.STALE
    return Freshness.OUTDATED


def classify(timestamp: datetime, now: datetime | None = None) -> Freshness:
    """Classify data retrieved at timestamp, as seen at now.

    Args:
        timestamp: When the data was retrieved. Naive values are taken as UTC.
        now: Reference time, defaults to the current time.

    Returns:
        FRESH under one hour, RECENT under a day, STALE under a week,
        OUTDATED otherwise.
    """
    return classify_age(age_of(timestamp, now))
