"""Naive-UTC time helpers shared by models and services"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time in UTC without tzinfo, matching how timestamps are stored"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to naive UTC; naive values are assumed UTC already"""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
