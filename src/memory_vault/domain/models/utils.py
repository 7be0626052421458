"""Utility functions for domain models."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Get the current UTC datetime with timezone awareness."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes coming back from the datastore as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def normalize_content(text: str) -> str:
    """Canonical form used for exact-duplicate comparison: trimmed, lowercased, single-spaced."""
    return " ".join(text.strip().lower().split())
