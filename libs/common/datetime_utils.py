"""Datetime helpers. All persisted timestamps are timezone-aware UTC."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime.

    Used as the column default for every ``created_at``/``updated_at`` field.
    """
    return datetime.now(timezone.utc)


def order_date_stamp(moment: datetime | None = None) -> str:
    """Return the YYMMDD stamp embedded in order numbers."""
    return (moment or utc_now()).strftime("%y%m%d")
