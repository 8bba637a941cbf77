"""Time Utilities for UTC management"""

from datetime import datetime, timezone


def get_utc_now() -> datetime:
    """
    Naive UTC "now" for submitted_at/graded_at and row timestamps.
    Columns are TIMESTAMP WITHOUT TIME ZONE, so tzinfo is dropped.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)
