"""
Account activity classification for the inactive-user policy.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from ..model.schemas import ActivityState


def classify_activity(
    last_activity: Optional[datetime],
    inactive_days: int,
    now: Optional[datetime] = None
) -> ActivityState:
    """Classify an account from its last-activity timestamp.

    Args:
        last_activity: Last logon time, or None if the account never logged on
        inactive_days: Threshold; strictly older than this is inactive
        now: Reference time (defaults to the current UTC time)

    Returns:
        ActivityState.ACTIVE, INACTIVE or NEVER_LOGGED_ON
    """
    if last_activity is None:
        return ActivityState.NEVER_LOGGED_ON

    now = now or datetime.now(timezone.utc)
    if last_activity.tzinfo is None:
        last_activity = last_activity.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    if now - last_activity > timedelta(days=inactive_days):
        return ActivityState.INACTIVE
    return ActivityState.ACTIVE


def days_since(last_activity: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    """Whole days elapsed since last_activity, None if never."""
    if last_activity is None:
        return None
    now = now or datetime.now(timezone.utc)
    if last_activity.tzinfo is None:
        last_activity = last_activity.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return max((now - last_activity).days, 0)
