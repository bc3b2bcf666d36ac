"""Grace window checks shared by media files and torrents."""

from datetime import datetime, timedelta, timezone
from typing import Optional, Union

Hours = Union[int, float]


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes so aware and naive values compare."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def within_grace(reference: Optional[datetime], now: datetime, grace_hours: Hours) -> bool:
    """
    Decide whether something is too new to judge.

    Args:
        reference: Modification time of a file or completion time of a
            torrent. ``None`` means "not finished yet".
        now: Current time.
        grace_hours: Length of the grace window. Zero or less disables it.

    Returns:
        True when the entity should be left out of this run.
    """
    if grace_hours <= 0:
        return False

    if reference is None:
        return True

    elapsed = as_utc(now) - as_utc(reference)
    if elapsed < timedelta(0):
        # Reference is in the future: clock skew between us and the source.
        return True

    return elapsed < timedelta(hours=grace_hours)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp as returned by the *arr APIs."""
    if not value:
        return None
    try:
        return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return None
