"""
QUOTA GATE
==========

Caps billable AI calls per chat surface. There is no time-based reset: the
counter only goes back to zero if its stored value is removed.
"""

from config import USAGE_LIMIT


def can_proceed(usage_count: int, limit: int = USAGE_LIMIT) -> bool:
    """True if one more billable call is allowed."""
    return usage_count < limit


def record_usage(usage_count: int, limit: int = USAGE_LIMIT) -> int:
    """Count one billable call; never goes past the limit."""
    return min(usage_count + 1, limit)


def remaining_uses(usage_count: int, limit: int = USAGE_LIMIT) -> int:
    return max(0, limit - usage_count)


def parse_usage(raw, limit: int = USAGE_LIMIT) -> int:
    """
    Turn a stored counter string into an int in [0, limit].
    None, junk and negative values read as 0.
    """
    if raw is None:
        return 0
    try:
        value = int(str(raw).strip())
    except ValueError:
        return 0
    return min(max(value, 0), limit)
