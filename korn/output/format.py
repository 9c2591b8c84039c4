from __future__ import annotations

from datetime import UTC, datetime


def human_duration(seconds: float) -> str:
    """Compact duration in the style of kubectl's AGE column."""
    s = int(seconds)
    if s < 0:
        return "<invalid>"
    if s < 120:
        return f"{s}s"
    minutes = s // 60
    if minutes < 10:
        rem = s % 60
        return f"{minutes}m{rem}s" if rem else f"{minutes}m"
    if minutes < 180:
        return f"{minutes}m"
    hours = minutes // 60
    if hours < 8:
        rem = minutes % 60
        return f"{hours}h{rem}m" if rem else f"{hours}h"
    if hours < 48:
        return f"{hours}h"
    days = hours // 24
    if days < 8:
        rem = hours % 24
        return f"{days}d{rem}h" if rem else f"{days}d"
    if days < 365 * 2:
        return f"{days}d"
    return f"{days // 365}y"


def age(created: datetime | None, now: datetime | None = None) -> str:
    if created is None:
        return "<unknown>"
    current = now or datetime.now(UTC)
    return human_duration((current - created).total_seconds())
