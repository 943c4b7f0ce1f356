"""Wall-clock ``HH:MM`` helpers shared by scheduling and the appointment lifecycle."""

import re

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


def _component(raw: str) -> int:
    match = re.match(r"\s*[+-]?\d+", raw)
    return int(match.group()) if match else 0


def to_minutes(hhmm: str | None) -> int:
    """Convert ``HH:MM`` into minutes after midnight.

    A missing or non-numeric component counts as 0; never raises. Format
    validation happens at the schema layer.
    """
    parts = str(hhmm or "").split(":")
    hours = _component(parts[0])
    minutes = _component(parts[1]) if len(parts) > 1 else 0
    return hours * 60 + minutes


def format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def intervals_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Half-open overlap test: touching intervals do not overlap."""
    return a_start < b_end and b_start < a_end
