"""
Human duration parsing for moderation commands.

Durations are written as one or more ``<integer><unit>`` tokens, e.g. ``30d``,
``1d12h`` or ``2w 3d``. Units are case-insensitive:

    y   year   (365 days)
    mo  month  (30 days)
    w   week
    d   day
    h   hour
    m   minute
    s   second

Months and years are fixed-length approximations, NOT calendar arithmetic:
``1mo`` from January 31st lands on March 2nd (or 1st in a leap year).

Parsing never fails. Text with no recognisable token parses to a zero-length
duration whose instant is "now", so callers issuing moderation actions must
check ``is_zero`` (or that the instant is in the future) before using it.
A span too large for the calendar (``10000y``) has no instant at all;
``is_usable`` rules out both cases.
Permanence is not part of the string grammar; build it with
``Duration.permanent()``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from reaper.util.logger import get_logger

logger = get_logger("duration")

# "mo" must be tried before "m"
DURATION_PATTERN = re.compile(r"(\d+)\s*(mo|y|w|d|h|m|s)", re.IGNORECASE)

UNIT_SECONDS = {
    "y": 365 * 24 * 60 * 60,
    "mo": 30 * 24 * 60 * 60,
    "w": 7 * 24 * 60 * 60,
    "d": 24 * 60 * 60,
    "h": 60 * 60,
    "m": 60,
    "s": 1,
}


@dataclass(frozen=True, slots=True)
class Duration:
    """A parsed duration, or the distinguished permanent duration.

    Attributes:
        seconds: Sum of every token converted to seconds
        is_permanent: True for a duration that never expires
        text: The normalised source text (empty for permanent)
    """
    seconds: int = 0
    is_permanent: bool = False
    text: str = ""

    @classmethod
    def parse(cls, text: str) -> "Duration":
        """Parse ``text`` into a duration, degrading to zero on malformed input."""
        normalised = (text or "").strip().lower()
        total = 0
        for match in DURATION_PATTERN.finditer(normalised):
            total += int(match.group(1)) * UNIT_SECONDS[match.group(2)]

        logger.debug("[DURATION] Parsed %r as %d seconds", text, total)
        return cls(seconds=total, text=normalised)

    @classmethod
    def permanent(cls) -> "Duration":
        return cls(is_permanent=True)

    @property
    def is_zero(self) -> bool:
        """True for a non-permanent duration that adds no time (likely a typo)."""
        return not self.is_permanent and self.seconds == 0

    def to_timedelta(self) -> Optional[timedelta]:
        """Return the length as a timedelta, or None when permanent or too large to represent."""
        if self.is_permanent:
            return None
        try:
            return timedelta(seconds=self.seconds)
        except OverflowError:
            return None

    def to_instant(self, now: Optional[datetime] = None) -> Optional[datetime]:
        """Return ``now + duration`` in UTC.

        None when permanent, and also when the sum lies past the last
        representable date; check ``is_permanent`` to tell the two apart.
        """
        delta = self.to_timedelta()
        if delta is None:
            return None
        now = now or datetime.now(timezone.utc)
        try:
            return now + delta
        except OverflowError:
            logger.warning("[DURATION] %r overflows the calendar", self.text)
            return None

    @property
    def is_usable(self) -> bool:
        """True when the duration is permanent or adds a representable, non-zero span."""
        if self.is_permanent:
            return True
        return not self.is_zero and self.to_instant() is not None

    def __str__(self) -> str:
        return "permanent" if self.is_permanent else self.text
