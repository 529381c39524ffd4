"""
ClaimTime — daily auto-claim time of day.

Users write claim times as "HH:MM" in UTC+8 (the games' daily reset zone);
internally the time is kept in UTC so next_claim_datetime_utc() can pin it
to today's UTC date. 00:00 UTC+8 is 16:00 UTC of the previous day.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from storekeeper.core.errors import ConfigParseFailed

UTC8_OFFSET = timedelta(hours=8)


def _shift(t: time, delta: timedelta) -> time:
    anchor = datetime.combine(date(2000, 1, 2), t) + delta
    return anchor.time()


@dataclass(frozen=True)
class ClaimTime:
    utc_time: time

    @classmethod
    def from_utc8_str(cls, time_str: str) -> "ClaimTime":
        """Parse strict "HH:MM" (UTC+8)."""
        if len(time_str) != 5:
            raise ConfigParseFailed(
                f"Invalid claim_time format: '{time_str}'. Expected HH:MM (e.g., '00:10')"
            )
        if time_str[2] != ":" or not (time_str[:2].isdigit() and time_str[3:].isdigit()):
            raise ConfigParseFailed(
                f"Invalid claim_time format: '{time_str}'. Expected HH:MM with colon separator"
            )
        try:
            parsed = datetime.strptime(time_str, "%H:%M").time()
        except ValueError as e:
            raise ConfigParseFailed(f"Invalid claim_time '{time_str}': {e}") from e
        return cls(_shift(parsed, -UTC8_OFFSET))

    @classmethod
    def default_utc8_midnight(cls) -> "ClaimTime":
        return cls(time(16, 0))

    def to_utc8_string(self) -> str:
        return _shift(self.utc_time, UTC8_OFFSET).strftime("%H:%M")

    def __str__(self) -> str:
        return self.to_utc8_string()


def next_claim_datetime_utc(claim_time: Optional[ClaimTime],
                            now: Optional[datetime] = None) -> datetime:
    """Next UTC instant the claim should fire: today at claim time, or tomorrow if past."""
    claim_time = claim_time or ClaimTime.default_utc8_midnight()
    now = now or datetime.now(timezone.utc)
    today_claim = datetime.combine(now.date(), claim_time.utc_time, tzinfo=timezone.utc)
    if now >= today_claim:
        return today_claim + timedelta(days=1)
    return today_claim
