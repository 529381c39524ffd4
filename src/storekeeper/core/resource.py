"""
Resource model — the three shapes a tracked resource can take.

Each game client returns a list of resource documents:

    {"type": "resin", "data": {"current": 120, "max": 200,
                               "full_at": "2025-01-01T12:00:00+00:00",
                               "regen_rate_seconds": 480}}

The orchestration layer never looks at the game-specific tag beyond using it
as a key; timing is recovered from ``data`` by extract_resource_info(), which
identifies the shape by which fields are present:

    regen_rate_seconds  → stamina
    is_ready            → cooldown
    earliest_finish_at  → expedition

Anything else is skipped so new vendor fields never break notifications.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

logger = logging.getLogger(__name__)

# Cooldown is_ready and ready_at may disagree by this much (clock skew)
READY_SLACK = timedelta(seconds=5)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_instant(value) -> Optional[datetime]:
    """Parse an ISO-8601 string (or pass through a datetime) as aware UTC."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_instant(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat()


def instant_after(seconds, now: Optional[datetime] = None) -> datetime:
    """``now`` plus a vendor countdown, which may arrive as int or numeric string."""
    now = now or utcnow()
    try:
        secs = max(0, int(seconds))
    except (TypeError, ValueError):
        secs = 0
    return now + timedelta(seconds=secs)


@dataclass
class StaminaResource:
    """Regenerating resource: ``current`` ticks up by one every ``regen_rate_seconds``."""

    current: int
    max: int
    full_at: datetime
    regen_rate_seconds: int

    @classmethod
    def from_seconds_until_full(cls, current: int, max_value: int,
                                seconds_until_full: Optional[int],
                                regen_rate_seconds: int,
                                now: Optional[datetime] = None) -> "StaminaResource":
        """Build from the "seconds until full" countdown most vendor APIs return.

        A missing or zero countdown means the resource is already full.
        """
        now = now or utcnow()
        if current >= max_value or not seconds_until_full:
            full_at = now
        else:
            full_at = now + timedelta(seconds=seconds_until_full)
        return cls(current, max_value, full_at, regen_rate_seconds)

    def is_full(self) -> bool:
        return self.current >= self.max

    def is_complete(self, now: Optional[datetime] = None) -> bool:
        return self.is_full() or self.full_at <= (now or utcnow())

    def completion_at(self) -> datetime:
        return self.full_at

    def estimated_current(self, at: datetime) -> int:
        return estimate_stamina(self.max, self.full_at, self.regen_rate_seconds, at,
                                is_complete=self.is_full())

    def to_dict(self) -> dict:
        return {
            "current": self.current,
            "max": self.max,
            "full_at": format_instant(self.full_at),
            "regen_rate_seconds": self.regen_rate_seconds,
        }


@dataclass
class CooldownResource:
    """Single-use item on a timer (e.g. Parametric Transformer)."""

    is_ready: bool
    ready_at: datetime

    @classmethod
    def from_ready_at(cls, ready_at: datetime, now: Optional[datetime] = None) -> "CooldownResource":
        now = now or utcnow()
        return cls(is_ready=ready_at <= now + READY_SLACK, ready_at=ready_at)

    def is_complete(self, now: Optional[datetime] = None) -> bool:
        return self.is_ready

    def completion_at(self) -> datetime:
        return self.ready_at

    def to_dict(self) -> dict:
        return {"is_ready": self.is_ready, "ready_at": format_instant(self.ready_at)}


@dataclass
class ExpeditionResource:
    current_expeditions: int
    max_expeditions: int
    earliest_finish_at: datetime

    def is_complete(self, now: Optional[datetime] = None) -> bool:
        return self.earliest_finish_at <= (now or utcnow())

    def completion_at(self) -> datetime:
        return self.earliest_finish_at

    def to_dict(self) -> dict:
        return {
            "current_expeditions": self.current_expeditions,
            "max_expeditions": self.max_expeditions,
            "earliest_finish_at": format_instant(self.earliest_finish_at),
        }


def resource_document(tag: str, resource) -> dict:
    """Wrap a typed resource in the {"type", "data"} document the cache stores."""
    return {"type": tag, "data": resource.to_dict()}


def estimate_stamina(max_value: int, full_at: datetime, regen_rate_seconds: int,
                     at: datetime, is_complete: bool = False) -> int:
    """Projected stamina at instant ``at``.

    Partial progress toward the next unit has not ticked yet, so missing
    units are rounded up.
    """
    if is_complete or at >= full_at or regen_rate_seconds <= 0:
        return max_value
    remaining = (full_at - at).total_seconds()
    missing = math.ceil(remaining / regen_rate_seconds)
    return max(0, max_value - missing)


# ─────────────────────────────────────────────
# Typed summary for notification decisions
# ─────────────────────────────────────────────

@dataclass
class ResourceInfo:
    completion_at: datetime
    is_complete: bool
    current: Optional[int] = None
    max: Optional[int] = None
    regen_rate_seconds: Optional[int] = None

    def minutes_until_complete(self, now: datetime) -> int:
        """Whole minutes until completion_at, negative once overdue."""
        return math.floor((self.completion_at - now).total_seconds() / 60)

    def overdue_minutes(self, now: datetime) -> int:
        return max(0, math.floor((now - self.completion_at).total_seconds() / 60))

    def estimated_current(self, now: datetime) -> Optional[int]:
        if self.max is None:
            return None
        if self.regen_rate_seconds is None:
            return self.current
        return estimate_stamina(self.max, self.completion_at, self.regen_rate_seconds,
                                now, is_complete=self.is_complete)


def _int_field(data: dict, key: str) -> Optional[int]:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def extract_resource_info(data, now: Optional[datetime] = None) -> Optional[ResourceInfo]:
    """Recover timing from an opaque resource ``data`` object, or None."""
    if not isinstance(data, dict):
        return None
    now = now or utcnow()

    if "regen_rate_seconds" in data:
        full_at = parse_instant(data.get("full_at"))
        current = _int_field(data, "current")
        max_value = _int_field(data, "max")
        rate = _int_field(data, "regen_rate_seconds")
        if full_at is None or current is None or max_value is None or rate is None:
            logger.debug(f"Malformed stamina resource skipped: {data}")
            return None
        return ResourceInfo(
            completion_at=full_at,
            is_complete=current >= max_value or full_at <= now,
            current=current,
            max=max_value,
            regen_rate_seconds=rate,
        )

    if "is_ready" in data:
        ready_at = parse_instant(data.get("ready_at"))
        if ready_at is None:
            return None
        return ResourceInfo(completion_at=ready_at, is_complete=bool(data["is_ready"]))

    if "earliest_finish_at" in data:
        finish_at = parse_instant(data.get("earliest_finish_at"))
        if finish_at is None:
            return None
        return ResourceInfo(completion_at=finish_at, is_complete=finish_at <= now)

    return None
