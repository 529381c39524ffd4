"""
tracker.py — Per-(game, resource) notification cooldown state.

should_notify() is a two-step test:

1. Window membership. The resource is "in window" when
   - notify_at_value is set and the value is (projected to be) reached, or
   - notify_minutes_before_full is set and time-to-full <= that many minutes, or
   - neither is set and the resource is complete.
   notify_at_value wins when both are set.

2. Cooldown gate. Leaving the window clears the record, so re-entering
   always notifies again. Inside the window a record blocks repeats for
   cooldown_minutes; cooldown 0 blocks them for the whole stay.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from storekeeper.core.game_id import GameId
from storekeeper.core.resource import ResourceInfo
from storekeeper.settings import ResourceNotificationConfig

logger = logging.getLogger(__name__)


def value_threshold_minutes(max_value: int, threshold: int, regen_rate_seconds: int) -> int:
    """Minutes before full at which the value crosses ``threshold``."""
    return max(0, max_value - threshold) * regen_rate_seconds // 60


def is_in_notify_window(config: ResourceNotificationConfig, info: ResourceInfo,
                        now: datetime) -> bool:
    time_to_full = info.completion_at - now

    if config.notify_at_value is not None:
        threshold = config.notify_at_value
        if info.max is not None and info.regen_rate_seconds:
            effective = value_threshold_minutes(info.max, threshold, info.regen_rate_seconds)
            return info.is_complete or time_to_full <= timedelta(minutes=effective)
        return info.is_complete or (info.current is not None and info.current >= threshold)

    if config.notify_minutes_before_full is not None:
        return info.is_complete or time_to_full <= timedelta(minutes=config.notify_minutes_before_full)

    return info.is_complete


class NotificationTracker:
    """Last-notified instant per (game, resource tag)."""

    def __init__(self):
        self._last_notified: dict[tuple[GameId, str], datetime] = {}

    def should_notify(self, game_id: GameId, resource_type: str,
                      config: ResourceNotificationConfig, info: ResourceInfo,
                      now: datetime) -> bool:
        key = (game_id, resource_type)
        if not is_in_notify_window(config, info, now):
            self.clear(game_id, resource_type)
            return False

        last = self._last_notified.get(key)
        if last is None:
            return True
        if config.cooldown_minutes == 0:
            return False
        return now - last >= timedelta(minutes=config.cooldown_minutes)

    def record(self, game_id: GameId, resource_type: str, now: datetime):
        self._last_notified[(game_id, resource_type)] = now

    def last_notified(self, game_id: GameId, resource_type: str) -> Optional[datetime]:
        return self._last_notified.get((game_id, resource_type))

    def clear(self, game_id: GameId, resource_type: str):
        if self._last_notified.pop((game_id, resource_type), None) is not None:
            logger.debug(f"Notification state cleared for {game_id.as_str()}/{resource_type}")

    def clear_for_game(self, game_id: GameId):
        for key in [k for k in self._last_notified if k[0] == game_id]:
            del self._last_notified[key]

    def clear_all(self):
        self._last_notified.clear()

    def __len__(self) -> int:
        return len(self._last_notified)
