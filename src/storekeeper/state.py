"""
state.py — Shared application state.

One AppState instance is shared by the background workers, the command
layer and the dashboard server. Everything mutable sits behind a single
async reader/writer lock; the "refresh in progress" flag is separate and
never waited on, only tested-and-set.
"""

import asyncio
import logging
import threading
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional

from storekeeper.core.game_id import GameId
from storekeeper.core.resource import format_instant, utcnow
from storekeeper.notifications.tracker import NotificationTracker
from storekeeper.registry import DailyRewardRegistry, GameClientRegistry
from storekeeper.settings import AppConfig, ResourceNotificationConfig, SecretsConfig

logger = logging.getLogger(__name__)


class RWLock:
    """Writer-preferring async reader/writer lock."""

    def __init__(self):
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @asynccontextmanager
    async def read(self):
        async with self._cond:
            await self._cond.wait_for(lambda: not self._writer and not self._writers_waiting)
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                self._cond.notify_all()

    @asynccontextmanager
    async def write(self):
        async with self._cond:
            self._writers_waiting += 1
            try:
                await self._cond.wait_for(lambda: not self._writer and self._readers == 0)
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            async with self._cond:
                self._writer = False
                self._cond.notify_all()


# ─────────────────────────────────────────────
# Cached snapshots
# ─────────────────────────────────────────────

@dataclass
class AllResources:
    games: dict[GameId, Any] = field(default_factory=dict)
    last_updated: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "games": {g.as_str(): data for g, data in self.games.items()},
            "lastUpdated": format_instant(self.last_updated) if self.last_updated else None,
        }


@dataclass
class AllDailyRewardStatus:
    games: dict[GameId, dict] = field(default_factory=dict)
    last_checked: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "games": {g.as_str(): status for g, status in self.games.items()},
            "lastChecked": format_instant(self.last_checked) if self.last_checked else None,
        }


class AppState:
    def __init__(self, config: Optional[AppConfig] = None,
                 secrets: Optional[SecretsConfig] = None,
                 registry: Optional[GameClientRegistry] = None,
                 daily_registry: Optional[DailyRewardRegistry] = None):
        self.lock = RWLock()
        self.config = config or AppConfig()
        self.secrets = secrets or SecretsConfig()
        self.registry = registry or GameClientRegistry()
        self.daily_registry = daily_registry or DailyRewardRegistry()
        self.resources = AllResources()
        self.daily_reward_status = AllDailyRewardStatus()
        self.tracker = NotificationTracker()
        self._refreshing = threading.Lock()

    # ── Refresh flag ────────────────────────────────────────

    def try_begin_refresh(self) -> bool:
        """Atomically claim the refresh flag. False if a refresh is already running."""
        return self._refreshing.acquire(blocking=False)

    def end_refresh(self):
        self._refreshing.release()

    @property
    def is_refreshing(self) -> bool:
        return self._refreshing.locked()

    # ── Readers ─────────────────────────────────────────────

    async def get_config(self) -> AppConfig:
        async with self.lock.read():
            return self.config

    async def get_secrets(self) -> SecretsConfig:
        async with self.lock.read():
            return self.secrets

    async def get_registry(self) -> GameClientRegistry:
        async with self.lock.read():
            return self.registry

    async def get_daily_registry(self) -> DailyRewardRegistry:
        async with self.lock.read():
            return self.daily_registry

    async def has_clients(self) -> bool:
        async with self.lock.read():
            return not self.registry.is_empty()

    async def snapshot_resources(self) -> AllResources:
        async with self.lock.read():
            return AllResources(dict(self.resources.games), self.resources.last_updated)

    async def snapshot_daily_reward_status(self) -> AllDailyRewardStatus:
        async with self.lock.read():
            return AllDailyRewardStatus(dict(self.daily_reward_status.games),
                                        self.daily_reward_status.last_checked)

    async def notification_snapshot(self) -> tuple[dict[GameId, Any],
                                                   dict[GameId, dict[str, ResourceNotificationConfig]]]:
        """Cached resources plus per-game notification settings, read together."""
        async with self.lock.read():
            games = dict(self.resources.games)
            configs = {g: self.config.notifications_for(g) for g in games}
        return games, configs

    # ── Writers ─────────────────────────────────────────────

    async def set_resources(self, games: dict[GameId, Any],
                            now: Optional[datetime] = None) -> AllResources:
        """Replace the resource cache wholesale."""
        async with self.lock.write():
            self.resources = AllResources(dict(games), now or utcnow())
            return AllResources(dict(self.resources.games), self.resources.last_updated)

    async def merge_resources(self, games: dict[GameId, Any],
                              now: Optional[datetime] = None) -> AllResources:
        async with self.lock.write():
            merged = dict(self.resources.games)
            merged.update(games)
            self.resources = AllResources(merged, now or utcnow())
            return AllResources(dict(merged), self.resources.last_updated)

    async def set_daily_reward_status(self, games: dict[GameId, dict],
                                      now: Optional[datetime] = None):
        async with self.lock.write():
            self.daily_reward_status = AllDailyRewardStatus(dict(games), now or utcnow())

    async def merge_daily_reward_status(self, games: dict[GameId, dict],
                                        now: Optional[datetime] = None):
        async with self.lock.write():
            merged = dict(self.daily_reward_status.games)
            merged.update(games)
            self.daily_reward_status = AllDailyRewardStatus(merged, now or utcnow())

    async def retain_games(self, game_ids: Iterable[GameId]):
        """Drop cached entries for games that are no longer configured."""
        keep = set(game_ids)
        async with self.lock.write():
            self.resources.games = {g: d for g, d in self.resources.games.items() if g in keep}
            self.daily_reward_status.games = {
                g: s for g, s in self.daily_reward_status.games.items() if g in keep}

    async def apply_config(self, config: AppConfig, secrets: SecretsConfig,
                           registry: Optional[GameClientRegistry] = None,
                           daily_registry: Optional[DailyRewardRegistry] = None):
        """Publish new config (and optionally freshly built registries)."""
        async with self.lock.write():
            self.config = config
            self.secrets = secrets
            if registry is not None:
                self.registry = registry
            if daily_registry is not None:
                self.daily_registry = daily_registry

    async def reset_notifications(self, game_ids: Iterable[GameId]):
        async with self.lock.write():
            for game_id in game_ids:
                self.tracker.clear_for_game(game_id)
