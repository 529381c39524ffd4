"""
polling.py — Periodic resource refresh.

The Poller does one refresh shortly after startup and then one every
``general.poll_interval_secs``. Manual refreshes (dashboard button, tray
menu) go through refresh_now(); both paths share the state's refresh
flag, so at most one full refresh is ever in flight. A periodic tick that
finds the flag taken is skipped silently; a manual one is rejected with
RefreshInProgress.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional

from storekeeper.config import INITIAL_POLL_DELAY
from storekeeper.core.errors import StorekeeperError
from storekeeper.core.game_id import GameId
from storekeeper.core.resource import utcnow
from storekeeper.events import AppEvent, EventBus, game_resource_payload
from storekeeper.state import AllResources, AppState
from storekeeper.tasks import BackgroundWorker, sleep_or_cancel

logger = logging.getLogger(__name__)


class RefreshInProgress(StorekeeperError):
    def __init__(self):
        super().__init__("Refresh already in progress")


class Poller(BackgroundWorker):
    """Background refresh loop plus the manual refresh entry points."""

    name = "Resource poller"

    def __init__(self, state: AppState, events: EventBus,
                 cancel: Optional[asyncio.Event] = None,
                 after_refresh: Optional[Callable[[], Awaitable[Any]]] = None,
                 initial_delay: float = INITIAL_POLL_DELAY):
        super().__init__(cancel)
        self.state = state
        self.events = events
        self.after_refresh = after_refresh
        self.initial_delay = initial_delay

    async def _poll_interval(self) -> float:
        config = await self.state.get_config()
        return float(config.general.poll_interval_secs)

    async def run(self):
        if await sleep_or_cancel(self.cancel, self.initial_delay):
            return
        while True:
            await self.try_refresh()
            if await sleep_or_cancel(self.cancel, await self._poll_interval()):
                return

    # ── Refresh paths ───────────────────────────────────────

    async def try_refresh(self) -> bool:
        """Periodic refresh. Returns False when skipped."""
        if not await self.state.has_clients():
            logger.debug("No game clients configured; skipping poll")
            await self.state.set_resources({})
            return False
        if not self.state.try_begin_refresh():
            logger.debug("Refresh already in progress; skipping poll")
            return False
        try:
            result = await self._fetch_and_store()
        finally:
            self.state.end_refresh()
        await self.events.emit(AppEvent.RESOURCES_UPDATED, result.to_dict())
        await self._run_after_refresh()
        return True

    async def refresh_now(self) -> AllResources:
        """Manual refresh. Raises RefreshInProgress if one is already running."""
        if not self.state.try_begin_refresh():
            raise RefreshInProgress()
        try:
            if not await self.state.has_clients():
                logger.info("Manual refresh requested with no game clients configured")
                return AllResources(games={}, last_updated=utcnow())
            await self.events.emit(AppEvent.REFRESH_STARTED)
            result = await self._fetch_and_store()
        finally:
            self.state.end_refresh()
        await self.events.emit(AppEvent.RESOURCES_UPDATED, result.to_dict())
        await self._run_after_refresh()
        return result

    async def refresh_games(self, game_ids: Iterable[GameId]) -> AllResources:
        """Fetch a subset of games and merge them into the caches."""
        game_ids = list(game_ids)
        if not game_ids:
            return await self.state.snapshot_resources()
        logger.info(f"Refreshing {', '.join(g.display_name() for g in game_ids)}")

        registry = await self.state.get_registry()
        fetched = await registry.fetch_all(on_fetched=self._emit_game_update,
                                           game_filter=game_ids)
        result = await self.state.merge_resources(fetched)

        daily_registry = await self.state.get_daily_registry()
        reward_games = [g for g in game_ids if daily_registry.has_game(g)]
        if reward_games:
            statuses = await daily_registry.get_all_status(game_filter=reward_games)
            await self.state.merge_daily_reward_status(statuses)

        await self.events.emit(AppEvent.RESOURCES_UPDATED, result.to_dict())
        await self._run_after_refresh()
        return result

    # ── Internals ───────────────────────────────────────────

    async def _emit_game_update(self, game_id: GameId, data: Any):
        await self.events.emit(AppEvent.GAME_RESOURCE_UPDATED, game_resource_payload(game_id, data))

    async def _fetch_and_store(self) -> AllResources:
        registry = await self.state.get_registry()
        fetched = await registry.fetch_all(on_fetched=self._emit_game_update)
        result = await self.state.set_resources(fetched)
        logger.info(f"Refreshed {len(fetched)}/{len(registry)} game(s)")
        return result

    async def _run_after_refresh(self):
        if self.after_refresh is None:
            return
        try:
            await self.after_refresh()
        except Exception as e:
            logger.warning(f"Post-refresh hook failed: {e}")
