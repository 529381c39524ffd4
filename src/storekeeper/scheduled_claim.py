"""
scheduled_claim.py — Automatic daily check-in claims.

On startup every auto-claim game is claimed once (a no-op if already
signed today). After that the scheduler sleeps until the earliest
configured claim time across games, claims every game due at that
instant, and repeats. Config changes wake the sleep via reschedule() so a
new claim time takes effect without a restart.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from storekeeper.config import CLAIM_SPACING, IDLE_CLAIM_SLEEP
from storekeeper.core.claim_time import next_claim_datetime_utc
from storekeeper.core.game_id import GameId
from storekeeper.core.resource import utcnow
from storekeeper.events import AppEvent, EventBus
from storekeeper.retry import RetryConfig, retry_with_backoff
from storekeeper.settings import AppConfig
from storekeeper.state import AppState
from storekeeper.tasks import BackgroundWorker, sleep_or_cancel

logger = logging.getLogger(__name__)


def auto_claim_games(config: AppConfig) -> list[GameId]:
    return [g for g in GameId.all() if config.auto_claim_enabled(g)]


def calculate_next_claim(config: AppConfig, now: Optional[datetime] = None
                         ) -> Optional[tuple[datetime, list[GameId]]]:
    """Earliest upcoming claim instant and every game due at exactly that instant."""
    now = now or utcnow()
    schedule: dict[datetime, list[GameId]] = {}
    for game_id in auto_claim_games(config):
        when = next_claim_datetime_utc(config.auto_claim_time(game_id), now)
        schedule.setdefault(when, []).append(game_id)
    if not schedule:
        return None
    earliest = min(schedule)
    return earliest, schedule[earliest]


class ClaimScheduler(BackgroundWorker):
    name = "Daily reward scheduler"

    def __init__(self, state: AppState, events: EventBus,
                 cancel: Optional[asyncio.Event] = None,
                 retry_config: Optional[RetryConfig] = None,
                 spacing: float = CLAIM_SPACING,
                 idle_sleep: float = IDLE_CLAIM_SLEEP):
        super().__init__(cancel)
        self.state = state
        self.events = events
        self.retry_config = retry_config or RetryConfig()
        self.spacing = spacing
        self.idle_sleep = idle_sleep
        self._wake = asyncio.Event()

    def reschedule(self):
        """Recompute the next claim instant (called after config changes)."""
        self._wake.set()

    async def run(self):
        await self.run_startup_claims()
        while not self.cancel.is_set():
            config = await self.state.get_config()
            now = utcnow()
            upcoming = calculate_next_claim(config, now)
            if upcoming is None:
                if await sleep_or_cancel(self.cancel, self.idle_sleep, self._wake):
                    return
                continue

            when, games = upcoming
            delay = (when - now).total_seconds()
            names = ", ".join(g.display_name() for g in games)
            logger.info(f"Next daily reward claim at {when.isoformat()} for {names} "
                        f"(in {delay / 3600:.1f}h)")
            if await sleep_or_cancel(self.cancel, delay, self._wake):
                return
            if utcnow() < when:
                # Woken early by a config change
                continue
            await self.claim_games_and_emit(games)

    async def run_startup_claims(self) -> dict[GameId, dict]:
        config = await self.state.get_config()
        games = auto_claim_games(config)
        if not games:
            return {}
        logger.info(f"Startup daily reward check for {len(games)} game(s)")
        return await self.claim_games_and_emit(games)

    async def should_auto_claim_game(self, game_id: GameId) -> bool:
        async with self.state.lock.read():
            return (self.state.config.auto_claim_enabled(game_id)
                    and self.state.daily_registry.has_game(game_id))

    async def claim_with_status_check(self, game_id: GameId) -> bool:
        """Claim unless already signed today. True if a claim was made."""
        registry = await self.state.get_daily_registry()
        name = game_id.display_name()

        status = await retry_with_backoff(
            lambda: registry.get_status_for_game(game_id),
            f"{name} reward status", self.retry_config)
        if (status.get("info") or {}).get("is_signed"):
            logger.info(f"{name}: daily reward already claimed today")
            return False

        result = await retry_with_backoff(
            lambda: registry.claim_for_game(game_id),
            f"{name} reward claim", self.retry_config)
        reward = result.get("reward") or {}
        logger.info(f"{name}: claimed daily reward "
                    f"{reward.get('name', '?')} x{reward.get('count', '?')}")
        return True

    async def claim_games_and_emit(self, games: list[GameId]) -> dict[GameId, dict]:
        """Claim each game in turn; emit daily-reward-claimed if anything was claimed."""
        results: dict[GameId, dict] = {}
        for index, game_id in enumerate(games):
            if index:
                await asyncio.sleep(self.spacing)
            if not await self.should_auto_claim_game(game_id):
                logger.debug(f"Auto-claim no longer enabled for {game_id.display_name()}")
                continue
            try:
                claimed = await self.claim_with_status_check(game_id)
            except Exception as e:
                logger.error(f"Daily reward claim failed for {game_id.display_name()}: {e}")
                continue
            if not claimed:
                continue
            registry = await self.state.get_daily_registry()
            try:
                results[game_id] = await registry.get_status_for_game(game_id)
            except Exception as e:
                logger.warning(f"Post-claim status fetch failed for {game_id.display_name()}: {e}")
                results[game_id] = {}

        if results:
            registry = await self.state.get_daily_registry()
            await self.state.set_daily_reward_status(await registry.get_all_status())
            await self.events.emit(AppEvent.DAILY_REWARD_CLAIMED,
                                   {g.as_str(): status for g, status in results.items()})
        return results
