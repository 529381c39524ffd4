"""
commands.py — Operations the UI can invoke.

The dashboard server and tray menu call these; they raise
StorekeeperError subclasses on failure, which the server turns into
CommandError responses.
"""

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

from storekeeper import i18n
from storekeeper.autostart import set_autostart
from storekeeper.clients import create_daily_reward_registry, create_registry
from storekeeper.config import CONFIG_FILE, SECRETS_FILE
from storekeeper.config_diff import ConfigDiff, compute
from storekeeper.core.game_id import GameId
from storekeeper.events import AppEvent, EventBus
from storekeeper.polling import Poller
from storekeeper.scheduled_claim import ClaimScheduler
from storekeeper.settings import AppConfig, SecretsConfig
from storekeeper.state import AppState

logger = logging.getLogger(__name__)


class Commands:
    def __init__(self, state: AppState, events: EventBus, poller: Poller,
                 scheduler: Optional[ClaimScheduler] = None,
                 autostart_fn: Callable[[bool], bool] = set_autostart,
                 on_locale_changed: Optional[Callable[[str], None]] = None,
                 config_path: Path = CONFIG_FILE,
                 secrets_path: Path = SECRETS_FILE,
                 kuro_cache_path: Optional[Path] = None):
        self.state = state
        self.events = events
        self.poller = poller
        self.scheduler = scheduler
        self.autostart_fn = autostart_fn
        self.on_locale_changed = on_locale_changed
        self.config_path = config_path
        self.secrets_path = secrets_path
        self.kuro_cache_path = kuro_cache_path
        self._save_lock = asyncio.Lock()

    # ── Resources ───────────────────────────────────────────

    async def get_resources(self) -> dict:
        return (await self.state.snapshot_resources()).to_dict()

    async def refresh_now(self) -> dict:
        return (await self.poller.refresh_now()).to_dict()

    # ── Config ──────────────────────────────────────────────

    async def get_config(self) -> dict:
        return (await self.state.get_config()).model_dump(mode="json")

    async def save_and_apply(self, new_config: AppConfig,
                             new_secrets: Optional[SecretsConfig] = None) -> ConfigDiff:
        """Persist new settings, then apply only the side effects they require."""
        async with self._save_lock:
            old_config = await self.state.get_config()
            old_secrets = await self.state.get_secrets()
            secrets_changed = new_secrets is not None and new_secrets != old_secrets
            new_secrets = new_secrets or old_secrets

            new_config.save(self.config_path)
            if secrets_changed:
                new_secrets.save(self.secrets_path)

            diff = compute(old_config, new_config, old_secrets, new_secrets)
            logger.info(f"Config saved; rebuild={diff.needs_registry_rebuild} "
                        f"refresh={sorted(g.as_str() for g in diff.games_to_refresh)} "
                        f"reset={sorted(g.as_str() for g in diff.games_to_reset_notifications)}")
            await self.apply_diff(diff, new_config, new_secrets)
            return diff

    async def apply_diff(self, diff: ConfigDiff, config: AppConfig, secrets: SecretsConfig):
        registry = daily_registry = None
        if diff.needs_registry_rebuild:
            registry = create_registry(config, secrets, self.kuro_cache_path)
            daily_registry = create_daily_reward_registry(config, secrets)
        await self.state.apply_config(config, secrets, registry, daily_registry)
        if registry is not None:
            await self.state.retain_games(registry.game_ids())

        if diff.games_to_reset_notifications:
            await self.state.reset_notifications(diff.games_to_reset_notifications)

        if diff.games_to_refresh:
            games = [g for g in GameId.all() if g in diff.games_to_refresh]
            try:
                await self.poller.refresh_games(games)
            except Exception as e:
                logger.warning(f"Refresh after config change failed: {e}")

        if diff.autostart_changed:
            self.autostart_fn(config.general.autostart)

        if diff.locale_changed:
            locale_tag = i18n.set_locale(config.general.language)
            if self.on_locale_changed is not None:
                self.on_locale_changed(locale_tag)

        if self.scheduler is not None:
            self.scheduler.reschedule()

    # ── Daily rewards ───────────────────────────────────────

    async def get_daily_reward_status(self, game_id: GameId) -> dict:
        registry = await self.state.get_daily_registry()
        status = await registry.get_status_for_game(game_id)
        await self.state.merge_daily_reward_status({game_id: status})
        return status

    async def get_all_daily_reward_status(self) -> dict:
        registry = await self.state.get_daily_registry()
        await self.state.set_daily_reward_status(await registry.get_all_status())
        return (await self.state.snapshot_daily_reward_status()).to_dict()

    async def claim_daily_reward(self, game_id: GameId) -> dict:
        registry = await self.state.get_daily_registry()
        result = await registry.claim_for_game(game_id)
        status = await registry.get_status_for_game(game_id)
        await self.state.merge_daily_reward_status({game_id: status})
        await self.events.emit(AppEvent.DAILY_REWARD_CLAIMED, {game_id.as_str(): status})
        return result

    async def claim_all(self) -> dict:
        registry = await self.state.get_daily_registry()
        results = await registry.claim_all()
        if results:
            statuses = await registry.get_all_status()
            await self.state.set_daily_reward_status(statuses)
            await self.events.emit(AppEvent.DAILY_REWARD_CLAIMED,
                                   {g.as_str(): statuses.get(g, {}) for g in results})
        return {g.as_str(): result for g, result in results.items()}
