"""
service.py — Wires state, workers and commands into one runnable unit.

The dashboard server owns one StorekeeperService for its lifetime: the
lifespan hook calls start() on the server's event loop and stop() on
shutdown. The tray talks to it from pystray's thread through submit().
"""

import asyncio
import logging
from concurrent.futures import Future
from pathlib import Path
from typing import Coroutine, Optional

from storekeeper.clients import create_daily_reward_registry, create_registry
from storekeeper.commands import Commands
from storekeeper.config import CONFIG_FILE, SECRETS_FILE
from storekeeper.events import EventBus
from storekeeper.notifications.checker import NotificationChecker, NotifySink
from storekeeper.polling import Poller
from storekeeper.scheduled_claim import ClaimScheduler
from storekeeper.settings import AppConfig, SecretsConfig
from storekeeper.state import AppState

logger = logging.getLogger(__name__)


def _log_sink(title: str, body: str):
    logger.info(f"[Notification] {title}: {body}")


class StorekeeperService:
    def __init__(self, state: AppState, notify: Optional[NotifySink] = None,
                 config_path: Path = CONFIG_FILE, secrets_path: Path = SECRETS_FILE,
                 kuro_cache_path: Optional[Path] = None):
        self.state = state
        self.events = EventBus()
        self.cancel = asyncio.Event()
        self.notifier = NotificationChecker(state, notify or _log_sink, self.cancel)
        self.poller = Poller(state, self.events, self.cancel,
                             after_refresh=self.notifier.check_now)
        self.scheduler = ClaimScheduler(state, self.events, self.cancel)
        self.commands = Commands(state, self.events, self.poller, self.scheduler,
                                 config_path=config_path, secrets_path=secrets_path,
                                 kuro_cache_path=kuro_cache_path)
        self.loop: Optional[asyncio.AbstractEventLoop] = None

    @classmethod
    def from_config(cls, config: AppConfig, secrets: SecretsConfig,
                    notify: Optional[NotifySink] = None,
                    kuro_cache_path: Optional[Path] = None, **kwargs) -> "StorekeeperService":
        state = AppState(
            config=config,
            secrets=secrets,
            registry=create_registry(config, secrets, kuro_cache_path),
            daily_registry=create_daily_reward_registry(config, secrets),
        )
        return cls(state, notify=notify, kuro_cache_path=kuro_cache_path, **kwargs)

    @classmethod
    def from_disk(cls, notify: Optional[NotifySink] = None,
                  config_path: Path = CONFIG_FILE,
                  secrets_path: Path = SECRETS_FILE) -> "StorekeeperService":
        config = AppConfig.load_or_default(config_path)
        secrets = SecretsConfig.load_or_default(secrets_path)
        return cls.from_config(config, secrets, notify,
                               config_path=config_path, secrets_path=secrets_path)

    def start(self, loop: asyncio.AbstractEventLoop):
        self.loop = loop
        self.poller.start(loop)
        self.notifier.start(loop)
        self.scheduler.start(loop)

    def stop(self):
        self.cancel.set()
        self.poller.stop()
        self.notifier.stop()
        self.scheduler.stop()

    def submit(self, coro: Coroutine) -> Optional[Future]:
        """Schedule ``coro`` on the service loop from another thread."""
        if self.loop is None or self.loop.is_closed():
            coro.close()
            logger.warning("Service loop not running; request dropped")
            return None
        return asyncio.run_coroutine_threadsafe(coro, self.loop)
