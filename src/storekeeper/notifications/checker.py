"""
checker.py — Periodic notification pass over the cached resources.

Runs every minute on its own and once after each refresh. The decision
and the record for every resource in a pass happen under one write
acquisition of the state lock, so two passes can never both decide to
notify for the same resource.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from storekeeper.config import NOTIFICATION_CHECK_INTERVAL
from storekeeper.core.resource import extract_resource_info, utcnow
from storekeeper.notifications.messages import (
    build_notification_body,
    build_notification_title,
    resource_display_name,
)
from storekeeper.tasks import BackgroundWorker, sleep_or_cancel

logger = logging.getLogger(__name__)

# (title, body) -> None; raises on delivery failure
NotifySink = Callable[[str, str], None]


async def check_and_notify(state, sink: NotifySink, now: Optional[datetime] = None) -> int:
    """One notification pass. Returns the number of notifications sent."""
    now = now or utcnow()
    games, configs = await state.notification_snapshot()
    sent = 0

    async with state.lock.write():
        for game_id, documents in games.items():
            notif_configs = configs.get(game_id) or {}
            if not notif_configs or not isinstance(documents, list):
                continue
            for doc in documents:
                if not isinstance(doc, dict):
                    continue
                resource_type = doc.get("type")
                cfg = notif_configs.get(resource_type)
                if cfg is None or not cfg.enabled:
                    continue
                info = extract_resource_info(doc.get("data"), now)
                if info is None:
                    continue
                if not state.tracker.should_notify(game_id, resource_type, cfg, info, now):
                    continue

                title = build_notification_title(game_id, resource_type)
                body = build_notification_body(
                    resource_display_name(game_id, resource_type), info, now, cfg)
                try:
                    sink(title, body)
                except Exception as e:
                    logger.warning(f"Notification for {game_id.display_name()}/"
                                   f"{resource_type} not delivered: {e}")
                    continue
                state.tracker.record(game_id, resource_type, now)
                sent += 1
                logger.info(f"Notified: {title} | {body}")

    return sent


class NotificationChecker(BackgroundWorker):
    """Every NOTIFICATION_CHECK_INTERVAL seconds, run one notification pass."""

    name = "Notification checker"

    def __init__(self, state, sink: NotifySink, cancel: Optional[asyncio.Event] = None,
                 interval: float = NOTIFICATION_CHECK_INTERVAL):
        super().__init__(cancel)
        self.state = state
        self.sink = sink
        self.interval = interval

    async def check_now(self) -> int:
        try:
            return await check_and_notify(self.state, self.sink)
        except Exception as e:
            logger.error(f"Notification check failed: {e}", exc_info=True)
            return 0

    async def run(self):
        while not await sleep_or_cancel(self.cancel, self.interval):
            await self.check_now()
