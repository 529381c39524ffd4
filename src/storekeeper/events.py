"""
events.py — Backend → UI event names and the in-process event bus.

Listeners are coroutines ``fn(event, payload)``; the dashboard server
subscribes its WebSocket broadcaster, the tray subscribes for toasts.
"""

import logging
from enum import Enum
from typing import Any, Callable, Coroutine

from storekeeper.core.game_id import GameId

logger = logging.getLogger(__name__)

Listener = Callable[["AppEvent", Any], Coroutine]


class AppEvent(str, Enum):
    RESOURCES_UPDATED = "resources-updated"
    REFRESH_STARTED = "refresh-started"
    GAME_RESOURCE_UPDATED = "game-resource-updated"
    DAILY_REWARD_CLAIMED = "daily-reward-claimed"

    def as_str(self) -> str:
        return self.value


def game_resource_payload(game_id: GameId, data: Any) -> dict:
    return {"gameId": game_id.as_str(), "data": data}


class EventBus:
    """Fan-out of AppEvents to every subscribed listener."""

    def __init__(self):
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener):
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def emit(self, event: AppEvent, payload: Any = None):
        logger.debug(f"Emitting {event.as_str()}")
        for listener in list(self._listeners):
            try:
                await listener(event, payload)
            except Exception as e:
                logger.warning(f"Event listener failed for {event.as_str()}: {e}")
