"""
registry.py — Type-erased client registries keyed by GameId.

The vendor clients are blocking (requests). The async tasks only ever see
the two capability interfaces below; ThreadedGameClient /
ThreadedDailyRewardClient adapt a blocking vendor client by running each
call in the default thread-pool executor.

Registries are built once by clients.py and swapped wholesale into AppState
on reconfigure; nothing mutates a registry that has been published.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional

from storekeeper.config import CLAIM_SPACING
from storekeeper.core.errors import StorekeeperError
from storekeeper.core.game_id import GameId
from storekeeper.provider_batch import run_provider_batched

logger = logging.getLogger(__name__)

OnFetched = Callable[[GameId, Any], Awaitable[None]]


# ─────────────────────────────────────────────
# Capability interfaces
# ─────────────────────────────────────────────

class GameClient:
    """Uniform per-game resource interface."""

    game_id: GameId

    async def fetch_resources(self) -> Any:
        raise NotImplementedError

    async def is_authenticated(self) -> bool:
        raise NotImplementedError


class DailyRewardClient:
    """Daily check-in capability; only some games have one."""

    game_id: GameId

    async def get_reward_status(self) -> dict:
        raise NotImplementedError

    async def claim_reward(self) -> dict:
        raise NotImplementedError


class ThreadedGameClient(GameClient):
    def __init__(self, vendor_client):
        self._client = vendor_client
        self.game_id = vendor_client.game_id

    async def fetch_resources(self) -> Any:
        return await asyncio.get_running_loop().run_in_executor(None, self._client.fetch_resources)

    async def is_authenticated(self) -> bool:
        return await asyncio.get_running_loop().run_in_executor(None, self._client.is_authenticated)


class ThreadedDailyRewardClient(DailyRewardClient):
    def __init__(self, vendor_client):
        self._client = vendor_client
        self.game_id = vendor_client.game_id

    async def get_reward_status(self) -> dict:
        return await asyncio.get_running_loop().run_in_executor(None, self._client.get_reward_status)

    async def claim_reward(self) -> dict:
        return await asyncio.get_running_loop().run_in_executor(None, self._client.claim_daily_reward)


# ─────────────────────────────────────────────
# Registries
# ─────────────────────────────────────────────

class _Registry:
    def __init__(self):
        self._clients: dict = {}

    def register(self, client):
        """Add ``client`` under its game_id, replacing any previous handle."""
        if client.game_id in self._clients:
            logger.debug(f"Replacing client for {client.game_id.display_name()}")
        self._clients[client.game_id] = client

    def get(self, game_id: GameId):
        return self._clients.get(game_id)

    def has_game(self, game_id: GameId) -> bool:
        return game_id in self._clients

    def game_ids(self) -> list[GameId]:
        return list(self._clients)

    def clients(self) -> dict:
        return dict(self._clients)

    def is_empty(self) -> bool:
        return not self._clients

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, game_id) -> bool:
        return game_id in self._clients


class GameClientRegistry(_Registry):
    async def fetch_all(self, on_fetched: Optional[OnFetched] = None,
                        game_filter: Optional[Iterable[GameId]] = None) -> dict[GameId, Any]:
        """Fetch resources for every (or every filtered) game, provider-batched."""

        async def _fetch(game_id: GameId, client: GameClient):
            logger.info(f"Fetching resources for {game_id.display_name()}")
            data = await client.fetch_resources()
            if on_fetched is not None:
                await on_fetched(game_id, data)
            return data

        return await run_provider_batched(self._clients, _fetch, game_filter,
                                          label="Resource fetch")

    async def fetch_game(self, game_id: GameId) -> Any:
        client = self._clients.get(game_id)
        if client is None:
            raise StorekeeperError(f"No client registered for {game_id.display_name()}")
        return await client.fetch_resources()

    async def check_auth_all(self) -> dict[GameId, bool]:
        async def _check(game_id: GameId, client: GameClient):
            return await client.is_authenticated()

        return await run_provider_batched(self._clients, _check, label="Auth check")


class DailyRewardRegistry(_Registry):
    def _require(self, game_id: GameId) -> DailyRewardClient:
        client = self._clients.get(game_id)
        if client is None:
            raise StorekeeperError(
                f"No daily reward client registered for {game_id.display_name()}")
        return client

    async def get_status_for_game(self, game_id: GameId) -> dict:
        return await self._require(game_id).get_reward_status()

    async def claim_for_game(self, game_id: GameId) -> dict:
        return await self._require(game_id).claim_reward()

    async def get_all_status(self, game_filter: Optional[Iterable[GameId]] = None
                             ) -> dict[GameId, dict]:
        async def _status(game_id: GameId, client: DailyRewardClient):
            return await client.get_reward_status()

        return await run_provider_batched(self._clients, _status, game_filter,
                                          label="Daily reward status")

    async def claim_all(self, spacing: float = CLAIM_SPACING) -> dict[GameId, dict]:
        async def _claim(game_id: GameId, client: DailyRewardClient):
            try:
                return await client.claim_reward()
            finally:
                await asyncio.sleep(spacing)

        return await run_provider_batched(self._clients, _claim, label="Daily reward claim")
