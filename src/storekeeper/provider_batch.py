"""
provider_batch.py — Rate-limit aware fan-out over game clients.

Games sharing an API provider run one after another so a vendor never sees
parallel requests from us; different providers run concurrently. Used for
both resource polling and daily-reward calls.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional, TypeVar

from storekeeper.core.game_id import ApiProvider, GameId

logger = logging.getLogger(__name__)

C = TypeVar("C")


def group_by_provider(clients: Mapping[GameId, C],
                      game_filter: Optional[Iterable[GameId]] = None
                      ) -> dict[ApiProvider, list[tuple[GameId, C]]]:
    allowed = set(game_filter) if game_filter is not None else None
    groups: dict[ApiProvider, list[tuple[GameId, C]]] = {}
    for game_id, client in clients.items():
        if allowed is not None and game_id not in allowed:
            continue
        groups.setdefault(game_id.api_provider(), []).append((game_id, client))
    return groups


async def run_provider_batched(clients: Mapping[GameId, C],
                               operation: Callable[[GameId, C], Awaitable[Any]],
                               game_filter: Optional[Iterable[GameId]] = None,
                               label: str = "Operation") -> dict[GameId, Any]:
    """Run ``operation`` for each client; returns successes only.

    Failures are logged and left out of the result map. Any per-step side
    effects (events, delays) belong in ``operation``.
    """
    groups = group_by_provider(clients, game_filter)

    async def _run_group(provider: ApiProvider, members: list[tuple[GameId, C]]) -> dict:
        results = {}
        for game_id, client in members:
            try:
                results[game_id] = await operation(game_id, client)
            except Exception as e:
                logger.warning(f"{label} failed for {game_id.display_name()} "
                               f"({provider.value}): {e}")
        return results

    merged: dict[GameId, Any] = {}
    for group_results in await asyncio.gather(
            *(_run_group(provider, members) for provider, members in groups.items())):
        merged.update(group_results)
    return merged
