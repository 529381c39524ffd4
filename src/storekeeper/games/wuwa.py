"""
Wuthering Waves — role data (waveplates) via the Kuro launcher API.
"""

import logging
import time

from storekeeper.core.game_id import GameId
from storekeeper.core.resource import StaminaResource, resource_document
from storekeeper.games.kuro import KuroClient

logger = logging.getLogger(__name__)

WAVEPLATE_REGEN_SECONDS = 360


class WuwaClient:
    game_id = GameId.WUTHERING_WAVES

    def __init__(self, kuro: KuroClient, player_id: str, region, tracked_resources=None):
        self.kuro = kuro
        self.player_id = player_id
        self.region = region
        self.tracked_resources = list(tracked_resources) if tracked_resources is not None else None

    def fetch_resources(self) -> list[dict]:
        logger.info("Fetching Wuthering Waves resources")
        role = self.kuro.query_role(self.player_id, self.region.wuwa_region())
        base = role["Base"]

        # EnergyRecoverTime is an absolute unix timestamp in milliseconds
        now_ms = int(time.time() * 1000)
        recover_ms = int(base.get("EnergyRecoverTime", 0))
        seconds_until_full = (recover_ms - now_ms) // 1000 if recover_ms > now_ms else None

        waveplates = StaminaResource.from_seconds_until_full(
            current=int(base["Energy"]),
            max_value=int(base["MaxEnergy"]),
            seconds_until_full=seconds_until_full,
            regen_rate_seconds=WAVEPLATE_REGEN_SECONDS,
        )
        logger.debug(f"WuWa: waveplates {waveplates.current}/{waveplates.max}")
        if self.tracked_resources is not None and "waveplates" not in self.tracked_resources:
            return []
        return [resource_document("waveplates", waveplates)]

    def is_authenticated(self) -> bool:
        return self.kuro.check_auth(self.player_id, self.region.wuwa_region())
