"""
Zenless Zone Zero — note (battery charge).
"""

import logging

from storekeeper.core.game_id import GameId
from storekeeper.core.resource import StaminaResource, resource_document
from storekeeper.games.hoyolab import HoyolabGameClient

logger = logging.getLogger(__name__)

NOTE_URL = "https://sg-public-api.hoyolab.com/event/game_record_zzz/api/zzz/note"

BATTERY_REGEN_SECONDS = 360


class ZzzClient(HoyolabGameClient):
    game_id = GameId.ZENLESS_ZONE_ZERO

    def fetch_resources(self) -> list[dict]:
        logger.info("Fetching Zenless Zone Zero resources")
        url = f"{NOTE_URL}?server={self.region.zzz_region()}&role_id={self.uid}"
        note = self.hoyolab.get(url)

        energy = note["energy"]
        battery = StaminaResource.from_seconds_until_full(
            current=int(energy["progress"]["current"]),
            max_value=int(energy["progress"]["max"]),
            seconds_until_full=int(energy.get("restore", 0)),
            regen_rate_seconds=BATTERY_REGEN_SECONDS,
        )
        logger.debug(f"ZZZ: battery {battery.current}/{battery.max}")
        if not self.is_tracked("battery"):
            return []
        return [resource_document("battery", battery)]
