"""
Honkai: Star Rail — real-time note (trailblaze power).
"""

import logging

from storekeeper.core.game_id import GameId
from storekeeper.core.resource import StaminaResource, instant_after, resource_document, utcnow
from storekeeper.games.hoyolab import HoyolabGameClient

logger = logging.getLogger(__name__)

NOTE_URL = "https://bbs-api-os.hoyolab.com/game_record/hkrpg/api/note"

POWER_REGEN_SECONDS = 360


class HsrClient(HoyolabGameClient):
    game_id = GameId.HONKAI_STAR_RAIL

    def fetch_resources(self) -> list[dict]:
        logger.info("Fetching Honkai: Star Rail resources")
        url = f"{NOTE_URL}?server={self.region.hsr_region()}&role_id={self.uid}"
        note = self.hoyolab.get(url)

        power = StaminaResource(
            current=int(note["current_stamina"]),
            max=int(note["max_stamina"]),
            full_at=instant_after(note.get("stamina_recover_time"), utcnow()),
            regen_rate_seconds=POWER_REGEN_SECONDS,
        )
        logger.info(f"HSR: trailblaze power {power.current}/{power.max}")
        if not self.is_tracked("trailblaze_power"):
            return []
        return [resource_document("trailblaze_power", power)]
