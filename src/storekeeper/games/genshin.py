"""
Genshin Impact — daily note (resin, realm currency, transformer, expeditions).
"""

import logging
from datetime import timedelta

from storekeeper.core.game_id import GameId
from storekeeper.core.resource import (
    CooldownResource,
    ExpeditionResource,
    StaminaResource,
    instant_after,
    resource_document,
    utcnow,
)
from storekeeper.games.hoyolab import HoyolabGameClient

logger = logging.getLogger(__name__)

DAILY_NOTE_URL = "https://sg-public-api.hoyolab.com/event/game_record/genshin/api/dailyNote"

RESIN_REGEN_SECONDS = 480
REALM_REGEN_SECONDS = 120


class GenshinClient(HoyolabGameClient):
    game_id = GameId.GENSHIN_IMPACT

    def fetch_daily_note(self) -> dict:
        logger.debug(f"Fetching Genshin daily note (uid={self.uid}, region={self.region.value})")
        url = f"{DAILY_NOTE_URL}?server={self.region.genshin_region()}&role_id={self.uid}"
        return self.hoyolab.get(url)

    def fetch_resources(self) -> list[dict]:
        logger.info("Fetching Genshin Impact resources")
        note = self.fetch_daily_note()
        now = utcnow()
        resources = []

        if self.is_tracked("resin"):
            resin = StaminaResource(
                current=int(note["current_resin"]),
                max=int(note["max_resin"]),
                full_at=instant_after(note.get("resin_recovery_time"), now),
                regen_rate_seconds=RESIN_REGEN_SECONDS,
            )
            resources.append(resource_document("resin", resin))

        if self.is_tracked("realm_currency"):
            realm = StaminaResource(
                current=int(note.get("current_home_coin", 0)),
                max=int(note.get("max_home_coin", 0)) or 1,
                full_at=instant_after(note.get("home_coin_recovery_time"), now),
                regen_rate_seconds=REALM_REGEN_SECONDS,
            )
            resources.append(resource_document("realm_currency", realm))

        transformer = note.get("transformer") or {}
        if self.is_tracked("parametric_transformer") and transformer.get("obtained"):
            ready_at = _transformer_ready_at(transformer.get("recovery_time") or {}, now)
            resources.append(resource_document(
                "parametric_transformer", CooldownResource.from_ready_at(ready_at, now)))

        if self.is_tracked("expeditions"):
            finish_times = [instant_after(e.get("remained_time"), now)
                            for e in note.get("expeditions", [])]
            expeditions = ExpeditionResource(
                current_expeditions=int(note.get("current_expedition_num", 0)),
                max_expeditions=int(note.get("max_expedition_num", 0)),
                earliest_finish_at=min(finish_times) if finish_times else now,
            )
            resources.append(resource_document("expeditions", expeditions))

        logger.info(f"Genshin: resin {note.get('current_resin')}/{note.get('max_resin')}, "
                    f"realm {note.get('current_home_coin')}, "
                    f"expeditions {note.get('current_expedition_num')}")
        return resources


def _transformer_ready_at(recovery: dict, now):
    if recovery.get("reached"):
        return now
    total = timedelta(
        days=int(recovery.get("Day", 0)),
        hours=int(recovery.get("Hour", 0)),
        minutes=int(recovery.get("Minute", 0)),
        seconds=int(recovery.get("Second", 0)),
    )
    return now + total
