"""
clients.py — Builds the client registries from config + secrets.

Policy:
- only enabled games are registered
- region comes from config, else is derived from the UID; games whose
  region cannot be determined are skipped with a warning
- missing HoYoLab cookies skip all three HoYoLab games
- Wuthering Waves uses the secrets.toml OAuth override, else the code in
  the Kuro launcher cache
- the daily-reward registry holds only enabled HoYoLab games
"""

import logging
from pathlib import Path
from typing import Optional

from storekeeper.core.errors import ConfigInvalid, UnknownUidRegion
from storekeeper.core.game_id import ApiProvider, GameId
from storekeeper.core.region import Region
from storekeeper.games.genshin import GenshinClient
from storekeeper.games.hoyolab import DAILY_REWARD_ENDPOINTS, HoyolabClient, HoyolabDailyRewardClient
from storekeeper.games.hsr import HsrClient
from storekeeper.games.kuro import KuroClient, load_oauth_from_cache
from storekeeper.games.wuwa import WuwaClient
from storekeeper.games.zzz import ZzzClient
from storekeeper.registry import (
    DailyRewardRegistry,
    GameClientRegistry,
    ThreadedDailyRewardClient,
    ThreadedGameClient,
)
from storekeeper.settings import AppConfig, SecretsConfig

logger = logging.getLogger(__name__)

_HOYOLAB_GAME_CLIENTS = {
    GameId.GENSHIN_IMPACT: GenshinClient,
    GameId.HONKAI_STAR_RAIL: HsrClient,
    GameId.ZENLESS_ZONE_ZERO: ZzzClient,
}


def resolve_region(game_id: GameId, game_config) -> Optional[Region]:
    if game_config.region is not None:
        return game_config.region
    try:
        return Region.detect(game_id, game_config.account_id())
    except UnknownUidRegion as e:
        logger.warning(f"Skipping {game_id.display_name()}: {e}")
        return None


def resolve_kuro_oauth(secrets: SecretsConfig, cache_path: Optional[Path] = None) -> Optional[str]:
    if secrets.kuro.oauth_code:
        return secrets.kuro.oauth_code
    try:
        return load_oauth_from_cache(cache_path)
    except ConfigInvalid as e:
        logger.warning(f"Could not read Kuro launcher cache: {e}")
        return None


def _hoyolab_games(config: AppConfig) -> list[GameId]:
    return [g for g in config.enabled_games() if g.api_provider() == ApiProvider.HOYOLAB]


def create_registry(config: AppConfig, secrets: SecretsConfig,
                    kuro_cache_path: Optional[Path] = None) -> GameClientRegistry:
    registry = GameClientRegistry()

    hoyolab_games = _hoyolab_games(config)
    if hoyolab_games and not secrets.hoyolab.is_configured():
        logger.warning("HoYoLab credentials missing in secrets.toml; "
                       "skipping Genshin Impact, Honkai: Star Rail and Zenless Zone Zero")
    elif hoyolab_games:
        hoyolab = HoyolabClient(secrets.hoyolab.ltuid_v2, secrets.hoyolab.ltoken_v2)
        for game_id in hoyolab_games:
            cfg = config.game_config(game_id)
            region = resolve_region(game_id, cfg)
            if region is None:
                continue
            client = _HOYOLAB_GAME_CLIENTS[game_id](hoyolab, cfg.uid, region, cfg.tracked_resources)
            registry.register(ThreadedGameClient(client))
            logger.info(f"Registered {game_id.display_name()} (uid={cfg.uid}, region={region.value})")

    if config.is_game_enabled(GameId.WUTHERING_WAVES):
        cfg = config.game_config(GameId.WUTHERING_WAVES)
        oauth_code = resolve_kuro_oauth(secrets, kuro_cache_path)
        region = resolve_region(GameId.WUTHERING_WAVES, cfg)
        if not oauth_code:
            logger.warning("No Kuro OAuth code (secrets.toml or launcher cache); "
                           "skipping Wuthering Waves")
        elif region is not None:
            client = WuwaClient(KuroClient(oauth_code), cfg.player_id, region, cfg.tracked_resources)
            registry.register(ThreadedGameClient(client))
            logger.info(f"Registered Wuthering Waves (player_id={cfg.player_id}, "
                        f"region={region.value})")

    logger.info(f"Client registry built with {len(registry)} game(s)")
    return registry


def create_daily_reward_registry(config: AppConfig, secrets: SecretsConfig) -> DailyRewardRegistry:
    registry = DailyRewardRegistry()
    hoyolab_games = _hoyolab_games(config)
    if not hoyolab_games or not secrets.hoyolab.is_configured():
        return registry

    hoyolab = HoyolabClient(secrets.hoyolab.ltuid_v2, secrets.hoyolab.ltoken_v2)
    for game_id in hoyolab_games:
        registry.register(ThreadedDailyRewardClient(
            HoyolabDailyRewardClient(hoyolab, DAILY_REWARD_ENDPOINTS[game_id])))
    logger.info(f"Daily reward registry built with {len(registry)} game(s)")
    return registry
