"""
HoYoLab client — shared session for Genshin Impact, Honkai: Star Rail and
Zenless Zone Zero, plus the config-driven daily check-in client.

Auth is the ltuid_v2 / ltoken_v2 cookie pair from the HoYoLab website; every
request also carries a DS ("dynamic secret") header.

Pipeline:
1. GET/POST with Cookie + DS + x-rpc-* headers
2. Non-2xx → ApiError (or NetworkError for 5xx)
3. Envelope {retcode, message, data}: retcode != 0 → ApiError,
   retcode -100 → AuthExpired
"""

import hashlib
import logging
import random
import string
import time
from dataclasses import dataclass
from typing import Any, Optional

from storekeeper.core.errors import ApiError, AuthExpired
from storekeeper.core.game_id import GameId
from storekeeper.games.http import build_session, parse_json, send

logger = logging.getLogger(__name__)

VENDOR = "HoYoLab"
HOYOLAB_AUTH_CHECK_URL = "https://bbs-api-os.hoyolab.com/community/user/wapi/getUserFullInfo"
AUTH_EXPIRED_RETCODE = -100

DS_SALT_OVERSEAS = "6s25p5ox5y14umn1p61aqyyvbvvl3lrt"

_BASE_HEADERS = {
    "x-rpc-app_version": "1.5.0",
    "x-rpc-client_type": "5",
    "x-rpc-language": "en-us",
}


def generate_ds(timestamp: Optional[int] = None, nonce: Optional[str] = None) -> str:
    """DS header for overseas endpoints: "{t},{r},{md5(salt=..&t=..&r=..)}"."""
    t = int(time.time()) if timestamp is None else timestamp
    r = nonce or "".join(random.choices(string.ascii_lowercase, k=6))
    digest = hashlib.md5(f"salt={DS_SALT_OVERSEAS}&t={t}&r={r}".encode()).hexdigest()
    return f"{t},{r},{digest}"


class HoyolabClient:
    """Authenticated HoYoLab session.

    Usage:
        client = HoyolabClient(ltuid_v2, ltoken_v2)
        note = client.get("https://.../dailyNote?server=os_usa&role_id=...")
    """

    def __init__(self, ltuid: str, ltoken: str, auth_check_url: str = HOYOLAB_AUTH_CHECK_URL):
        self._session = build_session(_BASE_HEADERS)
        self._cookie = f"ltuid_v2={ltuid}; ltoken_v2={ltoken}"
        self.auth_check_url = auth_check_url

    def request(self, method: str, url: str, body: Optional[dict] = None,
                headers: Optional[dict] = None) -> Any:
        req_headers = {"Cookie": self._cookie, "DS": generate_ds()}
        if headers:
            req_headers.update(headers)

        resp = send(self._session, method, url, VENDOR, headers=req_headers, json=body)
        payload = parse_json(resp, VENDOR)

        retcode = payload.get("retcode", -1)
        message = payload.get("message", "")
        if retcode != 0:
            logger.warning(f"HoYoLab API error response: retcode={retcode} "
                           f"message={message!r} url={url}")
            if retcode == AUTH_EXPIRED_RETCODE:
                raise AuthExpired(retcode, message)
            raise ApiError(retcode, message)

        data = payload.get("data")
        if data is None:
            raise ApiError(retcode, "Response data is null")
        return data

    def get(self, url: str, headers: Optional[dict] = None) -> Any:
        return self.request("GET", url, headers=headers)

    def post(self, url: str, body: Optional[dict] = None, headers: Optional[dict] = None) -> Any:
        return self.request("POST", url, body=body, headers=headers)

    def check_auth(self) -> bool:
        """False when HoYoLab says "not logged in"; other failures propagate."""
        try:
            self.get(self.auth_check_url)
        except AuthExpired:
            return False
        return True


# ─────────────────────────────────────────────
# Daily check-in
# ─────────────────────────────────────────────

@dataclass(frozen=True)
class DailyRewardEndpoint:
    game_id: GameId
    reward_url: str
    act_id: str
    sign_game: str


GENSHIN_DAILY_REWARD = DailyRewardEndpoint(
    game_id=GameId.GENSHIN_IMPACT,
    reward_url="https://sg-hk4e-api.hoyolab.com/event/sol",
    act_id="e202102251931481",
    sign_game="hk4e",
)

HSR_DAILY_REWARD = DailyRewardEndpoint(
    game_id=GameId.HONKAI_STAR_RAIL,
    reward_url="https://sg-public-api.hoyolab.com/event/luna/hkrpg/os",
    act_id="e202303301540311",
    sign_game="hkrpg",
)

ZZZ_DAILY_REWARD = DailyRewardEndpoint(
    game_id=GameId.ZENLESS_ZONE_ZERO,
    reward_url="https://sg-public-api.hoyolab.com/event/luna/zzz/os",
    act_id="e202406031448091",
    sign_game="zzz",
)

DAILY_REWARD_ENDPOINTS = {
    e.game_id: e for e in (GENSHIN_DAILY_REWARD, HSR_DAILY_REWARD, ZZZ_DAILY_REWARD)
}


class HoyolabDailyRewardClient:
    """Check-in status and claiming for one HoYoLab game."""

    def __init__(self, client: HoyolabClient, endpoint: DailyRewardEndpoint):
        self._client = client
        self._endpoint = endpoint

    @property
    def game_id(self) -> GameId:
        return self._endpoint.game_id

    def _url(self, action: str) -> str:
        e = self._endpoint
        return f"{e.reward_url}/{action}?act_id={e.act_id}&lang=en-us"

    def _headers(self) -> dict:
        return {"x-rpc-signgame": self._endpoint.sign_game, "Referer": "https://act.hoyolab.com/"}

    def get_reward_info(self) -> dict:
        logger.debug(f"Fetching daily reward info for {self.game_id.display_name()}")
        data = self._client.get(self._url("info"), headers=self._headers())
        return {
            "is_signed": bool(data.get("is_sign", False)),
            "total_sign_day": int(data.get("total_sign_day", 0)),
        }

    def get_monthly_rewards(self) -> list[dict]:
        data = self._client.get(self._url("home"), headers=self._headers())
        return [
            {
                "name": item.get("name", ""),
                "count": int(item.get("cnt", item.get("count", 0))),
                "icon": item.get("icon", ""),
            }
            for item in data.get("awards", [])
        ]

    def get_reward_status(self) -> dict:
        info = self.get_reward_info()
        rewards = self.get_monthly_rewards()
        # After signing, total_sign_day already counts today
        index = info["total_sign_day"] - 1 if info["is_signed"] else info["total_sign_day"]
        today = rewards[index] if 0 <= index < len(rewards) else None
        return {"info": info, "today_reward": today, "monthly_rewards": rewards}

    def claim_daily_reward(self) -> dict:
        game = self.game_id.display_name()
        logger.info(f"Claiming daily reward for {game}")

        if self.get_reward_info()["is_signed"]:
            logger.debug(f"{game}: daily reward already claimed")
            status = self.get_reward_status()
            return _claim_result(True, True, status)

        self._client.post(self._url("sign"), headers=self._headers())
        status = self.get_reward_status()
        reward = status["today_reward"]
        logger.info(f"{game}: claimed {reward['name'] if reward else 'unknown reward'}")
        if reward is None:
            return _claim_result(False, False, status,
                                 "Claim succeeded but reward details unavailable")
        return _claim_result(True, False, status)


def _claim_result(success: bool, already_claimed: bool, status: dict,
                  message: Optional[str] = None) -> dict:
    return {
        "success": success,
        "already_claimed": already_claimed,
        "reward": status["today_reward"],
        "info": status["info"],
        "message": message,
    }


class HoyolabGameClient:
    """Base for the per-game HoYoLab clients (one account, one region)."""

    game_id: GameId

    def __init__(self, hoyolab: HoyolabClient, uid: str, region, tracked_resources=None):
        self.hoyolab = hoyolab
        self.uid = uid
        self.region = region
        self.tracked_resources = list(tracked_resources) if tracked_resources is not None else None

    def is_tracked(self, tag: str) -> bool:
        return self.tracked_resources is None or tag in self.tracked_resources

    def is_authenticated(self) -> bool:
        return self.hoyolab.check_auth()

    def fetch_resources(self) -> list[dict]:
        raise NotImplementedError
