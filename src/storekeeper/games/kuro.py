"""
Kuro Games client — launcher SDK API used by Wuthering Waves.

Auth is the OAuth code the PC launcher stores (XOR-obfuscated) in its SDK
cache; users can override it in secrets.toml.

queryRole quirks:
- the endpoint expects a CORS preflight (OPTIONS) before every POST
- code 1005 means "try again"; we back off and retry a few times
- ``data`` maps region → JSON *string* that has to be parsed again
"""

import json
import logging
import time
from pathlib import Path
from typing import Any, Optional

from storekeeper.config import KURO_LAUNCHER_CACHE, KURO_RETRY_BASE_DELAY_MS, roaming_data_dir
from storekeeper.core.errors import ApiError, ConfigInvalid
from storekeeper.games.http import build_session, parse_json, send
from storekeeper.retry import RetryConfig

logger = logging.getLogger(__name__)

VENDOR = "Kuro"
KURO_API_BASE = "https://pc-launcher-sdk-api.kurogame.net"
WUWA_GAME_CODE = "2"

RETRY_REQUESTED_CODE = 1005
SUCCESS_CODES = (0, 200)

_BASE_HEADERS = {
    "Accept": "application/json, text/plain, */*",
    "Content-Type": "application/json",
    "Origin": "null",
}


class RetryRequested(ApiError):
    def __init__(self, message: str = "Kuro API requested retry"):
        super().__init__(RETRY_REQUESTED_CODE, message)


class KuroClient:
    def __init__(self, oauth_code: str, base_url: str = KURO_API_BASE,
                 retry_config: Optional[RetryConfig] = None):
        self._session = build_session(_BASE_HEADERS)
        self._oauth_code = oauth_code
        self.base_url = base_url.rstrip("/")
        self._retry = retry_config or RetryConfig(base_delay_ms=KURO_RETRY_BASE_DELAY_MS)

    def _send_preflight(self, url: str):
        logger.debug(f"Sending CORS preflight to {url}")
        send(self._session, "OPTIONS", url, VENDOR, headers={
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        })

    def _query_role_once(self, player_id: str, region: str) -> Any:
        url = f"{self.base_url}/game/queryRole?_t={int(time.time() * 1000)}"
        self._send_preflight(url)

        body = {
            "gameCode": WUWA_GAME_CODE,
            "accountId": "",
            "oauthCode": self._oauth_code,
            "playerId": player_id,
            "region": region,
        }
        logger.debug(f"Kuro queryRole player_id={player_id} region={region}")
        payload = parse_json(send(self._session, "POST", url, VENDOR, json=body), VENDOR)

        code = payload.get("code", -1)
        message = payload.get("message", payload.get("msg", ""))
        if code == RETRY_REQUESTED_CODE:
            logger.warning("Kuro API requested retry (code 1005)")
            raise RetryRequested()
        if code not in SUCCESS_CODES:
            logger.warning(f"Kuro API error response: code={code} message={message!r}")
            raise ApiError(code, message)

        data = payload.get("data")
        if data is None:
            raise ApiError(code, "Response data is null")
        region_data = data.get(region) if isinstance(data, dict) else None
        if not isinstance(region_data, str):
            raise ApiError(code, f"No data for region: {region}")
        try:
            return json.loads(region_data)
        except ValueError as e:
            raise ApiError(code, f"Failed to parse region data: {e}") from e

    def query_role(self, player_id: str, region: str) -> Any:
        """POST queryRole, backing off while Kuro answers code 1005."""
        attempt = 0
        while True:
            try:
                result = self._query_role_once(player_id, region)
                if attempt > 0:
                    logger.info(f"Kuro API request succeeded after {attempt} retries")
                return result
            except RetryRequested:
                if not self._retry.should_retry(attempt):
                    logger.error(f"Kuro API request failed after {attempt} retries (code 1005)")
                    raise
                delay = self._retry.delay_for_attempt(attempt)
                attempt += 1
                logger.info(f"Retrying Kuro API request ({attempt}/{self._retry.max_retries}) "
                            f"in {delay:.1f}s")
                time.sleep(delay)

    def check_auth(self, player_id: str, region: str) -> bool:
        try:
            self.query_role(player_id, region)
        except RetryRequested:
            raise
        except ApiError:
            return False
        return True


# ─────────────────────────────────────────────
# Launcher cache
# ─────────────────────────────────────────────

def decode_oauth_code(encoded: str) -> str:
    """The launcher XORs every character of the OAuth code with 5."""
    return "".join(chr(ord(c) ^ 5) for c in encoded)


def launcher_cache_path() -> Path:
    return roaming_data_dir() / KURO_LAUNCHER_CACHE


def load_oauth_from_cache(path: Optional[Path] = None) -> Optional[str]:
    """First non-empty OAuth code in the launcher cache, or None if absent."""
    path = path or launcher_cache_path()
    if not path.exists():
        logger.debug(f"Kuro SDK cache file not found at: {path}")
        return None

    try:
        entries = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigInvalid(f"Failed to read Kuro SDK cache file at {path}: {e}") from e
    except ValueError as e:
        raise ConfigInvalid(f"Failed to parse Kuro SDK cache file at {path}: {e}") from e
    if not isinstance(entries, list):
        raise ConfigInvalid(f"Failed to parse Kuro SDK cache file at {path}: expected a list")

    for entry in entries:
        encoded = entry.get("oauthCode") if isinstance(entry, dict) else None
        if encoded:
            logger.info("Loaded OAuth code from Kuro SDK cache")
            return decode_oauth_code(encoded)

    logger.debug("Kuro SDK cache file exists but contains no OAuth code")
    return None
