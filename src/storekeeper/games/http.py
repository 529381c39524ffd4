"""
Shared HTTP plumbing for the vendor clients: session setup and mapping
transport/HTTP failures onto the storekeeper error taxonomy.
"""

import logging

import requests

from storekeeper.config import HTTP_TIMEOUT, USER_AGENT
from storekeeper.core.errors import ApiError, NetworkError

logger = logging.getLogger(__name__)

BODY_PREVIEW_CHARS = 300


def build_session(headers: dict = None) -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT})
    if headers:
        session.headers.update(headers)
    return session


def send(session: requests.Session, method: str, url: str, vendor: str,
         **kwargs) -> requests.Response:
    """Send a request and raise NetworkError / ApiError for failures.

    Timeouts, connection problems and 5xx responses become NetworkError
    (retryable); any other non-2xx becomes ApiError with a body preview.
    """
    kwargs.setdefault("timeout", HTTP_TIMEOUT)
    try:
        resp = session.request(method, url, **kwargs)
    except requests.Timeout as e:
        raise NetworkError(f"{vendor} request timeout: {e}") from e
    except requests.ConnectionError as e:
        raise NetworkError(f"{vendor} connection error: {e}") from e
    except requests.RequestException as e:
        raise NetworkError(f"{vendor} network error: {e}") from e

    logger.debug(f"{vendor} {method} {url} -> HTTP {resp.status_code}")
    if resp.ok:
        return resp

    preview = resp.text[:BODY_PREVIEW_CHARS].strip()
    message = f"HTTP {resp.status_code} from {vendor} API: {preview}"
    logger.warning(message)
    if resp.status_code >= 500:
        raise NetworkError(message)
    raise ApiError(resp.status_code, message)


def parse_json(resp: requests.Response, vendor: str) -> dict:
    try:
        return resp.json()
    except ValueError as e:
        raise ApiError(resp.status_code, f"Invalid JSON from {vendor}: {e}") from e
