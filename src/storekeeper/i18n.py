"""
i18n — process-wide message store.

The only global state in the app. init() loads a locale once at startup;
set_locale() swaps the active catalogue when the user changes language.
Lookups fall back to English, then to the key itself so missing
translations are visible rather than silent.
"""

import json
import locale as _locale
import logging
import threading
from typing import Optional

from storekeeper.bundle_paths import get_resource
from storekeeper.config import DEFAULT_LOCALE, SUPPORTED_LOCALES

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_current_locale: Optional[str] = None
_messages: dict[str, str] = {}
_fallback: dict[str, str] = {}


class _KeepMissing(dict):
    def __missing__(self, key):
        return "{" + key + "}"


def _load_catalogue(locale_tag: str) -> dict[str, str]:
    path = get_resource(f"locales/{locale_tag}.json")
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def supported_locales() -> tuple[str, ...]:
    return SUPPORTED_LOCALES


def system_locale() -> Optional[str]:
    try:
        tag, _ = _locale.getlocale()
    except ValueError:
        return None
    return tag


def resolve_locale(requested: Optional[str]) -> str:
    """Map a config/system locale tag onto a supported catalogue."""
    if not requested:
        requested = system_locale() or DEFAULT_LOCALE
    tag = requested.replace("_", "-").split(".")[0]
    for supported in SUPPORTED_LOCALES:
        if tag.lower() == supported.lower():
            return supported
    language = tag.split("-")[0].lower()
    for supported in SUPPORTED_LOCALES:
        if supported.split("-")[0].lower() == language:
            return supported
    return DEFAULT_LOCALE


def init(locale_tag: Optional[str] = None) -> str:
    """Load the catalogue for ``locale_tag`` (or the system locale). Returns the active tag."""
    return set_locale(locale_tag)


def set_locale(locale_tag: Optional[str]) -> str:
    global _current_locale, _messages, _fallback
    resolved = resolve_locale(locale_tag)
    fallback = _fallback or _load_catalogue(DEFAULT_LOCALE)
    messages = fallback if resolved == DEFAULT_LOCALE else _load_catalogue(resolved)
    with _lock:
        _fallback = fallback
        _messages = messages
        _current_locale = resolved
    logger.info(f"Locale set to {resolved}")
    return resolved


def get_current_locale() -> str:
    with _lock:
        return _current_locale or DEFAULT_LOCALE


def _ensure_loaded():
    if _current_locale is None:
        init(DEFAULT_LOCALE)


def t(key: str) -> str:
    """Look up ``key``; returns the key itself when no catalogue has it."""
    _ensure_loaded()
    with _lock:
        messages, fallback = _messages, _fallback
    return messages.get(key) or fallback.get(key) or key


def t_args(key: str, **args) -> str:
    """Look up ``key`` and substitute ``{name}`` placeholders."""
    return t(key).format_map(_KeepMissing({k: str(v) for k, v in args.items()}))


def format_duration(minutes: int) -> str:
    minutes = max(0, int(minutes))
    hours, mins = divmod(minutes, 60)
    if hours:
        return t_args("duration.hours_minutes", hours=hours, minutes=mins)
    return t_args("duration.minutes", minutes=mins)
