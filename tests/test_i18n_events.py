"""Tests for i18n.py and events.py."""

import asyncio

import pytest

from storekeeper import i18n
from storekeeper.core.game_id import GameId
from storekeeper.events import AppEvent, EventBus, game_resource_payload


# ── i18n ─────────────────────────────────────────────────

@pytest.mark.parametrize("requested,resolved", [
    ("en", "en"),
    ("en_US", "en"),
    ("en-GB.UTF-8", "en"),
    ("zh-CN", "zh-CN"),
    ("zh_CN", "zh-CN"),
    ("zh-TW", "zh-CN"),
    ("fr-FR", "en"),
])
def test_resolve_locale(requested, resolved):
    assert i18n.resolve_locale(requested) == resolved


def test_resolve_locale_uses_system_when_unset(monkeypatch):
    monkeypatch.setattr(i18n, "system_locale", lambda: "zh_CN")
    assert i18n.resolve_locale(None) == "zh-CN"


def test_set_locale_switches_catalogue():
    assert i18n.set_locale("zh-CN") == "zh-CN"
    assert i18n.get_current_locale() == "zh-CN"
    assert i18n.t("tray.quit") == "退出"
    i18n.set_locale("en")
    assert i18n.t("tray.quit") == "Quit"


def test_missing_key_returns_key():
    assert i18n.t("no.such.key") == "no.such.key"


def test_t_args_keeps_unknown_placeholders():
    assert i18n.t_args("notification.resource_full_in", resource_name="Resin") == \
        "Resin will be full in {minutes} minutes"


def test_duration_localized():
    i18n.set_locale("zh-CN")
    assert i18n.format_duration(90) == "1小时30分钟"


def test_locale_catalogues_have_same_keys():
    en = i18n._load_catalogue("en")
    zh = i18n._load_catalogue("zh-CN")
    assert set(en) == set(zh)


# ── Event bus ────────────────────────────────────────────

def test_event_names():
    assert [e.as_str() for e in AppEvent] == [
        "resources-updated", "refresh-started", "game-resource-updated", "daily-reward-claimed"]


def test_game_resource_payload():
    assert game_resource_payload(GameId.ZENLESS_ZONE_ZERO, [1]) == {
        "gameId": "zenless_zone_zero", "data": [1]}


class TestEventBus:
    def test_failing_listener_does_not_block_others(self):
        bus = EventBus()
        received = []

        async def broken(event, payload):
            raise RuntimeError("socket closed")

        async def good(event, payload):
            received.append((event, payload))

        bus.subscribe(broken)
        bus.subscribe(good)
        asyncio.run(bus.emit(AppEvent.REFRESH_STARTED))
        assert received == [(AppEvent.REFRESH_STARTED, None)]

    def test_unsubscribe(self):
        bus = EventBus()
        received = []

        async def listener(event, payload):
            received.append(event)

        bus.subscribe(listener)
        bus.unsubscribe(listener)
        bus.unsubscribe(listener)
        asyncio.run(bus.emit(AppEvent.RESOURCES_UPDATED, {}))
        assert received == []
