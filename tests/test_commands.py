"""Tests for commands.py — save-and-apply and the daily reward commands."""

import asyncio

import pytest

from conftest import FakeDailyClient, FakeGameClient, T0, make_config, make_daily_registry, make_registry
from storekeeper import i18n
from storekeeper.commands import Commands
from storekeeper.core.errors import StorekeeperError
from storekeeper.core.game_id import GameId
from storekeeper.events import AppEvent
from storekeeper.polling import Poller
from storekeeper.settings import AppConfig, SecretsConfig
from storekeeper.state import AppState

GENSHIN = GameId.GENSHIN_IMPACT
HSR = GameId.HONKAI_STAR_RAIL

BASE = dict(genshin_impact={"uid": "600000001"}, honkai_star_rail={"uid": "800000001"})


class StubScheduler:
    def __init__(self):
        self.reschedules = 0

    def reschedule(self):
        self.reschedules += 1


class Harness:
    """Commands wired to fake registries and temp config paths."""

    def __init__(self, tmp_path, bus, monkeypatch, config=None, daily=()):
        self.state = AppState(
            config=config or make_config(**BASE),
            registry=make_registry(FakeGameClient(GENSHIN, data=["g-old"]),
                                   FakeGameClient(HSR, data=["h-old"])),
            daily_registry=make_daily_registry(*daily),
        )
        self.state.resources.games = {GENSHIN: ["g-old"], HSR: ["h-old"]}
        self.autostart_calls = []
        self.locales = []
        self.scheduler = StubScheduler()
        self.rebuilt = []
        self.config_path = tmp_path / "config.toml"
        self.secrets_path = tmp_path / "secrets.toml"
        self.commands = Commands(
            self.state, bus, Poller(self.state, bus), self.scheduler,
            autostart_fn=self._autostart,
            on_locale_changed=self.locales.append,
            config_path=self.config_path,
            secrets_path=self.secrets_path,
            kuro_cache_path=tmp_path / "no-cache.json",
        )
        monkeypatch.setattr("storekeeper.commands.create_registry", self._create_registry)
        monkeypatch.setattr("storekeeper.commands.create_daily_reward_registry",
                            lambda config, secrets: make_daily_registry())

    def _autostart(self, enabled):
        self.autostart_calls.append(enabled)
        return True

    def _create_registry(self, config, secrets, kuro_cache_path=None):
        self.rebuilt.append(config)
        return make_registry(*[FakeGameClient(g, data=[f"{g.as_str()}-new"])
                               for g in config.enabled_games()])

    def save(self, config, secrets=None):
        return asyncio.run(self.commands.save_and_apply(config, secrets))


@pytest.fixture
def harness(tmp_path, bus, monkeypatch):
    return Harness(tmp_path, bus, monkeypatch)


# ── Save and apply ───────────────────────────────────────

class TestSaveAndApply:
    def test_uid_change_rebuilds_and_refreshes_that_game(self, harness, recorder):
        new = make_config(**{**BASE, "genshin_impact": {"uid": "700000001"}})
        diff = harness.save(new)

        assert diff.needs_registry_rebuild
        assert harness.rebuilt == [new]
        assert harness.state.resources.games == {
            GENSHIN: ["genshin_impact-new"], HSR: ["h-old"]}
        assert AppConfig.load(harness.config_path) == new
        assert harness.state.config == new
        assert recorder.names()[-1] == "resources-updated"
        assert harness.scheduler.reschedules == 1

    def test_notification_change_resets_tracker_only(self, harness):
        harness.state.tracker.record(GENSHIN, "resin", T0)
        harness.state.tracker.record(HSR, "trailblaze_power", T0)
        new = make_config(**{**BASE, "genshin_impact": {
            "uid": "600000001", "notifications": {"resin": {"cooldown_minutes": 5}}}})

        diff = harness.save(new)

        assert not diff.needs_registry_rebuild
        assert harness.rebuilt == []
        assert harness.state.tracker.last_notified(GENSHIN, "resin") is None
        assert harness.state.tracker.last_notified(HSR, "trailblaze_power") == T0
        assert harness.state.resources.games[GENSHIN] == ["g-old"]

    def test_removed_game_dropped_from_cache(self, harness):
        harness.save(make_config(genshin_impact={"uid": "600000001"}))
        assert list(harness.state.resources.games) == [GENSHIN]
        assert HSR not in harness.state.registry

    def test_autostart_and_locale(self, harness):
        new = make_config({"autostart": True, "language": "zh-CN"}, **BASE)
        harness.save(new)
        assert harness.autostart_calls == [True]
        assert harness.locales == ["zh-CN"]
        assert i18n.get_current_locale() == "zh-CN"

    def test_unchanged_config(self, harness):
        diff = harness.save(make_config(**BASE))
        assert diff.is_empty()
        assert harness.autostart_calls == []
        assert harness.locales == []
        assert harness.config_path.exists()
        assert not harness.secrets_path.exists()

    def test_secrets_written_and_provider_refreshed(self, harness):
        secrets = SecretsConfig.model_validate({"hoyolab": {"ltuid_v2": "1", "ltoken_v2": "t"}})
        diff = harness.save(make_config(**BASE), secrets)
        assert diff.games_to_refresh == {GENSHIN, HSR}
        assert SecretsConfig.load(harness.secrets_path) == secrets
        assert harness.state.secrets == secrets


# ── Daily rewards ────────────────────────────────────────

class TestDailyRewardCommands:
    @pytest.fixture
    def harness(self, tmp_path, bus, monkeypatch):
        return Harness(tmp_path, bus, monkeypatch,
                       daily=[FakeDailyClient(GENSHIN), FakeDailyClient(HSR, signed=True)])

    def test_claim_one(self, harness, recorder):
        result = asyncio.run(harness.commands.claim_daily_reward(GENSHIN))
        assert result["success"] is True
        assert recorder.events == [
            (AppEvent.DAILY_REWARD_CLAIMED,
             {"genshin_impact": harness.state.daily_reward_status.games[GENSHIN]})]
        assert harness.state.daily_reward_status.games[GENSHIN]["info"]["is_signed"] is True

    def test_claim_unknown_game(self, harness):
        with pytest.raises(StorekeeperError):
            asyncio.run(harness.commands.claim_daily_reward(GameId.ZENLESS_ZONE_ZERO))

    def test_claim_all(self, harness, recorder, no_sleep):
        results = asyncio.run(harness.commands.claim_all())
        assert set(results) == {"genshin_impact", "honkai_star_rail"}
        assert recorder.names() == ["daily-reward-claimed"]

    def test_status_all(self, harness):
        status = asyncio.run(harness.commands.get_all_daily_reward_status())
        assert set(status["games"]) == {"genshin_impact", "honkai_star_rail"}
        assert status["lastChecked"] is not None

    def test_status_one_merges(self, harness):
        asyncio.run(harness.commands.get_daily_reward_status(HSR))
        assert list(harness.state.daily_reward_status.games) == [HSR]


def test_get_resources_shape(tmp_path, bus, monkeypatch):
    harness = Harness(tmp_path, bus, monkeypatch)
    resources = asyncio.run(harness.commands.get_resources())
    assert resources["games"] == {"genshin_impact": ["g-old"], "honkai_star_rail": ["h-old"]}
