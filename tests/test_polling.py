"""Tests for polling.py and state.py."""

import asyncio

import pytest

from conftest import FakeDailyClient, FakeGameClient, make_config, make_daily_registry, make_registry
from storekeeper.core.errors import ApiError
from storekeeper.core.game_id import GameId
from storekeeper.events import AppEvent
from storekeeper.polling import Poller, RefreshInProgress
from storekeeper.state import AppState, RWLock

GENSHIN = GameId.GENSHIN_IMPACT
HSR = GameId.HONKAI_STAR_RAIL
WUWA = GameId.WUTHERING_WAVES


def make_state(*clients, daily=()):
    return AppState(registry=make_registry(*clients), daily_registry=make_daily_registry(*daily))


# ── Manual refresh ───────────────────────────────────────

class TestRefreshNow:
    def test_events_and_cache(self, bus, recorder):
        state = make_state(FakeGameClient(GENSHIN, data=["g"]), FakeGameClient(WUWA, data=["w"]))
        poller = Poller(state, bus)

        result = asyncio.run(poller.refresh_now())

        assert result.games == {GENSHIN: ["g"], WUWA: ["w"]}
        assert result.last_updated is not None
        names = recorder.names()
        assert names[0] == "refresh-started"
        assert names[-1] == "resources-updated"
        assert sorted(names[1:-1]) == ["game-resource-updated"] * 2
        per_game = {p["gameId"]: p["data"] for e, p in recorder.events
                    if e == AppEvent.GAME_RESOURCE_UPDATED}
        assert per_game == {"genshin_impact": ["g"], "wuthering_waves": ["w"]}
        assert recorder.events[-1][1]["games"] == {"genshin_impact": ["g"], "wuthering_waves": ["w"]}
        assert not state.is_refreshing

    def test_no_clients(self, bus, recorder):
        state = make_state()
        result = asyncio.run(Poller(state, bus).refresh_now())
        assert result.games == {}
        assert result.last_updated is not None
        assert recorder.events == []
        assert not state.is_refreshing

    def test_failed_game_omitted(self, bus, recorder):
        state = make_state(FakeGameClient(GENSHIN, data=["g"]),
                           FakeGameClient(HSR, error=ApiError(10102, "private")))
        result = asyncio.run(Poller(state, bus).refresh_now())
        assert list(result.games) == [GENSHIN]

    def test_concurrent_refresh_coalesced(self, bus):
        """Second manual refresh is rejected without touching any client."""

        async def scenario():
            gate = asyncio.Event()
            client = FakeGameClient(GENSHIN, data=["g"], gate=gate)
            state = make_state(client)
            poller = Poller(state, bus)

            first = asyncio.ensure_future(poller.refresh_now())
            for _ in range(5):
                await asyncio.sleep(0)
            assert state.is_refreshing

            with pytest.raises(RefreshInProgress, match="already in progress"):
                await poller.refresh_now()
            # Periodic path skips silently
            assert await poller.try_refresh() is False

            gate.set()
            await first
            assert client.fetch_count == 1
            assert not state.is_refreshing

        asyncio.run(scenario())

    def test_flag_released_on_error(self, bus, monkeypatch):
        state = make_state(FakeGameClient(GENSHIN))

        async def broken(*args, **kwargs):
            raise RuntimeError("registry exploded")

        monkeypatch.setattr(state.registry, "fetch_all", broken)
        with pytest.raises(RuntimeError):
            asyncio.run(Poller(state, bus).refresh_now())
        assert not state.is_refreshing


# ── Periodic refresh ─────────────────────────────────────

class TestPeriodic:
    def test_no_refresh_started_event(self, bus, recorder):
        state = make_state(FakeGameClient(GENSHIN, data=["g"]))
        assert asyncio.run(Poller(state, bus).try_refresh()) is True
        assert "refresh-started" not in recorder.names()
        assert recorder.names()[-1] == "resources-updated"

    def test_skipped_without_clients(self, bus, recorder):
        state = make_state()
        assert asyncio.run(Poller(state, bus).try_refresh()) is False
        assert recorder.events == []
        assert state.resources.games == {}
        assert state.resources.last_updated is not None

    def test_interval_taken_from_config(self, bus):
        state = make_state()
        state.config = make_config({"poll_interval_secs": 15})
        assert asyncio.run(Poller(state, bus)._poll_interval()) == 15.0

    def test_after_refresh_hook(self, bus):
        hooked = []

        async def hook():
            hooked.append(True)

        state = make_state(FakeGameClient(GENSHIN))
        asyncio.run(Poller(state, bus, after_refresh=hook).try_refresh())
        assert hooked == [True]

    def test_cache_replaced_not_merged(self, bus):
        async def scenario():
            state = make_state(FakeGameClient(GENSHIN, data=["g"]))
            state.resources.games = {HSR: ["stale"]}
            await Poller(state, bus).try_refresh()
            return await state.snapshot_resources()

        assert asyncio.run(scenario()).games == {GENSHIN: ["g"]}

    def test_run_loop_stops_on_cancel(self, bus):
        async def scenario():
            client = FakeGameClient(GENSHIN)
            state = make_state(client)
            poller = Poller(state, bus, initial_delay=0)
            poller.start(asyncio.get_running_loop())
            for _ in range(200):
                if client.fetch_count:
                    break
                await asyncio.sleep(0)
            task = poller._task
            poller.cancel.set()
            await asyncio.wait_for(task, timeout=5)
            return client.fetch_count, poller.running

        fetches, running = asyncio.run(scenario())
        assert fetches == 1
        assert running is False


# ── Selective refresh ────────────────────────────────────

def test_refresh_games_merges(bus, recorder):
    async def scenario():
        genshin = FakeGameClient(GENSHIN, data=["new"])
        hsr = FakeGameClient(HSR, data=["hsr"])
        state = make_state(genshin, hsr, daily=[FakeDailyClient(GENSHIN)])
        state.resources.games = {HSR: ["old-hsr"], GENSHIN: ["old"]}

        result = await Poller(state, bus).refresh_games([GENSHIN])
        rewards = await state.snapshot_daily_reward_status()
        return result, rewards, hsr.fetch_count

    result, rewards, hsr_fetches = asyncio.run(scenario())
    assert result.games == {HSR: ["old-hsr"], GENSHIN: ["new"]}
    assert hsr_fetches == 0
    assert GENSHIN in rewards.games
    assert "refresh-started" not in recorder.names()
    assert recorder.names()[-1] == "resources-updated"


# ── State ────────────────────────────────────────────────

class TestAppState:
    def test_refresh_flag_is_exclusive(self):
        state = AppState()
        assert state.try_begin_refresh()
        assert not state.try_begin_refresh()
        state.end_refresh()
        assert state.try_begin_refresh()

    def test_to_dict_keys(self):
        async def scenario():
            state = AppState()
            await state.set_resources({WUWA: ["w"]})
            await state.set_daily_reward_status({GENSHIN: {"info": {}}})
            return (await state.snapshot_resources()).to_dict(), \
                (await state.snapshot_daily_reward_status()).to_dict()

        resources, rewards = asyncio.run(scenario())
        assert resources["games"] == {"wuthering_waves": ["w"]}
        assert resources["lastUpdated"].endswith("+00:00")
        assert "lastChecked" in rewards

    def test_retain_games(self):
        async def scenario():
            state = AppState()
            await state.set_resources({WUWA: ["w"], GENSHIN: ["g"]})
            await state.retain_games([GENSHIN])
            return await state.snapshot_resources()

        assert list(asyncio.run(scenario()).games) == [GENSHIN]


def test_rwlock_writer_excludes_readers():
    async def scenario():
        lock = RWLock()
        order = []

        async def reader(name):
            async with lock.read():
                order.append(f"{name}-in")
                await asyncio.sleep(0)
                order.append(f"{name}-out")

        async def writer():
            async with lock.write():
                order.append("w-in")
                await asyncio.sleep(0)
                order.append("w-out")

        await asyncio.gather(reader("r1"), writer(), reader("r2"))
        return order

    order = asyncio.run(scenario())
    w_in = order.index("w-in")
    assert order[w_in + 1] == "w-out"
