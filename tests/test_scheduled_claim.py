"""Tests for scheduled_claim.py — automatic daily check-in."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from conftest import FakeDailyClient, make_config, make_daily_registry
from storekeeper.core.errors import AuthExpired, NetworkError
from storekeeper.core.game_id import GameId
from storekeeper.core.resource import utcnow
from storekeeper.events import AppEvent
from storekeeper.retry import RetryConfig
from storekeeper.scheduled_claim import ClaimScheduler, auto_claim_games, calculate_next_claim
from storekeeper.state import AppState

GENSHIN = GameId.GENSHIN_IMPACT
HSR = GameId.HONKAI_STAR_RAIL
ZZZ = GameId.ZENLESS_ZONE_ZERO

AUTO = {"uid": "600000001", "auto_claim_daily_rewards": True}


def make_scheduler(bus, config, *clients):
    state = AppState(config=config, daily_registry=make_daily_registry(*clients))
    scheduler = ClaimScheduler(state, bus, spacing=0,
                               retry_config=RetryConfig(max_retries=3, base_delay_ms=0, max_delay_ms=0))
    return state, scheduler


# ── Schedule calculation ─────────────────────────────────

class TestCalculateNextClaim:
    NOW = datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc)

    def test_none_without_auto_claim(self):
        config = make_config(genshin_impact={"uid": "600000001"})
        assert auto_claim_games(config) == []
        assert calculate_next_claim(config, self.NOW) is None

    def test_groups_games_due_together(self):
        config = make_config(genshin_impact=AUTO,
                             honkai_star_rail={**AUTO, "uid": "800000001"},
                             zenless_zone_zero={**AUTO, "uid": "1000000001",
                                                "auto_claim_time": "00:30"})
        when, games = calculate_next_claim(config, self.NOW)
        assert when == datetime(2025, 6, 1, 16, 0, tzinfo=timezone.utc)
        assert games == [GENSHIN, HSR]

    def test_earliest_custom_time_wins(self):
        config = make_config(genshin_impact={**AUTO, "auto_claim_time": "20:00"},
                             honkai_star_rail={**AUTO, "uid": "800000001"})
        when, games = calculate_next_claim(config, self.NOW)
        assert when == datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
        assert games == [GENSHIN]

    def test_disabled_game_not_scheduled(self):
        config = make_config(genshin_impact={**AUTO, "enabled": False})
        assert calculate_next_claim(config, self.NOW) is None


# ── Claiming ─────────────────────────────────────────────

class TestStartupClaims:
    def test_claims_once_and_emits(self, bus, recorder):
        client = FakeDailyClient(GENSHIN)
        state, scheduler = make_scheduler(bus, make_config(genshin_impact=AUTO), client)

        results = asyncio.run(scheduler.run_startup_claims())

        assert client.claim_count == 1
        assert list(results) == [GENSHIN]
        assert recorder.names() == ["daily-reward-claimed"]
        payload = recorder.events[0][1]
        assert payload["genshin_impact"]["info"]["is_signed"] is True
        assert GENSHIN in state.daily_reward_status.games

    def test_later_check_finds_signed(self, bus, recorder):
        client = FakeDailyClient(GENSHIN)
        _, scheduler = make_scheduler(bus, make_config(genshin_impact=AUTO), client)

        async def scenario():
            await scheduler.run_startup_claims()
            return await scheduler.claim_games_and_emit([GENSHIN])

        assert asyncio.run(scenario()) == {}
        assert client.claim_count == 1
        assert recorder.names() == ["daily-reward-claimed"]

    def test_no_auto_claim_games(self, bus, recorder):
        client = FakeDailyClient(GENSHIN)
        _, scheduler = make_scheduler(bus, make_config(genshin_impact={"uid": "600000001"}), client)
        assert asyncio.run(scheduler.run_startup_claims()) == {}
        assert client.status_count == 0
        assert recorder.events == []


class TestClaimWithStatusCheck:
    def test_retries_transient_status_error(self, bus):
        client = FakeDailyClient(GENSHIN, status_errors=[NetworkError("timeout"),
                                                         NetworkError("connection reset")])
        _, scheduler = make_scheduler(bus, make_config(genshin_impact=AUTO), client)
        assert asyncio.run(scheduler.claim_with_status_check(GENSHIN)) is True
        assert client.claim_count == 1

    def test_auth_error_not_retried(self, bus):
        client = FakeDailyClient(GENSHIN, status_errors=[AuthExpired(-100, "Please login")])
        _, scheduler = make_scheduler(bus, make_config(genshin_impact=AUTO), client)
        with pytest.raises(AuthExpired):
            asyncio.run(scheduler.claim_with_status_check(GENSHIN))
        assert client.status_count == 1
        assert client.claim_count == 0

    def test_already_signed(self, bus):
        client = FakeDailyClient(GENSHIN, signed=True)
        _, scheduler = make_scheduler(bus, make_config(genshin_impact=AUTO), client)
        assert asyncio.run(scheduler.claim_with_status_check(GENSHIN)) is False
        assert client.claim_count == 0


class TestClaimGamesAndEmit:
    def test_failure_does_not_stop_others(self, bus, recorder):
        broken = FakeDailyClient(GENSHIN, claim_error=AuthExpired(-100, "Please login"))
        ok = FakeDailyClient(HSR)
        config = make_config(genshin_impact=AUTO, honkai_star_rail={**AUTO, "uid": "800000001"})
        _, scheduler = make_scheduler(bus, config, broken, ok)

        results = asyncio.run(scheduler.claim_games_and_emit([GENSHIN, HSR]))

        assert list(results) == [HSR]
        assert ok.claim_count == 1
        assert list(recorder.events[0][1]) == ["honkai_star_rail"]

    def test_skips_game_no_longer_auto_claimed(self, bus, recorder):
        client = FakeDailyClient(GENSHIN)
        _, scheduler = make_scheduler(bus, make_config(genshin_impact={"uid": "600000001"}), client)
        assert asyncio.run(scheduler.claim_games_and_emit([GENSHIN])) == {}
        assert client.status_count == 0
        assert recorder.events == []

    def test_skips_game_without_daily_client(self, bus, recorder):
        _, scheduler = make_scheduler(bus, make_config(zenless_zone_zero={**AUTO, "uid": "1000000001"}))
        assert asyncio.run(scheduler.claim_games_and_emit([ZZZ])) == {}
        assert recorder.events == []


# ── Run loop ─────────────────────────────────────────────

def test_run_loop_stops_on_cancel(bus):
    async def scenario():
        client = FakeDailyClient(GENSHIN)
        _, scheduler = make_scheduler(bus, make_config(genshin_impact=AUTO), client)
        scheduler.start(asyncio.get_running_loop())
        for _ in range(200):
            if client.claim_count:
                break
            await asyncio.sleep(0)
        task = scheduler._task
        scheduler.reschedule()
        scheduler.cancel.set()
        await asyncio.wait_for(task, timeout=5)
        return client.claim_count

    assert asyncio.run(scenario()) == 1


async def _wait_until(predicate, timeout=5.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)


class TestScheduledFire:
    def test_claims_when_due(self, bus, recorder, monkeypatch):
        client = FakeDailyClient(GENSHIN)

        async def scenario():
            _, scheduler = make_scheduler(bus, make_config(genshin_impact=AUTO), client)
            fire_at = utcnow() + timedelta(milliseconds=50)

            def next_claim(config, now=None):
                if client.claim_count:
                    return utcnow() + timedelta(hours=1), [GENSHIN]
                return fire_at, [GENSHIN]

            async def no_startup_claims():
                return {}

            monkeypatch.setattr("storekeeper.scheduled_claim.calculate_next_claim", next_claim)
            monkeypatch.setattr(scheduler, "run_startup_claims", no_startup_claims)

            scheduler.start(asyncio.get_running_loop())
            await _wait_until(lambda: recorder.events)
            assert utcnow() >= fire_at
            task = scheduler._task
            scheduler.cancel.set()
            await asyncio.wait_for(task, timeout=5)

        asyncio.run(scenario())
        assert client.claim_count == 1
        assert recorder.names() == ["daily-reward-claimed"]
        assert recorder.events[0][1]["genshin_impact"]["info"]["is_signed"] is True

    def test_reschedule_recomputes_without_claiming(self, bus, recorder, monkeypatch):
        client = FakeDailyClient(GENSHIN)
        computed = []

        async def scenario():
            _, scheduler = make_scheduler(bus, make_config(genshin_impact=AUTO), client)

            def next_claim(config, now=None):
                computed.append(now)
                return utcnow() + timedelta(hours=1), [GENSHIN]

            async def no_startup_claims():
                return {}

            monkeypatch.setattr("storekeeper.scheduled_claim.calculate_next_claim", next_claim)
            monkeypatch.setattr(scheduler, "run_startup_claims", no_startup_claims)

            scheduler.start(asyncio.get_running_loop())
            await _wait_until(lambda: len(computed) == 1)
            scheduler.reschedule()
            await _wait_until(lambda: len(computed) == 2)
            task = scheduler._task
            scheduler.cancel.set()
            await asyncio.wait_for(task, timeout=5)

        asyncio.run(scenario())
        assert len(computed) == 2
        assert client.status_count == 0
        assert client.claim_count == 0
        assert recorder.events == []
