"""Shared fixtures for the Storekeeper test suite."""

import os
import sys
import tempfile
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Ensure src/ is importable
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

# Keep config/log paths away from the real user profile
_TMP_HOME = Path(tempfile.mkdtemp(prefix="storekeeper-tests-"))
os.environ.setdefault("STOREKEEPER_CONFIG_DIR", str(_TMP_HOME / "config"))
os.environ.setdefault("STOREKEEPER_DATA_DIR", str(_TMP_HOME / "data"))

from storekeeper import i18n
from storekeeper.events import EventBus
from storekeeper.registry import DailyRewardClient, DailyRewardRegistry, GameClient, GameClientRegistry
from storekeeper.settings import AppConfig, SecretsConfig
from storekeeper.state import AppState

logger = logging.getLogger(__name__)

T0 = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


# ── Fake clients ─────────────────────────────────────────

class FakeGameClient(GameClient):
    """Returns canned resource documents; optionally fails or blocks."""

    def __init__(self, game_id, data=None, error=None, gate=None, calls=None):
        self.game_id = game_id
        self.data = data if data is not None else [{"type": "x", "data": {}}]
        self.error = error
        self.gate = gate          # asyncio.Event to wait on before returning
        self.calls = calls if calls is not None else []
        self.fetch_count = 0

    async def fetch_resources(self):
        self.fetch_count += 1
        self.calls.append(("start", self.game_id))
        if self.gate is not None:
            await self.gate.wait()
        self.calls.append(("end", self.game_id))
        if self.error is not None:
            raise self.error
        return self.data

    async def is_authenticated(self):
        return self.error is None


class FakeDailyClient(DailyRewardClient):
    """In-memory check-in calendar."""

    def __init__(self, game_id, signed=False, status_errors=None, claim_error=None):
        self.game_id = game_id
        self.signed = signed
        self.total_sign_day = 3
        self.status_errors = list(status_errors or [])
        self.claim_error = claim_error
        self.claim_count = 0
        self.status_count = 0

    async def get_reward_status(self):
        self.status_count += 1
        if self.status_errors:
            raise self.status_errors.pop(0)
        return {
            "info": {"is_signed": self.signed, "total_sign_day": self.total_sign_day},
            "today_reward": {"name": "Primogem", "count": 20, "icon": ""},
            "monthly_rewards": [],
        }

    async def claim_reward(self):
        self.claim_count += 1
        if self.claim_error is not None:
            raise self.claim_error
        self.signed = True
        self.total_sign_day += 1
        status = await self.get_reward_status()
        return {"success": True, "already_claimed": False,
                "reward": status["today_reward"], "info": status["info"], "message": None}


class EventRecorder:
    """EventBus listener that keeps (event, payload) pairs."""

    def __init__(self, bus: EventBus):
        self.events = []
        bus.subscribe(self)

    async def __call__(self, event, payload):
        self.events.append((event, payload))

    def names(self):
        return [e.as_str() for e, _ in self.events]


# ── Helper factories ─────────────────────────────────────

def make_config(general=None, **games) -> AppConfig:
    """AppConfig from plain dicts, e.g. make_config(genshin_impact={"uid": "600000001"})."""
    return AppConfig.model_validate({"general": general or {}, "games": games})


def make_registry(*clients) -> GameClientRegistry:
    registry = GameClientRegistry()
    for client in clients:
        registry.register(client)
    return registry


def make_daily_registry(*clients) -> DailyRewardRegistry:
    registry = DailyRewardRegistry()
    for client in clients:
        registry.register(client)
    return registry


def stamina_doc(tag="resin", current=100, max_value=200, full_at=None, rate=480, now=T0):
    if full_at is None:
        full_at = now + timedelta(seconds=(max_value - current) * rate)
    return {"type": tag, "data": {
        "current": current,
        "max": max_value,
        "full_at": full_at.isoformat(),
        "regen_rate_seconds": rate,
    }}


# ── Fixtures ─────────────────────────────────────────────

@pytest.fixture(autouse=True)
def english_locale():
    i18n.set_locale("en")
    yield


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def recorder(bus):
    return EventRecorder(bus)


@pytest.fixture
def state():
    return AppState(config=AppConfig(), secrets=SecretsConfig())


@pytest.fixture
def no_sleep(monkeypatch):
    """Make asyncio.sleep return immediately (retry backoff, claim spacing)."""
    import asyncio

    real_sleep = asyncio.sleep

    async def _fast_sleep(delay, *args, **kwargs):
        await real_sleep(0)

    monkeypatch.setattr(asyncio, "sleep", _fast_sleep)
    return _fast_sleep

