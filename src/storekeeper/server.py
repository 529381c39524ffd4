"""
server.py — FastAPI backend for the Storekeeper dashboard.

Endpoints:
  GET  /api/resources                  → cached resources snapshot
  POST /api/refresh                    → manual refresh (409 if one is running)
  GET  /api/config                     → config.toml contents + which secrets are set
  POST /api/config                     → save & apply new config (and secrets)
  GET  /api/daily-rewards              → reward status for every check-in game
  GET  /api/daily-rewards/{game}       → reward status for one game
  POST /api/daily-rewards/{game}/claim → claim one game's reward
  POST /api/daily-rewards/claim        → claim every game's reward
  WS   /ws                             → AppEvents as {"type", "payload"}
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from storekeeper.config import APP_VERSION, SERVER_HOST, SERVER_PORT
from storekeeper.core.errors import CommandError, StorekeeperError
from storekeeper.core.game_id import GameId
from storekeeper.events import AppEvent
from storekeeper.polling import RefreshInProgress
from storekeeper.service import StorekeeperService
from storekeeper.settings import AppConfig, SecretsConfig

logger = logging.getLogger(__name__)

# Set by main.py before uvicorn starts; built from disk otherwise
service: Optional[StorekeeperService] = None


# ---------------------------------------------------------------------------
# WebSocket connection manager
# ---------------------------------------------------------------------------
class ConnectionManager:
    """Manages active WebSocket connections and broadcasts events."""

    def __init__(self):
        self.connections: list[WebSocket] = []

    async def connect(self, ws: WebSocket):
        await ws.accept()
        self.connections.append(ws)
        logger.info(f"WebSocket connected ({len(self.connections)} active)")

    def disconnect(self, ws: WebSocket):
        if ws in self.connections:
            self.connections.remove(ws)
        logger.info(f"WebSocket disconnected ({len(self.connections)} active)")

    async def broadcast(self, event: dict):
        """Send a JSON event to all connected clients."""
        dead = []
        for ws in self.connections:
            try:
                await ws.send_json(event)
            except (WebSocketDisconnect, RuntimeError):
                dead.append(ws)
        for ws in dead:
            self.disconnect(ws)

    async def on_event(self, event: AppEvent, payload):
        """Event bus listener."""
        await self.broadcast({"type": event.as_str(), "payload": payload})


ws_manager = ConnectionManager()


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the background workers on the server's event loop."""
    global service
    if service is None:
        service = StorekeeperService.from_disk()

    service.events.subscribe(ws_manager.on_event)
    service.start(asyncio.get_running_loop())
    logger.info("Storekeeper dashboard server ready")
    try:
        yield
    finally:
        service.events.unsubscribe(ws_manager.on_event)
        service.stop()


app = FastAPI(title="Storekeeper API", version=APP_VERSION, lifespan=lifespan)


def _error_response(exc: Exception, status_code: int = 400) -> JSONResponse:
    error = CommandError.from_exception(exc)
    logger.warning(f"Command failed: {error.code.value}: {error.message}")
    return JSONResponse(status_code=status_code, content=error.model_dump(mode="json"))


def _parse_game(game: str) -> GameId:
    try:
        return GameId(game)
    except ValueError:
        raise StorekeeperError(f"Unknown game: {game}") from None


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------
class ConfigUpdateRequest(BaseModel):
    config: AppConfig
    secrets: Optional[SecretsConfig] = None


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------
@app.get("/api/resources")
async def get_resources():
    return await service.commands.get_resources()


@app.post("/api/refresh")
async def refresh_resources():
    try:
        return await service.commands.refresh_now()
    except RefreshInProgress as e:
        return _error_response(e, status_code=409)
    except StorekeeperError as e:
        return _error_response(e)


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------
def _secrets_summary(secrets: SecretsConfig) -> dict:
    """Which credentials are present, never their values."""
    return {
        "hoyolab": secrets.hoyolab.is_configured(),
        "kuro": bool(secrets.kuro.oauth_code),
    }


@app.get("/api/config")
async def get_config():
    secrets = await service.state.get_secrets()
    return {
        "config": await service.commands.get_config(),
        "secrets_configured": _secrets_summary(secrets),
    }


@app.post("/api/config")
async def update_config(req: ConfigUpdateRequest):
    try:
        diff = await service.commands.save_and_apply(req.config, req.secrets)
    except StorekeeperError as e:
        return _error_response(e)
    return {
        "ok": True,
        "registry_rebuilt": diff.needs_registry_rebuild,
        "refreshed": sorted(g.as_str() for g in diff.games_to_refresh),
    }


# ---------------------------------------------------------------------------
# Daily rewards
# ---------------------------------------------------------------------------
@app.get("/api/daily-rewards")
async def get_daily_rewards():
    return await service.commands.get_all_daily_reward_status()


@app.post("/api/daily-rewards/claim")
async def claim_all_daily_rewards():
    return await service.commands.claim_all()


@app.get("/api/daily-rewards/{game}")
async def get_daily_reward(game: str):
    try:
        return await service.commands.get_daily_reward_status(_parse_game(game))
    except StorekeeperError as e:
        return _error_response(e)


@app.post("/api/daily-rewards/{game}/claim")
async def claim_daily_reward(game: str):
    try:
        return await service.commands.claim_daily_reward(_parse_game(game))
    except StorekeeperError as e:
        return _error_response(e)


# ---------------------------------------------------------------------------
# WebSocket
# ---------------------------------------------------------------------------
@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws_manager.connect(ws)
    try:
        # Send initial state
        await ws.send_json({
            "type": "init",
            "payload": {
                "version": APP_VERSION,
                "resources": await service.commands.get_resources(),
                "dailyRewards": (await service.state.snapshot_daily_reward_status()).to_dict(),
            },
        })
        while True:
            await ws.receive_text()
    except WebSocketDisconnect:
        ws_manager.disconnect(ws)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    logger.info(f"Starting Storekeeper dashboard server on port {SERVER_PORT}")
    uvicorn.run(app, host=SERVER_HOST, port=SERVER_PORT, log_level="info")
