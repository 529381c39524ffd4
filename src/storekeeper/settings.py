"""
Storekeeper - User settings (config.toml / secrets.toml)

Pydantic models for the two user-editable TOML files. config.toml holds
non-sensitive settings and is safe to share; secrets.toml holds HoYoLab
cookies and the Kuro OAuth code.

Loading never takes the app down: load_or_default() logs and falls back to
defaults so the tray still comes up with a broken config.
"""

import logging
import tomllib
from pathlib import Path
from typing import ClassVar, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from storekeeper.config import (
    CONFIG_FILE,
    DEFAULT_NOTIFICATION_COOLDOWN,
    DEFAULT_POLL_INTERVAL,
    SECRETS_FILE,
)
from storekeeper.core.claim_time import ClaimTime
from storekeeper.core.errors import ConfigInvalid, ConfigNotFound, ConfigParseFailed, IoError
from storekeeper.core.game_id import ApiProvider, GameId
from storekeeper.core.region import Region

logger = logging.getLogger(__name__)

# Resource tags each game can produce (also the keys of [notifications])
GAME_RESOURCES = {
    GameId.GENSHIN_IMPACT: ["resin", "parametric_transformer", "realm_currency", "expeditions"],
    GameId.HONKAI_STAR_RAIL: ["trailblaze_power"],
    GameId.ZENLESS_ZONE_ZERO: ["battery"],
    GameId.WUTHERING_WAVES: ["waveplates"],
}

# Older configs stored the vendor's server string instead of a region name
_REGION_ALIASES: dict[str, Region] = {}
for _game in GameId.all():
    for _region in Region:
        _REGION_ALIASES.setdefault(_region.server_for(_game).lower(), _region)
_REGION_ALIASES.update({"na": Region.AMERICA, "eu": Region.EUROPE, "tw": Region.CHT})


def _coerce_region(value):
    if value is None or isinstance(value, Region) or value == "":
        return value or None
    key = str(value).strip().lower()
    try:
        return Region(key)
    except ValueError:
        pass
    if key in _REGION_ALIASES:
        return _REGION_ALIASES[key]
    raise ValueError(f"unknown region '{value}'")


# ─────────────────────────────────────────────
# config.toml
# ─────────────────────────────────────────────

class ResourceNotificationConfig(BaseModel):
    """Per-resource notification settings.

    notify_at_value wins over notify_minutes_before_full when both are set.
    cooldown_minutes = 0 means notify once each time the resource enters
    the window, never repeating while it stays there.
    """

    enabled: bool = True
    notify_minutes_before_full: Optional[int] = Field(default=None, ge=0)
    notify_at_value: Optional[int] = Field(default=None, ge=0)
    cooldown_minutes: int = Field(default=DEFAULT_NOTIFICATION_COOLDOWN, ge=0)


class GeneralConfig(BaseModel):
    poll_interval_secs: int = Field(default=DEFAULT_POLL_INTERVAL, ge=1)
    start_minimized: bool = True
    log_level: Literal["error", "warn", "info", "debug", "trace"] = "info"
    language: Optional[str] = None
    autostart: bool = False


class _GameConfigBase(BaseModel):
    GAME: ClassVar[GameId]

    enabled: bool = True
    region: Optional[Region] = None
    tracked_resources: list[str] = Field(default_factory=list)
    notifications: dict[str, ResourceNotificationConfig] = Field(default_factory=dict)

    _normalize_region = field_validator("region", mode="before")(_coerce_region)

    @model_validator(mode="after")
    def _drop_unknown_resources(self):
        known = GAME_RESOURCES[self.GAME]
        for tag in [t for t in self.notifications if t not in known]:
            logger.warning(f"Ignoring notification config for unknown "
                           f"{self.GAME.display_name()} resource '{tag}'")
            del self.notifications[tag]
        return self

    def account_id(self) -> str:
        raise NotImplementedError


class HoyolabGameConfig(_GameConfigBase):
    uid: str = ""
    auto_claim_daily_rewards: bool = False
    auto_claim_time: Optional[str] = None  # "HH:MM" in UTC+8

    @field_validator("uid", mode="before")
    @classmethod
    def _uid_as_str(cls, v):
        return str(v) if v is not None else ""

    @field_validator("auto_claim_time")
    @classmethod
    def _validate_claim_time(cls, v):
        if v is not None:
            try:
                ClaimTime.from_utc8_str(v)
            except ConfigParseFailed as e:
                raise ValueError(str(e)) from e
        return v

    def account_id(self) -> str:
        return self.uid

    def claim_time(self) -> Optional[ClaimTime]:
        return ClaimTime.from_utc8_str(self.auto_claim_time) if self.auto_claim_time else None


class GenshinConfig(HoyolabGameConfig):
    GAME: ClassVar[GameId] = GameId.GENSHIN_IMPACT
    tracked_resources: list[str] = Field(
        default_factory=lambda: list(GAME_RESOURCES[GameId.GENSHIN_IMPACT]))


class HsrConfig(HoyolabGameConfig):
    GAME: ClassVar[GameId] = GameId.HONKAI_STAR_RAIL
    tracked_resources: list[str] = Field(default_factory=lambda: ["trailblaze_power"])


class ZzzConfig(HoyolabGameConfig):
    GAME: ClassVar[GameId] = GameId.ZENLESS_ZONE_ZERO
    tracked_resources: list[str] = Field(default_factory=lambda: ["battery"])


class WuwaConfig(_GameConfigBase):
    GAME: ClassVar[GameId] = GameId.WUTHERING_WAVES
    player_id: str = ""
    tracked_resources: list[str] = Field(default_factory=lambda: ["waveplates"])

    @field_validator("player_id", mode="before")
    @classmethod
    def _player_id_as_str(cls, v):
        return str(v) if v is not None else ""

    def account_id(self) -> str:
        return self.player_id


class GamesConfig(BaseModel):
    genshin_impact: Optional[GenshinConfig] = None
    honkai_star_rail: Optional[HsrConfig] = None
    zenless_zone_zero: Optional[ZzzConfig] = None
    wuthering_waves: Optional[WuwaConfig] = None


class AppConfig(BaseModel):
    general: GeneralConfig = Field(default_factory=GeneralConfig)
    games: GamesConfig = Field(default_factory=GamesConfig)

    # ── Lookups ─────────────────────────────────────────────

    def game_config(self, game_id: GameId) -> Optional[_GameConfigBase]:
        return getattr(self.games, game_id.as_str())

    def is_game_enabled(self, game_id: GameId) -> bool:
        cfg = self.game_config(game_id)
        return cfg is not None and cfg.enabled

    def enabled_games(self) -> list[GameId]:
        return [g for g in GameId.all() if self.is_game_enabled(g)]

    def notifications_for(self, game_id: GameId) -> dict[str, ResourceNotificationConfig]:
        cfg = self.game_config(game_id)
        return dict(cfg.notifications) if cfg is not None else {}

    def auto_claim_enabled(self, game_id: GameId) -> bool:
        cfg = self.game_config(game_id)
        return (isinstance(cfg, HoyolabGameConfig) and cfg.enabled
                and cfg.auto_claim_daily_rewards)

    def auto_claim_time(self, game_id: GameId) -> Optional[ClaimTime]:
        cfg = self.game_config(game_id)
        return cfg.claim_time() if isinstance(cfg, HoyolabGameConfig) else None

    # ── Disk I/O ────────────────────────────────────────────

    @classmethod
    def from_toml(cls, text: str) -> "AppConfig":
        try:
            return cls.model_validate(tomllib.loads(text))
        except tomllib.TOMLDecodeError as e:
            raise ConfigInvalid(f"Failed to parse config: {e}") from e
        except ValidationError as e:
            raise ConfigInvalid(f"Invalid config: {e}") from e

    @classmethod
    def load(cls, path: Path = CONFIG_FILE) -> "AppConfig":
        """Load config.toml, writing the commented template first if it is missing."""
        create_default_if_missing(path)
        return cls.from_toml(_read_text(path))

    @classmethod
    def load_or_default(cls, path: Path = CONFIG_FILE) -> "AppConfig":
        try:
            return cls.load(path)
        except (ConfigInvalid, ConfigNotFound, IoError) as e:
            logger.warning(f"Failed to load config, using defaults: {e}")
            return cls()

    def to_toml(self) -> str:
        return dump_toml(self.model_dump(mode="json", exclude_none=True))

    def save(self, path: Path = CONFIG_FILE):
        _write_text(path, self.to_toml())
        logger.info(f"Config saved to {path}")


# ─────────────────────────────────────────────
# secrets.toml
# ─────────────────────────────────────────────

class HoyolabSecrets(BaseModel):
    ltuid_v2: str = ""
    ltoken_v2: str = ""
    ltmid_v2: str = ""

    @field_validator("ltuid_v2", mode="before")
    @classmethod
    def _ltuid_as_str(cls, v):
        return str(v) if v is not None else ""

    def is_configured(self) -> bool:
        return bool(self.ltuid_v2 and self.ltoken_v2)


class KuroSecrets(BaseModel):
    oauth_code: Optional[str] = None


class SecretsConfig(BaseModel):
    hoyolab: HoyolabSecrets = Field(default_factory=HoyolabSecrets)
    kuro: KuroSecrets = Field(default_factory=KuroSecrets)

    def provider_section(self, provider: ApiProvider) -> BaseModel:
        return self.hoyolab if provider == ApiProvider.HOYOLAB else self.kuro

    @classmethod
    def from_toml(cls, text: str) -> "SecretsConfig":
        try:
            return cls.model_validate(tomllib.loads(text))
        except tomllib.TOMLDecodeError as e:
            raise ConfigInvalid(f"Failed to parse secrets: {e}") from e
        except ValidationError as e:
            raise ConfigInvalid(f"Invalid secrets: {e}") from e

    @classmethod
    def load(cls, path: Path = SECRETS_FILE) -> "SecretsConfig":
        if not path.exists():
            raise ConfigNotFound(path)
        return cls.from_toml(_read_text(path))

    @classmethod
    def load_or_default(cls, path: Path = SECRETS_FILE) -> "SecretsConfig":
        try:
            return cls.load(path)
        except ConfigNotFound:
            logger.info(f"No secrets file at {path}; game clients needing credentials are disabled")
            return cls()
        except (ConfigInvalid, IoError) as e:
            logger.warning(f"Failed to load secrets, using defaults: {e}")
            return cls()

    def save(self, path: Path = SECRETS_FILE):
        _write_text(path, dump_toml(self.model_dump(mode="json", exclude_none=True)))


# ─────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────

def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigNotFound(path) from e
    except OSError as e:
        raise IoError(f"Failed to read {path}: {e}") from e


def _write_text(path: Path, content: str):
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise IoError(f"Failed to write {path}: {e}") from e


def create_default_if_missing(path: Path = CONFIG_FILE) -> bool:
    """Write the commented default config. Returns True if a file was created."""
    if path.exists():
        return False
    _write_text(path, DEFAULT_CONFIG_TEMPLATE)
    logger.info(f"Created default config file at: {path}")
    return True


_TOML_ESCAPES = {"\\": "\\\\", '"': '\\"', "\b": "\\b", "\t": "\\t", "\n": "\\n",
                 "\f": "\\f", "\r": "\\r"}


def _toml_string(value: str) -> str:
    out = []
    for ch in value:
        if ch in _TOML_ESCAPES:
            out.append(_TOML_ESCAPES[ch])
        elif ch < " " or ch == "\x7f":
            out.append(f"\\u{ord(ch):04x}")
        else:
            out.append(ch)
    return '"' + "".join(out) + '"'


def _toml_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return _toml_string(value)
    if isinstance(value, list):
        return "[" + ", ".join(_toml_value(v) for v in value) + "]"
    raise TypeError(f"Cannot encode {type(value).__name__} as TOML")


def dump_toml(data: dict, _prefix: str = "") -> str:
    """Serialize nested dicts of scalars/lists as TOML tables."""
    lines = []
    tables = []
    for key, value in data.items():
        if isinstance(value, dict):
            tables.append((key, value))
        else:
            lines.append(f"{key} = {_toml_value(value)}")
    out = []
    if lines:
        if _prefix:
            out.append(f"[{_prefix}]")
        out.extend(lines)
        out.append("")
    for key, value in tables:
        name = f"{_prefix}.{key}" if _prefix else key
        body = dump_toml(value, name)
        if body:
            out.append(body)
    return "\n".join(out)


DEFAULT_CONFIG_TEMPLATE = """\
# Storekeeper Configuration
# This file contains non-sensitive application settings.
#
# For sensitive credentials (HoYoLab cookies, Kuro OAuth code), see secrets.toml

[general]
# Polling interval in seconds (default: 300 = 5 minutes)
poll_interval_secs = 300

# Start minimized to the system tray (default: true)
start_minimized = true

# Log level: error, warn, info, debug, trace (default: info)
log_level = "info"

# UI / notification language, e.g. "en" or "zh-CN" (default: system locale)
# language = "en"

# Start when you log in (default: false)
autostart = false

# =============================================================================
# GAMES
# =============================================================================
# Enable only the games you play. Each game needs:
#   1. enabled = true
#   2. Your UID / player id
#   3. Credentials in secrets.toml
#
# HoYoLab games (Genshin, HSR, ZZZ) can claim the daily check-in reward:
#   auto_claim_daily_rewards = true
#   auto_claim_time = "HH:MM"   # UTC+8, defaults to "00:00" (daily reset)
#
# Per-resource notifications:
#   [games.<game>.notifications.<resource>]
#   enabled = true
#   notify_minutes_before_full = 60   # notify from 60 min before full
#   # notify_at_value = 180           # OR: once the value reaches 180
#   cooldown_minutes = 10             # minutes between repeats; 0 = only once
#                                     # each time the resource enters the window

[games.genshin_impact]
enabled = false
uid = "YOUR_UID_HERE"
# region = "america"   # auto-detected from the UID
# auto_claim_daily_rewards = false
# auto_claim_time = "00:00"
#
# [games.genshin_impact.notifications.resin]
# notify_minutes_before_full = 60
# cooldown_minutes = 10

[games.honkai_star_rail]
enabled = false
uid = "YOUR_UID_HERE"
# auto_claim_daily_rewards = false
#
# [games.honkai_star_rail.notifications.trailblaze_power]
# notify_minutes_before_full = 30
# cooldown_minutes = 15

[games.zenless_zone_zero]
enabled = false
uid = "YOUR_UID_HERE"
# auto_claim_daily_rewards = false
#
# [games.zenless_zone_zero.notifications.battery]
# notify_minutes_before_full = 30
# cooldown_minutes = 15

[games.wuthering_waves]
enabled = false
player_id = "YOUR_PLAYER_ID_HERE"
#
# [games.wuthering_waves.notifications.waveplates]
# notify_minutes_before_full = 30
# cooldown_minutes = 15
"""
