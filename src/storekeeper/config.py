"""
Storekeeper - Configuration
All tunable constants in one place.

User-editable settings (poll interval, per-game options, credentials) live in
config.toml / secrets.toml and are modelled in settings.py.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
load_dotenv()

from storekeeper.bundle_paths import get_resource

# ─────────────────────────────────────────────
# Version
# ─────────────────────────────────────────────
_version_file = get_resource("VERSION")
APP_VERSION = _version_file.read_text().strip() if _version_file.exists() else "dev"
APP_NAME = "storekeeper"


# ─────────────────────────────────────────────
# Paths
# ─────────────────────────────────────────────
def roaming_data_dir() -> Path:
    """Per-user roaming data directory (%APPDATA% on Windows)."""
    if os.name == "nt":
        return Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def _local_data_dir() -> Path:
    if os.name == "nt":
        return Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
    return Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))


CONFIG_DIR = Path(os.environ.get("STOREKEEPER_CONFIG_DIR") or roaming_data_dir() / APP_NAME)
CONFIG_FILE = CONFIG_DIR / "config.toml"
SECRETS_FILE = CONFIG_DIR / "secrets.toml"

DATA_DIR = Path(os.environ.get("STOREKEEPER_DATA_DIR") or _local_data_dir() / APP_NAME)
LOG_FILE = DATA_DIR / "storekeeper.log"

# Wuthering Waves launcher keeps the (obfuscated) OAuth code here, relative
# to roaming_data_dir()
KURO_LAUNCHER_CACHE = Path("KR_G153") / "A1730" / "KRSDKUserLauncherCache.json"

# ─────────────────────────────────────────────
# Polling
# ─────────────────────────────────────────────
DEFAULT_POLL_INTERVAL = 300      # seconds between full refreshes
INITIAL_POLL_DELAY = 2.0         # first refresh after startup

# ─────────────────────────────────────────────
# Notifications
# ─────────────────────────────────────────────
NOTIFICATION_CHECK_INTERVAL = 60.0
DEFAULT_NOTIFICATION_COOLDOWN = 30   # minutes

# ─────────────────────────────────────────────
# Daily Rewards
# ─────────────────────────────────────────────
CLAIM_SPACING = 0.5              # seconds between consecutive claims
IDLE_CLAIM_SLEEP = 60.0          # re-check interval when nothing is scheduled

# ─────────────────────────────────────────────
# Retry / HTTP
# ─────────────────────────────────────────────
RETRY_MAX_RETRIES = 3
RETRY_BASE_DELAY_MS = 500
RETRY_MAX_DELAY_MS = 30_000
KURO_RETRY_BASE_DELAY_MS = 1500  # code 1005 "try again" backoff

HTTP_CONNECT_TIMEOUT = 10
HTTP_TOTAL_TIMEOUT = 30
HTTP_TIMEOUT = (HTTP_CONNECT_TIMEOUT, HTTP_TOTAL_TIMEOUT)
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# ─────────────────────────────────────────────
# Dashboard server
# ─────────────────────────────────────────────
SERVER_HOST = "127.0.0.1"
SERVER_PORT = int(os.environ.get("STOREKEEPER_PORT", "8460"))

# ─────────────────────────────────────────────
# Localization
# ─────────────────────────────────────────────
DEFAULT_LOCALE = "en"
SUPPORTED_LOCALES = ("en", "zh-CN")
