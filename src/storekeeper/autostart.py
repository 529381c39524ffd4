"""
autostart.py — Launch-at-login toggle.

Windows: a value under HKCU\\...\\CurrentVersion\\Run.
Elsewhere: an XDG autostart .desktop file in ~/.config/autostart.
"""

import logging
import os
import sys
from pathlib import Path

from storekeeper.bundle_paths import IS_FROZEN
from storekeeper.config import APP_NAME

logger = logging.getLogger(__name__)

AUTOSTART_REG_KEY = r"Software\Microsoft\Windows\CurrentVersion\Run"
AUTOSTART_REG_VALUE = "Storekeeper"


def get_autostart_command() -> str:
    if IS_FROZEN:
        return f'"{sys.executable}" --minimized'
    return f'"{sys.executable}" -m storekeeper.main --minimized'


def desktop_entry_path() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "autostart" / f"{APP_NAME}.desktop"


def _desktop_entry() -> str:
    return (
        "[Desktop Entry]\n"
        "Type=Application\n"
        "Name=Storekeeper\n"
        "Comment=Stamina tracker and daily reward claimer\n"
        f"Exec={get_autostart_command()}\n"
        "X-GNOME-Autostart-enabled=true\n"
        "Terminal=false\n"
    )


# ── Windows ─────────────────────────────────────────────

def _set_registry(enabled: bool):
    import winreg
    key = winreg.OpenKey(winreg.HKEY_CURRENT_USER, AUTOSTART_REG_KEY,
                         0, winreg.KEY_SET_VALUE)
    try:
        if enabled:
            winreg.SetValueEx(key, AUTOSTART_REG_VALUE, 0, winreg.REG_SZ,
                              get_autostart_command())
        else:
            try:
                winreg.DeleteValue(key, AUTOSTART_REG_VALUE)
            except FileNotFoundError:
                pass  # already absent
    finally:
        winreg.CloseKey(key)


def _get_registry() -> bool:
    import winreg
    key = winreg.OpenKey(winreg.HKEY_CURRENT_USER, AUTOSTART_REG_KEY,
                         0, winreg.KEY_QUERY_VALUE)
    try:
        winreg.QueryValueEx(key, AUTOSTART_REG_VALUE)
        return True
    except FileNotFoundError:
        return False
    finally:
        winreg.CloseKey(key)


# ── XDG ─────────────────────────────────────────────────

def _set_desktop_file(enabled: bool):
    path = desktop_entry_path()
    if enabled:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(_desktop_entry(), encoding="utf-8")
    else:
        path.unlink(missing_ok=True)


# ── Public ──────────────────────────────────────────────

def set_autostart(enabled: bool) -> bool:
    """Enable or disable launch at login. Returns False if the OS call failed."""
    try:
        if sys.platform == "win32":
            _set_registry(enabled)
        else:
            _set_desktop_file(enabled)
    except OSError as e:
        logger.warning(f"Failed to update auto-start: {e}")
        return False
    logger.info(f"Auto-start {'enabled' if enabled else 'disabled'}")
    return True


def get_autostart() -> bool:
    try:
        if sys.platform == "win32":
            return _get_registry()
        return desktop_entry_path().exists()
    except OSError:
        return False
