"""
tray.py — System tray icon and desktop notifications.

Uses pystray with run_detached() so it coexists with uvicorn's event loop
on the main thread. Menu callbacks run on pystray's background thread;
notify() is the notification sink handed to the notification checker.
"""

import logging

import pystray
from PIL import Image

from storekeeper import i18n
from storekeeper.bundle_paths import get_resource
from storekeeper.core.errors import NotificationError
from storekeeper.core.game_id import GameId
from storekeeper.events import AppEvent
from storekeeper.notifications.messages import game_display_name

logger = logging.getLogger(__name__)


def _load_image() -> Image.Image:
    icon_path = get_resource("resources/icon.png")
    try:
        return Image.open(str(icon_path)).resize((64, 64), Image.LANCZOS)
    except OSError:
        # Fallback: solid teal square
        return Image.new("RGB", (64, 64), (40, 140, 140))


class TrayIcon:
    """Pystray wrapper with show / refresh / claim / quit menu."""

    def __init__(self, on_show, on_refresh, on_claim, on_quit):
        self._on_show = on_show
        self._on_refresh = on_refresh
        self._on_claim = on_claim
        self._on_quit = on_quit
        self._icon = None

    def _build_menu(self) -> pystray.Menu:
        return pystray.Menu(
            pystray.MenuItem(i18n.t("tray.show"), lambda icon, item: self._on_show(),
                             default=True),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem(i18n.t("tray.refresh"), lambda icon, item: self._on_refresh()),
            pystray.MenuItem(i18n.t("tray.claim"), lambda icon, item: self._on_claim()),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem(i18n.t("tray.quit"), lambda icon, item: self._on_quit()),
        )

    def start(self):
        """Create and start the tray icon (non-blocking)."""
        self._icon = pystray.Icon("storekeeper", _load_image(), i18n.t("tray.tooltip"),
                                  self._build_menu())
        self._icon.run_detached()
        logger.info("Tray icon started")

    def stop(self):
        if self._icon:
            self._icon.stop()
            self._icon = None

    def rebuild_menu(self, locale_tag: str = None):
        """Re-render menu labels after a language change."""
        if self._icon:
            self._icon.menu = self._build_menu()
            self._icon.title = i18n.t("tray.tooltip")
            self._icon.update_menu()
            logger.debug(f"Tray menu rebuilt for {locale_tag or i18n.get_current_locale()}")

    def notify(self, title: str, body: str):
        """Show a desktop notification. Raises NotificationError if it cannot."""
        if self._icon is None:
            raise NotificationError("Tray icon not running")
        if not self._icon.HAS_NOTIFICATION:
            raise NotificationError("Desktop notifications not supported on this platform")
        self._icon.notify(body, title)

    async def on_event(self, event: AppEvent, payload):
        """Event bus listener: toast successful daily reward claims."""
        if event != AppEvent.DAILY_REWARD_CLAIMED or not payload:
            return
        for game, status in payload.items():
            reward = (status or {}).get("today_reward") or {}
            text = f"{reward.get('name', '?')} x{reward.get('count', '?')}"
            try:
                self.notify(game_display_name(GameId(game)),
                            i18n.t_args("notification.daily_reward_claimed", reward=text))
            except NotificationError as e:
                logger.debug(f"Claim toast skipped: {e}")
