"""
Storekeeper - Main Application
Loads config, starts the tray icon and runs the dashboard server, whose
lifespan owns the background workers:
    Poller → resource cache → Notification checker → tray toast
    Claim scheduler → daily check-in → daily-reward-claimed event

Usage:
    python -m storekeeper.main                  # Tray + dashboard on 127.0.0.1:8460
    python -m storekeeper.main --no-tray        # Headless (notifications go to the log)
    python -m storekeeper.main --port 9000      # Different dashboard port
    python -m storekeeper.main --debug          # Verbose logging
"""

import argparse
import logging
import sys
import webbrowser
from typing import Optional

import uvicorn

from storekeeper import i18n, server
from storekeeper.autostart import get_autostart, set_autostart
from storekeeper.config import APP_VERSION, CONFIG_FILE, LOG_FILE, SECRETS_FILE, SERVER_HOST, SERVER_PORT
from storekeeper.core.errors import StorekeeperError
from storekeeper.service import StorekeeperService
from storekeeper.settings import AppConfig, SecretsConfig

logger = logging.getLogger("storekeeper")

_LOG_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": logging.DEBUG,
}


# ─── Entry Point ─────────────────────────────────────

def setup_logging(debug: bool = False, file_level: str = "info"):
    """Configure logging.

    Console always shows INFO+ only. The file gets DEBUG with --debug,
    otherwise the level from ``general.log_level``.
    """
    LOG_FILE.parent.mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.INFO)
    console.setFormatter(logging.Formatter("%(asctime)s %(message)s", datefmt="%H:%M:%S"))

    level = logging.DEBUG if debug else _LOG_LEVELS.get(file_level, logging.INFO)
    file_handler = logging.FileHandler(LOG_FILE, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    ))

    root_logger = logging.getLogger()
    root_logger.setLevel(min(level, logging.INFO))
    root_logger.addHandler(console)
    root_logger.addHandler(file_handler)

    # HTTP request lines are noise at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _sync_autostart(config: AppConfig):
    if config.general.autostart != get_autostart():
        set_autostart(config.general.autostart)


def run(port: int, use_tray: bool, minimized: bool, debug: bool = False):
    config = AppConfig.load_or_default(CONFIG_FILE)
    setup_logging(debug=debug, file_level=config.general.log_level)
    secrets = SecretsConfig.load_or_default(SECRETS_FILE)
    i18n.init(config.general.language)
    _sync_autostart(config)

    dashboard_url = f"http://{SERVER_HOST}:{port}/api/resources"
    uv_server: Optional[uvicorn.Server] = None
    tray = None

    if use_tray:
        from storekeeper.tray import TrayIcon

        def _quit():
            logger.info("Quit requested from tray")
            if uv_server is not None:
                uv_server.should_exit = True

        tray = TrayIcon(
            on_show=lambda: webbrowser.open(dashboard_url),
            on_refresh=lambda: service.submit(service.commands.refresh_now()),
            on_claim=lambda: service.submit(service.commands.claim_all()),
            on_quit=_quit,
        )
        service = StorekeeperService.from_config(config, secrets, notify=tray.notify)
        service.commands.on_locale_changed = tray.rebuild_menu
        service.events.subscribe(tray.on_event)
        tray.start()
    else:
        service = StorekeeperService.from_config(config, secrets)

    if not (minimized or config.general.start_minimized):
        webbrowser.open(dashboard_url)

    server.service = service
    uv_server = uvicorn.Server(uvicorn.Config(server.app, host=SERVER_HOST, port=port,
                                              log_level="warning"))
    logger.info(f"Storekeeper v{APP_VERSION} listening on http://{SERVER_HOST}:{port}")
    try:
        uv_server.run()
    finally:
        if tray is not None:
            tray.stop()


def main():
    parser = argparse.ArgumentParser(
        description="Storekeeper - stamina tracker and daily reward claimer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m storekeeper.main                # Run with tray icon and dashboard
  python -m storekeeper.main --no-tray      # Headless
  python -m storekeeper.main --debug        # Verbose logging to the log file
        """
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Enable debug logging"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=SERVER_PORT,
        help=f"Dashboard port (default: {SERVER_PORT})"
    )
    parser.add_argument(
        "--no-tray",
        action="store_true",
        help="Run without the system tray icon"
    )
    parser.add_argument(
        "--minimized",
        action="store_true",
        help="Do not open the dashboard on startup (used by autostart)"
    )

    args = parser.parse_args()

    try:
        run(port=args.port, use_tray=not args.no_tray, minimized=args.minimized,
            debug=args.debug)
    except KeyboardInterrupt:
        print("\nGoodbye!")
    except StorekeeperError as e:
        logger.critical(f"Startup failed: {e}")
        sys.exit(1)
    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
