"""Tests for main.py startup."""

import uvicorn

from storekeeper import main, server
from storekeeper.settings import AppConfig

BROKEN_CONFIG = "[general\npoll_interval_secs = "


class TestRun:
    def test_unreadable_config_starts_with_defaults(self, tmp_path, monkeypatch):
        config_path = tmp_path / "config.toml"
        config_path.write_text(BROKEN_CONFIG, encoding="utf-8")
        served = []
        opened = []

        monkeypatch.setattr(main, "CONFIG_FILE", config_path)
        monkeypatch.setattr(main, "SECRETS_FILE", tmp_path / "secrets.toml")
        monkeypatch.setattr(main, "setup_logging", lambda **kwargs: None)
        monkeypatch.setattr(main, "_sync_autostart", lambda config: None)
        monkeypatch.setattr(main.webbrowser, "open", opened.append)
        monkeypatch.setattr(uvicorn.Server, "run", lambda self: served.append(self))
        monkeypatch.setattr(server, "service", None)

        main.run(port=8460, use_tray=False, minimized=True)

        assert len(served) == 1
        assert opened == []
        assert server.service is not None
        assert server.service.state.config == AppConfig()
        # The user's file is left for them to fix
        assert config_path.read_text(encoding="utf-8") == BROKEN_CONFIG
