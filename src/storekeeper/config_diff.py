"""
config_diff.py — What has to happen when the user saves new settings.

Comparing old and new config/secrets yields the minimal set of side
effects: rebuild the client registries, reset notification cooldowns for
some games, re-fetch some games, toggle autostart, switch language.
Everything else (poll interval, claim times) is read live by the workers.
"""

from dataclasses import dataclass, field

from storekeeper.core.game_id import ApiProvider, GameId
from storekeeper.settings import AppConfig, SecretsConfig


@dataclass
class ConfigDiff:
    locale_changed: bool = False
    autostart_changed: bool = False
    needs_registry_rebuild: bool = False
    games_to_refresh: set[GameId] = field(default_factory=set)
    games_to_reset_notifications: set[GameId] = field(default_factory=set)

    def is_empty(self) -> bool:
        return not (self.locale_changed or self.autostart_changed
                    or self.needs_registry_rebuild or self.games_to_refresh
                    or self.games_to_reset_notifications)


def _client_identity(cfg) -> tuple:
    """The fields that determine how a game's client is built."""
    return (cfg.enabled, cfg.account_id(), cfg.region, tuple(cfg.tracked_resources))


def compute(old_config: AppConfig, new_config: AppConfig,
            old_secrets: SecretsConfig, new_secrets: SecretsConfig) -> ConfigDiff:
    diff = ConfigDiff(
        locale_changed=old_config.general.language != new_config.general.language,
        autostart_changed=old_config.general.autostart != new_config.general.autostart,
    )

    for game_id in GameId.all():
        old = old_config.game_config(game_id)
        new = new_config.game_config(game_id)
        if old is None and new is None:
            continue
        if old is None or new is None:
            diff.needs_registry_rebuild = True
            if new is not None and new.enabled:
                diff.games_to_refresh.add(game_id)
            continue

        if _client_identity(old) != _client_identity(new):
            diff.needs_registry_rebuild = True
            if new.enabled:
                diff.games_to_refresh.add(game_id)

        if old.notifications != new.notifications:
            diff.games_to_reset_notifications.add(game_id)

    for provider in ApiProvider:
        if old_secrets.provider_section(provider) == new_secrets.provider_section(provider):
            continue
        diff.needs_registry_rebuild = True
        diff.games_to_refresh.update(
            g for g in new_config.enabled_games() if g.api_provider() == provider)

    return diff
