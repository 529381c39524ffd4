"""
messages.py — Localized notification title/body text.
"""

from datetime import datetime
from typing import Optional

from storekeeper import i18n
from storekeeper.core.game_id import GameId
from storekeeper.core.resource import ResourceInfo
from storekeeper.settings import ResourceNotificationConfig


def game_display_name(game_id: GameId) -> str:
    return i18n.t(f"game.{game_id.short_id()}.name")


def resource_display_name(game_id: GameId, resource_type: str) -> str:
    key = f"game.{game_id.short_id()}.resource.{resource_type}"
    name = i18n.t(key)
    return i18n.t("resource.unknown") if name == key else name


def build_notification_title(game_id: GameId, resource_type: str) -> str:
    return i18n.t_args(
        "notification.title",
        game_name=game_display_name(game_id),
        resource_name=resource_display_name(game_id, resource_type),
    )


def build_notification_body(resource_name: str, info: ResourceInfo, now: datetime,
                            config: Optional[ResourceNotificationConfig] = None) -> str:
    # Cooldowns and expeditions have no max; they are either ready or not
    if info.max is None:
        if info.is_complete:
            return i18n.t_args("notification.resource_ready", resource_name=resource_name)
        return i18n.t_args(
            "notification.resource_ready_in",
            resource_name=resource_name,
            duration=i18n.format_duration(info.minutes_until_complete(now)),
        )

    if info.is_complete:
        overdue = info.overdue_minutes(now)
        if overdue > 0:
            return i18n.t_args("notification.resource_full_for",
                               resource_name=resource_name, minutes=overdue)
        return i18n.t_args("notification.resource_full", resource_name=resource_name)

    if config is not None and config.notify_at_value is not None:
        current = info.estimated_current(now)
        if current is not None:
            return i18n.t_args("notification.resource_reached",
                               resource_name=resource_name, current=current, max=info.max)

    return i18n.t_args(
        "notification.resource_full_in",
        resource_name=resource_name,
        minutes=max(0, info.minutes_until_complete(now)),
    )
