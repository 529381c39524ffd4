"""
Resource notifications: the cooldown tracker, message formatting and the
periodic checker that ties them to the resource cache.
"""

from storekeeper.notifications.tracker import NotificationTracker, is_in_notify_window

__all__ = ["NotificationTracker", "is_in_notify_window"]
