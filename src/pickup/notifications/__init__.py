"""Notification bus factory.

Provides get_notification_bus() / set_notification_bus() to swap
implementations. FakeNotificationBus is the default for development and
testing; configure_notification_bus() switches to the HTTP relay when a
URL is configured.
"""

from pickup.notifications.fake_adapter import FakeNotificationBus
from pickup.notifications.http_adapter import HttpNotificationBus
from pickup.notifications.port import NotificationBus

_current_bus: NotificationBus | None = None


def get_notification_bus() -> NotificationBus:
    """Return the current notification bus. Defaults to FakeNotificationBus."""
    global _current_bus
    if _current_bus is None:
        _current_bus = FakeNotificationBus()
    return _current_bus


def set_notification_bus(bus: NotificationBus) -> None:
    """Override the active notification bus (useful for tests)."""
    global _current_bus
    _current_bus = bus


def configure_notification_bus(url: str | None) -> NotificationBus:
    """Install the HTTP bus when ``url`` is set, otherwise keep the default."""
    if url:
        set_notification_bus(HttpNotificationBus(url))
    return get_notification_bus()


def reset_notification_bus() -> None:
    """Reset to the default bus."""
    global _current_bus
    _current_bus = None
