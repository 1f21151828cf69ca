"""Fake notification bus: records pushes for testing."""

from pickup.notifications.port import Audience, NotificationBus, NotificationEvent


class FakeNotificationBus(NotificationBus):
    """Notification bus that records messages in memory for test assertions."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self._failures = 0

    def fail_next(self, times: int = 1) -> None:
        """Make the next ``times`` sends raise ConnectionError."""
        self._failures = times

    def send(self, audience: Audience, audience_id: str, event: NotificationEvent) -> None:
        if self._failures:
            self._failures -= 1
            raise ConnectionError("notification relay unavailable")
        self.sent.append((audience.value, audience_id, event.value))

    def sent_to(self, audience: Audience, audience_id: str) -> list[str]:
        """Event types delivered to one audience member, in order."""
        return [event for aud, aid, event in self.sent if aud == audience.value and aid == audience_id]

    def reset(self) -> None:
        self.sent.clear()
        self._failures = 0
