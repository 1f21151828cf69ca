"""HTTP notification bus adapter.

Posts each notification to the server-sent-events relay, which fans it out
to the connected clients of that audience. Non-2xx responses raise, so the
host's activity retry policy takes care of transient relay outages.
"""

import requests
import structlog

from pickup.notifications.port import Audience, NotificationBus, NotificationEvent

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


class HttpNotificationBus(NotificationBus):
    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, audience: Audience, audience_id: str, event: NotificationEvent) -> None:
        payload = {
            "client_type": audience.value,
            "client_id": audience_id,
            "event_type": event.value,
        }
        response = self.session.post(self.url, json=payload, timeout=self.timeout)
        response.raise_for_status()
        logger.debug("notification_sent", **payload)
