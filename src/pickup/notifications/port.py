"""Notification bus port (abstract interface).

Fire-and-forget "your list changed" pushes. Clients re-fetch their lists
when they receive one, so a notification carries no payload beyond the
event type.
"""

from abc import ABC, abstractmethod
from enum import Enum


class Audience(Enum):
    USER = "user"
    KITCHEN = "kitchen"
    REGISTER = "register"


class NotificationEvent(Enum):
    ORDER_LIST_UPDATED = "order_list_updated"
    UNSUCCESSFUL_PAY_ATTEMPT = "unsuccessful_pay_attempt"
    ITEM_LIST_UPDATED = "item_list_updated"
    WRONG_PIN_CODE_ATTEMPT = "attempt_to_enter_wrong_pin_code"


class NotificationBus(ABC):
    """Abstract notification bus interface."""

    @abstractmethod
    def send(self, audience: Audience, audience_id: str, event: NotificationEvent) -> None:
        """Push ``event`` to every client of ``audience`` identified by ``audience_id``."""
        ...
