"""Validation of signal payloads and client commands."""

import pytest
from pickup.order.commands import OrderLineRequest, PlaceOrder, ReceiveOrder, RecordItemCooked, RecordPaymentEvent
from pickup.order.signals import CookingSignal, PaymentOutcome, PaymentSignal, ReceiveSignal
from pydantic import ValidationError


class TestSignals:
    def test_payment_signal_parses_status(self):
        signal = PaymentSignal.model_validate({"status": "unsuccessful", "reason": "card declined"})
        assert signal.status is PaymentOutcome.UNSUCCESSFUL
        assert signal.reason == "card declined"

    def test_payment_signal_reason_is_optional(self):
        assert PaymentSignal.model_validate({"status": "successful"}).reason is None

    def test_unknown_payment_status_is_rejected(self):
        with pytest.raises(ValidationError):
            PaymentSignal.model_validate({"status": "pending"})

    def test_cooking_signal_requires_line_id(self):
        with pytest.raises(ValidationError):
            CookingSignal(order_item_id="")

    def test_receive_signal_requires_four_digits(self):
        assert ReceiveSignal(pin_code="0042").pin_code == "0042"
        with pytest.raises(ValidationError):
            ReceiveSignal(pin_code="42")

    def test_receive_signal_rejects_non_ascii_digits(self):
        with pytest.raises(ValidationError):
            ReceiveSignal(pin_code="\u0661\u0662\u0663\u0664")

    def test_signals_are_immutable(self):
        signal = ReceiveSignal(pin_code="1234")
        with pytest.raises(ValidationError):
            signal.pin_code = "4321"


class TestCommands:
    def test_place_order(self):
        command = PlaceOrder(user_id="u-1", point_id="p-1", items=[{"item_id": "latte", "quantity": 2}])
        assert command.items == [OrderLineRequest(item_id="latte", quantity=2.0)]
        assert command.order_id is None

    def test_place_order_requires_items(self):
        with pytest.raises(ValidationError):
            PlaceOrder(user_id="u-1", point_id="p-1", items=[])

    def test_place_order_requires_positive_quantity(self):
        with pytest.raises(ValidationError):
            PlaceOrder(user_id="u-1", point_id="p-1", items=[{"item_id": "latte", "quantity": 0}])

    def test_unknown_fields_are_rejected(self):
        with pytest.raises(ValidationError):
            RecordItemCooked(order_id="o-1", order_item_id="l-1", kitchen="k-1")

    def test_payment_event_status(self):
        command = RecordPaymentEvent(order_id="o-1", status="canceled")
        assert command.status is PaymentOutcome.CANCELED

    def test_payment_event_rejects_unknown_status(self):
        with pytest.raises(ValidationError):
            RecordPaymentEvent(order_id="o-1", status="maybe")

    @pytest.mark.parametrize("pin_code", ["12a4", "123", "12345", "\u0661\u0662\u0663\u0664"])
    def test_receive_order_rejects_malformed_pin(self, pin_code):
        with pytest.raises(ValidationError):
            ReceiveOrder(order_id="o-1", pin_code=pin_code)
