"""Parsing of signal payloads inside the wait loops.

A payload that does not validate is logged and skipped; the saga keeps
waiting for a well-formed one.
"""

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from pickup.host.context import SagaContext

SignalModel = TypeVar("SignalModel", bound=BaseModel)


def parse_signal(ctx: SagaContext, model: type[SignalModel], payload: Any) -> SignalModel | None:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        ctx.logger.warning("signal_rejected", signal=model.__name__, errors=exc.error_count())
        return None
