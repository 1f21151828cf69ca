"""Saga registry: maps the name stored with an execution to its saga function."""

from collections.abc import Callable
from typing import Any

from pickup.errors import NotFoundError

SagaFunction = Callable[..., Any]

_sagas: dict[str, SagaFunction] = {}


def register_saga(name: str) -> Callable[[SagaFunction], SagaFunction]:
    """Decorator registering ``fn(ctx, saga_input)`` under ``name``."""

    def decorator(fn: SagaFunction) -> SagaFunction:
        _sagas[name] = fn
        fn.saga_name = name
        return fn

    return decorator


def get_saga(name: str) -> SagaFunction:
    try:
        return _sagas[name]
    except KeyError:
        raise NotFoundError("Saga", name) from None

