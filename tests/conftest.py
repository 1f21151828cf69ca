import os
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from pickup.host.host import DurableHost
from pickup.host.retry import RetryPolicy
from pickup.notifications import reset_notification_bus, set_notification_bus
from pickup.notifications.fake_adapter import FakeNotificationBus
from pickup.search import reset_search, set_search
from pickup.search.fake_adapter import FakeOrderSearch
from pickup.store import reset_order_store, set_order_store
from pickup.store.fake_adapter import FakeOrderStore
from pickup.utils.db import create_db_engine, create_session_factory, drop_db, setup_db

START = datetime(2024, 5, 1, 9, 0, tzinfo=UTC)


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests."""
    os.environ["PICKUP_ENV"] = session.config.option.env

    from pickup.utils.logging import configure_logging

    configure_logging()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


class FakeClock:
    """Settable clock. ``sleep`` advances time instead of blocking."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current

    def sleep(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock(START)


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite+pysqlite:///:memory:")
    setup_db(engine)
    yield engine
    drop_db(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def host(session_factory, clock):
    return DurableHost(session_factory, clock=clock, retry_policy=RetryPolicy(), sleep=clock.sleep)


@pytest.fixture(autouse=True)
def store():
    """Fresh in-memory order store seeded with one user, one point and a small menu."""
    store = FakeOrderStore()
    store.add_user("u-1", "Alice")
    store.add_catalog_item("latte", "Latte", 3.5)
    store.add_catalog_item("croissant", "Croissant", 2.0)
    store.add_catalog_item("muffin", "Muffin", 2.5)
    store.add_point("p-1", "12 Market Street", kitchen_id="k-1", register_id="r-1")
    set_order_store(store)
    yield store
    reset_order_store()


@pytest.fixture(autouse=True)
def search():
    search = FakeOrderSearch()
    set_search(search)
    yield search
    reset_search()


@pytest.fixture(autouse=True)
def bus():
    bus = FakeNotificationBus()
    set_notification_bus(bus)
    yield bus
    reset_notification_bus()
