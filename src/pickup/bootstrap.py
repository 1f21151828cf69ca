"""Wire settings, storage and adapters into a running host."""

from pickup.config import Settings
from pickup.host.host import DurableHost
from pickup.notifications import configure_notification_bus
from pickup.order.handler import OrderCommandHandler
from pickup.utils.db import create_db_engine, create_session_factory, setup_db


def build_host(settings: Settings, create_schema: bool = False) -> DurableHost:
    engine = create_db_engine(settings.database_uri)
    if create_schema:
        setup_db(engine)

    configure_notification_bus(settings.notification_url)
    return DurableHost(create_session_factory(engine), retry_policy=settings.retry_policy())


def build_handler(settings: Settings, create_schema: bool = False) -> OrderCommandHandler:
    return OrderCommandHandler(build_host(settings, create_schema=create_schema))
