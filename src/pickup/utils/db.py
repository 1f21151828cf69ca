from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pickup.host.records import Base


def create_db_engine(database_uri: str) -> Engine:
    """Build an engine. In-memory SQLite shares one connection so every session sees the same data."""
    if database_uri.startswith("sqlite") and ":memory:" in database_uri:
        return create_engine(
            database_uri,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_uri)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


def setup_db(engine: Engine) -> None:
    """Setup database schema"""
    Base.metadata.create_all(engine)


def drop_db(engine: Engine) -> None:
    """Drop database schema"""
    Base.metadata.drop_all(engine)
