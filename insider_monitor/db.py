from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from .settings import settings


def _backend(database_url: str) -> str:
    try:
        return make_url(database_url).get_backend_name()
    except Exception:
        return database_url.split(":", 1)[0]


def create_db_engine(database_url: str) -> Engine:
    """SQLite connections are shared across threads; in-memory SQLite keeps one connection."""
    if _backend(database_url) != "sqlite":
        return create_engine(database_url, pool_pre_ping=True)
    url = make_url(database_url)
    if url.database in (None, "", ":memory:"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, connect_args={"check_same_thread": False})


def create_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(bind=bind, autoflush=False, autocommit=False)


engine = create_db_engine(settings.DATABASE_URL)
SessionLocal = create_session_factory(engine)


class Base(DeclarativeBase):
    pass
