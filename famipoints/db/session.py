from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from ..core.config import Settings, settings


def make_engine(cfg: Settings | None = None, url: str | None = None) -> Engine:
    cfg = cfg or settings
    database_url = url or cfg.DATABASE_URL
    # Required for SQLite (otherwise threading errors when sessions hop threads)
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    return create_engine(
        database_url,
        echo=cfg.DB_ECHO,
        future=True,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )


engine = make_engine()


def init_schema(bind: Engine | None = None) -> None:
    from .base import Base

    Base.metadata.create_all(bind=bind or engine)
