import logging
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import settings

logger = logging.getLogger(__name__)


def normalize_database_url(database_url: str) -> str:
    """Hosted Postgres providers hand out postgres://, SQLAlchemy needs postgresql://"""
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql://", 1)
    return database_url


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the given URL.

    SQLite connections are shared across threads (FastAPI runs sync
    endpoints in a thread pool) and get foreign key enforcement switched on.
    """
    database_url = normalize_database_url(database_url)

    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": 30}

    new_engine = create_engine(
        database_url,
        connect_args=connect_args,
        echo=echo,
        pool_pre_ping=True,
    )

    if new_engine.dialect.name == "sqlite":
        @event.listens_for(new_engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return new_engine


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Dependency to get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind: Engine = None):
    """Create all tables in the database"""
    from . import models  # noqa: F401  (register mappers)

    target = bind or engine
    logger.info(f"Creating tables on {target.url.render_as_string(hide_password=True)[:40]}")
    Base.metadata.create_all(bind=target)
