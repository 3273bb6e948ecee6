from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from basegrid.core.config import Settings, settings


def create_engine_for_url(url: str, config: Settings = settings, *, pooled: bool = True) -> Engine:
    """Build an engine for ``url`` with backend-specific connection options."""
    parsed = make_url(url)
    backend = parsed.get_backend_name()
    kwargs: dict = {"pool_pre_ping": True}

    if backend.startswith("postgresql"):
        kwargs["connect_args"] = {"options": "-c timezone=utc"}
        if pooled:
            kwargs.update(
                pool_size=config.DB_POOL_SIZE,
                max_overflow=config.DB_MAX_OVERFLOW,
                pool_timeout=config.DB_POOL_TIMEOUT,
                pool_recycle=config.DB_POOL_RECYCLE,
            )
    elif backend == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if parsed.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool

    engine = create_engine(url, **kwargs)
    if backend == "sqlite":
        _configure_sqlite(engine)
    return engine


def create_engine_with_settings(config: Settings = settings) -> Engine:
    return create_engine_for_url(config.DATABASE_URL, config)


def _configure_sqlite(engine: Engine) -> None:
    # pysqlite defers BEGIN and mishandles SAVEPOINT; take over transaction
    # control and turn on FK enforcement so ON DELETE CASCADE applies.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


engine = create_engine_with_settings(settings)

if settings.DIRECT_DATABASE_URL:
    direct_engine = create_engine_for_url(settings.DIRECT_DATABASE_URL, settings, pooled=False)
else:
    direct_engine = engine

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
DirectSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=direct_engine)
