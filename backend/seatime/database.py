from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from typing import Generator
from seatime.config import settings

_engine_kwargs: dict = {"pool_pre_ping": True}
if "sqlite" in settings.DATABASE_URL:
    _engine_kwargs["connect_args"] = {"check_same_thread": False}
    if settings.DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every checkout sees an empty database
        _engine_kwargs["poolclass"] = StaticPool
else:
    _engine_kwargs["pool_size"] = settings.DB_POOL_SIZE
    _engine_kwargs["max_overflow"] = settings.DB_MAX_OVERFLOW
engine = create_engine(settings.DATABASE_URL, **_engine_kwargs)

if "sqlite" in settings.DATABASE_URL:
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        if settings.DATABASE_URL not in ("sqlite://", "sqlite:///:memory:"):
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create all tables. Called on first run or after migrations."""
    from seatime.models import Base  # noqa: F401 - ensure all models are registered
    Base.metadata.create_all(bind=engine)
    _run_migrations()


def _run_migrations(bind: Engine | None = None) -> None:
    """Idempotent ALTER TABLE migrations for databases created by an earlier schema.

    The models already declare every column below, so on a fresh database
    create_all() makes them and nothing here fires. An older database whose
    tables predate a column gets it added in place. Uses sqlalchemy.inspect()
    to check column existence before ALTER - real SQL errors (syntax,
    permissions) propagate instead of being silently swallowed.
    """
    from sqlalchemy import inspect as sa_inspect, text

    bind = bind if bind is not None else engine
    inspector = sa_inspect(bind)

    # (table_name, column_name, column_type_sql)
    column_migrations = [
        # MCA day-rule flag and detection window on derived entries
        ("sea_time_entries", "mca_compliant", "BOOLEAN"),
        ("sea_time_entries", "detection_window_hours", "REAL"),
        ("sea_time_entries", "distance_nm", "REAL"),
        # SAEnum persists member names, not values
        ("sea_time_entries", "service_type", "VARCHAR(30) DEFAULT 'ACTUAL_SEA_SERVICE'"),
        # Provider name on stored readings
        ("position_readings", "source", "VARCHAR(50)"),
        ("provider_audit_logs", "api_source", "VARCHAR(50)"),
    ]

    _col_cache: dict[str, set[str]] = {}

    with bind.connect() as conn:
        for table_name, col_name, col_type in column_migrations:
            if table_name not in _col_cache:
                _col_cache[table_name] = {
                    c["name"] for c in inspector.get_columns(table_name)
                }
            if col_name not in _col_cache[table_name]:
                conn.execute(text(
                    f"ALTER TABLE {table_name} ADD COLUMN {col_name} {col_type}"
                ))
                conn.commit()
                _col_cache[table_name].add(col_name)
