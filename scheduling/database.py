import logging
from contextlib import contextmanager
from threading import Lock
from typing import Iterator

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from scheduling.core import config
from scheduling.core.errors import StorageUnavailable


logger = logging.getLogger(__name__)


def build_engine(database_url: str):
    connect_args = {}
    if database_url.startswith('sqlite'):
        # The reminder task uses its own sessions from a background thread.
        connect_args['check_same_thread'] = False
    built = create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)

    if built.dialect.name == 'sqlite':
        @event.listens_for(built, 'connect')
        def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute('PRAGMA foreign_keys=ON')
            cursor.close()

    return built


engine = build_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_write_lock = Lock()
_schema_ready = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def serialized_write(db: Session) -> Iterator[Session]:
    """Run one read-then-write sequence as a single serialized transaction.

    The process-wide lock makes this process the single scheduling authority;
    row locks taken inside the block serialize writers across processes on
    databases that support SELECT ... FOR UPDATE.
    """
    with _write_lock:
        try:
            yield db
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception('Write transaction failed; rolled back.')
            raise StorageUnavailable() from exc
        except Exception:
            db.rollback()
            raise


@contextmanager
def storage_errors() -> Iterator[None]:
    """Report storage failures of read-only work as ``StorageUnavailable``."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception('Database read failed.')
        raise StorageUnavailable() from exc


def create_tables(bind=None) -> None:
    from scheduling.models import appointment, review, schedule, service, user  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def ensure_schema(bind=None) -> None:
    """Create missing tables and their indexes, once per process."""
    global _schema_ready

    if _schema_ready:
        return

    with _schema_lock:
        if _schema_ready:
            return

        create_tables(bind=bind)
        _schema_ready = True


def check_database_connection() -> bool:
    try:
        with engine.connect() as connection:
            connection.execute(text('SELECT 1'))
        return True
    except SQLAlchemyError:
        logger.exception('Database connection check failed.')
        return False
