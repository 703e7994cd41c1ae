from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from scheduling.core.errors import SchedulingError, StorageUnavailable
from scheduling.database import ensure_schema


def to_http_exception(exc: SchedulingError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.detail)


def ensure_database_ready() -> None:
    try:
        ensure_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=StorageUnavailable().detail,
        ) from exc
