import logging
from contextlib import contextmanager

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session


logger = logging.getLogger(__name__)


class InvalidArgument(HTTPException):
    def __init__(self, detail: str = "Invalid argument"):
        super().__init__(status_code=400, detail=detail)


class Unauthenticated(HTTPException):
    def __init__(self, detail: str = "User must be logged in"):
        super().__init__(status_code=401, detail=detail)


class PermissionDenied(HTTPException):
    def __init__(self, detail: str = "Staff access required"):
        super().__init__(status_code=403, detail=detail)


class NotFound(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=404, detail=detail)


class Conflict(HTTPException):
    def __init__(self, detail: str = "Conflict"):
        super().__init__(status_code=409, detail=detail)


class InvalidState(HTTPException):
    def __init__(self, detail: str = "Operation not allowed in the current state"):
        super().__init__(status_code=412, detail=detail)


class Internal(HTTPException):
    def __init__(self, detail: str = "Internal error"):
        super().__init__(status_code=500, detail=detail)


@contextmanager
def atomic(db: Session, *, detail: str = "Internal error"):
    """
    Run the block as one unit of work and commit it. Database failures
    (including stale version checks) roll everything back and surface
    once as Internal; other errors roll back and propagate unchanged.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("unit of work failed; transaction rolled back")
        raise Internal(detail)
    except Exception:
        db.rollback()
        raise
