# app/repositories/base.py
"""Shared plumbing for the scheduling stores"""
import logging
from functools import wraps

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session

from app.core.exceptions import StorageUnavailableError

logger = logging.getLogger(__name__)


def translate_storage_errors(func):
    """Surface connection-level database failures as StorageUnavailableError"""

    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except IntegrityError:
            raise
        except (OperationalError, DBAPIError) as e:
            logger.error(f"Storage failure in {type(self).__name__}.{func.__name__}: {e}")
            self.db.rollback()
            raise StorageUnavailableError(
                f"Database unavailable during {func.__name__}",
                store=type(self).__name__,
            ) from e

    return wrapper


class Repository:
    """A store bound to one SQLAlchemy session"""

    def __init__(self, db: Session):
        self.db = db

    @translate_storage_errors
    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
