"""
Optimistic concurrency helper

HouseholdMember and MemberQuest carry a version_id column
(SQLAlchemy version_id_col). A flush that updates a row somebody else changed
in the meantime raises StaleDataError; the whole unit of work is then rolled
back and replayed from a fresh read.
"""
import logging
from typing import Callable, TypeVar

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from hearth.config import get_settings
from hearth.domain.errors import ConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_with_optimistic_retry(
    db: Session,
    operation: Callable[[], T],
    attempts: int | None = None,
    description: str = "unit of work",
) -> T:
    """
    Run `operation` and commit; replay it when a versioned row went stale

    Args:
        db: session the operation works in (the operation must not commit)
        operation: callable that loads what it needs and mutates it
        attempts: max tries (default: settings.OPTIMISTIC_RETRY_ATTEMPTS)
        description: label for log lines and the final error

    Returns:
        whatever `operation` returned on the successful attempt

    Raises:
        ConflictError: every attempt hit a stale row
        Exception: anything else the operation raises (after rollback)
    """
    if attempts is None:
        attempts = get_settings().OPTIMISTIC_RETRY_ATTEMPTS

    for attempt in range(1, attempts + 1):
        try:
            result = operation()
            db.commit()
            return result
        except StaleDataError:
            db.rollback()
            logger.warning("Stale row during %s (attempt %d/%d), retrying",
                           description, attempt, attempts)
        except Exception:
            db.rollback()
            raise

    raise ConflictError(f"Concurrent update conflict during {description}, please retry")
