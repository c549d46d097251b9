"""
Unit-of-work helper shared by the services that own their
transaction boundary (money movement and login).

Conflicting writes are detected optimistically: users and
accounts carry a version column, so an UPDATE built on a stale
read matches no row and SQLAlchemy raises StaleDataError. The
whole unit is rolled back and re-run from a fresh read, which
re-checks balances and lockout state against committed data.
"""

import logging
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from cayden_core.errors import IntegrityViolationError, StoreUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_unit_of_work(
    db: Session,
    work: Callable[[], T],
    *,
    name: str,
    max_attempts: int,
) -> T:
    """
    Run work() and commit, or roll back everything it did.

    StaleDataError and IntegrityError (a concurrent request won a
    version check or a unique key) are retried up to max_attempts.
    Any other exception rolls back and propagates unchanged, except
    OperationalError, which is reported as StoreUnavailableError.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            result = work()
            db.commit()
            return result
        except (StaleDataError, IntegrityError) as exc:
            db.rollback()
            if attempt >= max_attempts:
                logger.error(
                    "%s: conflict persisted after %d attempts", name, attempt,
                    extra={"action": name},
                )
                if isinstance(exc, IntegrityError):
                    raise IntegrityViolationError(
                        f"{name}: constraint violated: {exc.orig}"
                    ) from exc
                raise StoreUnavailableError(
                    f"{name}: concurrent update conflict, retry later"
                ) from exc
            logger.warning(
                "%s: write conflict on attempt %d, retrying", name, attempt,
                extra={"action": name},
            )
        except OperationalError as exc:
            db.rollback()
            logger.error("%s: store unavailable", name, extra={"action": name})
            raise StoreUnavailableError(f"{name}: store unavailable") from exc
        except Exception:
            db.rollback()
            raise
