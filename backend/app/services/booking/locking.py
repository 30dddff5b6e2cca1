# backend/app/services/booking/locking.py
"""
Global booking lock.

Every check-then-write on the bookings table runs inside booking_lock():
- a process-wide mutex serialises writers of this process;
- SELECT ... FOR UPDATE on the single booking_locks row serialises writers
  across processes on databases that support row locks (PostgreSQL, MySQL).

Throughput is low, so one lock for the whole table is enough.
"""

import logging
import threading
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models.generated import BookingLocks
from ..results import BookingStoreError

logger = logging.getLogger(__name__)

LOCK_ROW_ID = 1
ROW_LOCK_DIALECTS = {"postgresql", "mysql", "mariadb", "oracle", "mssql"}

_process_lock = threading.Lock()


def _lock_row(db: Session) -> None:
    dialect = db.get_bind().dialect.name
    if dialect not in ROW_LOCK_DIALECTS:
        return
    row = (
        db.query(BookingLocks)
        .filter(BookingLocks.id == LOCK_ROW_ID)
        .with_for_update()
        .one_or_none()
    )
    if row is None:
        db.add(BookingLocks(id=LOCK_ROW_ID))
        db.flush()
        db.query(BookingLocks).filter(BookingLocks.id == LOCK_ROW_ID).with_for_update().one()


@contextmanager
def booking_lock(db: Session):
    """
    Hold the booking lock for the duration of the block.

    The block must commit its own work. Anything left uncommitted is rolled
    back on exit; store errors surface as BookingStoreError.
    """
    with _process_lock:
        try:
            # Start from a fresh transaction so reads see committed state
            db.rollback()
            _lock_row(db)
            yield
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Booking transaction failed")
            raise BookingStoreError(str(e)) from e
        finally:
            if db.in_transaction():
                db.rollback()
