# parking_core/store.py
"""
Persistence port for the parking core.

Wraps one SQLAlchemy session. State fields are only ever changed through
conditional UPDATEs (`... WHERE <guard>`) whose affected-row count says
whether the transition happened; nothing here reads a row, edits it in
memory, and writes it back.

`atomic()` is the unit of work: the outermost block commits on success and
rolls back on any exception, inner blocks join the outer transaction.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from parking_core.errors import DuplicateTokenCode
from parking_core.models.prebooking import Prebooking
from parking_core.models.vehicle_entry import VehicleEntry
from parking_core.utils.logger import get_logger

logger = get_logger(__name__)


def _escape_like(text: str) -> str:
    """Search text is matched literally; % and _ are not wildcards."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ParkingStore:
    def __init__(self, db: Session):
        self.db = db
        self._depth = 0

    # ── Unit of work ──────────────────────────────────────────────────────
    @contextmanager
    def atomic(self):
        self._depth += 1
        outermost = self._depth == 1
        try:
            yield self
            if outermost:
                self.db.commit()
        except Exception:
            if outermost:
                self.db.rollback()
                logger.debug("Transaction rolled back")
            raise
        finally:
            self._depth -= 1

    def _conditional_update(self, model, criteria: list, values: dict) -> bool:
        rows = (
            self.db.query(model)
            .filter(*criteria)
            .update(values, synchronize_session=False)
        )
        return rows == 1

    # ── Prebookings ───────────────────────────────────────────────────────
    def add_prebooking(self, prebooking: Prebooking) -> Prebooking:
        """Insert; the unique index on token_code decides collisions.

        A collision leaves the session needing a rollback, which the
        enclosing atomic() performs, so call this as its own unit of work.
        """
        self.db.add(prebooking)
        try:
            self.db.flush()
        except IntegrityError as exc:
            raise DuplicateTokenCode(prebooking.token_code) from exc
        return prebooking

    def get_prebooking(self, prebooking_id: int) -> Optional[Prebooking]:
        return self.db.get(Prebooking, prebooking_id, populate_existing=True)

    def get_prebooking_by_code(self, token_code: str) -> Optional[Prebooking]:
        return (
            self.db.query(Prebooking)
            .filter(Prebooking.token_code == token_code)
            .populate_existing()
            .first()
        )

    def transition_prebooking(self, criteria: list, values: dict) -> bool:
        """Compare-and-set on a prebooking row. `criteria` must carry the status guard."""
        return self._conditional_update(Prebooking, criteria, values)

    def list_prebookings(self, owner_id: str = None, status: str = None,
                         scheduled_from: datetime = None, scheduled_before: datetime = None,
                         offset: int = 0, limit: int = 20) -> tuple:
        """Returns (rows for the requested window, total matching rows)."""
        q = self.db.query(Prebooking)
        if owner_id is not None:
            q = q.filter(Prebooking.owner_id == owner_id)
        if status is not None:
            q = q.filter(Prebooking.status == status)
        if scheduled_from is not None:
            q = q.filter(Prebooking.scheduled_time >= scheduled_from)
        if scheduled_before is not None:
            q = q.filter(Prebooking.scheduled_time < scheduled_before)
        total = q.count()
        rows = q.order_by(Prebooking.scheduled_time.desc()).offset(offset).limit(limit).all()
        return rows, total

    # ── Vehicle entries ───────────────────────────────────────────────────
    def add_entry(self, entry: VehicleEntry) -> VehicleEntry:
        self.db.add(entry)
        self.db.flush()
        return entry

    def get_entry(self, entry_id: int) -> Optional[VehicleEntry]:
        return self.db.get(VehicleEntry, entry_id, populate_existing=True)

    def transition_entry(self, criteria: list, values: dict) -> bool:
        """Compare-and-set on a vehicle entry row."""
        return self._conditional_update(VehicleEntry, criteria, values)

    def list_entries(self, active: Optional[bool] = None, vehicle_type: str = None,
                     search: str = None, offset: int = 0, limit: int = 20) -> tuple:
        q = self.db.query(VehicleEntry)
        if active is True:
            q = q.filter(VehicleEntry.exit_time.is_(None))
        elif active is False:
            q = q.filter(VehicleEntry.exit_time.isnot(None))
        if vehicle_type:
            q = q.filter(VehicleEntry.vehicle_type == vehicle_type)
        if search:
            pattern = f"%{_escape_like(search)}%"
            q = q.filter(or_(
                VehicleEntry.vehicle_number.ilike(pattern, escape="\\"),
                VehicleEntry.customer_name.ilike(pattern, escape="\\"),
                VehicleEntry.phone.ilike(pattern, escape="\\"),
            ))
        total = q.count()
        rows = q.order_by(VehicleEntry.entry_time.desc()).offset(offset).limit(limit).all()
        return rows, total
