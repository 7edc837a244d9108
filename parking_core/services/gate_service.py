# parking_core/services/gate_service.py
"""
Single entry point for the routing layer.

enter_with_optional_token() runs token consumption and entry creation in one
transaction: if anything fails after the token flipped to verified, the
rollback puts it back to pending, so a verified token always has an entry.

The remaining operations delegate to the ledger and the tracker.
"""

import random
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from parking_core.errors import ParkingError
from parking_core.schemas.actor import Actor
from parking_core.schemas.prebooking import PrebookingOut
from parking_core.schemas.vehicle_entry import VehicleEntryOut
from parking_core.services.billing_service import BillingEngine
from parking_core.services.occupancy_service import OccupancyTracker
from parking_core.services.token_service import TokenLedger
from parking_core.store import ParkingStore
from parking_core.utils.clock import utcnow
from parking_core.utils.logger import get_logger

logger = get_logger(__name__)


class GateService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow,
                 rng: Optional[random.Random] = None, billing: BillingEngine = None):
        self.store = ParkingStore(db)
        self.ledger = TokenLedger(self.store, clock=clock, rng=rng)
        self.tracker = OccupancyTracker(self.store, self.ledger, clock=clock, billing=billing)

    # ── Gate-in (token + entry, one unit of work) ─────────────────────────
    def enter_with_optional_token(self, details, token_code: Optional[str] = None,
                                  actor: Actor = None) -> VehicleEntryOut:
        try:
            with self.store.atomic():
                return self.tracker.open(details, token_code=token_code, actor=actor)
        except ParkingError as exc:
            logger.info(f"[GATE] Entry refused ({exc.reason}) | Token={token_code or '-'}")
            raise
        except Exception:
            logger.error(f"[GATE] Entry failed, transaction rolled back | Token={token_code or '-'}",
                         exc_info=True)
            raise

    # ── Prebookings ───────────────────────────────────────────────────────
    def issue(self, details, actor: Actor) -> PrebookingOut:
        return self.ledger.issue(details, actor)

    def preview_by_code(self, token_code: str) -> PrebookingOut:
        return self.ledger.preview_by_code(token_code.strip().upper())

    def cancel(self, prebooking_id: int, actor: Actor) -> PrebookingOut:
        return self.ledger.cancel(prebooking_id, actor)

    # ── Gate-out / payment ────────────────────────────────────────────────
    def close(self, entry_id: int, notes: Optional[str] = None) -> VehicleEntryOut:
        return self.tracker.close(entry_id, notes)

    def pay(self, entry_id: int) -> VehicleEntryOut:
        return self.tracker.pay(entry_id)
