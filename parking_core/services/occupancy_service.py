# parking_core/services/occupancy_service.py
"""
Vehicle occupancy: gate-in, gate-out with billing, payment.

  open()  — walk-in: caller's identity, validated and normalised.
            prebooked: token consumed first, identity copied from the token.
  close() — exit_time + bill_amount written together, only if still open.
  pay()   — is_paid written once, only after exit.

Entries can disappear under us (admin bulk clear), so every operation
re-reads by id and reports NotFound rather than assuming the row exists.
"""

from datetime import datetime
from typing import Callable, Optional

from parking_core.errors import Conflict, NotFound, ValidationError
from parking_core.models.vehicle_entry import VehicleEntry
from parking_core.schemas.actor import Actor
from parking_core.schemas.page import Page, make_page, page_window
from parking_core.schemas.vehicle_entry import (
    VehicleEntryCreate, VehicleEntryOut, VehicleExit, VehicleIdentity,
)
from parking_core.services import lifecycle
from parking_core.services.billing_service import BillingEngine
from parking_core.services.token_service import TokenLedger, parse_details
from parking_core.store import ParkingStore
from parking_core.utils.clock import utcnow
from parking_core.utils.logger import get_logger

logger = get_logger(__name__)

ENTRY_STATUSES = ("active", "exited")


class OccupancyTracker:
    def __init__(self, store: ParkingStore, ledger: TokenLedger,
                 clock: Callable[[], datetime] = utcnow, billing: BillingEngine = None):
        self.store = store
        self.ledger = ledger
        self.clock = clock
        self.billing = billing or BillingEngine()

    # ── Gate-in ───────────────────────────────────────────────────────────
    def open(self, details, token_code: Optional[str] = None, actor: Actor = None) -> VehicleEntryOut:
        details = parse_details(VehicleEntryCreate, details or {})
        token_code = (token_code or details.token_code or "").strip().upper() or None

        with self.store.atomic():
            if token_code:
                token = self.ledger.consume(token_code, actor)
                # Reservation identity wins over whatever the gate typed in
                identity = VehicleIdentity.model_construct(
                    vehicle_type=token.vehicle_type,
                    vehicle_number=token.vehicle_number,
                    customer_name=token.customer_name,
                    phone=token.phone,
                )
            else:
                identity = parse_details(VehicleIdentity, details.model_dump(exclude={"token_code"}))

            entry = VehicleEntry(
                vehicle_type=identity.vehicle_type,
                vehicle_number=identity.vehicle_number,
                customer_name=identity.customer_name,
                phone=identity.phone,
                entry_time=self.clock(),
                exit_time=None,
                bill_amount=None,
                is_paid=False,
                token_code=token_code or None,
                added_by=actor.id if actor else None,
            )
            self.store.add_entry(entry)

        logger.info(f"[ENTRY] Gate-in #{entry.id} | Plate={entry.vehicle_number} | Type={entry.vehicle_type} "
                    f"| Token={entry.token_code or '-'}")
        return VehicleEntryOut.model_validate(entry)

    # ── Gate-out ──────────────────────────────────────────────────────────
    def close(self, entry_id: int, notes: Optional[str] = None) -> VehicleEntryOut:
        notes = parse_details(VehicleExit, {"notes": notes}).notes
        entry = self._require(entry_id)
        now = self.clock()

        if entry.exit_time is None and now <= entry.entry_time:
            raise Conflict(f"entry {entry_id}: exit time must be after entry time",
                           reason="exit_before_entry")

        if self.billing.rate_for(entry.vehicle_type) is None:
            logger.warning(f"[BILL] No rate for vehicle type {entry.vehicle_type}, billing 0 for #{entry_id}")
        # entry_time and vehicle_type never change after gate-in
        bill_amount = self.billing.compute_fee(entry.entry_time, now, entry.vehicle_type)

        with self.store.atomic():
            swapped = self.store.transition_entry(
                [VehicleEntry.id == entry_id, VehicleEntry.exit_time.is_(None)],
                {"exit_time": now, "bill_amount": bill_amount, "notes": notes},
            )
            entry = self._reread(entry_id, swapped, lifecycle.CLOSE)

        logger.info(f"[BILL] Gate-out #{entry_id} | Plate={entry.vehicle_number} "
                    f"| Amount={entry.bill_amount}")
        return VehicleEntryOut.model_validate(entry)

    # ── Payment ───────────────────────────────────────────────────────────
    def pay(self, entry_id: int) -> VehicleEntryOut:
        now = self.clock()
        with self.store.atomic():
            swapped = self.store.transition_entry(
                [
                    VehicleEntry.id == entry_id,
                    VehicleEntry.exit_time.isnot(None),
                    VehicleEntry.is_paid == False,  # noqa: E712
                ],
                {"is_paid": True, "payment_time": now},
            )
            entry = self._reread(entry_id, swapped, lifecycle.PAY)

        logger.info(f"[BILL] Paid #{entry_id} | Plate={entry.vehicle_number} | Amount={entry.bill_amount}")
        return VehicleEntryOut.model_validate(entry)

    # ── Read ──────────────────────────────────────────────────────────────
    def get(self, entry_id: int) -> VehicleEntryOut:
        return VehicleEntryOut.model_validate(self._require(entry_id))

    def list_entries(self, status: str = None, vehicle_type: str = None, search: str = None,
                     page: int = 1, limit: int = None) -> Page:
        if status is not None and status not in ENTRY_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(ENTRY_STATUSES)}",
                                  reason="invalid_status")
        active = {"active": True, "exited": False}.get(status)
        page, limit, offset = page_window(page, limit)
        rows, total = self.store.list_entries(active=active, vehicle_type=vehicle_type,
                                       search=search.strip() if search else None,
                                       offset=offset, limit=limit)
        return make_page([VehicleEntryOut.model_validate(row) for row in rows], total, page, limit)

    # ── Helpers ───────────────────────────────────────────────────────────
    def _require(self, entry_id: int) -> VehicleEntry:
        entry = self.store.get_entry(entry_id)
        if not entry:
            raise NotFound(f"vehicle entry {entry_id} not found")
        return entry

    def _reread(self, entry_id: int, swapped: bool, action: str) -> VehicleEntry:
        """Fresh row after a compare-and-set; raises if the swap did not happen."""
        entry = self._require(entry_id)
        if swapped:
            return entry
        state = lifecycle.entry_state(entry.exit_time, entry.is_paid)
        logger.warning(f"[ENTRY] {action} refused for #{entry_id}: state={state}")
        lifecycle.next_state(lifecycle.ENTRY_TRANSITIONS, state, action)
        raise Conflict(f"vehicle entry {entry_id} changed concurrently", reason="concurrent_update")
