# parking_core/services/token_service.py
"""
Prebooking tokens: issue, preview, consume, cancel.

Token code = TOKEN_PREFIX + last 4 digits of the millisecond timestamp
             + 2 random digits, e.g. ASR34271502.
The code space is small, so issue() relies on the unique index on
token_code and regenerates on collision, at most TOKEN_CODE_MAX_ATTEMPTS times.

consume() and cancel() are single conditional UPDATEs guarded on the stored
status (and, for consume, on the token not being expired), so two gates
presenting the same code cannot both succeed.
"""

import random
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from pydantic import ValidationError as SchemaError

from parking_core.config import settings
from parking_core.errors import Conflict, DuplicateTokenCode, Forbidden, NotFound, ValidationError
from parking_core.models.prebooking import Prebooking
from parking_core.schemas.actor import Actor
from parking_core.schemas.page import Page, make_page, page_window
from parking_core.schemas.prebooking import PrebookingCreate, PrebookingOut
from parking_core.services import lifecycle
from parking_core.store import ParkingStore
from parking_core.utils.clock import epoch_millis, utcnow
from parking_core.utils.logger import get_logger

logger = get_logger(__name__)


def generate_token_code(now: datetime, rng: random.Random, prefix: str = None) -> str:
    prefix = settings.TOKEN_PREFIX if prefix is None else prefix
    stamp = str(epoch_millis(now))[-4:]
    return f"{prefix}{stamp}{rng.randint(0, 99):02d}"


def parse_details(schema, details):
    """Accept a schema instance or a plain dict; surface bad input as ValidationError."""
    if isinstance(details, schema):
        return details
    try:
        return schema.model_validate(details)
    except SchemaError as exc:
        raise ValidationError(str(exc)) from exc


class TokenLedger:
    def __init__(self, store: ParkingStore, clock: Callable[[], datetime] = utcnow,
                 rng: Optional[random.Random] = None):
        self.store = store
        self.clock = clock
        self.rng = rng or random.SystemRandom()

    # ── Records ───────────────────────────────────────────────────────────
    def to_record(self, prebooking: Prebooking, now: datetime = None) -> PrebookingOut:
        """Snapshot of the row with the read-time (effective) status applied."""
        now = now or self.clock()
        record = PrebookingOut.model_validate(prebooking)
        status = lifecycle.effective_token_status(prebooking.status, prebooking.scheduled_time, now)
        return record.model_copy(update={"status": status})

    # ── Issue ─────────────────────────────────────────────────────────────
    def issue(self, details, actor: Actor) -> PrebookingOut:
        details = parse_details(PrebookingCreate, details)
        now = self.clock()

        earliest = now + timedelta(minutes=settings.PREBOOKING_MIN_LEAD_MINUTES)
        if details.scheduled_time < earliest:
            raise ValidationError(
                f"scheduled time must be at least {settings.PREBOOKING_MIN_LEAD_MINUTES} minutes from now",
                reason="scheduled_too_soon",
            )

        attempts = settings.TOKEN_CODE_MAX_ATTEMPTS
        for attempt in range(1, attempts + 1):
            prebooking = Prebooking(
                token_code=generate_token_code(self.clock(), self.rng),
                owner_id=actor.id,
                vehicle_type=details.vehicle_type,
                vehicle_number=details.vehicle_number,
                customer_name=details.customer_name,
                phone=details.phone,
                scheduled_time=details.scheduled_time,
                status=lifecycle.PENDING,
                created_by=actor.id,
                notes=details.notes,
                created_at=now,
            )
            try:
                with self.store.atomic():
                    self.store.add_prebooking(prebooking)
            except DuplicateTokenCode:
                logger.warning(f"[TOKEN] Code collision on {prebooking.token_code} "
                               f"(attempt {attempt}/{attempts}) — regenerating")
                continue

            logger.info(f"[TOKEN] Issued {prebooking.token_code} | Plate={prebooking.vehicle_number} "
                        f"| Scheduled={prebooking.scheduled_time.isoformat()} | Owner={actor.id}")
            return self.to_record(prebooking, now)

        logger.error(f"[TOKEN] Could not allocate a unique code after {attempts} attempts")
        raise ValidationError("could not allocate a unique token code", reason="token_code_exhausted")

    # ── Read ──────────────────────────────────────────────────────────────
    def get(self, prebooking_id: int) -> PrebookingOut:
        prebooking = self.store.get_prebooking(prebooking_id)
        if not prebooking:
            raise NotFound(f"prebooking {prebooking_id} not found")
        return self.to_record(prebooking)

    def preview_by_code(self, token_code: str) -> PrebookingOut:
        """Staff-side check before gate-in. Never changes the stored status."""
        now = self.clock()
        prebooking = self.store.get_prebooking_by_code(token_code)
        if not prebooking or prebooking.status != lifecycle.PENDING:
            raise NotFound(f"no pending prebooking for token {token_code}", reason="token_not_found")
        if lifecycle.is_expired(prebooking.scheduled_time, now):
            raise Conflict(f"token {token_code} has expired", reason="expired")
        return self.to_record(prebooking, now)

    def list_for_owner(self, owner_id: str, status: str = None,
                       page: int = 1, limit: int = None) -> Page:
        return self._list(owner_id=owner_id, status=status, page=page, limit=limit)

    def list_all(self, status: str = None, on_date: date = None,
                 page: int = 1, limit: int = None) -> Page:
        return self._list(status=status, on_date=on_date, page=page, limit=limit)

    def _list(self, owner_id=None, status=None, on_date=None, page=1, limit=None):
        if status is not None and status not in lifecycle.TOKEN_STATUSES:
            raise ValidationError(f"unknown status {status}", reason="invalid_status")
        now = self.clock()
        page, limit, offset = page_window(page, limit)

        scheduled_from = scheduled_before = None
        stored_status = status
        if on_date is not None:
            scheduled_from = datetime.combine(on_date, datetime.min.time())
            scheduled_before = scheduled_from + timedelta(days=1)
        # Filter on effective status: expired ⊂ stored pending
        if status == lifecycle.EXPIRED:
            stored_status = lifecycle.PENDING
            cutoff = lifecycle.start_of_day(now)
            scheduled_before = min(scheduled_before, cutoff) if scheduled_before else cutoff
        elif status == lifecycle.PENDING:
            today = lifecycle.start_of_day(now)
            scheduled_from = max(scheduled_from, today) if scheduled_from else today

        rows, total = self.store.list_prebookings(owner_id=owner_id, status=stored_status,
                                           scheduled_from=scheduled_from,
                                           scheduled_before=scheduled_before,
                                           offset=offset, limit=limit)
        return make_page([self.to_record(row, now) for row in rows], total, page, limit)

    # ── Transitions ───────────────────────────────────────────────────────
    def consume(self, token_code: str, actor: Actor = None) -> PrebookingOut:
        """pending → verified as one compare-and-set. Joins the caller's unit of work."""
        now = self.clock()
        source = lifecycle.source_state(lifecycle.TOKEN_TRANSITIONS, lifecycle.CONSUME)
        target = lifecycle.next_state(lifecycle.TOKEN_TRANSITIONS, source, lifecycle.CONSUME)

        with self.store.atomic():
            swapped = self.store.transition_prebooking(
                [
                    Prebooking.token_code == token_code,
                    Prebooking.status == source,
                    Prebooking.scheduled_time >= lifecycle.start_of_day(now),
                ],
                {
                    "status": target,
                    "verified_by": actor.id if actor else None,
                    "verification_time": now,
                },
            )
            prebooking = self.store.get_prebooking_by_code(token_code)
            if not swapped:
                self._reject(prebooking, token_code, lifecycle.CONSUME, now)

        logger.info(f"[TOKEN] Consumed {token_code} | Plate={prebooking.vehicle_number} "
                    f"| By={actor.id if actor else '-'}")
        return self.to_record(prebooking, now)

    def cancel(self, prebooking_id: int, actor: Actor) -> PrebookingOut:
        now = self.clock()
        prebooking = self.store.get_prebooking(prebooking_id)
        if not prebooking:
            raise NotFound(f"prebooking {prebooking_id} not found")
        if prebooking.owner_id != actor.id and not actor.is_elevated:
            logger.warning(f"[TOKEN] Cancel of {prebooking.token_code} refused for {actor.id}")
            raise Forbidden("only the owner or staff may cancel this prebooking")

        source = lifecycle.source_state(lifecycle.TOKEN_TRANSITIONS, lifecycle.CANCEL)
        target = lifecycle.next_state(lifecycle.TOKEN_TRANSITIONS, source, lifecycle.CANCEL)

        with self.store.atomic():
            swapped = self.store.transition_prebooking(
                [
                    Prebooking.id == prebooking_id,
                    Prebooking.status == source,
                    Prebooking.scheduled_time >= lifecycle.start_of_day(now),
                ],
                {"status": target},
            )
            prebooking = self.store.get_prebooking(prebooking_id)
            if not swapped:
                self._reject(prebooking, prebooking_id, lifecycle.CANCEL, now)

        logger.info(f"[TOKEN] Cancelled {prebooking.token_code} | By={actor.id} ({actor.role})")
        return self.to_record(prebooking, now)

    def _reject(self, prebooking: Optional[Prebooking], key, action: str, now: datetime):
        """Explain a failed compare-and-set. Always raises."""
        if prebooking is None:
            raise NotFound(f"no prebooking for {key}", reason="token_not_found")
        state = lifecycle.effective_token_status(prebooking.status, prebooking.scheduled_time, now)
        logger.warning(f"[TOKEN] {action} refused for {prebooking.token_code}: status={state}")
        lifecycle.next_state(lifecycle.TOKEN_TRANSITIONS, state, action)
        # Row changed between the UPDATE and the re-read
        raise Conflict(f"prebooking {key} changed concurrently", reason="token_not_pending")
