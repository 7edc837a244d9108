# parking_core/services/lifecycle.py
"""
Status machines for prebooking tokens and vehicle entries.

Tokens (stored):   pending ──consume──▶ verified
                   pending ──cancel───▶ cancelled
Tokens (derived):  pending + scheduled on an earlier UTC day and in the past ▶ expired

Entries (derived from columns):
                   open ──close──▶ closed ──pay──▶ paid

Every guard in the services goes through `next_state()`, and the expiry rule
lives only in `effective_token_status()`.
"""

from datetime import datetime, time

from parking_core.errors import Conflict

# ── Tokens ────────────────────────────────────────────────────────────────────
PENDING = "pending"
VERIFIED = "verified"
CANCELLED = "cancelled"
EXPIRED = "expired"

TOKEN_STATUSES = (PENDING, VERIFIED, CANCELLED, EXPIRED)

CONSUME = "consume"
CANCEL = "cancel"

TOKEN_TRANSITIONS = {
    (PENDING, CONSUME): VERIFIED,
    (PENDING, CANCEL): CANCELLED,
}

# ── Entries ───────────────────────────────────────────────────────────────────
OPEN = "open"
CLOSED = "closed"
PAID = "paid"

CLOSE = "close"
PAY = "pay"

ENTRY_TRANSITIONS = {
    (OPEN, CLOSE): CLOSED,
    (CLOSED, PAY): PAID,
}

# Conflict reasons when an action is attempted from the wrong state
_REJECTIONS = {
    (EXPIRED, CONSUME): "expired",
    (EXPIRED, CANCEL): "expired",
    (VERIFIED, CONSUME): "token_not_pending",
    (CANCELLED, CONSUME): "token_not_pending",
    (VERIFIED, CANCEL): "token_not_pending",
    (CANCELLED, CANCEL): "token_not_pending",
    (CLOSED, CLOSE): "already_exited",
    (PAID, CLOSE): "already_exited",
    (OPEN, PAY): "not_exited",
    (PAID, PAY): "already_paid",
}


def next_state(table: dict, state: str, action: str) -> str:
    """Return the target state or raise Conflict for an illegal transition."""
    target = table.get((state, action))
    if target is None:
        reason = _REJECTIONS.get((state, action), "illegal_transition")
        raise Conflict(f"cannot {action} from {state}", reason=reason)
    return target


def source_state(table: dict, action: str) -> str:
    """The single state an action may start from; used to build update guards."""
    sources = [state for (state, act) in table if act == action]
    if len(sources) != 1:
        raise ValueError(f"action {action} needs exactly one source state, found {sources}")
    return sources[0]


def start_of_day(now: datetime) -> datetime:
    """Midnight UTC of the naive-UTC moment `now`."""
    return datetime.combine(now.date(), time.min)


def is_expired(scheduled_time: datetime, now: datetime) -> bool:
    """Scheduled on a UTC calendar day before today, and already in the past.

    Both moments are naive UTC, so day boundaries are UTC midnight, not the
    server's local midnight.
    """
    return scheduled_time.date() < now.date() and scheduled_time < now


def effective_token_status(status: str, scheduled_time: datetime, now: datetime) -> str:
    if status == PENDING and is_expired(scheduled_time, now):
        return EXPIRED
    return status


def entry_state(exit_time, is_paid: bool) -> str:
    if exit_time is None:
        return OPEN
    return PAID if is_paid else CLOSED
