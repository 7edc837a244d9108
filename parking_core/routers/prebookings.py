# parking_core/routers/prebookings.py
"""Prebooking endpoints — issue, verify (preview), cancel, list."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from parking_core.routers.deps import get_actor, get_gate, require_staff
from parking_core.schemas.actor import Actor
from parking_core.schemas.page import Page
from parking_core.schemas.prebooking import PrebookingCreate, PrebookingOut
from parking_core.services.gate_service import GateService

router = APIRouter()


@router.post("/prebookings", response_model=PrebookingOut, status_code=status.HTTP_201_CREATED,
             summary="Book a slot and receive a token")
def create_prebooking(body: PrebookingCreate, actor: Actor = Depends(get_actor),
                      gate: GateService = Depends(get_gate)):
    """Scheduled time must be at least PREBOOKING_MIN_LEAD_MINUTES ahead."""
    return gate.issue(body, actor)


@router.get("/prebookings/mine", response_model=Page[PrebookingOut], summary="Caller's own bookings")
def my_prebookings(status: Optional[str] = None,
                   page: int = Query(1, ge=1), limit: Optional[int] = Query(None, ge=1),
                   actor: Actor = Depends(get_actor), gate: GateService = Depends(get_gate)):
    return gate.ledger.list_for_owner(actor.id, status=status, page=page, limit=limit)


@router.get("/prebookings/verify/{token_code}", response_model=PrebookingOut,
            summary="Staff preview of a token before gate-in")
def verify_token(token_code: str, actor: Actor = Depends(require_staff),
                 gate: GateService = Depends(get_gate)):
    return gate.preview_by_code(token_code)


@router.get("/prebookings", response_model=Page[PrebookingOut], summary="All bookings (staff)")
def list_prebookings(status: Optional[str] = None, on_date: Optional[date] = None,
                     page: int = Query(1, ge=1), limit: Optional[int] = Query(None, ge=1),
                     actor: Actor = Depends(require_staff), gate: GateService = Depends(get_gate)):
    """Filter by effective status and/or scheduled calendar date."""
    return gate.ledger.list_all(status=status, on_date=on_date, page=page, limit=limit)


@router.put("/prebookings/cancel/{prebooking_id}", response_model=PrebookingOut,
            summary="Cancel a pending booking")
def cancel_prebooking(prebooking_id: int, actor: Actor = Depends(get_actor),
                      gate: GateService = Depends(get_gate)):
    return gate.cancel(prebooking_id, actor)
