# parking_core/routers/vehicles.py
"""Gate endpoints — vehicle entry, exit with billing, payment, log."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from parking_core.routers.deps import get_gate, require_staff
from parking_core.schemas.actor import Actor
from parking_core.schemas.page import Page
from parking_core.schemas.vehicle_entry import VehicleEntryCreate, VehicleEntryOut, VehicleExit
from parking_core.services.gate_service import GateService

router = APIRouter()


@router.post("/vehicles/entry", response_model=VehicleEntryOut, status_code=status.HTTP_201_CREATED,
             summary="Gate-in, optionally with a prebooking token")
def vehicle_entry(body: VehicleEntryCreate, actor: Actor = Depends(require_staff),
                  gate: GateService = Depends(get_gate)):
    """With token_code, identity fields come from the booking and body values are ignored."""
    return gate.enter_with_optional_token(body, token_code=body.token_code, actor=actor)


@router.put("/vehicles/exit/{entry_id}", response_model=VehicleEntryOut, summary="Gate-out and bill")
def vehicle_exit(entry_id: int, body: Optional[VehicleExit] = None, actor: Actor = Depends(require_staff),
                 gate: GateService = Depends(get_gate)):
    return gate.close(entry_id, body.notes if body else None)


@router.put("/vehicles/payment/{entry_id}", response_model=VehicleEntryOut, summary="Mark bill as paid")
def vehicle_payment(entry_id: int, actor: Actor = Depends(require_staff),
                    gate: GateService = Depends(get_gate)):
    return gate.pay(entry_id)


@router.get("/vehicles", response_model=Page[VehicleEntryOut], summary="Vehicle log")
def list_vehicles(status: Optional[str] = None, vehicle_type: Optional[str] = None,
                  search: Optional[str] = None,
                  page: int = Query(1, ge=1), limit: Optional[int] = Query(None, ge=1),
                  actor: Actor = Depends(require_staff), gate: GateService = Depends(get_gate)):
    """status: active | exited. search matches plate, name or phone."""
    return gate.tracker.list_entries(status=status, vehicle_type=vehicle_type, search=search,
                                     page=page, limit=limit)


@router.get("/vehicles/{entry_id}", response_model=VehicleEntryOut, summary="One vehicle entry")
def get_vehicle(entry_id: int, actor: Actor = Depends(require_staff),
                gate: GateService = Depends(get_gate)):
    return gate.tracker.get(entry_id)
