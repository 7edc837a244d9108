# parking_core/routers/deps.py
"""Shared FastAPI dependencies for the routers."""

from typing import Optional

from fastapi import Depends, Header, HTTPException
from pydantic import ValidationError as SchemaError
from sqlalchemy.orm import Session

from parking_core.database import get_db
from parking_core.schemas.actor import Actor
from parking_core.services.gate_service import GateService


def get_gate(db: Session = Depends(get_db)) -> GateService:
    """One GateService (and one unit of work) per request."""
    return GateService(db)


def get_actor(
    x_actor_id: Optional[str] = Header(default=None),
    x_actor_role: Optional[str] = Header(default="user"),
) -> Actor:
    """
    Caller identity set by the upstream auth proxy.
    Authentication itself happens outside this service.
    """
    if not x_actor_id:
        raise HTTPException(status_code=401, detail="Missing X-Actor-Id header")
    try:
        return Actor(id=x_actor_id, role=x_actor_role or "user")
    except SchemaError:
        raise HTTPException(status_code=401, detail=f"Unknown role '{x_actor_role}'")


def require_staff(actor: Actor = Depends(get_actor)) -> Actor:
    if not actor.is_elevated:
        raise HTTPException(status_code=403, detail="Staff or admin role required")
    return actor
