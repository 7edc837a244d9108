# parking_core/schemas/prebooking.py
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, field_validator

from parking_core.utils import validators


class PrebookingCreate(BaseModel):
    vehicle_type: str          # bike | car | auto | van | bus | lorry
    vehicle_number: str
    customer_name: str
    phone: str
    scheduled_time: datetime
    notes: Optional[str] = None

    @field_validator("vehicle_type")
    @classmethod
    def _vehicle_type(cls, v):
        return validators.validate_vehicle_type(v)

    @field_validator("vehicle_number")
    @classmethod
    def _vehicle_number(cls, v):
        return validators.validate_plate(v)

    @field_validator("customer_name")
    @classmethod
    def _customer_name(cls, v):
        return validators.validate_name(v)

    @field_validator("phone")
    @classmethod
    def _phone(cls, v):
        return validators.validate_phone(v)

    @field_validator("notes")
    @classmethod
    def _notes(cls, v):
        return validators.validate_notes(v)

    @field_validator("scheduled_time")
    @classmethod
    def _scheduled_time(cls, v):
        # Columns hold naive UTC
        if v.tzinfo is not None:
            v = v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class PrebookingOut(BaseModel):
    id: int
    token_code: str
    owner_id: str
    vehicle_type: str
    vehicle_number: str
    customer_name: str
    phone: str
    scheduled_time: datetime
    status: str                 # pending | verified | cancelled | expired (derived)
    created_by: str
    verified_by: Optional[str]
    verification_time: Optional[datetime]
    notes: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
