# parking_core/schemas/vehicle_entry.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from parking_core.utils import validators


class VehicleEntryCreate(BaseModel):
    """Gate-in request. Identity fields are ignored when token_code is given."""
    vehicle_type: Optional[str] = None
    vehicle_number: Optional[str] = None
    customer_name: Optional[str] = None
    phone: Optional[str] = None
    token_code: Optional[str] = None

    @field_validator("token_code")
    @classmethod
    def _token_code(cls, v):
        if v is None:
            return None
        v = v.strip().upper()
        return v or None


class VehicleIdentity(BaseModel):
    """Validated identity of a walk-in vehicle."""
    vehicle_type: str
    vehicle_number: str
    customer_name: str
    phone: str

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


class VehicleExit(BaseModel):
    notes: Optional[str] = None

    @field_validator("notes")
    @classmethod
    def _notes(cls, v):
        return validators.validate_notes(v)


class VehicleEntryOut(BaseModel):
    id: int
    vehicle_type: str
    vehicle_number: str
    customer_name: str
    phone: str
    entry_time: datetime
    exit_time: Optional[datetime]
    bill_amount: Optional[int]
    is_paid: bool
    payment_time: Optional[datetime]
    is_prebooked: bool
    token_code: Optional[str]
    added_by: Optional[str]
    notes: Optional[str]

    class Config:
        from_attributes = True
