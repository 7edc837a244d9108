# parking_core/utils/validators.py
"""
Field normalisation and shape checks shared by the pydantic schemas.
Accepts plates like "TN75AA8989" or "tn 75 aa 8989".
"""

import re

VEHICLE_TYPES = ("bike", "car", "auto", "van", "bus", "lorry")

PLATE_PATTERN = re.compile(r"^[A-Z]{2}[0-9]{1,2}[A-Z]{1,2}[0-9]{4}$")
PHONE_PATTERN = re.compile(r"^[6-9]\d{9}$")
_WHITESPACE = re.compile(r"\s+")

MAX_NAME_LENGTH = 50
MAX_NOTES_LENGTH = 200


def normalize_plate(value: str) -> str:
    """Uppercase and drop every whitespace character."""
    return _WHITESPACE.sub("", value or "").upper()


def validate_plate(value: str) -> str:
    plate = normalize_plate(value)
    if not PLATE_PATTERN.match(plate):
        raise ValueError(f'invalid vehicle number "{value}" (e.g. "TN75AA8989")')
    return plate


def validate_phone(value: str) -> str:
    phone = (value or "").strip()
    if not PHONE_PATTERN.match(phone):
        raise ValueError("phone must be a valid 10-digit number")
    return phone


def validate_name(value: str) -> str:
    name = (value or "").strip()
    if not name:
        raise ValueError("customer name is required")
    if len(name) > MAX_NAME_LENGTH:
        raise ValueError(f"customer name cannot exceed {MAX_NAME_LENGTH} characters")
    return name


def validate_vehicle_type(value: str) -> str:
    vehicle_type = (value or "").strip().lower()
    if vehicle_type not in VEHICLE_TYPES:
        raise ValueError(f"vehicle type must be one of {', '.join(VEHICLE_TYPES)}")
    return vehicle_type


def validate_notes(value):
    if value is None:
        return None
    if len(value) > MAX_NOTES_LENGTH:
        raise ValueError(f"notes cannot exceed {MAX_NOTES_LENGTH} characters")
    return value
