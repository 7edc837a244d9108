# parking_core/schemas/actor.py
from pydantic import BaseModel, field_validator

ROLES = ("user", "staff", "admin")
ELEVATED_ROLES = frozenset({"staff", "admin"})


class Actor(BaseModel):
    """Caller identity as resolved by the (external) auth layer."""
    id: str
    role: str = "user"

    @field_validator("role")
    @classmethod
    def _role(cls, v):
        v = (v or "").strip().lower()
        if v not in ROLES:
            raise ValueError(f"role must be one of {', '.join(ROLES)}")
        return v

    @property
    def is_elevated(self) -> bool:
        return self.role in ELEVATED_ROLES
