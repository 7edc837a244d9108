# parking_core/models/prebooking.py
"""
Prebooking tokens table.
One row per reservation; token_code is the value shown at the gate.
Stored status only ever moves pending → verified or pending → cancelled;
"expired" is derived at read time (see services/lifecycle.py).
"""

from sqlalchemy import Column, Integer, String, DateTime, Text
from parking_core.database import Base


class Prebooking(Base):
    __tablename__ = "prebookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token_code = Column(String(20), unique=True, nullable=False, index=True)
    owner_id = Column(String(100), nullable=False, index=True)
    vehicle_type = Column(String(20), nullable=False)
    vehicle_number = Column(String(20), nullable=False)
    customer_name = Column(String(50), nullable=False)
    phone = Column(String(15), nullable=False)
    scheduled_time = Column(DateTime, nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    created_by = Column(String(100), nullable=False)
    verified_by = Column(String(100))
    verification_time = Column(DateTime)
    notes = Column(Text)
    created_at = Column(DateTime)

    def __repr__(self):
        return f"<Prebooking {self.token_code} plate={self.vehicle_number} status={self.status}>"
