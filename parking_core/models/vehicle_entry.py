# parking_core/models/vehicle_entry.py
"""
Vehicle entries table.
A row is open while exit_time is NULL. exit_time and bill_amount are written
together on exit; is_paid/payment_time are written once after that.
token_code references the prebooking consumed to create the entry (no FK:
prebookings can be bulk-cleared independently).
"""

from sqlalchemy import Boolean, Column, Integer, String, DateTime, Text
from parking_core.database import Base


class VehicleEntry(Base):
    __tablename__ = "vehicle_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_type = Column(String(20), nullable=False, index=True)
    vehicle_number = Column(String(20), nullable=False, index=True)
    customer_name = Column(String(50), nullable=False)
    phone = Column(String(15), nullable=False)
    entry_time = Column(DateTime, nullable=False, index=True)
    exit_time = Column(DateTime)
    bill_amount = Column(Integer)
    is_paid = Column(Boolean, default=False, nullable=False)
    payment_time = Column(DateTime)
    token_code = Column(String(20), index=True)
    added_by = Column(String(100))
    notes = Column(Text)

    @property
    def is_prebooked(self) -> bool:
        return self.token_code is not None

    def __repr__(self):
        return f"<VehicleEntry {self.id} plate={self.vehicle_number} exit={self.exit_time} paid={self.is_paid}>"
