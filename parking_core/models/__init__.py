# Parking core — Database Models
# Import all models here for SQLAlchemy discovery

from parking_core.models.prebooking import Prebooking         # noqa
from parking_core.models.vehicle_entry import VehicleEntry    # noqa
