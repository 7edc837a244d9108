# parking_core/services/billing_service.py
"""
Parking fee computation.

Fees are per started day: any stay, even a few seconds, bills the first-day
rate, and every further started 24h block bills the additional-day rate.
    days_billed = max(1, ceil(elapsed / 24h))
    amount      = day1 + (days_billed - 1) * additional
Unknown vehicle types bill 0.

Pure functions only: no DB, no clock.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Mapping, Optional

from parking_core.config import settings

MS_PER_DAY = 86_400_000
_ONE_MS = timedelta(milliseconds=1)


@dataclass(frozen=True)
class RateCard:
    day1: int
    additional: int


def load_rates(raw: Mapping[str, Mapping[str, int]]) -> dict:
    """{"car": {"day1": 30, "additional": 45}} → {"car": RateCard(30, 45)}"""
    return {
        vehicle_type: RateCard(day1=int(r["day1"]), additional=int(r["additional"]))
        for vehicle_type, r in raw.items()
    }


def default_rates() -> dict:
    return load_rates(settings.BILLING_RATES)


def days_billed(entry_time: datetime, exit_time: datetime) -> int:
    elapsed_ms = (exit_time - entry_time) // _ONE_MS
    return max(1, math.ceil(elapsed_ms / MS_PER_DAY))


def compute_fee(entry_time: datetime, exit_time: datetime, vehicle_type: str,
                rates: Optional[Mapping[str, RateCard]] = None) -> int:
    """Fee for one stay. Caller guarantees exit_time > entry_time."""
    rate = (rates if rates is not None else default_rates()).get(vehicle_type)
    if rate is None:
        return 0
    additional_days = max(0, days_billed(entry_time, exit_time) - 1)
    return rate.day1 + additional_days * rate.additional


class BillingEngine:
    """compute_fee bound to a fixed rate table."""

    def __init__(self, rates: Optional[Mapping[str, RateCard]] = None):
        self.rates = dict(rates) if rates is not None else default_rates()

    def compute_fee(self, entry_time: datetime, exit_time: datetime, vehicle_type: str) -> int:
        return compute_fee(entry_time, exit_time, vehicle_type, self.rates)

    def rate_for(self, vehicle_type: str) -> Optional[RateCard]:
        return self.rates.get(vehicle_type)
