# tests/test_billing_service.py
"""Unit tests for fee computation (pure, no DB)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import datetime, timedelta
from parking_core.services.billing_service import (
    BillingEngine, RateCard, compute_fee, days_billed, load_rates,
)

T0 = datetime(2026, 3, 10, 9, 0, 0)

RATES = load_rates({
    "bike": {"day1": 10, "additional": 15},
    "car": {"day1": 30, "additional": 45},
    "lorry": {"day1": 50, "additional": 75},
})


class TestComputeFee:
    @pytest.mark.parametrize("vehicle_type", ["bike", "car", "lorry"])
    def test_same_instant_bills_first_day(self, vehicle_type):
        assert compute_fee(T0, T0, vehicle_type, RATES) == RATES[vehicle_type].day1

    def test_sub_minute_stay_bills_full_day(self):
        assert compute_fee(T0, T0 + timedelta(seconds=20), "bike", RATES) == 10

    def test_exactly_one_day_is_one_day(self):
        assert compute_fee(T0, T0 + timedelta(hours=24), "car", RATES) == 30

    def test_one_millisecond_over_a_day_starts_day_two(self):
        assert compute_fee(T0, T0 + timedelta(hours=24, milliseconds=1), "car", RATES) == 75

    def test_36_hours_medium_class(self):
        # ceil(36/24) = 2 days → 30 + 45
        assert compute_fee(T0, T0 + timedelta(hours=36), "car", RATES) == 75

    def test_heavy_class_three_days(self):
        assert compute_fee(T0, T0 + timedelta(hours=49), "lorry", RATES) == 50 + 2 * 75

    def test_unknown_vehicle_type_bills_zero(self):
        assert compute_fee(T0, T0 + timedelta(hours=5), "spaceship", RATES) == 0

    def test_non_decreasing_in_exit_time(self):
        previous = 0
        for minutes in range(0, 6 * 24 * 60, 97):
            fee = compute_fee(T0, T0 + timedelta(minutes=minutes), "car", RATES)
            assert fee >= previous
            previous = fee

    def test_default_rates_cover_every_vehicle_type(self):
        for vehicle_type in ("bike", "car", "auto", "van", "bus", "lorry"):
            assert compute_fee(T0, T0 + timedelta(hours=1), vehicle_type) > 0


class TestDaysBilled:
    def test_minimum_one_day(self):
        assert days_billed(T0, T0) == 1

    def test_rounds_up(self):
        assert days_billed(T0, T0 + timedelta(hours=40)) == 2


class TestBillingEngine:
    def test_uses_its_own_rate_table(self):
        engine = BillingEngine({"car": RateCard(day1=100, additional=1)})
        assert engine.compute_fee(T0, T0 + timedelta(hours=30), "car") == 101
        assert engine.compute_fee(T0, T0 + timedelta(hours=30), "bike") == 0

    def test_rate_for(self):
        engine = BillingEngine(RATES)
        assert engine.rate_for("bike") == RateCard(10, 15)
        assert engine.rate_for("tram") is None
