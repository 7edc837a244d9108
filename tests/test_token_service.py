# tests/test_token_service.py
"""Unit tests for prebooking tokens: issue, preview, consume, cancel, expiry."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import re
import pytest
from datetime import datetime, timedelta
from parking_core.errors import Conflict, Forbidden, NotFound, ValidationError
from parking_core.models.prebooking import Prebooking
from parking_core.schemas.actor import Actor
from parking_core.services.gate_service import GateService
from parking_core.services.token_service import generate_token_code

from conftest import ScriptedRandom


def make_booking(clock, **overrides):
    details = {
        "vehicle_type": "car",
        "vehicle_number": "tn 75 aa 8989",
        "customer_name": "Priya",
        "phone": "9876543210",
        "scheduled_time": clock() + timedelta(hours=2),
    }
    details.update(overrides)
    return details


class TestIssue:
    def test_issue_creates_pending_token(self, gate, clock, customer):
        token = gate.issue(make_booking(clock), customer)

        assert token.status == "pending"
        assert re.fullmatch(r"ASR\d{6}", token.token_code)
        assert token.vehicle_number == "TN75AA8989"
        assert token.owner_id == customer.id
        assert token.created_by == customer.id
        assert token.verified_by is None

    def test_scheduled_less_than_an_hour_ahead_rejected(self, gate, clock, customer):
        with pytest.raises(ValidationError) as exc:
            gate.issue(make_booking(clock, scheduled_time=clock() + timedelta(minutes=59)), customer)
        assert exc.value.reason == "scheduled_too_soon"

    def test_exactly_one_hour_ahead_accepted(self, gate, clock, customer):
        token = gate.issue(make_booking(clock, scheduled_time=clock() + timedelta(hours=1)), customer)
        assert token.status == "pending"

    def test_malformed_input_is_validation_error(self, gate, clock, customer):
        with pytest.raises(ValidationError):
            gate.issue(make_booking(clock, phone="12345"), customer)
        with pytest.raises(ValidationError):
            gate.issue(make_booking(clock, vehicle_type="tank"), customer)

    def test_code_collision_regenerates(self, db, clock, customer):
        gate = GateService(db, clock=clock, rng=ScriptedRandom(42, 42, 17))

        first = gate.issue(make_booking(clock), customer)
        second = gate.issue(make_booking(clock), customer)

        assert first.token_code.endswith("42")
        assert second.token_code.endswith("17")
        assert db.query(Prebooking).count() == 2

    def test_code_space_exhausted_raises_validation_error(self, db, clock, customer):
        gate = GateService(db, clock=clock, rng=ScriptedRandom(42))

        gate.issue(make_booking(clock), customer)
        with pytest.raises(ValidationError) as exc:
            gate.issue(make_booking(clock), customer)

        assert exc.value.reason == "token_code_exhausted"
        assert db.query(Prebooking).count() == 1


class TestTokenCode:
    def test_format(self):
        moment = datetime(2026, 3, 10, 9, 0, 3, 427000)
        code = generate_token_code(moment, ScriptedRandom(5), prefix="ASR")
        assert code == "ASR342705"


class TestPreview:
    def test_preview_returns_pending_without_mutating(self, gate, clock, customer, db):
        token = gate.issue(make_booking(clock), customer)

        preview = gate.preview_by_code(token.token_code)
        gate.preview_by_code(token.token_code)

        assert preview.status == "pending"
        assert db.get(Prebooking, token.id).status == "pending"

    def test_preview_accepts_lowercase_code(self, gate, clock, customer):
        token = gate.issue(make_booking(clock), customer)
        assert gate.preview_by_code(token.token_code.lower()).id == token.id

    def test_unknown_code_not_found(self, gate):
        with pytest.raises(NotFound):
            gate.preview_by_code("ASR000000")

    def test_verified_token_not_found(self, gate, clock, customer, staff):
        token = gate.issue(make_booking(clock), customer)
        gate.ledger.consume(token.token_code, staff)
        with pytest.raises(NotFound):
            gate.preview_by_code(token.token_code)

    def test_token_from_an_earlier_day_is_expired(self, gate, clock, customer):
        token = gate.issue(make_booking(clock), customer)
        clock.advance(days=2)

        with pytest.raises(Conflict) as exc:
            gate.preview_by_code(token.token_code)
        assert exc.value.reason == "expired"

    def test_missed_slot_earlier_today_is_not_expired(self, gate, clock, customer):
        token = gate.issue(make_booking(clock), customer)   # 11:00 today
        clock.advance(hours=6)                             # 15:00 today
        assert gate.preview_by_code(token.token_code).status == "pending"


class TestConsume:
    def test_consume_marks_verified(self, gate, clock, customer, staff):
        token = gate.issue(make_booking(clock), customer)
        consumed = gate.ledger.consume(token.token_code, staff)

        assert consumed.status == "verified"
        assert consumed.verified_by == staff.id
        assert consumed.verification_time == clock()

    def test_second_consume_conflicts(self, gate, clock, customer, staff):
        token = gate.issue(make_booking(clock), customer)
        gate.ledger.consume(token.token_code, staff)

        with pytest.raises(Conflict) as exc:
            gate.ledger.consume(token.token_code, staff)
        assert exc.value.reason == "token_not_pending"

    def test_consume_unknown_code_not_found(self, gate, staff):
        with pytest.raises(NotFound):
            gate.ledger.consume("ASR999999", staff)

    def test_consume_expired_conflicts_and_keeps_status(self, gate, clock, customer, staff, db):
        token = gate.issue(make_booking(clock), customer)
        clock.advance(days=3)

        with pytest.raises(Conflict) as exc:
            gate.ledger.consume(token.token_code, staff)
        assert exc.value.reason == "expired"
        assert db.get(Prebooking, token.id).status == "pending"

    def test_consume_cancelled_conflicts(self, gate, clock, customer, staff):
        token = gate.issue(make_booking(clock), customer)
        gate.cancel(token.id, customer)
        with pytest.raises(Conflict):
            gate.ledger.consume(token.token_code, staff)


class TestCancel:
    def test_owner_can_cancel(self, gate, clock, customer):
        token = gate.issue(make_booking(clock), customer)
        assert gate.cancel(token.id, customer).status == "cancelled"

    def test_staff_can_cancel_any(self, gate, clock, customer, staff):
        token = gate.issue(make_booking(clock), customer)
        assert gate.cancel(token.id, staff).status == "cancelled"

    def test_other_user_forbidden(self, gate, clock, customer, other_customer, db):
        token = gate.issue(make_booking(clock), customer)
        with pytest.raises(Forbidden):
            gate.cancel(token.id, other_customer)
        assert db.get(Prebooking, token.id).status == "pending"

    def test_cancel_twice_conflicts(self, gate, clock, customer):
        token = gate.issue(make_booking(clock), customer)
        gate.cancel(token.id, customer)
        with pytest.raises(Conflict):
            gate.cancel(token.id, customer)

    def test_cancel_verified_conflicts(self, gate, clock, customer, staff):
        token = gate.issue(make_booking(clock), customer)
        gate.ledger.consume(token.token_code, staff)
        with pytest.raises(Conflict):
            gate.cancel(token.id, customer)

    def test_cancel_expired_conflicts(self, gate, clock, customer):
        token = gate.issue(make_booking(clock), customer)
        clock.advance(days=2)
        with pytest.raises(Conflict) as exc:
            gate.cancel(token.id, customer)
        assert exc.value.reason == "expired"

    def test_cancel_unknown_not_found(self, gate, customer):
        with pytest.raises(NotFound):
            gate.cancel(12345, customer)


class TestListing:
    def test_records_show_effective_status(self, gate, clock, customer):
        token = gate.issue(make_booking(clock), customer)
        clock.advance(days=2)
        assert gate.ledger.get(token.id).status == "expired"

    def test_list_for_owner_filters_by_owner(self, gate, clock, customer, other_customer):
        gate.issue(make_booking(clock), customer)
        gate.issue(make_booking(clock), other_customer)

        mine = gate.ledger.list_for_owner(customer.id).items
        assert [t.owner_id for t in mine] == [customer.id]

    def test_status_filters_split_pending_and_expired(self, gate, clock, customer):
        old = gate.issue(make_booking(clock), customer)
        clock.advance(days=2)
        fresh = gate.issue(make_booking(clock), customer)

        pending = gate.ledger.list_all(status="pending").items
        expired = gate.ledger.list_all(status="expired").items

        assert [t.id for t in pending] == [fresh.id]
        assert [t.id for t in expired] == [old.id]
        assert expired[0].status == "expired"

    def test_list_by_scheduled_date(self, gate, clock, customer):
        today = gate.issue(make_booking(clock), customer)
        gate.issue(make_booking(clock, scheduled_time=clock() + timedelta(days=3)), customer)

        listed = gate.ledger.list_all(on_date=clock().date()).items
        assert [t.id for t in listed] == [today.id]

    def test_listing_reports_totals_and_clamps_limit(self, gate, clock, customer):
        for _ in range(3):
            gate.issue(make_booking(clock), customer)

        listed = gate.ledger.list_for_owner(customer.id, limit=-1)

        assert len(listed.items) == 1
        assert listed.pagination.model_dump() == {"current": 1, "pages": 3, "total": 3}

    def test_unknown_status_filter_rejected(self, gate):
        with pytest.raises(ValidationError):
            gate.ledger.list_all(status="lost")

    def test_actor_role_validated(self):
        with pytest.raises(Exception):
            Actor(id="x", role="superuser")
