"""
Change request lifecycle tests.

Tests cover:
  - Creation: validation, summary attachment, initial status
  - Transition table (validate_transition)
  - mark_reviewed / approve / reject, including silent no-ops
  - Mandatory remarks on reject, optional on approve
"""

import re

import pytest

from changedesk.core.exceptions import ValidationError
from changedesk.models import db as _db
from changedesk.services.request_lifecycle import (
    REQUIRED_FIELDS,
    generate_request_id,
    validate_transition,
)


@pytest.fixture()
def lifecycle(coordinator):
    return coordinator.lifecycle


@pytest.fixture()
def pending(lifecycle, payload):
    return lifecycle.create_request(payload())


def _status(store, request_id):
    _db.session.expire_all()
    return store.get_change_request_by_id(request_id).status


# ═════════════════════════════════════════════════════════════════════════
# CREATION
# ═════════════════════════════════════════════════════════════════════════

class TestCreate:
    def test_create_sets_pending_and_summary(self, lifecycle, fake_summarizer, payload):
        cr = lifecycle.create_request(payload())
        assert cr.status == "Pending"
        assert cr.summary == "Fake summary."
        assert cr.remarks is None
        assert cr.implementation_date == "2026-11-01"
        assert fake_summarizer.calls == [{
            "description": "Apply kernel patch 7.93",
            "reason": "Security advisory",
            "impact": "Two hours downtime",
            "system": "SAP ERP",
        }]

    def test_create_persists(self, lifecycle, store, payload):
        cr = lifecycle.create_request(payload())
        _db.session.expire_all()
        assert store.get_change_request_by_id(cr.id).title == "Upgrade ERP kernel"

    def test_missing_fields_reported_per_field(self, lifecycle, fake_summarizer, payload):
        with pytest.raises(ValidationError) as exc:
            lifecycle.create_request(payload(title="  ", impact=""))
        assert exc.value.details == {
            "title": REQUIRED_FIELDS["title"],
            "impact": REQUIRED_FIELDS["impact"],
        }
        assert fake_summarizer.calls == []

    def test_unknown_priority(self, lifecycle, payload):
        with pytest.raises(ValidationError) as exc:
            lifecycle.create_request(payload(priority="Urgent"))
        assert "priority" in exc.value.details

    def test_snake_case_implementation_date(self, lifecycle, payload):
        data = payload()
        data.pop("implementationDate")
        data["implementation_date"] = "2027-01-15"
        assert lifecycle.create_request(data).implementation_date == "2027-01-15"

    def test_generated_ids_unique_and_shaped(self):
        ids = {generate_request_id() for _ in range(200)}
        assert len(ids) == 200
        assert all(re.fullmatch(r"\d{13}-[0-9a-z]{9}", i) for i in ids)


# ═════════════════════════════════════════════════════════════════════════
# TRANSITION TABLE
# ═════════════════════════════════════════════════════════════════════════

class TestValidateTransition:
    def test_valid(self, pending):
        v = validate_transition(pending, "approve")
        assert v == {"valid": True, "from": "Pending", "to": "Approved", "reason": None}

    def test_unknown_action(self, pending):
        v = validate_transition(pending, "archive")
        assert v["valid"] is False
        assert "Unknown action" in v["reason"]

    def test_mark_reviewed_only_from_pending(self, pending):
        pending.status = "Reviewed"
        assert validate_transition(pending, "mark_reviewed")["valid"] is False


# ═════════════════════════════════════════════════════════════════════════
# TRANSITIONS
# ═════════════════════════════════════════════════════════════════════════

class TestTransitions:
    def test_mark_reviewed(self, lifecycle, store, pending):
        result = lifecycle.mark_reviewed(pending.id)
        assert result["changed"] is True
        assert result["previous_status"] == "Pending"
        assert _status(store, pending.id) == "Reviewed"

    def test_mark_reviewed_twice_is_noop(self, lifecycle, store, pending):
        lifecycle.mark_reviewed(pending.id)
        result = lifecycle.mark_reviewed(pending.id)
        assert result["changed"] is False
        assert _status(store, pending.id) == "Reviewed"

    def test_approve_from_reviewed_with_remarks(self, lifecycle, store, pending):
        lifecycle.mark_reviewed(pending.id)
        lifecycle.approve(pending.id, "  looks good ")
        _db.session.expire_all()
        cr = store.get_change_request_by_id(pending.id)
        assert cr.status == "Approved"
        assert cr.remarks == "looks good"

    def test_approve_blank_remarks_stored_absent(self, lifecycle, store, pending):
        lifecycle.approve(pending.id, "   ")
        _db.session.expire_all()
        d = store.get_change_request_by_id(pending.id).to_dict()
        assert d["status"] == "Approved"
        assert "remarks" not in d

    def test_reject_requires_remarks(self, lifecycle, store, pending):
        with pytest.raises(ValidationError):
            lifecycle.reject(pending.id, "  ")
        assert _status(store, pending.id) == "Pending"

    def test_reject(self, lifecycle, store, pending):
        lifecycle.reject(pending.id, "insufficient testing")
        _db.session.expire_all()
        cr = store.get_change_request_by_id(pending.id)
        assert cr.status == "Rejected"
        assert cr.remarks == "insufficient testing"

    def test_terminal_states_are_final(self, lifecycle, store, pending):
        lifecycle.reject(pending.id, "no")
        assert lifecycle.approve(pending.id)["changed"] is False
        assert lifecycle.mark_reviewed(pending.id)["changed"] is False
        assert lifecycle.reject(pending.id, "again")["changed"] is False
        _db.session.expire_all()
        cr = store.get_change_request_by_id(pending.id)
        assert cr.status == "Rejected"
        assert cr.remarks == "no"

    def test_unknown_id_is_noop(self, lifecycle):
        result = lifecycle.approve("does-not-exist")
        assert result["changed"] is False
        assert result["previous_status"] is None

    def test_transition_keeps_other_fields(self, lifecycle, store, pending):
        before = pending.to_dict()
        lifecycle.approve(pending.id)
        _db.session.expire_all()
        after = store.get_change_request_by_id(pending.id).to_dict()
        for key in ("title", "requestDate", "summary", "requester", "implementationDate"):
            assert after[key] == before[key]
