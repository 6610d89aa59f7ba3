from datetime import date

import pytest
from fastapi.testclient import TestClient

from app.core.errors import (
    AccessDeniedError,
    ConflictError,
    CycleNotFoundError,
    InvalidStateError,
    ValidationError,
)
from app.main import app
from app.models.review_assignment import ReviewerAssignment
from app.models.review_cycle import ReviewCycle
from app.models.review_form import ReviewForm
from app.services import cycles, forms
from tests.helpers import (
    COMPLETE,
    assign,
    caller,
    create_cycle,
    form_input,
    headers,
    notifications_for,
)


def _create(db, user, **overrides):
    fields = dict(
        name="H1 2027",
        cycle_type="6-month",
        start_date=date(2027, 1, 1),
        end_date=date(2027, 6, 30),
    )
    fields.update(overrides)
    return cycles.create_cycle(db, caller(user), **fields)


def test_create_cycle_defaults_to_draft(db_session, people):
    c = _create(db_session, people.admin, name="  H1 2027  ")
    assert c.id is not None
    assert c.status == "draft"
    assert c.name == "H1 2027"
    assert c.created_by == people.admin.id


def test_create_cycle_with_initial_status(db_session, people):
    c = _create(db_session, people.admin, initial_status="active")
    assert c.status == "active"

    with pytest.raises(ValidationError):
        _create(db_session, people.admin, initial_status="archived")


def test_create_cycle_rejects_bad_dates_and_type(db_session, people):
    with pytest.raises(ValidationError):
        _create(db_session, people.admin, start_date=date(2027, 6, 30), end_date=date(2027, 6, 30))
    with pytest.raises(ValidationError):
        _create(db_session, people.admin, start_date=date(2027, 7, 1), end_date=date(2027, 6, 30))
    with pytest.raises(ValidationError):
        _create(db_session, people.admin, cycle_type="quarterly")
    with pytest.raises(ValidationError):
        _create(db_session, people.admin, name="   ")
    assert db_session.query(ReviewCycle).count() == 0


def test_create_cycle_admin_only(db_session, people):
    with pytest.raises(AccessDeniedError):
        _create(db_session, people.hr)


def test_create_cycle_api(db_session, people):
    client = TestClient(app)
    payload = {
        "name": "FY 2027",
        "cycle_type": "1-year",
        "start_date": "2027-01-01",
        "end_date": "2027-12-31",
    }
    r = client.post("/cycles", json=payload, headers=headers(people.admin))
    assert r.status_code == 201
    assert r.json()["status"] == "draft"

    r = client.post("/cycles", json=payload, headers=headers(people.employee))
    assert r.status_code == 403
    assert r.json()["code"] == "PERMISSION_DENIED"

    bad = dict(payload, end_date="2026-12-31")
    r = client.post("/cycles", json=bad, headers=headers(people.admin))
    assert r.status_code == 400
    assert r.json()["code"] == "VALIDATION_ERROR"


def test_lock_and_reopen(db_session, people):
    c = create_cycle(db_session, people.admin, status="active")
    admin = caller(people.admin)

    assert cycles.lock_cycle(db_session, admin, c.id).status == "locked"
    # idempotent
    assert cycles.lock_cycle(db_session, admin, c.id).status == "locked"

    assert cycles.reopen_cycle(db_session, admin, c.id).status == "active"

    with pytest.raises(InvalidStateError):
        cycles.reopen_cycle(db_session, admin, c.id)


def test_lock_accepts_draft_but_not_completed(db_session, people):
    admin = caller(people.admin)
    draft = create_cycle(db_session, people.admin, status="draft")
    assert cycles.lock_cycle(db_session, admin, draft.id).status == "locked"

    done = create_cycle(db_session, people.admin, status="completed", name="Old")
    with pytest.raises(InvalidStateError):
        cycles.lock_cycle(db_session, admin, done.id)


def test_lock_missing_cycle(db_session, people):
    with pytest.raises(CycleNotFoundError):
        cycles.lock_cycle(db_session, caller(people.admin), 999)


def test_transitions_are_admin_only(db_session, people):
    c = create_cycle(db_session, people.admin, status="active")
    with pytest.raises(AccessDeniedError):
        cycles.lock_cycle(db_session, caller(people.hr), c.id)


def test_transition_api_errors(db_session, people):
    c = create_cycle(db_session, people.admin, status="active")
    client = TestClient(app)

    r = client.post(f"/cycles/{c.id}/reopen", headers=headers(people.admin))
    assert r.status_code == 409
    body = r.json()
    assert body["code"] == "INVALID_STATUS_TRANSITION"
    assert body["current_status"] == "active"

    r = client.post("/cycles/4242/lock", headers=headers(people.admin))
    assert r.status_code == 404
    assert r.json()["code"] == "CYCLE_NOT_FOUND"

    r = client.post(f"/cycles/{c.id}/lock", headers=headers(people.admin))
    assert r.status_code == 200
    assert r.json()["status"] == "locked"


def test_activate_cycle(db_session, people):
    admin = caller(people.admin)
    c = create_cycle(db_session, people.admin, status="draft")
    assert cycles.activate_cycle(db_session, admin, c.id).status == "active"
    assert cycles.activate_cycle(db_session, admin, c.id).status == "active"

    cycles.lock_cycle(db_session, admin, c.id)
    with pytest.raises(InvalidStateError):
        cycles.activate_cycle(db_session, admin, c.id)


def test_complete_cycle_notifies_reviewers(db_session, people):
    c = create_cycle(db_session, people.admin, status="active")
    assign(db_session, people.admin, c, people.employee, (people.peer, "peer"), (people.manager, "manager"))

    done = cycles.complete_cycle(db_session, caller(people.admin), c.id)
    assert done.status == "completed"

    assert len(notifications_for(db_session, people.peer, "cycle_completed")) == 1
    assert len(notifications_for(db_session, people.manager, "cycle_completed")) == 1
    assert notifications_for(db_session, people.employee, "cycle_completed") == []

    with pytest.raises(InvalidStateError):
        cycles.complete_cycle(db_session, caller(people.admin), c.id)


def test_update_cycle_merges_fields(db_session, people):
    c = create_cycle(db_session, people.admin, status="draft")
    admin = caller(people.admin)

    updated = cycles.update_cycle(db_session, admin, c.id, name="Renamed")
    assert updated.name == "Renamed"
    assert updated.cycle_type == "6-month"

    # new start date must still precede the stored end date
    with pytest.raises(ValidationError):
        cycles.update_cycle(db_session, admin, c.id, start_date=date(2027, 1, 1))

    cycles.lock_cycle(db_session, admin, c.id)
    with pytest.raises(InvalidStateError):
        cycles.update_cycle(db_session, admin, c.id, name="Too late")


def test_update_cycle_api(db_session, people):
    c = create_cycle(db_session, people.admin, status="active")
    client = TestClient(app)
    r = client.patch(f"/cycles/{c.id}", json={"cycle_type": "1-year"}, headers=headers(people.admin))
    assert r.status_code == 200
    assert r.json()["cycle_type"] == "1-year"
    assert r.json()["status"] == "active"


def test_list_cycles_requires_admin_or_hr(db_session, people):
    create_cycle(db_session, people.admin, status="active", name="A")
    create_cycle(db_session, people.admin, status="draft", name="B")
    client = TestClient(app)

    r = client.get("/cycles", headers=headers(people.hr))
    assert r.status_code == 200
    assert [c["name"] for c in r.json()] == ["B", "A"]

    r = client.get("/cycles?status=active", headers=headers(people.hr))
    assert [c["name"] for c in r.json()] == ["A"]

    r = client.get("/cycles", headers=headers(people.employee))
    assert r.status_code == 403


def test_get_cycle_summary(db_session, people):
    c = create_cycle(db_session, people.admin, status="active")
    assign(db_session, people.admin, c, people.employee, (people.peer, "peer"), (people.manager, "manager"))
    forms.save_form(
        db_session,
        caller(people.peer),
        form_input(c, people.employee, people.peer, "peer", status="submitted", **dict(COMPLETE, overall_rating=3)),
    )

    client = TestClient(app)
    r = client.get(f"/cycles/{c.id}", headers=headers(people.hr))
    assert r.status_code == 200
    body = r.json()
    assert body["summary"] == {
        "total_forms": 2,
        "submitted_forms": 1,
        "pending_forms": 1,
        "average_rating": 3.0,
    }
    assert len(body["forms"]) == 2


def test_delete_cycle_cascades_unsubmitted_work(db_session, people):
    c = create_cycle(db_session, people.admin, status="active")
    assign(db_session, people.admin, c, people.employee, (people.peer, "peer"))
    forms.save_form(
        db_session,
        caller(people.peer),
        form_input(c, people.employee, people.peer, "peer", strengths="draft only"),
    )

    deleted, forms_deleted, assignments_deleted = cycles.delete_cycle(db_session, caller(people.admin), c.id)
    assert deleted.id == c.id
    assert forms_deleted == 1
    assert assignments_deleted == 1
    assert db_session.get(ReviewCycle, c.id) is None
    assert db_session.query(ReviewForm).count() == 0
    assert db_session.query(ReviewerAssignment).count() == 0


def test_delete_cycle_blocked_by_submitted_forms(db_session, people):
    c = create_cycle(db_session, people.admin, status="active")
    assign(db_session, people.admin, c, people.employee, (people.peer, "peer"))
    forms.save_form(
        db_session,
        caller(people.peer),
        form_input(c, people.employee, people.peer, "peer", status="submitted", **COMPLETE),
    )

    with pytest.raises(ConflictError):
        cycles.delete_cycle(db_session, caller(people.admin), c.id)
    assert db_session.get(ReviewCycle, c.id) is not None
    assert db_session.query(ReviewForm).count() == 1


def test_delete_cycle_permissions_and_missing(db_session, people):
    c = create_cycle(db_session, people.admin, status="draft")
    with pytest.raises(AccessDeniedError):
        cycles.delete_cycle(db_session, caller(people.hr), c.id)
    with pytest.raises(CycleNotFoundError):
        cycles.delete_cycle(db_session, caller(people.admin), c.id + 100)

    client = TestClient(app)
    r = client.delete(f"/cycles/{c.id}", headers=headers(people.admin))
    assert r.status_code == 200
    assert r.json()["cycle"]["id"] == c.id
