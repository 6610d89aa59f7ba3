import pytest
from fastapi.testclient import TestClient

from app.core.errors import AccessDeniedError, NotFoundError, NotificationError, ValidationError
from app.main import app
from app.services import notifications
from tests.helpers import caller, headers, notifications_for


def _notify(db, user, title="Hello", notification_type="reminder"):
    return notifications.notify(
        db,
        user_id=user.id,
        notification_type=notification_type,
        title=title,
        message=f"{title} message",
    )


def test_notify_appends_unread_row(db_session, people):
    n = _notify(db_session, people.peer)
    db_session.commit()
    assert n.id is not None
    assert n.is_read is False
    assert [x.id for x in notifications_for(db_session, people.peer)] == [n.id]


def test_notify_failure_raises_notification_error(db_session, people):
    # violates the notification type CHECK constraint
    with pytest.raises(NotificationError):
        _notify(db_session, people.peer, notification_type="shout")
    # the surrounding transaction is still usable
    _notify(db_session, people.peer)
    db_session.commit()
    assert len(notifications_for(db_session, people.peer)) == 1


def test_notify_best_effort_swallows_failures(db_session, people):
    assert notifications.notify_best_effort(
        db_session, user_id=people.peer.id, notification_type="shout", title="t", message="m"
    ) is None


def test_list_newest_first_and_unread_filter(db_session, people):
    first = _notify(db_session, people.peer, "First")
    second = _notify(db_session, people.peer, "Second")
    _notify(db_session, people.employee, "Not mine")
    db_session.commit()

    rows, total = notifications.list_notifications(db_session, caller(people.peer))
    assert total == 2
    assert [n.id for n in rows] == [second.id, first.id]

    notifications.mark_read(db_session, caller(people.peer), first.id)
    rows, total = notifications.list_notifications(db_session, caller(people.peer), unread_only=True)
    assert [n.id for n in rows] == [second.id]


def test_mark_read_checks_owner(db_session, people):
    n = _notify(db_session, people.peer)
    db_session.commit()

    with pytest.raises(AccessDeniedError):
        notifications.mark_read(db_session, caller(people.employee), n.id)
    with pytest.raises(NotFoundError):
        notifications.mark_read(db_session, caller(people.peer), n.id + 1000)

    assert notifications.mark_read(db_session, caller(people.peer), n.id).is_read is True


def test_mark_all_read(db_session, people):
    _notify(db_session, people.peer, "a")
    _notify(db_session, people.peer, "b")
    other = _notify(db_session, people.employee, "c")
    db_session.commit()

    assert notifications.mark_all_read(db_session, caller(people.peer)) == 2
    assert all(n.is_read for n in notifications_for(db_session, people.peer))
    db_session.refresh(other)
    assert other.is_read is False


def test_send_notification_validation(db_session, people):
    admin = caller(people.admin)
    n = notifications.send_notification(
        db_session, admin, user_id=people.peer.id, notification_type="reminder",
        title=" Reminder ", message="Please finish your review",
    )
    assert n.title == "Reminder"

    with pytest.raises(AccessDeniedError):
        notifications.send_notification(
            db_session, caller(people.hr), user_id=people.peer.id, notification_type="reminder",
            title="t", message="m",
        )
    with pytest.raises(ValidationError):
        notifications.send_notification(
            db_session, admin, user_id=people.peer.id, notification_type="shout", title="t", message="m",
        )
    with pytest.raises(ValidationError):
        notifications.send_notification(
            db_session, admin, user_id=people.peer.id, notification_type="reminder", title="  ", message="m",
        )
    with pytest.raises(NotFoundError):
        notifications.send_notification(
            db_session, admin, user_id=4040, notification_type="reminder", title="t", message="m",
        )


def test_notifications_api(db_session, people):
    client = TestClient(app)

    r = client.post(
        "/notifications",
        json={
            "user_id": people.peer.id,
            "notification_type": "reminder",
            "title": "Reminder",
            "message": "Review due Friday",
        },
        headers=headers(people.admin),
    )
    assert r.status_code == 201
    nid = r.json()["id"]

    r = client.get("/notifications?unread_only=true", headers=headers(people.peer))
    assert r.status_code == 200
    assert [n["id"] for n in r.json()] == [nid]

    r = client.post(f"/notifications/{nid}/read", headers=headers(people.employee))
    assert r.status_code == 403
    r = client.post(f"/notifications/{nid}/read", headers=headers(people.peer))
    assert r.status_code == 200
    assert r.json()["is_read"] is True

    r = client.post("/notifications/read-all", headers=headers(people.peer))
    assert r.status_code == 200
    assert r.json() == {"updated": 0}

    r = client.get("/notifications?include_pagination=true", headers=headers(people.peer))
    assert r.json()["pagination"]["total"] == 1
