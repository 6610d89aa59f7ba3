from datetime import date
from types import SimpleNamespace

from sqlalchemy.orm import Session

from app.core.security import Caller
from app.models.review_cycle import ReviewCycle
from app.models.review_notification import ReviewNotification
from app.models.user import User
from app.schemas.review_assignment import ReviewerSpec
from app.schemas.review_form import ReviewFormSave
from app.services import assignments

COMPLETE = {
    "overall_rating": 4,
    "goals_achievement": "Shipped the billing migration",
    "strengths": "Ownership, clear writing",
    "improvements": "Delegate more",
}


def create_user(db: Session, email: str, name: str = "User", role: str = "employee", is_active: bool = True) -> User:
    u = User(email=email, name=name, role=role, is_active=is_active)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


def seed_people(db: Session) -> SimpleNamespace:
    return SimpleNamespace(
        admin=create_user(db, "admin@local.test", "Ada Admin", "admin"),
        hr=create_user(db, "hr@local.test", "Hank HR", "hr"),
        manager=create_user(db, "manager@local.test", "Mia Manager", "manager"),
        peer=create_user(db, "peer@local.test", "Pat Peer", "employee"),
        employee=create_user(db, "employee@local.test", "Eve Employee", "employee"),
        outsider=create_user(db, "outsider@local.test", "Olly Outsider", "intern"),
    )


def caller(user: User) -> Caller:
    return Caller(id=user.id, role=user.role)


def headers(user: User) -> dict:
    return {"X-User-Email": user.email}


def create_cycle(
    db: Session,
    created_by: User,
    status: str = "active",
    name: str = "H2 2026 Reviews",
    cycle_type: str = "6-month",
) -> ReviewCycle:
    c = ReviewCycle(
        name=name,
        cycle_type=cycle_type,
        start_date=date(2026, 7, 1),
        end_date=date(2026, 12, 31),
        status=status,
        created_by=created_by.id,
    )
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


def assign(db: Session, admin: User, cycle: ReviewCycle, employee: User, *pairs):
    """pairs: (reviewer_user, reviewer_type)"""
    rows, _, _ = assignments.assign_reviewers(
        db,
        caller(admin),
        cycle.id,
        employee_id=employee.id,
        reviewers=[ReviewerSpec(reviewer_id=r.id, reviewer_type=t) for r, t in pairs],
    )
    return rows


def form_input(cycle: ReviewCycle, employee: User, reviewer: User, reviewer_type: str, **fields) -> ReviewFormSave:
    return ReviewFormSave(
        cycle_id=cycle.id,
        employee_id=employee.id,
        reviewer_id=reviewer.id,
        reviewer_type=reviewer_type,
        **fields,
    )


def notifications_for(db: Session, user: User, notification_type: str | None = None) -> list[ReviewNotification]:
    q = db.query(ReviewNotification).filter(ReviewNotification.user_id == user.id)
    if notification_type:
        q = q.filter(ReviewNotification.notification_type == notification_type)
    return q.order_by(ReviewNotification.id).all()
