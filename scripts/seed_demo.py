from datetime import date
from sqlalchemy.orm import Session

from app.core.security import Caller
from app.core.workflow import CYCLE_ACTIVE, REVIEWER_MANAGER, REVIEWER_PEER, REVIEWER_SELF
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.models.user import User
from app.models.review_cycle import ReviewCycle
from app.schemas.review_assignment import ReviewerSpec
from app.services import assignments, cycles


def get_or_create_user(db: Session, email: str, name: str, role: str) -> User:
    u = db.query(User).filter(User.email == email).one_or_none()
    if u:
        return u
    u = User(email=email, name=name, role=role, is_active=True)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


def get_or_create_cycle(db: Session, admin: Caller, name: str) -> ReviewCycle:
    c = db.query(ReviewCycle).filter(ReviewCycle.name == name).one_or_none()
    if c:
        return c
    return cycles.create_cycle(
        db,
        admin,
        name=name,
        cycle_type="6-month",
        start_date=date(2026, 7, 1),
        end_date=date(2026, 12, 31),
        initial_status=CYCLE_ACTIVE,
    )


def main():
    # local convenience; real deployments run `alembic upgrade head`
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        # ---- Users ----
        admin_user = get_or_create_user(db, "admin@local.test", "Admin Local", "admin")
        hr_user = get_or_create_user(db, "hr@local.test", "HR Local", "hr")
        manager_user = get_or_create_user(db, "manager@local.test", "Manager Local", "manager")
        peer_user = get_or_create_user(db, "peer@local.test", "Peer Local", "employee")
        employee_user = get_or_create_user(db, "employee@local.test", "Employee Local", "employee")

        admin = Caller(id=admin_user.id, role=admin_user.role)

        # ---- Cycle (active) ----
        cycle = get_or_create_cycle(db, admin, "Demo Cycle - H2 2026")

        # ---- Assignments (idempotent) ----
        rows, created, _ = assignments.assign_reviewers(
            db,
            admin,
            cycle.id,
            employee_id=employee_user.id,
            reviewers=[
                ReviewerSpec(reviewer_id=employee_user.id, reviewer_type=REVIEWER_SELF),
                ReviewerSpec(reviewer_id=peer_user.id, reviewer_type=REVIEWER_PEER),
                ReviewerSpec(reviewer_id=manager_user.id, reviewer_type=REVIEWER_MANAGER),
            ],
        )

        print("\n=== Demo Seed Complete ===")
        print("Users (use as X-User-Email header):")
        for u in (admin_user, hr_user, manager_user, peer_user, employee_user):
            print(f"  {u.role:<9} {u.email}  (id={u.id})")

        print("\nCycle:")
        print(f"  cycle_id: {cycle.id}")
        print(f"  name:     {cycle.name}")
        print(f"  status:   {cycle.status}")

        print(f"\nAssignments: {len(rows)} ({created} new)")
        for a in rows:
            print(f"  #{a.id} {a.reviewer_type:<8} reviewer={a.reviewer_id} employee={a.employee_id}")

        print("\nNext actions:")
        print("  1) (Reviewer) Save draft: POST /forms {cycle_id, employee_id, reviewer_type, status: draft, ...}")
        print("  2) (Reviewer) Submit:     POST /forms {..., status: submitted}")
        print("  3) (HR) Approve:          POST /forms/{form_id}/approve")
        print("  4) (Admin) Lock cycle:    POST /cycles/{cycle_id}/lock")
        print()

    finally:
        db.close()


if __name__ == "__main__":
    main()
