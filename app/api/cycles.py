from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.security import Caller, get_caller
from app.db.session import get_db
from app.models.review_cycle import ReviewCycle
from app.schemas.export import CycleExport
from app.schemas.review_cycle import (
    CycleDeleteResult,
    ReviewCycleCreate,
    ReviewCycleDetailOut,
    ReviewCycleOut,
    ReviewCycleUpdate,
)
from app.services import cycles as svc
from app.services import reports
from app.services.forms import form_to_out

router = APIRouter(prefix="/cycles", tags=["review-cycles"])


def to_out(c: ReviewCycle) -> ReviewCycleOut:
    return ReviewCycleOut(
        id=c.id,
        name=c.name,
        cycle_type=c.cycle_type,
        start_date=c.start_date,
        end_date=c.end_date,
        status=c.status,
        created_by=c.created_by,
        created_at=c.created_at,
        updated_at=c.updated_at,
    )


@router.get("", response_model=list[ReviewCycleOut])
def list_cycles(
    status: str | None = Query(default=None, description="Filter by status (draft, active, locked, completed)"),
    cycle_type: str | None = Query(default=None, description="Filter by cycle type (6-month, 1-year)"),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    return [to_out(c) for c in svc.list_cycles(db, caller, status=status, cycle_type=cycle_type)]


@router.post("", response_model=ReviewCycleOut, status_code=status.HTTP_201_CREATED)
def create_cycle(
    payload: ReviewCycleCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    c = svc.create_cycle(
        db,
        caller,
        name=payload.name,
        cycle_type=payload.cycle_type,
        start_date=payload.start_date,
        end_date=payload.end_date,
        initial_status=payload.status,
    )
    return to_out(c)


@router.get("/{cycle_id}", response_model=ReviewCycleDetailOut)
def get_cycle(
    cycle_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    """Cycle with its forms and a status/rating summary."""
    c, forms, summary = svc.get_cycle(db, caller, cycle_id)
    return ReviewCycleDetailOut(
        **to_out(c).model_dump(),
        summary=summary,
        forms=[form_to_out(f).model_dump(mode="json") for f in forms],
    )


@router.patch("/{cycle_id}", response_model=ReviewCycleOut)
def update_cycle(
    cycle_id: int,
    payload: ReviewCycleUpdate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    c = svc.update_cycle(db, caller, cycle_id, **payload.model_dump(exclude_unset=True))
    return to_out(c)


@router.delete("/{cycle_id}", response_model=CycleDeleteResult)
def delete_cycle(
    cycle_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    c, forms_deleted, assignments_deleted = svc.delete_cycle(db, caller, cycle_id)
    return CycleDeleteResult(
        cycle=to_out(c),
        forms_deleted=forms_deleted,
        assignments_deleted=assignments_deleted,
    )


@router.post("/{cycle_id}/activate", response_model=ReviewCycleOut)
def activate_cycle(cycle_id: int, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)):
    return to_out(svc.activate_cycle(db, caller, cycle_id))


@router.post("/{cycle_id}/lock", response_model=ReviewCycleOut)
def lock_cycle(cycle_id: int, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)):
    return to_out(svc.lock_cycle(db, caller, cycle_id))


@router.post("/{cycle_id}/reopen", response_model=ReviewCycleOut)
def reopen_cycle(cycle_id: int, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)):
    return to_out(svc.reopen_cycle(db, caller, cycle_id))


@router.post("/{cycle_id}/complete", response_model=ReviewCycleOut)
def complete_cycle(cycle_id: int, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)):
    return to_out(svc.complete_cycle(db, caller, cycle_id))


@router.get("/{cycle_id}/export", response_model=CycleExport)
def export_cycle(cycle_id: int, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)):
    return reports.export_cycle(db, caller, cycle_id)
