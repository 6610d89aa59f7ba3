from typing import Union

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.core.security import Caller, get_caller
from app.db.session import get_db
from app.schemas.pagination import PaginatedResponse
from app.schemas.review_form import (
    CommentCreate,
    CommentOut,
    ReviewFormDetailOut,
    ReviewFormOut,
    ReviewFormSave,
    SaveFormResult,
)
from app.services import comments, forms as svc

router = APIRouter(prefix="/forms", tags=["review-forms"])


@router.get("", response_model=Union[list[ReviewFormOut], PaginatedResponse[ReviewFormOut]])
def list_forms(
    cycle_id: int | None = Query(default=None),
    employee_id: int | None = Query(default=None),
    reviewer_id: int | None = Query(default=None),
    status: str | None = Query(default=None, description="pending, draft, submitted or approved"),
    reviewer_type: str | None = Query(default=None, description="self, peer, client or manager"),
    limit: int = Query(default=20, ge=1, le=100, description="Maximum number of results"),
    offset: int = Query(default=0, ge=0, description="Number of results to skip"),
    include_pagination: bool = Query(default=False, description="Include pagination metadata"),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    """
    Admin/HR see every form; everyone else sees forms they wrote or that are about them.

    Use ?include_pagination=true to get pagination metadata.
    """
    rows, total = svc.list_forms(
        db,
        caller,
        cycle_id=cycle_id,
        employee_id=employee_id,
        reviewer_id=reviewer_id,
        status=status,
        reviewer_type=reviewer_type,
        limit=limit,
        offset=offset,
    )
    items = [svc.form_to_out(f) for f in rows]

    if include_pagination:
        return PaginatedResponse.build(items, total, limit, offset)
    return items


@router.post("", response_model=SaveFormResult)
def save_form(
    payload: ReviewFormSave,
    response: Response,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    """Create or update the form for (cycle, employee, reviewer, reviewer_type)."""
    result = svc.save_form(db, caller, payload)
    response.status_code = status.HTTP_201_CREATED if result.created else status.HTTP_200_OK
    return result


@router.get("/{form_id}", response_model=ReviewFormDetailOut)
def get_form(form_id: int, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)):
    return svc.form_to_detail(db, svc.get_form(db, caller, form_id))


@router.delete("/{form_id}", response_model=ReviewFormOut)
def delete_form(form_id: int, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)):
    return svc.form_to_out(svc.delete_form(db, caller, form_id))


@router.post("/{form_id}/approve", response_model=ReviewFormOut)
def approve_form(form_id: int, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)):
    return svc.form_to_out(svc.approve_form(db, caller, form_id))


@router.get("/{form_id}/comments", response_model=list[CommentOut])
def list_comments(form_id: int, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)):
    return [
        CommentOut(
            id=c.id,
            form_id=c.form_id,
            commenter_id=c.commenter_id,
            commenter_role=c.commenter_role,
            comment=c.comment,
            created_at=c.created_at,
            commenter_name=who.name if who else None,
            commenter_email=who.email if who else None,
        )
        for c, who in comments.list_comments(db, caller, form_id)
    ]


@router.post("/{form_id}/comments", response_model=CommentOut, status_code=status.HTTP_201_CREATED)
def add_comment(
    form_id: int,
    payload: CommentCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    c = comments.add_comment(db, caller, form_id, payload.comment)
    return CommentOut(
        id=c.id,
        form_id=c.form_id,
        commenter_id=c.commenter_id,
        commenter_role=c.commenter_role,
        comment=c.comment,
        created_at=c.created_at,
    )
