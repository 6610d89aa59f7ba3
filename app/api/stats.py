from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.security import Caller, get_caller
from app.db.session import get_db
from app.schemas.stats import StatsOut
from app.services import stats as svc

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("", response_model=StatsOut)
def get_stats(
    cycle_id: int | None = Query(default=None, description="Restrict form/assignment counts to one cycle"),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    """Admin/HR get the organisation view; everyone else gets their own numbers."""
    return svc.get_stats(db, caller, cycle_id)
