from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from edubro.api.deps import get_db, require_role
from edubro.api.schemas import SessionOut
from edubro.services.income import get_tutor_income
from edubro.store.models import User

router = APIRouter(prefix="/income", tags=["income"])


class MonthlyIncome(BaseModel):
    month: str
    year: int
    amount: float
    session_count: int


class SubjectIncome(BaseModel):
    subject: str
    amount: float
    session_count: int


class IncomeResponse(BaseModel):
    total_income: float
    monthly_income: List[MonthlyIncome]
    subject_income: List[SubjectIncome]
    upcoming_income: float
    unique_student_count: int
    current_month_income: float
    previous_month_income: float
    monthly_growth: float
    recent_income: float
    completed_sessions: List[SessionOut]


@router.get("/me", response_model=IncomeResponse)
def my_income(
    db: Session = Depends(get_db),
    tutor: User = Depends(require_role("tutor")),
):
    summary = get_tutor_income(db, tutor.id)
    summary["completed_sessions"] = [
        SessionOut.model_validate(s) for s in summary["completed_sessions"]
    ]
    return IncomeResponse(**summary)
