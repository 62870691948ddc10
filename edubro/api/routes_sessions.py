from __future__ import annotations

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from edubro.api.deps import get_current_user, get_db, require_role
from edubro.api.schemas import SessionOut
from edubro.core.config import logger
from edubro.services import payments, sessions
from edubro.store.models import User

router = APIRouter(prefix="/sessions", tags=["sessions"])


# ========= מודלים =========

class BookSessionRequest(BaseModel):
    tutor_id: str
    date: str
    start_time: str
    end_time: str
    subject: str


class SessionStatusRequest(BaseModel):
    status: Literal["confirmed", "cancelled"]


class SessionTabsResponse(BaseModel):
    upcoming: List[SessionOut]
    past: List[SessionOut]


# ========= Endpoints =========

@router.post("", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
def book_session(
    payload: BookSessionRequest,
    db: Session = Depends(get_db),
    student: User = Depends(require_role("student")),
):
    logger.info(
        "API /sessions POST | student_id=%s tutor_id=%s date=%s",
        student.id,
        payload.tutor_id,
        payload.date,
    )
    return sessions.book_session(
        db,
        student,
        payload.tutor_id,
        payload.date,
        payload.start_time,
        payload.end_time,
        payload.subject,
    )


@router.get("", response_model=List[SessionOut])
def list_my_sessions(
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    user: User = Depends(require_role("student", "tutor")),
):
    return sessions.get_user_sessions(db, user, status=status)


@router.get("/tabs", response_model=SessionTabsResponse)
def session_tabs(
    db: Session = Depends(get_db),
    user: User = Depends(require_role("student", "tutor")),
):
    upcoming, past = sessions.get_sessions_by_tab(db, user)
    return SessionTabsResponse(
        upcoming=[SessionOut.model_validate(s) for s in upcoming],
        past=[SessionOut.model_validate(s) for s in past],
    )


@router.get("/{session_id}", response_model=SessionOut)
def get_session(
    session_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return sessions.get_session_for_user(db, session_id, user)


@router.post("/{session_id}/cancel", response_model=SessionOut)
def cancel_session(
    session_id: str,
    db: Session = Depends(get_db),
    student: User = Depends(require_role("student")),
):
    return sessions.cancel_session(db, session_id, student)


@router.put("/{session_id}/status", response_model=SessionOut)
def update_status(
    session_id: str,
    payload: SessionStatusRequest,
    db: Session = Depends(get_db),
    tutor: User = Depends(require_role("tutor")),
):
    return sessions.update_session_status(db, session_id, tutor, payload.status)


@router.post("/{session_id}/pay", response_model=SessionOut)
def pay_session(
    session_id: str,
    db: Session = Depends(get_db),
    student: User = Depends(require_role("student")),
):
    return payments.process_payment(db, session_id, student)


@router.post("/{session_id}/complete", response_model=SessionOut)
def complete_session(
    session_id: str,
    db: Session = Depends(get_db),
    student: User = Depends(require_role("student")),
):
    return payments.complete_session_and_release_payment(db, session_id, student)
