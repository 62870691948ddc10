from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from edubro.api.deps import get_current_user, get_db, require_role
from edubro.api.schemas import ReviewOut
from edubro.services import reviews
from edubro.store.models import User

router = APIRouter(tags=["reviews"])


class ReviewRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = ""


@router.post(
    "/sessions/{session_id}/review",
    response_model=ReviewOut,
    status_code=status.HTTP_201_CREATED,
)
def submit_review(
    session_id: str,
    payload: ReviewRequest,
    db: Session = Depends(get_db),
    student: User = Depends(require_role("student")),
):
    return reviews.submit_review(db, session_id, student, payload.rating, payload.comment)


@router.get("/tutors/{tutor_id}/reviews", response_model=List[ReviewOut])
def tutor_reviews(
    tutor_id: str,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return reviews.get_tutor_reviews(db, tutor_id)


@router.get("/reviews/mine/sessions", response_model=List[str])
def my_reviewed_sessions(
    db: Session = Depends(get_db),
    student: User = Depends(require_role("student")),
):
    """
    מזהי השיעורים שהתלמיד כבר דירג – הלקוח מסתיר עבורם את כפתור הדירוג.
    """
    return sorted(reviews.reviewed_session_ids(db, student))
