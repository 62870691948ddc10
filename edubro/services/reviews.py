from __future__ import annotations

from typing import List, Optional

from sqlalchemy.orm import Session

from edubro.core.config import logger
from edubro.core.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from edubro.domain.model import SessionStatus
from edubro.store import crud
from edubro.store.models import Review, User


def submit_review(
    db: Session,
    session_id: str,
    student: User,
    rating: int,
    comment: Optional[str] = "",
) -> Review:
    """
    ביקורת על שיעור שהסתיים:
    - רק התלמיד של השיעור, רק שיעור completed, רק פעם אחת.
    - דירוג המורה מתעדכן בממוצע מצטבר: (r * n + new) / (n + 1).
    """
    logger.info(
        "submit_review | session_id=%s student_id=%s rating=%s",
        session_id,
        student.id,
        rating,
    )
    if rating is None or not 1 <= rating <= 5:
        raise ValidationFailedError("Rating must be between 1 and 5")

    session = crud.get_session(db, session_id)
    if session is None:
        raise NotFoundError("Session not found.")
    if session.student_id != student.id:
        raise PermissionDeniedError("You can only review sessions you attended.")
    if session.status != SessionStatus.COMPLETED.value:
        raise ConflictError("Only completed sessions can be reviewed.")
    if crud.find_review(db, session_id, student.id) is not None:
        logger.warning("submit_review | duplicate | session_id=%s", session_id)
        raise ConflictError("You have already reviewed this session.")

    review = crud.create_review(
        db,
        session_id=session_id,
        tutor_id=session.tutor_id,
        student_id=student.id,
        rating=float(rating),
        comment=(comment or "").strip(),
    )

    tutor = crud.get_user(db, session.tutor_id)
    if tutor is not None:
        count = tutor.total_reviews or 0
        current = tutor.rating or 0.0
        new_rating = (current * count + rating) / (count + 1)
        crud.update_user(db, tutor, rating=new_rating, total_reviews=count + 1)
        logger.debug(
            "Tutor rating updated | tutor_id=%s rating=%.2f total_reviews=%s",
            tutor.id,
            new_rating,
            count + 1,
        )
    return review


def get_tutor_reviews(db: Session, tutor_id: str) -> List[Review]:
    return crud.list_reviews_for_tutor(db, tutor_id)


def reviewed_session_ids(db: Session, student: User) -> set:
    return crud.reviewed_session_ids(db, student.id)
