from __future__ import annotations

import time
from datetime import datetime

from sqlalchemy.orm import Session

from edubro.core.config import logger
from edubro.core.errors import ConflictError, NotFoundError, PermissionDeniedError
from edubro.domain.model import PaymentStatus, SessionStatus
from edubro.services.notifications import create_session_notifications
from edubro.store import crud
from edubro.store.models import TutoringSession, User

# תשלומים מדומים: אין ספק סליקה, רק עדכון סטטוס על מסמך ה-session.


def _get_session(db: Session, session_id: str) -> TutoringSession:
    session = crud.get_session(db, session_id)
    if session is None:
        raise NotFoundError("Session not found.")
    return session


def process_payment(db: Session, session_id: str, payer: User) -> TutoringSession:
    session = _get_session(db, session_id)
    if session.student_id != payer.id:
        raise PermissionDeniedError("You can only pay for sessions you booked.")
    if session.payment_status == PaymentStatus.PAID.value:
        raise ConflictError("Session is already paid.")
    if session.status == SessionStatus.CANCELLED.value:
        raise ConflictError("Cannot pay for a cancelled session.")

    payment_id = f"sim_{int(time.time() * 1000)}"
    logger.info("process_payment | session_id=%s payment_id=%s", session_id, payment_id)
    return crud.update_session(
        db,
        session,
        payment_status=PaymentStatus.PAID.value,
        payment_id=payment_id,
    )


def process_refund(db: Session, session_id: str) -> TutoringSession:
    session = _get_session(db, session_id)
    if session.payment_status != PaymentStatus.PAID.value:
        raise ConflictError("Cannot refund a session that hasn't been paid.")
    logger.info("process_refund | session_id=%s", session_id)
    return crud.update_session(db, session, payment_status=PaymentStatus.REFUNDED.value)


def complete_session_and_release_payment(
    db: Session,
    session_id: str,
    student: User,
) -> TutoringSession:
    """
    התלמיד מסמן שהשיעור התקיים – רק שיעור confirmed, ורק ע"י מי שהזמין.
    """
    session = _get_session(db, session_id)
    if session.student_id != student.id:
        raise PermissionDeniedError("You can only complete sessions you booked.")
    if session.status != SessionStatus.CONFIRMED.value:
        raise ConflictError(
            f"Session is {session.status}. Only confirmed sessions can be completed."
        )

    crud.update_session(
        db,
        session,
        status=SessionStatus.COMPLETED.value,
        completed_at=datetime.now(),
    )
    create_session_notifications(db, session, "completed")
    logger.info("Session completed | session_id=%s", session_id)
    return session
