from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from edubro.core.config import app_config, logger
from edubro.core.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from edubro.domain.filters import split_upcoming_past
from edubro.domain.model import PaymentStatus, Role, SessionStatus, Slot
from edubro.domain.slots import (
    format_hour,
    hour_starts,
    normalize_date,
    parse_hour,
    session_start,
)
from edubro.services.chats import create_chat
from edubro.services.notifications import create_session_notifications
from edubro.services.payments import process_refund
from edubro.store import crud
from edubro.store.models import TutoringSession, User


# === Booking ===

def book_session(
    db: Session,
    student: User,
    tutor_id: str,
    day: Union[str, date],
    start_time: str,
    end_time: str,
    subject: str,
) -> TutoringSession:
    """
    הזמנת שיעור:
    - כל סלוטי השעה בטווח חייבים להיות קיימים ופנויים.
    - total_amount = hours * hourly_rate (תעריף מפרופיל המורה).
    - השיעור נוצר confirmed עם תשלום pending, והסלוטים מסומנים כתפוסים.
    """
    date_str = normalize_date(day)
    starts = hour_starts(start_time, end_time)
    logger.info(
        "book_session | student_id=%s tutor_id=%s date=%s start=%s end=%s",
        student.id,
        tutor_id,
        date_str,
        start_time,
        end_time,
    )

    tutor = crud.get_user(db, tutor_id)
    if tutor is None or tutor.role != Role.TUTOR.value:
        raise NotFoundError("Tutor not found")
    if tutor.subjects and subject not in tutor.subjects:
        raise ValidationFailedError(f"Tutor does not teach {subject}")

    day_doc = crud.get_availability_day(db, tutor_id, date_str)
    if day_doc is None:
        raise NotFoundError("No availability found for this date.")

    slots = [Slot.from_dict(s) for s in day_doc.slots or []]
    by_start = {s.start_time: s for s in slots}
    unavailable = [t for t in starts if t not in by_start or by_start[t].is_booked]
    if unavailable:
        logger.warning(
            "book_session | slots unavailable | tutor_id=%s date=%s slots=%s",
            tutor_id,
            date_str,
            unavailable,
        )
        raise ConflictError("Some of the requested time slots are not available.")

    hours = len(starts)
    session = crud.create_session(
        db,
        tutor_id=tutor_id,
        student_id=student.id,
        subject=subject,
        date=date_str,
        start_time=starts[0],
        end_time=format_hour(parse_hour(end_time)),
        hours=hours,
        hourly_rate=tutor.hourly_rate,
        total_amount=hours * tutor.hourly_rate,
        tutor_name=tutor.full_name,
        student_name=student.full_name,
        tutor_phone_number=tutor.phone_number or "",
        status=SessionStatus.CONFIRMED.value,
        payment_status=PaymentStatus.PENDING.value,
        payment_id=None,
    )

    for start in starts:
        by_start[start].is_booked = True
        by_start[start].session_id = session.id
    crud.set_availability_slots(db, day_doc, [s.to_dict() for s in slots])

    create_session_notifications(db, session, "booked")
    return session


def _release_slots(db: Session, session: TutoringSession) -> int:
    """
    משחרר את הסלוטים ששייכים ל-session. מחזיר כמה שוחררו.
    """
    day_doc = crud.get_availability_day(db, session.tutor_id, session.date)
    if day_doc is None:
        return 0
    released = 0
    slots = []
    for raw in day_doc.slots or []:
        slot = Slot.from_dict(raw)
        if slot.session_id == session.id:
            slot.is_booked = False
            slot.session_id = None
            released += 1
        slots.append(slot.to_dict())
    crud.set_availability_slots(db, day_doc, slots)
    logger.debug("Slots released | session_id=%s count=%s", session.id, released)
    return released


def _get_session(db: Session, session_id: str) -> TutoringSession:
    session = crud.get_session(db, session_id)
    if session is None:
        raise NotFoundError("Session not found.")
    return session


def cancel_session(
    db: Session,
    session_id: str,
    student: User,
    now: Optional[datetime] = None,
) -> TutoringSession:
    """
    ביטול ע"י התלמיד – לפחות cancellation_notice_hours לפני תחילת השיעור.
    שיעור ששולם עובר ל-refunded.
    """
    session = _get_session(db, session_id)
    if session.student_id != student.id:
        raise PermissionDeniedError("You don't have permission to cancel this session.")
    if session.status in (SessionStatus.CANCELLED.value, SessionStatus.COMPLETED.value):
        raise ConflictError(f"Session is already {session.status}.")

    now = now or datetime.now()
    notice = timedelta(hours=app_config.booking.cancellation_notice_hours)
    if session_start(session.date, session.start_time) < now + notice:
        logger.warning(
            "cancel_session | too late to cancel | session_id=%s",
            session_id,
        )
        raise ConflictError(
            "Cancellation failed. Sessions must be cancelled at least "
            f"{app_config.booking.cancellation_notice_hours} hours in advance."
        )

    crud.update_session(db, session, status=SessionStatus.CANCELLED.value)
    _release_slots(db, session)
    if session.payment_status == PaymentStatus.PAID.value:
        process_refund(db, session.id)
    create_session_notifications(db, session, "cancelled")
    logger.info("Session cancelled by student | session_id=%s", session_id)
    return session


def update_session_status(
    db: Session,
    session_id: str,
    tutor: User,
    status: str,
) -> TutoringSession:
    """
    המורה מאשר (confirmed) או דוחה (cancelled) שיעור.
    דחייה משחררת סלוטים ומחזירה תשלום אם שולם; אישור פותח צ'אט.
    """
    if status not in (SessionStatus.CONFIRMED.value, SessionStatus.CANCELLED.value):
        raise ValidationFailedError("Tutors can only confirm or cancel sessions")

    session = _get_session(db, session_id)
    if session.tutor_id != tutor.id:
        raise PermissionDeniedError("You can only manage your own sessions.")
    if session.status in (SessionStatus.CANCELLED.value, SessionStatus.COMPLETED.value):
        raise ConflictError(f"Session is already {session.status}.")

    crud.update_session(db, session, status=status)
    logger.info("Session status updated | session_id=%s status=%s", session_id, status)

    if status == SessionStatus.CANCELLED.value:
        _release_slots(db, session)
        if session.payment_status == PaymentStatus.PAID.value:
            process_refund(db, session.id)
        create_session_notifications(db, session, "cancelled")
    else:
        create_chat(db, session)

    return session


# === Listing ===

def get_user_sessions(
    db: Session,
    user: User,
    status: Optional[str] = None,
) -> List[TutoringSession]:
    statuses = [status] if status else None
    if user.role == Role.TUTOR.value:
        return crud.list_sessions(db, tutor_id=user.id, statuses=statuses)
    return crud.list_sessions(db, student_id=user.id, statuses=statuses)


def get_session_for_user(db: Session, session_id: str, user: User) -> TutoringSession:
    session = _get_session(db, session_id)
    if user.id not in (session.tutor_id, session.student_id) and user.role != Role.ADMIN.value:
        raise PermissionDeniedError("You are not part of this session.")
    return session


def get_sessions_by_tab(
    db: Session,
    user: User,
    today: Optional[date] = None,
) -> Tuple[List[TutoringSession], List[TutoringSession]]:
    sessions = get_user_sessions(db, user)
    return split_upcoming_past(sessions, today or date.today())
