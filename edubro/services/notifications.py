from __future__ import annotations

from typing import List, Optional

from sqlalchemy.orm import Session

from edubro.core.config import logger
from edubro.core.errors import NotFoundError, PermissionDeniedError, ValidationFailedError
from edubro.domain.model import NotificationType
from edubro.store import crud
from edubro.store.models import Notification, TutoringSession, User


def create_notification(
    db: Session,
    user_id: str,
    title: str,
    message: str,
    type: str,
    related_id: Optional[str] = None,
) -> Notification:
    return crud.create_notification(
        db,
        user_id=user_id,
        title=title,
        message=message,
        type=type,
        related_id=related_id,
    )


def get_user_notifications(
    db: Session,
    user_id: str,
    limit: int = 50,
    only_unread: bool = False,
) -> List[Notification]:
    return crud.list_notifications(db, user_id, limit=limit, only_unread=only_unread)


def mark_notification_as_read(db: Session, user: User, notification_id: str) -> Notification:
    notification = crud.get_notification(db, notification_id)
    if notification is None:
        raise NotFoundError("Notification not found.")
    if notification.user_id != user.id:
        raise PermissionDeniedError("Not your notification")
    notification.read = True
    db.flush()
    return notification


def create_session_notifications(
    db: Session,
    session: TutoringSession,
    action: str,
) -> List[Notification]:
    """
    הודעה למורה והודעה לתלמיד עבור booked / cancelled / completed.
    """
    when = f"{session.start_time}-{session.end_time}"
    subject = session.subject
    day = session.date

    if action == "booked":
        type_ = NotificationType.SESSION_BOOKED.value
        tutor_msg = ("New Session Booked",
                     f"A student has booked a {subject} session with you on {day} at {when}.")
        student_msg = ("Session Booking Confirmed",
                       f"Your {subject} session on {day} at {when} has been booked.")
    elif action == "cancelled":
        type_ = NotificationType.SESSION_CANCELLED.value
        tutor_msg = ("Session Cancelled",
                     f"A {subject} session on {day} at {when} has been cancelled.")
        student_msg = ("Session Cancelled",
                       f"Your {subject} session on {day} at {when} has been cancelled.")
    elif action == "completed":
        type_ = NotificationType.SESSION_COMPLETED.value
        tutor_msg = ("Session Completed",
                     f"Your {subject} session on {day} has been completed and payment has been released.")
        student_msg = ("Session Completed",
                       f"Your {subject} session on {day} has been marked as completed.")
    else:
        raise ValidationFailedError("Invalid action type.")

    logger.debug(
        "create_session_notifications | session_id=%s action=%s",
        session.id,
        action,
    )
    return [
        create_notification(db, session.tutor_id, tutor_msg[0], tutor_msg[1], type_, session.id),
        create_notification(db, session.student_id, student_msg[0], student_msg[1], type_, session.id),
    ]
