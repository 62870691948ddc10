from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from edubro.core.config import logger
from edubro.store.models import (
    Availability,
    Chat,
    ChatMessage,
    IssueNote,
    Notification,
    ReportedIssue,
    Review,
    Subject,
    TutorApplication,
    TutoringSession,
    User,
)


# === Users ===

def get_user(db: Session, user_id: str) -> Optional[User]:
    logger.debug("get_user | user_id=%s", user_id)
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    logger.debug("get_user_by_email | email=%s", email)
    stmt = select(User).where(func.lower(User.email) == email.strip().lower())
    return db.execute(stmt).scalar_one_or_none()


def get_user_by_token(db: Session, token: str) -> Optional[User]:
    logger.debug("get_user_by_token | token_prefix=%s", token[:8])
    stmt = select(User).where(User.auth_token == token)
    return db.execute(stmt).scalar_one_or_none()


def create_user(db: Session, user_id: Optional[str] = None, **fields) -> User:
    logger.debug(
        "create_user | email=%s role=%s",
        fields.get("email"),
        fields.get("role"),
    )
    fields.setdefault("subjects", [])
    fields.setdefault("admin_privileges", [])
    fields.setdefault("created_at", datetime.now())
    user = User(**fields)
    if user_id is not None:
        user.id = user_id
    db.add(user)
    db.flush()
    logger.info("User created | id=%s role=%s", user.id, user.role)
    return user


def list_users(db: Session, role: Optional[str] = None) -> List[User]:
    """
    כל המשתמשים, החדשים ראשונים.
    """
    logger.debug("list_users | role=%s", role)
    stmt = select(User).order_by(User.created_at.desc())
    if role:
        stmt = stmt.where(User.role == role)
    return list(db.execute(stmt).scalars().all())


def update_user(db: Session, user: User, **fields) -> User:
    logger.debug("update_user | user_id=%s fields=%s", user.id, sorted(fields))
    for key, value in fields.items():
        setattr(user, key, value)
    user.updated_at = datetime.now()
    db.flush()
    return user


# === Subjects ===

def list_subjects(db: Session) -> List[Subject]:
    logger.debug("list_subjects")
    stmt = select(Subject).order_by(Subject.name)
    return list(db.execute(stmt).scalars().all())


def get_subject(db: Session, subject_id: str) -> Optional[Subject]:
    logger.debug("get_subject | subject_id=%s", subject_id)
    return db.get(Subject, subject_id)


def create_subject(db: Session, subject_id: str, name: str, description: str = "") -> Subject:
    logger.debug("create_subject | subject_id=%s name=%s", subject_id, name)
    subject = Subject(id=subject_id, name=name, description=description)
    db.add(subject)
    db.flush()
    logger.info("Subject created | id=%s", subject_id)
    return subject


# === Tutor applications ===

def get_application(db: Session, user_id: str) -> Optional[TutorApplication]:
    logger.debug("get_application | user_id=%s", user_id)
    return db.get(TutorApplication, user_id)


def upsert_application(db: Session, user_id: str, **fields) -> TutorApplication:
    """
    מסמך אחד לכל משתמש – הגשה חוזרת דורסת את הקודמת.
    """
    logger.debug("upsert_application | user_id=%s status=%s", user_id, fields.get("status"))
    application = db.get(TutorApplication, user_id)
    if application is None:
        application = TutorApplication(id=user_id, user_id=user_id)
        db.add(application)
        logger.info("TutorApplication created | user_id=%s", user_id)
    else:
        logger.info("TutorApplication overwritten | user_id=%s", user_id)
    fields.setdefault("subjects", [])
    for key, value in fields.items():
        setattr(application, key, value)
    application.created_at = datetime.now()
    application.reviewed_at = None
    db.flush()
    return application


def list_applications(db: Session, status: Optional[str] = None) -> List[TutorApplication]:
    logger.debug("list_applications | status=%s", status)
    stmt = select(TutorApplication).order_by(TutorApplication.created_at.desc())
    if status:
        stmt = stmt.where(TutorApplication.status == status)
    return list(db.execute(stmt).scalars().all())


def count_applications(db: Session, status: Optional[str] = None) -> int:
    logger.debug("count_applications | status=%s", status)
    stmt = select(func.count()).select_from(TutorApplication)
    if status:
        stmt = stmt.where(TutorApplication.status == status)
    return db.execute(stmt).scalar_one()


# === Availability ===

def availability_id(tutor_id: str, date_str: str) -> str:
    return f"{tutor_id}_{date_str}"


def get_availability_day(db: Session, tutor_id: str, date_str: str) -> Optional[Availability]:
    logger.debug("get_availability_day | tutor_id=%s date=%s", tutor_id, date_str)
    return db.get(Availability, availability_id(tutor_id, date_str))


def create_availability_day(
    db: Session,
    tutor_id: str,
    date_str: str,
    slots: List[dict],
) -> Availability:
    logger.debug("create_availability_day | tutor_id=%s date=%s", tutor_id, date_str)
    day = Availability(
        id=availability_id(tutor_id, date_str),
        tutor_id=tutor_id,
        date=date_str,
        slots=slots,
        created_at=datetime.now(),
    )
    db.add(day)
    db.flush()
    logger.info("Availability day created | id=%s slots=%s", day.id, len(slots))
    return day


def set_availability_slots(db: Session, day: Availability, slots: List[dict]) -> Availability:
    logger.debug("set_availability_slots | id=%s slots=%s", day.id, len(slots))
    # השמה של רשימה חדשה – כדי ש-SQLAlchemy יזהה שינוי בעמודת JSON
    day.slots = [dict(s) for s in slots]
    day.updated_at = datetime.now()
    db.flush()
    return day


def delete_availability_day(db: Session, day: Availability) -> None:
    logger.info("Availability day deleted | id=%s", day.id)
    db.delete(day)
    db.flush()


def list_availability(
    db: Session,
    tutor_id: str,
    start_date: str,
    end_date: str,
) -> List[Availability]:
    logger.debug("list_availability | tutor_id=%s from=%s to=%s", tutor_id, start_date, end_date)
    stmt = (
        select(Availability)
        .where(
            Availability.tutor_id == tutor_id,
            Availability.date >= start_date,
            Availability.date <= end_date,
        )
        .order_by(Availability.date)
    )
    return list(db.execute(stmt).scalars().all())


def list_availability_on(db: Session, date_str: str) -> List[Availability]:
    logger.debug("list_availability_on | date=%s", date_str)
    stmt = select(Availability).where(Availability.date == date_str)
    return list(db.execute(stmt).scalars().all())


# === Sessions ===

def get_session(db: Session, session_id: str) -> Optional[TutoringSession]:
    logger.debug("get_session | session_id=%s", session_id)
    return db.get(TutoringSession, session_id)


def create_session(db: Session, **fields) -> TutoringSession:
    logger.debug(
        "create_session | tutor_id=%s student_id=%s date=%s",
        fields.get("tutor_id"),
        fields.get("student_id"),
        fields.get("date"),
    )
    fields.setdefault("created_at", datetime.now())
    session = TutoringSession(**fields)
    db.add(session)
    db.flush()
    logger.info("Session created | id=%s", session.id)
    return session


def update_session(db: Session, session: TutoringSession, **fields) -> TutoringSession:
    logger.debug("update_session | session_id=%s fields=%s", session.id, fields)
    for key, value in fields.items():
        setattr(session, key, value)
    session.updated_at = datetime.now()
    db.flush()
    return session


def list_sessions(
    db: Session,
    tutor_id: Optional[str] = None,
    student_id: Optional[str] = None,
    statuses: Optional[Iterable[str]] = None,
) -> List[TutoringSession]:
    logger.debug(
        "list_sessions | tutor_id=%s student_id=%s statuses=%s",
        tutor_id,
        student_id,
        statuses,
    )
    stmt = select(TutoringSession)
    if tutor_id is not None:
        stmt = stmt.where(TutoringSession.tutor_id == tutor_id)
    if student_id is not None:
        stmt = stmt.where(TutoringSession.student_id == student_id)
    if statuses is not None:
        stmt = stmt.where(TutoringSession.status.in_(list(statuses)))
    stmt = stmt.order_by(TutoringSession.date, TutoringSession.start_time)
    return list(db.execute(stmt).scalars().all())


# === Reviews ===

def find_review(db: Session, session_id: str, student_id: str) -> Optional[Review]:
    logger.debug("find_review | session_id=%s student_id=%s", session_id, student_id)
    stmt = select(Review).where(
        Review.session_id == session_id,
        Review.student_id == student_id,
    )
    return db.execute(stmt).scalar_one_or_none()


def create_review(db: Session, **fields) -> Review:
    logger.debug("create_review | session_id=%s", fields.get("session_id"))
    fields.setdefault("created_at", datetime.now())
    review = Review(**fields)
    db.add(review)
    db.flush()
    logger.info(
        "Review created | id=%s session_id=%s rating=%s",
        review.id,
        review.session_id,
        review.rating,
    )
    return review


def list_reviews_for_tutor(db: Session, tutor_id: str) -> List[Review]:
    logger.debug("list_reviews_for_tutor | tutor_id=%s", tutor_id)
    stmt = select(Review).where(Review.tutor_id == tutor_id).order_by(Review.created_at.desc())
    return list(db.execute(stmt).scalars().all())


def reviewed_session_ids(db: Session, student_id: str) -> set:
    logger.debug("reviewed_session_ids | student_id=%s", student_id)
    stmt = select(Review.session_id).where(Review.student_id == student_id)
    return set(db.execute(stmt).scalars().all())


# === Reported issues & notes ===

def create_issue(db: Session, **fields) -> ReportedIssue:
    logger.debug("create_issue | user_id=%s title=%s", fields.get("user_id"), fields.get("title"))
    now = datetime.now()
    fields.setdefault("created_at", now)
    fields.setdefault("updated_at", now)
    issue = ReportedIssue(**fields)
    db.add(issue)
    db.flush()
    logger.info("ReportedIssue created | id=%s user_id=%s", issue.id, issue.user_id)
    return issue


def get_issue(db: Session, issue_id: str) -> Optional[ReportedIssue]:
    logger.debug("get_issue | issue_id=%s", issue_id)
    return db.get(ReportedIssue, issue_id)


def list_issues(db: Session, user_id: Optional[str] = None) -> List[ReportedIssue]:
    """
    תקלות לפי createdAt יורד (החדשות ראשונות).
    """
    logger.debug("list_issues | user_id=%s", user_id)
    stmt = select(ReportedIssue).order_by(ReportedIssue.created_at.desc())
    if user_id is not None:
        stmt = stmt.where(ReportedIssue.user_id == user_id)
    return list(db.execute(stmt).scalars().all())


def update_issue(db: Session, issue: ReportedIssue, **fields) -> ReportedIssue:
    logger.debug("update_issue | issue_id=%s fields=%s", issue.id, sorted(fields))
    for key, value in fields.items():
        setattr(issue, key, value)
    issue.updated_at = datetime.now()
    db.flush()
    return issue


def create_issue_note(db: Session, issue_id: str, text: str) -> IssueNote:
    logger.debug("create_issue_note | issue_id=%s", issue_id)
    note = IssueNote(issue_id=issue_id, text=text, created_at=datetime.now())
    db.add(note)
    db.flush()
    logger.info("IssueNote created | id=%s issue_id=%s", note.id, issue_id)
    return note


def list_issue_notes(db: Session, issue_id: str) -> List[IssueNote]:
    logger.debug("list_issue_notes | issue_id=%s", issue_id)
    stmt = select(IssueNote).where(IssueNote.issue_id == issue_id).order_by(IssueNote.created_at)
    return list(db.execute(stmt).scalars().all())


# === Notifications ===

def create_notification(db: Session, **fields) -> Notification:
    fields.setdefault("created_at", datetime.now())
    fields.setdefault("read", False)
    notification = Notification(**fields)
    db.add(notification)
    db.flush()
    logger.debug(
        "Notification created | id=%s user_id=%s type=%s",
        notification.id,
        notification.user_id,
        notification.type,
    )
    return notification


def get_notification(db: Session, notification_id: str) -> Optional[Notification]:
    logger.debug("get_notification | notification_id=%s", notification_id)
    return db.get(Notification, notification_id)


def list_notifications(
    db: Session,
    user_id: str,
    limit: int = 50,
    only_unread: bool = False,
) -> List[Notification]:
    logger.debug("list_notifications | user_id=%s only_unread=%s", user_id, only_unread)
    stmt = select(Notification).where(Notification.user_id == user_id)
    if only_unread:
        stmt = stmt.where(Notification.read.is_(False))
    stmt = stmt.order_by(Notification.created_at.desc()).limit(limit)
    return list(db.execute(stmt).scalars().all())


# === Chats ===

def get_chat(db: Session, chat_id: str) -> Optional[Chat]:
    logger.debug("get_chat | chat_id=%s", chat_id)
    return db.get(Chat, chat_id)


def create_chat(db: Session, chat_id: str, **fields) -> Chat:
    logger.debug("create_chat | chat_id=%s", chat_id)
    fields.setdefault("deleted_by", [])
    fields.setdefault("session_details", {})
    fields.setdefault("typing", {})
    fields.setdefault("created_at", datetime.now())
    chat = Chat(id=chat_id, **fields)
    db.add(chat)
    db.flush()
    logger.info("Chat created | id=%s", chat_id)
    return chat


def list_chats_for_user(db: Session, user_id: str) -> List[Chat]:
    logger.debug("list_chats_for_user | user_id=%s", user_id)
    stmt = (
        select(Chat)
        .where((Chat.student_id == user_id) | (Chat.tutor_id == user_id))
        .order_by(Chat.created_at.desc())
    )
    return list(db.execute(stmt).scalars().all())


def create_message(db: Session, **fields) -> ChatMessage:
    logger.debug(
        "create_message | chat_id=%s sender_id=%s",
        fields.get("chat_id"),
        fields.get("sender_id"),
    )
    fields.setdefault("created_at", datetime.now())
    fields.setdefault("read", False)
    message = ChatMessage(**fields)
    db.add(message)
    db.flush()
    return message


def list_messages(db: Session, chat_id: str) -> List[ChatMessage]:
    logger.debug("list_messages | chat_id=%s", chat_id)
    stmt = (
        select(ChatMessage)
        .where(ChatMessage.chat_id == chat_id)
        .order_by(ChatMessage.created_at, ChatMessage.id)
    )
    return list(db.execute(stmt).scalars().all())


def list_unread_messages_from(db: Session, chat_id: str, sender_id: str) -> List[ChatMessage]:
    logger.debug("list_unread_messages_from | chat_id=%s sender_id=%s", chat_id, sender_id)
    stmt = select(ChatMessage).where(
        ChatMessage.chat_id == chat_id,
        ChatMessage.sender_id == sender_id,
        ChatMessage.read.is_(False),
    )
    return list(db.execute(stmt).scalars().all())
