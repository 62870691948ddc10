from __future__ import annotations

from datetime import datetime
from typing import List

from sqlalchemy.orm import Session

from edubro.core.config import logger
from edubro.core.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from edubro.store import crud
from edubro.store.models import Chat, ChatMessage, TutoringSession, User


def create_chat(db: Session, session: TutoringSession) -> Chat:
    """
    צ'אט נפתח כשמורה מאשר שיעור. אידמפוטנטי – id הצ'אט הוא id ה-session.
    """
    existing = crud.get_chat(db, session.id)
    if existing is not None:
        return existing

    student = crud.get_user(db, session.student_id)
    tutor = crud.get_user(db, session.tutor_id)

    return crud.create_chat(
        db,
        session.id,
        student_id=session.student_id,
        student_name=session.student_name,
        student_photo=student.photo_url if student else None,
        tutor_id=session.tutor_id,
        tutor_name=session.tutor_name,
        tutor_photo=tutor.photo_url if tutor else None,
        session_details={
            "subject": session.subject,
            "date": session.date,
            "start_time": session.start_time,
            "end_time": session.end_time,
            "status": session.status,
        },
    )


def _get_chat(db: Session, chat_id: str) -> Chat:
    chat = crud.get_chat(db, chat_id)
    if chat is None:
        raise NotFoundError("Chat not found")
    return chat


def _ensure_participant(chat: Chat, user: User) -> None:
    if user.id not in (chat.student_id, chat.tutor_id):
        raise PermissionDeniedError("You are not a participant in this chat")


def get_chat_for_user(db: Session, chat_id: str, user: User) -> Chat:
    chat = _get_chat(db, chat_id)
    _ensure_participant(chat, user)
    return chat


def _set_typing(chat: Chat, user_id: str, is_typing: bool) -> None:
    # השמה של dict חדש – כדי ש-SQLAlchemy יזהה שינוי בעמודת JSON
    typing = dict(chat.typing or {})
    typing[user_id] = datetime.now().isoformat() if is_typing else None
    chat.typing = typing


def send_message(db: Session, chat_id: str, sender: User, content: str) -> ChatMessage:
    chat = _get_chat(db, chat_id)
    _ensure_participant(chat, sender)
    if chat.ended:
        raise ConflictError("This chat has been ended by the tutor")
    if not content or not content.strip():
        raise ValidationFailedError("Message cannot be empty")

    is_student = sender.id == chat.student_id
    message = crud.create_message(
        db,
        chat_id=chat.id,
        sender_id=sender.id,
        sender_type="student" if is_student else "tutor",
        sender_name=chat.student_name if is_student else chat.tutor_name,
        content=content,
    )
    chat.last_message = content
    chat.last_message_time = message.created_at
    _set_typing(chat, sender.id, False)
    db.flush()
    logger.debug("send_message | chat_id=%s sender_id=%s", chat.id, sender.id)
    return message


def update_typing_status(db: Session, chat_id: str, user: User, is_typing: bool) -> Chat:
    """
    אינדיקטור הקלדה: חותמת זמן למשתמש שמקליד, None כשהפסיק.
    בצ'אט שהסתיים אפשר רק לכבות.
    """
    chat = _get_chat(db, chat_id)
    _ensure_participant(chat, user)
    if chat.ended and is_typing:
        raise ConflictError("This chat has been ended by the tutor")
    _set_typing(chat, user.id, is_typing)
    db.flush()
    logger.debug(
        "update_typing_status | chat_id=%s user_id=%s is_typing=%s",
        chat.id,
        user.id,
        is_typing,
    )
    return chat


def mark_messages_as_read(db: Session, chat_id: str, reader: User) -> int:
    """
    מסמן כנקראו את כל ההודעות של הצד השני. מחזיר כמה סומנו.
    """
    chat = _get_chat(db, chat_id)
    _ensure_participant(chat, reader)
    other_id = chat.tutor_id if reader.id == chat.student_id else chat.student_id
    unread = crud.list_unread_messages_from(db, chat.id, other_id)
    for message in unread:
        message.read = True
    db.flush()
    return len(unread)


def get_user_chats(db: Session, user: User) -> List[Chat]:
    return [c for c in crud.list_chats_for_user(db, user.id) if user.id not in (c.deleted_by or [])]


def get_chat_messages(db: Session, chat_id: str, user: User) -> List[ChatMessage]:
    chat = get_chat_for_user(db, chat_id, user)
    return crud.list_messages(db, chat.id)


def end_chat_session(db: Session, chat_id: str, user: User) -> Chat:
    chat = _get_chat(db, chat_id)
    if user.id != chat.tutor_id:
        raise PermissionDeniedError("Only tutors can end chat sessions")
    chat.ended = True
    chat.ended_at = datetime.now()
    chat.ended_by = user.id
    db.flush()
    logger.info("Chat ended | chat_id=%s", chat.id)
    return chat


def delete_chat(db: Session, chat_id: str, user: User) -> Chat:
    """
    מחיקה רכה לצד אחד בלבד. תלמיד יכול למחוק רק אחרי שהמורה סיים את הצ'אט.
    """
    chat = _get_chat(db, chat_id)
    _ensure_participant(chat, user)
    if user.id == chat.student_id and not chat.ended:
        raise ConflictError("Students cannot delete a chat until the tutor has ended it")
    deleted_by = list(chat.deleted_by or [])
    if user.id not in deleted_by:
        deleted_by.append(user.id)
    chat.deleted_by = deleted_by
    db.flush()
    logger.info("Chat deleted for user | chat_id=%s user_id=%s", chat.id, user.id)
    return chat
