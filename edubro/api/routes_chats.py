from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from edubro.api.deps import get_current_user, get_db
from edubro.api.schemas import ChatMessageOut, ChatOut, MessageResponse
from edubro.services import chats
from edubro.store.models import User

router = APIRouter(prefix="/chats", tags=["chats"])


class SendMessageRequest(BaseModel):
    content: str


class MarkReadResponse(BaseModel):
    marked: int


class TypingRequest(BaseModel):
    is_typing: bool = True


@router.get("", response_model=List[ChatOut])
def list_chats(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return chats.get_user_chats(db, user)


@router.get("/{chat_id}", response_model=ChatOut)
def get_chat(chat_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return chats.get_chat_for_user(db, chat_id, user)


@router.get("/{chat_id}/messages", response_model=List[ChatMessageOut])
def list_messages(
    chat_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return chats.get_chat_messages(db, chat_id, user)


@router.post(
    "/{chat_id}/messages",
    response_model=ChatMessageOut,
    status_code=status.HTTP_201_CREATED,
)
def send_message(
    chat_id: str,
    payload: SendMessageRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return chats.send_message(db, chat_id, user, payload.content)


@router.post("/{chat_id}/read", response_model=MarkReadResponse)
def mark_read(chat_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return MarkReadResponse(marked=chats.mark_messages_as_read(db, chat_id, user))


@router.post("/{chat_id}/typing", response_model=ChatOut)
def update_typing(
    chat_id: str,
    payload: TypingRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return chats.update_typing_status(db, chat_id, user, payload.is_typing)


@router.post("/{chat_id}/end", response_model=ChatOut)
def end_chat(chat_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return chats.end_chat_session(db, chat_id, user)


@router.delete("/{chat_id}", response_model=MessageResponse)
def delete_chat(chat_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    chats.delete_chat(db, chat_id, user)
    return MessageResponse(message="Chat deleted")
