from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from edubro.api.deps import get_current_user, get_db
from edubro.api.schemas import NotificationOut
from edubro.services import notifications
from edubro.store.models import User

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=List[NotificationOut])
def list_notifications(
    limit: int = Query(default=50, ge=1, le=200),
    only_unread: bool = False,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return notifications.get_user_notifications(db, user.id, limit=limit, only_unread=only_unread)


@router.post("/{notification_id}/read", response_model=NotificationOut)
def mark_read(
    notification_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return notifications.mark_notification_as_read(db, user, notification_id)
