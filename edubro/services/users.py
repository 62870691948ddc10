from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from edubro.core.config import app_config, logger
from edubro.core.errors import ConflictError, NotFoundError
from edubro.domain.filters import filter_by_role, search_users
from edubro.domain.model import ApplicationStatus, Role
from edubro.store import crud
from edubro.store.models import User

WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def list_users(
    db: Session,
    query: Optional[str] = None,
    role: Optional[str] = None,
) -> List[User]:
    """
    רשימת משתמשים לאדמין (החדשים ראשונים) + חיפוש וסינון לפי תפקיד.
    """
    users = crud.list_users(db)
    return filter_by_role(search_users(users, query), role)


def user_stats(db: Session, now: Optional[datetime] = None) -> Dict[str, int]:
    now = now or datetime.now()
    users = crud.list_users(db)

    active_since = now - timedelta(days=app_config.analytics.active_user_days)
    one_week_ago = now - timedelta(days=7)
    two_weeks_ago = now - timedelta(days=14)

    stats = {
        "total_users": len(users),
        "students": sum(1 for u in users if u.role == Role.STUDENT.value),
        "tutors": sum(1 for u in users if u.role == Role.TUTOR.value),
        "admins": sum(1 for u in users if u.role == Role.ADMIN.value),
        "pending_applications": crud.count_applications(
            db, status=ApplicationStatus.PENDING.value
        ),
        "active_users": sum(
            1 for u in users if u.last_login_at is not None and u.last_login_at >= active_since
        ),
        "new_users_this_week": sum(
            1 for u in users if u.created_at and one_week_ago <= u.created_at <= now
        ),
        "new_users_last_week": sum(
            1 for u in users if u.created_at and two_weeks_ago <= u.created_at < one_week_ago
        ),
    }
    logger.debug("user_stats | %s", stats)
    return stats


def signups_by_weekday(users: List[User]) -> List[int]:
    """
    ספירת הרשמות לפי יום בשבוע, מסודר Mon..Sun.
    """
    counts = [0] * 7
    for user in users:
        if user.created_at is not None:
            counts[user.created_at.weekday()] += 1
    return counts


def toggle_user_active(db: Session, user_id: str, actor: User) -> User:
    user = crud.get_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    if user.id == actor.id:
        raise ConflictError("You cannot deactivate your own account")
    logger.info(
        "toggle_user_active | user_id=%s is_active=%s -> %s",
        user_id,
        user.is_active,
        not user.is_active,
    )
    return crud.update_user(db, user, is_active=not user.is_active)
