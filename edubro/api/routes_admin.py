from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from edubro.api.deps import get_db, require_role
from edubro.api.schemas import ApplicationOut, UserOut
from edubro.core.config import logger
from edubro.services import analytics, tutors, users
from edubro.store import crud
from edubro.store.models import User

router = APIRouter(prefix="/admin", tags=["admin"])

admin_only = require_role("admin")


class UserStatsResponse(BaseModel):
    stats: Dict[str, int]
    signups_by_weekday: List[int]
    weekday_labels: List[str]


# ========= משתמשים =========

@router.get("/users", response_model=List[UserOut])
def list_users(
    query: Optional[str] = None,
    role: Optional[str] = None,
    db: Session = Depends(get_db),
    _: User = Depends(admin_only),
):
    return users.list_users(db, query=query, role=role)


@router.get("/users/stats", response_model=UserStatsResponse)
def user_stats(db: Session = Depends(get_db), _: User = Depends(admin_only)):
    return UserStatsResponse(
        stats=users.user_stats(db),
        signups_by_weekday=users.signups_by_weekday(crud.list_users(db)),
        weekday_labels=users.WEEKDAY_LABELS,
    )


@router.post("/users/{user_id}/toggle-active", response_model=UserOut)
def toggle_active(
    user_id: str,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only),
):
    logger.info("API /admin/users/toggle-active | user_id=%s by=%s", user_id, admin.id)
    return users.toggle_user_active(db, user_id, admin)


# ========= מועמדויות =========

@router.get("/applications", response_model=List[ApplicationOut])
def list_applications(
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    _: User = Depends(admin_only),
):
    return tutors.list_applications(db, status=status)


@router.post("/applications/{user_id}/approve", response_model=ApplicationOut)
def approve_application(
    user_id: str,
    db: Session = Depends(get_db),
    _: User = Depends(admin_only),
):
    return tutors.approve_application(db, user_id)


@router.post("/applications/{user_id}/reject", response_model=ApplicationOut)
def reject_application(
    user_id: str,
    db: Session = Depends(get_db),
    _: User = Depends(admin_only),
):
    return tutors.reject_application(db, user_id)


# ========= אנליטיקה =========

@router.get("/analytics")
def dashboard(db: Session = Depends(get_db), _: User = Depends(admin_only)) -> Dict[str, Any]:
    return analytics.dashboard(db)
