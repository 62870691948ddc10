from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from edubro.core.config import app_config, logger
from edubro.domain.model import SessionStatus
from edubro.store import crud
from edubro.store.models import TutoringSession


def _amount(sessions: Sequence[TutoringSession]) -> float:
    return sum(s.total_amount or 0.0 for s in sessions)


def _in_month(session: TutoringSession, year: int, month: int) -> bool:
    day = date.fromisoformat(session.date)
    return day.year == year and day.month == month


def monthly_income(sessions: Sequence[TutoringSession]) -> List[Dict[str, Any]]:
    """
    דליים לפי חודש של תאריך השיעור, החדש ביותר ראשון.
    """
    buckets: Dict[tuple, Dict[str, Any]] = {}
    for session in sessions:
        day = date.fromisoformat(session.date)
        key = (day.year, day.month)
        bucket = buckets.setdefault(
            key,
            {"month": day.strftime("%B"), "year": day.year, "amount": 0.0, "session_count": 0},
        )
        bucket["amount"] += session.total_amount or 0.0
        bucket["session_count"] += 1
    return [buckets[key] for key in sorted(buckets, reverse=True)]


def subject_income(sessions: Sequence[TutoringSession]) -> List[Dict[str, Any]]:
    buckets: Dict[str, Dict[str, Any]] = {}
    for session in sessions:
        bucket = buckets.setdefault(
            session.subject,
            {"subject": session.subject, "amount": 0.0, "session_count": 0},
        )
        bucket["amount"] += session.total_amount or 0.0
        bucket["session_count"] += 1
    return sorted(buckets.values(), key=lambda b: b["amount"], reverse=True)


def summarize_income(
    completed: Sequence[TutoringSession],
    confirmed: Sequence[TutoringSession],
    today: date,
) -> Dict[str, Any]:
    """
    סיכום הכנסות של מורה:
    - הכל מחושב על שיעורים completed, לפי תאריך השיעור.
    - upcoming_income – מ-confirmed.
    - monthly_growth = 100 כשאין הכנסה בחודש הקודם.
    """
    prev_year, prev_month = (today.year - 1, 12) if today.month == 1 else (today.year, today.month - 1)
    current = _amount([s for s in completed if _in_month(s, today.year, today.month)])
    previous = _amount([s for s in completed if _in_month(s, prev_year, prev_month)])
    growth = (current - previous) / previous * 100 if previous > 0 else 100.0

    recent_since = today - timedelta(days=app_config.analytics.recent_income_days)
    recent = [s for s in completed if date.fromisoformat(s.date) >= recent_since]

    return {
        "total_income": _amount(completed),
        "monthly_income": monthly_income(completed),
        "subject_income": subject_income(completed),
        "upcoming_income": _amount(confirmed),
        "unique_student_count": len({s.student_id for s in completed}),
        "current_month_income": current,
        "previous_month_income": previous,
        "monthly_growth": growth,
        "recent_income": _amount(recent),
        "completed_sessions": list(completed),
    }


def get_tutor_income(
    db: Session,
    tutor_id: str,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    completed = crud.list_sessions(db, tutor_id=tutor_id, statuses=[SessionStatus.COMPLETED.value])
    confirmed = crud.list_sessions(db, tutor_id=tutor_id, statuses=[SessionStatus.CONFIRMED.value])
    logger.debug(
        "get_tutor_income | tutor_id=%s completed=%s confirmed=%s",
        tutor_id,
        len(completed),
        len(confirmed),
    )
    return summarize_income(completed, confirmed, today or date.today())
