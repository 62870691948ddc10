from __future__ import annotations

from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from edubro.core.config import app_config, logger
from edubro.domain.model import (
    OPEN_ISSUE_STATUSES,
    IssueStatus,
    Role,
    SessionStatus,
    UPCOMING_SESSION_STATUSES,
)
from edubro.store import crud
from edubro.store.models import ReportedIssue, TutoringSession, User

# דשבורד אדמין: כל האגרגציות מחושבות בזיכרון על רשימות שנשלפו מה-DB.
# הפונקציות הפנימיות מקבלות רשימות, כדי שאפשר לבדוק אותן בלי DB.


def _month_start(day: date, months_back: int = 0) -> date:
    year, month = day.year, day.month - months_back
    while month <= 0:
        month += 12
        year -= 1
    return date(year, month, 1)


def weekly_counts(values: Sequence[date], today: date, weeks: int) -> List[int]:
    """
    ספירה לפי חלונות של 7 ימים אחורה מהיום, הישן ביותר ראשון.
    חלון i מכסה [today - 7*(i+1), today - 7*i).
    """
    counts = [0] * weeks
    for value in values:
        delta = (today - value).days
        if delta <= 0:
            continue
        index = (delta - 1) // 7
        if index < weeks:
            counts[weeks - 1 - index] += 1
    return counts


def user_counts(users: Sequence[User], now: datetime) -> Dict[str, Any]:
    week_ago = now - timedelta(days=7)
    today = now.date()
    return {
        "total": len(users),
        "students": sum(1 for u in users if u.role == Role.STUDENT.value),
        "tutors": sum(1 for u in users if u.role == Role.TUTOR.value),
        "admins": sum(1 for u in users if u.role == Role.ADMIN.value),
        "new_this_week": sum(1 for u in users if u.created_at and u.created_at >= week_ago),
        "active_this_week": sum(
            1 for u in users if u.last_login_at and u.last_login_at >= week_ago
        ),
        "growth": weekly_counts(
            [u.created_at.date() for u in users if u.created_at],
            today + timedelta(days=1),
            app_config.analytics.trend_weeks,
        ),
    }


def session_counts(sessions: Sequence[TutoringSession], today: date) -> Dict[str, Any]:
    today_str = today.isoformat()
    return {
        "total": len(sessions),
        "completed": sum(1 for s in sessions if s.status == SessionStatus.COMPLETED.value),
        "upcoming": sum(1 for s in sessions if s.status in UPCOMING_SESSION_STATUSES),
        "cancelled": sum(1 for s in sessions if s.status == SessionStatus.CANCELLED.value),
        "today": sum(1 for s in sessions if s.date == today_str),
        "trends": weekly_counts(
            [date.fromisoformat(s.date) for s in sessions if s.date],
            today + timedelta(days=1),
            app_config.analytics.trend_weeks,
        ),
    }


def popular_subjects(sessions: Sequence[TutoringSession], limit: int) -> List[Dict[str, Any]]:
    counter = Counter(
        s.subject for s in sessions
        if s.subject and s.status != SessionStatus.CANCELLED.value
    )
    return [{"subject": subject, "count": count} for subject, count in counter.most_common(limit)]


def financials(sessions: Sequence[TutoringSession], now: datetime) -> Dict[str, Any]:
    """
    הכנסות מ-sessions שהושלמו בלבד (total_amount לפי completed_at).
    monthly_revenue – 6 חודשים אחרונים, הישן ראשון, החודש הנוכחי אחרון.
    """
    completed = [s for s in sessions if s.status == SessionStatus.COMPLETED.value]
    months = app_config.analytics.revenue_months
    this_month = _month_start(now.date())
    starts = [_month_start(now.date(), back) for back in range(months - 1, -1, -1)]

    total = 0.0
    this_month_total = 0.0
    monthly = [0.0] * months
    for session in completed:
        amount = session.total_amount or 0.0
        total += amount
        if session.completed_at is None:
            continue
        done = session.completed_at.date()
        if done >= this_month:
            this_month_total += amount
        for i, start in enumerate(starts):
            end = starts[i + 1] if i + 1 < months else None
            if done >= start and (end is None or done < end):
                monthly[i] += amount
                break

    return {
        "total_revenue": total,
        "this_month_revenue": this_month_total,
        "average_session_price": total / len(completed) if completed else 0.0,
        "monthly_revenue": monthly,
        "month_labels": [start.strftime("%b") for start in starts],
    }


def issue_counts(issues: Sequence[ReportedIssue]) -> Dict[str, Any]:
    total = len(issues)
    pending = sum(1 for i in issues if i.status in OPEN_ISSUE_STATUSES)
    return {
        "total": total,
        "pending": pending,
        "resolved": sum(1 for i in issues if i.status == IssueStatus.RESOLVED.value),
        "pending_ratio": pending / total if total else 0.0,
    }


def dashboard(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.now()
    users = crud.list_users(db)
    sessions = crud.list_sessions(db)
    issues = crud.list_issues(db)
    logger.debug(
        "dashboard | users=%s sessions=%s issues=%s",
        len(users),
        len(sessions),
        len(issues),
    )
    return {
        "users": user_counts(users, now),
        "sessions": session_counts(sessions, now.date()),
        "subjects": popular_subjects(sessions, app_config.analytics.popular_subjects_limit),
        "financials": financials(sessions, now),
        "issues": issue_counts(issues),
    }
