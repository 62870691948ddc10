from __future__ import annotations

from datetime import date
from typing import Any, Iterable, List, Optional, Sequence, Set, Tuple

from edubro.domain.model import SessionStatus


# חיפוש/סינון בצד הלקוח על רשימות שכבר נשלפו מה-DB.
# כל הפונקציות עובדות על אובייקטים עם attributes (מודלי ORM או schemas).


def _contains(value: Optional[str], needle: str) -> bool:
    return bool(value) and needle in value.lower()


def search_users(users: Sequence[Any], query: Optional[str]) -> List[Any]:
    """
    חיפוש משתמשים לפי שם / מייל / תפקיד (case-insensitive contains).
    """
    if not query or not query.strip():
        return list(users)
    needle = query.strip().lower()
    return [
        u for u in users
        if _contains(u.full_name, needle)
        or _contains(u.email, needle)
        or _contains(u.role, needle)
    ]


def filter_by_role(users: Sequence[Any], role: Optional[str]) -> List[Any]:
    if not role or role == "all":
        return list(users)
    return [u for u in users if u.role == role]


def filter_issues(
    issues: Sequence[Any],
    query: Optional[str] = None,
    status: Optional[str] = None,
) -> List[Any]:
    """
    סינון תקלות: חיפוש בכותרת/תיאור/שם/מייל של המדווח + סטטוס ("all" = הכל).
    """
    filtered = list(issues)
    if query:
        needle = query.lower()
        filtered = [
            i for i in filtered
            if _contains(i.title, needle)
            or _contains(i.description, needle)
            or _contains(i.user_name, needle)
            or _contains(i.user_email, needle)
        ]
    if status and status != "all":
        filtered = [i for i in filtered if i.status == status]
    return filtered


def filter_tutors(
    tutors: Sequence[Any],
    query: Optional[str] = None,
    subject: Optional[str] = None,
    min_rating: float = 0.0,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    available_tutor_ids: Optional[Set[str]] = None,
) -> List[Any]:
    """
    סינון רשימת מורים: שם, מקצוע, דירוג מינימלי, טווח מחיר לשעה,
    ו(אופציונלי) רק מורים שיש להם סלוט פנוי בתאריך מסוים.
    """
    filtered = list(tutors)

    if query and query.strip():
        needle = query.strip().lower()
        filtered = [t for t in filtered if _contains(t.full_name, needle)]

    if subject:
        filtered = [t for t in filtered if t.subjects and subject in t.subjects]

    if min_rating:
        filtered = [t for t in filtered if (t.rating or 0) >= min_rating]

    if min_price is not None:
        filtered = [t for t in filtered if (t.hourly_rate or 0) >= min_price]

    if max_price is not None:
        filtered = [t for t in filtered if (t.hourly_rate or 0) <= max_price]

    if available_tutor_ids is not None:
        filtered = [t for t in filtered if t.id in available_tutor_ids]

    return filtered


def _session_sort_key(session: Any) -> Tuple[str, str]:
    return (session.date, session.start_time)


def split_upcoming_past(
    sessions: Iterable[Any],
    today: date,
) -> Tuple[List[Any], List[Any]]:
    """
    חלוקה ללשוניות "קרובים" / "עבר":
    - upcoming: confirmed ותאריך >= היום.
    - past: תאריך < היום, או completed / cancelled.
    שתי הרשימות ממוינות לפי תאריך ושעה.
    """
    today_str = today.isoformat()
    ordered = sorted(sessions, key=_session_sort_key)

    upcoming = [
        s for s in ordered
        if s.date >= today_str and s.status == SessionStatus.CONFIRMED.value
    ]
    past = [
        s for s in ordered
        if s.date < today_str
        or s.status in (SessionStatus.COMPLETED.value, SessionStatus.CANCELLED.value)
    ]
    return upcoming, past
