from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from edubro.core.config import logger
from edubro.core.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from edubro.domain.filters import filter_tutors
from edubro.domain.model import ApplicationStatus, Role, Slot
from edubro.domain.slots import (
    default_end_time,
    expand_hour_slots,
    format_hour,
    normalize_date,
    parse_hour,
)
from edubro.domain.validation import (
    validate_hourly_rate,
    validate_phone_number,
    validate_subject_selection,
)
from edubro.store import crud
from edubro.store.models import Availability, Subject, TutorApplication, User


# === Subjects & tutor profile ===

def get_all_subjects(db: Session) -> List[Subject]:
    return crud.list_subjects(db)


def _get_tutor(db: Session, tutor_id: str) -> User:
    tutor = crud.get_user(db, tutor_id)
    if tutor is None:
        logger.warning("Tutor document does not exist | tutor_id=%s", tutor_id)
        raise NotFoundError("Tutor document not found")
    return tutor


def add_subject_to_tutor(db: Session, tutor_id: str, subject_id: str) -> User:
    """
    הוספת מקצוע לפרופיל מורה – union, הוספה כפולה לא משנה כלום.
    """
    logger.info("add_subject_to_tutor | tutor_id=%s subject_id=%s", tutor_id, subject_id)
    tutor = _get_tutor(db, tutor_id)
    if crud.get_subject(db, subject_id) is None:
        raise NotFoundError(f"Unknown subject: {subject_id}")

    subjects = list(tutor.subjects or [])
    if subject_id not in subjects:
        subjects.append(subject_id)
    return crud.update_user(db, tutor, subjects=subjects)


def remove_subject_from_tutor(db: Session, tutor_id: str, subject_id: str) -> User:
    logger.info("remove_subject_from_tutor | tutor_id=%s subject_id=%s", tutor_id, subject_id)
    tutor = _get_tutor(db, tutor_id)
    subjects = [s for s in (tutor.subjects or []) if s != subject_id]
    return crud.update_user(db, tutor, subjects=subjects)


def update_tutor_hourly_rate(db: Session, tutor_id: str, hourly_rate: float) -> User:
    if not validate_hourly_rate(hourly_rate):
        raise ValidationFailedError(
            "Please enter a valid hourly rate",
            {"hourly_rate": "Please enter a valid hourly rate"},
        )
    tutor = _get_tutor(db, tutor_id)
    return crud.update_user(db, tutor, hourly_rate=float(hourly_rate))


# === Tutor applications ===

def apply_for_tutor(db: Session, user: User, data: Dict[str, Any]) -> TutorApplication:
    """
    הגשת מועמדות (או הגשה חוזרת) – תמיד חוזרת ל-pending.
    """
    logger.info("apply_for_tutor | user_id=%s", user.id)
    errors: Dict[str, str] = {}
    if not validate_phone_number(data.get("phone_number")):
        errors["phone_number"] = "Please enter a valid phone number"
    if not validate_hourly_rate(data.get("hourly_rate")):
        errors["hourly_rate"] = "Please enter a valid hourly rate"
    if not validate_subject_selection(data.get("subjects")):
        errors["subjects"] = "Please select at least one subject"
    if errors:
        raise ValidationFailedError("Application is incomplete", errors)

    return crud.upsert_application(
        db,
        user.id,
        full_name=user.full_name,
        email=user.email,
        phone_number=data["phone_number"],
        status=ApplicationStatus.PENDING.value,
        subjects=list(data["subjects"]),
        experience=data.get("experience", "") or "",
        education=data.get("education", "") or "",
        hourly_rate=float(data["hourly_rate"]),
        gpa=data.get("gpa"),
    )


def list_applications(db: Session, status: Optional[str] = None) -> List[TutorApplication]:
    return crud.list_applications(db, status=status)


def _pending_application(db: Session, user_id: str) -> TutorApplication:
    application = crud.get_application(db, user_id)
    if application is None:
        raise NotFoundError("Application not found")
    if application.status != ApplicationStatus.PENDING.value:
        raise ConflictError(f"Application is already {application.status}")
    return application


def approve_application(db: Session, user_id: str) -> TutorApplication:
    """
    אישור מועמדות: המשתמש הופך למורה מאומת, המקצועות והתעריף מועתקים מהמועמדות.
    """
    application = _pending_application(db, user_id)
    user = crud.get_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found")

    crud.update_user(
        db,
        user,
        role=Role.TUTOR.value,
        is_verified=True,
        subjects=list(application.subjects or []),
        hourly_rate=application.hourly_rate,
        phone_number=application.phone_number or user.phone_number,
    )
    application.status = ApplicationStatus.APPROVED.value
    application.reviewed_at = datetime.now()
    db.flush()
    logger.info("Application approved | user_id=%s", user_id)
    return application


def reject_application(db: Session, user_id: str) -> TutorApplication:
    application = _pending_application(db, user_id)
    application.status = ApplicationStatus.REJECTED.value
    application.reviewed_at = datetime.now()
    db.flush()
    logger.info("Application rejected | user_id=%s", user_id)
    return application


# === Availability ===

def add_availability_slot(
    db: Session,
    tutor_id: str,
    day: Union[str, date],
    start_time: str,
    end_time: Optional[str] = None,
) -> Availability:
    """
    הוספת זמינות: הטווח מפורק לסלוטים של שעה.
    אם אחת משעות ההתחלה כבר קיימת באותו יום – נכשל בלי לשנות כלום.
    """
    date_str = normalize_date(day)
    end_time = end_time or default_end_time(start_time)
    new_slots = expand_hour_slots(start_time, end_time)
    logger.info(
        "add_availability_slot | tutor_id=%s date=%s start=%s end=%s slots=%s",
        tutor_id,
        date_str,
        start_time,
        end_time,
        len(new_slots),
    )

    existing = crud.get_availability_day(db, tutor_id, date_str)
    if existing is None:
        return crud.create_availability_day(
            db, tutor_id, date_str, [s.to_dict() for s in new_slots]
        )

    existing_starts = {s["start_time"] for s in existing.slots or []}
    if any(s.start_time in existing_starts for s in new_slots):
        logger.warning(
            "add_availability_slot | overlapping hours | tutor_id=%s date=%s",
            tutor_id,
            date_str,
        )
        raise ConflictError("Some of these hours are already set as available.")

    slots = list(existing.slots or []) + [s.to_dict() for s in new_slots]
    return crud.set_availability_slots(db, existing, slots)


def remove_availability_slot(
    db: Session,
    tutor_id: str,
    day: Union[str, date],
    start_time: str,
) -> Optional[Availability]:
    """
    מחיקת סלוט פנוי. סלוט שהוזמן לא נמחק.
    מחזיר None אם היום נמחק כולו (לא נשארו סלוטים).
    """
    date_str = normalize_date(day)
    start_time = format_hour(parse_hour(start_time))
    existing = crud.get_availability_day(db, tutor_id, date_str)
    if existing is None:
        raise NotFoundError("No availability found for this date.")

    slots = [Slot.from_dict(s) for s in existing.slots or []]
    target = next((s for s in slots if s.start_time == start_time and not s.is_booked), None)
    if target is None:
        raise ConflictError("Cannot find the slot or it is already booked by a student.")

    remaining = [s.to_dict() for s in slots if s is not target]
    if not remaining:
        crud.delete_availability_day(db, existing)
        return None
    return crud.set_availability_slots(db, existing, remaining)


def get_tutor_availability(
    db: Session,
    tutor_id: str,
    start_date: Union[str, date],
    end_date: Union[str, date],
) -> List[Availability]:
    start_str = normalize_date(start_date)
    end_str = normalize_date(end_date)
    logger.debug(
        "get_tutor_availability | tutor_id=%s start=%s end=%s",
        tutor_id,
        start_str,
        end_str,
    )
    return crud.list_availability(db, tutor_id, start_str, end_str)


# === Tutor search ===

def get_all_tutors(db: Session, subject: Optional[str] = None) -> List[User]:
    """
    כל המורים שיש להם לפחות מקצוע אחד (ואם נשלח subject – רק מי שמלמד אותו).
    """
    tutors = crud.list_users(db, role=Role.TUTOR.value)
    with_subjects = [t for t in tutors if t.subjects]
    if subject:
        with_subjects = [t for t in with_subjects if subject in t.subjects]
    logger.debug(
        "get_all_tutors | total=%s with_subjects=%s subject=%s",
        len(tutors),
        len(with_subjects),
        subject,
    )
    return with_subjects


def _tutors_free_on(db: Session, date_str: str) -> set:
    free = set()
    for day in crud.list_availability_on(db, date_str):
        if any(not s.get("is_booked") for s in day.slots or []):
            free.add(day.tutor_id)
    return free


def find_tutors(
    db: Session,
    query: Optional[str] = None,
    subject: Optional[str] = None,
    min_rating: float = 0.0,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    available_on: Optional[Union[str, date]] = None,
) -> List[User]:
    tutors = get_all_tutors(db)
    available_ids = None
    if available_on:
        available_ids = _tutors_free_on(db, normalize_date(available_on))
    return filter_tutors(
        tutors,
        query=query,
        subject=subject,
        min_rating=min_rating,
        min_price=min_price,
        max_price=max_price,
        available_tutor_ids=available_ids,
    )


def get_tutor_profile(db: Session, tutor_id: str) -> User:
    tutor = _get_tutor(db, tutor_id)
    if tutor.role != Role.TUTOR.value:
        raise NotFoundError("Tutor document not found")
    return tutor


def ensure_self_or_admin(actor: User, tutor_id: str) -> None:
    if actor.id != tutor_id and actor.role != Role.ADMIN.value:
        raise PermissionDeniedError("You can only edit your own tutor profile")
