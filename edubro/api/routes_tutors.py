from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from edubro.api.deps import get_current_user, get_db, require_role
from edubro.api.schemas import (
    ApplicationOut,
    AvailabilityOut,
    MessageResponse,
    SubjectOut,
    TutorOut,
)
from edubro.core.config import logger
from edubro.services import tutors
from edubro.store.models import User

router = APIRouter(tags=["tutors"])


# ========= מודלים =========

class AvailabilityRequest(BaseModel):
    date: str
    start_time: str
    end_time: Optional[str] = None


class HourlyRateRequest(BaseModel):
    hourly_rate: float


class ApplyRequest(BaseModel):
    phone_number: str
    subjects: List[str] = Field(default_factory=list)
    hourly_rate: float
    experience: Optional[str] = ""
    education: Optional[str] = ""
    gpa: Optional[float] = None


# ========= מקצועות וחיפוש =========

@router.get("/subjects", response_model=List[SubjectOut])
def list_subjects(db: Session = Depends(get_db)):
    return tutors.get_all_subjects(db)


@router.get("/tutors", response_model=List[TutorOut])
def search_tutors(
    query: Optional[str] = None,
    subject: Optional[str] = None,
    min_rating: float = 0.0,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    available_on: Optional[date] = None,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    logger.info(
        "API /tutors | query=%s subject=%s min_rating=%s available_on=%s",
        query,
        subject,
        min_rating,
        available_on,
    )
    return tutors.find_tutors(
        db,
        query=query,
        subject=subject,
        min_rating=min_rating,
        min_price=min_price,
        max_price=max_price,
        available_on=available_on,
    )


@router.get("/tutors/{tutor_id}", response_model=TutorOut)
def tutor_profile(
    tutor_id: str,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return tutors.get_tutor_profile(db, tutor_id)


# ========= פרופיל מורה =========

@router.post("/tutors/{tutor_id}/subjects/{subject_id}", response_model=TutorOut)
def add_subject(
    tutor_id: str,
    subject_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_role("tutor", "admin")),
):
    tutors.ensure_self_or_admin(user, tutor_id)
    return tutors.add_subject_to_tutor(db, tutor_id, subject_id)


@router.delete("/tutors/{tutor_id}/subjects/{subject_id}", response_model=TutorOut)
def remove_subject(
    tutor_id: str,
    subject_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_role("tutor", "admin")),
):
    tutors.ensure_self_or_admin(user, tutor_id)
    return tutors.remove_subject_from_tutor(db, tutor_id, subject_id)


@router.put("/tutors/{tutor_id}/hourly-rate", response_model=TutorOut)
def update_hourly_rate(
    tutor_id: str,
    payload: HourlyRateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_role("tutor", "admin")),
):
    tutors.ensure_self_or_admin(user, tutor_id)
    return tutors.update_tutor_hourly_rate(db, tutor_id, payload.hourly_rate)


# ========= זמינות =========

@router.get("/tutors/{tutor_id}/availability", response_model=List[AvailabilityOut])
def get_availability(
    tutor_id: str,
    start_date: date,
    end_date: date,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return tutors.get_tutor_availability(db, tutor_id, start_date, end_date)


@router.post(
    "/tutors/me/availability",
    response_model=AvailabilityOut,
    status_code=status.HTTP_201_CREATED,
)
def add_availability(
    payload: AvailabilityRequest,
    db: Session = Depends(get_db),
    tutor: User = Depends(require_role("tutor")),
):
    return tutors.add_availability_slot(
        db, tutor.id, payload.date, payload.start_time, payload.end_time
    )


@router.delete("/tutors/me/availability/{day}/{start_time}", response_model=MessageResponse)
def remove_availability(
    day: str,
    start_time: str,
    db: Session = Depends(get_db),
    tutor: User = Depends(require_role("tutor")),
):
    remaining = tutors.remove_availability_slot(db, tutor.id, day, start_time)
    if remaining is None:
        return MessageResponse(message="Slot removed; no availability left for this date.")
    return MessageResponse(message="Slot removed")


# ========= מועמדות למורה =========

@router.post(
    "/applications",
    response_model=ApplicationOut,
    status_code=status.HTTP_201_CREATED,
)
def apply_for_tutor(
    payload: ApplyRequest,
    db: Session = Depends(get_db),
    student: User = Depends(require_role("student")),
):
    logger.info("API /applications | user_id=%s", student.id)
    return tutors.apply_for_tutor(db, student, payload.model_dump())
