from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# ========= מודלי תגובה משותפים =========
# נבנים ישירות ממודלי ה-ORM (from_attributes).


class OrmModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class UserOut(OrmModel):
    id: str
    email: str
    full_name: str
    role: str
    bio: Optional[str] = ""
    photo_url: Optional[str] = None
    phone_number: Optional[str] = None
    subjects: List[str] = Field(default_factory=list)
    hourly_rate: Optional[float] = None
    is_verified: bool = False
    rating: float = 0.0
    total_reviews: int = 0
    is_admin: bool = False
    admin_privileges: List[str] = Field(default_factory=list)
    is_active: bool = True
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None


class TutorOut(OrmModel):
    id: str
    full_name: str
    bio: Optional[str] = ""
    photo_url: Optional[str] = None
    subjects: List[str] = Field(default_factory=list)
    hourly_rate: Optional[float] = None
    is_verified: bool = False
    rating: float = 0.0
    total_reviews: int = 0


class SubjectOut(OrmModel):
    id: str
    name: str
    description: str = ""


class SlotOut(BaseModel):
    start_time: str
    end_time: str
    is_booked: bool = False
    session_id: Optional[str] = None


class AvailabilityOut(OrmModel):
    id: str
    tutor_id: str
    date: str
    slots: List[SlotOut] = Field(default_factory=list)


class ApplicationOut(OrmModel):
    id: str
    full_name: str
    email: str
    phone_number: Optional[str] = None
    status: str
    subjects: List[str] = Field(default_factory=list)
    experience: Optional[str] = ""
    education: Optional[str] = ""
    hourly_rate: Optional[float] = None
    gpa: Optional[float] = None
    created_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None


class SessionOut(OrmModel):
    id: str
    tutor_id: str
    student_id: str
    subject: str
    date: str
    start_time: str
    end_time: str
    hours: int
    hourly_rate: float
    total_amount: float
    tutor_name: str = ""
    student_name: str = ""
    tutor_phone_number: str = ""
    status: str
    payment_status: str
    payment_id: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class ReviewOut(OrmModel):
    id: str
    session_id: str
    tutor_id: str
    student_id: str
    rating: float
    comment: str = ""
    created_at: Optional[datetime] = None


class IssueOut(OrmModel):
    id: str
    title: str
    description: str
    user_id: str
    user_email: str = ""
    user_name: str = ""
    user_role: str = ""
    status: str
    has_admin_notes: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class IssueNoteOut(OrmModel):
    id: str
    issue_id: str
    text: str
    created_at: Optional[datetime] = None


class NotificationOut(OrmModel):
    id: str
    user_id: str
    title: str
    message: str
    type: str
    related_id: Optional[str] = None
    read: bool = False
    created_at: Optional[datetime] = None


class ChatOut(OrmModel):
    id: str
    student_id: str
    student_name: str = ""
    student_photo: Optional[str] = None
    tutor_id: str
    tutor_name: str = ""
    tutor_photo: Optional[str] = None
    session_details: Dict[str, Any] = Field(default_factory=dict)
    typing: Dict[str, Optional[str]] = Field(default_factory=dict)
    ended: bool = False
    ended_at: Optional[datetime] = None
    last_message: Optional[str] = None
    last_message_time: Optional[datetime] = None
    created_at: Optional[datetime] = None


class ChatMessageOut(OrmModel):
    id: str
    chat_id: str
    sender_id: str
    sender_type: str
    sender_name: str = ""
    content: str
    read: bool = False
    created_at: Optional[datetime] = None


class MessageResponse(BaseModel):
    message: str
