from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class Role(str, Enum):
    STUDENT = "student"
    TUTOR = "tutor"
    ADMIN = "admin"


class SessionStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class IssueStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class NotificationType(str, Enum):
    SESSION_BOOKED = "session_booked"
    SESSION_CANCELLED = "session_cancelled"
    SESSION_COMPLETED = "session_completed"


# סטטוסים שנחשבים "פתוחים" בספירת תקלות
OPEN_ISSUE_STATUSES = {IssueStatus.PENDING.value, IssueStatus.IN_PROGRESS.value}

# סטטוסים שנחשבים "עתידיים" בדשבורד
UPCOMING_SESSION_STATUSES = {SessionStatus.PENDING.value, SessionStatus.CONFIRMED.value}


@dataclass(frozen=True)
class DefaultSubject:
    id: str
    name: str
    description: str


# מאגר מקצועות ברירת מחדל – נזרע ב-startup אם חסר
DEFAULT_SUBJECTS: List[DefaultSubject] = [
    DefaultSubject("mathematics", "Mathematics", "Math tutoring for all levels"),
    DefaultSubject("physics", "Physics", "Physics for high school and college"),
    DefaultSubject("chemistry", "Chemistry", "Chemistry tutoring"),
    DefaultSubject("biology", "Biology", "Biology courses and topics"),
    DefaultSubject("computer-science", "Computer Science", "Programming and computer science"),
    DefaultSubject("english", "English", "English language and literature"),
    DefaultSubject("history", "History", "World and local history"),
    DefaultSubject("economics", "Economics", "Micro and macroeconomics"),
    DefaultSubject("business", "Business Studies", "Business management and entrepreneurship"),
    DefaultSubject("accounting", "Accounting", "Financial and management accounting"),
]


@dataclass
class Slot:
    """
    סלוט זמינות של שעה אחת בתוך יום של מורה.
    נשמר ב-DB כ-dict בתוך עמודת JSON.
    """
    start_time: str
    end_time: str
    is_booked: bool = False
    session_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "start_time": self.start_time,
            "end_time": self.end_time,
            "is_booked": self.is_booked,
            "session_id": self.session_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Slot":
        return cls(
            start_time=data["start_time"],
            end_time=data["end_time"],
            is_booked=bool(data.get("is_booked", False)),
            session_id=data.get("session_id"),
        )
