from __future__ import annotations

import re
from typing import Any, Dict, Optional, Sequence, Tuple

from edubro.core.config import app_config

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
IMAGE_URL_PREFIXES = ("http://", "https://", "data:image/")


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def validate_gpa(gpa: Any) -> bool:
    """
    ממוצע מינימלי למורים: 3.50 עד 4.00 כולל.
    """
    cfg = app_config.validation
    value = _to_float(gpa)
    return value is not None and cfg.min_gpa <= value <= cfg.max_gpa


def validate_email(email: Optional[str]) -> bool:
    return bool(email) and EMAIL_RE.match(email) is not None


def validate_password(password: Optional[str]) -> bool:
    return bool(password) and len(password) >= app_config.validation.min_password_length


def validate_phone_number(phone_number: Optional[str]) -> bool:
    """
    מתעלם מכל תו שאינו ספרה – "(555) 123-4567" תקין.
    """
    if not phone_number:
        return False
    cfg = app_config.validation
    digits = re.sub(r"\D", "", phone_number)
    return cfg.min_phone_digits <= len(digits) <= cfg.max_phone_digits


def validate_subject_selection(subjects: Any) -> bool:
    return isinstance(subjects, (list, tuple)) and len(subjects) > 0


def validate_hourly_rate(hourly_rate: Any) -> bool:
    value = _to_float(hourly_rate)
    return value is not None and value > 0


def validate_tutor_form(form: Dict[str, Any]) -> Tuple[bool, Dict[str, str]]:
    """
    ולידציה מלאה לטופס הרשמת מורה.
    מחזיר (is_valid, errors) כאשר errors ממפה שם שדה → הודעה.
    """
    errors: Dict[str, str] = {}

    if not validate_email(form.get("email")):
        errors["email"] = "Please enter a valid email address"

    if not validate_password(form.get("password")):
        errors["password"] = "Password must be at least 6 characters"

    full_name = form.get("full_name")
    if not full_name or not str(full_name).strip():
        errors["full_name"] = "Full name is required"

    if not validate_gpa(form.get("gpa")):
        errors["gpa"] = "GPA must be at least 3.50 and at most 4.00"

    if not validate_subject_selection(form.get("subjects")):
        errors["subjects"] = "Please select at least one subject"

    if not validate_hourly_rate(form.get("hourly_rate")):
        errors["hourly_rate"] = "Please enter a valid hourly rate"

    if not validate_phone_number(form.get("phone_number")):
        errors["phone_number"] = "Please enter a valid phone number"

    return len(errors) == 0, errors


def is_valid_image_url(url: Optional[str]) -> bool:
    return bool(url) and isinstance(url, str) and url.startswith(IMAGE_URL_PREFIXES)


def profile_image_source(photo_url: Optional[str], has_error: bool = False) -> Optional[str]:
    """
    מחזיר את כתובת התמונה רק אם היא תקינה – אחרת None והלקוח מציג avatar ברירת מחדל.
    """
    if photo_url and is_valid_image_url(photo_url) and not has_error:
        return photo_url
    return None


def require_non_blank(values: Sequence[Optional[str]]) -> bool:
    return all(v is not None and v.strip() for v in values)
