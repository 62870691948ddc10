from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from edubro.core.config import MediaConfig, app_config, logger
from edubro.core.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationFailedError,
)
from edubro.domain.model import ApplicationStatus, Role
from edubro.domain.validation import (
    validate_email,
    validate_password,
    validate_tutor_form,
)
from edubro.store import crud
from edubro.store.media import IMAGE_EXTENSIONS, save_profile_picture
from edubro.store.models import User

_HASH_ITERATIONS = 120_000

# שדות שמשתמש רשאי לעדכן בעצמו דרך עריכת פרופיל
PROFILE_FIELDS = {"full_name", "bio", "photo_url", "phone_number"}


# === Passwords & tokens ===

def hash_password(password: str, salt: Optional[str] = None) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), _HASH_ITERATIONS
    ).hex()
    return f"{salt}${digest}"


def verify_password(password: str, stored: Optional[str]) -> bool:
    if not stored or "$" not in stored:
        return False
    salt, _ = stored.split("$", 1)
    return hmac.compare_digest(hash_password(password, salt), stored)


def _new_token() -> str:
    return secrets.token_hex(32)


# === Registration / login ===

def register_user(
    db: Session,
    email: str,
    password: str,
    full_name: str,
    role: str,
    additional: Optional[Dict[str, Any]] = None,
) -> User:
    """
    יצירת משתמש חדש:
    - מורה נוצר לא-מאומת (rating=0) ומקבל מועמדות pending.
    - אדמין מקבל הרשאות ברירת מחדל.
    """
    additional = additional or {}
    logger.info("register_user | email=%s role=%s", email, role)

    if role not in {r.value for r in Role}:
        raise ValidationFailedError(f"Unknown role: {role}", {"role": "Invalid role"})
    if not validate_email(email):
        raise ValidationFailedError(
            "Please enter a valid email address",
            {"email": "Please enter a valid email address"},
        )
    if not validate_password(password):
        raise ValidationFailedError(
            "Password must be at least 6 characters",
            {"password": "Password must be at least 6 characters"},
        )
    if not full_name or not full_name.strip():
        raise ValidationFailedError("Full name is required", {"full_name": "Full name is required"})
    if role == Role.TUTOR.value:
        is_valid, errors = validate_tutor_form(
            {**additional, "email": email, "password": password, "full_name": full_name}
        )
        if not is_valid:
            raise ValidationFailedError("Tutor registration is incomplete", errors)

    if crud.get_user_by_email(db, email) is not None:
        logger.warning("register_user | email already registered | email=%s", email)
        raise ConflictError("Email already registered")

    fields: Dict[str, Any] = {
        "email": email.strip().lower(),
        "full_name": full_name.strip(),
        "role": role,
        "password_hash": hash_password(password),
        "bio": additional.get("bio", ""),
        "photo_url": None,
    }

    if role == Role.TUTOR.value:
        fields.update(
            phone_number=additional.get("phone_number", ""),
            subjects=list(additional.get("subjects", [])),
            hourly_rate=float(additional.get("hourly_rate", 0) or 0),
            is_verified=False,
            rating=0.0,
            total_reviews=0,
        )
    elif role == Role.ADMIN.value:
        fields.update(
            is_admin=True,
            admin_privileges=list(
                additional.get("admin_privileges", app_config.seed.admin_privileges)
            ),
        )

    user = crud.create_user(db, **fields)

    if role == Role.TUTOR.value:
        crud.upsert_application(
            db,
            user.id,
            full_name=user.full_name,
            email=user.email,
            phone_number=user.phone_number,
            status=ApplicationStatus.PENDING.value,
            subjects=list(user.subjects),
            experience=additional.get("experience", ""),
            education=additional.get("education", ""),
            hourly_rate=user.hourly_rate,
            gpa=additional.get("gpa"),
        )

    return user


def login_user(db: Session, email: str, password: str) -> User:
    logger.info("login_user | email=%s", email)
    user = crud.get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("login_user | invalid credentials | email=%s", email)
        raise AuthenticationError("Invalid credentials")
    if not user.is_active:
        logger.warning("login_user | inactive account | user_id=%s", user.id)
        raise AuthenticationError("Account is disabled")

    user.auth_token = _new_token()
    user.last_login_at = datetime.now()
    db.flush()
    return user


def logout_user(db: Session, user: User) -> None:
    logger.info("logout_user | user_id=%s", user.id)
    user.auth_token = None
    db.flush()


def user_from_token(db: Session, token: Optional[str]) -> User:
    if not token:
        raise AuthenticationError("Not authenticated")
    user = crud.get_user_by_token(db, token)
    if user is None or not user.is_active:
        raise AuthenticationError("Invalid or expired token")
    return user


# === Profile ===

def update_user_profile(db: Session, user: User, data: Dict[str, Any]) -> User:
    unknown = set(data) - PROFILE_FIELDS
    if unknown:
        raise ValidationFailedError(f"Fields not editable: {', '.join(sorted(unknown))}")
    if "full_name" in data and not (data["full_name"] or "").strip():
        raise ValidationFailedError("Full name is required", {"full_name": "Full name is required"})
    return crud.update_user(db, user, **data)


def update_profile_picture(
    db: Session,
    user: User,
    data: bytes,
    content_type: Optional[str],
    media: Optional[MediaConfig] = None,
) -> User:
    """
    העלאת תמונת פרופיל: שמירה באחסון המדיה ועדכון photo_url של המשתמש.
    """
    media = media or app_config.media
    logger.info(
        "update_profile_picture | user_id=%s content_type=%s bytes=%s",
        user.id,
        content_type,
        len(data or b""),
    )
    if not data:
        raise ValidationFailedError("Image data is required")
    if content_type not in IMAGE_EXTENSIONS:
        raise ValidationFailedError(f"Unsupported image type: {content_type}")
    if len(data) > media.max_image_bytes:
        raise ValidationFailedError("Image is too large")

    url = save_profile_picture(user.id, data, content_type, media)
    return crud.update_user(db, user, photo_url=url)


def reset_password(db: Session, email: str, new_password: str) -> None:
    """
    איפוס סיסמה למייל קיים. אין שליחת מייל – הסיסמה החדשה נקבעת ישירות
    וכל הטוקנים הקיימים מתבטלים.
    """
    user = crud.get_user_by_email(db, email)
    if user is None:
        raise NotFoundError("No account found for this email")
    if not validate_password(new_password):
        raise ValidationFailedError(
            "Password must be at least 6 characters",
            {"password": "Password must be at least 6 characters"},
        )
    crud.update_user(db, user, password_hash=hash_password(new_password), auth_token=None)
    logger.info("reset_password | user_id=%s", user.id)


def user_exists(db: Session, email: str) -> bool:
    return crud.get_user_by_email(db, email) is not None


def refresh_user(db: Session, user_id: str) -> User:
    user = crud.get_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user
