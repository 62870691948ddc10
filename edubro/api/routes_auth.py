from __future__ import annotations

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, File, UploadFile, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from edubro.api.deps import get_current_user, get_db
from edubro.api.schemas import MessageResponse, UserOut
from edubro.core.config import logger
from edubro.domain.validation import profile_image_source
from edubro.services import auth
from edubro.store.models import User

router = APIRouter(prefix="/auth", tags=["auth"])


# ========= מודלים =========

class RegisterRequest(BaseModel):
    email: str
    password: str
    full_name: str
    # אדמין לא נרשם דרך ה-API – נזרע ב-bootstrap
    role: Literal["student", "tutor"] = "student"
    bio: Optional[str] = ""
    phone_number: Optional[str] = None
    subjects: List[str] = Field(default_factory=list)
    hourly_rate: Optional[float] = None
    gpa: Optional[float] = None
    experience: Optional[str] = ""
    education: Optional[str] = ""


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    token: str
    user: UserOut


class ProfileUpdateRequest(BaseModel):
    full_name: Optional[str] = None
    bio: Optional[str] = None
    photo_url: Optional[str] = None
    phone_number: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    email: str
    new_password: str


class ExistsResponse(BaseModel):
    exists: bool


class ProfileImageResponse(BaseModel):
    photo_url: Optional[str] = None


# ========= Endpoints =========

@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    logger.info("API /auth/register | email=%s role=%s", payload.email, payload.role)
    extra = payload.model_dump(exclude={"email", "password", "full_name", "role"})
    return auth.register_user(
        db,
        email=payload.email,
        password=payload.password,
        full_name=payload.full_name,
        role=payload.role,
        additional=extra,
    )


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    logger.info("API /auth/login | email=%s", payload.email)
    user = auth.login_user(db, payload.email, payload.password)
    return LoginResponse(token=user.auth_token, user=UserOut.model_validate(user))


@router.post("/logout", response_model=MessageResponse)
def logout(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    auth.logout_user(db, user)
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return auth.refresh_user(db, user.id)


@router.patch("/me", response_model=UserOut)
def update_me(
    payload: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    logger.info("API /auth/me PATCH | user_id=%s", user.id)
    data = payload.model_dump(exclude_unset=True, exclude_none=True)
    return auth.update_user_profile(db, user, data)


@router.get("/me/photo", response_model=ProfileImageResponse)
def my_photo(user: User = Depends(get_current_user)):
    return ProfileImageResponse(photo_url=profile_image_source(user.photo_url))


@router.post("/me/photo", response_model=ProfileImageResponse)
def upload_my_photo(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    העלאת תמונת פרופיל (multipart). מחזיר את הכתובת החדשה.
    """
    logger.info(
        "API /auth/me/photo POST | user_id=%s filename=%s",
        user.id,
        file.filename,
    )
    image_bytes = file.file.read()
    user = auth.update_profile_picture(db, user, image_bytes, file.content_type)
    return ProfileImageResponse(photo_url=profile_image_source(user.photo_url))


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(payload: ResetPasswordRequest, db: Session = Depends(get_db)):
    logger.info("API /auth/reset-password | email=%s", payload.email)
    auth.reset_password(db, payload.email, payload.new_password)
    return MessageResponse(message="Password has been reset")


@router.get("/exists", response_model=ExistsResponse)
def exists(email: str, db: Session = Depends(get_db)):
    return ExistsResponse(exists=auth.user_exists(db, email))
