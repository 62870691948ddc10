from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Tuple

from dotenv import load_dotenv

# טעינת .env פעם אחת בתחילת המודול
load_dotenv()


# === Logging setup בסיסי ===

LOGGER_NAME = "edubro_app"


def get_logger() -> logging.Logger:
    """
    מחזיר Logger אפליקטיבי מרכזי.
    שים לב: לא ליצור לוגרים שונים בכל מודול, אלא להשתמש בשם אחיד.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        level_name = os.getenv("EDUBRO_LOG_LEVEL", "DEBUG").upper()
        logger.setLevel(getattr(logging, level_name, logging.DEBUG))
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.propagate = False
    return logger


logger = get_logger()


@dataclass(frozen=True)
class BookingConfig:
    """
    חוקי הזמנה/ביטול של שיעורים.
    """
    cancellation_notice_hours: int = 5
    slot_length_hours: int = 1


@dataclass(frozen=True)
class ValidationConfig:
    """
    גבולות לוולידציה של טפסי הרשמה / מועמדות למורה.
    """
    min_gpa: float = 3.50
    max_gpa: float = 4.00
    min_password_length: int = 6
    min_phone_digits: int = 10
    max_phone_digits: int = 15


@dataclass(frozen=True)
class AnalyticsConfig:
    """
    חלונות זמן לדשבורד האדמין.
    """
    trend_weeks: int = 7
    revenue_months: int = 6
    popular_subjects_limit: int = 5
    active_user_days: int = 30
    recent_income_days: int = 30


@dataclass(frozen=True)
class MediaConfig:
    """
    תמונות פרופיל: תיקייה מקומית + כתובת בסיס שממנה הן מוגשות.
    """
    media_dir: str = "./media"
    base_url: str = "http://localhost:8000/media"
    max_image_bytes: int = 5 * 1024 * 1024


@dataclass(frozen=True)
class SeedConfig:
    """
    מסמכי ברירת מחדל שנוצרים ב-startup.
    """
    admin_id: str = "admin"
    admin_email: str = "admin@edubro.com"
    admin_name: str = "Admin User"
    admin_password: str = "change-me-admin"
    admin_privileges: Tuple[str, ...] = ("users", "tutors", "issues", "subjects")


@dataclass(frozen=True)
class AppConfig:
    """
    קונפיג גלובלי.
    """
    db_path: str
    booking: BookingConfig
    validation: ValidationConfig
    analytics: AnalyticsConfig
    seed: SeedConfig = field(default_factory=SeedConfig)
    media: MediaConfig = field(default_factory=MediaConfig)


def build_default_config() -> AppConfig:
    logger.debug("Building default AppConfig")
    seed = SeedConfig(
        admin_email=os.getenv("EDUBRO_ADMIN_EMAIL", SeedConfig.admin_email),
        admin_password=os.getenv("EDUBRO_ADMIN_PASSWORD", SeedConfig.admin_password),
    )
    return AppConfig(
        db_path=os.getenv("DB_PATH", "./edubro.db"),
        booking=BookingConfig(),
        validation=ValidationConfig(),
        analytics=AnalyticsConfig(),
        seed=seed,
        media=MediaConfig(
            media_dir=os.getenv("EDUBRO_MEDIA_DIR", MediaConfig.media_dir),
            base_url=os.getenv("EDUBRO_MEDIA_URL", MediaConfig.base_url),
        ),
    )


# אובייקט קונפיג גלובלי לשימוש בשאר המודולים
app_config: AppConfig = build_default_config()
logger.info(
    "AppConfig initialized | db_path=%s cancellation_notice_hours=%s",
    app_config.db_path,
    app_config.booking.cancellation_notice_hours,
)
