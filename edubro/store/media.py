from __future__ import annotations

import time
from pathlib import Path
from typing import Optional

from edubro.core.config import MediaConfig, app_config, logger

PROFILE_PICTURES_DIR = "profile_pictures"

# סוגי תמונה נתמכים → סיומת קובץ
IMAGE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}


def profile_picture_filename(user_id: str, content_type: str) -> str:
    """
    שם ייחודי לפי משתמש + חותמת זמן במילישניות.
    """
    millis = int(time.time() * 1000)
    return f"profile_{user_id}_{millis}{IMAGE_EXTENSIONS[content_type]}"


def save_profile_picture(
    user_id: str,
    data: bytes,
    content_type: str,
    media: Optional[MediaConfig] = None,
) -> str:
    """
    שומר את התמונה תחת media_dir/profile_pictures ומחזיר את הכתובת הציבורית שלה.
    """
    media = media or app_config.media
    folder = Path(media.media_dir) / PROFILE_PICTURES_DIR
    folder.mkdir(parents=True, exist_ok=True)

    filename = profile_picture_filename(user_id, content_type)
    (folder / filename).write_bytes(data)
    logger.info(
        "Profile picture stored | user_id=%s file=%s bytes=%s",
        user_id,
        filename,
        len(data),
    )
    return f"{media.base_url.rstrip('/')}/{PROFILE_PICTURES_DIR}/{filename}"
