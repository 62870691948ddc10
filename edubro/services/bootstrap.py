from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import sessionmaker

from edubro.core.config import app_config, logger
from edubro.domain.model import DEFAULT_SUBJECTS, Role
from edubro.services.auth import hash_password
from edubro.store import crud
from edubro.store.db import SessionLocal, db_session_scope, init_db


def initialize_database(factory: Optional[sessionmaker] = None) -> bool:
    """
    אתחול DB אידמפוטנטי:
    - יצירת טבלאות.
    - משתמש admin (id קבוע) אם חסר.
    - 10 מקצועות ברירת מחדל, רק מה שחסר.
    מחזיר True בהצלחה, False אם משהו נכשל (השגיאה נרשמת ללוג).
    """
    factory = factory or SessionLocal
    seed = app_config.seed
    try:
        init_db(factory.kw.get("bind"))
        with db_session_scope(factory) as db:
            if crud.get_user(db, seed.admin_id) is None:
                crud.create_user(
                    db,
                    user_id=seed.admin_id,
                    email=seed.admin_email,
                    full_name=seed.admin_name,
                    role=Role.ADMIN.value,
                    password_hash=hash_password(seed.admin_password),
                    is_admin=True,
                    admin_privileges=list(seed.admin_privileges),
                )
                logger.info("Admin user created | email=%s", seed.admin_email)

            created = 0
            for subject in DEFAULT_SUBJECTS:
                if crud.get_subject(db, subject.id) is None:
                    crud.create_subject(db, subject.id, subject.name, subject.description)
                    created += 1
            logger.info("Default subjects ensured | created=%s", created)
    except Exception as exc:
        logger.exception("Error initializing database | error=%s", exc)
        return False

    logger.info("Database initialization complete")
    return True
