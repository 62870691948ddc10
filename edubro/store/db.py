from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from edubro.core.config import app_config, logger
from edubro.core.errors import MarketplaceError
from edubro.store.models import Base

# ==================== הגדרת ה-DB ====================

# ברירת מחדל מקומית: ./edubro.db
# בפרודקשן מגדירים משתנה סביבה DB_PATH=/var/data/edubro.db
DB_PATH = app_config.db_path

DATABASE_URL = f"sqlite:///{DB_PATH}"

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},  # רק ל-SQLite
    echo=False,
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)


def init_db(bind=None) -> None:
    """
    יצירת טבלאות – לקרוא פעם אחת ב-startup.
    """
    target = bind if bind is not None else engine
    logger.info(
        "Initializing database and creating tables if not exist | url=%s",
        target.url,
    )
    Base.metadata.create_all(bind=target)


@contextmanager
def db_session_scope(factory: sessionmaker = SessionLocal) -> Iterator[Session]:
    """
    Context manager לניהול Session:
    - נפתח בתחילת בלוק.
    - commit בסיום.
    - rollback אוטומטי במקרה של שגיאה.
    """
    db: Session = factory()
    try:
        yield db
        db.commit()
    except MarketplaceError as exc:
        logger.debug("Request refused, rolling back | error=%s", exc)
        db.rollback()
        raise
    except Exception as exc:
        logger.error("DB error, rolling back transaction | error=%s", exc)
        db.rollback()
        raise
    finally:
        db.close()


def get_db() -> Iterator[Session]:
    """
    FastAPI dependency – Session אחד לכל בקשה, באותה סמנטיקה של db_session_scope.
    """
    with db_session_scope() as db:
        yield db
