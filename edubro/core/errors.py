"""
שגיאות דומיין של המערכת.

כל שכבת services זורקת רק את השגיאות האלה; ה-exception handlers
ב-`edubro.core.exception_handlers` ממפים אותן לתשובת HTTP עם status_code מתאים.
"""

from __future__ import annotations

from typing import Dict, Optional


class MarketplaceError(Exception):
    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(MarketplaceError):
    status_code = 404


class PermissionDeniedError(MarketplaceError):
    status_code = 403


class ConflictError(MarketplaceError):
    """
    מצב המסמך לא מאפשר את הפעולה (סלוט תפוס, ביקורת כפולה, סטטוס סופי וכו').
    """
    status_code = 409


class ValidationFailedError(MarketplaceError):
    status_code = 422

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None) -> None:
        super().__init__(message)
        self.errors = errors or {}


class AuthenticationError(MarketplaceError):
    status_code = 401
