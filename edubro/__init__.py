"""
חבילה ראשית של EduBro – שוק שיעורים פרטיים (FastAPI).
סטודנטים, מורים ואדמינים עובדים מול אותם אוספים (users, sessions, ...),
כל תפקיד דרך ה-routers שלו.
"""

__all__ = [
    "main",
    "core",
    "domain",
    "store",
    "services",
    "api",
]
