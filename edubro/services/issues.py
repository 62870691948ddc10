from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from edubro.core.config import logger
from edubro.core.errors import NotFoundError, PermissionDeniedError, ValidationFailedError
from edubro.domain.filters import filter_issues
from edubro.domain.model import IssueStatus, Role
from edubro.domain.validation import require_non_blank
from edubro.store import crud
from edubro.store.models import IssueNote, ReportedIssue, User


def report_issue(db: Session, user: User, title: str, description: str) -> ReportedIssue:
    """
    דיווח תקלה – title ו-description חובה (אחרי trim).
    שם, אימייל ותפקיד המשתמש נשמרים כ-snapshot על המסמך.
    """
    if not require_non_blank([title, description]):
        raise ValidationFailedError("Please fill in both the title and the description.")

    return crud.create_issue(
        db,
        title=title.strip(),
        description=description.strip(),
        user_id=user.id,
        user_email=user.email,
        user_name=user.full_name,
        user_role=user.role,
        status=IssueStatus.PENDING.value,
        has_admin_notes=False,
    )


def list_issues(
    db: Session,
    query: Optional[str] = None,
    status: Optional[str] = None,
) -> List[ReportedIssue]:
    issues = crud.list_issues(db)
    return filter_issues(issues, query, status)


def list_user_issues(db: Session, user: User) -> List[ReportedIssue]:
    return crud.list_issues(db, user_id=user.id)


def issue_stats(issues: List[ReportedIssue]) -> Dict[str, int]:
    stats = {status.value: 0 for status in IssueStatus}
    for issue in issues:
        if issue.status in stats:
            stats[issue.status] += 1
    stats["total"] = len(issues)
    return stats


def _get_issue(db: Session, issue_id: str) -> ReportedIssue:
    issue = crud.get_issue(db, issue_id)
    if issue is None:
        raise NotFoundError("Issue not found")
    return issue


def update_issue_status(db: Session, issue_id: str, status: str) -> ReportedIssue:
    if status not in {s.value for s in IssueStatus}:
        raise ValidationFailedError(f"Invalid issue status: {status}")
    issue = _get_issue(db, issue_id)
    logger.info("update_issue_status | issue_id=%s %s -> %s", issue_id, issue.status, status)
    return crud.update_issue(db, issue, status=status)


def add_admin_note(db: Session, issue_id: str, text: str) -> IssueNote:
    if not require_non_blank([text]):
        raise ValidationFailedError("Note cannot be empty")
    issue = _get_issue(db, issue_id)
    note = crud.create_issue_note(db, issue.id, text.strip())
    crud.update_issue(db, issue, has_admin_notes=True)
    return note


def get_issue_detail(
    db: Session,
    issue_id: str,
    viewer: User,
) -> Tuple[ReportedIssue, List[IssueNote]]:
    issue = _get_issue(db, issue_id)
    if viewer.id != issue.user_id and viewer.role != Role.ADMIN.value:
        raise PermissionDeniedError("You can only view issues you reported")
    return issue, crud.list_issue_notes(db, issue.id)
