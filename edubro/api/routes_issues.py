from __future__ import annotations

from typing import Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from edubro.api.deps import get_current_user, get_db, require_role
from edubro.api.schemas import IssueNoteOut, IssueOut
from edubro.core.config import logger
from edubro.services import issues
from edubro.store.models import User

router = APIRouter(prefix="/issues", tags=["issues"])


# ========= מודלים =========

class ReportIssueRequest(BaseModel):
    title: str
    description: str


class IssueStatusRequest(BaseModel):
    status: Literal["pending", "in_progress", "resolved", "rejected"]


class NoteRequest(BaseModel):
    text: str


class IssueListResponse(BaseModel):
    issues: List[IssueOut]
    stats: Dict[str, int]


class IssueDetailResponse(BaseModel):
    issue: IssueOut
    notes: List[IssueNoteOut]


# ========= Endpoints =========

@router.post("", response_model=IssueOut, status_code=status.HTTP_201_CREATED)
def report_issue(
    payload: ReportIssueRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    logger.info("API /issues POST | user_id=%s", user.id)
    return issues.report_issue(db, user, payload.title, payload.description)


@router.get("", response_model=IssueListResponse)
def list_issues(
    query: Optional[str] = None,
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    _: User = Depends(require_role("admin")),
):
    all_issues = issues.list_issues(db)
    filtered = issues.list_issues(db, query=query, status=status)
    return IssueListResponse(
        issues=[IssueOut.model_validate(i) for i in filtered],
        stats=issues.issue_stats(all_issues),
    )


@router.get("/mine", response_model=List[IssueOut])
def my_issues(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return issues.list_user_issues(db, user)


@router.get("/{issue_id}", response_model=IssueDetailResponse)
def issue_detail(
    issue_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    issue, notes = issues.get_issue_detail(db, issue_id, user)
    return IssueDetailResponse(
        issue=IssueOut.model_validate(issue),
        notes=[IssueNoteOut.model_validate(n) for n in notes],
    )


@router.put("/{issue_id}/status", response_model=IssueOut)
def update_issue_status(
    issue_id: str,
    payload: IssueStatusRequest,
    db: Session = Depends(get_db),
    _: User = Depends(require_role("admin")),
):
    return issues.update_issue_status(db, issue_id, payload.status)


@router.post(
    "/{issue_id}/notes",
    response_model=IssueNoteOut,
    status_code=status.HTTP_201_CREATED,
)
def add_note(
    issue_id: str,
    payload: NoteRequest,
    db: Session = Depends(get_db),
    _: User = Depends(require_role("admin")),
):
    return issues.add_admin_note(db, issue_id, payload.text)
