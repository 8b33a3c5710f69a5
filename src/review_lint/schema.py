from __future__ import annotations

from datetime import datetime, time
from typing import Dict, List, Optional

from pydantic import BaseModel, field_serializer, field_validator

from review_lint.dates import coerce_datetime
from review_lint.model import ProjectStatus, TaskStatus


class TagDTO(BaseModel):
    id: str
    name: str


class FolderDTO(BaseModel):
    id: str
    name: str = ""
    parent: Optional[str] = None


class ItemDTO(BaseModel):
    id: str
    name: str = ""
    note: str = ""
    tags: List[str] = []
    flagged: bool = False
    completed: bool = False
    dropped: bool = False
    status: Optional[TaskStatus] = None
    due: Optional[datetime] = None
    defer: Optional[datetime] = None
    effective_due: Optional[datetime] = None
    added: Optional[datetime] = None

    @field_validator("due", "defer", "effective_due", "added", mode="before")
    @classmethod
    def _coerce_dates(cls, value: object) -> datetime | None:
        return coerce_datetime(value)

    @field_validator("note", mode="before")
    @classmethod
    def _coerce_note(cls, value: object) -> str:
        return "" if value is None else value

    @field_serializer("due", "defer", "effective_due", "added")
    def _serialize_dates(self, value: datetime | None) -> str | None:
        if value is None:
            return None
        if value.time() == time():
            return value.date().isoformat()
        return value.isoformat()


class ProjectDTO(BaseModel):
    id: str
    name: str = ""
    status: ProjectStatus = ProjectStatus.ACTIVE
    folder: Optional[str] = None
    root: Optional[ItemDTO] = None
    tasks: List[ItemDTO] = []


class DatabaseDTO(BaseModel):
    tags: List[TagDTO] = []
    folders: List[FolderDTO] = []
    projects: List[ProjectDTO] = []
    inbox: List[ItemDTO] = []


class SweepSummaryDTO(BaseModel):
    projects_flagged: int
    tasks_flagged: int
    project_reasons: Dict[str, int]
    task_reasons: Dict[str, int]
    skipped_no_next_action: int
    skipped_inbox_age: int
    lint_tasks_enabled: bool
    review_tag: str


class FixSummaryDTO(BaseModel):
    selected: List[str]
    waiting_added: int = 0
    waiting_reset: int = 0
    inbox_triaged: int = 0
    defer_repaired: int = 0
    due_repaired: int = 0
    defer_policy: str
    due_policy: str


class ClearSummaryDTO(BaseModel):
    tag_found: bool
    cleared_projects: int
    cleared_tasks: int


class QueueEntryDTO(BaseModel):
    kind: str
    id: str
    name: str
    reasons: List[str] = []
    lint_at: Optional[str] = None
