"""In-memory object model of the host task database.

Items compare by identity: the same task reached through two routes (a
project and the inbox, say) is one object, which is what scope
de-duplication relies on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class TaskStatus(str, Enum):
    AVAILABLE = "available"
    NEXT = "next"
    BLOCKED = "blocked"
    DUE_SOON = "due_soon"
    OVERDUE = "overdue"
    COMPLETED = "completed"
    DROPPED = "dropped"


class ProjectStatus(str, Enum):
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    DROPPED = "dropped"


ACTIONABLE_STATUSES: frozenset[TaskStatus] = frozenset(
    {TaskStatus.AVAILABLE, TaskStatus.NEXT, TaskStatus.DUE_SOON, TaskStatus.OVERDUE}
)


@dataclass(eq=False)
class Tag:
    id: str
    name: str


@dataclass(eq=False)
class Folder:
    id: str
    name: str
    parent_id: str | None = None


@dataclass(eq=False)
class Item:
    """A task, or the root item that carries a project's own fields.

    ``status`` is ``None`` when the host does not expose task availability for
    this item and ``added`` is ``None`` when it does not expose a creation
    timestamp.
    """

    id: str
    name: str = ""
    note: str = ""
    tags: list[Tag] = field(default_factory=list)
    flagged: bool = False
    completed: bool = False
    dropped: bool = False
    status: TaskStatus | None = None
    due: datetime | None = None
    defer: datetime | None = None
    effective_due: datetime | None = None
    added: datetime | None = None
    in_inbox: bool = False

    @property
    def is_remaining(self) -> bool:
        if self.completed or self.dropped:
            return False
        return self.status not in (TaskStatus.COMPLETED, TaskStatus.DROPPED)

    @property
    def effective_due_date(self) -> datetime | None:
        return self.effective_due or self.due

    def has_tag(self, name: str) -> bool:
        return any(tag.name == name for tag in self.tags)

    def add_tag(self, tag: Tag) -> bool:
        if any(existing.id == tag.id for existing in self.tags):
            return False
        self.tags.append(tag)
        return True

    def remove_tag(self, tag: Tag) -> bool:
        kept = [existing for existing in self.tags if existing.id != tag.id]
        removed = len(kept) != len(self.tags)
        self.tags = kept
        return removed


@dataclass(eq=False)
class Project:
    id: str
    name: str
    root: Item
    tasks: list[Item] = field(default_factory=list)
    status: ProjectStatus = ProjectStatus.ACTIVE
    folder_id: str | None = None

    @property
    def tags(self) -> list[Tag]:
        return self.root.tags

    @property
    def note(self) -> str:
        return self.root.note

    @note.setter
    def note(self, value: str) -> None:
        self.root.note = value

    @property
    def flagged(self) -> bool:
        return self.root.flagged

    @flagged.setter
    def flagged(self, value: bool) -> None:
        self.root.flagged = value

    def remaining_tasks(self) -> list[Item]:
        return [task for task in self.tasks if task is not self.root and task.is_remaining]
