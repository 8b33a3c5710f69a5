from __future__ import annotations

from datetime import datetime
from typing import Iterable

from review_lint.model import Folder, Item, Project, ProjectStatus, Tag, TaskStatus
from review_lint.store import FileTaskStore

NOW = datetime(2024, 6, 15, 12, 0)


def day(year: int, month: int, dom: int) -> datetime:
    return datetime(year, month, dom)


def make_task(
    item_id: str,
    *,
    tags: Iterable[Tag] = (),
    status: TaskStatus | None = TaskStatus.AVAILABLE,
    **fields: object,
) -> Item:
    return Item(id=item_id, name=item_id, tags=list(tags), status=status, **fields)  # type: ignore[arg-type]


def make_project(
    project_id: str,
    tasks: Iterable[Item] = (),
    *,
    status: ProjectStatus = ProjectStatus.ACTIVE,
    folder_id: str | None = None,
    tags: Iterable[Tag] = (),
    **root_fields: object,
) -> Project:
    root = Item(id=f"{project_id}-root", name=project_id, tags=list(tags), **root_fields)  # type: ignore[arg-type]
    return Project(
        id=project_id,
        name=project_id,
        root=root,
        tasks=list(tasks),
        status=status,
        folder_id=folder_id,
    )


def make_store(
    *,
    tags: Iterable[Tag] = (),
    folders: Iterable[Folder] = (),
    projects: Iterable[Project] = (),
    inbox: Iterable[Item] = (),
) -> FileTaskStore:
    return FileTaskStore(tags=tags, folders=folders, projects=projects, inbox=inbox)


class FailingTagStore(FileTaskStore):
    """A store whose tag creation always fails."""

    def create_tag(self, name: str) -> Tag:
        from review_lint.exceptions import StoreError

        raise StoreError(f"read-only database; cannot create {name!r}")
