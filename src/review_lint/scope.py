"""Scope resolution: which projects and tasks a run looks at."""

from __future__ import annotations

from enum import Enum
from typing import Collection, Iterable, Literal

from review_lint.config import LintConfig, ScopeMode
from review_lint.exceptions import ScopeNotFoundError
from review_lint.model import Item, Project, ProjectStatus
from review_lint.store import TaskStore


class _Sentinel(Enum):
    NOT_FOUND = "NOT_FOUND"


NOT_FOUND = _Sentinel.NOT_FOUND
NotFound = Literal[_Sentinel.NOT_FOUND]


def _status_ok(project: Project, config: LintConfig) -> bool:
    if project.status is ProjectStatus.ACTIVE:
        return True
    return config.include_on_hold_projects and project.status is ProjectStatus.ON_HOLD


def should_exclude(item: Item | Project, exclude_names: Collection[str]) -> bool:
    """True when any of the item's tags is named in ``exclude_names``.

    A project is judged by the tags on its root item.
    """
    if not exclude_names:
        return False
    return any(tag.name in exclude_names for tag in item.tags)


def resolve_projects(store: TaskStore, config: LintConfig) -> list[Project] | NotFound:
    if config.scope_mode is ScopeMode.FOLDER_SCOPE:
        if not config.scope_folder_id:
            return NOT_FOUND
        folder = store.folder_by_id(config.scope_folder_id)
        if folder is None:
            return NOT_FOUND
        candidates = [
            project for project in store.projects_in_folder(folder) if _status_ok(project, config)
        ]
    elif config.scope_mode is ScopeMode.TAG_SCOPE:
        if not config.scope_tag_id:
            return NOT_FOUND
        if store.tag_by_id(config.scope_tag_id) is None:
            return NOT_FOUND
        candidates = [
            project
            for project in store.projects()
            if _status_ok(project, config)
            and any(tag.id == config.scope_tag_id for tag in project.root.tags)
        ]
    else:
        candidates = [project for project in store.projects() if _status_ok(project, config)]
    return [
        project
        for project in candidates
        if not should_exclude(project, config.exclude_tag_names)
    ]


def resolve_tasks_for_lint(store: TaskStore, projects: Iterable[Project]) -> list[Item]:
    """Remaining tasks of ``projects`` followed by remaining inbox tasks.

    De-duplicated by identity in first-seen order. Exclude tags are not
    applied here; callers filter per task where their context calls for it.
    """
    seen: set[int] = set()
    result: list[Item] = []

    def _add(task: Item) -> None:
        if id(task) not in seen:
            seen.add(id(task))
            result.append(task)

    for project in projects:
        for task in project.tasks:
            if task.is_remaining and task is not project.root:
                _add(task)
    for task in store.inbox():
        if task.is_remaining:
            _add(task)
    return result


def scope_label(config: LintConfig) -> str:
    return "folder" if config.scope_mode is ScopeMode.FOLDER_SCOPE else "tag"


def require_projects(store: TaskStore, config: LintConfig) -> list[Project]:
    """:func:`resolve_projects` for orchestrators: ``NOT_FOUND`` becomes an error."""
    projects = resolve_projects(store, config)
    if projects is NOT_FOUND:
        raise ScopeNotFoundError(scope_label(config))
    return projects
