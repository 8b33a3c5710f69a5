"""The lint queue: everything currently carrying the review tag."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable
from urllib.parse import quote
import webbrowser

from review_lint.config import LintConfig
from review_lint.dates import format_date
from review_lint.model import Item
from review_lint.schema import QueueEntryDTO
from review_lint.stamps import read_lint_at, read_lint_reasons
from review_lint.store import TaskStore

QUEUE_URL_PREFIX = "omnifocus:///tag/"

UrlOpener = Callable[[str], bool]


@dataclass(frozen=True)
class QueueEntry:
    kind: str
    id: str
    name: str
    reasons: tuple[str, ...]
    lint_at: str | None

    def as_dto(self) -> QueueEntryDTO:
        return QueueEntryDTO(
            kind=self.kind,
            id=self.id,
            name=self.name,
            reasons=list(self.reasons),
            lint_at=self.lint_at,
        )


def lint_queue_url(tag_name: str) -> str:
    return QUEUE_URL_PREFIX + quote(tag_name, safe="")


def open_lint_queue(tag_name: str, opener: UrlOpener = webbrowser.open) -> bool:
    """Hand the queue URL to ``opener``; ``False`` means navigate manually."""
    return bool(opener(lint_queue_url(tag_name)))


def _entry(kind: str, item: Item, name: str) -> QueueEntry:
    lint_at = read_lint_at(item.note)
    return QueueEntry(
        kind=kind,
        id=item.id,
        name=name,
        reasons=tuple(read_lint_reasons(item.note)),
        lint_at=format_date(lint_at) if lint_at is not None else None,
    )


def queue_entries(store: TaskStore, config: LintConfig) -> list[QueueEntry]:
    entries: list[QueueEntry] = []
    seen: set[int] = set()
    for project in store.projects():
        if project.root.has_tag(config.review_tag_name):
            entries.append(_entry("project", project.root, project.name))
    for project in store.projects():
        for task in project.tasks:
            if task is not project.root and task.has_tag(config.review_tag_name) and id(task) not in seen:
                seen.add(id(task))
                entries.append(_entry("task", task, task.name))
    for task in store.inbox():
        if task.has_tag(config.review_tag_name) and id(task) not in seen:
            seen.add(id(task))
            entries.append(_entry("task", task, task.name))
    return entries
