from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Sequence

from review_lint.config import LintConfig
from review_lint.json_types import JSONObject
from review_lint.model import Item, Project, Tag
from review_lint.schema import ClearSummaryDTO
from review_lint.scope import require_projects, resolve_tasks_for_lint
from review_lint.stamps import LINT_AT_RE, LINT_RE, remove_stamp
from review_lint.store import TaskStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Selection:
    """Items picked explicitly by the user instead of the configured scope."""

    projects: tuple[Project, ...] = ()
    tasks: tuple[Item, ...] = ()


@dataclass
class ClearResult:
    tag_name: str
    tag_found: bool = True
    cleared_projects: int = 0
    cleared_tasks: int = 0

    def render(self) -> str:
        if not self.tag_found:
            return f'The lint tag "{self.tag_name}" does not exist. Nothing to clear.'
        lines: list[str] = []
        if self.cleared_projects:
            noun = "project" if self.cleared_projects == 1 else "projects"
            lines.append(f"{self.cleared_projects} {noun} cleared.")
        if self.cleared_tasks:
            noun = "task" if self.cleared_tasks == 1 else "tasks"
            lines.append(f"{self.cleared_tasks} {noun} cleared.")
        if not lines:
            return "No items with the lint tag were found in the target scope."
        return "\n".join(lines)

    def as_dict(self) -> JSONObject:
        return ClearSummaryDTO(
            tag_found=self.tag_found,
            cleared_projects=self.cleared_projects,
            cleared_tasks=self.cleared_tasks,
        ).model_dump(mode="json")


def clear_item(item: Item, review_tag: Tag, *, remove_stamps: bool, remove_flags: bool) -> bool:
    """Remove the lint marks from one item; ``False`` when it was not tagged.

    Only the two lint stamps are removed; a waiting-since stamp survives.
    """
    if not item.has_tag(review_tag.name):
        return False
    item.remove_tag(review_tag)
    if remove_flags:
        item.flagged = False
    if remove_stamps:
        note = item.note or ""
        note = remove_stamp(note, LINT_AT_RE)
        note = remove_stamp(note, LINT_RE)
        item.note = note
    return True


def run_clear(
    store: TaskStore,
    config: LintConfig,
    *,
    selection: Selection | None = None,
    remove_stamps: bool = False,
    remove_flags: bool = False,
) -> ClearResult:
    result = ClearResult(tag_name=config.review_tag_name)
    # Lookup only: clearing must never create the tag it is about to remove.
    review_tag = store.tag_by_name(config.review_tag_name)
    if review_tag is None:
        result.tag_found = False
        return result

    projects: Sequence[Project]
    tasks: Sequence[Item]
    if selection is not None:
        projects, tasks = selection.projects, selection.tasks
    else:
        projects = require_projects(store, config)
        tasks = resolve_tasks_for_lint(store, projects)

    for project in projects:
        if clear_item(project.root, review_tag, remove_stamps=remove_stamps, remove_flags=remove_flags):
            result.cleared_projects += 1
            logger.debug("Cleared project %r", project.name)
    for task in tasks:
        if clear_item(task, review_tag, remove_stamps=remove_stamps, remove_flags=remove_flags):
            result.cleared_tasks += 1
            logger.debug("Cleared task %r", task.name)

    logger.info(
        "Cleared %d projects and %d tasks", result.cleared_projects, result.cleared_tasks
    )
    return result
