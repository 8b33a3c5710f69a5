"""Lint sweep: evaluate every in-scope item, then tag and stamp the offenders.

Clean items are left alone; a sweep never removes marks. Re-running on
unchanged data flags the same items and rewrites the stamps in place.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
import logging

from review_lint.config import LintConfig
from review_lint.exceptions import TagUnavailableError
from review_lint.json_types import JSONObject
from review_lint.model import Item, Tag
from review_lint.rules import (
    PROJECT_RULES,
    TASK_RULES,
    RuleCode,
    compute_project_reasons,
    compute_task_reasons,
)
from review_lint.schema import SweepSummaryDTO
from review_lint.scope import require_projects, resolve_tasks_for_lint, should_exclude
from review_lint.stamps import LINT_AT_RE, LINT_RE, lint_at_stamp, lint_stamp, upsert_stamp
from review_lint.store import TaskStore, find_or_create_tag

logger = logging.getLogger(__name__)

_PROJECT_BREAKDOWN: tuple[tuple[RuleCode, str], ...] = (
    (RuleCode.P_NO_NEXT_ACTION, "No Next Action"),
    (RuleCode.P_HAS_OVERDUE, "Has Overdue Tasks"),
    (RuleCode.P_EMPTY, "Empty"),
)
_TASK_BREAKDOWN: tuple[tuple[RuleCode, str], ...] = (
    (RuleCode.T_OVERDUE, "Overdue"),
    (RuleCode.T_DEFER_PAST, "Defer Past"),
    (RuleCode.T_INBOX_OLD, "Inbox Old"),
    (RuleCode.T_WAITING_TOO_LONG, "Waiting Stale"),
)


@dataclass
class SweepResult:
    review_tag: str
    lint_tasks_enabled: bool
    projects_flagged: int = 0
    tasks_flagged: int = 0
    project_reasons: Counter[RuleCode] = field(default_factory=Counter)
    task_reasons: Counter[RuleCode] = field(default_factory=Counter)
    skipped_no_next_action: int = 0
    skipped_inbox_age: int = 0

    @property
    def total_issues(self) -> int:
        return self.projects_flagged + self.tasks_flagged

    def render(self) -> str:
        if self.total_issues == 0:
            return "No issues found. Your database looks clean!"
        lines = [f"Projects flagged: {self.projects_flagged}"]
        for code, label in _PROJECT_BREAKDOWN:
            if self.project_reasons[code]:
                lines.append(f"  · {label}: {self.project_reasons[code]}")
        if self.skipped_no_next_action:
            lines.append(
                f"  · (P_NO_NEXT_ACTION check skipped for {self.skipped_no_next_action}"
                " - task status unavailable)"
            )
        if self.lint_tasks_enabled:
            lines.append("")
            lines.append(f"Tasks flagged: {self.tasks_flagged}")
            for code, label in _TASK_BREAKDOWN:
                if self.task_reasons[code]:
                    lines.append(f"  · {label}: {self.task_reasons[code]}")
            if self.skipped_inbox_age:
                lines.append(
                    f"  · (Inbox age check skipped for {self.skipped_inbox_age}"
                    " - no creation date)"
                )
        return "\n".join(lines)

    def as_dict(self) -> JSONObject:
        summary = SweepSummaryDTO(
            projects_flagged=self.projects_flagged,
            tasks_flagged=self.tasks_flagged,
            project_reasons=_ordered(self.project_reasons, PROJECT_RULES),
            task_reasons=_ordered(self.task_reasons, TASK_RULES),
            skipped_no_next_action=self.skipped_no_next_action,
            skipped_inbox_age=self.skipped_inbox_age,
            lint_tasks_enabled=self.lint_tasks_enabled,
            review_tag=self.review_tag,
        )
        return summary.model_dump(mode="json")


def _ordered(counts: Counter[RuleCode], order: tuple[RuleCode, ...]) -> dict[str, int]:
    return {code.value: counts[code] for code in order if counts[code]}

def mark_item(
    item: Item,
    reasons: tuple[RuleCode, ...],
    *,
    review_tag: Tag,
    also_flag: bool,
    now: datetime,
) -> None:
    """Attach the review tag and upsert both lint stamps into the note."""
    if not item.has_tag(review_tag.name):
        item.add_tag(review_tag)
    if also_flag:
        item.flagged = True
    note = item.note or ""
    note = upsert_stamp(note, LINT_AT_RE, lint_at_stamp(now))
    note = upsert_stamp(note, LINT_RE, lint_stamp(reasons))
    item.note = note


def run_sweep(store: TaskStore, config: LintConfig, now: datetime) -> SweepResult:
    projects = require_projects(store, config)

    review_tag = find_or_create_tag(store, config.review_tag_name)
    if review_tag is None:
        raise TagUnavailableError(
            config.review_tag_name, kind="review", command="`review-lint sweep`"
        )

    result = SweepResult(
        review_tag=review_tag.name,
        lint_tasks_enabled=config.lint_tasks_enabled,
    )

    for project in projects:
        evaluation = compute_project_reasons(project, config, now)
        if evaluation.skip_no_next_action:
            result.skipped_no_next_action += 1
        if not evaluation.reasons:
            continue
        result.projects_flagged += 1
        result.project_reasons.update(evaluation.reasons)
        mark_item(
            project.root,
            evaluation.reasons,
            review_tag=review_tag,
            also_flag=config.also_flag,
            now=now,
        )
        logger.debug("Flagged project %r: %s", project.name, lint_stamp(evaluation.reasons))

    if config.lint_tasks_enabled:
        for task in resolve_tasks_for_lint(store, projects):
            if should_exclude(task, config.exclude_tag_names):
                continue
            evaluation = compute_task_reasons(task, config, now)
            if evaluation.skipped_inbox_age:
                result.skipped_inbox_age += 1
            if not evaluation.reasons:
                continue
            result.tasks_flagged += 1
            result.task_reasons.update(evaluation.reasons)
            mark_item(
                task,
                evaluation.reasons,
                review_tag=review_tag,
                also_flag=config.also_flag,
                now=now,
            )
            logger.debug("Flagged task %r: %s", task.name, lint_stamp(evaluation.reasons))

    logger.info(
        "Sweep flagged %d projects and %d tasks",
        result.projects_flagged,
        result.tasks_flagged,
    )
    return result
