"""Rule evaluation.

Both evaluators are pure: they read one project or task, the configuration
and a caller-supplied ``now``, and return the violated rule codes in a fixed
order together with flags for checks that could not run because optional
data was missing.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
import logging

from review_lint.config import LintConfig
from review_lint.dates import days_between
from review_lint.model import ACTIONABLE_STATUSES, Item, Project
from review_lint.stamps import read_waiting_since

logger = logging.getLogger(__name__)


class RuleCode(str, Enum):
    P_EMPTY = "P_EMPTY"
    P_HAS_OVERDUE = "P_HAS_OVERDUE"
    P_OVERDUE = "P_OVERDUE"
    P_DEFER_PAST = "P_DEFER_PAST"
    P_NO_NEXT_ACTION = "P_NO_NEXT_ACTION"
    T_OVERDUE = "T_OVERDUE"
    T_DEFER_PAST = "T_DEFER_PAST"
    T_INBOX_OLD = "T_INBOX_OLD"
    T_WAITING_TOO_LONG = "T_WAITING_TOO_LONG"


PROJECT_RULES: tuple[RuleCode, ...] = (
    RuleCode.P_EMPTY,
    RuleCode.P_HAS_OVERDUE,
    RuleCode.P_OVERDUE,
    RuleCode.P_DEFER_PAST,
    RuleCode.P_NO_NEXT_ACTION,
)
TASK_RULES: tuple[RuleCode, ...] = (
    RuleCode.T_OVERDUE,
    RuleCode.T_DEFER_PAST,
    RuleCode.T_INBOX_OLD,
    RuleCode.T_WAITING_TOO_LONG,
)


@dataclass(frozen=True)
class ProjectEvaluation:
    reasons: tuple[RuleCode, ...]
    skip_no_next_action: bool = False


@dataclass(frozen=True)
class TaskEvaluation:
    reasons: tuple[RuleCode, ...]
    skipped_inbox_age: bool = False


def is_past_due(item: Item, now: datetime) -> bool:
    due = item.effective_due_date
    return due is not None and due < now


def is_defer_stale(item: Item, now: datetime, grace_days: int) -> bool:
    if item.defer is None:
        return False
    return days_between(item.defer, now) > grace_days


def waiting_is_stale(item: Item, now: datetime, stale_days: int) -> bool:
    since = read_waiting_since(item.note)
    if since is None:
        return False
    return days_between(since, now) > stale_days


def inbox_is_old(item: Item, now: datetime, max_age_days: int) -> bool:
    if item.added is None:
        return False
    return days_between(item.added, now) > max_age_days


def compute_project_reasons(project: Project, config: LintConfig, now: datetime) -> ProjectEvaluation:
    reasons: list[RuleCode] = []
    skip_no_next_action = False
    remaining = project.remaining_tasks()

    if not remaining:
        reasons.append(RuleCode.P_EMPTY)

    if any(is_past_due(task, now) for task in remaining):
        reasons.append(RuleCode.P_HAS_OVERDUE)

    if is_past_due(project.root, now):
        reasons.append(RuleCode.P_OVERDUE)

    if is_defer_stale(project.root, now, config.defer_past_grace_days):
        reasons.append(RuleCode.P_DEFER_PAST)

    if RuleCode.P_EMPTY not in reasons:
        if all(task.status is None for task in remaining):
            skip_no_next_action = True
            logger.debug("P_NO_NEXT_ACTION skipped for %r: no task status exposed", project.name)
        elif not any(task.status in ACTIONABLE_STATUSES for task in remaining):
            reasons.append(RuleCode.P_NO_NEXT_ACTION)

    return ProjectEvaluation(reasons=tuple(reasons), skip_no_next_action=skip_no_next_action)


def compute_task_reasons(task: Item, config: LintConfig, now: datetime) -> TaskEvaluation:
    reasons: list[RuleCode] = []
    skipped_inbox_age = False

    if is_past_due(task, now):
        reasons.append(RuleCode.T_OVERDUE)

    if is_defer_stale(task, now, config.defer_past_grace_days):
        reasons.append(RuleCode.T_DEFER_PAST)

    if task.in_inbox and not task.has_tag(config.triage_tag_name):
        if task.added is None:
            skipped_inbox_age = True
            logger.debug("T_INBOX_OLD skipped for %r: no creation date", task.name)
        elif inbox_is_old(task, now, config.inbox_max_age_days):
            reasons.append(RuleCode.T_INBOX_OLD)

    # A waiting task without a stamp is not flagged; missing data is not a violation.
    if task.has_tag(config.waiting_tag_name) and waiting_is_stale(
        task, now, config.waiting_stale_days
    ):
        reasons.append(RuleCode.T_WAITING_TOO_LONG)

    return TaskEvaluation(reasons=tuple(reasons), skipped_inbox_age=skipped_inbox_age)
