"""Fix pack: deterministic repairs for a subset of lint conditions.

Every repair is toggled independently, guarded by the same thresholds the
rule evaluator uses, and safe to re-run: either the threshold is no longer
exceeded or the same target value is written again.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Literal

from review_lint.config import LintConfig
from review_lint.dates import start_of_day, start_of_next_week
from review_lint.exceptions import TagUnavailableError
from review_lint.invariants import never
from review_lint.json_types import JSONObject
from review_lint.model import Item, Tag
from review_lint.rules import inbox_is_old, is_defer_stale, waiting_is_stale
from review_lint.schema import FixSummaryDTO
from review_lint.scope import require_projects, resolve_tasks_for_lint
from review_lint.stamps import WAITING_RE, read_waiting_since, upsert_stamp, waiting_since_stamp
from review_lint.store import TaskStore, find_or_create_tag

logger = logging.getLogger(__name__)

DeferPolicy = Literal["today", "clear"]
DuePolicy = Literal["today", "next_week", "clear"]

DEFER_POLICIES: tuple[str, ...] = ("today", "clear")
DUE_POLICIES: tuple[str, ...] = ("today", "next_week", "clear")


@dataclass(frozen=True)
class FixOptions:
    add_waiting_since: bool = False
    reset_waiting_since: bool = False
    triage_inbox: bool = False
    repair_defer: bool = False
    defer_policy: DeferPolicy = "today"
    repair_due: bool = False
    due_policy: DuePolicy = "today"

    def effective(self, config: LintConfig) -> "FixOptions":
        """Drop waiting-since repairs when stamping is disabled in the configuration."""
        if config.enable_waiting_since_stamp:
            return self
        return FixOptions(
            triage_inbox=self.triage_inbox,
            repair_defer=self.repair_defer,
            defer_policy=self.defer_policy,
            repair_due=self.repair_due,
            due_policy=self.due_policy,
        )

    def selected(self) -> list[str]:
        names = (
            "add_waiting_since",
            "reset_waiting_since",
            "triage_inbox",
            "repair_defer",
            "repair_due",
        )
        return [name for name in names if getattr(self, name)]


@dataclass
class FixResult:
    options: FixOptions
    triage_tag_name: str
    waiting_added: int = 0
    waiting_reset: int = 0
    inbox_triaged: int = 0
    defer_repaired: int = 0
    due_repaired: int = 0

    @property
    def nothing_selected(self) -> bool:
        return not self.options.selected()

    def render(self) -> str:
        if self.nothing_selected:
            return "No fixes selected. Nothing to do."
        parts: list[str] = []
        if self.waiting_added:
            parts.append(f"{_plural(self.waiting_added, '@waitingSince stamp')} added.")
        if self.waiting_reset:
            parts.append(f"{_plural(self.waiting_reset, 'stale @waitingSince stamp')} reset.")
        if self.inbox_triaged:
            parts.append(
                f'{_plural(self.inbox_triaged, "inbox item")} tagged "{self.triage_tag_name}".'
            )
        if self.defer_repaired:
            parts.append(
                f"{_plural(self.defer_repaired, 'defer date')} repaired ({self.options.defer_policy})."
            )
        if self.due_repaired:
            parts.append(
                f"{_plural(self.due_repaired, 'due date')} repaired ({self.options.due_policy})."
            )
        return "\n".join(parts) if parts else "No changes made."

    def as_dict(self) -> JSONObject:
        summary = FixSummaryDTO(
            selected=self.options.selected(),
            waiting_added=self.waiting_added,
            waiting_reset=self.waiting_reset,
            inbox_triaged=self.inbox_triaged,
            defer_repaired=self.defer_repaired,
            due_repaired=self.due_repaired,
            defer_policy=self.options.defer_policy,
            due_policy=self.options.due_policy,
        )
        return summary.model_dump(mode="json")


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def apply_defer_policy(item: Item, policy: DeferPolicy, now: datetime) -> None:
    if policy == "today":
        item.defer = start_of_day(now)
    elif policy == "clear":
        item.defer = None
    else:
        never("unknown defer repair policy", policy=policy)


def apply_due_policy(item: Item, policy: DuePolicy, now: datetime) -> None:
    if policy == "today":
        item.due = start_of_day(now)
    elif policy == "next_week":
        item.due = start_of_next_week(now)
    elif policy == "clear":
        item.due = None
    else:
        never("unknown due repair policy", policy=policy)


def _repair_dates(item: Item, options: FixOptions, config: LintConfig, now: datetime, result: FixResult) -> None:
    if options.repair_defer and is_defer_stale(item, now, config.defer_past_grace_days):
        apply_defer_policy(item, options.defer_policy, now)
        result.defer_repaired += 1
        logger.debug("Repaired defer date of %r (%s)", item.name, options.defer_policy)
    if options.repair_due and item.due is not None and item.due < now:
        apply_due_policy(item, options.due_policy, now)
        result.due_repaired += 1
        logger.debug("Repaired due date of %r (%s)", item.name, options.due_policy)


def run_fix_pack(
    store: TaskStore,
    config: LintConfig,
    options: FixOptions,
    now: datetime,
) -> FixResult:
    options = options.effective(config)
    result = FixResult(options=options, triage_tag_name=config.triage_tag_name)
    if result.nothing_selected:
        return result

    projects = require_projects(store, config)

    triage_tag: Tag | None = None
    if options.triage_inbox:
        triage_tag = find_or_create_tag(store, config.triage_tag_name)
        if triage_tag is None:
            raise TagUnavailableError(
                config.triage_tag_name, kind="triage", command="`review-lint fix`"
            )

    today_stamp = waiting_since_stamp(now)

    for task in resolve_tasks_for_lint(store, projects):
        waiting = task.has_tag(config.waiting_tag_name)

        if options.add_waiting_since and waiting and read_waiting_since(task.note) is None:
            task.note = upsert_stamp(task.note or "", WAITING_RE, today_stamp)
            result.waiting_added += 1
            logger.debug("Added waiting-since stamp to %r", task.name)

        if (
            options.reset_waiting_since
            and waiting
            and waiting_is_stale(task, now, config.waiting_stale_days)
        ):
            task.note = upsert_stamp(task.note or "", WAITING_RE, today_stamp)
            result.waiting_reset += 1
            logger.debug("Reset waiting-since stamp of %r", task.name)

        if (
            triage_tag is not None
            and task.in_inbox
            and not task.has_tag(config.triage_tag_name)
            and inbox_is_old(task, now, config.inbox_max_age_days)
        ):
            task.add_tag(triage_tag)
            result.inbox_triaged += 1
            logger.debug("Tagged inbox item %r for triage", task.name)

        _repair_dates(task, options, config, now, result)

    for project in projects:
        _repair_dates(project.root, options, config, now, result)

    logger.info("Fix pack applied: %s", ", ".join(options.selected()))
    return result
