from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

import pytest

from review_lint.config import LintConfig, ScopeMode
from review_lint.exceptions import ScopeNotFoundError, TagUnavailableError
from review_lint.model import TaskStatus
from review_lint.rules import RuleCode
from review_lint.sweep import run_sweep
from tests.store_helpers import NOW, FailingTagStore, day, make_project, make_store, make_task


def _sample_store(tags):
    overdue = make_task("overdue", due=day(2024, 6, 1), note="Ask Sam first")
    healthy = make_task("healthy", due=day(2024, 7, 1))
    waiting = make_task("waiting", tags=[tags["waiting"]], note="@waitingSince(2024-04-01)")
    excluded = make_task("excluded", due=day(2024, 1, 1), tags=[tags["someday"]])
    inbox_old = make_task("inbox-old", added=day(2024, 6, 1))
    inbox_unknown = make_task("inbox-unknown", added=None)
    return make_store(
        tags=[tags["waiting"], tags["someday"]],
        projects=[
            make_project("busy", [overdue, healthy, waiting, excluded]),
            make_project("empty", note="Project brief"),
            make_project("stalled", [make_task("blocked", status=TaskStatus.BLOCKED)]),
            make_project("opaque", [make_task("unknown", status=None)]),
            make_project("clean", [make_task("fine")]),
        ],
        inbox=[inbox_old, inbox_unknown],
    )


def test_sweep_tags_and_stamps_offenders(config: LintConfig, tags) -> None:
    store = _sample_store(tags)
    result = run_sweep(store, config, NOW)

    review = store.tag_by_name(config.review_tag_name)
    assert review is not None
    empty = store.project_by_id("empty")
    assert empty.root.has_tag(review.name)
    assert empty.note == "Project brief\n@lintAt(2024-06-15)\n@lint(P_EMPTY)"

    overdue = store.item_by_id("overdue")
    assert overdue.has_tag(review.name)
    assert overdue.note == "Ask Sam first\n@lintAt(2024-06-15)\n@lint(T_OVERDUE)"
    assert overdue.flagged is False

    assert not store.item_by_id("healthy").has_tag(review.name)
    assert store.item_by_id("healthy").note == ""
    assert not store.item_by_id("excluded").has_tag(review.name)
    assert not store.project_by_id("clean").root.has_tag(review.name)

    assert result.projects_flagged == 3
    assert result.project_reasons[RuleCode.P_EMPTY] == 1
    assert result.project_reasons[RuleCode.P_HAS_OVERDUE] == 1
    assert result.project_reasons[RuleCode.P_NO_NEXT_ACTION] == 1
    assert result.skipped_no_next_action == 1
    assert result.tasks_flagged == 3
    assert result.task_reasons[RuleCode.T_OVERDUE] == 1
    assert result.task_reasons[RuleCode.T_WAITING_TOO_LONG] == 1
    assert result.task_reasons[RuleCode.T_INBOX_OLD] == 1
    assert result.skipped_inbox_age == 1


def test_sweep_is_idempotent(config: LintConfig, tags) -> None:
    store = _sample_store(tags)
    run_sweep(store, config, NOW)
    before = store.to_document().model_dump()
    second = run_sweep(store, config, NOW)
    assert store.to_document().model_dump() == before
    assert second.projects_flagged == 3
    assert second.tasks_flagged == 3


def test_sweep_rewrites_stamps_in_place(config: LintConfig) -> None:
    task = make_task("t", due=day(2024, 6, 1), note="@lint(P_EMPTY) keep @lintAt(2024-01-01)")
    store = make_store(projects=[make_project("p", [task])])
    run_sweep(store, config, NOW)
    assert task.note == "@lint(T_OVERDUE) keep @lintAt(2024-06-15)"


def test_clean_sweep_leaves_previous_marks(config: LintConfig, tags) -> None:
    review = tags["review"]
    task = make_task("t", tags=[review], note="@lint(T_OVERDUE)")
    store = make_store(tags=[review], projects=[make_project("p", [task])])
    result = run_sweep(store, config, NOW)
    assert result.total_issues == 0
    assert task.has_tag(review.name)
    assert task.note == "@lint(T_OVERDUE)"
    assert result.render() == "No issues found. Your database looks clean!"


def test_sweep_also_flag_and_task_toggle(config: LintConfig) -> None:
    task = make_task("t", due=day(2024, 6, 1))
    project = make_project("p", [task], due=day(2024, 6, 1))
    store = make_store(projects=[project])
    result = run_sweep(store, replace(config, also_flag=True, lint_tasks_enabled=False), NOW)
    assert project.flagged is True
    assert task.flagged is False
    assert task.note == ""
    assert result.tasks_flagged == 0
    assert "Tasks flagged" not in result.render()


def test_sweep_reuses_existing_review_tag(config: LintConfig, tags) -> None:
    review = tags["review"]
    task = make_task("t", due=day(2024, 6, 1))
    store = make_store(tags=[review], projects=[make_project("p", [task])])
    run_sweep(store, config, NOW)
    assert task.tags == [review]
    assert [tag.id for tag in store.to_document().tags] == [review.id]


def test_sweep_scope_not_found_mutates_nothing(config: LintConfig) -> None:
    task = make_task("t", due=day(2024, 6, 1))
    store = make_store(projects=[make_project("p", [task])])
    scoped = replace(config, scope_mode=ScopeMode.FOLDER_SCOPE, scope_folder_id="gone")
    with pytest.raises(ScopeNotFoundError):
        run_sweep(store, scoped, NOW)
    assert store.tag_by_name(config.review_tag_name) is None
    assert task.note == ""


def test_sweep_aborts_when_review_tag_unavailable(config: LintConfig) -> None:
    task = make_task("t", due=day(2024, 6, 1))
    store = FailingTagStore(projects=[make_project("p", [task])])
    with pytest.raises(TagUnavailableError) as exc:
        run_sweep(store, config, NOW)
    assert exc.value.tag_name == config.review_tag_name
    assert task.note == ""
    assert task.tags == []


def test_sweep_render_breakdown(config: LintConfig, tags) -> None:
    text = run_sweep(_sample_store(tags), config, NOW).render()
    assert text.splitlines() == [
        "Projects flagged: 3",
        "  · No Next Action: 1",
        "  · Has Overdue Tasks: 1",
        "  · Empty: 1",
        "  · (P_NO_NEXT_ACTION check skipped for 1 - task status unavailable)",
        "",
        "Tasks flagged: 3",
        "  · Overdue: 1",
        "  · Inbox Old: 1",
        "  · Waiting Stale: 1",
        "  · (Inbox age check skipped for 1 - no creation date)",
    ]


def test_sweep_summary_payload_counts_every_rule(config: LintConfig) -> None:
    project = make_project("p", [make_task("a")], due=NOW - timedelta(days=1))
    payload = run_sweep(make_store(projects=[project]), config, NOW).as_dict()
    assert payload["project_reasons"] == {"P_OVERDUE": 1}
    assert payload["projects_flagged"] == 1
    assert payload["review_tag"] == config.review_tag_name
