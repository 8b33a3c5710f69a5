from __future__ import annotations

from dataclasses import replace

import pytest

from review_lint.clear import Selection, clear_item, run_clear
from review_lint.config import LintConfig, ScopeMode
from review_lint.exceptions import ScopeNotFoundError
from review_lint.sweep import run_sweep
from tests.store_helpers import NOW, day, make_project, make_store, make_task

_MARKED_NOTE = "Call the landlord\n@waitingSince(2024-03-01)\n@lintAt(2024-06-15)\n@lint(T_WAITING_TOO_LONG)"


def test_clear_item_removes_tag_flag_and_lint_stamps(tags) -> None:
    review = tags["review"]
    task = make_task("t", tags=[tags["waiting"], review], flagged=True, note=_MARKED_NOTE)
    assert clear_item(task, review, remove_stamps=True, remove_flags=True)
    assert task.tags == [tags["waiting"]]
    assert task.flagged is False
    assert task.note == "Call the landlord\n@waitingSince(2024-03-01)"


def test_clear_item_keeps_stamps_and_flags_by_default(tags) -> None:
    review = tags["review"]
    task = make_task("t", tags=[review], flagged=True, note=_MARKED_NOTE)
    assert clear_item(task, review, remove_stamps=False, remove_flags=False)
    assert task.tags == []
    assert task.flagged is True
    assert task.note == _MARKED_NOTE


def test_clear_item_skips_untagged_items(tags) -> None:
    task = make_task("t", flagged=True, note="@lint(T_OVERDUE)")
    assert not clear_item(task, tags["review"], remove_stamps=True, remove_flags=True)
    assert task.flagged is True
    assert task.note == "@lint(T_OVERDUE)"


def test_clear_without_tag_reports_and_creates_nothing(config: LintConfig) -> None:
    task = make_task("t", note="@lint(T_OVERDUE)")
    store = make_store(projects=[make_project("p", [task])])
    result = run_clear(store, config, remove_stamps=True)
    assert result.tag_found is False
    assert store.tag_by_name(config.review_tag_name) is None
    assert task.note == "@lint(T_OVERDUE)"
    assert result.render() == 'The lint tag "⚠ Review Lint" does not exist. Nothing to clear.'


def test_clear_reverses_a_sweep(config: LintConfig) -> None:
    overdue = make_task("overdue", due=day(2024, 6, 1), note="Pay rent")
    project = make_project("p", [overdue], due=day(2024, 6, 1))
    inbox = make_task("inbox", added=day(2024, 6, 1))
    store = make_store(projects=[project], inbox=[inbox])
    run_sweep(store, replace(config, also_flag=True), NOW)

    result = run_clear(store, config, remove_stamps=True, remove_flags=True)
    assert (result.cleared_projects, result.cleared_tasks) == (1, 2)
    assert overdue.note == "Pay rent"
    assert overdue.tags == []
    assert overdue.flagged is False
    assert project.note == ""
    assert inbox.note == ""
    assert result.render() == "1 project cleared.\n2 tasks cleared."
    assert store.tag_by_name(config.review_tag_name) is not None


def test_clear_scope_applies_exclude_tags_to_projects_only(config: LintConfig, tags) -> None:
    review, someday = tags["review"], tags["someday"]
    excluded_task = make_task("later", tags=[someday, review])
    parked = make_project("parked", [make_task("inner", tags=[review])], tags=[someday, review])
    store = make_store(
        tags=[review, someday],
        projects=[make_project("p", [excluded_task]), parked],
    )
    result = run_clear(store, config)
    assert result.cleared_tasks == 1
    assert result.cleared_projects == 0
    assert excluded_task.tags == [someday]
    assert parked.root.has_tag(review.name)


def test_selection_mode_ignores_scope_and_exclusions(config: LintConfig, tags) -> None:
    review, someday = tags["review"], tags["someday"]
    held = make_project("held", tags=[someday, review], note="@lint(P_EMPTY)")
    task = make_task("t", tags=[someday, review])
    other = make_task("other", tags=[review])
    store = make_store(tags=[review, someday], projects=[held], inbox=[task, other])
    scoped = replace(config, scope_mode=ScopeMode.FOLDER_SCOPE, scope_folder_id="gone")
    result = run_clear(
        store,
        scoped,
        selection=Selection(projects=(held,), tasks=(task,)),
        remove_stamps=True,
    )
    assert (result.cleared_projects, result.cleared_tasks) == (1, 1)
    assert held.note == ""
    assert other.has_tag(review.name)


def test_clear_scope_not_found(config: LintConfig, tags) -> None:
    review = tags["review"]
    task = make_task("t", tags=[review])
    store = make_store(tags=[review], projects=[make_project("p", [task])])
    with pytest.raises(ScopeNotFoundError):
        run_clear(store, replace(config, scope_mode=ScopeMode.TAG_SCOPE, scope_tag_id=None))
    assert task.has_tag(review.name)


def test_clear_with_nothing_tagged(config: LintConfig, tags) -> None:
    store = make_store(tags=[tags["review"]], projects=[make_project("p", [make_task("t")])])
    result = run_clear(store, config)
    assert result.as_dict() == {"tag_found": True, "cleared_projects": 0, "cleared_tasks": 0}
    assert result.render() == "No items with the lint tag were found in the target scope."
