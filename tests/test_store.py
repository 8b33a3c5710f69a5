from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import pytest
import yaml

from review_lint.exceptions import StoreError
from review_lint.model import Folder, ProjectStatus, TaskStatus
from review_lint.store import FileTaskStore, find_or_create_tag
from tests.store_helpers import FailingTagStore, make_project, make_store

_DATABASE = """
tags:
  - {id: t-waiting, name: Waiting}
  - {id: t-someday, name: Someday/Maybe}
folders:
  - {id: work, name: Work}
  - {id: clients, name: Clients, parent: work}
projects:
  - id: p1
    name: Launch site
    folder: clients
    root:
      id: p1-root
      name: Launch site
      note: Kickoff notes
      due: 2024-06-01
    tasks:
      - id: a1
        name: Write copy
        status: available
        tags: [t-waiting]
        note: "@waitingSince(2024-05-01)"
        defer: 2024-05-20T09:30:00
      - id: a2
        name: Ship
        status: completed
        completed: true
  - id: p2
    name: Someday list
    status: on_hold
inbox:
  - id: i1
    name: Buy milk
    added: 2024-06-10
    note: null
"""


def test_load_yaml_database(tmp_path: Path, write_database) -> None:
    store = FileTaskStore.load(write_database(tmp_path / "tasks.yaml", _DATABASE))
    first, second = store.projects()
    assert first.name == "Launch site"
    assert first.root.note == "Kickoff notes"
    assert first.root.due == datetime(2024, 6, 1)
    assert first.root.status is None
    assert [task.id for task in first.tasks] == ["a1", "a2"]
    task = store.item_by_id("a1")
    assert task is not None
    assert task.status is TaskStatus.AVAILABLE
    assert task.has_tag("Waiting")
    assert task.defer == datetime(2024, 5, 20, 9, 30)
    assert second.status is ProjectStatus.ON_HOLD
    assert second.root.id == "p2"
    inbox = store.inbox()
    assert inbox[0].in_inbox is True
    assert inbox[0].note == ""
    assert not task.in_inbox


def test_save_round_trip_keeps_date_only_values(tmp_path: Path, write_database) -> None:
    path = write_database(tmp_path / "tasks.yaml", _DATABASE)
    store = FileTaskStore.load(path)
    store.item_by_id("i1").note = "@lint(T_INBOX_OLD)"
    store.save()
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert raw["projects"][0]["root"]["due"] == "2024-06-01"
    assert raw["projects"][0]["tasks"][0]["defer"] == "2024-05-20T09:30:00"
    assert raw["inbox"][0]["note"] == "@lint(T_INBOX_OLD)"
    assert "status" not in raw["projects"][0]["root"]
    reloaded = FileTaskStore.load(path)
    assert reloaded.to_document() == store.to_document()


def test_json_database_round_trip(tmp_path: Path, write_database) -> None:
    yaml_store = FileTaskStore.load(write_database(tmp_path / "tasks.yaml", _DATABASE))
    target = yaml_store.save(tmp_path / "tasks.json")
    payload = json.loads(target.read_text(encoding="utf-8"))
    assert payload["tags"][0] == {"id": "t-waiting", "name": "Waiting"}
    json_store = FileTaskStore.load(target)
    assert json_store.to_document() == yaml_store.to_document()


@pytest.mark.parametrize(
    "text",
    [
        "projects: [\n",
        "- just\n- a list\n",
        "projects:\n  - name: missing id\n",
        "projects:\n  - id: p\n    tasks:\n      - {id: t, due: next tuesday}\n",
        "inbox:\n  - {id: i, tags: [t-unknown]}\n",
    ],
)
def test_invalid_databases_raise_store_error(tmp_path: Path, write_database, text: str) -> None:
    with pytest.raises(StoreError):
        FileTaskStore.load(write_database(tmp_path / "tasks.yaml", text))


def test_missing_database_raises_store_error(tmp_path: Path) -> None:
    with pytest.raises(StoreError):
        FileTaskStore.load(tmp_path / "absent.yaml")


def test_empty_file_is_an_empty_database(tmp_path: Path, write_database) -> None:
    store = FileTaskStore.load(write_database(tmp_path / "tasks.yaml", "\n"))
    assert store.projects() == []
    assert store.inbox() == []


def test_save_without_path_fails() -> None:
    with pytest.raises(StoreError):
        make_store().save()


def test_projects_in_folder_is_transitive() -> None:
    work = Folder(id="work", name="Work")
    store = make_store(
        folders=[work, Folder(id="b", name="B", parent_id="c"), Folder(id="c", name="C", parent_id="work")],
        projects=[make_project("deep", folder_id="b"), make_project("top", folder_id="work"), make_project("x", folder_id="z")],
    )
    assert [project.id for project in store.projects_in_folder(work)] == ["deep", "top"]


def test_create_tag_assigns_fresh_ids(tags) -> None:
    store = make_store(tags=[tags["waiting"]])
    first = store.create_tag("Review")
    second = store.create_tag("Triage")
    assert (first.id, second.id) == ("tag-2", "tag-3")
    assert store.tag_by_id("tag-3") is second
    with pytest.raises(StoreError):
        store.create_tag("   ")


def test_find_or_create_tag() -> None:
    store = make_store()
    created = find_or_create_tag(store, "Review")
    assert created is not None
    assert find_or_create_tag(store, "Review") is created
    assert find_or_create_tag(store, "") is None
    assert find_or_create_tag(FailingTagStore(), "Review") is None
