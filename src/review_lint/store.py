"""Item store collaborator.

The lint core only talks to :class:`TaskStore`. :class:`FileTaskStore` is the
shipped adapter: a YAML or JSON task-database document held in memory while a
run mutates it and written back by :meth:`FileTaskStore.save`.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Protocol

from pydantic import ValidationError
import yaml

from review_lint.exceptions import StoreError
from review_lint.model import Folder, Item, Project, Tag
from review_lint.schema import DatabaseDTO, FolderDTO, ItemDTO, ProjectDTO, TagDTO

logger = logging.getLogger(__name__)

_YAML_SUFFIXES = {".yaml", ".yml"}


class TaskStore(Protocol):
    def projects(self) -> list[Project]: ...

    def inbox(self) -> list[Item]: ...

    def folders(self) -> list[Folder]: ...

    def tags(self) -> list[Tag]: ...

    def folder_by_id(self, folder_id: str) -> Folder | None: ...

    def projects_in_folder(self, folder: Folder) -> list[Project]: ...

    def tag_by_id(self, tag_id: str) -> Tag | None: ...

    def tag_by_name(self, name: str) -> Tag | None: ...

    def create_tag(self, name: str) -> Tag: ...

    def item_by_id(self, item_id: str) -> Item | None: ...

    def project_by_id(self, project_id: str) -> Project | None: ...


def find_or_create_tag(store: TaskStore, name: str) -> Tag | None:
    """Return the tag called ``name``, creating it when missing.

    ``None`` means the tag could not be obtained; callers treat that as fatal
    for their run.
    """
    if not name:
        return None
    existing = store.tag_by_name(name)
    if existing is not None:
        return existing
    try:
        tag = store.create_tag(name)
    except StoreError as exc:
        logger.warning("Could not create tag %r: %s", name, exc)
        return None
    logger.info("Created tag %r", name)
    return tag


class FileTaskStore:
    def __init__(
        self,
        *,
        tags: Iterable[Tag] = (),
        folders: Iterable[Folder] = (),
        projects: Iterable[Project] = (),
        inbox: Iterable[Item] = (),
        path: Path | None = None,
    ) -> None:
        self.path = path
        self._tags: list[Tag] = list(tags)
        self._folders: list[Folder] = list(folders)
        self._projects: list[Project] = list(projects)
        self._inbox: list[Item] = list(inbox)
        for item in self._inbox:
            item.in_inbox = True

    # -- loading -----------------------------------------------------------

    @classmethod
    def load(cls, path: Path) -> "FileTaskStore":
        try:
            raw_text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"Cannot read task database {path}: {exc}") from exc
        try:
            raw = yaml.safe_load(raw_text) or {}
        except yaml.YAMLError as exc:
            raise StoreError(f"Task database {path} is not valid YAML/JSON: {exc}") from exc
        if not isinstance(raw, dict):
            raise StoreError(f"Task database {path} must contain a mapping at the top level")
        try:
            document = DatabaseDTO.model_validate(raw)
        except ValidationError as exc:
            raise StoreError(f"Task database {path} is invalid:\n{exc}") from exc
        store = cls.from_document(document, path=path)
        logger.debug(
            "Loaded %d projects, %d inbox items and %d tags from %s",
            len(store._projects),
            len(store._inbox),
            len(store._tags),
            path,
        )
        return store

    @classmethod
    def from_document(cls, document: DatabaseDTO, *, path: Path | None = None) -> "FileTaskStore":
        tags = [Tag(id=tag.id, name=tag.name) for tag in document.tags]
        tags_by_id = {tag.id: tag for tag in tags}

        def _item(dto: ItemDTO) -> Item:
            item_tags: list[Tag] = []
            for tag_id in dto.tags:
                tag = tags_by_id.get(tag_id)
                if tag is None:
                    raise StoreError(f"Item {dto.id!r} references unknown tag id {tag_id!r}")
                item_tags.append(tag)
            return Item(
                id=dto.id,
                name=dto.name,
                note=dto.note,
                tags=item_tags,
                flagged=dto.flagged,
                completed=dto.completed,
                dropped=dto.dropped,
                status=dto.status,
                due=dto.due,
                defer=dto.defer,
                effective_due=dto.effective_due,
                added=dto.added,
            )

        projects: list[Project] = []
        for project_dto in document.projects:
            root_dto = project_dto.root or ItemDTO(id=project_dto.id, name=project_dto.name)
            projects.append(
                Project(
                    id=project_dto.id,
                    name=project_dto.name or root_dto.name,
                    root=_item(root_dto),
                    tasks=[_item(task) for task in project_dto.tasks],
                    status=project_dto.status,
                    folder_id=project_dto.folder,
                )
            )
        return cls(
            tags=tags,
            folders=[
                Folder(id=folder.id, name=folder.name, parent_id=folder.parent)
                for folder in document.folders
            ],
            projects=projects,
            inbox=[_item(item) for item in document.inbox],
            path=path,
        )

    # -- saving ------------------------------------------------------------

    def to_document(self) -> DatabaseDTO:
        def _item(item: Item) -> ItemDTO:
            return ItemDTO(
                id=item.id,
                name=item.name,
                note=item.note,
                tags=[tag.id for tag in item.tags],
                flagged=item.flagged,
                completed=item.completed,
                dropped=item.dropped,
                status=item.status,
                due=item.due,
                defer=item.defer,
                effective_due=item.effective_due,
                added=item.added,
            )

        return DatabaseDTO(
            tags=[TagDTO(id=tag.id, name=tag.name) for tag in self._tags],
            folders=[
                FolderDTO(id=folder.id, name=folder.name, parent=folder.parent_id)
                for folder in self._folders
            ],
            projects=[
                ProjectDTO(
                    id=project.id,
                    name=project.name,
                    status=project.status,
                    folder=project.folder_id,
                    root=_item(project.root),
                    tasks=[_item(task) for task in project.tasks],
                )
                for project in self._projects
            ],
            inbox=[_item(item) for item in self._inbox],
        )

    def save(self, path: Path | None = None) -> Path:
        target = path or self.path
        if target is None:
            raise StoreError("No task database path to save to")
        payload = self.to_document().model_dump(mode="json", exclude_none=True)
        if target.suffix.lower() in _YAML_SUFFIXES:
            text = yaml.safe_dump(payload, sort_keys=False, allow_unicode=True)
        else:
            text = json.dumps(payload, indent=2, ensure_ascii=False) + "\n"
        try:
            target.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"Cannot write task database {target}: {exc}") from exc
        logger.debug("Saved task database to %s", target)
        return target

    # -- TaskStore ---------------------------------------------------------

    def projects(self) -> list[Project]:
        return list(self._projects)

    def inbox(self) -> list[Item]:
        return list(self._inbox)

    def folders(self) -> list[Folder]:
        return list(self._folders)

    def tags(self) -> list[Tag]:
        return list(self._tags)

    def folder_by_id(self, folder_id: str) -> Folder | None:
        return next((folder for folder in self._folders if folder.id == folder_id), None)

    def projects_in_folder(self, folder: Folder) -> list[Project]:
        folder_ids = {folder.id}
        changed = True
        while changed:
            changed = False
            for candidate in self._folders:
                if candidate.parent_id in folder_ids and candidate.id not in folder_ids:
                    folder_ids.add(candidate.id)
                    changed = True
        return [project for project in self._projects if project.folder_id in folder_ids]

    def tag_by_id(self, tag_id: str) -> Tag | None:
        return next((tag for tag in self._tags if tag.id == tag_id), None)

    def tag_by_name(self, name: str) -> Tag | None:
        return next((tag for tag in self._tags if tag.name == name), None)

    def create_tag(self, name: str) -> Tag:
        if not name.strip():
            raise StoreError("Tag name must not be blank")
        taken = {tag.id for tag in self._tags}
        index = len(self._tags) + 1
        while f"tag-{index}" in taken:
            index += 1
        tag = Tag(id=f"tag-{index}", name=name)
        self._tags.append(tag)
        return tag

    def item_by_id(self, item_id: str) -> Item | None:
        for project in self._projects:
            for task in project.tasks:
                if task.id == item_id:
                    return task
        return next((item for item in self._inbox if item.id == item_id), None)

    def project_by_id(self, project_id: str) -> Project | None:
        return next((project for project in self._projects if project.id == project_id), None)
