from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional
import json
import logging

import typer

from review_lint.clear import Selection, run_clear
from review_lint.config import (
    CONFIG_KEYS,
    LintConfig,
    ScopeMode,
    lint_defaults,
    load_config,
    validate_pref,
)
from review_lint.dates import coerce_datetime
from review_lint.exceptions import ConfigError, ReviewLintError, StoreError
from review_lint.fix_pack import DEFER_POLICIES, DUE_POLICIES, FixOptions, run_fix_pack
from review_lint.json_types import JSONObject, JSONValue
from review_lint.lint_queue import lint_queue_url, open_lint_queue, queue_entries
from review_lint.preferences import DEFAULT_PREFERENCES_PATH, PreferenceStore
from review_lint.schema import FolderDTO, TagDTO
from review_lint.store import FileTaskStore
from review_lint.sweep import run_sweep

app = typer.Typer(add_completion=False, help="Lint a task database for stale projects and tasks.")
config_app = typer.Typer(add_completion=False, help="Show or change review-lint settings.")
app.add_typer(config_app, name="config")

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(levelname)s: %(message)s"


@dataclass(frozen=True)
class RunContext:
    store: FileTaskStore
    config: LintConfig
    now: datetime


def _configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format=_LOG_FORMAT, force=True)


@contextmanager
def _presented(title: str) -> Iterator[None]:
    """Top-level failure presentation: no traceback, exit code 1."""
    try:
        yield
    except (typer.Exit, typer.Abort, typer.BadParameter):
        raise
    except ReviewLintError as exc:
        typer.echo(f"{exc.title}: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    except Exception as exc:
        logger.debug("Unexpected failure", exc_info=True)
        typer.echo(f"{title} Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _parse_now(value: Optional[str]) -> datetime:
    if value is None:
        return datetime.now()
    try:
        parsed = coerce_datetime(value)
    except ValueError as exc:
        raise typer.BadParameter(f"--now must be an ISO date or datetime: {value}") from exc
    if parsed is None:
        raise typer.BadParameter("--now must not be empty")
    return parsed


def _run_context(
    db: Path,
    config_path: Optional[Path],
    prefs: Path,
    now: Optional[str],
) -> RunContext:
    store = FileTaskStore.load(db)
    config = load_config(
        config_path=config_path,
        preferences=PreferenceStore(prefs).as_dict(),
    )
    return RunContext(store=store, config=config, now=_parse_now(now))


def _emit(payload: JSONObject | list[JSONObject], as_json: bool, text: str) -> None:
    if as_json:
        typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        typer.echo(text)


def _confirm_or_cancel(message: str, yes: bool) -> None:
    if yes:
        return
    if not typer.confirm(message, default=False):
        raise typer.Exit(code=1)


_DB_OPTION = typer.Option(
    Path("tasks.yaml"), "--db", envvar="REVIEW_LINT_DB", help="Task database (YAML or JSON)."
)
_CONFIG_OPTION = typer.Option(None, "--config", help="TOML settings file (default ./review_lint.toml).")
_PREFS_OPTION = typer.Option(
    DEFAULT_PREFERENCES_PATH, "--prefs", envvar="REVIEW_LINT_PREFS", help="Preference store (JSON)."
)
_NOW_OPTION = typer.Option(None, "--now", help="Reference instant (ISO date or datetime).")
_JSON_OPTION = typer.Option(False, "--json", help="Print the summary as JSON.")


@app.callback()
def main(
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="-v for info, -vv for debug."),
) -> None:
    _configure_logging(verbose)


@app.command()
def sweep(
    db: Path = _DB_OPTION,
    config: Optional[Path] = _CONFIG_OPTION,
    prefs: Path = _PREFS_OPTION,
    now: Optional[str] = _NOW_OPTION,
    as_json: bool = _JSON_OPTION,
    open_queue: bool = typer.Option(False, "--open-queue", help="Open the lint queue afterwards."),
) -> None:
    """Evaluate every in-scope project and task, then tag and stamp offenders."""
    with _presented("Lint Sweep"):
        ctx = _run_context(db, config, prefs, now)
        result = run_sweep(ctx.store, ctx.config, ctx.now)
        ctx.store.save()
        _emit(result.as_dict(), as_json, result.render())
        if open_queue and result.total_issues:
            _navigate(ctx.config.review_tag_name)


@app.command()
def fix(
    db: Path = _DB_OPTION,
    config: Optional[Path] = _CONFIG_OPTION,
    prefs: Path = _PREFS_OPTION,
    now: Optional[str] = _NOW_OPTION,
    as_json: bool = _JSON_OPTION,
    add_waiting_since: bool = typer.Option(
        False, "--add-waiting-since", help="Stamp waiting tasks that lack @waitingSince."
    ),
    reset_waiting_since: bool = typer.Option(
        False, "--reset-waiting-since", help="Restart the clock on stale waiting tasks."
    ),
    triage_inbox: bool = typer.Option(False, "--triage-inbox", help="Tag old inbox items for triage."),
    repair_defer: bool = typer.Option(False, "--repair-defer", help="Repair stale defer dates."),
    defer_policy: str = typer.Option("today", "--defer-policy", help="today or clear."),
    repair_due: bool = typer.Option(False, "--repair-due", help="Repair past due dates."),
    due_policy: str = typer.Option("today", "--due-policy", help="today, next_week or clear."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Apply deterministic repairs to common lint findings."""
    if defer_policy not in DEFER_POLICIES:
        raise typer.BadParameter(f"--defer-policy must be one of: {', '.join(DEFER_POLICIES)}")
    if due_policy not in DUE_POLICIES:
        raise typer.BadParameter(f"--due-policy must be one of: {', '.join(DUE_POLICIES)}")
    options = FixOptions(
        add_waiting_since=add_waiting_since,
        reset_waiting_since=reset_waiting_since,
        triage_inbox=triage_inbox,
        repair_defer=repair_defer,
        defer_policy=defer_policy,  # type: ignore[arg-type]
        repair_due=repair_due,
        due_policy=due_policy,  # type: ignore[arg-type]
    )
    with _presented("Fix Pack"):
        ctx = _run_context(db, config, prefs, now)
        selected = options.effective(ctx.config).selected()
        if selected:
            _confirm_or_cancel(f"Apply {', '.join(selected)} to {db}?", yes)
        result = run_fix_pack(ctx.store, ctx.config, options, ctx.now)
        if not result.nothing_selected:
            ctx.store.save()
        _emit(result.as_dict(), as_json, result.render())


@app.command()
def clear(
    db: Path = _DB_OPTION,
    config: Optional[Path] = _CONFIG_OPTION,
    prefs: Path = _PREFS_OPTION,
    as_json: bool = _JSON_OPTION,
    item: List[str] = typer.Option(
        [], "--item", help="Clear only these project/task ids instead of the configured scope."
    ),
    remove_stamps: bool = typer.Option(
        False, "--remove-stamps", help="Also remove @lint and @lintAt stamps."
    ),
    remove_flags: bool = typer.Option(False, "--remove-flags", help="Also unflag cleared items."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Remove the review tag (and optionally stamps and flags)."""
    with _presented("Clear Lint Marks"):
        ctx = _run_context(db, config, prefs, None)
        selection = _selection(ctx.store, item) if item else None
        if ctx.store.tag_by_name(ctx.config.review_tag_name) is not None:
            target = "the selected items" if selection is not None else "all items in scope"
            _confirm_or_cancel(f"Clear lint marks from {target}?", yes)
        result = run_clear(
            ctx.store,
            ctx.config,
            selection=selection,
            remove_stamps=remove_stamps,
            remove_flags=remove_flags,
        )
        if result.tag_found:
            ctx.store.save()
        _emit(result.as_dict(), as_json, result.render())


def _selection(store: FileTaskStore, ids: List[str]) -> Selection:
    projects = []
    tasks = []
    for item_id in ids:
        project = store.project_by_id(item_id)
        if project is not None:
            projects.append(project)
            continue
        task = store.item_by_id(item_id)
        if task is None:
            raise StoreError(f"No project or task with id {item_id!r}")
        tasks.append(task)
    return Selection(projects=tuple(projects), tasks=tuple(tasks))


@app.command()
def queue(
    db: Path = _DB_OPTION,
    config: Optional[Path] = _CONFIG_OPTION,
    prefs: Path = _PREFS_OPTION,
    as_json: bool = _JSON_OPTION,
    open_: bool = typer.Option(False, "--open", help="Open the lint queue in the task app."),
) -> None:
    """List everything currently carrying the review tag."""
    with _presented("Open Lint Queue"):
        ctx = _run_context(db, config, prefs, None)
        entries = queue_entries(ctx.store, ctx.config)
        lines = [
            f"{entry.kind:<8} {entry.id:<12} {entry.name}"
            f"  [{','.join(entry.reasons) or '-'}]"
            + (f" @ {entry.lint_at}" if entry.lint_at else "")
            for entry in entries
        ]
        text = "\n".join(lines) if lines else "The lint queue is empty."
        _emit([entry.as_dto().model_dump(mode="json") for entry in entries], as_json, text)
        if open_:
            _navigate(ctx.config.review_tag_name)


def _navigate(tag_name: str) -> None:
    if not open_lint_queue(tag_name):
        typer.echo(
            f'Could not open {lint_queue_url(tag_name)}. '
            f'Please filter by the tag "{tag_name}" manually.',
            err=True,
        )


@config_app.command("show")
def config_show(
    config: Optional[Path] = _CONFIG_OPTION,
    prefs: Path = _PREFS_OPTION,
    as_json: bool = _JSON_OPTION,
) -> None:
    """Print the effective configuration and where each value came from."""
    with _presented("Configure Review Linter"):
        file_layer = lint_defaults(config_path=config)
        pref_layer = PreferenceStore(prefs).as_dict()
        effective = load_config(config_path=config, preferences=pref_layer).as_dict()
        if as_json:
            typer.echo(json.dumps(effective, indent=2, ensure_ascii=False))
            return
        for key, value in effective.items():
            source = "preferences" if key in pref_layer else "file" if key in file_layer else "default"
            typer.echo(f"{key} = {value!r}  ({source})")


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Setting name, e.g. inbox_max_age_days."),
    value: str = typer.Argument(..., help="New value (JSON literal or plain text)."),
    prefs: Path = _PREFS_OPTION,
    db: Optional[Path] = typer.Option(
        None,
        "--db",
        envvar="REVIEW_LINT_DB",
        help="Check scope folder/tag ids against this task database.",
    ),
) -> None:
    """Store a setting in the preference store."""
    with _presented("Configure Review Linter"):
        parsed = _parse_value(value)
        if db is not None and key in _SCOPE_KEYS:
            parsed = _check_scope_target(FileTaskStore.load(db), key, parsed)
        stored = PreferenceStore(prefs).write(key, parsed)
        typer.echo(f"{key} updated." if stored == parsed else f"{key} set to {stored!r}.")


_SCOPE_KEYS = frozenset({"scope_mode", "scope_folder_id", "scope_tag_id"})


def _check_scope_target(store: FileTaskStore, key: str, value: JSONValue) -> JSONValue:
    if key == "scope_mode":
        mode = validate_pref(key, value)
        if mode == ScopeMode.FOLDER_SCOPE.value and not store.folders():
            typer.echo("There are no folders in the task database; using All Active Projects.", err=True)
            return ScopeMode.ALL_ACTIVE_PROJECTS.value
        if mode == ScopeMode.TAG_SCOPE.value and not store.tags():
            typer.echo("There are no tags in the task database; using All Active Projects.", err=True)
            return ScopeMode.ALL_ACTIVE_PROJECTS.value
        return mode
    target = validate_pref(key, value)
    if target is None:
        return None
    if key == "scope_folder_id" and store.folder_by_id(str(target)) is None:
        raise ConfigError(
            f"No folder with id {target!r}. Run `review-lint config targets` to list folder ids."
        )
    if key == "scope_tag_id" and store.tag_by_id(str(target)) is None:
        raise ConfigError(
            f"No tag with id {target!r}. Run `review-lint config targets` to list tag ids."
        )
    return target


@config_app.command("targets")
def config_targets(
    db: Path = _DB_OPTION,
    as_json: bool = _JSON_OPTION,
) -> None:
    """List folder and tag ids usable as scope targets."""
    with _presented("Configure Review Linter"):
        store = FileTaskStore.load(db)
        folders = [
            FolderDTO(id=folder.id, name=folder.name, parent=folder.parent_id)
            for folder in store.folders()
        ]
        tags = [TagDTO(id=tag.id, name=tag.name) for tag in store.tags()]
        lines = [f"folder   {folder.id:<12} {folder.name}" for folder in folders]
        lines += [f"tag      {tag.id:<12} {tag.name}" for tag in tags]
        payload: JSONObject = {
            "folders": [folder.model_dump(mode="json") for folder in folders],
            "tags": [tag.model_dump(mode="json") for tag in tags],
        }
        _emit(payload, as_json, "\n".join(lines) if lines else "No folders or tags found.")


@config_app.command("unset")
def config_unset(
    key: str = typer.Argument(..., help=f"One of: {', '.join(CONFIG_KEYS)}."),
    prefs: Path = _PREFS_OPTION,
) -> None:
    """Remove a setting from the preference store (back to file/default)."""
    with _presented("Configure Review Linter"):
        removed = PreferenceStore(prefs).remove(key)
        typer.echo(f"{key} reset." if removed else f"{key} was not set.")


def _parse_value(raw: str) -> JSONValue:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw
