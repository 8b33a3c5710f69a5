"""Structured stamps embedded in free-text notes.

A stamp is a single contiguous substring such as ``@lintAt(2024-06-15)``,
``@lint(P_EMPTY,P_OVERDUE)`` or ``@waitingSince(2024-03-01)``. Each kind is
matched by one anchored pattern and a note carries at most one instance of
each kind: :func:`upsert_stamp` replaces in place instead of duplicating.
Everything outside a matched span is user-authored text and is never touched,
apart from the blank-line collapse performed by :func:`remove_stamp`.
"""

from __future__ import annotations

from datetime import date, datetime
import re
from typing import Iterable

from review_lint.dates import format_date, parse_date

LINT_AT_RE = re.compile(r"@lintAt\(\d{4}-\d{2}-\d{2}\)")
LINT_RE = re.compile(r"@lint\([A-Z_]+(?:,[A-Z_]+)*\)")
WAITING_RE = re.compile(r"@waitingSince\(\d{4}-\d{2}-\d{2}\)")

_LINT_AT_VALUE_RE = re.compile(r"@lintAt\((\d{4}-\d{2}-\d{2})\)")
_LINT_VALUE_RE = re.compile(r"@lint\(([A-Z_]+(?:,[A-Z_]+)*)\)")
_WAITING_VALUE_RE = re.compile(r"@waitingSince\((\d{4}-\d{2}-\d{2})\)")
_BLANK_RUN_RE = re.compile(r"\n{3,}")


def upsert_stamp(note: str, pattern: re.Pattern[str], stamp: str) -> str:
    """Replace the first span matching ``pattern`` with ``stamp`` or append it.

    Appending inserts a newline separator unless the note is empty or already
    ends with one.
    """
    match = pattern.search(note)
    if match is not None:
        return note[: match.start()] + stamp + note[match.end() :]
    if not note:
        return stamp
    separator = "" if note.endswith("\n") else "\n"
    return note + separator + stamp


def remove_stamp(note: str, pattern: re.Pattern[str]) -> str:
    """Delete every span matching ``pattern``.

    Afterwards runs of three or more newlines collapse to one blank line and
    trailing newlines are stripped.
    """
    result = pattern.sub("", note)
    result = _BLANK_RUN_RE.sub("\n\n", result)
    return result.rstrip("\n")


def read_waiting_since(note: str) -> datetime | None:
    match = _WAITING_VALUE_RE.search(note)
    if match is None:
        return None
    return parse_date(match.group(1))


def read_lint_at(note: str) -> datetime | None:
    match = _LINT_AT_VALUE_RE.search(note)
    if match is None:
        return None
    return parse_date(match.group(1))


def read_lint_reasons(note: str) -> list[str]:
    match = _LINT_VALUE_RE.search(note)
    if match is None:
        return []
    return match.group(1).split(",")


def lint_at_stamp(day: date | datetime) -> str:
    return f"@lintAt({format_date(day)})"


def lint_stamp(reasons: Iterable[object]) -> str:
    codes = [str(getattr(reason, "value", reason)) for reason in reasons]
    return f"@lint({','.join(codes)})"


def waiting_since_stamp(day: date | datetime) -> str:
    return f"@waitingSince({format_date(day)})"
