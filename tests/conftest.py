from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest

from review_lint.config import LintConfig
from review_lint.model import Tag
from tests.store_helpers import NOW


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def config() -> LintConfig:
    return LintConfig()


@pytest.fixture
def tags() -> dict[str, Tag]:
    return {
        "waiting": Tag(id="t-waiting", name="Waiting"),
        "someday": Tag(id="t-someday", name="Someday/Maybe"),
        "triage": Tag(id="t-triage", name="Needs Triage"),
        "review": Tag(id="t-review", name="⚠ Review Lint"),
        "focus": Tag(id="t-focus", name="Focus"),
    }


@pytest.fixture
def write_database():
    def _write(path: Path, text: str) -> Path:
        path.write_text(text.lstrip(), encoding="utf-8")
        return path

    return _write
