"""review-lint package root."""

from review_lint.exceptions import (
    ReviewLintError,
    ScopeNotFoundError,
    TagUnavailableError,
)
from review_lint.invariants import never

__all__ = [
    "__version__",
    "ReviewLintError",
    "ScopeNotFoundError",
    "TagUnavailableError",
    "never",
]

__version__ = "0.1.0"
