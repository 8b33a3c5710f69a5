"""Error taxonomy for review-lint runs."""

from __future__ import annotations


class ReviewLintError(RuntimeError):
    """Base class for failures that are presented to the user as-is.

    ``title`` is the heading shown by the command line surface; the exception
    message is the body.
    """

    title = "Review Linter"


class ConfigError(ReviewLintError):
    title = "Invalid Setting"


class StoreError(ReviewLintError):
    title = "Task Database Error"


class ScopeNotFoundError(ReviewLintError):
    """The configured scope folder or tag no longer resolves."""

    title = "Scope Not Found"

    def __init__(self, label: str):
        self.label = label
        super().__init__(
            f"The configured {label} no longer exists. "
            "Please run `review-lint config set` to update your scope setting."
        )


class TagUnavailableError(ReviewLintError):
    """A tag the run depends on could not be found or created."""

    def __init__(self, tag_name: str, *, kind: str, command: str):
        self.tag_name = tag_name
        self.kind = kind
        self.title = f"Cannot Create {kind.title()} Tag"
        super().__init__(
            f'The tag "{tag_name}" could not be found or created. '
            f"Please create it manually and re-run {command}."
        )


class NeverThrown(RuntimeError):
    """Raised by :func:`review_lint.invariants.never` on an unreachable path."""

    def __init__(self, message: str, *, env: dict[str, object] | None = None):
        super().__init__(message)
        self.env = dict(env or {})
