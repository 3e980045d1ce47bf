"""Exception types raised by the survey engine SDK.

Configuration and input problems subclass ``ValueError`` so callers that
already map ``ValueError`` to a client error keep working.  Session store
failures subclass ``RuntimeError`` so they can never be confused with the
"unknown session" sentinel (``None``) that engine operations return.
"""


class CatalogError(ValueError):
    """The configuration document is malformed or references missing blocks."""

    def __init__(self, message: str, problems: list[str] | None = None) -> None:
        self.problems = list(problems or [])
        if self.problems:
            message = f"{message}:\n  - " + "\n  - ".join(self.problems)
        super().__init__(message)


class ConditionDepthError(ValueError):
    """A condition or conditionalNext tree is nested beyond the allowed depth."""


class InvalidAnswerError(ValueError):
    """A submitted answer does not have an accepted shape for its block."""


class SessionStoreError(RuntimeError):
    """The session store backend failed (connection, timeout, query error)."""
