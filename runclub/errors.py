"""Typed exceptions shared by the service layer, the CLI and the web app.

Each class maps to one kind of failure a caller has to react to differently:
the Flask app turns them into distinct status codes, and read paths that can
tolerate a missing row return ``None`` instead of raising ``NotFound``.
"""

from __future__ import annotations


class RunClubError(RuntimeError):
    """Base class for every error raised on purpose by runclub."""


class AuthenticationRequired(RunClubError):
    """No signed-in user for an operation that needs one."""

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class AuthorizationDenied(RunClubError):
    """Signed in, but not allowed to perform an admin-only operation."""

    def __init__(self, message: str = "Admin access required") -> None:
        super().__init__(message)


class NotFound(RunClubError):
    """A referenced challenge, user, run or feedback row does not exist."""

    def __init__(self, kind: str, ident: object) -> None:
        super().__init__(f"{kind} not found: {ident}")
        self.kind = kind
        self.ident = ident


class ValidationError(RunClubError):
    """Malformed or missing input, raised before anything is written."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class NoActiveChallenge(RunClubError):
    """The user has no enrollment in a currently active challenge."""

    def __init__(self, message: str = "No active challenge found") -> None:
        super().__init__(message)


class IntegrationError(RunClubError):
    """An upstream service (weather, issue tracker) failed or misbehaved."""
