"""Session identity for the current request.

The web layer calls ``set_identity()`` in a ``before_request`` hook so the
domain functions that gate on the caller (``runclub.auth.require_user()`` and
``require_admin()``) can resolve who is calling without the identity being
threaded through every signature or trusted from client input.

The CLI never sets an identity; its commands call the service functions
directly.
"""

from contextvars import ContextVar
from typing import NamedTuple


class Identity(NamedTuple):
    user_id: int
    email: str
    role: str


_current_identity: ContextVar[Identity | None] = ContextVar("current_identity", default=None)


def get_identity() -> Identity | None:
    """Return the identity of the current caller, or None when signed out."""
    return _current_identity.get()


def set_identity(identity: Identity | None) -> None:
    """Set (or clear, with ``None``) the identity for this execution context."""
    _current_identity.set(identity)


def get_user_id() -> int:
    """Return the current user ID (0 = signed out / CLI)."""
    identity = _current_identity.get()
    return identity.user_id if identity else 0
