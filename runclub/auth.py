"""Identity mapping and the admin gate.

``sign_in()`` is what the OAuth callback calls once the identity provider has
vouched for an email address. ``require_user()`` / ``require_admin()`` read the
session identity published by the web layer (see ``runclub.user_context``)
and raise before any admin-only work starts.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from runclub.appconfig import get_admin_emails
from runclub.errors import AuthenticationRequired, AuthorizationDenied, ValidationError
from runclub.models import ROLE_ADMIN, User
from runclub.user_context import Identity, get_identity

log = logging.getLogger(__name__)


def is_admin(role: str | None) -> bool:
    return role == ROLE_ADMIN


def should_be_admin(email: str) -> bool:
    """True when *email* is on the configured admin allow-list."""
    return email.strip().lower() in get_admin_emails()


def sign_in(profile: dict[str, Any]) -> User:
    """Map an identity-provider profile to a User, creating it on first sign-in.

    *profile* carries ``email``, ``name``, ``image`` and ``email_verified``.
    Allow-listed emails are promoted to admin on every sign-in.
    """
    from runclub.users import find_or_create_user

    email = (profile.get("email") or "").strip().lower()
    if not email:
        raise ValidationError("Identity provider returned no email", field="email")

    verified = int(datetime.now(UTC).timestamp()) if profile.get("email_verified") else None
    user, created = find_or_create_user(
        email,
        name=profile.get("name"),
        image=profile.get("image"),
        email_verified=verified,
    )
    if not user.is_admin and should_be_admin(email):
        user.role = ROLE_ADMIN
        user.save()
        log.info("Promoted allow-listed user id=%d to admin", user.id)
    if created:
        log.info("First sign-in for user id=%d", user.id)
    return user


def identity_for(user: User) -> Identity:
    return Identity(user_id=user.id, email=user.email, role=user.role)


def require_user() -> Identity:
    """Return the caller's identity or raise AuthenticationRequired."""
    identity = get_identity()
    if identity is None or not identity.user_id:
        raise AuthenticationRequired()
    return identity


def require_admin() -> Identity:
    """Return the caller's identity if they are an admin.

    Raises AuthenticationRequired without a session and AuthorizationDenied
    for signed-in members, so callers can tell "sign in" from "forbidden".
    """
    identity = require_user()
    if not is_admin(identity.role):
        raise AuthorizationDenied()
    return identity
