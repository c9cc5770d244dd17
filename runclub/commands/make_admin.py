"""CLI command `make-admin`: grant the admin role to an existing user."""

from runclub.core import RunClub
from runclub.models import ROLE_ADMIN


def run(email: str) -> int:
    """Return a process exit code."""
    with RunClub():
        from runclub.users import find_by_email, update_user_role

        user = find_by_email(email)
        if user is None:
            print(f"❌ No user with email {email!r}; they need to sign in once first.")
            return 1
        user = update_user_role(user.id, ROLE_ADMIN)
        print(f"✓ Updated {user.email} to role: {user.role}")
        return 0
