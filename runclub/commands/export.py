"""CLI command `export`: write a CSV or JSON export to a file or stdout."""

from runclub.core import RunClub
from runclub.errors import NotFound, ValidationError


def run(kind: str, challenge_id: int | None = None, fmt: str = "csv", output: str | None = None) -> int:
    """Return a process exit code."""
    with RunClub():
        from runclub import export

        try:
            if kind == "users":
                content = export.export_users(fmt)
            elif kind == "stats":
                content = export.export_all_challenge_stats(fmt)
            elif challenge_id is None:
                print(f"❌ --challenge-id is required for the {kind} export")
                return 1
            elif kind == "challenge":
                content = export.export_challenge(challenge_id, fmt)
            else:
                content = export.export_leaderboard(challenge_id, fmt)
        except (NotFound, ValidationError) as e:
            print(f"❌ {e}")
            return 1

        if output:
            with open(output, "w", encoding="utf-8") as f:
                f.write(content)
            print(f"✓ Wrote {kind} export to {output}")
        else:
            print(content)
        return 0
