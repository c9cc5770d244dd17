# pylint: disable=import-outside-toplevel
"""Main entry point for the runclub CLI.

Operator commands for bootstrapping the database, seeding challenges,
granting admin access and pulling stats or exports without the web app.
"""

import argparse
import sys

from dotenv import load_dotenv

load_dotenv()

HELP_TEXT = """
runclub - Seasonal running challenges with a coldest-run leaderboard.

Usage:
    python -m runclub <command>

Commands:
    migrate          Bootstrap / migrate the database schema (safe on every start)
    setup-challenge  Create (or reuse) a challenge, make it current and enroll everyone
    make-admin       Grant the admin role to an existing user by email
    stats            Show club totals and per-challenge participation
    export           Write a CSV or JSON export (users, challenge, leaderboard, stats)
    help             Show this help and usage documentation

Setup:
    1. Run 'python -m runclub migrate' to create the database.
    2. Seed a season, e.g. 'python -m runclub setup-challenge --season winter --year 2025/2026'.
    3. Sign in once through the web app, then 'python -m runclub make-admin you@example.com'.

Configuration lives in the database (seeded from runclub_config.json when
present); secrets come from the environment or a .env file.
"""


def main(argv=None):
    """Main function for the runclub CLI."""
    parser = argparse.ArgumentParser(description="runclub CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser(
        "migrate",
        help="Bootstrap / migrate the database schema (safe to run on every start)",
    )

    setup_parser = subparsers.add_parser(
        "setup-challenge",
        help="Create or reuse a challenge, make it current and enroll all users",
    )
    setup_parser.add_argument("--season", required=True, choices=["winter", "summer"])
    setup_parser.add_argument("--year", required=True, help='e.g. "2026" or "2025/2026"')
    setup_parser.add_argument("--days", type=int, default=None, help="Target number of runs")
    setup_parser.add_argument(
        "--no-current",
        action="store_true",
        help="Leave the current challenge unchanged",
    )

    admin_parser = subparsers.add_parser("make-admin", help="Grant the admin role to a user")
    admin_parser.add_argument("email", type=str)

    subparsers.add_parser("stats", help="Show club totals and per-challenge participation")

    export_parser = subparsers.add_parser("export", help="Export club data as CSV or JSON")
    export_parser.add_argument("kind", choices=["users", "challenge", "leaderboard", "stats"])
    export_parser.add_argument("--challenge-id", type=int, help="Required for challenge and leaderboard")
    export_parser.add_argument("--format", dest="fmt", choices=["csv", "json"], default="csv")
    export_parser.add_argument("--output", "-o", help="Write to this file instead of stdout")

    subparsers.add_parser("help", help="Show usage and documentation")

    args = parser.parse_args(argv)

    if args.command == "migrate":
        from runclub.commands.migrate import run

        sys.exit(run())
    elif args.command == "setup-challenge":
        from runclub.commands.setup_challenge import run

        sys.exit(run(args.season, args.year, days_count=args.days, make_current=not args.no_current))
    elif args.command == "make-admin":
        from runclub.commands.make_admin import run

        sys.exit(run(args.email))
    elif args.command == "stats":
        from runclub.commands.stats import run

        run()
    elif args.command == "export":
        from runclub.commands.export import run

        sys.exit(run(args.kind, challenge_id=args.challenge_id, fmt=args.fmt, output=args.output))
    elif args.command == "help":
        print(HELP_TEXT)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
