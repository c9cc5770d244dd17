"""CLI command `stats`: club totals and per-challenge participation."""

from tabulate import tabulate

from runclub.core import RunClub


def _fmt(value) -> str:
    return "—" if value is None else str(value)


def run() -> None:
    """Print the overview numbers and one row per challenge."""
    with RunClub() as club:
        from runclub.analytics import get_all_challenge_participation, get_overview_stats, get_user_engagement

        overview = get_overview_stats(tz=club.home_timezone)
        engagement = get_user_engagement()

        print(club.config.get("club_name", "runclub"))
        print(
            tabulate(
                [
                    ["Users", f"{overview['total_users']:,}", f"+{overview['user_growth_this_month']} this month"],
                    ["Runs", f"{overview['total_runs']:,}", f"+{overview['runs_this_month']} this month"],
                    ["Challenges", overview["total_challenges"], ""],
                    ["Runs per user", overview["average_runs_per_user"], ""],
                    [
                        "Active users",
                        engagement["active_users_last_7_days"],
                        f"{engagement['active_users_last_30_days']} in 30 days",
                    ],
                ],
                tablefmt="simple",
            )
        )

        participation = get_all_challenge_participation()
        if not participation:
            print("\nNo challenges yet.")
            return

        rows = [
            [
                p["challenge_name"],
                p["total_participants"],
                p["total_runs"],
                f"{p['completed_users']} ({p['completion_rate']}%)",
                _fmt(p["average_temperature"]),
                _fmt(p["coldest_run"]),
            ]
            for p in participation
        ]
        print()
        print(
            tabulate(
                rows,
                headers=["Challenge", "Participants", "Runs", "Completed", "Avg °F", "Coldest °F"],
                tablefmt="simple",
            )
        )
