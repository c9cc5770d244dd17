"""Home page view model for the runclub web app."""

from db_init import load_runclub_config
from flask import Blueprint, jsonify
from flask_login import current_user

from runclub.leaderboard import (
    get_active_challenges_with_leaderboards,
    get_all_time_record,
    get_coldest_run,
    get_most_runs_all_time,
    get_past_challenges,
    get_run_count_standings,
    get_user_progress,
)

pages_bp = Blueprint("pages", __name__)


def _serialize_date(entry: dict | None) -> dict | None:
    if entry and entry.get("date") is not None:
        return {**entry, "date": entry["date"].isoformat()}
    return entry


@pages_bp.route("/")
def index():
    """Everything the home page renders: challenges, leaderboards and, when signed in, the stamp card."""
    config = load_runclub_config()
    payload = {
        "club_name": config.get("club_name"),
        "challenges": get_active_challenges_with_leaderboards(),
        "all_time_record": _serialize_date(get_all_time_record()),
        "most_runs_all_time": get_most_runs_all_time(),
        "run_count_standings": get_run_count_standings(),
        "user": None,
    }
    if current_user.is_authenticated:
        payload["user"] = {
            "id": current_user.id,
            "first_name": current_user.first_name,
            "image": current_user.image,
            "units": current_user.units,
            "zip_code": current_user.zip_code,
            "is_admin": current_user.is_admin,
        }
        payload["progress"] = get_user_progress(current_user.id)
        payload["coldest_run"] = _serialize_date(get_coldest_run(current_user.id))
        payload["past_challenges"] = get_past_challenges(current_user.id)
    return jsonify(payload)
