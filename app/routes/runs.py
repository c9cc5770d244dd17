"""Member routes: logging runs, progress, weather pre-fill and settings."""

from flask import Blueprint, jsonify
from flask_login import current_user
from helpers import get_request_data

from runclub.auth import require_user
from runclub.leaderboard import get_challenge_leaderboard, get_coldest_run, get_past_challenges, get_user_progress
from runclub.runs import get_run_by_position, save_run
from runclub.users import update_user_units, update_user_zip_code
from runclub.validation import (
    get_optional_date,
    get_optional_float,
    get_optional_int,
    get_optional_string,
    get_required_int,
)
from runclub.weather import get_current_temperature

runs_bp = Blueprint("runs", __name__)


@runs_bp.route("/api/runs", methods=["POST"])
def api_save_run():
    """Create or overwrite the caller's run at a position of the current challenge."""
    identity = require_user()
    data = get_request_data()
    run = save_run(
        identity.user_id,
        position=get_required_int(data, "position"),
        temperature=get_optional_int(data, "temperature"),
        date=get_optional_date(data, "date"),
        distance=get_optional_float(data, "distance"),
        duration_minutes=get_optional_int(data, "duration_minutes"),
        units=get_optional_string(data, "units") or current_user.units,
    )
    return jsonify({"run": run.to_dict()})


@runs_bp.route("/api/runs/<int:position>")
def api_get_run(position: int):
    identity = require_user()
    return jsonify({"run": get_run_by_position(identity.user_id, position)})


@runs_bp.route("/api/progress")
def api_progress():
    identity = require_user()
    return jsonify({"progress": get_user_progress(identity.user_id)})


@runs_bp.route("/api/coldest-run")
def api_coldest_run():
    identity = require_user()
    coldest = get_coldest_run(identity.user_id)
    if coldest is not None:
        coldest = {**coldest, "date": coldest["date"].isoformat()}
    return jsonify({"coldest_run": coldest})


@runs_bp.route("/api/past-challenges")
def api_past_challenges():
    identity = require_user()
    return jsonify({"past_challenges": get_past_challenges(identity.user_id)})


@runs_bp.route("/api/leaderboard")
def api_leaderboard():
    """Public leaderboard for the current challenge."""
    return jsonify({"leaderboard": get_challenge_leaderboard()})


@runs_bp.route("/api/weather")
def api_weather():
    """Current temperature at the caller's zip code, for pre-filling the run form."""
    identity = require_user()
    return jsonify({"temperature": get_current_temperature(identity.user_id)})


@runs_bp.route("/api/settings/units", methods=["POST"])
def api_settings_units():
    identity = require_user()
    user = update_user_units(identity.user_id, get_request_data().get("units"))
    return jsonify({"units": user.units})


@runs_bp.route("/api/settings/zip-code", methods=["POST"])
def api_settings_zip_code():
    identity = require_user()
    user = update_user_zip_code(identity.user_id, get_optional_string(get_request_data(), "zip_code"))
    return jsonify({"zip_code": user.zip_code})
