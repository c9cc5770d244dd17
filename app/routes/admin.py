"""Admin routes: challenges, users, run moderation, analytics, exports and feedback.

Every route here is gated by ``require_admin()`` in the blueprint's
``before_request`` hook; page GETs from non-admins are redirected home by the
app-level error handlers, everything else gets a JSON 401/403.
"""

from db_init import load_runclub_config
from flask import Blueprint, jsonify, request
from helpers import export_response, get_export_format, get_request_data

from runclub import analytics, challenges, export, runs, users
from runclub.auth import require_admin
from runclub.errors import NotFound
from runclub.feedback import list_feedback, retry_feedback_issue
from runclub.validation import (
    get_checkbox,
    get_choice,
    get_optional_int,
    get_optional_string,
    get_required_int,
    get_required_string,
)

admin_bp = Blueprint("admin", __name__)


@admin_bp.before_request
def _require_admin():
    require_admin()


def _challenge_fields(data: dict) -> dict:
    return {
        "season": get_required_string(data, "season"),
        "year": get_required_string(data, "year"),
        "days_count": get_required_int(data, "days_count"),
        "current": get_checkbox(data, "current"),
        "strava_url": get_optional_string(data, "strava_url"),
        "strava_embed_code": get_optional_string(data, "strava_embed_code"),
    }


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


@admin_bp.route("/admin")
def index():
    """Dashboard: totals, engagement, the 30-day activity chart and per-challenge stats."""
    tz = load_runclub_config().get("home_timezone") or "UTC"
    return jsonify(
        {
            "overview": analytics.get_overview_stats(tz=tz),
            "engagement": analytics.get_user_engagement(),
            "runs_by_day": analytics.get_runs_by_day(30, tz=tz),
            "challenges": analytics.get_all_challenge_participation(),
        }
    )


@admin_bp.route("/admin/analytics")
def analytics_view():
    """Analytics page; ``?challenge_id=`` narrows the temperature histogram."""
    tz = load_runclub_config().get("home_timezone") or "UTC"
    challenge_id = get_optional_int(request.args, "challenge_id")
    days = get_optional_int(request.args, "days")
    days = 30 if days is None else days
    return jsonify(
        {
            "participation": (
                analytics.get_challenge_participation(challenge_id)
                if challenge_id is not None
                else analytics.get_all_challenge_participation()
            ),
            "temperature_distribution": analytics.get_temperature_distribution(challenge_id),
            "runs_by_day": analytics.get_runs_by_day(days, tz=tz),
        }
    )


# ---------------------------------------------------------------------------
# Challenges
# ---------------------------------------------------------------------------


@admin_bp.route("/admin/challenges")
def list_challenges():
    return jsonify({"challenges": challenges.list_challenges()})


@admin_bp.route("/admin/challenges", methods=["POST"])
def create_challenge():
    data = get_request_data()
    challenge = challenges.create_challenge(**_challenge_fields(data), enroll_all=get_checkbox(data, "enroll_all"))
    return jsonify({"challenge": challenge.to_dict()}), 201


@admin_bp.route("/admin/challenges/<int:challenge_id>")
def get_challenge(challenge_id: int):
    challenge = challenges.get_challenge(challenge_id)
    return jsonify(
        {
            "challenge": {**challenge.to_dict(), "title": challenges.format_challenge_title(challenge)},
            "participation": analytics.get_challenge_participation(challenge_id),
        }
    )


@admin_bp.route("/admin/challenges/<int:challenge_id>", methods=["PUT", "POST"])
def update_challenge(challenge_id: int):
    challenge = challenges.update_challenge(challenge_id, **_challenge_fields(get_request_data()))
    return jsonify({"challenge": challenge.to_dict()})


@admin_bp.route("/admin/challenges/<int:challenge_id>", methods=["DELETE"])
def delete_challenge(challenge_id: int):
    challenges.delete_challenge(challenge_id)
    return jsonify({"deleted": challenge_id})


@admin_bp.route("/admin/challenges/<int:challenge_id>/current", methods=["POST"])
def set_current_challenge(challenge_id: int):
    challenge = challenges.set_current_challenge(challenge_id)
    return jsonify({"challenge": challenge.to_dict()})


@admin_bp.route("/admin/challenges/<int:challenge_id>/enroll-all", methods=["POST"])
def enroll_all(challenge_id: int):
    return jsonify(challenges.enroll_all_users(challenge_id))


@admin_bp.route("/admin/challenges/<int:challenge_id>/enrollments", methods=["POST"])
def enroll_user(challenge_id: int):
    user_id = get_required_int(get_request_data(), "user_id")
    enrollment = challenges.enroll_user(user_id, challenge_id)
    return jsonify({"enrollment_id": enrollment.id, "days_count": enrollment.days_count})


@admin_bp.route("/admin/challenges/<int:challenge_id>/enrollments/<int:user_id>", methods=["DELETE"])
def unenroll_user(challenge_id: int, user_id: int):
    challenges.unenroll_user(user_id, challenge_id)
    return jsonify({"unenrolled": user_id})


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@admin_bp.route("/admin/users")
def list_users():
    return jsonify({"users": users.list_users()})


@admin_bp.route("/admin/users/<int:user_id>")
def get_user(user_id: int):
    return jsonify({"user": users.get_user_detail(user_id)})


@admin_bp.route("/admin/users/<int:user_id>/role", methods=["POST"])
def update_user_role(user_id: int):
    user = users.update_user_role(user_id, get_request_data().get("role"))
    return jsonify({"user": user.to_dict()})


@admin_bp.route("/admin/users/<int:user_id>", methods=["DELETE"])
def delete_user(user_id: int):
    users.delete_user(user_id)
    return jsonify({"deleted": user_id})


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------


@admin_bp.route("/admin/runs")
def list_runs():
    challenge_id = get_optional_int(request.args, "challenge_id")
    limit = get_optional_int(request.args, "limit") or 100
    return jsonify({"runs": runs.list_runs(challenge_id=challenge_id, limit=limit)})


@admin_bp.route("/admin/runs/<int:run_id>", methods=["PUT", "POST"])
def update_run(run_id: int):
    data = get_request_data()
    run = runs.update_run(
        run_id,
        temperature=get_optional_int(data, "temperature"),
        position=get_optional_int(data, "position"),
    )
    return jsonify({"run": run.to_dict()})


@admin_bp.route("/admin/runs/<int:run_id>", methods=["DELETE"])
def delete_run(run_id: int):
    runs.delete_run(run_id)
    return jsonify({"deleted": run_id})


# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------


@admin_bp.route("/admin/export/<kind>")
def export_download(kind: str):
    """Download ``users``, ``stats``, ``challenge`` or ``leaderboard`` as ``?format=csv|json``."""
    fmt = get_export_format()
    if kind == "users":
        return export_response(export.export_users(fmt), "users", fmt)
    if kind == "stats":
        return export_response(export.export_all_challenge_stats(fmt), "challenge-stats", fmt)
    if kind not in ("challenge", "leaderboard"):
        raise NotFound("Export", kind)

    challenge_id = get_required_int(request.args, "challenge_id")
    if kind == "challenge":
        return export_response(export.export_challenge(challenge_id, fmt), f"challenge-{challenge_id}", fmt)
    challenges.get_challenge(challenge_id)
    return export_response(export.export_leaderboard(challenge_id, fmt), f"leaderboard-{challenge_id}", fmt)


# ---------------------------------------------------------------------------
# Feedback
# ---------------------------------------------------------------------------


@admin_bp.route("/admin/feedback")
def feedback_list():
    status = request.args.get("status")
    items = list_feedback()
    if status:
        status = get_choice(request.args, "status", ("pending", "created", "failed"))
        items = [f for f in items if f["linear_status"] == status]
    return jsonify({"feedback": items})


@admin_bp.route("/admin/feedback/<int:feedback_id>/retry", methods=["POST"])
def feedback_retry(feedback_id: int):
    return jsonify(retry_feedback_issue(feedback_id))
