"""In-app feedback submission."""

from flask import Blueprint, jsonify, request
from helpers import get_request_data

from runclub.auth import require_user
from runclub.feedback import submit_feedback
from runclub.validation import get_optional_string

feedback_bp = Blueprint("feedback", __name__)


@feedback_bp.route("/api/feedback", methods=["POST"])
def api_submit_feedback():
    """Store feedback and try to mirror it to the issue tracker.

    Tracker failures still answer 200; the body reports ``linear_status``.
    """
    identity = require_user()
    data = get_request_data()
    result = submit_feedback(
        identity.user_id,
        category=(data.get("category") or "").strip().lower(),
        message=data.get("message") or "",
        page_path=get_optional_string(data, "page_path"),
        user_agent=request.headers.get("User-Agent"),
    )
    return jsonify(result)
