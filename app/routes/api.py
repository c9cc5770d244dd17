"""General API routes (config, database, health) for the runclub web app."""

from db_init import load_runclub_config
from flask import Blueprint, jsonify, request
from helpers import get_database_info

from runclub.auth import require_admin

api_bp = Blueprint("api", __name__)


@api_bp.route("/api/config", methods=["GET"])
def api_config():
    """Return the public part of the configuration as JSON."""
    config = load_runclub_config()
    return jsonify(
        {
            "club_name": config.get("club_name"),
            "home_timezone": config.get("home_timezone"),
            "default_days_count": config.get("default_days_count"),
        }
    )


@api_bp.route("/api/config", methods=["PUT"])
def api_config_save():
    """Persist a new configuration to the DB (admin only)."""
    require_admin()
    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        return jsonify({"error": "Expected a JSON object"}), 400
    from runclub.appconfig import save_config

    save_config(data)
    return jsonify({"status": "saved"})


@api_bp.route("/api/database")
def api_database():
    """API endpoint for database information (admin only)."""
    require_admin()
    return jsonify(get_database_info())


@api_bp.route("/health")
def health():
    """Health check endpoint."""
    return jsonify({"status": "healthy", "app": "runclub-web"})
