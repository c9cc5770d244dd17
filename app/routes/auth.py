"""Google sign-in and logout routes for the runclub web app."""

import logging
import os
import secrets
from urllib.parse import urlencode

import requests
from flask import Blueprint, jsonify, redirect, request, session
from flask_login import current_user, login_user, logout_user

from runclub.auth import sign_in
from runclub.errors import IntegrationError

log = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"


def _get_google_credentials() -> tuple[str, str]:
    return (
        os.environ.get("GOOGLE_CLIENT_ID", "").strip(),
        os.environ.get("GOOGLE_CLIENT_SECRET", "").strip(),
    )


def _redirect_uri() -> str:
    scheme = request.headers.get("X-Forwarded-Proto", request.scheme)
    return f"{scheme}://{request.host}/auth/google/callback"


def _fetch_google_profile(code: str) -> dict:
    """Exchange an authorization code for the signed-in Google profile."""
    client_id, client_secret = _get_google_credentials()
    try:
        token_resp = requests.post(
            GOOGLE_TOKEN_URL,
            data={
                "code": code,
                "client_id": client_id,
                "client_secret": client_secret,
                "redirect_uri": _redirect_uri(),
                "grant_type": "authorization_code",
            },
            timeout=10,
        )
        if not token_resp.ok:
            raise IntegrationError(f"Google token exchange failed: {token_resp.status_code}")
        access_token = token_resp.json()["access_token"]

        info_resp = requests.get(
            GOOGLE_USERINFO_URL,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=10,
        )
        if not info_resp.ok:
            raise IntegrationError(f"Google userinfo request failed: {info_resp.status_code}")
        info = info_resp.json()
    except (requests.RequestException, ValueError, KeyError) as e:
        raise IntegrationError(f"Google sign-in failed: {e}") from e

    return {
        "email": info.get("email"),
        "name": info.get("name"),
        "image": info.get("picture"),
        "email_verified": bool(info.get("email_verified")),
    }


@auth_bp.route("/login")
def login():
    """Redirect the browser to Google's consent page."""
    client_id, client_secret = _get_google_credentials()
    if not client_id or not client_secret:
        return jsonify({"error": "GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET are not configured"}), 500

    state = secrets.token_urlsafe(24)
    session["oauth_state"] = state
    params = {
        "client_id": client_id,
        "redirect_uri": _redirect_uri(),
        "response_type": "code",
        "scope": "openid email profile",
        "state": state,
        "prompt": "select_account",
    }
    return redirect(f"{GOOGLE_AUTHORIZE_URL}?{urlencode(params)}")


@auth_bp.route("/auth/google/callback")
def google_callback():
    """Handle Google's redirect: verify state, sign the user in, go home."""
    error = request.args.get("error")
    if error:
        log.info("Google sign-in denied: %s", error)
        return redirect("/")

    expected_state = session.pop("oauth_state", None)
    if not expected_state or request.args.get("state") != expected_state:
        return jsonify({"error": "Invalid OAuth state"}), 400

    code = request.args.get("code")
    if not code:
        return jsonify({"error": "No authorization code received from Google"}), 400

    user = sign_in(_fetch_google_profile(code))
    login_user(user, remember=True)
    return redirect("/")


@auth_bp.route("/logout", methods=["POST"])
def logout():
    """Log the current user out."""
    logout_user()
    return redirect("/")


@auth_bp.route("/api/me")
def me():
    """The signed-in user, or ``null`` for anonymous visitors."""
    if not current_user.is_authenticated:
        return jsonify({"user": None})
    return jsonify({"user": {**current_user.to_dict(), "is_admin": current_user.is_admin}})
