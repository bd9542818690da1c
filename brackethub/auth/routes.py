"""Routes for the auth blueprint."""

from firebase_admin import auth
from flask import current_app, g, jsonify, session
from flask_wtf.csrf import generate_csrf

from . import bp
from .forms import SessionLoginForm


@bp.route("/session_login", methods=["POST"])
def session_login():
    """
    Called by the client after a successful Firebase sign-in.
    It receives the ID token, verifies it, and creates a server-side session.
    """
    form = SessionLoginForm()
    if not form.validate_on_submit():
        return jsonify({"status": "error", "message": "An ID token is required."}), 400

    try:
        decoded_token = auth.verify_id_token(form.idToken.data)
    except (auth.InvalidIdTokenError, auth.ExpiredIdTokenError, ValueError) as e:
        current_app.logger.warning(f"Rejected session login: {e}")
        return jsonify({"status": "error", "message": "Invalid or expired token."}), 401

    session.clear()
    session["user_id"] = decoded_token["uid"]
    current_app.logger.info(f"Session started for {decoded_token['uid']}")
    return jsonify({"status": "success", "uid": decoded_token["uid"]})


@bp.route("/logout", methods=["POST"])
def logout():
    """Clear the server-side session. Firebase sign-out happens on the client."""
    session.clear()
    return jsonify({"status": "success"})


@bp.route("/csrf_token", methods=["GET"])
def csrf_token():
    """Token for the X-CSRFToken header of subsequent POST requests."""
    return jsonify({"csrfToken": generate_csrf()})


@bp.route("/me", methods=["GET"])
def me():
    """The logged-in account and whether it has a profile yet."""
    if g.get("user_id") is None:
        return jsonify({"authenticated": False})
    return jsonify(
        {"authenticated": True, "uid": g.user_id, "profile": g.get("user")}
    )
