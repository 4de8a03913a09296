# Overview: Flask API routes for sign-up, sign-in, sign-out and session lookup.

"""
Authentication API routes.

Sessions are opaque tokens issued by the local identity provider. Clients
send them back either as the session cookie or as
"Authorization: Bearer <token>".
"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..errors import AuthenticationError, StockroomError
from ..services import auth_service, session_service
from ..decorators import current_identity, read_credential


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _set_session_cookie(response, token: str, max_age: int):
    response.set_cookie(
        current_app.config["SESSION_COOKIE_NAME"],
        token,
        max_age=max_age,
        path="/",
        httponly=True,
        secure=current_app.config["SESSION_COOKIE_SECURE"],
        samesite="None" if current_app.config["SESSION_COOKIE_SECURE"] else "Lax",
    )


@auth_bp.post("/sign-up/email")
def sign_up_route():
    """Create a user with the default role. 409 if the email is taken."""
    data = request.get_json(silent=True) or {}

    user = auth_service.register_user(
        db.session,
        name=data.get("name"),
        email=data.get("email"),
        password=data.get("password"),
    )
    return jsonify({"user": user.to_dict()}), 201


@auth_bp.post("/sign-in/email")
def sign_in_route():
    """
    Authenticate with email/password and open a session.

    Returns the token and sets it as an HttpOnly cookie.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not email or not password:
        return jsonify({"error": "email and password required"}), 400

    user = auth_service.authenticate(db.session, email=email, password=password)
    if user is None:
        raise AuthenticationError("Invalid email or password")

    record, token = session_service.create_session(
        db.session,
        user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )

    response = jsonify({
        "token": token,
        "user": user.to_dict(),
        "session": record.to_dict(),
    })
    _set_session_cookie(response, token, int(session_service.SESSION_TTL.total_seconds()))
    return response, 200


@auth_bp.post("/sign-out")
def sign_out_route():
    """
    Revoke the caller's session and expire the cookie.

    Always answers 200: a client that wants out is out, even when the
    server-side revocation fails.
    """
    token = read_credential()
    if token:
        try:
            session_service.revoke_session(db.session, token)
        except StockroomError:
            current_app.logger.exception("Failed to revoke session on sign-out")

    response = jsonify({"signed_out": True})
    response.delete_cookie(
        current_app.config["SESSION_COOKIE_NAME"],
        path="/",
        httponly=True,
        secure=current_app.config["SESSION_COOKIE_SECURE"],
        samesite="None" if current_app.config["SESSION_COOKIE_SECURE"] else "Lax",
    )
    return response, 200


@auth_bp.get("/get-session")
def get_session_route():
    """Current session and user, or nulls when unauthenticated."""
    identity = current_identity()
    if identity is None:
        return jsonify({"session": None, "user": None}), 200

    return jsonify({
        "session": identity.session.to_dict(),
        "user": identity.to_dict(),
    }), 200
