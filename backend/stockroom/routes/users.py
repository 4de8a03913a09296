# Overview: Flask API routes for user administration (admin role only).

"""
User administration.

- list, read and edit user accounts
- set a user's role in the Role Store
- delete a user together with its sessions, accounts and role row
"""

from flask import Blueprint, request, g

from ..extensions import db
from ..models import User
from ..errors import ValidationError
from ..services import deletion_service, listing_service, role_store, user_service
from ..services.role_store import ADMIN_ROLE
from ..services.user_service import USER_POLICY
from ..validation import validate_payload
from ..decorators import require_auth, require_role

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_role(ADMIN_ROLE)
def list_users_route():
    page, limit = listing_service.parse_page_args(request.args)
    return listing_service.list_users(db.session, page=page, limit=limit).to_dict()


@users_bp.get("/<int:user_id>")
@require_auth
@require_role(ADMIN_ROLE)
def get_user_route(user_id: int):
    return user_service.get_user(db.session, user_id)


@users_bp.put("/<int:user_id>")
@require_auth
@require_role(ADMIN_ROLE)
def update_user_route(user_id: int):
    """Replace name and email. Both are required; 409 if the email is taken."""
    payload = request.get_json(silent=True)
    patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=True)
    return user_service.update_user(db.session, user_id=user_id, patch=patch)


@users_bp.put("/<int:user_id>/role")
@require_auth
@require_role(ADMIN_ROLE)
def set_user_role_route(user_id: int):
    payload = request.get_json(silent=True) or {}
    return role_store.set_role(db.session, user_id=user_id, role=payload.get("role"))


@users_bp.delete("/<int:user_id>")
@require_auth
@require_role(ADMIN_ROLE)
def delete_user_route(user_id: int):
    # Prevent self-deletion
    if user_id == g.identity.id:
        raise ValidationError("Cannot delete your own account")

    counts = deletion_service.delete_user(db.session, user_id)
    return {
        "ok": True,
        "message": "User deleted",
        "sessions_deleted": counts.get("sessions", 0),
    }, 200
