# Overview: Flask API routes for products; parses input and returns JSON responses.

"""
Product routes.

All routes require authentication. Quantity changes go through the stock
mutation engine, which records the ledger entry; deletion (admin only)
removes the product together with its ledger.
"""
from flask import Blueprint, request, g

from ..extensions import db
from ..models import Product
from ..services import deletion_service, listing_service, stock_service
from ..services.role_store import ADMIN_ROLE
from ..services.stock_service import PRODUCT_POLICY
from ..validation import validate_payload, enforce_rules_product
from ..decorators import require_auth, require_role

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    List products by ascending id.

    Query params:
    - page: int (default 1)
    - limit: int (default 10, max 100)
    """
    page, limit = listing_service.parse_page_args(request.args)
    return listing_service.list_products(db.session, page=page, limit=limit).to_dict()


@products_bp.post("")
@require_auth
def create_product_route():
    payload = request.get_json(silent=True)
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)

    created = stock_service.create_product(db.session, patch=patch, acting_user_id=g.identity.id)
    return created, 201


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    return stock_service.get_product(db.session, product_id)


@products_bp.put("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    """
    Update name, description and/or quantity.

    A quantity different from the stored one appends one movement
    (inbound/outbound) attributed to the caller. 409 means a concurrent
    update won; re-read and retry.
    """
    payload = request.get_json(silent=True)
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    return stock_service.update_product(
        db.session,
        product_id=product_id,
        patch=patch,
        acting_user_id=g.identity.id,
    )


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role(ADMIN_ROLE)
def delete_product_route(product_id: int):
    counts = deletion_service.delete_product(db.session, product_id)
    return {
        "ok": True,
        "message": "Product deleted",
        "movements_deleted": counts.get("stock_movements", 0),
    }, 200


@products_bp.get("/<int:product_id>/reconcile")
@require_auth
def reconcile_product_route(product_id: int):
    """Compare the stored quantity with initial_quantity + ledger."""
    return stock_service.reconcile_product(db.session, product_id)
