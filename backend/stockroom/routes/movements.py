# Overview: Flask API routes for the stock movement ledger (read-only).

from flask import Blueprint, request

from ..extensions import db
from ..services import listing_service
from ..decorators import require_auth

movements_bp = Blueprint("movements", __name__, url_prefix="/api/movements")


@movements_bp.get("")
@require_auth
def list_movements_route():
    """
    List stock movements, newest first, with the product name.

    Query params:
    - page: int (default 1)
    - limit: int (default 10, max 100)
    - product_id: int (optional) - only this product's ledger
    """
    page, limit = listing_service.parse_page_args(request.args)
    product_id = request.args.get("product_id", type=int)

    result = listing_service.list_movements(
        db.session,
        page=page,
        limit=limit,
        product_id=product_id,
    )
    return result.to_dict()
