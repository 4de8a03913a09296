# Overview: Stock Mutation Engine; product writes and their ledger entries in one transaction.

"""
Stock invariants (authoritative)

- Product.quantity changes only through update_product, and every non-zero
  change appends exactly one StockMovement in the same transaction.
- initial_quantity + SUM(signed movement quantities) == quantity, always.
- Zero-delta updates write no movement.
- The old quantity is read under SELECT ... FOR UPDATE in the transaction
  that writes the new one. Product.version_id catches the race on stores
  that ignore row locks.
- Lost races surface as ConflictError and are never retried here.
"""

from __future__ import annotations

import logging

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from ..errors import NotFoundError, ValidationError
from ..models import Product, StockMovement, INBOUND, OUTBOUND
from ..validation import ModelValidationPolicy, enforce_rules_product
from .concurrency import atomic, lock_for_update
from stockroom.time_utils import utcnow

logger = logging.getLogger(__name__)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "description", "quantity"}),
    required_on_create=frozenset({"name"}),
)

PRODUCT_STRUCTURAL_FIELDS = ("name", "description")


def _check_patch(patch: dict) -> None:
    # Routes validate payloads already; the engine still refuses bad arithmetic input
    enforce_rules_product(patch)
    if "name" in patch and (patch["name"] is None or not str(patch["name"]).strip()):
        raise ValidationError("name cannot be blank")


def _get_product(session: Session, product_id: int, *, lock: bool = False) -> Product:
    query = session.query(Product).filter(Product.id == product_id)
    if lock:
        # populate_existing: a copy already in the identity map must not
        # stand in for the locked read
        query = lock_for_update(query).populate_existing()
    product = query.one_or_none()
    if product is None:
        raise NotFoundError("Product not found")
    return product


def get_product(session: Session, product_id: int) -> dict:
    return _get_product(session, product_id).to_dict()


def create_product(session: Session, *, patch: dict, acting_user_id: int | None = None) -> dict:
    """
    Create a product. Its opening quantity becomes initial_quantity, the
    anchor of the ledger invariant, so no movement row is written.
    """
    if "name" not in patch:
        raise ValidationError("Missing required fields: name")
    _check_patch(patch)

    quantity = patch.get("quantity")
    if quantity is None:
        quantity = 0

    with atomic(session):
        product = Product(
            name=patch["name"],
            description=patch.get("description"),
            quantity=quantity,
            initial_quantity=quantity,
        )
        session.add(product)
        session.flush()
        # Serialized as written; commit expires the instance
        result = product.to_dict()

    logger.info(
        "product.created",
        extra={"product_id": result["id"], "quantity": quantity, "actor_user_id": acting_user_id},
    )
    return result


def update_product(
    session: Session,
    *,
    product_id: int,
    patch: dict,
    acting_user_id: int | None = None,
) -> dict:
    """
    Apply a product update and record the stock change it implies.

    patch may carry name, description and the target quantity. When the
    quantity differs from the value read under lock, one movement is
    appended: inbound for a positive delta, outbound for a negative one,
    with magnitude abs(delta).

    Raises:
        ValidationError: blank name, malformed or negative quantity
        NotFoundError: product does not exist
        ConflictError: a concurrent update won the race (caller may retry)
        InternalError: store failure
    """
    _check_patch(patch)

    with atomic(session):
        product = _get_product(session, product_id, lock=True)
        old_quantity = product.quantity

        for field in PRODUCT_STRUCTURAL_FIELDS:
            if field in patch:
                setattr(product, field, patch[field])

        new_quantity = patch.get("quantity")
        if new_quantity is None:
            new_quantity = old_quantity
        delta = new_quantity - old_quantity

        if delta != 0:
            product.quantity = new_quantity
            session.add(StockMovement(
                product_id=product.id,
                direction=INBOUND if delta > 0 else OUTBOUND,
                quantity=abs(delta),
                actor_user_id=acting_user_id,
                occurred_at=utcnow(),
            ))

        session.flush()
        result = product.to_dict()

    if delta != 0:
        logger.info(
            "stock.movement",
            extra={
                "product_id": product_id,
                "delta": delta,
                "quantity": new_quantity,
                "actor_user_id": acting_user_id,
            },
        )
    return result


def ledger_quantity(session: Session, product: Product) -> int:
    """initial_quantity plus the signed sum of the product's movements."""
    signed = case(
        (StockMovement.direction == INBOUND, StockMovement.quantity),
        else_=-StockMovement.quantity,
    )
    total = (
        session.query(func.coalesce(func.sum(signed), 0))
        .filter(StockMovement.product_id == product.id)
        .scalar()
    )
    return product.initial_quantity + int(total or 0)


def reconcile_product(session: Session, product_id: int) -> dict:
    """Compare the stored quantity with the one the ledger implies."""
    product = _get_product(session, product_id)
    expected = ledger_quantity(session, product)
    movement_count = (
        session.query(func.count(StockMovement.id))
        .filter(StockMovement.product_id == product.id)
        .scalar()
    )
    return {
        "product_id": product.id,
        "quantity": product.quantity,
        "initial_quantity": product.initial_quantity,
        "ledger_quantity": expected,
        "movement_count": int(movement_count or 0),
        "consistent": expected == product.quantity,
    }
