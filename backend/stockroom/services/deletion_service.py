# Overview: Cascading Deletion Engine; removes a parent row and its dependents atomically.

"""
Cascade invariants (authoritative)

- A cascade is one transaction: lock the parent, delete each dependent table
  in declared order, then delete the parent.
- A missing parent raises NotFoundError and rolls back everything.
- Any failure rolls back every deletion already issued. A parent never
  vanishes while dependents remain, and dependents are never orphaned.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import delete
from sqlalchemy.orm import Session

from ..errors import NotFoundError
from ..models import Product, StockMovement, User, UserRole, LoginSession, Account
from .concurrency import atomic, lock_for_update


@dataclass(frozen=True)
class CascadeSpec:
    """
    label: used in NotFoundError messages
    parent: mapped class of the parent row
    key: parent key column
    children: dependent foreign-key columns, deleted in this order
    """
    label: str
    parent: type
    key: Any
    children: tuple = ()


PRODUCT_CASCADE = CascadeSpec(
    label="Product",
    parent=Product,
    key=Product.id,
    children=(StockMovement.product_id,),
)

USER_CASCADE = CascadeSpec(
    label="User",
    parent=User,
    key=User.id,
    children=(
        LoginSession.user_id,
        Account.user_id,
        UserRole.user_id,
    ),
)


def _delete_children(session: Session, spec: CascadeSpec, key_value) -> dict[str, int]:
    counts: dict[str, int] = {}
    for column in spec.children:
        model = column.class_
        result = session.execute(delete(model).where(column == key_value))
        counts[model.__tablename__] = result.rowcount
    return counts


def _delete_parent(session: Session, spec: CascadeSpec, key_value) -> int:
    result = session.execute(delete(spec.parent).where(spec.key == key_value))
    return result.rowcount


def cascade_delete(session: Session, spec: CascadeSpec, key_value) -> dict[str, int]:
    """
    Delete the parent identified by key_value together with its dependents.

    Returns deleted row counts keyed by table name.
    """
    with atomic(session):
        # Serializes with writers holding the parent row (update_product)
        parent = lock_for_update(session.query(spec.key).filter(spec.key == key_value)).first()
        if parent is None:
            raise NotFoundError(f"{spec.label} not found")

        counts = _delete_children(session, spec, key_value)

        deleted = _delete_parent(session, spec, key_value)
        if deleted == 0:
            raise NotFoundError(f"{spec.label} not found")
        counts[spec.parent.__tablename__] = deleted

    return counts


def delete_product(session: Session, product_id: int) -> dict[str, int]:
    """Delete a product and its whole movement ledger."""
    return cascade_delete(session, PRODUCT_CASCADE, product_id)


def delete_user(session: Session, user_id: int) -> dict[str, int]:
    """
    Delete a user with its sessions, credential accounts and role row.

    Ledger rows keep their actor_user_id: the ledger is append-only.
    """
    return cascade_delete(session, USER_CASCADE, user_id)
