# Overview: Offset pagination over products, the stock ledger and users.

"""
Listing semantics (authoritative)

- offset = (page - 1) * limit; page >= 1 and limit >= 1.
- total_pages = ceil(total_items / limit); 0 items gives 0 pages.
- Pages past the end are empty, not an error.
- Products and users are ordered by ascending id; the ledger newest first
  (occurred_at DESC, id DESC) so ties never reorder between pages.
- A non-empty page takes its total from COUNT(*) OVER () in the same
  statement as its rows, so items and total describe one snapshot.
- An empty page (past the end, or an empty collection) has no row to carry
  the window total. Its total comes from a separate COUNT over the same
  filters, which on READ COMMITTED may see a later snapshot than the page.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Mapping

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from ..errors import ValidationError
from ..models import Product, StockMovement, User, UserRole
from .role_store import DEFAULT_ROLE

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


@dataclass
class Page:
    items: list = field(default_factory=list)
    current_page: int = 1
    total_items: int = 0
    total_pages: int = 0

    def to_dict(self) -> dict:
        return {
            "items": self.items,
            "current_page": self.current_page,
            "total_items": self.total_items,
            "total_pages": self.total_pages,
        }


def total_pages_for(total_items: int, limit: int) -> int:
    return (total_items + limit - 1) // limit


def parse_page_args(args: Mapping) -> tuple[int, int]:
    """
    Read page/limit from query-string args.

    Missing or unparsable values fall back to the defaults and everything
    is clamped to >= 1 (limit also to MAX_LIMIT).
    """
    page = args.get("page", type=int) or 1
    limit = args.get("limit", type=int) or DEFAULT_LIMIT
    return max(page, 1), min(max(limit, 1), MAX_LIMIT)


def _check_page_args(page, limit) -> None:
    for name, value in (("page", page), ("limit", limit)):
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ValidationError(f"{name} must be an integer >= 1")


def paginate(query: Query, *, page: int, limit: int, serialize: Callable) -> Page:
    """
    Fetch one page of query.

    serialize receives the entities/columns of each row (without the
    window total) and returns the item to expose.

    Only a non-empty page gets its total from the page statement itself;
    an empty page falls back to a second COUNT statement.
    """
    _check_page_args(page, limit)

    offset = (page - 1) * limit
    rows = (
        query.add_columns(func.count().over().label("total_items"))
        .offset(offset)
        .limit(limit)
        .all()
    )

    if rows:
        total_items = int(rows[-1][-1])
    else:
        total_items = query.order_by(None).count()

    return Page(
        items=[serialize(*row[:-1]) for row in rows],
        current_page=page,
        total_items=total_items,
        total_pages=total_pages_for(total_items, limit),
    )


def _serialize_movement(movement: StockMovement, product_name: str | None) -> dict:
    data = movement.to_dict()
    data["product_name"] = product_name
    return data


def _serialize_user(user: User, role: str | None) -> dict:
    data = user.to_dict()
    data["role"] = role or DEFAULT_ROLE
    return data


def list_products(session: Session, *, page: int, limit: int) -> Page:
    query = session.query(Product).order_by(Product.id.asc())
    return paginate(query, page=page, limit=limit, serialize=lambda p: p.to_dict())


def list_movements(
    session: Session,
    *,
    page: int,
    limit: int,
    product_id: int | None = None,
) -> Page:
    query = (
        session.query(StockMovement, Product.name)
        .outerjoin(Product, Product.id == StockMovement.product_id)
    )
    if product_id is not None:
        query = query.filter(StockMovement.product_id == product_id)
    query = query.order_by(StockMovement.occurred_at.desc(), StockMovement.id.desc())
    return paginate(query, page=page, limit=limit, serialize=_serialize_movement)


def list_users(session: Session, *, page: int, limit: int) -> Page:
    query = (
        session.query(User, UserRole.role)
        .outerjoin(UserRole, UserRole.user_id == User.id)
        .order_by(User.id.asc())
    )
    return paginate(query, page=page, limit=limit, serialize=_serialize_user)
