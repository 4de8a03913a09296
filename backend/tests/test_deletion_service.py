"""
Cascading deletion tests.

A cascade either removes the parent with all its dependents or leaves
everything as it was.
"""

import pytest
from sqlalchemy.exc import OperationalError

from stockroom.errors import InternalError, NotFoundError
from stockroom.models import Product, StockMovement, User, UserRole, LoginSession, Account
from stockroom.services import deletion_service, session_service, stock_service


@pytest.fixture
def product_with_ledger(db_session, product):
    for target in (12, 7, 30):
        stock_service.update_product(db_session, product_id=product.id, patch={"quantity": target})
    return product.id


def _movement_count(db_session, product_id):
    return db_session.query(StockMovement).filter(StockMovement.product_id == product_id).count()


def test_product_cascade_removes_product_and_ledger(db_session, product_with_ledger):
    other = Product(name="Other", quantity=1, initial_quantity=0)
    db_session.add(other)
    db_session.commit()
    stock_service.update_product(db_session, product_id=other.id, patch={"quantity": 2})

    counts = deletion_service.delete_product(db_session, product_with_ledger)

    assert counts == {"stock_movements": 3, "products": 1}
    assert db_session.get(Product, product_with_ledger) is None
    assert _movement_count(db_session, product_with_ledger) == 0
    # Unrelated ledgers are untouched
    assert _movement_count(db_session, other.id) == 1


def test_product_without_movements(db_session, product):
    counts = deletion_service.delete_product(db_session, product.id)
    assert counts == {"stock_movements": 0, "products": 1}


def test_missing_product(db_session):
    with pytest.raises(NotFoundError):
        deletion_service.delete_product(db_session, 9999)


def test_failure_midway_rolls_back_everything(db_session, product_with_ledger, monkeypatch):
    def failing_delete(session, spec, key_value):
        raise OperationalError("DELETE FROM products", {}, Exception("disk I/O error"))

    monkeypatch.setattr(deletion_service, "_delete_parent", failing_delete)

    with pytest.raises(InternalError):
        deletion_service.delete_product(db_session, product_with_ledger)

    db_session.expire_all()
    assert db_session.get(Product, product_with_ledger) is not None
    assert _movement_count(db_session, product_with_ledger) == 3


def test_parent_vanishing_after_children_rolls_back(db_session, product_with_ledger, monkeypatch):
    monkeypatch.setattr(deletion_service, "_delete_parent", lambda session, spec, key_value: 0)

    with pytest.raises(NotFoundError):
        deletion_service.delete_product(db_session, product_with_ledger)

    assert _movement_count(db_session, product_with_ledger) == 3


def test_user_cascade(db_session, regular_user, admin_user):
    session_service.create_session(db_session, regular_user.id)
    session_service.create_session(db_session, regular_user.id)
    user_id = regular_user.id

    counts = deletion_service.delete_user(db_session, user_id)

    assert counts["sessions"] == 2
    assert counts["accounts"] == 1
    assert counts["user_roles"] == 0
    assert counts["users"] == 1
    assert db_session.get(User, user_id) is None
    assert db_session.query(LoginSession).filter_by(user_id=user_id).count() == 0
    assert db_session.query(Account).filter_by(user_id=user_id).count() == 0
    # Other users keep their rows
    assert db_session.query(UserRole).filter_by(user_id=admin_user.id).count() == 1


def test_user_cascade_keeps_ledger_attribution(db_session, regular_user, product):
    stock_service.update_product(
        db_session,
        product_id=product.id,
        patch={"quantity": 11},
        acting_user_id=regular_user.id,
    )
    user_id = regular_user.id

    deletion_service.delete_user(db_session, user_id)

    movement = db_session.query(StockMovement).filter_by(product_id=product.id).one()
    assert movement.actor_user_id == user_id
