from .inventory import Product, StockMovement, INBOUND, OUTBOUND, DIRECTIONS
from .auth import User, UserRole, LoginSession, Account

__all__ = [
    'Product', 'StockMovement', 'INBOUND', 'OUTBOUND', 'DIRECTIONS',
    'User', 'UserRole', 'LoginSession', 'Account',
]
