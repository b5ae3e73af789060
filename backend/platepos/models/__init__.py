from .catalog import Product
from .sales import Sale, SaleItem
from .auth import User, SessionToken
from .activity import Activity
from .order_takers import OrderTaker

__all__ = [
    'Product',
    'Sale', 'SaleItem',
    'User', 'SessionToken',
    'Activity',
    'OrderTaker',
]
