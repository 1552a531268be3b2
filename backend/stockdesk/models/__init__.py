from .catalog import Product, Variant
from .sales import Sale, SaleItem
from .notifications import Notification
from .settings import Settings

__all__ = [
    'Product', 'Variant',
    'Sale', 'SaleItem',
    'Notification',
    'Settings',
]
