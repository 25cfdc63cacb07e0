from .users import User
from .inventory import Product, ProductPrice, StockLevel, StockMovement
from .sales import Sale, SaleItem

__all__ = [
    'User',
    'Product', 'ProductPrice', 'StockLevel', 'StockMovement',
    'Sale', 'SaleItem',
]
