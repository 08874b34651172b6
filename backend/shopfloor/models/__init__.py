from .catalog import Product, Category, ProductCategory
from .sales import Purchase, PurchaseLine
from .stores import Store, StoreUser, StoreProduct
from .auth import User
from .pricing import VatRate, PricePrediction
from .inventory import StockMovement, Supplier

__all__ = [
    'Product', 'Category', 'ProductCategory',
    'Purchase', 'PurchaseLine',
    'Store', 'StoreUser', 'StoreProduct',
    'User',
    'VatRate', 'PricePrediction',
    'StockMovement', 'Supplier',
]
