from .catalog import Product
from .orders import Order
from .customers import Customer
from .settings import ShopSetting

__all__ = [
    'Product',
    'Order',
    'Customer',
    'ShopSetting',
]
