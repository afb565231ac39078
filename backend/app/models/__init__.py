from .tenancy import Shop, User
from .inventory import Product, ProductPurchase, ProductDamage, BuyBack
from .sales import Transaction, TransactionLine
from .customers import Customer, PointConfig
from .documents import SequenceCounter, ArchiveLogEntry

__all__ = [
    'Shop', 'User',
    'Product', 'ProductPurchase', 'ProductDamage', 'BuyBack',
    'Transaction', 'TransactionLine',
    'Customer', 'PointConfig',
    'SequenceCounter', 'ArchiveLogEntry',
]
