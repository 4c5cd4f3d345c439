"""Infrastructure ORM Models"""

from .user_model import UserModel
from .product_model import ProductModel
from .order_model import OrderModel, OrderItemModel, OrderStatusHistoryModel
from .payment_model import PaymentModel
from .escrow_model import EscrowModel

__all__ = [
    'UserModel',
    'ProductModel',
    'OrderModel',
    'OrderItemModel',
    'OrderStatusHistoryModel',
    'PaymentModel',
    'EscrowModel',
]
