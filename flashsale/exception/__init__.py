from .flash_sale_exception import FlashSaleException
from .sale_not_found_exception import SaleNotFoundException
from .purchase_not_found_exception import PurchaseNotFoundException
from .purchase_rejected_exception import PurchaseRejectedException
from .sale_not_active_exception import SaleNotActiveException
from .out_of_stock_exception import OutOfStockException
from .user_already_purchased_exception import UserAlreadyPurchasedException
from .invariant_violation_exception import InvariantViolationException

__all__ = [
    "FlashSaleException",
    "SaleNotFoundException",
    "PurchaseNotFoundException",
    "PurchaseRejectedException",
    "SaleNotActiveException",
    "OutOfStockException",
    "UserAlreadyPurchasedException",
    "InvariantViolationException",
]
