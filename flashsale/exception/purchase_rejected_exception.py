from typing import Optional
from .flash_sale_exception import FlashSaleException


class PurchaseRejectedException(FlashSaleException):
    """
    Expected outcome of a reservation attempt that did not claim a unit.
    `reason` is one of not_started, ended, sold_out, already_purchased.
    """
    message = "Purchase rejected"
    reason = "rejected"

    def __init__(self, message: Optional[str] = None, reason: Optional[str] = None):
        super().__init__(message)
        if reason is not None:
            self.reason = reason
