from .purchase_rejected_exception import PurchaseRejectedException

MESSAGES = {
    "not_started": "Sale has not started yet",
    "ended": "Sale has ended",
    "sold_out": "Sale is sold out",
}


class SaleNotActiveException(PurchaseRejectedException):
    def __init__(self, reason: str):
        super().__init__(MESSAGES.get(reason, "Sale is not active"), reason=reason)
