from .purchase_rejected_exception import PurchaseRejectedException


class UserAlreadyPurchasedException(PurchaseRejectedException):
    message = "You have already purchased this item"
    reason = "already_purchased"
