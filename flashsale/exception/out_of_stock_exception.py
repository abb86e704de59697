from .purchase_rejected_exception import PurchaseRejectedException


class OutOfStockException(PurchaseRejectedException):
    message = "Item is sold out"
    reason = "sold_out"
