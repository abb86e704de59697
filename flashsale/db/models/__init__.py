from .purchase import Purchase as Purchase, PurchaseStatus as PurchaseStatus

__all__ = ["Purchase", "PurchaseStatus"]
