from .flash_sale_exception import FlashSaleException


class InvariantViolationException(FlashSaleException):
    """Raised when shared state contradicts the reservation guarantees, e.g. a negative stock counter."""
    message = "Inventory invariant violated"
    status_code = 500
