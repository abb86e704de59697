from .flash_sale_exception import FlashSaleException


class PurchaseNotFoundException(FlashSaleException):
    message = "Purchase not found"
    status_code = 404
