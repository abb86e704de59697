from .flash_sale_exception import FlashSaleException


class SaleNotFoundException(FlashSaleException):
    message = "Flash sale not found"
    status_code = 404
