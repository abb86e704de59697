from typing import Optional


class FlashSaleException(Exception):
    message = "Flash sale error"
    status_code = 400

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def __str__(self):
        return self.message
