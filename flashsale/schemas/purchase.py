from datetime import datetime
from typing import Optional
from pydantic import Field
from flashsale.db.models.purchase import PurchaseStatus
from flashsale.schemas.base import CamelModel


class PurchaseRequest(CamelModel):
    user_id: str = Field(min_length=1, max_length=255)
    flash_sale_id: str = Field(min_length=1, max_length=36)


class PurchaseResponse(CamelModel):
    success: bool
    message: str
    purchase_id: Optional[str] = None
    remaining_stock: Optional[int] = None
    reason: Optional[str] = None


class PurchaseRecord(CamelModel):
    id: str
    user_id: str
    flash_sale_id: str
    quantity: int
    timestamp: datetime
    status: PurchaseStatus


class UserPurchaseStatus(CamelModel):
    has_purchased: bool
    purchase: Optional[PurchaseRecord] = None
