from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import Field, field_validator, model_validator
from flashsale.schemas.base import CamelModel


class SaleStatus(str, Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    ENDED = "ended"
    SOLD_OUT = "sold_out"


class FlashSaleBase(CamelModel):
    product_name: str = Field(min_length=1, max_length=255)
    total_stock: int = Field(ge=0)
    start_time: datetime
    end_time: datetime
    # stored and returned but not enforced, every user may claim exactly one unit
    max_purchase_per_user: int = Field(default=1, ge=1)

    @field_validator("start_time", "end_time")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @model_validator(mode="after")
    def check_window(self):
        if self.start_time > self.end_time:
            raise ValueError("startTime must not be after endTime")
        return self


class FlashSaleCreate(FlashSaleBase):
    pass


class FlashSaleRecord(FlashSaleBase):
    """What is persisted under flashsale:{id}. Status is derived on read, never stored."""
    id: str
    remaining_stock: int


class FlashSale(FlashSaleRecord):
    status: SaleStatus


class FlashSaleStatusResponse(CamelModel):
    id: str
    status: SaleStatus
    product_name: str
    remaining_stock: int
    total_stock: int
    start_time: datetime
    end_time: datetime
    time_until_start: Optional[int] = None
    time_until_end: Optional[int] = None


class DeleteFlashSaleRequest(CamelModel):
    id: str = Field(min_length=1)


class DeleteFlashSaleResponse(CamelModel):
    deleted: bool
    message: str


class SweepResponse(CamelModel):
    deleted: int
