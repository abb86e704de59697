from datetime import datetime, timezone
from flashsale.schemas.flash_sale import FlashSale, FlashSaleRecord, FlashSaleStatusResponse, SaleStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def calculate_status(now: datetime, start_time: datetime, end_time: datetime, remaining_stock: int) -> SaleStatus:
    """
    Derive the visible status of a sale. The checks are ordered, not independent:
    an empty counter reports sold_out even inside the sale window.
    Both ends of the window are inclusive.
    """
    if remaining_stock <= 0:
        return SaleStatus.SOLD_OUT
    if now < start_time:
        return SaleStatus.UPCOMING
    if start_time <= now <= end_time:
        return SaleStatus.ACTIVE
    return SaleStatus.ENDED


def millis_between(start: datetime, end: datetime) -> int:
    return max(0, int((end - start).total_seconds() * 1000))


def with_status(record: FlashSaleRecord, now: datetime) -> FlashSale:
    status = calculate_status(now, record.start_time, record.end_time, record.remaining_stock)
    return FlashSale(**record.model_dump(), status=status)


def build_status_view(sale: FlashSale, now: datetime) -> FlashSaleStatusResponse:
    view = FlashSaleStatusResponse(
        id=sale.id,
        status=sale.status,
        product_name=sale.product_name,
        remaining_stock=sale.remaining_stock,
        total_stock=sale.total_stock,
        start_time=sale.start_time,
        end_time=sale.end_time,
    )
    if sale.status == SaleStatus.UPCOMING:
        view.time_until_start = millis_between(now, sale.start_time)
    elif sale.status == SaleStatus.ACTIVE:
        view.time_until_end = millis_between(now, sale.end_time)
    return view
