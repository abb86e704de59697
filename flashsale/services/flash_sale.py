import logging
from typing import Callable, Dict, List, Optional, Tuple
from datetime import datetime
from uuid import uuid4
from redis.asyncio import Redis
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from flashsale.db.models.purchase import Purchase
from flashsale.exception import (
    InvariantViolationException,
    OutOfStockException,
    PurchaseNotFoundException,
    SaleNotActiveException,
    SaleNotFoundException,
    UserAlreadyPurchasedException,
)
from flashsale.redis.keys import sale_key, stock_key, user_purchase_key
from flashsale.schemas.flash_sale import FlashSale, FlashSaleCreate, FlashSaleRecord, FlashSaleStatusResponse, SaleStatus
from flashsale.schemas.purchase import PurchaseRecord, PurchaseRequest, PurchaseResponse, UserPurchaseStatus
from flashsale.services.purchase_ledger import purchase_ledger
from flashsale.services.reservation import ReservationOutcome, check_preconditions, reserve
from flashsale.services.sale_index import sale_index
from flashsale.services.status import build_status_view, utcnow, with_status

logger = logging.getLogger(__name__)

class FlashSaleService:
    """
    Sale lifecycle on top of redis (sale records, stock counters, markers, index)
    and the SQL purchase ledger. Store handles are passed in on every call.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self.clock = clock

    async def create_flash_sale(self, data: FlashSaleCreate, redis: Redis) -> FlashSale:
        record = FlashSaleRecord(
            id=str(uuid4()),
            remaining_stock=data.total_stock,
            **data.model_dump(),
        )
        # record, counter and index membership appear together
        async with redis.pipeline(transaction=True) as pipe:
            pipe.set(sale_key(record.id), record.model_dump_json())
            pipe.set(stock_key(record.id), record.total_stock)
            sale_index.queue_add(record.id, pipe)
            await pipe.execute()

        sale = with_status(record, self.clock())
        logger.info(f"Created flash sale {sale.id} for '{sale.product_name}' "
                    f"with {sale.total_stock} units, {sale.start_time.isoformat()} - {sale.end_time.isoformat()}")
        return sale

    async def get_flash_sale(self, sale_id: str, redis: Redis) -> Optional[FlashSale]:
        raw_record, raw_stock = await redis.mget(sale_key(sale_id), stock_key(sale_id))
        if raw_record is None:
            return None
        return with_status(self._parse_record(sale_id, raw_record, raw_stock), self.clock())

    async def get_flash_sale_status(self, sale_id: str, redis: Redis) -> FlashSaleStatusResponse:
        sale = await self.get_flash_sale(sale_id, redis)
        if sale is None:
            raise SaleNotFoundException()
        return build_status_view(sale, self.clock())

    async def attempt_purchase(self, data: PurchaseRequest, redis: Redis, db: AsyncSession) -> PurchaseResponse:
        sale = await self.get_flash_sale(data.flash_sale_id, redis)
        rejection = check_preconditions(sale)
        if rejection is not None:
            if rejection.outcome == ReservationOutcome.SALE_NOT_FOUND:
                raise SaleNotFoundException()
            logger.info(f"Rejected purchase by {data.user_id} on sale {sale.id}: sale is {sale.status.value}")
            raise SaleNotActiveException(rejection.reason)

        # the ledger row is staged first, a database fault here consumes no stock
        purchase_id = str(uuid4())
        await purchase_ledger.stage(purchase_id, data.user_id, data.flash_sale_id, self.clock(), db)

        claimed = False
        try:
            result = await reserve(data.flash_sale_id, data.user_id, purchase_id, redis)
            claimed = result.claimed
        finally:
            if not claimed:
                await db.rollback()

        if result.outcome == ReservationOutcome.ALREADY_CLAIMED:
            logger.info(f"Rejected purchase by {data.user_id} on sale {sale.id}: already purchased")
            raise UserAlreadyPurchasedException()
        if result.outcome == ReservationOutcome.SOLD_OUT:
            logger.info(f"Rejected purchase by {data.user_id} on sale {sale.id}: sold out")
            raise OutOfStockException()
        if result.outcome == ReservationOutcome.SALE_NOT_FOUND:
            raise SaleNotFoundException()

        try:
            await db.commit()
        except SQLAlchemyError:
            logger.exception(f"Unit claimed as {purchase_id} by {data.user_id} on sale {sale.id} "
                             f"but the ledger commit failed")
            raise
        await self._refresh_remaining_stock(sale.id, result.new_stock, redis)

        logger.info(f"Purchase {purchase_id} confirmed for {data.user_id} on sale {sale.id}, "
                    f"{result.new_stock} units left")
        return PurchaseResponse(
            success=True,
            message="Purchase successful!",
            purchase_id=purchase_id,
            remaining_stock=result.new_stock,
        )

    async def get_user_purchase_status(self, user_id: str, flash_sale_id: str, redis: Redis,
                                       db: AsyncSession) -> UserPurchaseStatus:
        purchase_id = await redis.get(user_purchase_key(flash_sale_id, user_id))
        if not purchase_id:
            return UserPurchaseStatus(has_purchased=False)
        purchase = await purchase_ledger.get(purchase_id, db)
        if purchase is None:
            logger.warning(f"User {user_id} holds marker {purchase_id} on sale {flash_sale_id} with no ledger entry")
            return UserPurchaseStatus(has_purchased=False)
        return UserPurchaseStatus(has_purchased=True, purchase=PurchaseRecord.model_validate(purchase))

    async def get_purchase(self, purchase_id: str, db: AsyncSession) -> Purchase:
        purchase = await purchase_ledger.get(purchase_id, db)
        if purchase is None:
            raise PurchaseNotFoundException()
        return purchase

    async def get_all_flash_sales(self, redis: Redis) -> List[FlashSale]:
        now = self.clock()
        records = await self._load_records(await sale_index.list_all(redis), redis)
        sales = [with_status(self._parse_record(sale_id, raw_record, raw_stock), now)
                 for sale_id, (raw_record, raw_stock) in records.items()
                 if raw_record is not None]
        sales.sort(key=lambda sale: sale.start_time, reverse=True)
        return sales

    async def get_latest_active_flash_sale(self, redis: Redis) -> Optional[FlashSale]:
        active = [sale for sale in await self.get_all_flash_sales(redis) if sale.status == SaleStatus.ACTIVE]
        if not active:
            return None
        return max(active, key=lambda sale: sale.start_time)

    async def delete_flash_sale(self, sale_id: str, redis: Redis) -> bool:
        """
        Remove the sale record, its stock counter and its index entry.
        Purchase markers and ledger rows for the sale are left in place.
        """
        async with redis.pipeline(transaction=True) as pipe:
            pipe.delete(sale_key(sale_id))
            pipe.delete(stock_key(sale_id))
            sale_index.queue_remove(sale_id, pipe)
            record_deleted, _, index_removed = await pipe.execute()
        deleted = bool(record_deleted) or bool(index_removed)
        if deleted:
            logger.info(f"Deleted flash sale {sale_id}")
        return deleted

    async def delete_expired_flash_sales(self, redis: Redis) -> int:
        now = self.clock()
        records = await self._load_records(await sale_index.list_all(redis), redis)
        deleted = 0
        for sale_id, (raw_record, raw_stock) in records.items():
            try:
                if raw_record is None:
                    logger.warning(f"Pruning index entry {sale_id} with no sale record")
                    await sale_index.remove(sale_id, redis)
                    continue
                record = self._parse_record(sale_id, raw_record, raw_stock)
                if record.end_time < now and await self.delete_flash_sale(sale_id, redis):
                    deleted += 1
            except Exception:
                logger.exception(f"Failed to sweep flash sale {sale_id}")
        if deleted:
            logger.info(f"Swept {deleted} expired flash sale(s)")
        return deleted

    async def _load_records(self, sale_ids, redis: Redis) -> Dict[str, Tuple[Optional[str], Optional[str]]]:
        sale_ids = list(sale_ids)
        if not sale_ids:
            return {}
        async with redis.pipeline(transaction=False) as pipe:
            for sale_id in sale_ids:
                pipe.get(sale_key(sale_id))
                pipe.get(stock_key(sale_id))
            values = await pipe.execute()
        return {sale_id: (values[2 * i], values[2 * i + 1]) for i, sale_id in enumerate(sale_ids)}

    def _parse_record(self, sale_id: str, raw_record: str, raw_stock: Optional[str]) -> FlashSaleRecord:
        record = FlashSaleRecord.model_validate_json(raw_record)
        # the counter is the source of truth, the cached field is only a fallback
        if raw_stock is not None:
            stock = int(raw_stock)
            if stock < 0:
                logger.critical(f"Stock counter for sale {sale_id} observed negative ({stock})")
                raise InvariantViolationException(f"Stock counter for sale {sale_id} is negative")
            record.remaining_stock = stock
        return record

    async def _refresh_remaining_stock(self, sale_id: str, remaining_stock: int, redis: Redis) -> None:
        raw_record = await redis.get(sale_key(sale_id))
        if raw_record is None:
            return
        record = FlashSaleRecord.model_validate_json(raw_record)
        record.remaining_stock = remaining_stock
        # xx: never resurrect a record deleted in the meantime
        await redis.set(sale_key(sale_id), record.model_dump_json(), xx=True)


flash_sale_service = FlashSaleService()
