import logging
from datetime import datetime
from typing import Optional
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from flashsale.db.models.purchase import Purchase, PurchaseStatus
from flashsale.exception import UserAlreadyPurchasedException

logger = logging.getLogger(__name__)


class PurchaseLedger:
    """
    Append only store of confirmed purchases. There is no update or delete path.

    A row is staged (flushed, not committed) before the unit is claimed in redis;
    the caller commits it only when the claim succeeds and rolls back otherwise.
    """

    async def stage(self, purchase_id: str, user_id: str, flash_sale_id: str, timestamp: datetime,
                    db: AsyncSession) -> Purchase:
        purchase = Purchase(
            id=purchase_id,
            user_id=user_id,
            flash_sale_id=flash_sale_id,
            quantity=1,
            timestamp=timestamp,
            status=PurchaseStatus.CONFIRMED,
        )
        db.add(purchase)
        try:
            await db.flush()
        except IntegrityError as e:
            # a committed row for (sale, user) only exists after a successful claim
            await db.rollback()
            logger.info(f"Ledger already holds a purchase for user {user_id} on sale {flash_sale_id}")
            raise UserAlreadyPurchasedException() from e
        return purchase

    async def get(self, purchase_id: str, db: AsyncSession) -> Optional[Purchase]:
        result = await db.execute(select(Purchase).where(Purchase.id == purchase_id))
        return result.scalar_one_or_none()


purchase_ledger = PurchaseLedger()
