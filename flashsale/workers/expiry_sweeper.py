import asyncio
import logging
from redis.asyncio import Redis
from flashsale.services.flash_sale import FlashSaleService, flash_sale_service

logger = logging.getLogger(__name__)


async def expiry_sweeper(interval_seconds: float, redis: Redis, service: FlashSaleService = flash_sale_service):
    """
    Periodically retire sales whose window has closed.
    A failed pass is logged and the next one runs on schedule.
    """
    logger.info(f"Expiry sweeper started, interval {interval_seconds}s")
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await service.delete_expired_flash_sales(redis)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Expiry sweep failed")
