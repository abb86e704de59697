import asyncio
import logging
from datetime import timedelta
from redis.asyncio import Redis
from flashsale.core.config import settings
from flashsale.core.logging import setup_logging
from flashsale.schemas.flash_sale import FlashSale, FlashSaleCreate
from flashsale.services.flash_sale import FlashSaleService, flash_sale_service
from flashsale.services.sale_index import sale_index
from flashsale.services.status import utcnow

logger = logging.getLogger(__name__)


async def seed_sample_sale(redis: Redis, service: FlashSaleService = flash_sale_service):
    """Create a sample sale starting in one minute and lasting an hour, unless any sale exists."""
    if await sale_index.list_all(redis):
        logger.info("Flash sales already present, skipping sample data")
        return None
    now = utcnow()
    sale: FlashSale = await service.create_flash_sale(FlashSaleCreate(
        product_name="Limited Edition Gaming Headset",
        total_stock=100,
        start_time=now + timedelta(minutes=1),
        end_time=now + timedelta(hours=1),
        max_purchase_per_user=1,
    ), redis)
    logger.info(f"Sample flash sale {sale.id} starts at {sale.start_time.isoformat()}, "
                f"ends at {sale.end_time.isoformat()}")
    return sale


async def main():
    setup_logging(settings.LOG_LEVEL)
    redis = Redis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        await seed_sample_sale(redis)
    finally:
        await redis.aclose()


if __name__ == "__main__":
    asyncio.run(main())
