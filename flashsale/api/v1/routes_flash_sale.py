from typing import List
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession
from flashsale.db.session import get_db_session
from flashsale.exception import FlashSaleException, PurchaseRejectedException, SaleNotFoundException
from flashsale.redis import get_redis
from flashsale.schemas.flash_sale import (
    DeleteFlashSaleRequest,
    DeleteFlashSaleResponse,
    FlashSale,
    FlashSaleCreate,
    FlashSaleStatusResponse,
    SweepResponse,
)
from flashsale.schemas.purchase import PurchaseRecord, PurchaseRequest, PurchaseResponse, UserPurchaseStatus
from flashsale.services.flash_sale import flash_sale_service

router = APIRouter(
    prefix="/flashsale",
    tags=["flashsale"]
)


@router.post("", response_model=FlashSale, status_code=status.HTTP_201_CREATED)
async def create_flash_sale(data: FlashSaleCreate, redis: Redis = Depends(get_redis)):
    return await flash_sale_service.create_flash_sale(data, redis)


@router.get("/status/{flash_sale_id}", response_model=FlashSaleStatusResponse, response_model_exclude_none=True)
async def get_flash_sale_status(flash_sale_id: str, redis: Redis = Depends(get_redis)):
    return await flash_sale_service.get_flash_sale_status(flash_sale_id, redis)


@router.post("/purchase", response_model=PurchaseResponse, response_model_exclude_none=True)
async def attempt_purchase(data: PurchaseRequest,
                           redis: Redis = Depends(get_redis),
                           db: AsyncSession = Depends(get_db_session)):
    try:
        return await flash_sale_service.attempt_purchase(data, redis, db)
    except PurchaseRejectedException as e:
        body = PurchaseResponse(success=False, message=e.message, reason=e.reason)
        return JSONResponse(status_code=e.status_code, content=body.model_dump(by_alias=True, exclude_none=True))
    except SaleNotFoundException as e:
        body = PurchaseResponse(success=False, message=e.message)
        return JSONResponse(status_code=e.status_code, content=body.model_dump(by_alias=True, exclude_none=True))


@router.get("/user/{user_id}/purchase/{flash_sale_id}", response_model=UserPurchaseStatus,
            response_model_exclude_none=True)
async def get_user_purchase_status(user_id: str, flash_sale_id: str,
                                   redis: Redis = Depends(get_redis),
                                   db: AsyncSession = Depends(get_db_session)):
    return await flash_sale_service.get_user_purchase_status(user_id, flash_sale_id, redis, db)


@router.get("/purchases/{purchase_id}", response_model=PurchaseRecord)
async def get_purchase(purchase_id: str, db: AsyncSession = Depends(get_db_session)):
    purchase = await flash_sale_service.get_purchase(purchase_id, db)
    return PurchaseRecord.model_validate(purchase)


@router.get("/all", response_model=List[FlashSale])
async def get_all_flash_sales(redis: Redis = Depends(get_redis)):
    return await flash_sale_service.get_all_flash_sales(redis)


@router.get("/latest-active", response_model=FlashSale)
async def get_latest_active_flash_sale(redis: Redis = Depends(get_redis)):
    sale = await flash_sale_service.get_latest_active_flash_sale(redis)
    if sale is None:
        raise FlashSaleException("No active flash sale found", status_code=404)
    return sale


@router.post("/delete", response_model=DeleteFlashSaleResponse)
async def delete_flash_sale(data: DeleteFlashSaleRequest, redis: Redis = Depends(get_redis)):
    if not await flash_sale_service.delete_flash_sale(data.id, redis):
        raise SaleNotFoundException()
    return DeleteFlashSaleResponse(deleted=True, message="Flash sale deleted successfully")


@router.post("/delete-expired", response_model=SweepResponse)
async def delete_expired_flash_sales(redis: Redis = Depends(get_redis)):
    return SweepResponse(deleted=await flash_sale_service.delete_expired_flash_sales(redis))
