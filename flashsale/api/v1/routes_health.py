from datetime import datetime, timezone
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from flashsale.redis import get_redis, ping_redis


router = APIRouter()

@router.get("/health", summary="Basic health check endpoint")
async def health_check():
    """
    Liveness only, does not check Redis or the ledger database.
    """
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/health/ready", summary="Readiness check against the sale store")
async def readiness_check(redis: Redis = Depends(get_redis)):
    timestamp = datetime.now(timezone.utc).isoformat()
    if not await ping_redis(redis):
        return JSONResponse(status_code=503, content={"status": "unavailable", "redis": "down", "timestamp": timestamp})
    return {"status": "ok", "redis": "up", "timestamp": timestamp}
