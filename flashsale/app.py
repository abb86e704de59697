import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from flashsale.api.v1 import routes_flash_sale, routes_health
from flashsale.core.config import settings
from flashsale.core.logging import setup_logging
from flashsale.db import session
from flashsale.exception import FlashSaleException
from flashsale.redis import close_redis, redis_client
from flashsale.scripts.seed_data import seed_sample_sale
from flashsale.workers.expiry_sweeper import expiry_sweeper

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL)
    if settings.ENV == 'development':
        await session.init_db()
        if settings.SEED_SAMPLE_SALE:
            await seed_sample_sale(redis_client)

    sweeper = None
    if settings.EXPIRY_SWEEP_INTERVAL_SECONDS > 0:
        sweeper = asyncio.create_task(expiry_sweeper(settings.EXPIRY_SWEEP_INTERVAL_SECONDS, redis_client))
    yield
    if sweeper is not None:
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper
    await close_redis()
    await session.close_db()


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, ex: RequestValidationError):
        details = [{"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in ex.errors()]
        return JSONResponse(status_code=400, content={"error": "Invalid request", "details": details})

    @app.exception_handler(FlashSaleException)
    async def flash_sale_error_handler(request: Request, ex: FlashSaleException):
        if ex.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {ex.message}")
        return JSONResponse(status_code=ex.status_code, content={"error": ex.message})

    @app.exception_handler(RedisError)
    @app.exception_handler(SQLAlchemyError)
    async def store_error_handler(request: Request, ex: Exception):
        logger.error(f"{request.method} {request.url.path} store failure", exc_info=ex)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app():
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.PROJECT_VERSION,
        description=settings.PROJECT_DESCRIPTION,
        lifespan=lifespan
    )

    app.include_router(
        routes_health.router,
        prefix="/api/v1"
    )

    app.include_router(
        routes_flash_sale.router,
        prefix="/api/v1"
    )

    register_exception_handlers(app)

    @app.get("/")
    def root():
        return {"message": "Flash sale api backend"}
    return app


app = create_app()
