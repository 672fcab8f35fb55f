import asyncio
from contextlib import asynccontextmanager
from fastapi import FastAPI

from fulfillment.core.config import settings
from fulfillment.core.logging import setup_logging
from fulfillment.api.health import router as health_router
from fulfillment.services.consumer import notification_consumer, order_consumer


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()

    if settings.consumers_enabled:
        asyncio.create_task(order_consumer.start())
        asyncio.create_task(notification_consumer.start())

    yield

    if settings.consumers_enabled:
        await order_consumer.stop()
        await notification_consumer.stop()


app = FastAPI(
    title="Order Fulfillment",
    description="Order processing and confirmation email consumers",
    version="0.1.0",
    lifespan=lifespan
)

app.include_router(health_router)
