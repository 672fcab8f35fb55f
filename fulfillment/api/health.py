from fastapi import APIRouter

from fulfillment.core.config import settings
from fulfillment.services.consumer import notification_consumer, order_consumer

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, str | dict[str, str]]:
    health = {"status": "healthy", "checks": {}}

    if not settings.consumers_enabled:
        health["checks"]["consumers"] = "disabled"
        return health

    for consumer in (order_consumer, notification_consumer):
        if consumer.is_connected:
            health["checks"][consumer.queue_name] = "healthy"
        else:
            health["checks"][consumer.queue_name] = "unhealthy: not connected"
            health["status"] = "unhealthy"

    return health
