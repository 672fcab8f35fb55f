"""Batch entry points for serverless queue triggers.

Each handler receives the platform's batch event (``{"Records": [...]}``),
handles the records in order and raises ``BatchFailedError`` when a message
failed, which tells the platform to redeliver.
"""

import asyncio
import logging
from typing import Any

from fulfillment.schemas.queue import QueueBatch
from fulfillment.services.notifier import EmailNotifier
from fulfillment.services.outcome import BatchResult, MessageHandler, run_batch
from fulfillment.services.processor import OrderProcessor

logger = logging.getLogger(__name__)

order_processor = OrderProcessor()
email_notifier = EmailNotifier()


async def handle_batch(event: dict[str, Any], handler: MessageHandler, name: str) -> BatchResult:
    batch = QueueBatch.model_validate(event)
    logger.info(f"{name} started with {len(batch.records)} message(s)")

    result = await run_batch(batch.records, handler)
    result.raise_for_failure()

    logger.info(f"{name} completed", extra=result.summary())
    return result


def order_processor_handler(event: dict[str, Any], context: Any = None) -> dict[str, int]:
    return asyncio.run(handle_batch(event, order_processor.handle, "OrderProcessor")).summary()


def email_notifier_handler(event: dict[str, Any], context: Any = None) -> dict[str, int]:
    return asyncio.run(handle_batch(event, email_notifier.handle, "EmailNotifier")).summary()
