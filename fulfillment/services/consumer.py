import logging
from typing import Optional

from aio_pika import connect_robust, ExchangeType
from aio_pika.abc import AbstractIncomingMessage, AbstractRobustConnection

from fulfillment.core.config import settings
from fulfillment.schemas.queue import QueueRecord
from fulfillment.services.notifier import EmailNotifier
from fulfillment.services.outcome import MessageHandler, run_batch
from fulfillment.services.processor import OrderProcessor

logger = logging.getLogger(__name__)


class QueueConsumer:
    """Feeds RabbitMQ deliveries to a message handler as one-record batches.

    Failed messages are rejected without requeue so the dead-letter exchange
    applies the redrive policy.
    """

    def __init__(self, queue_name: str, handler: MessageHandler, source_exchange: Optional[str] = None) -> None:
        self.queue_name = queue_name
        self.handler = handler
        self.source_exchange = source_exchange
        self.connection: AbstractRobustConnection | None = None

    @property
    def is_connected(self) -> bool:
        return self.connection is not None and not self.connection.is_closed

    async def start(self) -> None:
        self.connection = await connect_robust(settings.rabbitmq_url)
        channel = await self.connection.channel()
        await channel.set_qos(prefetch_count=settings.rabbitmq_prefetch_count)

        dlx = await channel.declare_exchange("fulfillment.dlx", ExchangeType.DIRECT, durable=True)

        dlq = await channel.declare_queue(f"{self.queue_name}.failed", durable=True)
        await dlq.bind(dlx, routing_key=f"{self.queue_name}.failed")

        queue = await channel.declare_queue(
            self.queue_name,
            durable=True,
            arguments={
                "x-dead-letter-exchange": "fulfillment.dlx",
                "x-dead-letter-routing-key": f"{self.queue_name}.failed"
            }
        )

        if self.source_exchange:
            exchange = await channel.declare_exchange(self.source_exchange, ExchangeType.FANOUT, durable=True)
            await queue.bind(exchange)

        await queue.consume(self._process_message)
        logger.info(f"Started consuming {self.queue_name}")

    async def _process_message(self, message: AbstractIncomingMessage) -> None:
        message_id = message.message_id or str(message.delivery_tag)
        try:
            body = message.body.decode()
        except UnicodeDecodeError as e:
            logger.error(f"Message {message_id} is not valid UTF-8: {e}", extra={"message_id": message_id})
            await message.reject(requeue=False)
            return

        batch = await run_batch([QueueRecord(message_id=message_id, body=body)], self.handler)

        if batch.failed:
            await message.reject(requeue=False)
            logger.warning(f"Rejected message {message_id} from {self.queue_name}", extra={"message_id": message_id})
        else:
            await message.ack()

    async def stop(self) -> None:
        if self.connection:
            await self.connection.close()
            logger.info(f"Stopped consuming {self.queue_name}")


order_consumer = QueueConsumer(settings.order_processing_queue, OrderProcessor().handle)
notification_consumer = QueueConsumer(
    settings.email_notifications_queue,
    EmailNotifier().handle,
    source_exchange=settings.order_created_exchange
)
