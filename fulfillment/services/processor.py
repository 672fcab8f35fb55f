import logging
from typing import Optional

from fulfillment.core.exceptions import MalformedPayloadError
from fulfillment.schemas.order import OrderMessage, parse_payload
from fulfillment.schemas.queue import QueueRecord
from fulfillment.services.capabilities import (
    InventoryService,
    InvoiceService,
    ShippingCalculator,
    SimulatedFulfillment,
)
from fulfillment.services.outcome import MessageResult, MessageStage
from fulfillment.services.validator import validate_order

logger = logging.getLogger(__name__)


def deserialize_order(body: str) -> Optional[OrderMessage]:
    return parse_payload(body, OrderMessage)


class OrderProcessor:
    def __init__(
        self,
        inventory: Optional[InventoryService] = None,
        shipping: Optional[ShippingCalculator] = None,
        invoicing: Optional[InvoiceService] = None,
        log: Optional[logging.Logger] = None
    ) -> None:
        self.log = log or logger
        simulated = SimulatedFulfillment(log=self.log)
        self.inventory = inventory or simulated
        self.shipping = shipping or simulated
        self.invoicing = invoicing or simulated

    async def handle(self, record: QueueRecord) -> MessageResult:
        extra = {"message_id": record.message_id}
        stage = MessageStage.RECEIVED
        self.log.info(f"Processing message {record.message_id}", extra=extra)

        try:
            order = deserialize_order(record.body)
            if order is None:
                self.log.warning(f"Message {record.message_id} has an empty payload, skipping", extra=extra)
                return MessageResult.skipped(record.message_id, "empty payload")
            stage = MessageStage.DESERIALIZED
            extra["order_id"] = order.order_id

            validation = validate_order(order)
            if not validation.is_valid:
                self.log.error(f"Order validation failed: {validation.error_message}", extra=extra)
                return MessageResult.handled(record.message_id, MessageStage.REJECTED, validation.error_message)
            stage = MessageStage.VALIDATED

            self.log.info(
                f"Order {order.order_id} for user {order.user_id}: total {order.total_amount:.2f}, "
                f"{len(order.items)} item(s), placed at {order.timestamp.isoformat()}",
                extra=extra
            )
            await self.process_order(order)
            stage = MessageStage.PROCESSED
            self.log.info(f"Order {order.order_id} processed successfully", extra=extra)
        except MalformedPayloadError as e:
            self.log.error(f"Error deserializing message {record.message_id}: {e}", extra=extra)
            return MessageResult.failed(record.message_id, stage, e)
        except Exception as e:
            self.log.error(f"Error processing order: {e}", exc_info=True, extra=extra)
            return MessageResult.failed(record.message_id, stage, e)

        return MessageResult.handled(record.message_id)

    async def process_order(self, order: OrderMessage) -> None:
        await self.inventory.check_inventory(order)
        await self.inventory.reserve_products(order)
        await self.shipping.calculate_shipping(order)
        await self.invoicing.generate_invoice(order)
