import asyncio
import logging
from typing import Optional, Protocol

from fulfillment.core.config import Settings, settings as default_settings
from fulfillment.schemas.order import EmailContent, OrderMessage

logger = logging.getLogger(__name__)


class InventoryService(Protocol):
    async def check_inventory(self, order: OrderMessage) -> None: ...

    async def reserve_products(self, order: OrderMessage) -> None: ...


class ShippingCalculator(Protocol):
    async def calculate_shipping(self, order: OrderMessage) -> None: ...


class InvoiceService(Protocol):
    async def generate_invoice(self, order: OrderMessage) -> None: ...


class EmailSender(Protocol):
    async def send(self, email: EmailContent) -> None: ...


async def _sleep_ms(delay_ms: int) -> None:
    await asyncio.sleep(delay_ms / 1000)


class SimulatedFulfillment:
    """Stand-in for inventory, shipping and invoicing backends.

    Each step only waits for its configured latency.
    """

    def __init__(self, config: Optional[Settings] = None, log: Optional[logging.Logger] = None) -> None:
        self.config = config or default_settings
        self.log = log or logger

    async def check_inventory(self, order: OrderMessage) -> None:
        await _sleep_ms(self.config.inventory_check_delay_ms)
        self.log.info(f"Inventory checked for order {order.order_id}")

    async def reserve_products(self, order: OrderMessage) -> None:
        await _sleep_ms(self.config.reservation_delay_ms)
        self.log.info(f"Products reserved for order {order.order_id}")

    async def calculate_shipping(self, order: OrderMessage) -> None:
        await _sleep_ms(self.config.shipping_delay_ms)
        self.log.info(f"Shipping calculated for order {order.order_id}")

    async def generate_invoice(self, order: OrderMessage) -> None:
        await _sleep_ms(self.config.invoice_delay_ms)
        self.log.info(f"Invoice generated for order {order.order_id}")


class SimulatedEmailSender:
    def __init__(self, config: Optional[Settings] = None, log: Optional[logging.Logger] = None) -> None:
        self.config = config or default_settings
        self.log = log or logger

    async def send(self, email: EmailContent) -> None:
        self.log.info(f"Sending email to {email.to}")
        await _sleep_ms(self.config.email_send_delay_ms)
        self.log.info(
            f"Simulated email sent from {email.from_} to {email.to}: "
            f"'{email.subject}' ({len(email.html_body)} chars)"
        )
