import json
from typing import List, Optional

import pytest

from fulfillment.core.config import Settings
from fulfillment.schemas.order import EmailContent, OrderMessage
from fulfillment.schemas.queue import QueueRecord


class RecordingFulfillment:
    """Fulfillment backend that records the steps it ran and can fail on one."""

    def __init__(self, fail_on: Optional[str] = None) -> None:
        self.fail_on = fail_on
        self.steps: List[str] = []

    async def _step(self, name: str) -> None:
        self.steps.append(name)
        if name == self.fail_on:
            raise RuntimeError(f"{name} unavailable")

    async def check_inventory(self, order: OrderMessage) -> None:
        await self._step("check_inventory")

    async def reserve_products(self, order: OrderMessage) -> None:
        await self._step("reserve_products")

    async def calculate_shipping(self, order: OrderMessage) -> None:
        await self._step("calculate_shipping")

    async def generate_invoice(self, order: OrderMessage) -> None:
        await self._step("generate_invoice")


class RecordingSender:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.sent: List[EmailContent] = []

    async def send(self, email: EmailContent) -> None:
        if self.error:
            raise self.error
        self.sent.append(email)


def order_body(**overrides) -> str:
    payload = {
        "OrderId": 1,
        "UserId": 1,
        "TotalAmount": 99.99,
        "Items": [{"ProductId": 1, "ProductName": "Widget", "Quantity": 2}],
        "Timestamp": "2026-01-20T10:00:00Z",
    }
    payload.update(overrides)
    return json.dumps(payload)


def make_record(body: str, message_id: str = "msg-1") -> QueueRecord:
    return QueueRecord(message_id=message_id, body=body)


@pytest.fixture
def fast_settings() -> Settings:
    return Settings(
        inventory_check_delay_ms=0,
        reservation_delay_ms=0,
        shipping_delay_ms=0,
        invoice_delay_ms=0,
        email_send_delay_ms=0,
    )


@pytest.fixture
def fulfillment_backend() -> RecordingFulfillment:
    return RecordingFulfillment()


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()
