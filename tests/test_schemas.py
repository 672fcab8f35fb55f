from datetime import datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from fulfillment.core.exceptions import MalformedPayloadError
from fulfillment.schemas.order import OrderCreatedEvent, OrderMessage, parse_payload
from fulfillment.schemas.queue import QueueBatch

from conftest import order_body


def test_parse_order_pascal_case():
    order = parse_payload(order_body(), OrderMessage)

    assert order.order_id == 1
    assert order.user_id == 1
    assert order.total_amount == Decimal("99.99")
    assert len(order.items) == 1
    assert order.items[0].product_name == "Widget"
    assert order.items[0].quantity == 2
    assert order.timestamp == datetime(2026, 1, 20, 10, 0, tzinfo=timezone.utc)


def test_parse_order_field_names_are_case_insensitive():
    body = '{"orderId": 3, "USERID": 4, "total_amount": 5, "items": [{"productId": 9, "quantity": 1}]}'
    order = parse_payload(body, OrderMessage)

    assert order.order_id == 3
    assert order.user_id == 4
    assert order.total_amount == Decimal("5")
    assert order.items[0].product_id == 9
    assert order.items[0].product_name == ""


def test_parse_missing_fields_use_defaults():
    order = parse_payload("{}", OrderMessage)

    assert order.order_id == 0
    assert order.user_id == 0
    assert order.total_amount == Decimal("0")
    assert order.items is None
    assert order.timestamp == datetime.min


def test_parse_null_returns_none():
    assert parse_payload("null", OrderMessage) is None
    assert parse_payload("  null ", OrderCreatedEvent) is None


@pytest.mark.parametrize("body", [
    "not json",
    "",
    "[1, 2, 3]",
    '"just a string"',
    '{"OrderId": "abc"}',
    '{"Items": [null]}',
    '{"TotalAmount": 1.5, "OrderId": 2.5}',
    '{"OrderId": true, "UserId": true, "TotalAmount": 10}',
    '{"OrderId": "5"}',
    '{"TotalAmount": "10"}',
    '{"TotalAmount": true}',
    '{"Timestamp": 1700000000}',
    '{"Items": [{"ProductId": 1, "Quantity": "2"}]}',
    '{"Items": [{"ProductName": 42}]}',
    pytest.param('[' * 100000 + ']' * 100000, id="deeply-nested"),
])
def test_parse_malformed_raises(body):
    with pytest.raises(MalformedPayloadError):
        parse_payload(body, OrderMessage)


def test_total_amount_keeps_decimal_precision():
    order = parse_payload('{"TotalAmount": 0.1}', OrderMessage)
    assert order.total_amount == Decimal("0.1")


def test_order_message_is_immutable():
    order = parse_payload(order_body(), OrderMessage)
    with pytest.raises(ValidationError):
        order.order_id = 2


def test_event_and_message_are_distinct_types():
    event = parse_payload(order_body(), OrderCreatedEvent)
    assert isinstance(event, OrderCreatedEvent)
    assert not isinstance(event, OrderMessage)


def test_queue_batch_from_platform_event():
    batch = QueueBatch.model_validate({
        "Records": [
            {"messageId": "a", "body": "{}", "receiptHandle": "r", "attributes": {}},
            {"messageId": "b", "body": "null"},
        ]
    })

    assert [record.message_id for record in batch.records] == ["a", "b"]
    assert batch.records[1].body == "null"


def test_last_key_wins_across_casings():
    order = parse_payload('{"OrderId": 1, "orderId": 2, "order_id": 3, "USERID": 4, "userId": 5}', OrderMessage)

    assert order.order_id == 3
    assert order.user_id == 5


def test_boolean_order_is_not_processed_as_valid():
    body = order_body(OrderId=True, UserId=True)

    with pytest.raises(MalformedPayloadError):
        parse_payload(body, OrderMessage)
