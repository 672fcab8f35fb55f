import json
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError, field_validator, model_validator

from fulfillment.core.exceptions import MalformedPayloadError


def _normalize_key(key: str) -> str:
    return key.replace("_", "").lower()


class LenientModel(BaseModel):
    """Matches incoming keys to fields regardless of casing.

    ``OrderId``, ``orderId`` and ``order_id`` all populate ``order_id``.
    Unknown keys are dropped, missing keys fall back to field defaults. When a
    key appears under several casings the last one wins.
    """

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def match_field_names(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        fields = {_normalize_key(name): name for name in cls.model_fields}
        matched: dict[str, Any] = {}
        for key, value in data.items():
            if not isinstance(key, str):
                continue
            name = fields.get(_normalize_key(key))
            if name is not None:
                matched[name] = value
        return matched


class OrderItem(LenientModel):
    product_id: StrictInt = 0
    product_name: Optional[StrictStr] = ""
    quantity: StrictInt = 0


class OrderPayload(LenientModel):
    order_id: StrictInt = 0
    user_id: StrictInt = 0
    total_amount: Decimal = Decimal("0")
    items: Optional[List[OrderItem]] = None
    timestamp: datetime = datetime.min

    @field_validator("total_amount", mode="before")
    @classmethod
    def require_json_number(cls, v: Any) -> Any:
        if isinstance(v, bool) or not isinstance(v, (int, Decimal)):
            raise ValueError("TotalAmount must be a JSON number")
        return v

    @field_validator("timestamp", mode="before")
    @classmethod
    def require_date_string(cls, v: Any) -> Any:
        if not isinstance(v, (str, datetime)):
            raise ValueError("Timestamp must be an ISO-8601 string")
        return v


class OrderMessage(OrderPayload):
    """Incoming order request read from the order processing queue."""


class OrderCreatedEvent(OrderPayload):
    """Order that was accepted upstream and fanned out to notification consumers."""


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    error_message: str = ""

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls(is_valid=True)

    @classmethod
    def fail(cls, error_message: str) -> "ValidationResult":
        return cls(is_valid=False, error_message=error_message)


class EmailContent(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    to: str
    from_: str = Field(alias="from")
    subject: str
    html_body: str


PayloadT = TypeVar("PayloadT", bound=OrderPayload)


def parse_payload(body: str, model: Type[PayloadT]) -> Optional[PayloadT]:
    """Parse a JSON body into ``model``.

    Returns ``None`` when the body is the JSON literal ``null``. Unparsable
    text, non-object documents and wrongly typed fields raise
    ``MalformedPayloadError``.
    """
    try:
        data = json.loads(body, parse_float=Decimal)
    except (TypeError, ValueError, RecursionError) as e:
        raise MalformedPayloadError(f"Invalid JSON: {e}") from e

    if data is None:
        return None

    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise MalformedPayloadError(f"Invalid {model.__name__} payload: {e}") from e
