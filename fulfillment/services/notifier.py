import html
import json
import logging
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from fulfillment.core.config import Settings, settings as default_settings
from fulfillment.core.exceptions import MalformedPayloadError
from fulfillment.schemas.order import EmailContent, OrderCreatedEvent, parse_payload
from fulfillment.schemas.queue import QueueRecord
from fulfillment.services.capabilities import EmailSender, SimulatedEmailSender
from fulfillment.services.outcome import MessageResult, MessageStage

logger = logging.getLogger(__name__)


def unwrap_envelope(body: str, log: Optional[logging.Logger] = None) -> Optional[str]:
    """Extract the published event from a topic envelope.

    A JSON object with a string ``Message`` field yields that string. Anything
    else falls back to the raw body, so unwrapping never fails a message. A
    ``Message`` explicitly set to null yields ``None``.
    """
    log = log or logger
    try:
        envelope = json.loads(body)
    except (ValueError, RecursionError):
        log.warning("Could not parse envelope, using raw message body")
        return body

    if isinstance(envelope, dict) and "Message" in envelope:
        message = envelope["Message"]
        if message is None:
            return None
        if isinstance(message, str):
            log.info("Envelope detected, extracting message")
            return message
        log.warning("Envelope Message is not a string, using raw message body")
        return body

    log.info("Direct message detected")
    return body


def deserialize_event(text: str) -> Optional[OrderCreatedEvent]:
    return parse_payload(text, OrderCreatedEvent)


def _format_amount(amount: Decimal) -> str:
    return str(amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _format_timestamp(timestamp: datetime) -> str:
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(timezone.utc)
    return timestamp.replace(tzinfo=None).isoformat(sep=" ", timespec="seconds")


def render_notification(event: OrderCreatedEvent, config: Optional[Settings] = None) -> EmailContent:
    config = config or default_settings

    lines = [
        "<!DOCTYPE html>",
        "<html>",
        "<head><meta charset='UTF-8'></head>",
        "<body style='font-family: Arial, sans-serif;'>",
        f"  <h2>¡Gracias por tu pedido #{event.order_id}!</h2>",
        "  <p>Hola, hemos recibido tu pedido correctamente.</p>",
        "  <hr>",
        "  <h3>Detalles del Pedido:</h3>",
        "  <table border='1' cellpadding='8' style='border-collapse: collapse;'>",
        "    <tr><th>Campo</th><th>Valor</th></tr>",
        f"    <tr><td>ID Pedido</td><td>{event.order_id}</td></tr>",
        f"    <tr><td>ID Usuario</td><td>{event.user_id}</td></tr>",
        f"    <tr><td>Total</td><td>${_format_amount(event.total_amount)}</td></tr>",
        f"    <tr><td>Fecha</td><td>{_format_timestamp(event.timestamp)} UTC</td></tr>",
        "  </table>",
    ]

    if event.items:
        lines.append("  <h3>Productos:</h3>")
        lines.append("  <ul>")
        for item in event.items:
            lines.append(f"    <li>{html.escape(item.product_name or '')} (x{item.quantity})</li>")
        lines.append("  </ul>")

    lines.extend([
        "  <hr>",
        "  <p style='color: #666; font-size: 12px;'>Este es un email automático, por favor no responder.</p>",
        "</body>",
        "</html>",
    ])

    return EmailContent(
        to=config.email_recipient_template.format(user_id=event.user_id),
        from_=config.email_from,
        subject=f"{config.email_subject} #{event.order_id}",
        html_body="\n".join(lines) + "\n"
    )


class EmailNotifier:
    def __init__(
        self,
        sender: Optional[EmailSender] = None,
        config: Optional[Settings] = None,
        log: Optional[logging.Logger] = None
    ) -> None:
        self.config = config or default_settings
        self.log = log or logger
        self.sender = sender or SimulatedEmailSender(self.config, self.log)

    async def handle(self, record: QueueRecord) -> MessageResult:
        extra = {"message_id": record.message_id}
        stage = MessageStage.RECEIVED
        self.log.info(f"Processing notification {record.message_id}", extra=extra)

        try:
            inner = unwrap_envelope(record.body, self.log)
            if inner is None:
                self.log.warning("Could not extract message from envelope, skipping", extra=extra)
                return MessageResult.skipped(record.message_id, "empty envelope message")

            event = deserialize_event(inner)
            if event is None:
                self.log.warning("Invalid order event, skipping", extra=extra)
                return MessageResult.skipped(record.message_id, "empty payload")
            stage = MessageStage.DESERIALIZED
            extra["order_id"] = event.order_id

            email = render_notification(event, self.config)
            self.log.info(f"Rendered email to {email.to}: '{email.subject}'", extra=extra)

            await self.sender.send(email)
            stage = MessageStage.DISPATCHED
            self.log.info(f"Notification for order {event.order_id} sent", extra=extra)
        except MalformedPayloadError as e:
            self.log.error(f"Error deserializing notification {record.message_id}: {e}", extra=extra)
            return MessageResult.failed(record.message_id, stage, e)
        except Exception as e:
            self.log.error(f"Error processing notification: {e}", exc_info=True, extra=extra)
            return MessageResult.failed(record.message_id, stage, e)

        return MessageResult.handled(record.message_id)
