import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Iterable, List, Optional

from fulfillment.core.exceptions import BatchFailedError
from fulfillment.schemas.queue import QueueRecord

logger = logging.getLogger(__name__)


class OutcomeStatus(str, Enum):
    HANDLED = "handled"
    SKIPPED = "skipped"
    FAILED = "failed"


class MessageStage(str, Enum):
    RECEIVED = "received"
    DESERIALIZED = "deserialized"
    VALIDATED = "validated"
    REJECTED = "rejected"
    PROCESSED = "processed"
    DISPATCHED = "dispatched"
    DONE = "done"


@dataclass(frozen=True)
class MessageResult:
    """Outcome of handling one message.

    ``stage`` is the last stage the message reached. For failures it is the
    stage that was in progress when the error was raised.
    """

    message_id: str
    status: OutcomeStatus
    stage: MessageStage
    reason: str = ""
    error: Optional[BaseException] = None

    @classmethod
    def handled(cls, message_id: str, stage: MessageStage = MessageStage.DONE, reason: str = "") -> "MessageResult":
        return cls(message_id, OutcomeStatus.HANDLED, stage, reason)

    @classmethod
    def skipped(cls, message_id: str, reason: str) -> "MessageResult":
        return cls(message_id, OutcomeStatus.SKIPPED, MessageStage.DONE, reason)

    @classmethod
    def failed(cls, message_id: str, stage: MessageStage, error: BaseException) -> "MessageResult":
        return cls(message_id, OutcomeStatus.FAILED, stage, f"{type(error).__name__}: {error}", error)


@dataclass
class BatchResult:
    results: List[MessageResult] = field(default_factory=list)

    @property
    def failure(self) -> Optional[MessageResult]:
        for result in self.results:
            if result.status == OutcomeStatus.FAILED:
                return result
        return None

    @property
    def failed(self) -> bool:
        return self.failure is not None

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for result in self.results if result.status == status)

    def summary(self) -> dict[str, int]:
        return {
            "attempted": len(self.results),
            **{status.value: self.count(status) for status in OutcomeStatus},
        }

    def raise_for_failure(self) -> None:
        failure = self.failure
        if failure is not None:
            raise BatchFailedError(failure.message_id, failure.error) from failure.error


MessageHandler = Callable[[QueueRecord], Awaitable[MessageResult]]


async def run_batch(records: Iterable[QueueRecord], handler: MessageHandler) -> BatchResult:
    """Handle records one at a time in delivery order.

    Stops at the first failed message; later records are left for the
    platform to redeliver.
    """
    batch = BatchResult()
    for record in records:
        result = await handler(record)
        batch.results.append(result)
        if result.status == OutcomeStatus.FAILED:
            logger.error(
                f"Message {record.message_id} failed, aborting remaining messages in batch",
                extra={"message_id": record.message_id}
            )
            break
    return batch
