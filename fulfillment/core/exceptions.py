class MalformedPayloadError(ValueError):
    """Message body could not be parsed into the expected shape."""


class BatchFailedError(RuntimeError):
    """Raised to the host when a batch stopped on a failed message."""

    def __init__(self, message_id: str, error: BaseException | None) -> None:
        self.message_id = message_id
        self.error = error
        super().__init__(f"Message {message_id} failed: {error}")
