from typing import List
from pydantic import BaseModel, ConfigDict, Field


class QueueRecord(BaseModel):
    """Single delivered message. Platform attributes beyond id and body are ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    message_id: str = Field(alias="messageId")
    body: str


class QueueBatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    records: List[QueueRecord] = Field(default_factory=list, alias="Records")
