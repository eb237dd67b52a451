"""Job status models for the market cap scheduler."""

from datetime import UTC, datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class JobState(str, Enum):
    """Lifecycle of one update cycle."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class TokenUpdateError(BaseModel):
    """A token that could not be reconciled in a cycle."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    token_address: str
    error: str


class JobStatus(BaseModel):
    """Status of the most recent update cycle.

    Serialized with camelCase keys for the HTTP API
    (`tokensProcessed`, `startTime`, ...).
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: UUID = Field(default_factory=uuid4)
    status: JobState = JobState.RUNNING
    start_time: datetime = Field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    tokens_processed: int = 0
    tokens_updated: int = 0
    errors: list[TokenUpdateError] = Field(default_factory=list)
    error: str | None = None
