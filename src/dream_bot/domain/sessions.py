"""Domain models for persisted render sessions."""

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

SESSION_SCHEMA_VERSION = 1


class SessionRecord(BaseModel):
    """Persisted pairing of a finished job with the request that produced it."""

    schema_version: Literal[1] = SESSION_SCHEMA_VERSION
    job_id: str
    request: dict[str, Any]
    control_net_url: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))
