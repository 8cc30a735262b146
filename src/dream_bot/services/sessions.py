"""Session records for follow-up renders."""

import logging
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from dream_bot.domain.render import RenderRequest
from dream_bot.domain.sessions import SessionRecord
from dream_bot.errors import SessionNotFoundError

_logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Interface for the external ingest/query store."""

    def ingest(self, collection: str, events: list[dict[str, object]]) -> None:
        """Buffer events for a collection."""

    def flush(self) -> None:
        """Persist every buffered event."""

    def query(self, collection: str, record_id: str) -> list[dict[str, object]]:
        """Return the events stored under an id."""


@dataclass
class SessionService:
    """Persists finished requests and reconstructs them for follow-ups."""

    store: SessionStore
    collection: str = "sd-bot"

    def save(self, job_id: str, request: RenderRequest) -> SessionRecord:
        """Persist the request that produced a job and wait until it is durable."""
        record = SessionRecord(
            job_id=job_id,
            request=request.to_payload(),
            control_net_url=request.control_image_url,
        )
        self.store.ingest(
            self.collection,
            [{"id": job_id, "data": record.model_dump(mode="json")}],
        )
        self.store.flush()
        _logger.info("Session saved: job_id=%s", job_id)
        return record

    def recall(self, job_id: str) -> RenderRequest:
        """Return the request stored for a job."""
        rows = self.store.query(self.collection, job_id)
        if not rows:
            raise SessionNotFoundError()
        try:
            record = SessionRecord.model_validate(rows[0].get("data"))
            return RenderRequest.from_payload(
                record.request, control_image_url=record.control_net_url
            )
        except (ValidationError, TypeError) as exc:
            _logger.warning("Session unreadable: job_id=%s error=%s", job_id, exc)
            raise SessionNotFoundError() from exc
