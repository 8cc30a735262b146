"""FIFO admission gate for the single-worker render backend."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime

from dream_bot.errors import RequestValidationError

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueueEntry:
    """A caller waiting for, or holding, the render slot."""

    caller_id: str
    enqueued_at: datetime


@dataclass(frozen=True)
class Ticket:
    """Receipt returned by ``enqueue``."""

    entry: QueueEntry
    ahead: int

    @property
    def caller_id(self) -> str:
        return self.entry.caller_id

    @property
    def was_queued(self) -> bool:
        """True when someone else held or awaited the slot at enqueue time."""
        return self.ahead > 0


class AdmissionQueue:
    """Lets exactly one caller at a time through, in enqueue order.

    All membership changes and turn checks happen under one condition
    variable. Waiters sleep on the condition and are woken by ``release``.
    """

    def __init__(self) -> None:
        self._entries: dict[str, QueueEntry] = {}
        self._condition = asyncio.Condition()

    def __len__(self) -> int:
        return len(self._entries)

    def position(self, caller_id: str) -> int | None:
        """Return the zero-based position of a live caller, if any."""
        for index, entry_id in enumerate(self._entries):
            if entry_id == caller_id:
                return index
        return None

    async def enqueue(self, caller_id: str, exclusive: bool = False) -> Ticket:
        """Append a caller; enqueueing a live caller again keeps its place.

        With ``exclusive`` a caller that is already live is rejected instead.
        """
        async with self._condition:
            entry = self._entries.get(caller_id)
            if entry is not None and exclusive:
                raise RequestValidationError(
                    "This request is already queued or rendering."
                )
            if entry is None:
                entry = QueueEntry(
                    caller_id=caller_id, enqueued_at=datetime.now(tz=UTC)
                )
                self._entries[caller_id] = entry
            ahead = list(self._entries).index(caller_id)
        _logger.info("Queue enqueue: caller=%s ahead=%s", caller_id, ahead)
        return Ticket(entry=entry, ahead=ahead)

    async def await_turn(self, ticket: Ticket) -> None:
        """Suspend until the ticket's caller is the oldest live entry."""
        caller_id = ticket.caller_id
        async with self._condition:
            await self._condition.wait_for(lambda: self._is_head_or_gone(caller_id))
            if caller_id not in self._entries:
                raise LookupError(f"Caller {caller_id} is not queued")

    async def release(self, caller_id: str) -> None:
        """Remove a caller and wake waiters. Unknown ids are ignored."""
        async with self._condition:
            if self._entries.pop(caller_id, None) is None:
                return
            self._condition.notify_all()
        _logger.info("Queue release: caller=%s remaining=%s", caller_id, len(self))

    @asynccontextmanager
    async def turn(self, caller_id: str) -> AsyncIterator[Ticket]:
        """Enqueue a new caller and release it on every exit path.

        A caller id that is already live raises ``RequestValidationError``.
        The ticket is yielded before waiting so the caller can report that it
        was queued; call ``await_turn`` with it before touching the backend.
        """
        ticket = await self.enqueue(caller_id, exclusive=True)
        try:
            yield ticket
        finally:
            await self.release(caller_id)

    def _is_head_or_gone(self, caller_id: str) -> bool:
        if caller_id not in self._entries:
            return True
        return next(iter(self._entries)) == caller_id
