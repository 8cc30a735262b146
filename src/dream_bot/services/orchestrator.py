"""Render job orchestration: validate, queue, render, record."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Protocol
from uuid import uuid4

from dream_bot.adapters.render_client import RenderClient
from dream_bot.domain.render import ASPECT_RATIOS, RenderRequest
from dream_bot.errors import (
    DreamBotError,
    RenderFailure,
    RenderTimeout,
    RequestValidationError,
    SubmissionError,
)
from dream_bot.services.queue import AdmissionQueue
from dream_bot.services.requests import RequestBuilder
from dream_bot.services.sessions import SessionService

_logger = logging.getLogger(__name__)


class JobState(Enum):
    """Lifecycle of a single render job."""

    CREATED = "created"
    QUEUED = "queued"
    RENDERING = "rendering"
    SUCCEEDED = "succeeded"
    SUBMISSION_FAILED = "submission_failed"
    RENDER_FAILED = "render_failed"
    TIMED_OUT = "timed_out"


class JobObserver(Protocol):
    """Receives job state transitions."""

    async def on_state(self, state: JobState) -> None:
        """Handle a state transition."""


@dataclass(frozen=True)
class RenderResult:
    """Images produced by a finished job."""

    job_id: str
    request: RenderRequest
    images: list[str]


@dataclass
class JobOrchestrator:
    """Runs render jobs one at a time against the backend."""

    builder: RequestBuilder
    queue: AdmissionQueue
    client: RenderClient
    session_service: SessionService | None = None
    timeout: float | None = None

    async def run(  # noqa: PLR0913
        self,
        overrides: Mapping[str, object],
        ratio: str | None,
        caller_id: str,
        *,
        base: RenderRequest | None = None,
        observer: JobObserver | None = None,
        timeout: float | None = None,
    ) -> RenderResult:
        """Validate, wait for the backend slot, render and record a job.

        ``ratio`` of None keeps the geometry of ``base`` (or the defaults).
        """
        values = dict(overrides)
        if ratio is not None:
            values.update(_aspect_overrides(ratio, values))
        _check_control_net(values)
        request = self.builder.build(values, base=base)
        await _emit(observer, JobState.CREATED)

        async with self.queue.turn(caller_id) as ticket:
            if ticket.was_queued:
                await _emit(observer, JobState.QUEUED)
            await self.queue.await_turn(ticket)

            await _emit(observer, JobState.RENDERING)
            _logger.info(
                "Rendering: caller=%s seed=%s outputs=%s",
                caller_id,
                request.seed,
                request.num_outputs,
            )
            try:
                handle = await self.client.submit(request)
                images = await self.client.await_completion(
                    handle, timeout=timeout if timeout is not None else self.timeout
                )
            except DreamBotError as exc:
                _logger.warning(
                    "Render %s: caller=%s error=%s",
                    terminal_state(exc).value,
                    caller_id,
                    exc,
                )
                raise
        if not images:
            raise RenderFailure("backend returned no images")

        job_id = uuid4().hex
        self._record(job_id, request)
        await _emit(observer, JobState.SUCCEEDED)
        return RenderResult(job_id=job_id, request=request, images=images)

    async def follow_up(
        self,
        job_id: str,
        overrides: Mapping[str, object],
        caller_id: str,
        observer: JobObserver | None = None,
    ) -> RenderResult:
        """Re-render a recorded job with a few fields changed."""
        if self.session_service is None:
            raise RuntimeError("Follow-ups need a session service")
        base = self.session_service.recall(job_id)
        return await self.run(overrides, None, caller_id, base=base, observer=observer)

    def _record(self, job_id: str, request: RenderRequest) -> None:
        if self.session_service is None:
            return
        try:
            self.session_service.save(job_id, request)
        except Exception:
            _logger.exception("Failed to save session", extra={"job_id": job_id})


def _aspect_overrides(ratio: str, values: Mapping[str, object]) -> dict[str, object]:
    """Return the geometry for a ratio, rejecting counts it cannot hold."""
    profile = ASPECT_RATIOS.get(ratio)
    if profile is None:
        choices = ", ".join(ASPECT_RATIOS)
        raise RequestValidationError(
            f"Unknown aspect ratio `{ratio}`, choose one of {choices}."
        )
    count = int(values.get("num_outputs", 1))  # type: ignore[call-overload]
    if count > profile.max_count:
        raise RequestValidationError(
            f"This aspect ratio only allows a max of `{profile.max_count}` images "
            f"at a time, you selected `{count}`. Please retry with a lower count."
        )
    return {"width": profile.width, "height": profile.height, "num_outputs": count}


def _check_control_net(values: Mapping[str, object]) -> None:
    model = values.get("use_controlnet_model")
    url = values.get("control_image_url")
    if model and not url:
        raise RequestValidationError("You forgot to provide a control net URL.")
    if url and not model:
        raise RequestValidationError("You forgot to select a control net.")


async def _emit(observer: JobObserver | None, state: JobState) -> None:
    if observer is not None:
        await observer.on_state(state)


def terminal_state(error: Exception) -> JobState:
    """Map a render error to the job state it ends in."""
    if isinstance(error, SubmissionError):
        return JobState.SUBMISSION_FAILED
    if isinstance(error, RenderTimeout):
        return JobState.TIMED_OUT
    return JobState.RENDER_FAILED
