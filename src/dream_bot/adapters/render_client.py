"""Easy Diffusion render backend client."""

import asyncio
import base64
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import httpx
from pydantic import ValidationError

from dream_bot.domain.backend import (
    Failed,
    JobHandle,
    LoadingModel,
    Pending,
    PollState,
    RenderAccepted,
    RenderStatus,
    Stepping,
    StepUpdate,
    Succeeded,
)
from dream_bot.domain.render import RenderRequest
from dream_bot.errors import RenderFailure, RenderTimeout, SubmissionError
from dream_bot.services.requests import submission_negative_prompt

_logger = logging.getLogger(__name__)

ProgressCallback = Callable[[PollState], None]


class RenderClient(Protocol):
    """Interface for submitting jobs to the render backend and awaiting them."""

    async def submit(self, request: RenderRequest) -> JobHandle:
        """Submit a request and return a handle to the accepted job."""

    async def await_completion(
        self,
        handle: JobHandle,
        on_progress: ProgressCallback | None = None,
        timeout: float | None = None,
    ) -> list[str]:
        """Poll the job until it finishes and return its base64 images."""


@dataclass
class HttpxRenderClient(RenderClient):
    """Render client implemented with httpx."""

    base_url: str
    http_client: httpx.AsyncClient
    poll_interval: float = 0.1
    max_poll_errors: int = 5

    @classmethod
    def create(
        cls, base_url: str, poll_interval: float = 0.1, max_poll_errors: int = 5
    ) -> "HttpxRenderClient":
        """Create a render client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            poll_interval=poll_interval,
            max_poll_errors=max_poll_errors,
        )

    async def submit(self, request: RenderRequest) -> JobHandle:
        """POST the request to ``/render``."""
        body = request.to_payload()
        body["negative_prompt"] = submission_negative_prompt(request)
        if request.control_image_url:
            control_image = await self._fetch_data_url(request.control_image_url)
            if control_image is not None:
                body["control_image"] = control_image

        try:
            response = await self.http_client.post(
                f"{self.base_url}/render", json=body, timeout=30
            )
        except httpx.HTTPError as exc:
            raise SubmissionError(f"Render backend unreachable: {exc}") from exc

        payload = _json_or_none(response)
        if isinstance(payload, dict) and payload.get("detail"):
            raise SubmissionError(str(payload["detail"]))
        if response.is_error:
            raise SubmissionError(
                f"Render backend returned HTTP {response.status_code}"
            )
        try:
            accepted = RenderAccepted.model_validate(payload)
        except ValidationError as exc:
            raise SubmissionError("Render backend sent an unexpected reply") from exc

        _logger.info(
            "Render accepted: task=%s queue=%s status=%s",
            accepted.task,
            accepted.queue,
            accepted.status,
        )
        return JobHandle(
            task=accepted.task,
            stream=accepted.stream,
            queue=accepted.queue,
            status=accepted.status,
        )

    async def await_completion(
        self,
        handle: JobHandle,
        on_progress: ProgressCallback | None = None,
        timeout: float | None = None,
    ) -> list[str]:
        """Poll the job's stream until it succeeds, fails or times out."""
        try:
            async with asyncio.timeout(timeout):
                return await self._poll(handle, on_progress)
        except TimeoutError as exc:
            raise RenderTimeout(f"no result after {timeout}s") from exc

    async def _poll(
        self, handle: JobHandle, on_progress: ProgressCallback | None
    ) -> list[str]:
        state: PollState = Pending()
        if handle.status == "LoadingModel":
            state = LoadingModel()
        _notify(on_progress, state)
        errors = 0
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                response = await self.http_client.get(
                    f"{self.base_url}{handle.stream}", timeout=10
                )
                if response.is_server_error:
                    response.raise_for_status()
            except httpx.HTTPError as exc:
                errors += 1
                _logger.warning(
                    "Render poll failed (%s/%s): %s", errors, self.max_poll_errors, exc
                )
                if errors >= self.max_poll_errors:
                    raise RenderFailure("lost contact with the render backend") from exc
                continue
            errors = 0

            state = _read_state(_json_or_none(response), state)
            if isinstance(state, Succeeded):
                _logger.info(
                    "Render finished: task=%s images=%s",
                    handle.task,
                    len(state.outputs),
                )
                return state.outputs
            if isinstance(state, Failed):
                _logger.warning(
                    "Render failed: task=%s reason=%s", handle.task, state.reason
                )
                raise RenderFailure(state.reason)
            if isinstance(state, Stepping):
                _logger.debug("Step %s/%s", state.step + 1, state.total_steps)
            _notify(on_progress, state)

    async def _fetch_data_url(self, url: str) -> str | None:
        """Download an image and encode it as a data URL, or None on failure."""
        try:
            response = await self.http_client.get(url, timeout=15)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            _logger.warning("Skipping control image %s: %s", url, exc)
            return None
        content_type = response.headers.get("content-type", "image/png")
        encoded = base64.b64encode(response.content).decode("utf-8")
        return f"data:{content_type};base64,{encoded}"

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _json_or_none(response: httpx.Response) -> object | None:
    """Decode a JSON body, treating empty or partial bodies as absent.

    A body cut inside a multibyte character fails to decode rather than to
    parse; both are ``ValueError``.
    """
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def _read_state(body: object | None, previous: PollState) -> PollState:
    """Interpret one stream body as the next poll state."""
    if not isinstance(body, dict):
        return previous
    if "step" in body:
        try:
            update = StepUpdate.model_validate(body)
        except ValidationError:
            return previous
        return Stepping(step=update.step, total_steps=update.total_steps)
    if "status" not in body:
        return previous
    try:
        status = RenderStatus.model_validate(body)
    except ValidationError:
        return previous
    if status.status == "succeeded":
        return Succeeded(outputs=[output.payload() for output in status.output])
    if status.status == "failed":
        return Failed(reason=status.detail)
    if status.status == "LoadingModel":
        return LoadingModel()
    return previous


def _notify(on_progress: ProgressCallback | None, state: PollState) -> None:
    if on_progress is not None:
        on_progress(state)
