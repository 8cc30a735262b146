"""Telegram-facing render flows for /dream and its follow-up buttons."""

import base64
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from dream_bot.adapters.telegram_client import TelegramClient
from dream_bot.domain.render import ASPECT_RATIOS, FACE_CORRECTION_MODELS, RenderRequest
from dream_bot.errors import DreamBotError, RenderFailure, RequestValidationError
from dream_bot.services.commands import parse_dream_command
from dream_bot.services.orchestrator import (
    JobObserver,
    JobOrchestrator,
    JobState,
    RenderResult,
)

_logger = logging.getLogger(__name__)

_STATUS_TEXT = {
    JobState.QUEUED: "Queued, please wait...",
    JobState.RENDERING: "Rendering image...",
}

FOLLOW_UPS: dict[str, tuple[dict[str, object], str]] = {
    "new_seed": ({"seed": None}, "{mention} your image is ready!"),
    "faces_on": (
        {"use_face_correction": FACE_CORRECTION_MODELS[0]},
        "{mention} finished running face fix on your image!",
    ),
    "faces_off": ({"use_face_correction": None}, "{mention} your image is ready!"),
    "upscale_2": ({"upscale_amount": 2}, "{mention} your image has been upscaled x2!"),
    "upscale_4": ({"upscale_amount": 4}, "{mention} your image has been upscaled x4!"),
}


@dataclass
class StatusMessage(JobObserver):
    """A single chat message that tracks a job's progress."""

    telegram_client: TelegramClient
    chat_id: int
    message_id: int | None = None

    async def on_state(self, state: JobState) -> None:
        text = _STATUS_TEXT.get(state)
        if text is not None:
            await self.show(text)

    async def show(self, text: str) -> None:
        """Send the status message, or edit it once it exists."""
        if self.message_id is None:
            self.message_id = await self.telegram_client.send_message(
                chat_id=self.chat_id, text=text
            )
            return
        await self.telegram_client.edit_message_text(
            chat_id=self.chat_id, message_id=self.message_id, text=text
        )

    async def clear(self) -> None:
        if self.message_id is not None:
            await self.telegram_client.delete_message(self.chat_id, self.message_id)
            self.message_id = None


@dataclass
class DreamCommandHandler:
    """Turns chat commands and button presses into render jobs."""

    orchestrator: JobOrchestrator
    telegram_client: TelegramClient

    async def handle_dream(
        self, chat_id: int, text: str, caller_id: str, mention: str
    ) -> None:
        """Render the image described by a /dream message."""
        try:
            command = parse_dream_command(text)
        except RequestValidationError as exc:
            await self.telegram_client.send_message(
                chat_id=chat_id, text=exc.user_message
            )
            return
        _logger.info("Dream requested: caller=%s ratio=%s", caller_id, command.ratio)
        await self._render(
            chat_id,
            caller_id,
            f"{mention} your image is ready!",
            lambda observer: self.orchestrator.run(
                command.overrides, command.ratio, caller_id, observer=observer
            ),
        )

    async def handle_callback(
        self, chat_id: int, message_id: int, data: str, caller_id: str, mention: str
    ) -> None:
        """Run the follow-up action behind a result button."""
        parsed = parse_follow_up(data)
        if parsed is None:
            return
        job_id, action = parsed
        if action == "delete":
            await self.telegram_client.delete_message(chat_id, message_id)
            return
        overrides, template = FOLLOW_UPS[action]
        overrides = {**overrides, "block_nsfw": False}
        _logger.info("Follow-up requested: job_id=%s action=%s", job_id, action)
        await self._render(
            chat_id,
            caller_id,
            template.format(mention=mention),
            lambda observer: self.orchestrator.follow_up(
                job_id, overrides, caller_id, observer=observer
            ),
        )

    async def _render(
        self,
        chat_id: int,
        caller_id: str,
        done_text: str,
        job: Callable[[JobObserver], Awaitable[RenderResult]],
    ) -> None:
        status = StatusMessage(self.telegram_client, chat_id)
        try:
            result = await job(status)
        except DreamBotError as exc:
            await status.show(f"🚨 {exc.user_message}")
            return
        except Exception:
            _logger.exception("Failed to render image", extra={"caller_id": caller_id})
            await status.show(f"🚨 {RenderFailure.user_message}")
            return

        photos = [base64.b64decode(image) for image in result.images]
        await self.telegram_client.send_photos(
            chat_id, photos, caption=result.request.prompt[:1024]
        )
        await status.clear()
        await self.telegram_client.send_message(
            chat_id=chat_id,
            text=(
                f"{done_text}\n{settings_summary(result.request)}\n"
                f"ID: {result.job_id}"
            ),
            reply_markup=follow_up_keyboard(result.job_id, result.request),
        )
        _logger.info("Image posted: caller=%s job_id=%s", caller_id, result.job_id)


def settings_summary(request: RenderRequest) -> str:
    """Describe the settings a request was rendered with."""
    parts = [
        f"Seed: {request.seed}",
        f"Size: {request.width}x{request.height}",
        f"Steps: {request.num_inference_steps}",
        f"Guidance: {request.guidance_scale:g}",
        f"Sampler: {request.sampler_name}",
        f"Model: {request.use_stable_diffusion_model}",
    ]
    if request.upscale_amount:
        parts.append(f"Upscale: x{request.upscale_amount}")
    if request.use_face_correction:
        parts.append("Face fix: on")
    if request.use_controlnet_model:
        parts.append(f"Control net: {request.use_controlnet_model}")
    return " | ".join(parts)


def ratios_summary() -> str:
    """List the aspect ratios /dream accepts."""
    lines = [
        f"{ratio} ({profile.label}): {profile.width}x{profile.height}, "
        f"max {profile.max_count} at a time"
        for ratio, profile in ASPECT_RATIOS.items()
    ]
    return "\n".join(lines)


def _callback_data(job_id: str, action: str) -> str:
    """Build callback_data within Telegram's 64-byte limit."""
    return f"d:{job_id}:{action}"


def parse_follow_up(data: str) -> tuple[str, str] | None:
    """Return (job_id, action) from follow-up callback data."""
    prefix, _, rest = data.partition(":")
    job_id, _, action = rest.partition(":")
    if prefix != "d" or not job_id:
        return None
    if action != "delete" and action not in FOLLOW_UPS:
        return None
    return job_id, action


def follow_up_keyboard(job_id: str, request: RenderRequest) -> dict:
    """Build the inline keyboard shown under a finished render."""
    face_button = (
        ("💄 Disable face fix", _callback_data(job_id, "faces_off"))
        if request.use_face_correction
        else ("💄 Enable face fix", _callback_data(job_id, "faces_on"))
    )
    rows = [
        [("🎲 New seed", _callback_data(job_id, "new_seed")), face_button],
        [
            ("🔎 Upscale x2", _callback_data(job_id, "upscale_2")),
            ("🔎 Upscale x4", _callback_data(job_id, "upscale_4")),
        ],
        [("🚨 Delete", _callback_data(job_id, "delete"))],
    ]
    return {
        "inline_keyboard": [
            [{"text": label, "callback_data": callback} for label, callback in row]
            for row in rows
        ]
    }
