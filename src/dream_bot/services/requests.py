"""Render request assembly."""

import random
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime

from dream_bot.domain.render import (
    DEFAULT_NEGATIVE_PROMPT,
    NEGATIVE_ANATOMY_TERMS,
    UPSCALE_MODEL,
    RenderRequest,
    request_field_names,
)

MAX_RANDOM_SEED = 1_000_000_000
DEFAULT_PROMPT = "a photograph of an astronaut riding a horse"
DEFAULT_SEED = 1458359407

_PEOPLE_PATTERN = re.compile(r"\b(?:person|people)", re.IGNORECASE)
_DERIVED_FIELDS = {"original_prompt", "used_random_seed", "use_upscale"}


def session_id_for(day: date) -> str:
    """Return the backend session id for a calendar day."""
    return day.isoformat()


def default_request(**overrides: object) -> RenderRequest:
    """Return the baseline request every build starts from."""
    request = RenderRequest(
        prompt=DEFAULT_PROMPT,
        original_prompt=DEFAULT_PROMPT,
        seed=DEFAULT_SEED,
        used_random_seed=True,
        negative_prompt=DEFAULT_NEGATIVE_PROMPT,
        num_outputs=1,
        num_inference_steps=20,
        guidance_scale=7.5,
        width=512,
        height=512,
        vram_usage_level="balanced",
        sampler_name="euler_a",
        use_stable_diffusion_model="realisticVisionV13_v13",
        session_id=session_id_for(datetime.now(tz=UTC).date()),
    )
    return replace(request, **overrides)


def submission_negative_prompt(request: RenderRequest) -> str:
    """Return the negative prompt to submit, widened for prompts about people."""
    if not _PEOPLE_PATTERN.search(request.prompt):
        return request.negative_prompt
    return ", ".join((request.negative_prompt, *NEGATIVE_ANATOMY_TERMS))


@dataclass
class RequestBuilder:
    """Builds immutable render requests from defaults plus caller overrides."""

    defaults: RenderRequest = field(default_factory=default_request)
    rng: random.Random = field(default_factory=random.Random)
    today: Callable[[], date] = field(
        default=lambda: datetime.now(tz=UTC).date()
    )

    def random_seed(self) -> int:
        """Draw a fresh random seed."""
        return self.rng.randrange(MAX_RANDOM_SEED)

    def build(
        self,
        overrides: Mapping[str, object] | None = None,
        base: RenderRequest | None = None,
    ) -> RenderRequest:
        """Apply overrides to ``base`` (or the defaults) and derive dependent fields.

        A ``seed`` override of ``None`` rolls a random seed. Without a base and
        without a seed override the seed is random as well; with a base the
        base's seed mode is kept.
        """
        values = dict(overrides or {})
        unknown = set(values) - (request_field_names() - _DERIVED_FIELDS)
        if unknown:
            raise TypeError(f"Unknown render fields: {', '.join(sorted(unknown))}")

        start = base or replace(
            self.defaults, session_id=session_id_for(self.today())
        )
        changes: dict[str, object] = dict(values)

        if "prompt" in values:
            changes["original_prompt"] = values["prompt"]

        if values.get("seed") is not None:
            changes["used_random_seed"] = False
        elif "seed" in values or base is None:
            changes["seed"] = self.random_seed()
            changes["used_random_seed"] = True

        upscale_amount = changes.get("upscale_amount", start.upscale_amount)
        changes["upscale_amount"] = upscale_amount or None
        changes["use_upscale"] = UPSCALE_MODEL if upscale_amount else None

        control_net = changes.get("use_controlnet_model", start.use_controlnet_model)
        control_url = changes.get("control_image_url", start.control_image_url)
        paired = bool(control_net and control_url)
        changes["use_controlnet_model"] = control_net if paired else None
        changes["control_image_url"] = control_url if paired else None

        for key in ("active_tags", "inactive_tags"):
            if key in changes:
                changes[key] = tuple(changes[key])  # type: ignore[arg-type]

        return replace(start, **changes)
