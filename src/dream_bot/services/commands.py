"""Parsing of /dream chat commands into render overrides."""

import re
from collections.abc import Callable
from dataclasses import dataclass, field

from dream_bot.domain.render import (
    ASPECT_RATIOS,
    CONTROL_NET_MODELS,
    FACE_CORRECTION_MODELS,
    SAMPLERS,
    STABLE_DIFFUSION_MODELS,
)
from dream_bot.errors import RequestValidationError

USAGE = (
    "Usage: /dream <prompt> [ratio=1:1] [count=1-4] [seed=N] [steps=1-100] "
    "[guidance=1-15] [sampler=NAME] [model=NAME] [upscale=2-10] [facefix=on] "
    "[controlnet=canny controlnet_url=URL]. A trailing x1-x4 also sets the count."
)

_COUNT_SUFFIX = re.compile(r"^x([1-4])$", re.IGNORECASE)
_TRUE_WORDS = {"1", "on", "true", "yes"}
_FALSE_WORDS = {"0", "off", "false", "no"}


@dataclass(frozen=True)
class DreamCommand:
    """A parsed /dream invocation."""

    prompt: str
    ratio: str = "1:1"
    overrides: dict[str, object] = field(default_factory=dict)


def _int_between(low: int, high: int) -> Callable[[str], int]:
    def parse(raw: str) -> int:
        value = int(raw)
        if not low <= value <= high:
            raise ValueError(f"must be between {low} and {high}")
        return value

    return parse


def _float_between(low: float, high: float) -> Callable[[str], float]:
    def parse(raw: str) -> float:
        value = float(raw)
        if not low <= value <= high:
            raise ValueError(f"must be between {low:g} and {high:g}")
        return value

    return parse


def _choice(choices: tuple[str, ...]) -> Callable[[str], str]:
    def parse(raw: str) -> str:
        if raw not in choices:
            raise ValueError(f"must be one of {', '.join(choices)}")
        return raw

    return parse


def _control_net(raw: str) -> str:
    model = CONTROL_NET_MODELS.get(raw.lower())
    if model is None:
        raise ValueError(f"must be one of {', '.join(CONTROL_NET_MODELS)}")
    return model


def _face_fix(raw: str) -> str | None:
    lowered = raw.lower()
    if lowered in _TRUE_WORDS:
        return FACE_CORRECTION_MODELS[0]
    if lowered in _FALSE_WORDS:
        return None
    raise ValueError("must be on or off")


def _url(raw: str) -> str:
    if not raw.startswith(("http://", "https://")):
        raise ValueError("must be an http(s) URL")
    return raw


def _ratio(raw: str) -> str:
    if raw not in ASPECT_RATIOS:
        raise ValueError(f"must be one of {', '.join(ASPECT_RATIOS)}")
    return raw


_OPTIONS: dict[str, tuple[str, Callable[[str], object]]] = {
    "count": ("num_outputs", _int_between(1, 4)),
    "seed": ("seed", _int_between(1, 9_999_999_999)),
    "steps": ("num_inference_steps", _int_between(1, 100)),
    "guidance": ("guidance_scale", _float_between(1, 15)),
    "sampler": ("sampler_name", _choice(tuple(SAMPLERS))),
    "model": ("use_stable_diffusion_model", _choice(STABLE_DIFFUSION_MODELS)),
    "upscale": ("upscale_amount", _int_between(2, 10)),
    "facefix": ("use_face_correction", _face_fix),
    "controlnet": ("use_controlnet_model", _control_net),
    "controlnet_url": ("control_image_url", _url),
}


def parse_dream_command(text: str) -> DreamCommand:
    """Split a /dream message into prompt, ratio and field overrides."""
    tokens = text.split()
    if tokens and tokens[0].split("@")[0].lower() == "/dream":
        tokens = tokens[1:]

    ratio = "1:1"
    overrides: dict[str, object] = {}
    words: list[str] = []
    if tokens and (match := _COUNT_SUFFIX.match(tokens[-1])):
        overrides["num_outputs"] = int(match.group(1))
        tokens = tokens[:-1]

    for token in tokens:
        key, sep, raw = token.partition("=")
        key = key.lower().replace("-", "_")
        if not sep or (key != "ratio" and key not in _OPTIONS):
            words.append(token)
            continue
        try:
            if key == "ratio":
                ratio = _ratio(raw)
                continue
            name, parse = _OPTIONS[key]
            overrides[name] = parse(raw)
        except ValueError as exc:
            raise RequestValidationError(f"`{key}` {exc}.") from exc

    prompt = " ".join(words).strip()
    if not prompt:
        raise RequestValidationError(USAGE)
    overrides["prompt"] = prompt
    return DreamCommand(prompt=prompt, ratio=ratio, overrides=overrides)
