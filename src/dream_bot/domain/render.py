"""Domain models for render requests."""

from dataclasses import asdict, dataclass, fields

UPSCALE_MODEL = "RealESRGAN_x4plus"
FACE_CORRECTION_MODELS = ("GFPGANv1.4", "GFPGANv1.3")
CONTROL_NET_MODELS = {"canny": "control_v11p_sd15_canny"}
STABLE_DIFFUSION_MODELS = (
    "realisticVisionV13_v13",
    "lazymix_v10",
    "f222",
    "SD 1.4",
)
SAMPLERS = {
    "plms": "PLMS",
    "ddim": "DDIM",
    "heun": "Heun",
    "euler": "Euler",
    "euler_a": "Euler Ancestral",
    "dpm2": "DPM2",
    "dpm2_a": "DPM2 Ancestral",
    "lms": "LMS",
    "dpm_solver_stability": "DPM Solver (Stability AI)",
    "dpmpp_2s_a": "DPM++ 2s Ancestral (Karras)",
    "dpmpp_2m": "DPM++ 2m (Karras)",
    "dpmpp_2m_sde": "DPM++ 2m SDE (Karras)",
    "dpmpp_sde": "DPM++ SDE (Karras)",
    "ddpm": "DDPM",
    "deis": "DEIS",
}

NEGATIVE_AGE_TERMS = ("teen", "kid", "child", "underage", "minor", "children")
NEGATIVE_DISALLOWED_TERMS = ("rape",)
NEGATIVE_QUALITY_TERMS = (
    "cropped",
    "worst quality",
    "low quality",
    "normal quality",
    "jpeg artifacts",
    "signature",
    "(((watermark)))",
    "username",
    "blurry",
    "lowres",
    "error",
)
NEGATIVE_ANATOMY_TERMS = (
    "bad anatomy",
    "bad hands",
    "missing fingers",
    "extra digit",
    "fewer digits",
)
DEFAULT_NEGATIVE_PROMPT = ", ".join(
    (*NEGATIVE_AGE_TERMS, *NEGATIVE_QUALITY_TERMS, *NEGATIVE_DISALLOWED_TERMS)
)


@dataclass(frozen=True)
class AspectRatio:
    """Fixed output geometry for a ratio label."""

    label: str
    width: int
    height: int
    max_count: int


ASPECT_RATIOS: dict[str, AspectRatio] = {
    "1:1": AspectRatio(label="square", width=512, height=512, max_count=4),
    "2:3": AspectRatio(label="portrait", width=512, height=768, max_count=1),
    "3:2": AspectRatio(label="landscape", width=768, height=512, max_count=1),
    "9:16": AspectRatio(label="portrait", width=384, height=704, max_count=2),
    "16:9": AspectRatio(label="landscape", width=704, height=384, max_count=2),
}


@dataclass(frozen=True)
class RenderRequest:
    """Complete configuration sent to the render backend for one job.

    ``control_image_url`` travels alongside the request but is not part of the
    backend schema; the client inlines the image it points to at submit time.
    """

    prompt: str
    original_prompt: str
    seed: int
    used_random_seed: bool
    negative_prompt: str
    num_outputs: int
    num_inference_steps: int
    guidance_scale: float
    width: int
    height: int
    vram_usage_level: str
    sampler_name: str
    use_stable_diffusion_model: str
    session_id: str
    use_face_correction: str | None = None
    clip_skip: bool = False
    tiling: str = "none"
    use_vae_model: str = "vae-ft-mse-840000-ema-pruned"
    stream_progress_updates: bool = True
    stream_image_progress: bool = True
    show_only_filtered_image: bool = True
    block_nsfw: bool = True
    output_format: str = "png"
    output_quality: int = 75
    output_lossless: bool = False
    metadata_output_format: str = "none"
    active_tags: tuple[str, ...] = ()
    inactive_tags: tuple[str, ...] = ()
    use_upscale: str | None = None
    upscale_amount: int | None = None
    use_controlnet_model: str | None = None
    control_image_url: str | None = None

    def to_payload(self) -> dict[str, object]:
        """Serialize to the backend's JSON schema."""
        payload = asdict(self)
        payload.pop("control_image_url")
        payload["active_tags"] = list(self.active_tags)
        payload["inactive_tags"] = list(self.inactive_tags)
        return payload

    @classmethod
    def from_payload(
        cls, payload: dict[str, object], control_image_url: str | None = None
    ) -> "RenderRequest":
        """Rebuild a request from a stored payload, ignoring unknown keys."""
        known = {f.name for f in fields(cls)} - {"control_image_url"}
        values = {key: value for key, value in payload.items() if key in known}
        for key in ("active_tags", "inactive_tags"):
            if key in values:
                values[key] = tuple(values[key])  # type: ignore[arg-type]
        values["control_image_url"] = control_image_url
        return cls(**values)  # type: ignore[arg-type]


def request_field_names() -> set[str]:
    """Return every field a caller may override."""
    return {f.name for f in fields(RenderRequest)}
