"""Render backend wire payloads and poll states."""

from dataclasses import dataclass

from pydantic import BaseModel


class RenderAccepted(BaseModel):
    """Response to a successful render submission."""

    status: str
    queue: int
    stream: str
    task: int


class StepUpdate(BaseModel):
    """Progress update streamed while the backend is sampling."""

    step: int
    step_time: float | None = None
    total_steps: int


class RenderOutput(BaseModel):
    """One rendered image, encoded as a data URL."""

    data: str
    seed: int | None = None
    path_abs: str | None = None

    def payload(self) -> str:
        """Return the base64 payload after the first comma of the data URL."""
        _, _, encoded = self.data.partition(",")
        return encoded


class RenderStatus(BaseModel):
    """Terminal status reported on the stream endpoint."""

    status: str
    output: list[RenderOutput] = []
    detail: str | None = None


@dataclass(frozen=True)
class JobHandle:
    """Reference to an accepted backend job."""

    task: int
    stream: str
    queue: int
    status: str


@dataclass(frozen=True)
class Pending:
    """The backend has not produced anything for the job yet."""


@dataclass(frozen=True)
class LoadingModel:
    """The backend is loading the requested model."""


@dataclass(frozen=True)
class Stepping:
    """The backend is sampling."""

    step: int
    total_steps: int


@dataclass(frozen=True)
class Succeeded:
    """The job finished and produced images."""

    outputs: list[str]


@dataclass(frozen=True)
class Failed:
    """The backend reported the job as failed."""

    reason: str | None = None


PollState = Pending | LoadingModel | Stepping | Succeeded | Failed
