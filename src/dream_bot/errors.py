"""Error taxonomy for render jobs."""


class DreamBotError(Exception):
    """Base class for failures that cross the orchestrator boundary."""

    user_message = "Something went wrong, please try again."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)
        if message:
            self.user_message = message


class RequestValidationError(DreamBotError):
    """Caller input was rejected before the job was queued."""

    user_message = "Invalid render request."


class SubmissionError(DreamBotError):
    """The backend refused the job at submission time."""

    user_message = "The render backend rejected the request."


class RenderFailure(DreamBotError):
    """The backend accepted the job but reported it as failed."""

    user_message = "Failed rendering image, please try again."

    def __init__(self, reason: str | None = None) -> None:
        super().__init__()
        self.reason = reason

    def __str__(self) -> str:
        if self.reason:
            return f"{self.user_message} ({self.reason})"
        return self.user_message


class RenderTimeout(RenderFailure):
    """The job did not reach a terminal state before its deadline."""


class SessionNotFoundError(DreamBotError):
    """A follow-up referenced a session record that is missing or unreadable."""

    user_message = "This image can no longer be changed, please start a new one."
