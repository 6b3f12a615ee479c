"""Result types and state enums for the completion engine."""

from dataclasses import dataclass
from enum import Enum

from clipsmith.core.constants import STATUS_LOCAL_FAILURE, STATUS_OK
from clipsmith.core.types import Usage


class Strategy(Enum):
    """The three ways a transformation can be computed."""

    LOCAL_STREAMING = "local_streaming"
    CLOUD_ONE_SHOT = "cloud_one_shot"
    AGENT = "agent"


class EngineState(Enum):
    IDLE = "idle"
    RUNNING = "running"


@dataclass(frozen=True)
class CompletionResult:
    """Outcome of a cloud one-shot completion.

    Attributes:
        text: Generated text on success, else None.
        status: 200 on success, the backend's status code when it rejected
            the request, -1 for any local or unexpected failure.
        usage: Token usage on success.
        truncated: True when the backend stopped at the token ceiling.
    """

    text: str | None
    status: int
    usage: Usage | None = None
    truncated: bool = False

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    @classmethod
    def failure(cls, status: int = STATUS_LOCAL_FAILURE) -> "CompletionResult":
        return cls(text=None, status=status)
