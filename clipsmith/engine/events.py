"""Telemetry events emitted by the completion engine.

Events are frozen dataclasses following the pattern in core/types.py. They
are handed to a TelemetrySink; the engine never lets a sink failure affect
the request that produced the event.
"""

import logging
from dataclasses import asdict, dataclass

__all__ = [
    "TelemetryEvent",
    "CompletionSucceeded",
    "CompletionFailed",
    "CompletionTruncated",
    "AgentRoundLimitReached",
    "LoggingTelemetrySink",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TelemetryEvent:
    """Base class for telemetry events."""

    pass


@dataclass(frozen=True)
class CompletionSucceeded(TelemetryEvent):
    """A cloud completion returned text.

    Attributes:
        prompt_tokens: Tokens consumed by the prompt.
        completion_tokens: Tokens generated.
        model: Model or deployment name.
    """

    prompt_tokens: int
    completion_tokens: int
    model: str


@dataclass(frozen=True)
class CompletionFailed(TelemetryEvent):
    """A cloud completion failed.

    Attributes:
        error: Error message.
        status: Status reported with the result (-1 for local failures).
    """

    error: str
    status: int


@dataclass(frozen=True)
class CompletionTruncated(TelemetryEvent):
    """A completion stopped at the token ceiling."""

    model: str
    max_tokens: int


@dataclass(frozen=True)
class AgentRoundLimitReached(TelemetryEvent):
    """The agent still requested tools after the last allowed round."""

    rounds: int


class LoggingTelemetrySink:
    """TelemetrySink that writes events to the log."""

    def __init__(self, level: int = logging.INFO) -> None:
        self._level = level

    def emit(self, event: TelemetryEvent) -> None:
        logger.log(self._level, "telemetry %s %s", type(event).__name__, asdict(event))
