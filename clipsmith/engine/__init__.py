"""Completion engine: strategies, streaming sessions and the agent loop."""
from clipsmith.engine.agent import AgentLoop, ChatSession
from clipsmith.engine.completion import CompletionEngine
from clipsmith.engine.events import (
    AgentRoundLimitReached,
    CompletionFailed,
    CompletionSucceeded,
    CompletionTruncated,
    LoggingTelemetrySink,
    TelemetryEvent,
)
from clipsmith.engine.results import CompletionResult, EngineState, Strategy
from clipsmith.engine.streaming import StreamingSession

__all__ = [
    "AgentLoop",
    "AgentRoundLimitReached",
    "ChatSession",
    "CompletionEngine",
    "CompletionFailed",
    "CompletionResult",
    "CompletionSucceeded",
    "CompletionTruncated",
    "EngineState",
    "LoggingTelemetrySink",
    "Strategy",
    "StreamingSession",
    "TelemetryEvent",
]
