"""Agent loop: a chat backend driving the clipboard tools.

The loop sends the conversation plus the tool catalogue to the chat
backend, executes every tool call it returns (sequentially, in order),
feeds the results back, and repeats until the backend answers without tool
calls or the round bound is reached. Failures come back as text.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from clipsmith.core.types import Message, Role, ToolCall, Usage
from clipsmith.engine.events import AgentRoundLimitReached, TelemetryEvent
from clipsmith.engine.prompts import AGENT_SYSTEM_PROMPT

if TYPE_CHECKING:
    from clipsmith.core.interfaces import AsyncProvider
    from clipsmith.skill.registry import ToolRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOOL_ROUNDS = 10


class ChatSession:
    """Ordered, role-tagged message history for one agent invocation."""

    def __init__(self, system_prompt: str | None = None) -> None:
        self._messages: list[Message] = []
        if system_prompt:
            self.add_system(system_prompt)

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def reset(self, system_prompt: str) -> None:
        """Drop all history and reseed it with system_prompt."""
        self._messages = []
        self.add_system(system_prompt)

    def add_system(self, content: str) -> None:
        self._messages.append(Message(Role.SYSTEM, content))

    def add_user(self, content: str) -> None:
        self._messages.append(Message(Role.USER, content))

    def add_assistant(self, content: str, tool_calls: tuple[ToolCall, ...] = ()) -> None:
        self._messages.append(Message(Role.ASSISTANT, content, tool_calls=tool_calls))

    def add_tool_result(self, tool_call_id: str, content: str) -> None:
        self._messages.append(Message(Role.TOOL, content, tool_call_id=tool_call_id))

    def __len__(self) -> int:
        return len(self._messages)


class AgentLoop:
    """Runs one instruction through the chat backend and the tool registry."""

    def __init__(
        self,
        provider: AsyncProvider,
        registry: ToolRegistry,
        max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS,
        emit: Callable[[TelemetryEvent], None] | None = None,
        system_prompt: str = AGENT_SYSTEM_PROMPT,
    ) -> None:
        """Initialize the loop.

        Args:
            provider: Chat backend.
            registry: Tools offered to the backend.
            max_tool_rounds: Maximum number of tool-call rounds per run.
            emit: Telemetry emitter (must not raise).
            system_prompt: System prompt that seeds every conversation.
        """
        self._provider = provider
        self._registry = registry
        self._max_tool_rounds = max_tool_rounds
        self._emit = emit
        self._system_prompt = system_prompt
        self._session = ChatSession()
        self.usage = Usage()
        self.error: Exception | None = None

    @property
    def provider(self) -> AsyncProvider:
        return self._provider

    @provider.setter
    def provider(self, provider: AsyncProvider) -> None:
        self._provider = provider

    @property
    def transcript(self) -> list[Message]:
        """Messages of the current (or last) invocation."""
        return self._session.messages

    async def run(self, instructions: str) -> str:
        """Run the agent on instructions and return its final answer.

        Never raises: any exception is reported as the returned text and
        kept on self.error. self.usage sums the tokens of every round.
        """
        self._session.reset(self._system_prompt)
        self._session.add_user(instructions)
        self.usage = Usage()
        self.error = None
        try:
            return await self._run_rounds()
        except Exception as e:
            self.error = e
            logger.error("Agent run failed: %s", e, exc_info=True)
            return str(e) or type(e).__name__

    async def _run_rounds(self) -> str:
        tools = self._registry.get_definitions()

        for round_num in range(self._max_tool_rounds + 1):
            message = await self._provider.complete(self._session.messages, tools)
            if message.usage is not None:
                self.usage = Usage(
                    prompt_tokens=self.usage.prompt_tokens + message.usage.prompt_tokens,
                    completion_tokens=self.usage.completion_tokens + message.usage.completion_tokens,
                )

            if not message.tool_calls:
                self._session.add_assistant(message.content)
                logger.debug("Agent finished after %d tool rounds", round_num)
                return message.content

            if round_num == self._max_tool_rounds:
                break

            self._session.add_assistant(message.content, message.tool_calls)
            for tool_call in message.tool_calls:
                logger.debug("Agent calls %s(%s)", tool_call.name, tool_call.arguments)
                result = await self._registry.execute(tool_call.name, tool_call.arguments)
                content = result.output if result.success else f"Error: {result.error}"
                if not result.success and result.output:
                    content = f"{content}\nFormats: {result.output}"
                self._session.add_tool_result(tool_call.id, content)

        logger.warning("Agent stopped after %d tool rounds", self._max_tool_rounds)
        if self._emit is not None:
            self._emit(AgentRoundLimitReached(rounds=self._max_tool_rounds))
        answer = f"Agent stopped: tool round limit ({self._max_tool_rounds}) reached"
        self._session.add_assistant(answer)
        return answer
