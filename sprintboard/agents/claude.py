"""Claude executor: runs single-turn prompts via the claude-agent-sdk."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from claude_agent_sdk import (
    AssistantMessage,
    ClaudeAgentOptions,
    ResultMessage,
    TextBlock,
    query,
)


@dataclass
class ExecutorResult:
    success: bool
    output: str


class ClaudeExecutor:
    """Executes prompts via the claude-agent-sdk.

    The oracles only need text back, so no tools are allowed and the
    conversation is capped at a single turn by default.
    """

    def __init__(
        self,
        model: str = "sonnet",
        max_turns: int = 1,
    ) -> None:
        self._model = model
        self._max_turns = max_turns

    async def run(self, prompt: str, timeout: int = 120) -> ExecutorResult:
        """Run a prompt and collect all text the model produced."""
        options = ClaudeAgentOptions(
            model=self._model,
            allowed_tools=[],
            max_turns=self._max_turns,
        )

        text_parts: list[str] = []
        is_error = False

        try:
            async with asyncio.timeout(timeout):
                async for message in query(prompt=prompt, options=options):
                    if isinstance(message, AssistantMessage):
                        for block in message.content:
                            if isinstance(block, TextBlock):
                                text_parts.append(block.text)
                    elif isinstance(message, ResultMessage):
                        is_error = message.is_error
                        # The result repeats the assistant text when there was any.
                        if message.result and not text_parts:
                            text_parts.append(message.result)

        except TimeoutError:
            return ExecutorResult(
                success=False,
                output=f"Claude execution timed out after {timeout}s",
            )
        except Exception as e:
            return ExecutorResult(
                success=False,
                output=f"Claude execution failed: {e}",
            )

        output = "\n".join(text_parts).strip()
        return ExecutorResult(success=not is_error, output=output or "(no output)")
