"""Agent loop: the core processing engine."""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from loguru import logger

from nanoclaw.agent.context import ContextBuilder
from nanoclaw.agent.memory import Memory
from nanoclaw.agent.messages import Message, ToolCall
from nanoclaw.agent.skills import SkillsLoader
from nanoclaw.agent.subagent import SubagentManager
from nanoclaw.agent.tools.base import ToolResult
from nanoclaw.agent.tools.filesystem import ReadFileTool, WriteFileTool
from nanoclaw.agent.tools.registry import ToolRegistry
from nanoclaw.agent.tools.shell import ShellTool
from nanoclaw.agent.tools.spawn import SpawnTool
from nanoclaw.config.schema import AgentConfig, Config, ToolsConfig
from nanoclaw.providers.base import LLMProvider
from nanoclaw.providers.registry import ProviderManager
from nanoclaw.utils.helpers import truncate

MAX_ITERATIONS_REPLY = "I apologize, but I was unable to complete your request."
MAX_ITERATIONS_REASON = "max_iterations"


@dataclass
class AgentResponse:
    content: str
    tool_calls: Optional[list[ToolCall]] = None
    finish_reason: Optional[str] = None
    iterations: int = 0


def build_default_tools(
    config: ToolsConfig,
    shell_semaphore: asyncio.Semaphore | None = None,
) -> ToolRegistry:
    """Registry with the built-in shell, read_file and write_file tools."""
    allowed_dir = Path.cwd() if config.restrict_to_workspace else None
    registry = ToolRegistry()
    registry.register(ShellTool(
        restrict_to_workspace=config.restrict_to_workspace,
        allowed_commands=config.allowed_commands,
        denied_commands=config.denied_commands,
        timeout=config.shell_timeout,
        max_output=config.shell_max_output,
        semaphore=shell_semaphore,
    ))
    registry.register(ReadFileTool(allowed_dir=allowed_dir))
    registry.register(WriteFileTool(allowed_dir=allowed_dir))
    return registry


class AgentLoop:
    """
    Turns one user message into one final assistant reply.

    Each iteration:
    1. Builds context from the stored history, skills and tool definitions
    2. Calls the provider
    3. Executes requested tool calls in order, appending their results
    4. Stops on the first reply without tool calls

    Every message is persisted through ``Memory`` as soon as it is appended.
    Provider errors propagate to the caller; tool errors come back to the
    model as ``Error: ...`` tool results. One ``process_message`` call at a
    time per instance.
    """

    def __init__(
        self,
        session_id: str,
        provider: LLMProvider,
        config: AgentConfig | None = None,
        tools: ToolRegistry | None = None,
        skills: SkillsLoader | None = None,
        memory: Memory | None = None,
        max_iterations: int | None = None,
        context: ContextBuilder | None = None,
        subagents: SubagentManager | None = None,
    ):
        self.session_id = session_id
        self.provider = provider
        self.config = config or AgentConfig()
        self.max_iterations = max_iterations if max_iterations is not None else self.config.max_iterations
        self.tools = tools if tools is not None else build_default_tools(ToolsConfig())
        self.skills = skills or SkillsLoader()
        self.memory = memory or Memory(session_id, max_messages=self.config.max_memory_messages)
        self.context = context or ContextBuilder(self.config)
        self.subagents = subagents

    @classmethod
    def from_config(
        cls,
        session_id: str,
        config: Config,
        provider: LLMProvider | None = None,
        shell_semaphore: asyncio.Semaphore | None = None,
        enable_subagents: bool = True,
    ) -> "AgentLoop":
        """Wire a loop from the root config.

        ``shell_semaphore`` should be shared by every loop in the process so
        the ``max_concurrent_shell`` cap holds across sessions.
        """
        if provider is None:
            provider = ProviderManager(config)
        if shell_semaphore is None:
            shell_semaphore = asyncio.Semaphore(config.tools.max_concurrent_shell)

        agent_config = config.agents.defaults
        tools = build_default_tools(config.tools, shell_semaphore)

        subagents = None
        if enable_subagents:
            async def run_subagent(description: str) -> str:
                child = cls.from_config(
                    f"subagent-{uuid.uuid4().hex[:12]}",
                    config,
                    provider=provider,
                    shell_semaphore=shell_semaphore,
                    enable_subagents=False,
                )
                response = await child.process_message(description)
                return response.content

            subagents = SubagentManager(run_subagent, max_concurrent=config.subagents.max_concurrent)
            tools.register(SpawnTool(subagents))

        return cls(
            session_id=session_id,
            provider=provider,
            config=agent_config,
            tools=tools,
            memory=Memory(session_id, max_messages=agent_config.max_memory_messages),
            subagents=subagents,
        )

    async def process_message(self, text: str) -> AgentResponse:
        """Run the iterate-call-execute cycle for one user message."""
        preview = truncate(text, 80)
        logger.info(f"Processing message for {self.session_id}: {preview}")

        self.memory.add_message(Message.user(text))

        for iteration in range(1, self.max_iterations + 1):
            skills = self.skills.get_skills()
            definitions = self.tools.get_definitions()

            messages = self.context.build_context_messages(
                self.memory.get_messages(), skills, definitions
            )
            if self.config.max_context_chars:
                messages = ContextBuilder.truncate_context(messages, self.config.max_context_chars)

            try:
                response = await self.provider.complete(
                    messages,
                    self.config.model,
                    self.config.temperature,
                    self.config.max_tokens,
                    definitions or None,
                )
            except Exception as e:
                logger.error(f"Provider call failed for {self.session_id} (iteration {iteration}): {e}")
                raise

            if response.has_tool_calls:
                self.memory.add_message(Message.assistant(response.content, tool_calls=response.tool_calls))
                for call in response.tool_calls:
                    result = await self._execute_tool_call(call)
                    self.memory.add_message(Message.tool(result.to_content(), call.name, call.id))
                continue

            self.memory.add_message(Message.assistant(response.content))
            logger.info(f"Response for {self.session_id} after {iteration} iteration(s)")
            return AgentResponse(
                content=response.content,
                finish_reason=response.finish_reason,
                iterations=iteration,
            )

        logger.warning(f"Max iterations ({self.max_iterations}) reached for {self.session_id}")
        return AgentResponse(
            content=MAX_ITERATIONS_REPLY,
            finish_reason=MAX_ITERATIONS_REASON,
            iterations=self.max_iterations,
        )

    async def _execute_tool_call(self, call: ToolCall) -> ToolResult:
        try:
            args = call.parse_arguments()
        except ValueError as e:
            logger.warning(f"Bad arguments for tool {call.name}: {e}")
            return ToolResult.fail(f"Invalid arguments for tool '{call.name}': {e}")

        logger.info(f"Tool call: {call.name}({call.arguments[:200]})")
        result = await self.tools.execute(call.name, args)
        if not result.success:
            logger.debug(f"Tool {call.name} failed: {result.error}")
        return result

    # ── Accessors ─────────────────────────────────────────────────

    def get_history(self) -> list[Message]:
        return self.memory.get_messages()

    def clear_history(self) -> None:
        self.memory.clear()

    def get_memory(self) -> Memory:
        return self.memory

    def get_tool_registry(self) -> ToolRegistry:
        return self.tools

    def get_skills_loader(self) -> SkillsLoader:
        return self.skills

    async def close(self) -> None:
        """Stop background subagents and release provider connections."""
        if self.subagents:
            await self.subagents.shutdown()
        await self.provider.close()
