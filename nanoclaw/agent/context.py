"""Context builder for assembling the prompt sent to the provider."""

from datetime import datetime, timezone
from typing import Any, Callable

from nanoclaw.agent.messages import Message, Role
from nanoclaw.agent.skills import Skill
from nanoclaw.config.schema import AgentConfig
from nanoclaw.utils.helpers import format_timestamp

DEFAULT_SYSTEM_PROMPT = """You are a helpful AI assistant powered by nanoclaw. You are knowledgeable, precise, and aim to be helpful.

Your capabilities:
- Answer questions accurately and concisely
- Execute tasks using available tools
- Remember context from the conversation
- Use skills to enhance your knowledge and capabilities

Guidelines:
- Be honest if you don't know something
- Use tools when they can help accomplish the task
- Keep responses clear and well-structured
- Respect user privacy and security"""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContextBuilder:
    """
    Builds the ordered message list for one provider call.

    Output is a pure function of the config, the clock, the skills/tools
    metadata and the history: the system message comes first, followed by
    the stored conversation unchanged.
    """

    def __init__(self, config: AgentConfig, now: Callable[[], datetime] = _utcnow):
        self.config = config
        self._now = now

    def build_system_prompt(self, skills: list[Skill], tools: list[dict[str, Any]]) -> str:
        """Persona, then current time, then skills, then tools."""
        parts = [self.config.system_prompt or DEFAULT_SYSTEM_PROMPT]

        parts.append(f"\nCurrent time: {format_timestamp(self._now())}")

        if skills:
            parts.append("\n## Available Skills")
            parts.append(
                "You have access to the following skills that provide additional context and capabilities:\n"
            )
            for skill in skills:
                parts.append(f"### {skill.name}")
                parts.append(skill.description)
                parts.append("")

        if tools:
            parts.append("\n## Available Tools")
            parts.append("You can use the following tools to perform actions:\n")
            for tool in tools:
                fn = tool["function"]
                parts.append(f"- **{fn['name']}**: {fn['description']}")
            parts.append("")

        return "\n".join(parts)

    def build_context_messages(
        self,
        history: list[Message],
        skills: list[Skill],
        tools: list[dict[str, Any]],
    ) -> list[Message]:
        system = Message.system(self.build_system_prompt(skills, tools))
        return [system, *history]

    @staticmethod
    def format_tool_result(tool_name: str, result: str) -> str:
        return f"[Tool: {tool_name}]\n{result}"

    @staticmethod
    def truncate_context(
        messages: list[Message],
        max_length: int,
        drop_orphan_tool_results: bool = True,
    ) -> list[Message]:
        """
        Fit messages into a character budget.

        System messages are always kept. Non-system messages are kept newest
        first until the next one would overflow; everything older is dropped.
        Length is counted in characters of ``content``, a rough stand-in for
        tokens.

        With ``drop_orphan_tool_results`` (the default) the window is cut
        further: tool results left at its front without their assistant
        turn are dropped, since providers reject them. Pass False to keep
        exactly the newest messages that fit.
        """
        total = sum(len(m.content) for m in messages)
        if total <= max_length:
            return messages

        system = [m for m in messages if m.role == Role.SYSTEM]
        others = [m for m in messages if m.role != Role.SYSTEM]

        used = sum(len(m.content) for m in system)
        recent: list[Message] = []
        for msg in reversed(others):
            if used + len(msg.content) > max_length:
                break
            recent.append(msg)
            used += len(msg.content)
        recent.reverse()

        # Tool results whose assistant tool_calls turn was cut off are orphans
        while drop_orphan_tool_results and recent and recent[0].role == Role.TOOL:
            recent.pop(0)

        return system + recent
