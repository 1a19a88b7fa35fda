"""Agent core module."""

from nanoclaw.agent.context import ContextBuilder
from nanoclaw.agent.memory import Memory
from nanoclaw.agent.messages import Message, Role, ToolCall
from nanoclaw.agent.skills import Skill, SkillsLoader

# Lazy import for AgentLoop to avoid circular dependency:
# loop.py imports nanoclaw.providers → which imports nanoclaw.agent.messages
# → which triggers this __init__ → back to loop.py
def __getattr__(name):
    if name in ("AgentLoop", "AgentResponse"):
        from nanoclaw.agent import loop
        return getattr(loop, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

__all__ = [
    "AgentLoop",
    "AgentResponse",
    "ContextBuilder",
    "Memory",
    "Message",
    "Role",
    "Skill",
    "SkillsLoader",
    "ToolCall",
]
