"""
nanoclaw - Lightweight personal AI assistant core with tools, skills and durable memory.
"""

__version__ = "0.1.0"
__logo__ = "🦀"


def __getattr__(name):
    """Lazy imports for heavy modules to keep startup fast."""
    if name == "AgentLoop":
        from nanoclaw.agent.loop import AgentLoop
        return AgentLoop
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["__version__", "__logo__", "AgentLoop"]
