"""LangGraph workflow for content generation."""


def build_generation_graph():
    """Lazy import to avoid circular import with postflow.agents."""
    from postflow.workflow.graph import build_generation_graph as _build

    return _build()


__all__ = ["build_generation_graph"]
