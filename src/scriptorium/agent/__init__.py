"""Tool-calling prayer composer — document registry and bounded tool loop."""

from scriptorium.agent.registry import DOCUMENTS, DocumentEntry, DocumentId, DocumentRegistry
from scriptorium.agent.tool_loop import ToolLoopResult, build_tool_schema, run_tool_loop

__all__ = [
    "DOCUMENTS",
    "DocumentEntry",
    "DocumentId",
    "DocumentRegistry",
    "ToolLoopResult",
    "build_tool_schema",
    "run_tool_loop",
]
