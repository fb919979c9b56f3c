"""
Tools available to specialists
"""
from .tool_registry import ToolRegistry, create_tool_registry
from .document_tools import DocumentTools
from .interaction_tools import ask_question, task_complete

__all__ = [
    "ToolRegistry",
    "create_tool_registry",
    "DocumentTools",
    "ask_question",
    "task_complete",
]
