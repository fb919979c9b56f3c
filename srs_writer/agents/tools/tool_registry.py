"""
Tool Registry - Central registry for tools callable by specialists

Each tool is a callable wrapped with metadata (description, model-facing input
names, required inputs). Specialists address tools by name; the model sends
camelCase argument names, which are mapped to the Python keyword arguments.

Tool Design Principles:
1. Tools are dumb - no AI/reasoning, just mechanical execution
2. Tools raise on failure; the Specialist Executor turns errors into guidance
3. Tools report what they did - return structured, JSON-serializable results
"""
import inspect
import logging
from typing import Dict, Callable, Any, List, Optional

from pydantic.alias_generators import to_snake

from srs_writer.agents.core.errors import ToolExecutionError

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Central registry for all available tools

    The prompt assembler uses this to describe the tools.
    The Specialist Executor uses this to invoke them.
    """

    def __init__(self):
        self._registry: Dict[str, Callable] = {}

    def register(
        self,
        name: str,
        func: Callable,
        description: str,
        inputs: List[str],
        required: Optional[List[str]] = None,
        outputs: Optional[List[str]] = None
    ):
        """Register a tool under a model-facing name"""
        self._registry[name] = self._wrap_tool(func, description, inputs, required or [], outputs or [])

    def unregister(self, name: str):
        self._registry.pop(name, None)

    def _wrap_tool(self, func: Callable, description: str, inputs: list, required: list, outputs: list) -> Callable:
        """
        Wrap tool function with metadata

        This allows us to query tool capabilities.
        """
        def wrapper(**kwargs):
            params = {to_snake(k): v for k, v in kwargs.items() if k in inputs}
            return func(**params)

        # Attach metadata
        wrapper.__doc__ = description
        wrapper.__tool_inputs__ = inputs
        wrapper.__tool_required__ = required
        wrapper.__tool_outputs__ = outputs
        wrapper.__wrapped__ = func

        return wrapper

    async def execute_tool(self, tool_name: str, args: Optional[Dict[str, Any]] = None) -> Any:
        """
        Invoke a tool by name

        Raises:
            ToolExecutionError: If the tool is unknown or a required argument is missing
            Exception: Whatever the tool itself raises
        """
        tool = self._registry.get(tool_name)
        if tool is None:
            raise ToolExecutionError(tool_name, f"Tool implementation not found: {tool_name}")

        args = args or {}
        missing = [name for name in tool.__tool_required__ if args.get(name) is None]
        if missing:
            raise ToolExecutionError(tool_name, f"Missing required parameter: {', '.join(missing)}")

        result = tool(**args)
        if inspect.isawaitable(result):
            result = await result
        return result

    def has_tool(self, tool_name: str) -> bool:
        return tool_name in self._registry

    def get_tool(self, tool_name: str) -> Callable:
        """Get tool by name"""
        if tool_name not in self._registry:
            available = ", ".join(self._registry.keys())
            raise ValueError(f"Tool '{tool_name}' not found. Available tools: {available}")
        return self._registry[tool_name]

    def get_all_tools(self) -> Dict[str, Callable]:
        """Get all registered tools"""
        return self._registry.copy()

    def list_tools(self) -> list:
        """List all available tool names"""
        return list(self._registry.keys())

    def get_tool_info(self, tool_name: str) -> Dict[str, Any]:
        """Get metadata about a tool"""
        tool = self.get_tool(tool_name)
        return {
            "name": tool_name,
            "description": tool.__doc__,
            "inputs": getattr(tool, "__tool_inputs__", []),
            "required": getattr(tool, "__tool_required__", []),
            "outputs": getattr(tool, "__tool_outputs__", [])
        }

    def get_tool_definitions(self) -> List[Dict[str, Any]]:
        """Metadata for every tool, for inclusion in prompts"""
        return [self.get_tool_info(name) for name in self._registry]


def create_tool_registry(session_manager, semantic_editor) -> ToolRegistry:
    """
    Factory function to create a tool registry with the built-in tools

    Args:
        session_manager: Resolves document paths against the current project
        semantic_editor: Engine behind executeMarkdownEdits

    Returns:
        ToolRegistry with askQuestion, taskComplete and the document tools
    """
    from .document_tools import DocumentTools
    from .interaction_tools import ask_question, task_complete

    registry = ToolRegistry()
    documents = DocumentTools(session_manager, semantic_editor)

    registry.register(
        "askQuestion",
        ask_question,
        description="Ask the user a question and wait for the answer before continuing",
        inputs=["question", "context"],
        required=["question"],
        outputs=["needsChatInteraction", "chatQuestion"]
    )
    registry.register(
        "taskComplete",
        task_complete,
        description="Signal that the current task is finished and hand results to the next step",
        inputs=["summary", "nextStepType", "contextForNext"],
        required=["summary"],
        outputs=["summary", "nextStepType", "contextForNext"]
    )
    registry.register(
        "readMarkdownFile",
        documents.read_markdown_file,
        description=(
            "Read a markdown file of the current project and return its content and table of contents; "
            "pass sid (and optionally lineRange) to read a single section"
        ),
        inputs=["path", "sid", "lineRange"],
        required=["path"],
        outputs=["content", "toc"]
    )
    registry.register(
        "executeMarkdownEdits",
        documents.execute_markdown_edits,
        description="Apply sid-addressed semantic edit intents to a markdown file of the current project",
        inputs=["targetFile", "intents"],
        required=["targetFile", "intents"],
        outputs=["success", "totalIntents", "successfulIntents", "failedIntents"]
    )

    return registry


__all__ = ["ToolRegistry", "create_tool_registry"]
