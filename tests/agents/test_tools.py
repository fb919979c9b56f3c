"""
Tests for the tool registry and the built-in tools
"""
import json
import pytest
import tempfile
import shutil
from pathlib import Path

from srs_writer.agents.core.errors import ToolExecutionError, NotFoundError, OutOfRangeError, ValidationError
from srs_writer.agents.core.semantic_editor import SemanticEditor
from srs_writer.agents.core.session_manager import SessionManager
from srs_writer.agents.tools.tool_registry import ToolRegistry, create_tool_registry
from srs_writer.agents.tools.interaction_tools import ask_question, task_complete


SRS = "# Overview\nDraft.\n\n# Requirements\nTBD\n"


class TestToolRegistry:
    """Test suite for ToolRegistry"""

    @pytest.fixture
    def registry(self):
        registry = ToolRegistry()

        def add(left_value, right_value):
            return left_value + right_value

        async def echo(message):
            return {"echo": message}

        registry.register("add", add, "Add two numbers", inputs=["leftValue", "rightValue"], required=["leftValue"])
        registry.register("echo", echo, "Echo a message", inputs=["message"], required=["message"])
        return registry

    @pytest.mark.asyncio
    async def test_execute_maps_camel_case_args(self, registry):
        """Test that camelCase arguments reach snake_case parameters"""
        assert await registry.execute_tool("add", {"leftValue": 2, "rightValue": 3}) == 5

    @pytest.mark.asyncio
    async def test_execute_async_tool(self, registry):
        """Test that coroutine tools are awaited"""
        assert await registry.execute_tool("echo", {"message": "hi"}) == {"echo": "hi"}

    @pytest.mark.asyncio
    async def test_unknown_args_are_dropped(self, registry):
        """Test that arguments outside the declared inputs are ignored"""
        assert await registry.execute_tool("echo", {"message": "hi", "extra": 1}) == {"echo": "hi"}

    @pytest.mark.asyncio
    async def test_unknown_tool(self, registry):
        """Test calling a tool that was never registered"""
        with pytest.raises(ToolExecutionError, match="Tool implementation not found: writeFile"):
            await registry.execute_tool("writeFile", {})

    @pytest.mark.asyncio
    async def test_missing_required_parameter(self, registry):
        """Test that required inputs are enforced"""
        with pytest.raises(ToolExecutionError, match="Missing required parameter: message"):
            await registry.execute_tool("echo", {})

    def test_tool_info(self, registry):
        """Test tool metadata"""
        info = registry.get_tool_info("add")

        assert info["name"] == "add"
        assert info["description"] == "Add two numbers"
        assert info["inputs"] == ["leftValue", "rightValue"]
        assert info["required"] == ["leftValue"]

    def test_listing(self, registry):
        """Test listing and lookups"""
        assert registry.list_tools() == ["add", "echo"]
        assert registry.has_tool("echo")
        assert not registry.has_tool("nope")
        assert len(registry.get_tool_definitions()) == 2
        with pytest.raises(ValueError, match="Available tools: add, echo"):
            registry.get_tool("nope")

    def test_unregister(self, registry):
        """Test removing a tool"""
        registry.unregister("add")
        assert registry.list_tools() == ["echo"]


class TestInteractionTools:
    """askQuestion and taskComplete"""

    def test_ask_question(self):
        """Test that askQuestion requests a chat interaction"""
        result = ask_question("Which language?", context="FR section")
        assert result == {"needsChatInteraction": True, "chatQuestion": "Which language?", "context": "FR section"}

    def test_task_complete_defaults(self):
        """Test the completion payload defaults"""
        result = task_complete("Wrote the FR section")
        assert result == {"summary": "Wrote the FR section", "nextStepType": "TASK_FINISHED", "contextForNext": {}}


class TestDocumentTools:
    """Built-in tools wired by create_tool_registry"""

    @pytest.fixture
    def temp_dir(self):
        temp = Path(tempfile.mkdtemp())
        yield temp
        if temp.exists():
            shutil.rmtree(temp)

    @pytest.fixture
    def manager(self, temp_dir):
        manager = SessionManager(temp_dir)
        session = manager.create_new_session("webshop")
        project_dir = Path(session.base_dir)
        project_dir.mkdir()
        (project_dir / "SRS.md").write_text(SRS, encoding="utf-8")
        return manager

    @pytest.fixture
    def registry(self, manager):
        return create_tool_registry(manager, SemanticEditor())

    def test_builtin_tools(self, registry):
        """Test that the built-in tools are registered"""
        assert set(registry.list_tools()) == {"askQuestion", "taskComplete", "readMarkdownFile", "executeMarkdownEdits"}

    @pytest.mark.asyncio
    async def test_read_markdown_file(self, registry):
        """Test reading a project file with its TOC"""
        result = await registry.execute_tool("readMarkdownFile", {"path": "SRS.md"})

        assert result["content"] == SRS
        assert [node["sid"] for node in result["toc"]] == ["/overview", "/requirements"]
        assert result["toc"][0]["endLine"] == 3
        assert "- Overview (/overview)" in result["outline"]

    @pytest.mark.asyncio
    async def test_read_section(self, registry):
        """Test reading one section, and a line range of its body"""
        result = await registry.execute_tool("readMarkdownFile", {"path": "SRS.md", "sid": "/overview"})

        assert result["content"] == "# Overview\nDraft.\n"
        assert result["section"]["startLine"] == 1
        assert result["section"]["endLine"] == 3

        result = await registry.execute_tool("readMarkdownFile", {
            "path": "SRS.md",
            "sid": "/requirements",
            "lineRange": {"startLine": 1, "endLine": 1},
        })
        assert result["content"] == "TBD"
        assert result["section"]["startLine"] == 5

    @pytest.mark.asyncio
    async def test_read_unknown_section(self, registry):
        """Test that an unknown sid lists similar sids"""
        with pytest.raises(NotFoundError, match="Similar sids: /requirements") as exc_info:
            await registry.execute_tool("readMarkdownFile", {"path": "SRS.md", "sid": "/requirement"})

        assert exc_info.value.suggestions["availableSids"] == ["/overview", "/requirements"]

    @pytest.mark.asyncio
    async def test_read_section_out_of_range(self, registry):
        """Test that a line range past the section body is rejected"""
        with pytest.raises(OutOfRangeError, match="valid: 1-1") as exc_info:
            await registry.execute_tool("readMarkdownFile", {
                "path": "SRS.md",
                "sid": "/requirements",
                "lineRange": {"startLine": 1, "endLine": 4},
            })

        assert exc_info.value.valid_range == (1, 1)

    @pytest.mark.asyncio
    async def test_read_section_malformed_sid(self, registry):
        """Test that a malformed sid comes with a corrected suggestion"""
        with pytest.raises(ValidationError, match="did you mean '/overview'"):
            await registry.execute_tool("readMarkdownFile", {"path": "SRS.md", "sid": "overview"})

    @pytest.mark.asyncio
    async def test_read_missing_file(self, registry):
        """Test reading a file that does not exist"""
        with pytest.raises(FileNotFoundError, match="File not found"):
            await registry.execute_tool("readMarkdownFile", {"path": "missing.md"})

    @pytest.mark.asyncio
    async def test_paths_cannot_escape_project(self, registry):
        """Test that paths outside the project are rejected"""
        with pytest.raises(PermissionError, match="Access denied"):
            await registry.execute_tool("readMarkdownFile", {"path": "../.session-log/x.md"})

    @pytest.mark.asyncio
    async def test_execute_markdown_edits(self, registry, manager):
        """Test editing a project file through the tool"""
        result = await registry.execute_tool("executeMarkdownEdits", {
            "targetFile": "SRS.md",
            "intents": [{
                "type": "replace_section_content_only",
                "target": {"sid": "/requirements", "lineRange": {"startLine": 1, "endLine": 1}},
                "content": "FR-1 The shop lists products.",
                "reason": "first requirement",
            }],
        })

        assert result["success"] is True
        assert result["successfulIntents"] == 1
        path = Path(manager.get_current_session().base_dir) / "SRS.md"
        assert path.read_text(encoding="utf-8").endswith("# Requirements\nFR-1 The shop lists products.\n")

    @pytest.mark.asyncio
    async def test_execute_markdown_edits_from_json_string(self, registry):
        """Test intents passed as a JSON string"""
        intents = json.dumps([{
            "type": "insert_section_and_title",
            "target": {"sid": "/overview", "insertionPosition": "after"},
            "content": "# Scope\nOnline orders only.",
        }])
        result = await registry.execute_tool("executeMarkdownEdits", {"targetFile": "SRS.md", "intents": intents})
        assert result["success"] is True

    @pytest.mark.asyncio
    async def test_execute_markdown_edits_invalid_json(self, registry):
        """Test that unparseable intents raise a format error"""
        with pytest.raises(ValueError, match="Invalid JSON in intents"):
            await registry.execute_tool("executeMarkdownEdits", {"targetFile": "SRS.md", "intents": "[{oops"})

    @pytest.mark.asyncio
    async def test_malformed_intent_is_reported(self, registry):
        """Test that a malformed intent is listed as failed"""
        result = await registry.execute_tool("executeMarkdownEdits", {
            "targetFile": "SRS.md",
            "intents": [{"type": "rewrite_everything", "target": {"sid": "/overview"}}],
        })

        assert result["success"] is False
        assert result["totalIntents"] == 1
        assert "malformed" in result["failedIntents"][0]["error"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
