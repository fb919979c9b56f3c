"""
Tests for SpecialistExecutor

The model is a langchain FakeListChatModel returning canned JSON tool plans.
"""
import json
import pytest
from unittest.mock import AsyncMock, MagicMock

from langchain_core.language_models.fake_chat_models import FakeListChatModel

from srs_writer.agents.core.errors import PersistenceError
from srs_writer.agents.core.iteration_policy import IterationPolicyResolver, IterationLimitsConfig
from srs_writer.agents.core.prompt_assembler import PromptAssembler
from srs_writer.agents.core.specialist_executor import SpecialistExecutor
from srs_writer.agents.llm import LangChainModelClient
from srs_writer.agents.schemas import SpecialistConfig, IterationConfig, ToolCallRequest
from srs_writer.agents.tools.tool_registry import ToolRegistry
from srs_writer.agents.tools.interaction_tools import ask_question


def plan(*calls, thought="working"):
    return json.dumps({
        "thought": thought,
        "tool_calls": [{"name": name, "args": args} for name, args in calls],
    })


def complete(summary="Wrote the FR section", **extra):
    return plan(("taskComplete", {"summary": summary, **extra}))


class RecordingModelClient(LangChainModelClient):
    """Model client that keeps every prompt it sends"""

    def __init__(self):
        self.prompts = []

    async def send_request(self, model, prompt):
        self.prompts.append(prompt)
        return await super().send_request(model, prompt)


def build_tools() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register("askQuestion", ask_question, "Ask the user", inputs=["question", "context"], required=["question"])
    registry.register(
        "lookupTerm",
        lambda term: {"term": term, "definition": "A unit of work"},
        "Look up a glossary term",
        inputs=["term"],
        required=["term"],
    )
    return registry


class TestSpecialistExecutor:
    """Test suite for SpecialistExecutor"""

    @pytest.fixture
    def tools(self):
        return build_tools()

    @pytest.fixture
    def client(self):
        return RecordingModelClient()

    @pytest.fixture
    def log_service(self):
        service = MagicMock()
        service.record_tool_execution = AsyncMock()
        service.record_lifecycle_event = AsyncMock()
        return service

    @pytest.fixture
    def context(self):
        return {
            "userRequirements": "An online shop selling books",
            "language": "en",
            "currentStep": {"step": 1, "specialist": "tester", "description": "Write FRs"},
            "dependentResults": [],
        }

    def make_executor(self, tools, client, log_service=None, global_default=10, registry=None):
        policy = IterationPolicyResolver(registry, IterationLimitsConfig(global_default=global_default))
        return SpecialistExecutor(
            tool_registry=tools,
            prompt_assembler=PromptAssembler(registry, tools),
            model_client=client,
            specialist_registry=registry,
            iteration_policy=policy,
            session_log_service=log_service,
        )

    @pytest.mark.asyncio
    async def test_completes_on_task_complete(self, tools, client, context):
        """Test a specialist finishing in its first iteration"""
        executor = self.make_executor(tools, client)
        model = FakeListChatModel(responses=[complete(contextForNext={"file": "SRS.md"})])

        output = await executor.execute("tester", context, model)

        assert output.success
        assert output.content == "Wrote the FR section"
        assert output.context_for_next == {"file": "SRS.md"}
        assert output.structured_data["nextStepType"] == "TASK_FINISHED"
        assert output.metadata["iterations"] == 1
        assert output.metadata["iteration_source"] == "globalDefault"
        assert "An online shop selling books" in client.prompts[0]

    @pytest.mark.asyncio
    async def test_tool_results_feed_next_iteration(self, tools, client, context):
        """Test that tool output reaches the next prompt"""
        executor = self.make_executor(tools, client)
        model = FakeListChatModel(responses=[plan(("lookupTerm", {"term": "order"})), complete()])

        output = await executor.execute("tester", context, model)

        assert output.success
        assert output.metadata["iterations"] == 2
        assert output.metadata["tool_calls"] == 1
        assert "Iteration 1 - Tool Results" in client.prompts[1]
        assert "A unit of work" in client.prompts[1]

    @pytest.mark.asyncio
    async def test_iteration_limit(self, tools, client, context):
        """Test that running out of iterations is a failure"""
        executor = self.make_executor(tools, client, global_default=2)
        model = FakeListChatModel(responses=[plan(thought="still thinking")])

        output = await executor.execute("tester", context, model)

        assert not output.success
        assert output.error == "Specialist tester reached maximum iterations (2) without completing the task"
        assert len(client.prompts) == 2

    @pytest.mark.asyncio
    async def test_unparseable_response_uses_an_iteration(self, tools, client, context):
        """Test that a non-JSON reply is reported back to the model"""
        executor = self.make_executor(tools, client)
        model = FakeListChatModel(responses=["I will now write the document.", complete()])

        output = await executor.execute("tester", context, model)

        assert output.success
        assert output.metadata["iterations"] == 2
        assert "not a valid tool plan" in client.prompts[1]

    @pytest.mark.asyncio
    async def test_unknown_tool_error_is_enhanced(self, tools, client, context):
        """Test that the model sees guidance for an unknown tool"""
        executor = self.make_executor(tools, client)
        model = FakeListChatModel(responses=[plan(("writeFile", {"path": "SRS.md"})), complete()])

        output = await executor.execute("tester", context, model)

        assert output.success
        assert "CRITICAL ERROR" in client.prompts[1]
        assert "Stop retrying this tool immediately" in client.prompts[1]

    @pytest.mark.asyncio
    async def test_execute_tool_calls(self, tools, client):
        """Test direct tool execution with enhanced and pass-through errors"""
        def explode():
            raise RuntimeError("Something odd happened")

        tools.register("explode", explode, "Always fails", inputs=[])
        executor = self.make_executor(tools, client)

        results = await executor.execute_tool_calls([
            ToolCallRequest(name="lookupTerm", args={"term": "cart"}),
            {"name": "lookupTerm", "args": {}},
            {"name": "explode", "args": {}},
        ])

        assert results[0].success
        assert results[0].result["term"] == "cart"
        assert not results[1].success
        assert results[1].error.startswith("PARAMETER ERROR")
        assert results[1].error.endswith("Original error: Missing required parameter: term")
        assert results[2].error == "Something odd happened"

    @pytest.mark.asyncio
    async def test_ask_question_suspends_and_resumes(self, tools, client, context):
        """Test suspending on a user question and continuing with the answer"""
        executor = self.make_executor(tools, client)
        model = FakeListChatModel(responses=[
            plan(("askQuestion", {"question": "Which payment methods?"})),
            complete(summary="Wrote payment requirements"),
        ])

        suspended = await executor.execute("tester", context, model)

        assert not suspended.success
        assert suspended.needs_chat_interaction
        assert suspended.question == "Which payment methods?"
        assert suspended.error == "User interaction required"
        assert suspended.resume_state.iteration == 1
        assert suspended.resume_state.context_for_this_step == context

        resume_state = suspended.resume_state.model_copy(update={"user_response": "Card and PayPal"})
        output = await executor.execute("tester", context, model, resume_state=resume_state)

        assert output.success
        assert output.content == "Wrote payment requirements"
        assert output.metadata["iterations"] == 2
        assert output.metadata["loop_iterations"] == 1
        assert "Iteration 1 - User Response: Card and PayPal" in client.prompts[-1]

    @pytest.mark.asyncio
    async def test_continue_same_specialist(self, tools, client, context):
        """Test that CONTINUE_SAME_SPECIALIST keeps the loop going"""
        executor = self.make_executor(tools, client)
        model = FakeListChatModel(responses=[
            complete(summary="Part one", nextStepType="CONTINUE_SAME_SPECIALIST"),
            complete(summary="Part two"),
        ])

        output = await executor.execute("tester", context, model)

        assert output.success
        assert output.content == "Part two"
        assert output.metadata["iterations"] == 2

    @pytest.mark.asyncio
    async def test_model_failure(self, tools, context):
        """Test that a model error ends the run with a failure"""
        client = MagicMock()
        client.send_request = AsyncMock(side_effect=RuntimeError("quota exhausted"))
        executor = self.make_executor(tools, client)

        output = await executor.execute("tester", context, model=object())

        assert not output.success
        assert output.error == "Model request failed: quota exhausted"

    @pytest.mark.asyncio
    async def test_completion_is_logged(self, tools, client, context, log_service):
        """Test that a completed task is recorded in the session log"""
        executor = self.make_executor(tools, client, log_service=log_service)
        model = FakeListChatModel(responses=[complete()])

        await executor.execute("tester", context, model)

        log_service.record_tool_execution.assert_awaited_once()
        entry = log_service.record_tool_execution.await_args.args[0]
        assert entry.executor == "specialist"
        assert entry.tool_name == "taskComplete"
        assert entry.metadata["specialistId"] == "tester"
        assert entry.metadata["iterationCount"] == 1

    @pytest.mark.asyncio
    async def test_logging_failure_does_not_fail_task(self, tools, client, context, log_service):
        """Test that session log errors are swallowed with a warning"""
        log_service.record_tool_execution.side_effect = PersistenceError("disk full")
        executor = self.make_executor(tools, client, log_service=log_service)
        model = FakeListChatModel(responses=[complete()])

        output = await executor.execute("tester", context, model)

        assert output.success

    @pytest.mark.asyncio
    async def test_specialist_iteration_config(self, tools, client, context):
        """Test that the registry's max_iterations is used"""
        registry = MagicMock()
        registry.get_specialist.return_value = SpecialistConfig(
            id="tester",
            name="Tester",
            category="content",
            iteration_config=IterationConfig(max_iterations=1),
            body="Write precise requirements.",
        )
        executor = self.make_executor(tools, client, registry=registry)
        model = FakeListChatModel(responses=[plan(thought="no tools")])

        output = await executor.execute("tester", context, model)

        assert not output.success
        assert output.metadata["max_iterations"] == 1
        assert output.metadata["iteration_source"] == "specialist_config.iteration_config.max_iterations[tester]"
        assert "Write precise requirements." in client.prompts[0]
        assert executor.get_specialist_name("tester") == "Tester"

    def test_specialist_name_falls_back_to_id(self, tools, client):
        """Test display names without a registry"""
        executor = self.make_executor(tools, client)
        assert executor.get_specialist_name("fr_writer") == "fr_writer"

    @pytest.mark.asyncio
    async def test_progress_callback(self, tools, client, context):
        """Test that progress messages are reported"""
        messages = []
        executor = self.make_executor(tools, client)
        model = FakeListChatModel(responses=[complete()])

        await executor.execute("tester", context, model, progress_callback=messages.append)

        assert messages[0] == "tester: iteration 1/10"
        assert messages[-1] == "✓ tester completed in 1 iterations"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
