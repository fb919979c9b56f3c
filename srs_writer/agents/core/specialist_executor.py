"""
Specialist Executor - Runs one specialist against one task

Responsibilities:
- Assemble the prompt and call the model, at most max_iterations times
- Execute the tool calls the model requests
- Turn tool errors into guidance the model can act on
- Suspend on user questions and resume from the saved state
- Record task completion in the session log

Per invocation the executor moves through:
    ASSEMBLING_PROMPT -> AWAITING_MODEL -> (EXECUTING_TOOLS -> AWAITING_MODEL)* -> COMPLETED | FAILED
Running out of iterations is a failure, never a silent truncation.
"""
import json
import logging
import time
from typing import Dict, Any, List, Optional, Callable, Union

from langchain_core.exceptions import OutputParserException
from langchain_core.output_parsers import PydanticOutputParser

from srs_writer.agents.schemas import (
    SpecialistPlan,
    SpecialistOutput,
    SpecialistResumeState,
    ToolCallRequest,
    ToolCallResult,
    ToolExecutionEntry,
    Session,
    now_iso,
)
from .errors import IterationLimitExceeded
from .error_enhancer import ToolErrorEnhancer, ErrorClassification
from .history_manager import TokenAwareHistoryManager
from .iteration_policy import IterationPolicyResolver
from .prompt_assembler import SpecialistTemplateLoader

logger = logging.getLogger(__name__)

TASK_COMPLETE_TOOL = "taskComplete"
CONTINUE_SAME_SPECIALIST = "CONTINUE_SAME_SPECIALIST"


class SpecialistExecutor:
    """Executes specialists in a bounded model/tool loop"""

    def __init__(
        self,
        tool_registry,
        prompt_assembler,
        model_client,
        specialist_registry=None,
        iteration_policy: Optional[IterationPolicyResolver] = None,
        session_log_service=None,
        template_loader: Optional[SpecialistTemplateLoader] = None,
        history_manager: Optional[TokenAwareHistoryManager] = None,
        error_enhancer: Optional[ToolErrorEnhancer] = None
    ):
        """
        Initialize Specialist Executor

        Args:
            tool_registry: Anything with `async execute_tool(name, args)`
            prompt_assembler: Anything with `async assemble_specialist_prompt(specialist_id, context)`
            model_client: Anything with `async send_request(model, prompt) -> str`
            specialist_registry: Resolves display names, iteration config and templates
            iteration_policy: Max iterations per specialist
            session_log_service: Receives completion records (best-effort)
        """
        self.tool_registry = tool_registry
        self.prompt_assembler = prompt_assembler
        self.model_client = model_client
        self.specialist_registry = specialist_registry
        self.iteration_policy = iteration_policy or IterationPolicyResolver(specialist_registry)
        self.session_log_service = session_log_service
        self.template_loader = template_loader or SpecialistTemplateLoader(specialist_registry)
        self.history_manager = history_manager or TokenAwareHistoryManager(self.iteration_policy.get_history_config())
        self.error_enhancer = error_enhancer or ToolErrorEnhancer()
        self.parser = PydanticOutputParser(pydantic_object=SpecialistPlan)

    async def execute(
        self,
        specialist_id: str,
        context: Dict[str, Any],
        model: Any,
        resume_state: Optional[SpecialistResumeState] = None,
        progress_callback: Optional[Callable[[str], None]] = None
    ) -> SpecialistOutput:
        """
        Run a specialist until it completes, asks the user, or runs out of iterations

        Args:
            specialist_id: Registry id of the specialist
            context: Step context (userRequirements, sessionData, currentStep, dependentResults, ...)
            model: Opaque model handle forwarded to the model client
            resume_state: State saved when the specialist last asked the user a question

        Returns:
            SpecialistOutput; never raises for model, parsing or tool failures
        """
        def log(msg: str):
            if progress_callback:
                progress_callback(msg)
            logger.info(f"[SpecialistExecutor] {msg}")

        started = time.perf_counter()
        limit = self.iteration_policy.get_max_iterations(specialist_id)
        max_iterations = limit.max_iterations
        if not isinstance(max_iterations, int) or max_iterations < 1:
            logger.warning(
                f"[SpecialistExecutor] Non-positive max iterations {max_iterations!r} for {specialist_id} "
                f"(source {limit.source}); using 1"
            )
            max_iterations = 1

        internal_history: List[str] = []
        iteration = 0
        if resume_state is not None:
            internal_history = list(resume_state.internal_history)
            iteration = resume_state.iteration
            context = context or resume_state.context_for_this_step
            if resume_state.user_response:
                internal_history.append(f"Iteration {iteration} - User Response: {resume_state.user_response}")
            log(f"Resuming {specialist_id} after iteration {iteration}")

        templates = self.template_loader.load_specialist_templates(specialist_id)
        loop_iterations = 0
        tool_call_count = 0

        def metadata() -> Dict[str, Any]:
            return {
                "specialist": specialist_id,
                "iterations": iteration,
                "loop_iterations": loop_iterations,
                "max_iterations": max_iterations,
                "iteration_source": limit.source,
                "tool_calls": tool_call_count,
                "execution_time": (time.perf_counter() - started) * 1000,
                "timestamp": now_iso(),
            }

        while iteration < max_iterations:
            iteration += 1
            loop_iterations += 1
            log(f"{specialist_id}: iteration {iteration}/{max_iterations}")

            history = self.history_manager.compress_history(internal_history, iteration)
            prompt_context = self._build_prompt_context(context, history, templates)
            try:
                prompt = await self.prompt_assembler.assemble_specialist_prompt(specialist_id, prompt_context)
                response_text = await self.model_client.send_request(model, prompt)
            except Exception as e:
                logger.error(f"[SpecialistExecutor] Model request for {specialist_id} failed: {e}", exc_info=True)
                return SpecialistOutput(success=False, error=f"Model request failed: {e}", metadata=metadata())

            try:
                plan = self.parser.parse(response_text)
            except OutputParserException as e:
                logger.warning(f"[SpecialistExecutor] Unparseable response from {specialist_id}: {e}")
                internal_history.append(
                    f"Iteration {iteration} - Tool Results: Your response was not a valid tool plan ({e}). "
                    f"Reply with JSON matching the required format."
                )
                continue

            internal_history.append(f"Iteration {iteration} - AI Plan: {plan.model_dump_json(exclude_none=True)}")
            if not plan.tool_calls:
                internal_history.append(
                    f"Iteration {iteration} - Tool Results: No tool calls were made. "
                    f"Call {TASK_COMPLETE_TOOL} when the task is finished."
                )
                continue

            completion = next((c for c in plan.tool_calls if c.name == TASK_COMPLETE_TOOL), None)
            calls = [c for c in plan.tool_calls if c.name != TASK_COMPLETE_TOOL]

            results = await self.execute_tool_calls(calls) if calls else []
            tool_call_count += len(results)
            if results:
                internal_history.append(f"Iteration {iteration} - Tool Results: {self._format_results(results)}")

            interaction = next(
                (r for r in results if r.success and isinstance(r.result, dict) and r.result.get("needsChatInteraction")),
                None
            )
            if interaction is not None:
                question = interaction.result.get("chatQuestion") or "The specialist needs more information."
                log(f"{specialist_id} is waiting for the user: {question}")
                return SpecialistOutput(
                    success=False,
                    error="User interaction required",
                    needs_chat_interaction=True,
                    question=question,
                    resume_state=SpecialistResumeState(
                        iteration=iteration,
                        internal_history=internal_history,
                        current_plan=plan,
                        tool_results=results,
                        context_for_this_step=context,
                    ),
                    metadata=metadata(),
                )

            if completion is not None:
                args = completion.args
                next_step_type = args.get("nextStepType", "TASK_FINISHED")
                if next_step_type == CONTINUE_SAME_SPECIALIST and iteration < max_iterations:
                    internal_history.append(
                        f"Iteration {iteration} - Tool Results: Progress recorded: {args.get('summary', '')}"
                    )
                    continue

                output = SpecialistOutput(
                    success=True,
                    content=args.get("summary", ""),
                    context_for_next=args.get("contextForNext"),
                    structured_data={"nextStepType": next_step_type, **args},
                    metadata=metadata(),
                )
                log(f"✓ {specialist_id} completed in {iteration} iterations")
                await self._record_completion(specialist_id, args, output.metadata["execution_time"], iteration)
                return output

        error = IterationLimitExceeded(specialist_id, max_iterations)
        log(f"✗ {error}")
        return SpecialistOutput(success=False, error=str(error), metadata=metadata())

    async def execute_tool_calls(self, tool_calls: List[Union[ToolCallRequest, Dict[str, Any]]]) -> List[ToolCallResult]:
        """
        Execute tool calls in order

        A failing call becomes a failed ToolCallResult with an enhanced error
        message; it never aborts the remaining calls.
        """
        results = []
        for call in tool_calls:
            if not isinstance(call, ToolCallRequest):
                call = ToolCallRequest.model_validate(call)
            try:
                result = await self.tool_registry.execute_tool(call.name, call.args)
                results.append(ToolCallResult(tool_name=call.name, success=True, result=result))
            except Exception as e:
                raw_error = str(e)
                classification = self.error_enhancer.classify(raw_error)
                enhanced = self.error_enhancer.enhance(call.name, raw_error)
                if classification is not ErrorClassification.UNCLASSIFIED:
                    logger.info(f"[SpecialistExecutor] {call.name} failed ({classification.value}): {raw_error}")
                else:
                    logger.warning(f"[SpecialistExecutor] {call.name} failed: {raw_error}")
                results.append(ToolCallResult(tool_name=call.name, success=False, error=enhanced))
        return results

    def get_specialist_name(self, specialist_id: str) -> str:
        """Display name from the registry, falling back to the id"""
        specialist = self.specialist_registry.get_specialist(specialist_id) if self.specialist_registry else None
        return specialist.name if specialist else specialist_id

    async def _record_completion(self, specialist_id: str, args: Dict[str, Any], execution_time: float, iterations: int):
        if not specialist_id or self.session_log_service is None:
            return

        specialist_name = self.get_specialist_name(specialist_id)
        try:
            await self.session_log_service.record_tool_execution(ToolExecutionEntry(
                executor="specialist",
                tool_name=TASK_COMPLETE_TOOL,
                operation=f"Specialist {specialist_name} completed task: {args.get('summary', '')}",
                success=True,
                execution_time=execution_time,
                metadata={
                    "specialistId": specialist_id,
                    "specialistName": specialist_name,
                    "iterationCount": iterations,
                    "taskCompleteArgs": args,
                },
            ))
        except Exception as e:
            logger.warning(f"[SpecialistExecutor] Could not record completion of {specialist_id}: {e}")

    @staticmethod
    def _build_prompt_context(context: Dict[str, Any], history: List[str], templates: Dict[str, str]) -> Dict[str, Any]:
        session = context.get("sessionData") or {}
        if isinstance(session, Session):
            session = session.model_dump(by_alias=True)

        return {
            "userRequirements": context.get("userRequirements") or context.get("userInput", ""),
            "language": context.get("language", "en"),
            "projectMetadata": {
                "projectName": session.get("projectName"),
                "baseDir": session.get("baseDir"),
                "timestamp": now_iso(),
            },
            "structuredContext": {
                "currentStep": context.get("currentStep"),
                "dependentResults": context.get("dependentResults", []),
                "internalHistory": history,
            },
            **templates,
        }

    @staticmethod
    def _format_results(results: List[ToolCallResult]) -> str:
        return json.dumps([r.model_dump(exclude_none=True) for r in results], ensure_ascii=False, default=str)


__all__ = ["SpecialistExecutor", "TASK_COMPLETE_TOOL"]
