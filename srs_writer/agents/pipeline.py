"""
Main Pipeline - Wires the orchestration core together

This module constructs one instance of every service and hands each its
collaborators:
SessionManager → SessionLogService → SpecialistRegistry → IterationPolicyResolver
→ ToolRegistry → PromptAssembler → SpecialistExecutor → PlanExecutor

Usage:
    pipeline = SRSWriterPipeline(workspace_root=Path("~/srs").expanduser())
    pipeline.session_manager.create_new_session("checkout-service")
    result = await pipeline.run_plan(plan, user_input="Write the SRS for checkout")
"""
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Callable, Mapping, Union

from srs_writer.agents.core.session_manager import SessionManager
from srs_writer.agents.core.specialist_registry import SpecialistRegistry
from srs_writer.agents.core.iteration_policy import IterationPolicyResolver
from srs_writer.agents.core.prompt_assembler import PromptAssembler, SpecialistTemplateLoader
from srs_writer.agents.core.specialist_executor import SpecialistExecutor
from srs_writer.agents.core.plan_executor import PlanExecutor
from srs_writer.agents.core.semantic_editor import SemanticEditor
from srs_writer.agents.llm import LangChainModelClient, create_chat_model
from srs_writer.agents.schemas import Plan, PlanExecutionResult
from srs_writer.services.session_log_service import SessionLogService

# Import tool registry
from srs_writer.agents.tools.tool_registry import create_tool_registry

logger = logging.getLogger(__name__)


class SRSWriterPipeline:
    """
    Application root of the orchestration core

    Owns the services for one workspace. The chat model is created on first
    use when none is passed in.
    """

    def __init__(
        self,
        workspace_root: Path,
        specialists_dir: Optional[Path] = None,
        model: Any = None,
        templates_dir: Optional[Path] = None
    ):
        """
        Initialize pipeline

        Args:
            workspace_root: Directory holding all projects and the session log
            specialists_dir: Specialist definitions (defaults to SPECIALISTS_DIR)
            model: Chat model handle (defaults to the configured Gemini model)
            templates_dir: Base directory for relative template paths
        """
        self.workspace_root = Path(workspace_root)
        self.workspace_root.mkdir(parents=True, exist_ok=True)
        self._model = model

        # Initialize components
        self.session_manager = SessionManager(self.workspace_root)
        self.session_log_service = SessionLogService(self.session_manager)
        self.specialist_registry = SpecialistRegistry(specialists_dir)
        self.scan_result = self.specialist_registry.scan_and_register()
        self.iteration_policy = IterationPolicyResolver(self.specialist_registry)
        self.semantic_editor = SemanticEditor()
        self.tool_registry = create_tool_registry(self.session_manager, self.semantic_editor)
        self.prompt_assembler = PromptAssembler(self.specialist_registry, self.tool_registry)
        self.specialist_executor = SpecialistExecutor(
            tool_registry=self.tool_registry,
            prompt_assembler=self.prompt_assembler,
            model_client=LangChainModelClient(),
            specialist_registry=self.specialist_registry,
            iteration_policy=self.iteration_policy,
            session_log_service=self.session_log_service,
            template_loader=SpecialistTemplateLoader(self.specialist_registry, templates_dir),
        )
        self.plan_executor = PlanExecutor(self.specialist_executor, self.session_log_service)

        logger.info(
            f"[Pipeline] Ready for {self.workspace_root} "
            f"({self.scan_result.scan_stats.valid_count} specialists, "
            f"{len(self.tool_registry.list_tools())} tools)"
        )

    @property
    def model(self) -> Any:
        if self._model is None:
            self._model = create_chat_model()
        return self._model

    async def run_plan(
        self,
        plan: Union[Plan, Dict[str, Any]],
        user_input: str,
        progress_callback: Optional[Callable[[str], None]] = None
    ) -> PlanExecutionResult:
        """
        Execute a plan against the current session

        Args:
            plan: Plan instance or its dict form
            user_input: The user's original request
            progress_callback: Optional callback for progress updates (msg: str) -> None
        """
        plan = plan if isinstance(plan, Plan) else Plan.model_validate(plan)
        return await self.plan_executor.execute(
            plan,
            self.session_manager.get_current_session(),
            self.model,
            user_input,
            progress_callback=progress_callback,
        )

    async def resume_from_step(
        self,
        plan: Union[Plan, Dict[str, Any]],
        from_step: int,
        completed_step_results: Mapping[int, Any],
        user_input: str,
        progress_callback: Optional[Callable[[str], None]] = None
    ) -> PlanExecutionResult:
        """Re-run a plan from from_step, reusing earlier results"""
        plan = plan if isinstance(plan, Plan) else Plan.model_validate(plan)
        return await self.plan_executor.resume_from_step(
            plan,
            from_step,
            completed_step_results,
            self.session_manager.get_current_session(),
            user_input,
            self.model,
            progress_callback=progress_callback,
        )

    async def answer(
        self,
        result: PlanExecutionResult,
        user_response: str,
        progress_callback: Optional[Callable[[str], None]] = None
    ) -> PlanExecutionResult:
        """Continue a plan that stopped on a user question"""
        return await self.plan_executor.continue_execution(
            result.result["resume_context"],
            user_response,
            self.model,
            progress_callback=progress_callback,
        )

    def get_execution_log(self) -> list:
        """Get execution log"""
        return self.plan_executor.execution_log.copy()


__all__ = ["SRSWriterPipeline"]
