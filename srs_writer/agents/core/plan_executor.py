"""
Plan Executor - Runs a plan's steps through the Specialist Executor

Responsibilities:
- Execute steps strictly in ascending step order, one at a time
- Feed earlier step results into later steps' context
- Stop at the first failed step and log the failure (best-effort)
- Suspend when a specialist asks the user a question, and continue afterwards
- Resume a plan from an arbitrary step with previously completed results

Plans are frozen; a resumed run works on a copy of the plan and a snapshot of
the completed results, never on live state.
"""
import logging
import time
from typing import Dict, Any, List, Optional, Callable, Mapping, Union

from srs_writer.agents.schemas import (
    Plan,
    PlanStep,
    StepResults,
    PlanIntent,
    PlanExecutionResult,
    SpecialistOutput,
    SpecialistResumeState,
    Session,
    ToolExecutionEntry,
    LifecycleEventEntry,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


class PlanExecutor:
    """
    Plan Executor - Drives a plan step by step

    Every terminal outcome is a PlanExecutionResult with intent
    plan_completed, plan_failed or user_interaction_required.
    """

    def __init__(self, specialist_executor, session_log_service=None):
        """
        Initialize Plan Executor

        Args:
            specialist_executor: Runs individual specialists
            session_log_service: Receives step and plan failure records (best-effort)
        """
        self.specialist_executor = specialist_executor
        self.session_log_service = session_log_service
        self.loop_states: Dict[str, SpecialistResumeState] = {}
        # Messages of the most recent run only
        self.execution_log: List[str] = []

    async def execute(
        self,
        plan: Plan,
        session_context: Optional[Session],
        model: Any,
        user_input: str,
        progress_callback: Optional[ProgressCallback] = None
    ) -> PlanExecutionResult:
        """
        Execute all steps of a plan

        Returns:
            PlanExecutionResult; failures never propagate as exceptions
        """
        started = time.perf_counter()
        self.execution_log = []
        self._log(f"Starting plan '{plan.description}' ({len(plan.steps)} steps)", progress_callback)
        try:
            return await self._execute_steps(
                plan,
                plan.ordered_steps(),
                StepResults(),
                session_context,
                user_input,
                model,
                progress_callback,
                started,
            )
        except Exception as e:
            logger.error(f"[PlanExecutor] Plan {plan.plan_id} raised: {e}", exc_info=True)
            return PlanExecutionResult(intent=PlanIntent.PLAN_FAILED, result={
                "plan_id": plan.plan_id,
                "error": f"Plan execution exception: {e}",
                "completed_steps": 0,
            })

    async def resume_from_step(
        self,
        plan: Plan,
        from_step: int,
        completed_step_results: Mapping[int, Any],
        session_context: Optional[Session],
        user_input: str,
        model: Any,
        progress_callback: Optional[ProgressCallback] = None
    ) -> PlanExecutionResult:
        """
        Run a plan starting at from_step

        Steps before from_step are not executed again; their results from
        completed_step_results are passed to the resumed steps as context.
        """
        started = time.perf_counter()
        self.execution_log = []
        try:
            plan_copy = plan.model_copy(deep=True)
            step_results = StepResults({
                int(number): self._as_output(output).model_copy(deep=True)
                for number, output in completed_step_results.items()
                if int(number) < from_step
            })
            remaining = [s for s in plan_copy.ordered_steps() if s.step >= from_step]

            self._log(
                f"Resuming plan '{plan_copy.description}' from step {from_step} "
                f"({len(step_results)} completed, {len(remaining)} remaining)",
                progress_callback,
            )
            return await self._execute_steps(
                plan_copy,
                remaining,
                step_results,
                session_context,
                user_input,
                model,
                progress_callback,
                started,
                resumed_from_step=from_step,
            )
        except Exception as e:
            logger.error(f"[PlanExecutor] Resume of plan {plan.plan_id} raised: {e}", exc_info=True)
            return PlanExecutionResult(intent=PlanIntent.PLAN_FAILED, result={
                "plan_id": plan.plan_id,
                "error": f"Resume execution exception: {e}",
                "resumed_from_step": from_step,
                "completed_steps": len(completed_step_results),
            })

    async def continue_execution(
        self,
        resume_context: Dict[str, Any],
        user_response: str,
        model: Any,
        progress_callback: Optional[ProgressCallback] = None
    ) -> PlanExecutionResult:
        """
        Continue a plan suspended on a user question

        The specialist's loop state comes from resume_context, or from
        restore_loop_state() when the context no longer carries it.

        Args:
            resume_context: The resume_context of a user_interaction_required result
            user_response: The user's answer
        """
        started = time.perf_counter()
        self.execution_log = []
        state = resume_context["plan_executor_state"]
        plan: Plan = state["plan"]
        current_step: int = state["current_step"]

        try:
            remaining = [s for s in plan.ordered_steps() if s.step >= current_step]
            if not remaining:
                raise ValueError(f"Plan {plan.plan_id} has no step {current_step} to continue")
            loop_state = resume_context.get("specialist_loop_state") or self.get_loop_state(remaining[0].specialist)
            if loop_state is None:
                raise ValueError(f"No saved loop state for specialist {remaining[0].specialist}")

            self._log(f"Continuing plan '{plan.description}' at step {current_step} with the user's answer", progress_callback)
            return await self._execute_steps(
                plan,
                remaining,
                state["step_results"],
                state.get("session_context"),
                state.get("user_input", ""),
                model,
                progress_callback,
                started,
                resume_state=loop_state.model_copy(update={"user_response": user_response}),
            )
        except Exception as e:
            logger.error(f"[PlanExecutor] Continuing plan {plan.plan_id} raised: {e}", exc_info=True)
            return PlanExecutionResult(intent=PlanIntent.PLAN_FAILED, result={
                "plan_id": plan.plan_id,
                "error": f"Resume execution exception: {e}",
                "failed_step": current_step,
            })

    def restore_loop_state(self, specialist_id: str, loop_state: Union[SpecialistResumeState, Dict[str, Any]]):
        """
        Store a suspended specialist's loop state

        continue_execution() falls back to it when the resume context it is
        given has no specialist_loop_state, e.g. after the context was saved
        and reloaded by the host.
        """
        if not isinstance(loop_state, SpecialistResumeState):
            loop_state = SpecialistResumeState.model_validate(loop_state)
        self.loop_states[specialist_id] = loop_state
        logger.info(f"[PlanExecutor] Restored loop state for {specialist_id} (iteration {loop_state.iteration})")

    def get_loop_state(self, specialist_id: str) -> Optional[SpecialistResumeState]:
        return self.loop_states.get(specialist_id)

    def get_specialist_name(self, specialist_id: str) -> str:
        try:
            return self.specialist_executor.get_specialist_name(specialist_id)
        except Exception as e:
            logger.warning(f"[PlanExecutor] Could not resolve name of {specialist_id}: {e}")
            return specialist_id

    # ---------------------------------------------------------------
    # Step loop
    # ---------------------------------------------------------------

    async def _execute_steps(
        self,
        plan: Plan,
        steps: List[PlanStep],
        step_results: StepResults,
        session_context: Optional[Session],
        user_input: str,
        model: Any,
        progress_callback: Optional[ProgressCallback],
        started: float,
        resumed_from_step: Optional[int] = None,
        resume_state: Optional[SpecialistResumeState] = None
    ) -> PlanExecutionResult:
        def finish(intent: PlanIntent, result: Dict[str, Any]) -> PlanExecutionResult:
            result.setdefault("plan_id", plan.plan_id)
            result["execution_time"] = (time.perf_counter() - started) * 1000
            if resumed_from_step is not None:
                result["resumed_from_step"] = resumed_from_step
            return PlanExecutionResult(intent=intent, result=result)

        for step in steps:
            specialist_name = self.get_specialist_name(step.specialist)
            self._log(f"Step {step.step}: {specialist_name} - {step.description}", progress_callback)

            step_started = time.perf_counter()
            output = await self._execute_specialist(
                step, step_results, session_context, user_input, model, plan, progress_callback, resume_state
            )
            resume_state = None
            step_time = (time.perf_counter() - step_started) * 1000

            if output.needs_chat_interaction:
                self._log(f"Step {step.step} is waiting for the user: {output.question}", progress_callback)
                if output.resume_state is not None:
                    self.loop_states[step.specialist] = output.resume_state
                return finish(PlanIntent.USER_INTERACTION_REQUIRED, {
                    "question": output.question,
                    "current_step": step.step,
                    "completed_steps": len(step_results),
                    "resume_context": {
                        "plan_executor_state": {
                            "plan": plan,
                            "current_step": step.step,
                            "step_results": step_results,
                            "session_context": session_context,
                            "user_input": user_input,
                        },
                        "specialist_loop_state": output.resume_state,
                    },
                })

            self.loop_states.pop(step.specialist, None)

            if not output.success:
                error = f"{specialist_name} execution failed: {output.error}"
                self._log(f"✗ Step {step.step} failed: {output.error}", progress_callback)
                await self._record_step_failure(plan, step, specialist_name, output, step_time)
                await self._record_plan_failure(plan, step, specialist_name, output, step_time, len(step_results))
                return finish(PlanIntent.PLAN_FAILED, {
                    "failed_step": step.step,
                    "error": error,
                    "completed_steps": len(step_results),
                    "failed_specialist": step.specialist,
                    "step_results": step_results,
                })

            step_results = step_results.add(step.step, output)
            self._log(f"✓ Step {step.step} completed", progress_callback)

        last_output = step_results[max(step_results)] if step_results else None
        if resumed_from_step is not None:
            summary = (
                f"Resumed plan '{plan.description}' from step {resumed_from_step}: "
                f"{len(steps)} steps executed successfully"
            )
        else:
            summary = f"Plan '{plan.description}' completed: {len(steps)} steps executed successfully"
        self._log(f"✓ {summary}", progress_callback)

        return finish(PlanIntent.PLAN_COMPLETED, {
            "summary": summary,
            "total_steps": len(plan.steps),
            "completed_steps": len(step_results),
            "step_results": step_results,
            "final_output": last_output.content if last_output else "",
        })

    async def _execute_specialist(
        self,
        step: PlanStep,
        step_results: StepResults,
        session_context: Optional[Session],
        user_input: str,
        model: Any,
        plan: Plan,
        progress_callback: Optional[ProgressCallback],
        resume_state: Optional[SpecialistResumeState] = None
    ) -> SpecialistOutput:
        session_data = self._session_data(session_context)
        context = {
            "userRequirements": user_input,
            "userInput": user_input,
            "language": step.context.get("language", "en"),
            "sessionData": session_data,
            "planId": plan.plan_id,
            "planDescription": plan.description,
            "currentStep": {
                "step": step.step,
                "specialist": step.specialist,
                "description": step.description,
                **step.context,
            },
            "dependentResults": [
                {
                    "step": number,
                    "specialist": result.metadata.get("specialist"),
                    "content": result.content,
                    "contextForNext": result.context_for_next,
                }
                for number, result in step_results.items()
            ],
        }

        try:
            return await self.specialist_executor.execute(
                step.specialist,
                context,
                model,
                resume_state=resume_state,
                progress_callback=progress_callback,
            )
        except Exception as e:
            logger.error(f"[PlanExecutor] Specialist {step.specialist} raised: {e}", exc_info=True)
            return SpecialistOutput(success=False, error=str(e) or e.__class__.__name__)

    # ---------------------------------------------------------------
    # Failure logging (best-effort)
    # ---------------------------------------------------------------

    async def _record_step_failure(
        self,
        plan: Plan,
        step: PlanStep,
        specialist_name: str,
        output: SpecialistOutput,
        step_time: float
    ):
        if self.session_log_service is None:
            return
        try:
            await self.session_log_service.record_tool_execution(ToolExecutionEntry(
                executor="plan_executor",
                tool_name="specialist_step_execution",
                operation=f"Step {step.step} {specialist_name} failed: {output.error}",
                success=False,
                error=output.error,
                execution_time=step_time,
                metadata={
                    "planId": plan.plan_id,
                    "stepNumber": step.step,
                    "specialistId": step.specialist,
                    "specialistName": specialist_name,
                    "iterations": output.metadata.get("iterations"),
                    "loopIterations": output.metadata.get("loop_iterations"),
                    "failureReason": output.error,
                },
            ))
        except Exception as e:
            logger.warning(f"[PlanExecutor] Could not record failure of step {step.step}: {e}")

    async def _record_plan_failure(
        self,
        plan: Plan,
        step: PlanStep,
        specialist_name: str,
        output: SpecialistOutput,
        step_time: float,
        completed_steps: int
    ):
        if self.session_log_service is None:
            return
        try:
            await self.session_log_service.record_lifecycle_event(LifecycleEventEntry(
                event_type="plan_failed",
                description=f'Plan "{plan.description}" failed: {output.error}',
                entity_id=plan.plan_id,
                metadata={
                    "planId": plan.plan_id,
                    "planDescription": plan.description,
                    "failedStep": step.step,
                    "failedStepDescription": step.description,
                    "failedSpecialist": step.specialist,
                    "failedSpecialistName": specialist_name,
                    "totalSteps": len(plan.steps),
                    "completedSteps": completed_steps,
                    "error": output.error,
                    "stepExecutionTime": step_time,
                    "specialistIterations": output.metadata.get("iterations"),
                },
            ))
        except Exception as e:
            logger.warning(f"[PlanExecutor] Could not record failure of plan {plan.plan_id}: {e}")

    # ---------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------

    def _log(self, msg: str, progress_callback: Optional[ProgressCallback]):
        self.execution_log.append(msg)
        if progress_callback:
            progress_callback(msg)
        logger.info(f"[PlanExecutor] {msg}")

    @staticmethod
    def _session_data(session_context) -> Dict[str, Any]:
        if session_context is None:
            return {}
        if isinstance(session_context, Session):
            return session_context.model_dump(by_alias=True)
        return dict(session_context)

    @staticmethod
    def _as_output(value: Any) -> SpecialistOutput:
        if isinstance(value, SpecialistOutput):
            return value
        return SpecialistOutput.model_validate(value)


__all__ = ["PlanExecutor"]
