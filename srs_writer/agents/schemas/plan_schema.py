"""
Plan Schema - Ordered specialist steps and their results

A Plan is frozen once built. StepResults is an append-only mapping: adding a
result returns a new instance so a resumed run never aliases a live map.
"""
from typing import List, Dict, Any, Optional, Iterator, Mapping
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field

from .specialist_schema import SpecialistOutput


class PlanStep(BaseModel):
    """One specialist-bound step"""
    model_config = ConfigDict(frozen=True)

    step: int = Field(..., ge=1, description="1-based sequence number")
    specialist: str = Field(..., description="Specialist id from the registry")
    description: str = Field("", description="What this step should achieve")
    context: Dict[str, Any] = Field(default_factory=dict, description="Extra step-specific context")


class Plan(BaseModel):
    """An ordered sequence of steps fulfilling a user request"""
    model_config = ConfigDict(frozen=True)

    plan_id: str = Field(...)
    description: str = Field("")
    steps: List[PlanStep] = Field(default_factory=list)

    def ordered_steps(self) -> List[PlanStep]:
        """Steps in ascending step-number order"""
        return sorted(self.steps, key=lambda s: s.step)

    def get_step(self, step_number: int) -> Optional[PlanStep]:
        """Get step by number"""
        for step in self.steps:
            if step.step == step_number:
                return step
        return None


class StepResults(Mapping):
    """Immutable, append-only map of step number -> SpecialistOutput"""

    def __init__(self, results: Optional[Mapping[int, SpecialistOutput]] = None):
        self._results: Dict[int, SpecialistOutput] = dict(sorted((results or {}).items()))

    def add(self, step_number: int, output: SpecialistOutput) -> "StepResults":
        """Return a new map with this step's result appended"""
        if step_number in self._results:
            raise ValueError(f"Step {step_number} already has a result")
        merged = dict(self._results)
        merged[step_number] = output
        return StepResults(merged)

    def snapshot(self) -> Dict[int, SpecialistOutput]:
        """Plain dict copy of the results"""
        return {k: v.model_copy(deep=True) for k, v in self._results.items()}

    def __getitem__(self, step_number: int) -> SpecialistOutput:
        return self._results[step_number]

    def __iter__(self) -> Iterator[int]:
        return iter(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def __repr__(self) -> str:
        return f"StepResults(steps={list(self._results)})"


class PlanIntent(str, Enum):
    """Terminal outcome of a plan run"""
    PLAN_COMPLETED = "plan_completed"
    PLAN_FAILED = "plan_failed"
    USER_INTERACTION_REQUIRED = "user_interaction_required"


class PlanExecutionResult(BaseModel):
    """Result of execute / resume_from_step / continue_execution"""
    intent: PlanIntent
    result: Dict[str, Any] = Field(default_factory=dict)
