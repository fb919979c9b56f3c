"""
Schemas for the SRS Writer orchestration core

These schemas define the contracts between components:
- Session: persisted project state and operation log
- Specialist: registry records and execution results
- Plan: ordered specialist steps and their results
- Edit: sid-addressed semantic document edits
"""
from .session_schema import (
    CamelModel,
    Session,
    SessionMetadata,
    OperationType,
    OperationLogEntry,
    TimeRange,
    UnifiedSessionFile,
    ToolExecutionEntry,
    LifecycleEventEntry,
    NewSessionResult,
    now_iso,
)
from .specialist_schema import (
    SpecialistCategory,
    IterationConfig,
    TemplateConfig,
    SpecialistConfig,
    InvalidFile,
    ScanStats,
    ScanResult,
    RegistryStats,
    ConfigValidationResult,
    IterationLimitResult,
    ToolCallRequest,
    SpecialistPlan,
    ToolCallResult,
    SpecialistResumeState,
    SpecialistOutput,
)
from .plan_schema import PlanStep, Plan, StepResults, PlanIntent, PlanExecutionResult
from .edit_schema import (
    SemanticEditType,
    InsertionPosition,
    LineRange,
    SemanticTarget,
    SemanticEditIntent,
    TocNode,
    TargetRange,
    LocationResult,
    IntentValidation,
    FailedIntent,
    SemanticEditResult,
)

__all__ = [
    # Session
    "CamelModel",
    "Session",
    "SessionMetadata",
    "OperationType",
    "OperationLogEntry",
    "TimeRange",
    "UnifiedSessionFile",
    "ToolExecutionEntry",
    "LifecycleEventEntry",
    "NewSessionResult",
    "now_iso",
    # Specialist
    "SpecialistCategory",
    "IterationConfig",
    "TemplateConfig",
    "SpecialistConfig",
    "InvalidFile",
    "ScanStats",
    "ScanResult",
    "RegistryStats",
    "ConfigValidationResult",
    "IterationLimitResult",
    "ToolCallRequest",
    "SpecialistPlan",
    "ToolCallResult",
    "SpecialistResumeState",
    "SpecialistOutput",
    # Plan
    "PlanStep",
    "Plan",
    "StepResults",
    "PlanIntent",
    "PlanExecutionResult",
    # Edit
    "SemanticEditType",
    "InsertionPosition",
    "LineRange",
    "SemanticTarget",
    "SemanticEditIntent",
    "TocNode",
    "TargetRange",
    "LocationResult",
    "IntentValidation",
    "FailedIntent",
    "SemanticEditResult",
]
