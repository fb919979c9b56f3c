"""
Core Orchestration Components

These components turn a plan into specialist work and documents:
1. Session Manager - Current project session and its file
2. Specialist Registry - Specialist definitions from markdown files
3. Iteration Policy - Max iterations per specialist
4. Specialist Executor - Bounded model/tool loop for one specialist
5. Plan Executor - Runs plan steps in order, suspends and resumes
6. Semantic Editor - sid-addressed markdown edits
"""
from .errors import (
    SRSWriterError,
    ValidationError,
    NotFoundError,
    OutOfRangeError,
    ConflictError,
    MismatchError,
    ToolExecutionError,
    PersistenceError,
    IterationLimitExceeded,
)
from .session_manager import SessionManager
from .specialist_registry import SpecialistRegistry
from .iteration_policy import IterationPolicyResolver, IterationLimitsConfig, HistoryConfig
from .history_manager import TokenAwareHistoryManager
from .error_enhancer import ToolErrorEnhancer, ErrorClassification
from .prompt_assembler import PromptAssembler, SpecialistTemplateLoader
from .specialist_executor import SpecialistExecutor
from .plan_executor import PlanExecutor
from .semantic_locator import SemanticLocator
from .semantic_editor import SemanticEditor

__all__ = [
    "SRSWriterError",
    "ValidationError",
    "NotFoundError",
    "OutOfRangeError",
    "ConflictError",
    "MismatchError",
    "ToolExecutionError",
    "PersistenceError",
    "IterationLimitExceeded",
    "SessionManager",
    "SpecialistRegistry",
    "IterationPolicyResolver",
    "IterationLimitsConfig",
    "HistoryConfig",
    "TokenAwareHistoryManager",
    "ToolErrorEnhancer",
    "ErrorClassification",
    "PromptAssembler",
    "SpecialistTemplateLoader",
    "SpecialistExecutor",
    "PlanExecutor",
    "SemanticLocator",
    "SemanticEditor",
]
