"""
Error taxonomy for the orchestration core

Validation and not-found conditions are usually turned into structured result
objects so callers can retry with corrected input; these exceptions cover the
cases where raising is the right answer (session-store preconditions,
persistence failures, and unexpected internal state).
"""
from typing import Any, Dict, Optional, Tuple


class SRSWriterError(Exception):
    """Base class for all orchestration-core errors"""
    pass


class ValidationError(SRSWriterError):
    """Malformed input rejected before any mutation"""
    pass


class NotFoundError(SRSWriterError):
    """A sid or specialist id could not be resolved"""

    def __init__(self, message: str, suggestions: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.suggestions = suggestions or {}


class OutOfRangeError(SRSWriterError):
    """Line range outside the section bounds"""

    def __init__(self, message: str, valid_range: Optional[Tuple[int, int]] = None):
        super().__init__(message)
        self.valid_range = valid_range


class ConflictError(SRSWriterError):
    """Rename target already exists"""
    pass


class MismatchError(SRSWriterError):
    """Delete target does not match the current project"""
    pass


class ToolExecutionError(SRSWriterError):
    """A tool call failed; carries the error classification"""

    def __init__(self, tool_name: str, message: str, classification=None):
        super().__init__(message)
        self.tool_name = tool_name
        self.classification = classification


class PersistenceError(SRSWriterError):
    """Writing a session file failed"""
    pass


class IterationLimitExceeded(SRSWriterError):
    """A specialist used up its iteration budget without completing"""

    def __init__(self, specialist_id: str, max_iterations: int):
        super().__init__(
            f"Specialist {specialist_id} reached maximum iterations ({max_iterations}) without completing the task"
        )
        self.specialist_id = specialist_id
        self.max_iterations = max_iterations


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
]
