"""
Session Schema - Persisted project working state

The session file is a JSON document shared with other tooling, so it keeps
camelCase keys on disk through pydantic aliases while the Python side uses
snake_case attributes.
"""
from typing import List, Dict, Any, Optional
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def now_iso() -> str:
    """Current local time as an ISO-8601 string"""
    return datetime.now().isoformat()


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SessionMetadata(CamelModel):
    """Bookkeeping attached to every session"""
    srs_version: str = Field("v1.0", description="SRS document version")
    created: str = Field(default_factory=now_iso)
    last_modified: str = Field(default_factory=now_iso)
    version: str = Field("5.0", description="Session schema version")


class Session(CamelModel):
    """One project's working session"""
    session_context_id: str = Field(..., description="Unique id generated at creation")
    project_name: Optional[str] = Field(None, description="None denotes the main/unnamed session")
    base_dir: Optional[str] = Field(None, description="Absolute project directory inside the workspace")
    active_files: List[str] = Field(default_factory=list, description="Tracked file paths, in order")
    git_branch: Optional[str] = Field(None)
    metadata: SessionMetadata = Field(default_factory=SessionMetadata)


class OperationType(str, Enum):
    """Kinds of entries stored in a session file's operation log"""
    SESSION_CREATED = "SESSION_CREATED"
    SESSION_UPDATED = "SESSION_UPDATED"
    PROJECT_SWITCHED = "PROJECT_SWITCHED"
    PROJECT_RENAMED = "PROJECT_RENAMED"
    TOOL_EXECUTION_END = "TOOL_EXECUTION_END"
    TOOL_EXECUTION_FAILED = "TOOL_EXECUTION_FAILED"
    SPECIALIST_TASK_COMPLETED = "SPECIALIST_TASK_COMPLETED"
    LIFECYCLE_EVENT = "LIFECYCLE_EVENT"


class OperationLogEntry(CamelModel):
    """A single entry in the session file's operations array"""
    timestamp: str = Field(default_factory=now_iso)
    session_context_id: Optional[str] = Field(None)
    type: OperationType = Field(...)
    operation: str = Field(..., description="Human-readable description")
    tool_name: Optional[str] = Field(None)
    success: bool = Field(True)
    execution_time: Optional[float] = Field(None, description="Milliseconds")
    error: Optional[str] = Field(None)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class TimeRange(CamelModel):
    """Dates covered by a session file's operations"""
    start_date: str = Field(default_factory=lambda: datetime.now().date().isoformat())
    end_date: str = Field(default_factory=lambda: datetime.now().date().isoformat())


class UnifiedSessionFile(CamelModel):
    """On-disk layout of a session file"""
    file_version: str = Field("5.0")
    current_session: Optional[Session] = Field(None)
    operations: List[OperationLogEntry] = Field(default_factory=list)
    time_range: TimeRange = Field(default_factory=TimeRange)
    created_at: str = Field(default_factory=now_iso)
    last_updated: str = Field(default_factory=now_iso)


class ToolExecutionEntry(BaseModel):
    """Tool execution record accepted by the Session Log Service"""
    executor: str = Field(..., description="Component that ran the tool (specialist, plan_executor, ...)")
    tool_name: str = Field(...)
    operation: str = Field(..., description="Human-readable description")
    success: bool = Field(...)
    execution_time: Optional[float] = Field(None, description="Milliseconds")
    error: Optional[str] = Field(None)
    args: Optional[Dict[str, Any]] = Field(None)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class LifecycleEventEntry(BaseModel):
    """Lifecycle event record accepted by the Session Log Service"""
    event_type: str = Field(..., description="plan_failed, specialist_started, ...")
    description: str = Field(...)
    entity_id: Optional[str] = Field(None)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class NewSessionResult(BaseModel):
    """Outcome of start_new_session"""
    success: bool
    new_session: Optional[Session] = None
    error: Optional[str] = None
