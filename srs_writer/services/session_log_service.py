"""
Session Log Service - Records tool executions and lifecycle events

Provides:
- record_tool_execution(): Append a tool execution to the session file
- record_lifecycle_event(): Append a lifecycle event (plan_failed, ...) to the session file

Entries go into the operations array of the current session's file (the main
session file when no project is active). Callers in the core treat both
operations as best-effort and catch PersistenceError.
"""
import asyncio
import logging

from srs_writer.agents.schemas import (
    OperationLogEntry,
    OperationType,
    ToolExecutionEntry,
    LifecycleEventEntry,
)

logger = logging.getLogger(__name__)


class SessionLogService:
    """Writes operation log entries through the SessionManager"""

    def __init__(self, session_manager):
        self.session_manager = session_manager

    async def record_tool_execution(self, entry: ToolExecutionEntry):
        """Record a tool execution"""
        operation = OperationLogEntry(
            type=OperationType.TOOL_EXECUTION_END if entry.success else OperationType.TOOL_EXECUTION_FAILED,
            operation=entry.operation,
            tool_name=entry.tool_name,
            success=entry.success,
            execution_time=entry.execution_time,
            error=entry.error,
            metadata={"executor": entry.executor, "args": entry.args, **entry.metadata},
        )
        if entry.executor == "specialist" and entry.tool_name == "taskComplete":
            operation.type = OperationType.SPECIALIST_TASK_COMPLETED

        await asyncio.to_thread(self.session_manager.append_operation, operation)
        logger.debug(f"[SessionLog] Recorded tool execution: {entry.tool_name} ({'ok' if entry.success else 'failed'})")

    async def record_lifecycle_event(self, entry: LifecycleEventEntry):
        """Record a lifecycle event"""
        operation = OperationLogEntry(
            type=OperationType.LIFECYCLE_EVENT,
            operation=entry.description,
            success=entry.event_type not in ("plan_failed", "specialist_failed"),
            metadata={"eventType": entry.event_type, "entityId": entry.entity_id, **entry.metadata},
        )
        await asyncio.to_thread(self.session_manager.append_operation, operation)
        logger.debug(f"[SessionLog] Recorded lifecycle event: {entry.event_type}")


__all__ = ["SessionLogService"]
