"""
Services shared by the orchestration core
"""
from .session_log_service import SessionLogService

__all__ = ["SessionLogService"]
