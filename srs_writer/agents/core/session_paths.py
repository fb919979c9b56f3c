"""
Session Paths - Where session files and project directories live

Session files sit in <workspace>/.session-log/, one per project:
    srs-writer-session_<sanitized project name>.json
The unnamed/main session uses srs-writer-session_main.json, so projects whose
sanitized name is "main" are rejected.
"""
import re
from pathlib import Path
from typing import Optional

from srs_writer.config import SESSION_LOG_DIR_NAME, SESSION_FILE_PREFIX, MAIN_SESSION_FILE_NAME
from .errors import ValidationError

RESERVED_SANITIZED_NAMES = ("main",)


def sanitize_project_name(project_name: str) -> str:
    """Lowercase the name and replace anything outside [a-z0-9_-] with '_'"""
    return re.sub(r'[^a-z0-9_-]', '_', project_name.lower())


def is_reserved_project_name(project_name: str) -> bool:
    """True if the name would map onto the main session file"""
    return sanitize_project_name(project_name) in RESERVED_SANITIZED_NAMES


class SessionPathManager:
    """Derives session file paths and validates project directories"""

    def __init__(self, workspace_root: Path):
        self.workspace_root = Path(workspace_root).resolve()
        self.session_dir = self.workspace_root / SESSION_LOG_DIR_NAME

    def ensure_session_dir(self) -> Path:
        self.session_dir.mkdir(parents=True, exist_ok=True)
        return self.session_dir

    def get_main_session_path(self) -> Path:
        return self.session_dir / MAIN_SESSION_FILE_NAME

    def get_project_session_path(self, project_name: str) -> Path:
        if not project_name:
            raise ValueError("project_name is required for a project session path")
        if is_reserved_project_name(project_name):
            raise ValidationError(f"Project name '{project_name}' is reserved for the main session")
        return self.session_dir / f"{SESSION_FILE_PREFIX}{sanitize_project_name(project_name)}.json"

    def get_session_path(self, project_name: Optional[str] = None) -> Path:
        """Project session file, or the main session file when no name is given"""
        if project_name:
            return self.get_project_session_path(project_name)
        return self.get_main_session_path()

    def project_base_dir(self, project_name: str) -> Path:
        return self.workspace_root / project_name

    def is_within_workspace(self, path) -> bool:
        """True if path resolves to a strict subdirectory of the workspace root"""
        if path is None or not str(path).strip():
            return False
        resolved = Path(path).resolve()
        return resolved != self.workspace_root and resolved.is_relative_to(self.workspace_root)


__all__ = ["SessionPathManager", "sanitize_project_name", "is_reserved_project_name"]
