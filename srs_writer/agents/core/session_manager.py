"""
Session Manager - Owns the current project session

Responsibilities:
- Create, load and persist sessions (one JSON file per project)
- Rename and delete projects (session file + project directory)
- Clear the in-memory session without touching any file
- Notify observers synchronously whenever the current session changes

One instance is constructed by the application root and passed to the
components that need it. Only one session is current at a time.
"""
import json
import logging
import os
import shutil
import uuid
from pathlib import Path
from typing import Callable, Dict, List, Any, Optional

from pydantic import ValidationError as SchemaValidationError

from srs_writer.agents.schemas import (
    Session,
    SessionMetadata,
    UnifiedSessionFile,
    OperationLogEntry,
    OperationType,
    NewSessionResult,
    now_iso,
)
from srs_writer.config import SESSION_FILE_VERSION, SRS_VERSION
from .errors import SRSWriterError, ValidationError, ConflictError, MismatchError, PersistenceError
from .session_paths import SessionPathManager

logger = logging.getLogger(__name__)

SessionObserver = Callable[[Optional[Session]], None]


class SessionManager:
    """Manages the current session and its backing file"""

    def __init__(self, workspace_root: Path):
        """
        Initialize Session Manager

        Args:
            workspace_root: Root of the workspace; every project lives below it
        """
        self.paths = SessionPathManager(workspace_root)
        self.workspace_root = self.paths.workspace_root

        self._current_session: Optional[Session] = None
        self._observers: List[SessionObserver] = []

    # ---------------------------------------------------------------
    # Observers
    # ---------------------------------------------------------------

    def subscribe(self, observer: SessionObserver):
        """Register an observer; called with the new session (or None) on every change"""
        if observer not in self._observers:
            self._observers.append(observer)

    def unsubscribe(self, observer: SessionObserver):
        if observer in self._observers:
            self._observers.remove(observer)

    def _notify(self, session: Optional[Session]):
        for observer in list(self._observers):
            try:
                observer(session)
            except Exception as e:
                logger.error(f"[SessionManager] Observer {observer!r} failed: {e}", exc_info=True)

    def _set_current(self, session: Optional[Session]):
        self._current_session = session
        self._notify(session)

    # ---------------------------------------------------------------
    # Session lifecycle
    # ---------------------------------------------------------------

    def get_current_session(self) -> Optional[Session]:
        return self._current_session

    def create_new_session(self, project_name: Optional[str] = None) -> Session:
        """
        Create a session, persist it and make it current

        A failed write is logged and the session stays usable in memory.

        Raises:
            ValidationError: If the derived base directory is outside the workspace
                or the name is reserved for the main session
        """
        session = self._build_session(project_name)
        session_path = self.paths.get_session_path(project_name)

        file_model = self._read_session_file(session_path) or UnifiedSessionFile(file_version=SESSION_FILE_VERSION)
        file_model.current_session = session
        file_model.operations.append(OperationLogEntry(
            type=OperationType.SESSION_CREATED,
            session_context_id=session.session_context_id,
            operation=f"Created session for project '{project_name or 'main'}'",
            metadata={"projectName": project_name, "baseDir": session.base_dir},
        ))

        try:
            self._write_session_file(session_path, file_model)
            logger.info(f"[SessionManager] Created session {session.session_context_id} at {session_path}")
        except PersistenceError as e:
            logger.warning(f"[SessionManager] Session kept in memory only: {e}")

        self._set_current(session)
        return session

    def start_new_session(self, project_name: Optional[str] = None) -> NewSessionResult:
        """Create a new session, reporting failures as a result instead of raising"""
        try:
            session = self.create_new_session(project_name)
            return NewSessionResult(success=True, new_session=session)
        except SRSWriterError as e:
            logger.error(f"[SessionManager] Failed to start new session: {e}")
            return NewSessionResult(success=False, error=str(e))

    def update_session(self, **updates: Any) -> Session:
        """
        Merge field updates into the current session and persist

        Raises:
            ValidationError: If there is no current session or base_dir is invalid
        """
        if self._current_session is None:
            raise ValidationError("No current session to update")

        session = self._current_session.model_copy(deep=True, update=updates)
        if session.base_dir is not None and not self.paths.is_within_workspace(session.base_dir):
            raise ValidationError(f"Base directory '{session.base_dir}' is outside the workspace")
        session.metadata.last_modified = now_iso()

        try:
            self.save_session_to_file(session)
        except PersistenceError as e:
            logger.warning(f"[SessionManager] Session update kept in memory only: {e}")

        self._set_current(session)
        return session

    def clear_session(self):
        """Drop the in-memory session and notify observers with None; files are left alone"""
        self._current_session = None
        logger.info("[SessionManager] Session cleared (files preserved)")
        self._notify(None)

    # ---------------------------------------------------------------
    # Persistence
    # ---------------------------------------------------------------

    def save_session_to_file(self, session: Optional[Session] = None) -> Path:
        """
        Write the session into its file, keeping the existing operation log

        Raises:
            PersistenceError: If the file cannot be written
        """
        session = session or self._current_session
        if session is None:
            raise ValidationError("No session to save")

        session_path = self.paths.get_session_path(session.project_name)
        file_model = self._read_session_file(session_path) or UnifiedSessionFile(file_version=SESSION_FILE_VERSION)
        file_model.current_session = session
        self._write_session_file(session_path, file_model)
        return session_path

    def load_session_from_file(self, project_name: Optional[str] = None) -> Optional[Session]:
        """
        Load a session file and make it current

        Returns:
            The loaded session, or None if the file is missing or invalid
        """
        session_path = self.paths.get_session_path(project_name)
        file_model = self._read_session_file(session_path)
        if file_model is None or file_model.current_session is None:
            return None

        session = file_model.current_session
        if not self._is_valid_session(session):
            logger.warning(f"[SessionManager] Ignoring invalid session in {session_path.name}")
            return None

        logger.info(f"[SessionManager] Loaded session {session.session_context_id} from {session_path.name}")
        self._set_current(session)
        return session

    def append_operation(self, entry: OperationLogEntry) -> Path:
        """
        Append an entry to the current session's operation log

        Raises:
            PersistenceError: If the file cannot be written
        """
        session = self._current_session
        session_path = self.paths.get_session_path(session.project_name if session else None)

        file_model = self._read_session_file(session_path) or UnifiedSessionFile(
            file_version=SESSION_FILE_VERSION,
            current_session=session,
        )
        if entry.session_context_id is None and session is not None:
            entry.session_context_id = session.session_context_id

        file_model.operations.append(entry)
        self._write_session_file(session_path, file_model)
        return session_path

    def list_project_sessions(self) -> List[Dict[str, Any]]:
        """Summaries of every project session file in the session directory"""
        if not self.paths.session_dir.exists():
            return []

        main_path = self.paths.get_main_session_path()
        sessions = []
        for path in sorted(self.paths.session_dir.glob("*.json")):
            if path == main_path:
                continue
            file_model = self._read_session_file(path)
            if file_model is None or file_model.current_session is None:
                continue
            sessions.append({
                "project_name": file_model.current_session.project_name,
                "file_path": str(path),
                "last_modified": file_model.current_session.metadata.last_modified,
                "operation_count": len(file_model.operations),
            })
        return sessions

    def _read_session_file(self, path: Path) -> Optional[UnifiedSessionFile]:
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return UnifiedSessionFile.model_validate(data)
        except (OSError, json.JSONDecodeError, SchemaValidationError) as e:
            logger.warning(f"[SessionManager] Could not read session file {path}: {e}")
            return None

    def _write_session_file(self, path: Path, file_model: UnifiedSessionFile):
        file_model.last_updated = now_iso()
        file_model.time_range.end_date = file_model.last_updated[:10]
        try:
            self.paths.ensure_session_dir()
            path.write_text(
                json.dumps(file_model.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
        except OSError as e:
            raise PersistenceError(f"Failed to write session file {path}: {e}") from e

    # ---------------------------------------------------------------
    # Project management
    # ---------------------------------------------------------------

    def switch_to_project_session(self, project_name: str) -> Session:
        """
        Make the given project's session current

        Loads the project's session file when it holds a valid session, otherwise
        starts a fresh one. The switch is logged into the target file only; the
        source project's file is never modified.

        Raises:
            ValidationError: If the name is reserved for the main session
        """
        source = self._current_session
        target_path = self.paths.get_project_session_path(project_name)
        file_model = self._read_session_file(target_path)

        if file_model and file_model.current_session and self._is_valid_session(file_model.current_session):
            session = file_model.current_session
            session.metadata.last_modified = now_iso()
            logger.info(f"[SessionManager] Restored session for project '{project_name}'")
        else:
            session = self._build_session(project_name)
            file_model = UnifiedSessionFile(file_version=SESSION_FILE_VERSION, current_session=session)
            logger.info(f"[SessionManager] No valid session for '{project_name}', created a new one")

        from_project = source.project_name if source else None
        file_model.operations.append(OperationLogEntry(
            type=OperationType.PROJECT_SWITCHED,
            session_context_id=session.session_context_id,
            operation=f"Switched from project '{from_project or 'main'}' to '{project_name}'",
            metadata={"fromProject": from_project, "toProject": project_name},
        ))

        try:
            self._write_session_file(target_path, file_model)
        except PersistenceError as e:
            logger.warning(f"[SessionManager] Project switch kept in memory only: {e}")

        self._set_current(session)
        return session

    def rename_project(self, old_name: str, new_name: str):
        """
        Rename the current project: session file, project directory and session fields

        Files are moved with os.rename, never deleted and rewritten. If any step
        fails, completed renames are rolled back and the current session is
        left untouched.

        Raises:
            MismatchError: If the current project is not old_name
            ValidationError: If new_name is not a usable project name
            ConflictError: If a session file or directory for new_name already exists
            PersistenceError: If the rename could not be completed
        """
        current = self._current_session
        if current is None or current.project_name != old_name:
            raise MismatchError(f"Current project is not '{old_name}'")

        new_name = (new_name or "").strip()
        if not new_name or new_name in (".", "..") or "/" in new_name or "\\" in new_name:
            raise ValidationError(f"Invalid project name: '{new_name}'")
        if new_name == old_name:
            raise ValidationError(f"Project is already named '{old_name}'")

        old_path = self.paths.get_project_session_path(old_name)
        new_path = self.paths.get_project_session_path(new_name)
        if new_path != old_path and new_path.exists():
            raise ConflictError(f"Project '{new_name}' already exists (session file {new_path.name})")

        old_dir = Path(current.base_dir) if current.base_dir else self.paths.project_base_dir(old_name)
        new_dir = self.paths.project_base_dir(new_name)
        if new_dir.exists() and new_dir.resolve() != old_dir.resolve():
            raise ConflictError(f"Project directory '{new_dir.name}' already exists")

        renamed = []
        try:
            if old_dir.exists():
                os.rename(old_dir, new_dir)
                renamed.append((old_dir, new_dir))
            if old_path.exists() and new_path != old_path:
                os.rename(old_path, new_path)
                renamed.append((old_path, new_path))

            updated = current.model_copy(deep=True)
            updated.project_name = new_name
            updated.base_dir = str(new_dir)
            updated.active_files = [self._relocate(f, old_dir, new_dir) for f in current.active_files]
            updated.metadata.last_modified = now_iso()

            file_model = self._read_session_file(new_path) or UnifiedSessionFile(file_version=SESSION_FILE_VERSION)
            file_model.current_session = updated
            file_model.operations.append(OperationLogEntry(
                type=OperationType.PROJECT_RENAMED,
                session_context_id=updated.session_context_id,
                operation=f"Renamed project '{old_name}' to '{new_name}'",
                metadata={"oldName": old_name, "newName": new_name},
            ))
            self._write_session_file(new_path, file_model)
        except (OSError, PersistenceError) as e:
            self._rollback_renames(renamed)
            raise PersistenceError(f"Failed to rename project '{old_name}' to '{new_name}': {e}") from e

        logger.info(f"[SessionManager] Renamed project '{old_name}' -> '{new_name}'")
        self._set_current(updated)

    def delete_project(self, project_name: str):
        """
        Delete the current project's session file and directory, then fall back to the main session

        Raises:
            MismatchError: If the current project is not project_name
            PersistenceError: If deletion fails
        """
        current = self._current_session
        if current is None or current.project_name != project_name:
            raise MismatchError(f"Current project is not '{project_name}'")

        session_path = self.paths.get_project_session_path(project_name)
        project_dir = Path(current.base_dir) if current.base_dir else self.paths.project_base_dir(project_name)
        if not self.paths.is_within_workspace(project_dir):
            raise ValidationError(f"Refusing to delete '{project_dir}': outside the workspace")

        try:
            if session_path.exists():
                session_path.unlink()
            if project_dir.exists():
                shutil.rmtree(project_dir)
        except OSError as e:
            raise PersistenceError(f"Failed to delete project '{project_name}': {e}") from e

        logger.info(f"[SessionManager] Deleted project '{project_name}'")
        self._current_session = None
        if self.load_session_from_file(None) is None:
            self.create_new_session(None)

    # ---------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------

    def _build_session(self, project_name: Optional[str]) -> Session:
        base_dir = None
        if project_name:
            base_dir = self.paths.project_base_dir(project_name)
            if not self.paths.is_within_workspace(base_dir):
                raise ValidationError(f"Base directory '{base_dir}' is outside the workspace")
            base_dir = str(base_dir)

        return Session(
            session_context_id=str(uuid.uuid4()),
            project_name=project_name,
            base_dir=base_dir,
            metadata=SessionMetadata(srs_version=SRS_VERSION, version=SESSION_FILE_VERSION),
        )

    def _is_valid_session(self, session: Session) -> bool:
        if session.base_dir is not None and not session.base_dir.strip():
            return False
        if session.project_name and not session.base_dir:
            return False
        if session.base_dir and not self.paths.is_within_workspace(session.base_dir):
            return False
        return True

    @staticmethod
    def _relocate(file_path: str, old_dir: Path, new_dir: Path) -> str:
        path = Path(file_path)
        if path.is_absolute() and path.is_relative_to(old_dir):
            return str(new_dir / path.relative_to(old_dir))
        return file_path

    @staticmethod
    def _rollback_renames(renamed):
        for src, dst in reversed(renamed):
            try:
                os.rename(dst, src)
            except OSError as e:
                logger.error(f"[SessionManager] Rollback of {dst} -> {src} failed: {e}")


__all__ = ["SessionManager", "SessionObserver"]
