"""
Document tools - Read and edit markdown files of the current project

Relative paths resolve against the current session's base directory (the
workspace root when no project is active). Paths escaping that directory are
rejected.
"""
import json
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional

from pydantic import ValidationError as SchemaValidationError

from srs_writer.agents.schemas import SemanticEditIntent, LineRange
from srs_writer.agents.core.markdown_toc import render_toc
from srs_writer.agents.core.semantic_locator import SemanticLocator

logger = logging.getLogger(__name__)


class DocumentTools:
    """Markdown tools bound to a session manager and a semantic editor"""

    def __init__(self, session_manager, semantic_editor):
        self.session_manager = session_manager
        self.semantic_editor = semantic_editor

    def _base_dir(self) -> Path:
        session = self.session_manager.get_current_session()
        if session and session.base_dir:
            return Path(session.base_dir)
        return self.session_manager.workspace_root

    def resolve_path(self, path: str) -> Path:
        base_dir = self._base_dir().resolve()
        resolved = (base_dir / path).resolve()
        if not resolved.is_relative_to(base_dir):
            raise PermissionError(f"Access denied: '{path}' is outside the project directory")
        return resolved

    def read_markdown_file(
        self,
        path: str,
        sid: Optional[str] = None,
        line_range: Optional[Dict[str, int]] = None
    ) -> Dict[str, Any]:
        """
        Content and table of contents of a markdown file

        With a sid, only that section is returned (or the lines of line_range
        within its body).
        """
        file_path = self.resolve_path(path)
        if not file_path.is_file():
            raise FileNotFoundError(f"File not found: {path}")

        content = file_path.read_text(encoding="utf-8")
        locator = SemanticLocator.from_content(content)
        result = {
            "path": str(file_path),
            "toc": [node.model_dump(by_alias=True, exclude={"children"}) for node in locator.nodes],
            "outline": render_toc(locator.toc),
        }
        if sid is None:
            result["content"] = content
        else:
            section_range = LineRange.model_validate(line_range) if line_range else None
            result["section"] = locator.get_section(sid, section_range)
            result["content"] = result["section"]["content"]
        return result

    def execute_markdown_edits(self, target_file: str, intents: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Apply semantic edit intents given as plain dicts (camelCase keys)"""
        file_path = self.resolve_path(target_file)
        if isinstance(intents, str):
            try:
                intents = json.loads(intents)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in intents: {e}") from e
        if isinstance(intents, dict):
            intents = [intents]

        parsed: List[SemanticEditIntent] = []
        rejected: List[Dict[str, Any]] = []
        for index, raw in enumerate(intents, start=1):
            try:
                parsed.append(SemanticEditIntent.model_validate(raw))
            except SchemaValidationError as e:
                rejected.append({"intent": raw, "error": f"Intent {index} is malformed: {e.errors()[0]['msg']}"})

        result = self.semantic_editor.execute_semantic_edits(parsed, file_path)
        payload = result.model_dump(mode="json", by_alias=True)
        if rejected:
            payload["failedIntents"].extend(rejected)
            payload["totalIntents"] += len(rejected)
            payload["success"] = False
        return payload


__all__ = ["DocumentTools"]
