"""
Semantic Editor - Applies sid-addressed edit intents to a markdown document

Responsibilities:
- Validate every intent before touching the document
- Apply intents in priority order (higher first, ties in input order)
- Re-parse the heading tree after each edit so later intents see current lines
- Report per-intent success and failure

A call works on a single snapshot of the document and holds no lock; callers
editing the same file from several places must serialize their calls.
"""
import logging
from pathlib import Path
from typing import Dict, List, Tuple

from srs_writer.agents.schemas import (
    SemanticEditIntent,
    SemanticEditType,
    InsertionPosition,
    IntentValidation,
    FailedIntent,
    SemanticEditResult,
)
from .markdown_toc import split_lines, join_lines
from .semantic_locator import SemanticLocator

logger = logging.getLogger(__name__)


class SemanticEditor:
    """Semantic edit engine"""

    def validate_intent(self, intent: SemanticEditIntent) -> List[str]:
        """Errors that make an intent impossible to apply (empty if valid)"""
        errors = []
        if not intent.target.sid or not intent.target.sid.strip():
            errors.append("target.sid is required and must not be empty")

        if intent.type is SemanticEditType.INSERT_SECTION_AND_TITLE:
            if intent.target.insertion_position is None:
                errors.append("target.insertionPosition ('before' or 'after') is required for insert_section_and_title")
            if not intent.content.strip():
                errors.append("content is required for insert_section_and_title")
        elif intent.type is SemanticEditType.REPLACE_SECTION_CONTENT_ONLY:
            if intent.target.line_range is None:
                errors.append(
                    "targetContent is required for replace_lines_in_section: "
                    "provide target.lineRange to narrow the replacement"
                )
        return errors

    def validate_semantic_intents(self, intents: List[SemanticEditIntent]) -> IntentValidation:
        """Validate a batch; warnings flag fields that will be ignored"""
        errors = []
        warnings = []
        for index, intent in enumerate(intents, start=1):
            errors.extend(f"Intent {index}: {error}" for error in self.validate_intent(intent))
            if intent.target.line_range is not None and intent.type is not SemanticEditType.REPLACE_SECTION_CONTENT_ONLY:
                warnings.append(f"Intent {index}: lineRange is ignored for {intent.type.value}")
            if intent.target.insertion_position is not None and intent.type is not SemanticEditType.INSERT_SECTION_AND_TITLE:
                warnings.append(f"Intent {index}: insertionPosition is ignored for {intent.type.value}")
        return IntentValidation(valid=not errors, errors=errors, warnings=warnings)

    def apply_intents(self, content: str, intents: List[SemanticEditIntent]) -> Tuple[str, SemanticEditResult]:
        """
        Apply intents to document text

        Returns:
            (new content, result); the content is unchanged if nothing applied
        """
        lines, trailing_newline = split_lines(content)
        failed: List[FailedIntent] = []
        applied: List[SemanticEditIntent] = []

        valid = []
        for intent in intents:
            errors = self.validate_intent(intent)
            if errors:
                failed.append(FailedIntent(intent=intent, error="; ".join(errors)))
            else:
                valid.append(intent)

        # sorted() is stable, so equal priorities keep input order
        ordered = sorted(valid, key=lambda i: -i.priority)

        # Next insertion line per anchor for repeated 'after' inserts
        cursors: Dict[str, int] = {}

        for intent in ordered:
            location = SemanticLocator(lines).find_target(intent.target, intent.type)
            if not location.found:
                failed.append(FailedIntent(intent=intent, error=location.error))
                logger.info(f"[SemanticEditor] Intent on {intent.target.sid} failed: {location.error}")
                continue

            new_lines = intent.content.splitlines()
            if location.operation_type == "insert":
                anchor = intent.target.sid
                insert_at = location.range.start_line
                is_after = intent.target.insertion_position is InsertionPosition.AFTER
                if is_after and anchor in cursors:
                    insert_at = cursors[anchor]

                lines[insert_at - 1:insert_at - 1] = new_lines
                self._shift_cursors(cursors, insert_at, insert_at - 1, len(new_lines))
                if is_after:
                    cursors[anchor] = insert_at + len(new_lines)
            else:
                start, end = location.range.start_line, location.range.end_line
                lines[start - 1:end] = new_lines
                self._shift_cursors(cursors, start, end, len(new_lines))

            applied.append(intent)
            logger.info(
                f"[SemanticEditor] Applied {intent.type.value} on {intent.target.sid} "
                f"(priority {intent.priority})"
            )

        result = SemanticEditResult(
            success=not failed,
            total_intents=len(intents),
            successful_intents=len(applied),
            failed_intents=failed,
            applied_intents=applied,
            warnings=self.validate_semantic_intents(intents).warnings,
        )
        new_content = join_lines(lines, trailing_newline) if applied else content
        return new_content, result

    def execute_semantic_edits(self, intents: List[SemanticEditIntent], document_path: Path) -> SemanticEditResult:
        """
        Apply intents to a markdown file and write it back

        Raises:
            FileNotFoundError: If the document does not exist
        """
        document_path = Path(document_path)
        if not document_path.is_file():
            raise FileNotFoundError(f"File not found: {document_path}")

        content = document_path.read_text(encoding="utf-8")
        new_content, result = self.apply_intents(content, intents)
        if result.successful_intents:
            document_path.write_text(new_content, encoding="utf-8")

        logger.info(
            f"[SemanticEditor] {document_path.name}: {result.successful_intents}/{result.total_intents} intents applied"
        )
        return result

    @staticmethod
    def _shift_cursors(cursors: Dict[str, int], start: int, end: int, new_length: int):
        """Move cursors after an edit that replaced lines start..end with new_length lines"""
        delta = new_length - (end - start + 1)
        for anchor, cursor in cursors.items():
            if cursor > end:
                cursors[anchor] = cursor + delta
            elif cursor > start:
                cursors[anchor] = start + new_length


__all__ = ["SemanticEditor"]
