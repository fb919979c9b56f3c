"""
Semantic Locator - Resolves a sid-addressed target to concrete lines

find_target() never raises for bad input. A malformed sid, an unknown sid or a
line range outside the section all come back as found=False with an error and
suggestions the caller can use to correct the request.
get_section() is the strict variant for reads: the same conditions raise
ValidationError, NotFoundError or OutOfRangeError.
"""
import difflib
import re
from typing import Any, Dict, List, Optional, Union

from srs_writer.agents.schemas import (
    LineRange,
    SemanticTarget,
    SemanticEditType,
    InsertionPosition,
    LocationResult,
    TargetRange,
    TocNode,
)
from .errors import ValidationError, NotFoundError, OutOfRangeError
from .markdown_toc import parse_toc, flatten_toc

SID_ALLOWED_PATTERN = re.compile(r"^[\w\-/]+$")


class SemanticLocator:
    """Locates sections of one document snapshot"""

    def __init__(self, lines: List[str]):
        self.lines = lines
        self.toc = parse_toc(lines)
        self.nodes = flatten_toc(self.toc)
        self._by_sid = {node.sid: node for node in self.nodes}

    @classmethod
    def from_content(cls, content: str) -> "SemanticLocator":
        return cls(content.splitlines())

    @property
    def available_sids(self) -> List[str]:
        return [node.sid for node in self.nodes]

    def get_node(self, sid: str) -> Optional[TocNode]:
        return self._by_sid.get(sid)

    def find_target(
        self,
        target: SemanticTarget,
        operation_type: Union[SemanticEditType, str]
    ) -> LocationResult:
        """
        Resolve a target to the lines an operation should touch

        For inserts the range is a single insertion point: new lines go
        immediately before range.start_line.
        """
        operation_type = SemanticEditType(operation_type)

        sid_error = self._validate_sid_format(target.sid)
        if sid_error:
            return sid_error

        node = self._by_sid.get(target.sid)
        if node is None:
            return LocationResult(
                found=False,
                error=f"Section with sid '{target.sid}' not found",
                suggestions={
                    "availableSids": self.available_sids,
                    "similarSids": difflib.get_close_matches(target.sid, self.available_sids, n=5, cutoff=0.5),
                },
            )

        context = {
            "sectionTitle": node.title,
            "sectionStart": node.line,
            "sectionEnd": node.end_line,
        }

        if operation_type is SemanticEditType.INSERT_SECTION_AND_TITLE:
            return self._locate_insert(node, target, context)
        if operation_type is SemanticEditType.REPLACE_SECTION_AND_TITLE:
            return LocationResult(
                found=True,
                range=TargetRange(start_line=node.line, end_line=node.end_line),
                operation_type="replace",
                context=context,
            )
        return self._locate_content_range(node, target, context)

    def get_section(self, sid: str, line_range: Optional[LineRange] = None) -> Dict[str, Any]:
        """
        Text of a section, or of a body-relative line range within it

        Raises:
            ValidationError: If the sid is malformed or the range is inverted
            NotFoundError: If no section has this sid
            OutOfRangeError: If the range falls outside the section body
        """
        sid_error = self._validate_sid_format(sid)
        if sid_error:
            corrected = sid_error.suggestions.get("correctedSid")
            hint = f" (did you mean '{corrected}'?)" if corrected else ""
            raise ValidationError(f"{sid_error.error}{hint}")

        node = self._by_sid.get(sid)
        if node is None:
            similar = difflib.get_close_matches(sid, self.available_sids, n=5, cutoff=0.5)
            message = f"Section with sid '{sid}' not found"
            if similar:
                message += f". Similar sids: {', '.join(similar)}"
            raise NotFoundError(message, {"availableSids": self.available_sids, "similarSids": similar})

        start_line, end_line = node.line, node.end_line
        if line_range is not None:
            body_length = node.end_line - node.line
            if line_range.end_line < line_range.start_line:
                raise ValidationError(
                    f"Invalid line range: endLine ({line_range.end_line}) is before startLine ({line_range.start_line})"
                )
            if line_range.start_line < 1 or line_range.end_line > body_length:
                raise OutOfRangeError(
                    f"Line range {line_range.start_line}-{line_range.end_line} is out of range for section "
                    f"'{sid}' (valid: 1-{body_length})",
                    valid_range=(1, body_length),
                )
            start_line = node.line + line_range.start_line
            end_line = node.line + line_range.end_line

        return {
            "sid": node.sid,
            "title": node.title,
            "level": node.level,
            "startLine": start_line,
            "endLine": end_line,
            "content": "\n".join(self.lines[start_line - 1:end_line]),
        }

    def _locate_insert(self, node: TocNode, target: SemanticTarget, context: dict) -> LocationResult:
        if target.insertion_position is None:
            return LocationResult(
                found=False,
                error="insertionPosition ('before' or 'after') is required for insert operations",
                suggestions={"insertionPositions": [p.value for p in InsertionPosition]},
            )

        if target.insertion_position is InsertionPosition.BEFORE:
            insert_at = node.line
        else:
            insert_at = node.end_line + 1

        context["insertionPosition"] = target.insertion_position.value
        return LocationResult(
            found=True,
            range=TargetRange(start_line=insert_at, end_line=insert_at),
            operation_type="insert",
            context=context,
        )

    def _locate_content_range(self, node: TocNode, target: SemanticTarget, context: dict) -> LocationResult:
        body_length = node.end_line - node.line
        valid_range = {"startLine": 1, "endLine": body_length}

        line_range = target.line_range
        if line_range is None:
            return LocationResult(
                found=False,
                error="targetContent is required for replace_lines_in_section: provide target.lineRange",
                suggestions={"validRange": valid_range},
            )

        if line_range.end_line < line_range.start_line:
            return LocationResult(
                found=False,
                error=(
                    f"Invalid line range: endLine ({line_range.end_line}) is before "
                    f"startLine ({line_range.start_line})"
                ),
                suggestions={"validRange": valid_range},
            )

        if line_range.start_line < 1 or line_range.end_line > body_length:
            return LocationResult(
                found=False,
                error=(
                    f"Line range {line_range.start_line}-{line_range.end_line} is out of range for section "
                    f"'{node.sid}' (valid: 1-{body_length})"
                ),
                suggestions={"validRange": valid_range},
            )

        context["lineRange"] = line_range.model_dump(by_alias=True)
        return LocationResult(
            found=True,
            range=TargetRange(
                start_line=node.line + line_range.start_line,
                end_line=node.line + line_range.end_line,
            ),
            operation_type="replace",
            context=context,
        )

    @staticmethod
    def _validate_sid_format(sid: str) -> Optional[LocationResult]:
        if not sid or not sid.strip():
            return LocationResult(found=False, error="Invalid sid: sid must not be empty")

        def invalid(reason: str, corrected: str) -> LocationResult:
            return LocationResult(
                found=False,
                error=f"Invalid sid format '{sid}': {reason}",
                suggestions={"correctedSid": corrected},
            )

        if not sid.startswith("/"):
            return invalid("sid must start with '/'", "/" + sid.lstrip("/"))
        if "//" in sid:
            return invalid("sid contains consecutive slashes", re.sub(r"/+", "/", sid))
        if len(sid) > 1 and sid.endswith("/"):
            return invalid("sid should not end with '/'", sid.rstrip("/"))
        if not SID_ALLOWED_PATTERN.match(sid):
            return invalid("sid contains invalid characters", re.sub(r"[^\w\-/]", "-", sid))
        return None


__all__ = ["SemanticLocator"]
