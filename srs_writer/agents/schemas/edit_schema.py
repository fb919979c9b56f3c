"""
Edit Schema - Semantic (sid-addressed) document edits
"""
from typing import List, Dict, Any, Optional
from enum import Enum
from pydantic import Field

from .session_schema import CamelModel


class SemanticEditType(str, Enum):
    INSERT_SECTION_AND_TITLE = "insert_section_and_title"
    REPLACE_SECTION_AND_TITLE = "replace_section_and_title"
    REPLACE_SECTION_CONTENT_ONLY = "replace_section_content_only"


class InsertionPosition(str, Enum):
    BEFORE = "before"
    AFTER = "after"


class LineRange(CamelModel):
    """Line range relative to a section body (1 = first line after the heading)"""
    start_line: int
    end_line: int


class SemanticTarget(CamelModel):
    """Where an intent applies"""
    sid: str = Field("", description="Hierarchical section id, e.g. /chapter-one/sub-section")
    insertion_position: Optional[InsertionPosition] = None
    line_range: Optional[LineRange] = None


class SemanticEditIntent(CamelModel):
    """One requested document mutation"""
    type: SemanticEditType
    target: SemanticTarget
    content: str = ""
    reason: str = ""
    priority: int = 0


class TocNode(CamelModel):
    """A heading in the document's table of contents"""
    sid: str
    title: str
    normalized_title: str
    level: int
    line: int = Field(..., description="1-based heading line")
    end_line: int = Field(..., description="Last line of the section, inclusive")
    children: List["TocNode"] = Field(default_factory=list)


TocNode.model_rebuild()


class TargetRange(CamelModel):
    """Absolute 1-based line span; for inserts start_line == end_line is the insertion line"""
    start_line: int
    end_line: int


class LocationResult(CamelModel):
    """Result of SemanticLocator.find_target"""
    found: bool
    range: Optional[TargetRange] = None
    operation_type: Optional[str] = Field(None, description="insert or replace")
    error: Optional[str] = None
    suggestions: Dict[str, Any] = Field(default_factory=dict)
    context: Dict[str, Any] = Field(default_factory=dict)


class IntentValidation(CamelModel):
    valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class FailedIntent(CamelModel):
    intent: SemanticEditIntent
    error: str


class SemanticEditResult(CamelModel):
    """Outcome of a batch of semantic edits"""
    success: bool
    total_intents: int
    successful_intents: int
    failed_intents: List[FailedIntent] = Field(default_factory=list)
    applied_intents: List[SemanticEditIntent] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
