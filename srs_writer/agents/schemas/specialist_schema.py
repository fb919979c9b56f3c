"""
Specialist Schema - Registry records and execution results
"""
from typing import List, Dict, Any, Optional
from enum import Enum
from pydantic import BaseModel, Field, model_validator


class SpecialistCategory(str, Enum):
    """Specialist task category"""
    CONTENT = "content"
    PROCESS = "process"


class IterationConfig(BaseModel):
    """Per-specialist iteration settings"""
    max_iterations: Optional[int] = Field(None, description="Max model/tool round-trips")


class TemplateConfig(BaseModel):
    """Template files injected into the specialist's prompt context"""
    template_files: Dict[str, str] = Field(
        default_factory=dict,
        description="Context key (e.g. FRS_TEMPLATE) -> template path"
    )


class SpecialistConfig(BaseModel):
    """Normalized specialist definition (new and legacy formats)"""
    id: str = Field(...)
    name: str = Field(...)
    category: SpecialistCategory = Field(...)
    enabled: bool = Field(True)
    version: Optional[str] = Field(None)
    description: Optional[str] = Field(None)
    capabilities: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    iteration_config: Optional[IterationConfig] = Field(None)
    template_config: Optional[TemplateConfig] = Field(None)
    file_path: Optional[str] = Field(None, description="Definition file the record came from")
    body: str = Field("", description="Markdown instructions below the frontmatter")

    @property
    def is_legacy(self) -> bool:
        return "legacy" in self.tags


class InvalidFile(BaseModel):
    """A definition file that could not be registered"""
    file_path: str
    error: str


class ScanStats(BaseModel):
    total_files: int = 0
    valid_count: int = 0
    invalid_count: int = 0
    scan_time_ms: float = 0.0


class ScanResult(BaseModel):
    """Result of SpecialistRegistry.scan_and_register"""
    valid_specialists: List[SpecialistConfig] = Field(default_factory=list)
    invalid_files: List[InvalidFile] = Field(default_factory=list)
    scan_stats: ScanStats = Field(default_factory=ScanStats)


class RegistryStats(BaseModel):
    total_specialists: int = 0
    enabled_specialists: int = 0
    disabled_specialists: int = 0
    by_category: Dict[str, int] = Field(default_factory=dict)
    last_scan_time: float = Field(0, description="Epoch seconds of the last scan, 0 if never scanned")


class ConfigValidationResult(BaseModel):
    is_valid: bool
    errors: List[str] = Field(default_factory=list)


class IterationLimitResult(BaseModel):
    """Max iterations for a specialist and where the number came from"""
    max_iterations: int
    source: str


class ToolCallRequest(BaseModel):
    """A tool call requested by the model"""
    name: str = Field(..., description="Tool name")
    args: Dict[str, Any] = Field(default_factory=dict)


class SpecialistPlan(BaseModel):
    """Structured model response for one iteration"""
    thought: Optional[str] = Field(None, description="Reasoning behind the tool calls")
    content: Optional[str] = Field(None, description="Free-form content, if any")
    tool_calls: List[ToolCallRequest] = Field(default_factory=list)


class ToolCallResult(BaseModel):
    """Outcome of one tool call; never raised, always returned"""
    tool_name: str
    success: bool
    result: Any = None
    error: Optional[str] = None


class SpecialistResumeState(BaseModel):
    """State needed to continue a specialist suspended on a user question"""
    iteration: int = Field(0, description="Last completed iteration")
    internal_history: List[str] = Field(default_factory=list)
    current_plan: Optional[SpecialistPlan] = None
    tool_results: List[ToolCallResult] = Field(default_factory=list)
    user_response: Optional[str] = None
    context_for_this_step: Dict[str, Any] = Field(default_factory=dict)


class SpecialistOutput(BaseModel):
    """Result of one specialist invocation"""
    success: bool
    content: str = ""
    context_for_next: Any = None
    structured_data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    # Suspension on a user question
    needs_chat_interaction: bool = False
    question: Optional[str] = None
    resume_state: Optional[SpecialistResumeState] = None

    @model_validator(mode="after")
    def _error_iff_failed(self):
        if self.success and self.error:
            raise ValueError("A successful SpecialistOutput cannot carry an error")
        if not self.success and not self.error:
            raise ValueError("A failed SpecialistOutput must carry an error")
        return self
