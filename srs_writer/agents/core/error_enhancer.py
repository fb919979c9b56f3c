"""
Error Enhancer - Turns raw tool errors into guidance for the model

Raw error text is classified by an ordered list of (predicate, classification)
rules; the first matching rule wins. The classification picks a guidance
template that tells the model whether retrying makes sense. Errors that match
no rule are passed through unmodified.
"""
from enum import Enum
from typing import Callable, List, NamedTuple, Optional


class ErrorClassification(str, Enum):
    CRITICAL = "CRITICAL ERROR"
    WORKSPACE = "WORKSPACE ERROR"
    FILE = "FILE ERROR"
    PERMISSION = "PERMISSION ERROR"
    PARAMETER = "PARAMETER ERROR"
    EDIT = "EDIT ERROR"
    FORMAT = "FORMAT ERROR"
    SEMANTIC_EDIT = "SEMANTIC EDIT ERROR"
    EDIT_INSTRUCTION = "EDIT INSTRUCTION ERROR"
    UNCLASSIFIED = "UNCLASSIFIED"

    @property
    def retryable(self) -> bool:
        """Whether retrying the same tool can succeed once the call is corrected"""
        return self in (
            ErrorClassification.PARAMETER,
            ErrorClassification.EDIT,
            ErrorClassification.FORMAT,
            ErrorClassification.EDIT_INSTRUCTION,
            ErrorClassification.UNCLASSIFIED,
        )


class ErrorRule(NamedTuple):
    predicate: Callable[[str], bool]
    classification: ErrorClassification


def _any(*needles: str) -> Callable[[str], bool]:
    return lambda text: any(n in text for n in needles)


def _all(*needles: str) -> Callable[[str], bool]:
    return lambda text: all(n in text for n in needles)


def _either(*predicates: Callable[[str], bool]) -> Callable[[str], bool]:
    return lambda text: any(p(text) for p in predicates)


# Predicates receive the lowercased error text. PARAMETER sits right after
# CRITICAL so a missing argument named like a path or permission stays retryable.
DEFAULT_ERROR_RULES: List[ErrorRule] = [
    ErrorRule(
        _either(_any("tool implementation not found"), _all("tool", "does not exist")),
        ErrorClassification.CRITICAL,
    ),
    ErrorRule(
        _either(_any("missing required parameter"), _all("parameter", "required")),
        ErrorClassification.PARAMETER,
    ),
    ErrorRule(
        _either(_any("no workspace folder is open"), _all("workspace", "not open")),
        ErrorClassification.WORKSPACE,
    ),
    ErrorRule(
        _either(
            _any("file not found", "enoent", "no such file", "无法读取文件"),
            _all("path", "not found"),
            _all("file", "does not exist"),
        ),
        ErrorClassification.FILE,
    ),
    ErrorRule(
        _any("permission", "access denied", "eacces", "unauthorized", "restricted"),
        ErrorClassification.PERMISSION,
    ),
    ErrorRule(
        _either(
            _all("line number", "out of range"),
            _all("line range", "out of range"),
            _all("line", "exceeds"),
            _all("行号", "超出"),
        ),
        ErrorClassification.EDIT,
    ),
    ErrorRule(
        _either(_all("json", "parse"), _all("json", "invalid"), _all("json", "syntax"), _all("json", "unexpected")),
        ErrorClassification.FORMAT,
    ),
    ErrorRule(
        _any("semantic editing failed", "语义编辑失败"),
        ErrorClassification.SEMANTIC_EDIT,
    ),
    ErrorRule(
        _either(_all("instruction", "invalid"), _all("指令", "格式"), _all("指令", "无效")),
        ErrorClassification.EDIT_INSTRUCTION,
    ),
]


GUIDANCE = {
    ErrorClassification.CRITICAL: (
        "CRITICAL ERROR: Tool '{tool}' does not exist in the system. This is NOT a temporary failure. You MUST:\n"
        "1. Stop retrying this tool immediately\n"
        "2. Review your available tool list carefully\n"
        "3. Select a valid tool name to accomplish your task\n"
        "4. Do NOT attempt to use '{tool}' again"
    ),
    ErrorClassification.WORKSPACE: (
        "WORKSPACE ERROR: Tool '{tool}' requires an open workspace. This requires USER ACTION. You MUST:\n"
        "1. Inform the user that no workspace is available\n"
        "2. Ask the user to open a project folder\n"
        "3. Do NOT retry this operation until workspace is available"
    ),
    ErrorClassification.FILE: (
        "FILE ERROR: File or path does not exist. This is a path issue, NOT a temporary failure. You SHOULD:\n"
        "1. Verify the file path is correct\n"
        "2. Use a file listing tool to check available files\n"
        "3. Create the file first if it needs to exist\n"
        "4. Do NOT retry with the same invalid path"
    ),
    ErrorClassification.PERMISSION: (
        "PERMISSION ERROR: Access denied due to insufficient permissions. "
        "This is a system configuration issue that retrying won't fix. You SHOULD:\n"
        "1. Inform the user about the permission issue\n"
        "2. Suggest the user check file/folder permissions\n"
        "3. Do NOT retry the same operation"
    ),
    ErrorClassification.PARAMETER: (
        "PARAMETER ERROR: Tool '{tool}' is missing required parameters. "
        "This is a format issue, NOT a system failure. You MUST:\n"
        "1. Check the tool's parameter schema carefully\n"
        "2. Provide ALL required arguments with correct types\n"
        "3. Retry with properly formatted parameters"
    ),
    ErrorClassification.EDIT: (
        "EDIT ERROR: Tool '{tool}' was given a line position outside the document. You SHOULD:\n"
        "1. Re-read the document to get its current structure\n"
        "2. Recompute the target range against the current content\n"
        "3. Retry with the corrected range"
    ),
    ErrorClassification.FORMAT: (
        "FORMAT ERROR: Tool '{tool}' received malformed JSON. "
        "This is a format issue, NOT a system failure. You MUST:\n"
        "1. Check the JSON syntax of your arguments\n"
        "2. Escape quotes and newlines inside string values\n"
        "3. Retry with valid JSON"
    ),
    ErrorClassification.SEMANTIC_EDIT: (
        "SEMANTIC EDIT ERROR: Semantic editing approach failed. You SHOULD try alternative approach:\n"
        "1. Use traditional line-based editing instead\n"
        "2. Read the file first to get specific line numbers\n"
        "3. Create precise line-by-line edit instructions\n"
        "4. Do NOT retry semantic editing for this content"
    ),
    ErrorClassification.EDIT_INSTRUCTION: (
        "EDIT INSTRUCTION ERROR: Edit instruction format is invalid. "
        "This is a structure error, NOT a system failure. You MUST:\n"
        "1. Review the required edit instruction format\n"
        "2. Ensure all required fields are present (type, target, content)\n"
        "3. Use a supported edit type and a valid target sid\n"
        "4. Retry with properly structured edit instructions"
    ),
}


class ToolErrorEnhancer:
    """Classifies raw tool errors and rewrites them into actionable messages"""

    def __init__(self, rules: Optional[List[ErrorRule]] = None):
        self.rules = list(rules) if rules is not None else list(DEFAULT_ERROR_RULES)

    def classify(self, message: str) -> ErrorClassification:
        text = (message or "").lower()
        for rule in self.rules:
            if rule.predicate(text):
                return rule.classification
        return ErrorClassification.UNCLASSIFIED

    def enhance(self, tool_name: str, message: str) -> str:
        classification = self.classify(message)
        if classification is ErrorClassification.UNCLASSIFIED:
            return message
        guidance = GUIDANCE[classification].format(tool=tool_name)
        return f"{guidance}\nOriginal error: {message}"


_default_enhancer = ToolErrorEnhancer()


def classify_tool_error(message: str) -> ErrorClassification:
    """Classify a raw tool error with the default rule set"""
    return _default_enhancer.classify(message)


def enhance_error_message(tool_name: str, message: str) -> str:
    """Rewrite a raw tool error with the default rule set"""
    return _default_enhancer.enhance(tool_name, message)


__all__ = [
    "ErrorClassification",
    "ErrorRule",
    "DEFAULT_ERROR_RULES",
    "ToolErrorEnhancer",
    "classify_tool_error",
    "enhance_error_message",
]
