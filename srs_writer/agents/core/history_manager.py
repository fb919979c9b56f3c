"""
History Manager - Keeps a specialist's internal history within a token budget

History entries look like:
    Iteration 3 - AI Plan: {...}
    Iteration 3 - Tool Results: ...
    Iteration 3 - User Response: ...

Tiers, relative to the current iteration:
- immediate: the last 4 iterations and the current one, kept whole
- recent: 5 to 8 iterations back, plan and tool results only
- milestone: older, tool results only
Each tier is ordered newest first and truncated to its share of the budget.
"""
import logging
import math
import re
from typing import List, NamedTuple

from .iteration_policy import HistoryConfig

logger = logging.getLogger(__name__)

ITERATION_PATTERN = re.compile(r"Iteration\s*(\d+)", re.IGNORECASE)
ENTRY_PREFIX_PATTERN = re.compile(r"^\s*Iteration\s*(\d+)\s*-\s*(AI Plan|Tool Results|User Response)\s*:")
CJK_PATTERN = re.compile(r"[\u4e00-\u9fff]")

PLAN_MARKER = "AI Plan"
RESULT_MARKER = "Tool Results"
USER_MARKER = "User Response"

ENTRY_KINDS = {PLAN_MARKER: "plan", RESULT_MARKER: "result", USER_MARKER: "user_response"}


class HistoryEntry(NamedTuple):
    iteration: int
    kind: str
    content: str
    tokens: int
    index: int


def estimate_tokens(text: str) -> int:
    """CJK characters count as one token, other words as 1.3"""
    cjk = len(CJK_PATTERN.findall(text))
    words = len(CJK_PATTERN.sub("", text).split())
    return math.ceil((cjk * 10 + words * 13) / 10)


class TokenAwareHistoryManager:
    """Tiered compression of specialist internal history"""

    def __init__(self, config: HistoryConfig = None):
        self.config = config or HistoryConfig()

    def compress_history(self, history: List[str], current_iteration: int) -> List[str]:
        if not history or not self.config.compression_enabled:
            return list(history)

        entries = [self._parse(entry, i) for i, entry in enumerate(history)]
        immediate = [e for e in entries if e.iteration >= current_iteration - 4]
        recent = [e for e in entries if current_iteration - 8 <= e.iteration < current_iteration - 4]
        milestone = [e for e in entries if e.iteration < current_iteration - 8]

        budget = self.config.token_budget
        ratios = self.config.tier_ratios
        compressed = (
            self._keep(immediate, int(budget * ratios.immediate))
            + self._keep([e for e in recent if e.kind in ("plan", "result")], int(budget * ratios.recent))
            + self._keep([e for e in milestone if e.kind == "result"], int(budget * ratios.milestone))
        )

        if len(compressed) != len(history):
            logger.info(f"[HistoryManager] Compressed history: {len(history)} -> {len(compressed)} entries")
        return compressed

    def _parse(self, entry: str, index: int) -> HistoryEntry:
        # Only the entry prefix decides the kind; tool output may quote other markers
        prefix = ENTRY_PREFIX_PATTERN.match(entry)
        if prefix:
            iteration, kind = int(prefix.group(1)), ENTRY_KINDS[prefix.group(2)]
        else:
            match = ITERATION_PATTERN.search(entry)
            iteration, kind = (int(match.group(1)) if match else 0), "result"
        return HistoryEntry(
            iteration=iteration,
            kind=kind,
            content=entry,
            tokens=estimate_tokens(entry),
            index=index,
        )

    def _keep(self, entries: List[HistoryEntry], budget: int) -> List[str]:
        ordered = sorted(entries, key=lambda e: (-e.iteration, e.index))
        if sum(e.tokens for e in ordered) <= budget:
            return [e.content for e in ordered]

        kept = []
        used = 0
        for entry in ordered:
            if used + entry.tokens <= budget:
                kept.append(entry.content)
                used += entry.tokens
            elif entry.kind == "result":
                warning = self._oversize_warning(entry.iteration)
                warning_tokens = estimate_tokens(warning)
                if used + warning_tokens <= budget:
                    kept.append(warning)
                    used += warning_tokens
                    logger.warning(f"[HistoryManager] Tool result of iteration {entry.iteration} replaced by warning")
        return kept

    @staticmethod
    def _oversize_warning(iteration: int) -> str:
        return (
            f"Iteration {iteration} - {RESULT_MARKER}: Warning! The previous tool call produced output "
            f"exceeding the token limit; find a different way to perform the task."
        )


__all__ = ["TokenAwareHistoryManager", "estimate_tokens"]
