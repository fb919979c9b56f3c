"""
Iteration Policy - How many model/tool round-trips a specialist may use

Resolution order (first match wins):
1. The specialist's own iteration_config.max_iterations from the registry
2. A per-specialist override
3. The default for the specialist's category
4. The global default
"""
import logging
from typing import Dict, Any, Optional

from pydantic import BaseModel, Field

from srs_writer.agents.schemas import IterationLimitResult
from srs_writer.config import GLOBAL_MAX_ITERATIONS, HISTORY_TOKEN_BUDGET

logger = logging.getLogger(__name__)


class TierRatios(BaseModel):
    immediate: float = 0.55
    recent: float = 0.30
    milestone: float = 0.15


class HistoryConfig(BaseModel):
    """Token budget for a specialist's internal history"""
    compression_enabled: bool = True
    token_budget: int = HISTORY_TOKEN_BUDGET
    tier_ratios: TierRatios = Field(default_factory=TierRatios)


class IterationLimitsConfig(BaseModel):
    category_defaults: Dict[str, int] = Field(default_factory=lambda: {"content": 15, "process": 8})
    specialist_overrides: Dict[str, int] = Field(default_factory=lambda: {
        "fr_writer": 10,
        "nfr_writer": 10,
        "overall_description_writer": 10,
        "user_journey_writer": 10,
        "summary_writer": 10,
        "prototype_designer": 20,
        "project_initializer": 3,
        "git_operator": 10,
        "document_formatter": 5,
        "requirement_syncer": 30,
        "help_response": 3,
    })
    global_default: int = GLOBAL_MAX_ITERATIONS
    history_config: HistoryConfig = Field(default_factory=HistoryConfig)


# Categories of well-known specialists, used when the registry has no record
LEGACY_CATEGORY_MAP = {
    "fr_writer": "content",
    "nfr_writer": "content",
    "overall_description_writer": "content",
    "user_journey_writer": "content",
    "summary_writer": "content",
    "prototype_designer": "content",
    "project_initializer": "process",
    "git_operator": "process",
    "document_formatter": "process",
    "requirement_syncer": "process",
    "help_response": "process",
}


class IterationPolicyResolver:
    """Resolves max iterations per specialist"""

    def __init__(self, specialist_registry=None, config: Optional[IterationLimitsConfig] = None):
        self.specialist_registry = specialist_registry
        self.config = config or IterationLimitsConfig()

    def get_max_iterations(self, specialist_id: Optional[str]) -> IterationLimitResult:
        if not specialist_id:
            return IterationLimitResult(max_iterations=self.config.global_default, source="globalDefault")

        specialist = self._lookup(specialist_id)
        if specialist and specialist.iteration_config and specialist.iteration_config.max_iterations is not None:
            return IterationLimitResult(
                max_iterations=specialist.iteration_config.max_iterations,
                source=f"specialist_config.iteration_config.max_iterations[{specialist_id}]",
            )

        if specialist_id in self.config.specialist_overrides:
            return IterationLimitResult(
                max_iterations=self.config.specialist_overrides[specialist_id],
                source="specialistOverrides",
            )

        category = self.get_specialist_category(specialist_id)
        if category and category in self.config.category_defaults:
            return IterationLimitResult(
                max_iterations=self.config.category_defaults[category],
                source="categoryDefaults",
            )

        return IterationLimitResult(max_iterations=self.config.global_default, source="globalDefault")

    def get_specialist_category(self, specialist_id: str) -> Optional[str]:
        """Category from the registry, falling back to the built-in map; None if unknown"""
        specialist = self._lookup(specialist_id)
        if specialist is not None:
            return specialist.category.value
        return LEGACY_CATEGORY_MAP.get(specialist_id)

    def get_history_config(self) -> HistoryConfig:
        return self.config.history_config

    def update_config(self, updates: Dict[str, Any]):
        """Deep-merge a partial config (snake_case keys) into the current one"""
        merged = _deep_merge(self.config.model_dump(), updates)
        self.config = IterationLimitsConfig.model_validate(merged)
        logger.info(f"[IterationPolicy] Config updated: {list(updates)}")

    def reset_to_default(self):
        self.config = IterationLimitsConfig()

    def get_config_summary(self) -> Dict[str, Any]:
        return {
            "global_default": self.config.global_default,
            "category_defaults": dict(self.config.category_defaults),
            "override_count": len(self.config.specialist_overrides),
            "specialist_overrides": dict(self.config.specialist_overrides),
            "history_compression": self.config.history_config.compression_enabled,
        }

    def _lookup(self, specialist_id: str):
        if self.specialist_registry is None:
            return None
        return self.specialist_registry.get_specialist(specialist_id)


def _deep_merge(base: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    result = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


__all__ = [
    "IterationPolicyResolver",
    "IterationLimitsConfig",
    "HistoryConfig",
    "TierRatios",
    "LEGACY_CATEGORY_MAP",
]
