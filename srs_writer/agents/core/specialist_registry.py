"""
Specialist Registry - Discovers specialist definitions

Specialists are markdown files with YAML frontmatter under
<specialists_dir>/content/ and <specialists_dir>/process/.

Two frontmatter dialects normalize into the same SpecialistConfig record:

    ---                                  ---
    specialist_config:                   assembly_config:
      enabled: true                        specialist_type: content
      id: fr_writer                        specialist_name: FR Writer
      name: FR Writer                    ---
      category: content
      iteration_config:
        max_iterations: 12
    ---

Legacy (assembly_config) records take their id from the file name and are
tagged "legacy". The registry is resolved once at startup; lookups return None
on a miss instead of raising.
"""
import logging
import re
import time
from pathlib import Path
from typing import Dict, List, Any, Optional

import yaml
from pydantic import ValidationError as SchemaValidationError

from srs_writer.agents.schemas import (
    SpecialistConfig,
    SpecialistCategory,
    IterationConfig,
    TemplateConfig,
    InvalidFile,
    ScanStats,
    ScanResult,
    RegistryStats,
    ConfigValidationResult,
)
from srs_writer.config import SPECIALISTS_DIR

logger = logging.getLogger(__name__)

FRONTMATTER_PATTERN = re.compile(r"^---\s*\n(.*?)\n---\s*(?:\n|$)", re.DOTALL)
SPECIALIST_ID_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")
CATEGORIES = [c.value for c in SpecialistCategory]


class SpecialistRegistry:
    """Maps specialist ids to their normalized definitions"""

    def __init__(self, specialists_dir: Optional[Path] = None):
        self.specialists_dir = Path(specialists_dir) if specialists_dir else SPECIALISTS_DIR
        self._specialists: Dict[str, SpecialistConfig] = {}
        self._last_scan_time: float = 0

    def scan_and_register(self) -> ScanResult:
        """
        Scan the specialists directory and (re)build the registry

        Invalid definitions are collected in the result; nothing is raised.
        """
        started = time.perf_counter()
        self._specialists.clear()
        result = ScanResult()

        for category in CATEGORIES:
            category_dir = self.specialists_dir / category
            if not category_dir.is_dir():
                logger.debug(f"[SpecialistRegistry] No {category} directory at {category_dir}")
                continue

            for path in sorted(category_dir.glob("*.md")):
                result.scan_stats.total_files += 1
                try:
                    config = self._parse_definition(path, category)
                    if config.id in self._specialists:
                        raise ValueError(
                            f"Duplicate specialist id '{config.id}' (already defined in "
                            f"{self._specialists[config.id].file_path})"
                        )
                except (OSError, UnicodeDecodeError, yaml.YAMLError, ValueError, SchemaValidationError) as e:
                    logger.warning(f"[SpecialistRegistry] Invalid specialist file {path.name}: {e}")
                    result.invalid_files.append(InvalidFile(file_path=str(path), error=str(e)))
                    continue

                self._specialists[config.id] = config
                result.valid_specialists.append(config)

        self._last_scan_time = time.time()
        result.scan_stats.valid_count = len(result.valid_specialists)
        result.scan_stats.invalid_count = len(result.invalid_files)
        result.scan_stats.scan_time_ms = (time.perf_counter() - started) * 1000

        logger.info(
            f"[SpecialistRegistry] Registered {result.scan_stats.valid_count} specialists "
            f"({result.scan_stats.invalid_count} invalid) from {self.specialists_dir}"
        )
        return result

    def _parse_definition(self, path: Path, category: str) -> SpecialistConfig:
        content = path.read_text(encoding="utf-8")
        match = FRONTMATTER_PATTERN.match(content)
        if not match:
            raise ValueError("Missing YAML frontmatter")

        frontmatter = yaml.safe_load(match.group(1))
        if not isinstance(frontmatter, dict):
            raise ValueError("Frontmatter is not a mapping")
        body = content[match.end():].strip()

        if "specialist_config" in frontmatter:
            return self._parse_new_format(frontmatter["specialist_config"], path, body)
        if "assembly_config" in frontmatter:
            return self._parse_legacy_format(frontmatter["assembly_config"], path, category, body)
        raise ValueError("Frontmatter has neither specialist_config nor assembly_config")

    def _parse_new_format(self, config: Any, path: Path, body: str) -> SpecialistConfig:
        validation = self.validate_specialist_config(config)
        if not validation.is_valid:
            raise ValueError("; ".join(validation.errors))

        iteration = config.get("iteration_config") or None
        templates = config.get("template_config") or None
        return SpecialistConfig(
            id=config["id"],
            name=config["name"],
            category=config["category"],
            enabled=config.get("enabled", True),
            version=str(config["version"]) if config.get("version") is not None else None,
            description=config.get("description"),
            capabilities=list(config.get("capabilities") or []),
            tags=list(config.get("tags") or []),
            iteration_config=IterationConfig(**iteration) if iteration else None,
            template_config=TemplateConfig(**templates) if templates else None,
            file_path=str(path),
            body=body,
        )

    def _parse_legacy_format(self, config: Any, path: Path, category: str, body: str) -> SpecialistConfig:
        if not isinstance(config, dict):
            raise ValueError("assembly_config must be a mapping")

        specialist_type = config.get("specialist_type") or category
        if specialist_type not in CATEGORIES:
            raise ValueError(f"Unknown specialist_type '{specialist_type}'")

        return SpecialistConfig(
            id=path.stem,
            name=config.get("specialist_name") or path.stem,
            category=specialist_type,
            enabled=True,
            tags=["legacy"],
            file_path=str(path),
            body=body,
        )

    def validate_specialist_config(self, config: Any) -> ConfigValidationResult:
        """Check a new-format specialist_config mapping"""
        if not isinstance(config, dict):
            return ConfigValidationResult(is_valid=False, errors=["specialist_config must be a mapping"])

        errors = []
        specialist_id = config.get("id")
        if not specialist_id:
            errors.append("Missing required field: id")
        elif not isinstance(specialist_id, str) or not SPECIALIST_ID_PATTERN.match(specialist_id):
            errors.append(f"Invalid id '{specialist_id}': use lowercase letters, digits and underscores")

        if not config.get("name"):
            errors.append("Missing required field: name")

        category = config.get("category")
        if not category:
            errors.append("Missing required field: category")
        elif category not in CATEGORIES:
            errors.append(f"Invalid category '{category}': expected one of {', '.join(CATEGORIES)}")

        if "enabled" in config and not isinstance(config["enabled"], bool):
            errors.append("enabled must be a boolean")

        for list_field in ("capabilities", "tags"):
            if config.get(list_field) is not None and not isinstance(config[list_field], list):
                errors.append(f"{list_field} must be a list")

        iteration = config.get("iteration_config")
        if iteration is not None:
            max_iterations = iteration.get("max_iterations") if isinstance(iteration, dict) else None
            if not isinstance(iteration, dict):
                errors.append("iteration_config must be a mapping")
            elif max_iterations is not None and (
                isinstance(max_iterations, bool) or not isinstance(max_iterations, int) or max_iterations < 1
            ):
                errors.append("iteration_config.max_iterations must be a positive integer")

        templates = config.get("template_config")
        if templates is not None:
            if not isinstance(templates, dict):
                errors.append("template_config must be a mapping")
            elif not isinstance(templates.get("template_files") or {}, dict):
                errors.append("template_config.template_files must be a mapping")

        return ConfigValidationResult(is_valid=not errors, errors=errors)

    # ---------------------------------------------------------------
    # Lookups
    # ---------------------------------------------------------------

    def get_specialist(self, specialist_id: str) -> Optional[SpecialistConfig]:
        return self._specialists.get(specialist_id)

    def get_all_specialists(
        self,
        category: Optional[str] = None,
        enabled: Optional[bool] = None
    ) -> List[SpecialistConfig]:
        """All registered specialists, optionally filtered by category and enabled state"""
        specialists = list(self._specialists.values())
        if category is not None:
            specialists = [s for s in specialists if s.category.value == category]
        if enabled is not None:
            specialists = [s for s in specialists if s.enabled == enabled]
        return specialists

    def is_specialist_available(self, specialist_id: str) -> bool:
        specialist = self.get_specialist(specialist_id)
        return specialist is not None and specialist.enabled

    def get_specialist_type(self, specialist_id: str) -> Optional[Dict[str, str]]:
        """Name and category of a specialist, or None if unknown"""
        specialist = self.get_specialist(specialist_id)
        if specialist is None:
            return None
        return {"name": specialist.name, "category": specialist.category.value}

    def get_stats(self) -> RegistryStats:
        specialists = list(self._specialists.values())
        enabled = sum(1 for s in specialists if s.enabled)
        return RegistryStats(
            total_specialists=len(specialists),
            enabled_specialists=enabled,
            disabled_specialists=len(specialists) - enabled,
            by_category={c: sum(1 for s in specialists if s.category.value == c) for c in CATEGORIES},
            last_scan_time=self._last_scan_time,
        )

    def clear(self):
        """Forget every registered specialist"""
        self._specialists.clear()
        self._last_scan_time = 0


__all__ = ["SpecialistRegistry", "FRONTMATTER_PATTERN"]
