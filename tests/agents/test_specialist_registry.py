"""
Tests for SpecialistRegistry

Specialist definitions are markdown files with YAML frontmatter.
"""
import pytest
import tempfile
import shutil
from pathlib import Path

from srs_writer.agents.core.specialist_registry import SpecialistRegistry
from srs_writer.agents.schemas import SpecialistCategory


NEW_FORMAT = """---
specialist_config:
  enabled: true
  id: fr_writer
  name: FR Writer
  category: content
  version: 2.1
  capabilities: [functional_requirements]
  tags: [srs, requirements]
  iteration_config:
    max_iterations: 12
  template_config:
    template_files:
      FRS_TEMPLATE: fr_template.md
---

# FR Writer

Write the functional requirements section.
"""

LEGACY_FORMAT = """---
assembly_config:
  specialist_type: process
  specialist_name: Git Operator
---

Handle git operations.
"""

DISABLED = """---
specialist_config:
  enabled: false
  id: summary_writer
  name: Summary Writer
  category: content
---
Summaries.
"""


class TestSpecialistRegistry:
    """Test suite for SpecialistRegistry"""

    @pytest.fixture
    def temp_dir(self):
        """Create temporary specialists directory"""
        temp = Path(tempfile.mkdtemp())
        (temp / "content").mkdir()
        (temp / "process").mkdir()
        yield temp
        if temp.exists():
            shutil.rmtree(temp)

    @pytest.fixture
    def registry(self, temp_dir):
        (temp_dir / "content" / "fr_writer.md").write_text(NEW_FORMAT, encoding="utf-8")
        (temp_dir / "process" / "git_operator.md").write_text(LEGACY_FORMAT, encoding="utf-8")
        (temp_dir / "content" / "summary_writer.md").write_text(DISABLED, encoding="utf-8")
        registry = SpecialistRegistry(temp_dir)
        registry.scan_and_register()
        return registry

    def test_scan_registers_valid_files(self, registry):
        """Test that every valid definition is registered"""
        ids = sorted(s.id for s in registry.get_all_specialists())
        assert ids == ["fr_writer", "git_operator", "summary_writer"]

    def test_new_format_fields(self, registry):
        """Test normalizing a specialist_config record"""
        specialist = registry.get_specialist("fr_writer")

        assert specialist.name == "FR Writer"
        assert specialist.category == SpecialistCategory.CONTENT
        assert specialist.version == "2.1"
        assert specialist.tags == ["srs", "requirements"]
        assert specialist.iteration_config.max_iterations == 12
        assert specialist.template_config.template_files == {"FRS_TEMPLATE": "fr_template.md"}
        assert specialist.body.startswith("# FR Writer")
        assert not specialist.is_legacy

    def test_legacy_format(self, registry):
        """Test that legacy records take their id from the file name"""
        specialist = registry.get_specialist("git_operator")

        assert specialist.name == "Git Operator"
        assert specialist.category == SpecialistCategory.PROCESS
        assert specialist.tags == ["legacy"]
        assert specialist.is_legacy
        assert specialist.enabled is True

    def test_unknown_specialist(self, registry):
        """Test lookups of unknown ids"""
        assert registry.get_specialist("ghost") is None
        assert registry.get_specialist_type("ghost") is None
        assert registry.is_specialist_available("ghost") is False

    def test_availability_respects_enabled(self, registry):
        """Test that disabled specialists are registered but unavailable"""
        assert registry.get_specialist("summary_writer") is not None
        assert registry.is_specialist_available("summary_writer") is False
        assert registry.is_specialist_available("fr_writer") is True

    def test_filters(self, registry):
        """Test filtering by category and enabled state"""
        content = registry.get_all_specialists(category="content")
        assert sorted(s.id for s in content) == ["fr_writer", "summary_writer"]

        enabled_content = registry.get_all_specialists(category="content", enabled=True)
        assert [s.id for s in enabled_content] == ["fr_writer"]

    def test_get_specialist_type(self, registry):
        """Test name and category lookup"""
        assert registry.get_specialist_type("fr_writer") == {"name": "FR Writer", "category": "content"}

    def test_stats(self, registry):
        """Test registry statistics"""
        stats = registry.get_stats()

        assert stats.total_specialists == 3
        assert stats.enabled_specialists == 2
        assert stats.disabled_specialists == 1
        assert stats.by_category == {"content": 2, "process": 1}
        assert stats.last_scan_time > 0

    def test_invalid_files_are_collected(self, temp_dir):
        """Test that broken definitions are reported, not raised"""
        (temp_dir / "content" / "no_frontmatter.md").write_text("# Just markdown\n", encoding="utf-8")
        (temp_dir / "content" / "bad_id.md").write_text(
            "---\nspecialist_config:\n  id: Bad-Id\n  name: Bad\n  category: content\n---\n",
            encoding="utf-8",
        )
        (temp_dir / "content" / "bad_yaml.md").write_text("---\nspecialist_config: [unclosed\n---\n", encoding="utf-8")
        (temp_dir / "content" / "fr_writer.md").write_text(NEW_FORMAT, encoding="utf-8")

        registry = SpecialistRegistry(temp_dir)
        result = registry.scan_and_register()

        assert [s.id for s in result.valid_specialists] == ["fr_writer"]
        assert result.scan_stats.total_files == 4
        assert result.scan_stats.invalid_count == 3
        assert {Path(f.file_path).name for f in result.invalid_files} == {
            "no_frontmatter.md", "bad_id.md", "bad_yaml.md"
        }

    def test_duplicate_ids_are_invalid(self, temp_dir):
        """Test that a second file with the same id is rejected"""
        (temp_dir / "content" / "a.md").write_text(NEW_FORMAT, encoding="utf-8")
        (temp_dir / "content" / "b.md").write_text(NEW_FORMAT, encoding="utf-8")

        registry = SpecialistRegistry(temp_dir)
        result = registry.scan_and_register()

        assert len(result.valid_specialists) == 1
        assert "Duplicate specialist id" in result.invalid_files[0].error

    def test_missing_directory(self):
        """Test scanning a directory that does not exist"""
        registry = SpecialistRegistry(Path(tempfile.gettempdir()) / "srs-writer-missing-specialists")
        result = registry.scan_and_register()

        assert result.valid_specialists == []
        assert result.invalid_files == []

    def test_validate_specialist_config(self, registry):
        """Test validating new-format configs"""
        valid = registry.validate_specialist_config({"id": "nfr_writer", "name": "NFR", "category": "content"})
        assert valid.is_valid

        invalid = registry.validate_specialist_config({
            "id": "nfr_writer",
            "category": "design",
            "iteration_config": {"max_iterations": 0},
        })
        assert not invalid.is_valid
        assert "Missing required field: name" in invalid.errors
        assert any("Invalid category" in e for e in invalid.errors)
        assert any("max_iterations" in e for e in invalid.errors)

        assert not registry.validate_specialist_config("not a mapping").is_valid

    def test_clear(self, registry):
        """Test forgetting all specialists"""
        registry.clear()
        assert registry.get_all_specialists() == []
        assert registry.get_stats().last_scan_time == 0

    def test_rescan_replaces_registry(self, registry, temp_dir):
        """Test that a rescan reflects removed files"""
        (temp_dir / "process" / "git_operator.md").unlink()
        registry.scan_and_register()
        assert registry.get_specialist("git_operator") is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
