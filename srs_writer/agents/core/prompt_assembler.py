"""
Prompt Assembler - Turns a specialist id + context into the model prompt

The Specialist Executor only relies on assemble_specialist_prompt(); any object
with that coroutine can replace PromptAssembler. Template files referenced by a
specialist's template_config are loaded by SpecialistTemplateLoader and passed
in the context under their *_TEMPLATE keys.
"""
import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional

from langchain_core.output_parsers import PydanticOutputParser
from langchain_core.prompts import ChatPromptTemplate

from srs_writer.agents.schemas import SpecialistPlan
from srs_writer.config import TEMPLATES_DIR

logger = logging.getLogger(__name__)


class SpecialistTemplateLoader:
    """Loads the template files a specialist declares"""

    def __init__(self, specialist_registry, templates_dir: Optional[Path] = None):
        self.specialist_registry = specialist_registry
        self.templates_dir = Path(templates_dir) if templates_dir else TEMPLATES_DIR

    def load_specialist_templates(self, specialist_id: str) -> Dict[str, str]:
        """
        Template contents keyed by context key

        Returns:
            {} for an unknown specialist or one without templates; a template
            whose file cannot be read maps to "" (the key is never dropped)
        """
        specialist = self.specialist_registry.get_specialist(specialist_id) if self.specialist_registry else None
        if specialist is None or specialist.template_config is None:
            return {}

        templates = {}
        for key, template_path in specialist.template_config.template_files.items():
            path = Path(template_path)
            if not path.is_absolute():
                path = self.templates_dir / path
            try:
                templates[key] = path.read_text(encoding="utf-8")
            except OSError as e:
                logger.warning(f"[TemplateLoader] Could not load {key} for {specialist_id} from {path}: {e}")
                templates[key] = ""
        return templates


SYSTEM_PROMPT = """You are the "{specialist_name}" specialist of an SRS (software requirements specification) authoring team.

{instructions}

## Available tools
{tools}

Call taskComplete with a summary (and contextForNext for later steps) when your task is finished.
Call askQuestion when you need information only the user can provide.

{format_instructions}"""

HUMAN_PROMPT = """## Task context
{context}
{templates}
## Your previous iterations (newest first)
{history}"""


class PromptAssembler:
    """Default prompt assembler built on a langchain ChatPromptTemplate"""

    def __init__(self, specialist_registry=None, tool_registry=None):
        self.specialist_registry = specialist_registry
        self.tool_registry = tool_registry
        self.parser = PydanticOutputParser(pydantic_object=SpecialistPlan)
        self.prompt = ChatPromptTemplate.from_messages([
            ("system", SYSTEM_PROMPT),
            ("human", HUMAN_PROMPT),
        ])

    async def assemble_specialist_prompt(self, specialist_type: str, context: Dict[str, Any]) -> str:
        specialist = self.specialist_registry.get_specialist(specialist_type) if self.specialist_registry else None
        specialist_name = specialist.name if specialist else specialist_type
        instructions = specialist.body if specialist and specialist.body else ""

        templates = {k: v for k, v in context.items() if k.endswith("_TEMPLATE")}
        task_context = {k: v for k, v in context.items() if not k.endswith("_TEMPLATE")}
        structured = dict(task_context.get("structuredContext") or {})
        history = structured.pop("internalHistory", None) or []
        task_context["structuredContext"] = structured

        template_block = "".join(
            f"\n## {key}\n{content}\n" for key, content in templates.items() if content
        )
        tools = self.tool_registry.get_tool_definitions() if self.tool_registry else []

        return self.prompt.format(
            specialist_name=specialist_name,
            instructions=instructions,
            tools=json.dumps(tools, indent=2, ensure_ascii=False),
            format_instructions=self.parser.get_format_instructions(),
            context=json.dumps(task_context, indent=2, ensure_ascii=False, default=str),
            templates=template_block,
            history="\n".join(history) if history else "(none)",
        )


__all__ = ["PromptAssembler", "SpecialistTemplateLoader"]
