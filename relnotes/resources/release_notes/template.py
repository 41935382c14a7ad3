from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Union

from relnotes.resources.release_notes.errors import TemplateParseError
from relnotes.resources.release_notes.models import Template, TemplateHint, TemplateSpec

logger = logging.getLogger(__name__)

NO_SECTIONS_TEXT = "No specific sections defined"


def parse_template(raw: Union[str, Dict[str, Any], Template, None]) -> Optional[Template]:
    """
    Resolve the request's template field into a TemplateHint or TemplateSpec.

    Strings become hints. Objects become specs only when they carry a name;
    anything else is ignored.
    """
    if raw is None or isinstance(raw, (TemplateHint, TemplateSpec)):
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        return TemplateHint(text=text) if text else None
    if isinstance(raw, dict):
        name = raw.get("name")
        if not isinstance(name, str) or not name.strip():
            logger.info("Ignoring template object without a name")
            return None

        def _s(key: str) -> Optional[str]:
            value = raw.get(key)
            return value if isinstance(value, str) and value.strip() else None

        content = raw.get("content")
        if isinstance(content, (dict, list)):
            content = json.dumps(content)
        return TemplateSpec(
            name=name.strip(),
            content=content if isinstance(content, str) else None,
            category=_s("category"),
            description=_s("description"),
            system_prompt=_s("system_prompt"),
            tone=_s("tone"),
            target_audience=_s("target_audience"),
            output_format=_s("output_format"),
            example_output=_s("example_output"),
        )
    return None


def parse_template_sections(content: Optional[str]) -> List[Dict[str, str]]:
    """
    Parse template content of the form {"sections": [{"name", "type", "prompt"}]}.

    Raises TemplateParseError when the content is not valid JSON or not that shape.
    """
    if not content or not content.strip():
        return []
    try:
        parsed = json.loads(content)
    except ValueError as e:
        raise TemplateParseError(f"Template content is not valid JSON: {e}")

    if isinstance(parsed, list):
        sections = parsed
    elif isinstance(parsed, dict):
        sections = parsed.get("sections") or []
    else:
        raise TemplateParseError("Template content must be an object or a list")
    if not isinstance(sections, list):
        raise TemplateParseError("Template 'sections' must be a list")

    out: List[Dict[str, str]] = []
    for section in sections:
        if not isinstance(section, dict):
            continue
        out.append({
            "name": str(section.get("name") or "Unnamed"),
            "type": str(section.get("type") or "text"),
            "prompt": str(section.get("prompt") or "No prompt specified"),
        })
    return out


def render_template_requirements(spec: TemplateSpec) -> str:
    try:
        sections = parse_template_sections(spec.content)
    except TemplateParseError as e:
        logger.warning(f"Template '{spec.name}': {e}; continuing without sections")
        sections = []

    if sections:
        sections_text = "\n".join(f"- [ ] {s['name']} ({s['type']}): {s['prompt']}" for s in sections)
    else:
        sections_text = NO_SECTIONS_TEXT

    lines = [
        "TEMPLATE REQUIREMENTS:",
        f"Template structure: {spec.name} ({spec.category or 'custom'})",
        f"Description: {spec.description or 'Custom template'}",
    ]
    if spec.system_prompt:
        lines.extend(["", spec.system_prompt])
    lines.extend([
        "",
        "Template Sections Required:",
        sections_text,
        "",
        "Example Output Style:",
        spec.example_output or "Follow the template structure above",
        "",
        f"Tone Override: {spec.tone or 'Use organization default'}",
        f"Audience Override: {spec.target_audience or 'Use organization default'}",
        f"Output Format: {spec.output_format or 'markdown'}",
        "",
        "IMPORTANT: Follow the template structure exactly while maintaining the professional tone and voice established above.",
    ])
    return "\n".join(lines)


def render_template_hint(hint: TemplateHint) -> str:
    return f"Template structure (use as guidance for the layout of the final output):\n{hint.text}"
