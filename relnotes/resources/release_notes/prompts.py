from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Union

from relnotes.resources.release_notes.models import (
    AIBehaviorContext,
    CategorizedSections,
    DateRange,
    Issue,
    OrganizationProfile,
    PromptResult,
    Template,
    TemplateHint,
    TemplateSpec,
)
from relnotes.resources.release_notes.template import (
    parse_template,
    render_template_hint,
    render_template_requirements,
)

MAX_DESCRIPTION_CHARS = 280

SECTION_TITLES = {
    "features": "New Features",
    "improvements": "Improvements",
    "bugfixes": "Bug Fixes",
    "breaking": "Breaking Changes",
}

SECTION_EMOJIS = {
    "features": "🚀",
    "improvements": "✨",
    "bugfixes": "🐛",
    "breaking": "⚠️",
}

BASE_STYLE_RULES = """Formatting and Style Rules:
- Use clear, scannable structure with proper headings and bullet points.
- Create a professional, engaging heading that reflects the release theme.
- Avoid internal jargon and ticket noise; emphasize user-facing impact.
- Keep sentences concise; use parallel structure across bullets.
- Do not invent features, numbers, dates, or customers.
- If a section has no items, omit that section entirely."""

TECHNICAL_CONTENT_RULES = [
    "- Include technical details, API changes, and implementation specifics",
    "- Include library names, framework versions, and technical specifications",
    "- Include contributor names and technical credits when relevant",
]

GENERAL_CONTENT_RULES = [
    "- Remove internal technical details and implementation specifics",
    "- Remove individual contributor names unless they are public figures",
    "- Remove library/vendor names unless they are essential for user understanding",
    "- Focus on user-facing benefits and business value",
]

BREVITY_RULES = {
    "concise": [
        "- Keep descriptions brief and focused on key points",
        "- Use bullet points for quick scanning",
    ],
    "detailed": [
        "- Provide sufficient detail for understanding impact",
        "- Balance brevity with completeness",
    ],
    "comprehensive": [
        "- Include comprehensive details and context",
        "- Provide thorough explanations for complex changes",
    ],
}

EXECUTIVE_SUMMARY = {
    "concise": "Start with a brief executive summary (2-3 sentences) highlighting the key improvements.",
    "detailed": "Start with an executive summary capturing the release theme, key improvements, and user impact.",
    "comprehensive": (
        "Start with a detailed executive summary with business context, "
        "technical overview, and user impact analysis."
    ),
}

NOTABLE_CHANGES = "## Notable Changes\nInclude any cross-cutting changes, migrations, or platform-level updates if applicable."
UPGRADE_NOTES = "## Upgrade Notes\nIf any breaking changes or migrations exist, provide concise upgrade guidance."

COMPREHENSIVE_EXTRA_SECTIONS = [
    "## Technical Implementation\nProvide detailed technical specifications, API changes, and implementation notes.",
    "## Performance Impact\nInclude any performance improvements, optimizations, or resource usage changes.",
    "## Security Updates\nHighlight any security improvements, vulnerability fixes, or compliance updates.",
]

DEVELOPER_EXTRA_SECTION = (
    "## Technical Details\nInclude relevant technical specifications, API changes, or implementation notes."
)


def _organization_lines(organization: Optional[OrganizationProfile]) -> List[str]:
    if organization is None:
        return []
    settings = organization.settings
    candidates = [
        ("Organization", organization.meta_description),
        ("Industry", settings.industry),
        ("Company Size", settings.company_size),
        ("Product Type", settings.product_type),
        ("Target Market", settings.target_market),
        ("Company Description", settings.company_description),
    ]
    return [f"{label}: {value}" for label, value in candidates if value]


def _content_rules(audience: str) -> List[str]:
    if audience in ("developers", "technical"):
        return list(TECHNICAL_CONTENT_RULES)
    return list(GENERAL_CONTENT_RULES)


def _formatting_rules(ctx: AIBehaviorContext) -> List[str]:
    rules: List[str] = []
    if ctx.include_emojis:
        rules.append("- Use appropriate emojis to enhance readability and engagement")
    else:
        rules.append("- Do not use emojis")
    if ctx.include_metrics:
        rules.append("- Include specific numbers and measurable improvements when available")
    rules.extend(BREVITY_RULES.get(ctx.brevity_level, BREVITY_RULES["detailed"]))
    return rules


def format_issue_line(issue: Issue, *, include_identifiers: bool) -> str:
    """
    One bullet for the user prompt.

    Identifier and team name appear only when include_identifiers is set.
    """
    line = f"- {issue.title or '(untitled)'}"
    if issue.description:
        description = " ".join(issue.description.split())
        if len(description) > MAX_DESCRIPTION_CHARS:
            description = description[: MAX_DESCRIPTION_CHARS - 3].rstrip() + "..."
        line += f": {description}"
    if include_identifiers:
        if issue.identifier:
            line += f" ({issue.identifier})"
        if issue.team and issue.team.name:
            line += f" [{issue.team.name}]"
    return line


def build_section(name: str, issues: Sequence[Issue], *, include_identifiers: bool, emojis: bool = False) -> str:
    if not issues:
        return ""
    title = SECTION_TITLES.get(name, name.title())
    if emojis:
        title = f"{SECTION_EMOJIS.get(name, '')} {title}".strip()
    lines = [format_issue_line(i, include_identifiers=include_identifiers) for i in issues]
    return f"## {title}\n" + "\n".join(lines)


def build_system_prompt(
    *,
    organization: Optional[OrganizationProfile] = None,
    ai_context: Optional[AIBehaviorContext] = None,
    version: Optional[str] = None,
    release_date: Optional[str] = None,
    date_range: Optional[DateRange] = None,
    teams: Sequence[str] = (),
    projects: Sequence[str] = (),
    template: Optional[Template] = None,
) -> str:
    ctx = ai_context or AIBehaviorContext()
    tone, audience, output_format = ctx.tone, ctx.audience, ctx.output_format
    if isinstance(template, TemplateSpec):
        tone = template.tone or tone
        audience = template.target_audience or audience
        output_format = template.output_format or output_format

    industry = organization.settings.industry if organization else None
    header = [
        f"Role: You are an experienced product technical writer specializing in {industry or 'software'} release notes.",
        f"Language: {ctx.language}",
        f"Audience: {audience}",
        f"Tone: {tone}",
        f"Output Format: {output_format}",
        (
            f"Content Style: {ctx.brevity_level} with {'emojis' if ctx.include_emojis else 'no emojis'} "
            f"and {'metrics' if ctx.include_metrics else 'no metrics'}"
        ),
    ]

    org_lines = _organization_lines(organization)
    if org_lines:
        header.append("Organization Context:\n" + "\n".join(org_lines))

    if version:
        header.append(f"Release version: {version}")
    if release_date:
        header.append(f"Release date: {release_date}")
    if date_range is not None and not date_range.is_empty():
        header.append(f"Time window: {date_range.from_ or 'N/A'} to {date_range.to or 'N/A'}")
    if teams:
        header.append(f"Teams in scope: {', '.join(teams)}")
    if projects:
        header.append(f"Projects in scope: {', '.join(projects)}")

    blocks = ["\n".join(header)]
    if ctx.system_prompt:
        blocks.append(f"House style guidelines (must follow):\n{ctx.system_prompt}")

    rules = [BASE_STYLE_RULES]
    rules.extend(_content_rules(audience))
    rules.extend(_formatting_rules(ctx))
    if output_format == "html":
        rules.append("- Return semantic HTML (h2, ul, li, p) without inline styles or scripts")
    blocks.append("\n".join(rules))

    if isinstance(template, TemplateHint):
        blocks.append(render_template_hint(template))

    if ctx.example_output:
        blocks.append(f"Example Output (for style reference; do not copy content):\n{ctx.example_output}")

    if isinstance(template, TemplateSpec):
        blocks.append(render_template_requirements(template))

    return "\n\n".join(blocks)


def build_user_prompt(
    *,
    sections: CategorizedSections,
    ai_context: Optional[AIBehaviorContext] = None,
    version: Optional[str] = None,
    instructions: Optional[str] = None,
    include_identifiers: bool = True,
    audience: Optional[str] = None,
) -> str:
    ctx = ai_context or AIBehaviorContext()
    audience = audience or ctx.audience
    brevity = ctx.brevity_level if ctx.brevity_level in EXECUTIVE_SUMMARY else "detailed"

    task = "TASK: Generate the release notes"
    task += f" for version {version}" if version else ""
    task += " based on the categorized issues below."

    parts = [
        task,
        "IMPORTANT: Create an engaging, professional heading that captures the release theme and version.",
        EXECUTIVE_SUMMARY[brevity],
    ]

    rendered = [
        build_section(name, issues, include_identifiers=include_identifiers, emojis=ctx.include_emojis)
        for name, issues in sections.items()
    ]
    rendered = [r for r in rendered if r]
    if rendered:
        parts.extend(rendered)
    else:
        parts.append("No categorized issues were provided; keep the notes short and do not invent changes.")

    parts.append(NOTABLE_CHANGES)
    parts.append(UPGRADE_NOTES)
    if brevity == "comprehensive":
        parts.extend(COMPREHENSIVE_EXTRA_SECTIONS)
    elif audience == "developers":
        parts.append(DEVELOPER_EXTRA_SECTION)

    if instructions:
        parts.append(f"Additional Context: {instructions}")

    return "\n\n".join(parts)


def build_prompt(
    sections: CategorizedSections,
    *,
    organization: Optional[OrganizationProfile] = None,
    ai_context: Optional[AIBehaviorContext] = None,
    version: Optional[str] = None,
    release_date: Optional[str] = None,
    instructions: Optional[str] = None,
    template: Union[Template, str, Dict[str, Any], None] = None,
    date_range: Optional[DateRange] = None,
    teams: Sequence[str] = (),
    projects: Sequence[str] = (),
    include_identifiers: bool = True,
) -> PromptResult:
    """
    Assemble the system/user prompt pair handed to the text generator.

    Optional inputs are skipped when missing; an empty CategorizedSections with
    no context still yields a complete pair. A structured template's tone,
    audience and output format override the AI context for this build only.
    """
    resolved = parse_template(template)
    system_prompt = build_system_prompt(
        organization=organization,
        ai_context=ai_context,
        version=version,
        release_date=release_date,
        date_range=date_range,
        teams=teams,
        projects=projects,
        template=resolved,
    )
    audience = resolved.target_audience if isinstance(resolved, TemplateSpec) else None
    user_prompt = build_user_prompt(
        sections=sections,
        ai_context=ai_context,
        version=version,
        instructions=instructions,
        include_identifiers=include_identifiers,
        audience=audience,
    )
    return PromptResult(system_prompt=system_prompt, user_prompt=user_prompt)
