from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, List, Pattern, Tuple

from relnotes.resources.release_notes.models import CategorizedSections, Issue

logger = logging.getLogger(__name__)

IssuePredicate = Callable[[Issue], bool]


def _matches(label_pattern: Pattern[str], title_pattern: Pattern[str]) -> IssuePredicate:
    def predicate(issue: Issue) -> bool:
        if any(label_pattern.search(label) for label in issue.labels):
            return True
        return bool(title_pattern.search(issue.title or ""))

    return predicate


_IMPROVEMENT = r"improv|refactor|chore|perf|optimi[sz]|polish|cleanup|tweak|upgrade"

# Evaluated top to bottom; the first match wins. "enhancement" is a feature signal.
CATEGORY_RULES: List[Tuple[str, IssuePredicate]] = [
    ("breaking", _matches(re.compile(r"breaking|deprecat", re.I), re.compile(r"breaking", re.I))),
    ("bugfixes", _matches(re.compile(r"bug|fix", re.I), re.compile(r"fix|bug", re.I))),
    ("features", _matches(re.compile(r"feature|enhancement|feat", re.I), re.compile(r"feat|feature", re.I))),
    ("improvements", _matches(re.compile(_IMPROVEMENT, re.I), re.compile(_IMPROVEMENT, re.I))),
]


def categorize_issue(issue: Issue) -> str:
    """Section name for one issue, or "" when no rule matches."""
    for section, predicate in CATEGORY_RULES:
        if predicate(issue):
            return section
    return ""


def categorize(issues: Iterable[Issue]) -> CategorizedSections:
    """
    Partition issues into the four release-note sections.

    Each issue lands in at most one section, in input order. Issues no rule
    recognises are kept on `unclassified` so the loss is visible to callers.
    """
    sections = CategorizedSections()
    for issue in issues:
        section = categorize_issue(issue)
        if section:
            sections.section(section).append(issue)
        else:
            sections.unclassified.append(issue)

    if sections.unclassified:
        logger.warning(
            f"{sections.unclassified_count} issue(s) matched no release-note section and were left out: "
            f"{', '.join(i.identifier or i.id for i in sections.unclassified[:10])}"
        )
    return sections
