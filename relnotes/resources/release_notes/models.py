from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time, timezone
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

MAX_INSTRUCTIONS_CHARS = 1000
MAX_VERSION_CHARS = 100

SECTION_ORDER: Tuple[str, ...] = ("features", "improvements", "bugfixes", "breaking")


def parse_date(value: Optional[str], *, end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse an ISO date or timestamp into an aware UTC datetime.

    Date-only values resolve to midnight, or to the last instant of the day when
    `end_of_day` is set (so an inclusive `to` bound covers the whole day).
    Raises ValueError for unparseable input.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    parsed = datetime.fromisoformat(text)
    if len(text) == 10 and end_of_day:
        parsed = datetime.combine(parsed.date(), time.max)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _str_tuple(values: Any) -> Tuple[str, ...]:
    """Ordered, de-duplicated tuple of non-empty strings."""
    if not values:
        return ()
    if isinstance(values, str):
        values = [values]
    elif not isinstance(values, (list, tuple)):
        return ()
    out: List[str] = []
    for v in values:
        s = str(v).strip() if v is not None else ""
        if s and s not in out:
            out.append(s)
    return tuple(out)


_INVALID = object()


def _parse_priority(value: Any) -> Any:
    """int priority, None when absent, or _INVALID for anything that is not a whole number."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return _INVALID
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else _INVALID
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return _INVALID
    return _INVALID


def _shape_errors(data: Dict[str, Any]) -> List[str]:
    """Problems with the JSON shape of a request body, phrased for the caller."""
    errors: List[str] = []
    for key, label in (("teams", "Teams"), ("projects", "Projects"),
                       ("selectedIssueIds", "Selected issues"), ("selectedIssues", "Selected issues")):
        value = data.get(key)
        if value is not None and not isinstance(value, (list, str)):
            errors.append(f"{label} must be a list of ids")

    date_range = data.get("dateRange")
    if date_range is not None:
        if not isinstance(date_range, dict):
            errors.append("Date range must be an object with from/to dates")
        else:
            for key, label in (("from", "Start date"), ("to", "End date")):
                value = date_range.get(key)
                if value is not None and not isinstance(value, str):
                    errors.append(f"{label} is not a valid date")

    filters = data.get("issueFilters")
    if filters is not None:
        if not isinstance(filters, dict):
            errors.append("Issue filters must be an object")
        else:
            for key, label in (("labels", "Labels"), ("stateTypes", "State types")):
                value = filters.get(key)
                if value is not None and not isinstance(value, (list, str)):
                    errors.append(f"{label} must be a list of names")
            if _parse_priority(filters.get("minPriority")) is _INVALID:
                errors.append("Minimum priority must be an integer")
    return errors


def _opt_str(value: Any, *, limit: Optional[int] = None) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value:
        return None
    return value[:limit] if limit else value


@dataclass(frozen=True)
class DateRange:
    from_: Optional[str] = None
    to: Optional[str] = None

    @staticmethod
    def from_dict(data: Optional[Dict[str, Any]]) -> "DateRange":
        if not isinstance(data, dict):
            data = {}
        return DateRange(from_=_opt_str(data.get("from")), to=_opt_str(data.get("to")))

    def is_empty(self) -> bool:
        return not self.from_ and not self.to

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"from": self.from_, "to": self.to}


@dataclass(frozen=True)
class IssueFilters:
    labels: Tuple[str, ...] = ()
    min_priority: Optional[int] = None
    state_types: Tuple[str, ...] = ()

    @staticmethod
    def from_dict(data: Optional[Dict[str, Any]]) -> "IssueFilters":
        if not isinstance(data, dict):
            data = {}
        min_priority = _parse_priority(data.get("minPriority"))
        if min_priority is _INVALID:
            min_priority = None
        return IssueFilters(
            labels=_str_tuple(data.get("labels")),
            min_priority=min_priority,
            state_types=_str_tuple(data.get("stateTypes")),
        )


@dataclass(frozen=True)
class GenerationRequest:
    teams: Tuple[str, ...]
    projects: Tuple[str, ...] = ()
    date_range: DateRange = field(default_factory=DateRange)
    issue_filters: IssueFilters = field(default_factory=IssueFilters)
    selected_issue_ids: Tuple[str, ...] = ()
    template: Union[str, Dict[str, Any], None] = None
    instructions: Optional[str] = None
    version: Optional[str] = None
    release_date: Optional[str] = None
    include_identifiers: Optional[bool] = None
    input_errors: Tuple[str, ...] = field(default=(), compare=False)

    @staticmethod
    def from_payload(payload: Optional[Dict[str, Any]]) -> "GenerationRequest":
        """
        Build a request from the camelCase JSON body used by the HTTP API.

        Malformed fields are dropped and described in `input_errors`, which
        `validate` reports alongside its own checks.
        """
        data = payload if isinstance(payload, dict) else {}
        input_errors = _shape_errors(data)
        selected = data.get("selectedIssueIds")
        if selected is None:
            selected = data.get("selectedIssues")

        template = data.get("template")
        if not isinstance(template, (str, dict)):
            template = None

        include_identifiers = data.get("includeIdentifiers")
        if not isinstance(include_identifiers, bool):
            include_identifiers = None

        return GenerationRequest(
            teams=_str_tuple(data.get("teams")),
            projects=_str_tuple(data.get("projects")),
            date_range=DateRange.from_dict(data.get("dateRange")),
            issue_filters=IssueFilters.from_dict(data.get("issueFilters")),
            selected_issue_ids=_str_tuple(selected),
            template=template,
            instructions=_opt_str(data.get("instructions"), limit=MAX_INSTRUCTIONS_CHARS),
            version=_opt_str(data.get("version"), limit=MAX_VERSION_CHARS),
            release_date=_opt_str(data.get("releaseDate")),
            include_identifiers=include_identifiers,
            input_errors=tuple(input_errors),
        )


@dataclass(frozen=True)
class TeamRef:
    id: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class ProjectRef:
    id: str
    name: Optional[str] = None


@dataclass(frozen=True)
class Issue:
    id: str
    identifier: str
    title: str
    labels: Tuple[str, ...] = ()
    team: Optional[TeamRef] = None
    project: Optional[ProjectRef] = None
    priority: Optional[int] = None
    completed_at: Optional[str] = None
    state_name: Optional[str] = None
    state_type: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "identifier": self.identifier,
            "title": self.title,
            "labels": list(self.labels),
            "team": {"id": self.team.id, "name": self.team.name} if self.team else None,
            "project": {"id": self.project.id, "name": self.project.name} if self.project else None,
            "priority": self.priority,
            "completedAt": self.completed_at,
            "state": self.state_name,
            "stateType": self.state_type,
            "url": self.url,
        }


@dataclass
class CategorizedSections:
    features: List[Issue] = field(default_factory=list)
    improvements: List[Issue] = field(default_factory=list)
    bugfixes: List[Issue] = field(default_factory=list)
    breaking: List[Issue] = field(default_factory=list)
    # Issues that matched no rule. Never rendered, only counted.
    unclassified: List[Issue] = field(default_factory=list)

    def section(self, name: str) -> List[Issue]:
        if name not in SECTION_ORDER:
            raise KeyError(name)
        return getattr(self, name)

    def items(self) -> Iterator[Tuple[str, List[Issue]]]:
        for name in SECTION_ORDER:
            yield name, getattr(self, name)

    @property
    def classified_count(self) -> int:
        return sum(len(issues) for _, issues in self.items())

    @property
    def unclassified_count(self) -> int:
        return len(self.unclassified)

    def counts(self) -> Dict[str, int]:
        return {name: len(issues) for name, issues in self.items()}


@dataclass(frozen=True)
class OrganizationSettings:
    industry: Optional[str] = None
    company_size: Optional[str] = None
    product_type: Optional[str] = None
    target_market: Optional[str] = None
    company_description: Optional[str] = None

    @staticmethod
    def from_dict(data: Optional[Dict[str, Any]]) -> "OrganizationSettings":
        data = data or {}
        return OrganizationSettings(
            industry=_opt_str(data.get("industry")),
            company_size=_opt_str(data.get("company_size")),
            product_type=_opt_str(data.get("product_type")),
            target_market=_opt_str(data.get("target_market")),
            company_description=_opt_str(data.get("company_description")),
        )


@dataclass(frozen=True)
class OrganizationProfile:
    id: Optional[str] = None
    name: Optional[str] = None
    slug: Optional[str] = None
    meta_description: Optional[str] = None
    settings: OrganizationSettings = field(default_factory=OrganizationSettings)

    @staticmethod
    def from_dict(data: Optional[Dict[str, Any]]) -> Optional["OrganizationProfile"]:
        if not data:
            return None
        return OrganizationProfile(
            id=_opt_str(data.get("id")),
            name=_opt_str(data.get("name")),
            slug=_opt_str(data.get("slug")),
            # Plain `description` is the fallback, as in the organizations table.
            meta_description=_opt_str(data.get("meta_description")) or _opt_str(data.get("description")),
            settings=OrganizationSettings.from_dict(data.get("settings")),
        )


@dataclass(frozen=True)
class AIBehaviorContext:
    tone: str = "professional"
    audience: str = "mixed"
    output_format: str = "markdown"
    language: str = "English"
    include_emojis: bool = False
    include_metrics: bool = True
    brevity_level: str = "detailed"
    example_output: Optional[str] = None
    system_prompt: Optional[str] = None

    @staticmethod
    def from_dict(data: Optional[Dict[str, Any]]) -> Optional["AIBehaviorContext"]:
        if not data:
            return None
        defaults = AIBehaviorContext()

        def _flag(key: str, default: bool) -> bool:
            value = data.get(key)
            return value if isinstance(value, bool) else default

        return AIBehaviorContext(
            tone=_opt_str(data.get("tone")) or defaults.tone,
            audience=_opt_str(data.get("audience")) or defaults.audience,
            output_format=_opt_str(data.get("output_format")) or defaults.output_format,
            language=_opt_str(data.get("language")) or defaults.language,
            include_emojis=_flag("include_emojis", defaults.include_emojis),
            include_metrics=_flag("include_metrics", defaults.include_metrics),
            brevity_level=_opt_str(data.get("brevity_level")) or defaults.brevity_level,
            example_output=_opt_str(data.get("example_output")),
            system_prompt=_opt_str(data.get("system_prompt")),
        )

    @property
    def is_technical(self) -> bool:
        return self.tone == "technical" or self.audience == "developers"


@dataclass(frozen=True)
class CompleteContext:
    organization: Optional[OrganizationProfile] = None
    ai_context: Optional[AIBehaviorContext] = None


@dataclass(frozen=True)
class TemplateHint:
    text: str


@dataclass(frozen=True)
class TemplateSpec:
    name: str
    content: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    system_prompt: Optional[str] = None
    tone: Optional[str] = None
    target_audience: Optional[str] = None
    output_format: Optional[str] = None
    example_output: Optional[str] = None


Template = Union[TemplateHint, TemplateSpec]


@dataclass(frozen=True)
class PromptResult:
    system_prompt: str
    user_prompt: str

    def to_dict(self) -> Dict[str, str]:
        return {"system_prompt": self.system_prompt, "user_prompt": self.user_prompt}


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AggregationResult:
    issues: Tuple[Issue, ...]
    total_issues: int
    fetched_count: int = 0
    pages_fetched: int = 0
