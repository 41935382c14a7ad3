from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Set
import logging

from relnotes.resources.release_notes.linear_client import IssueSource
from relnotes.resources.release_notes.models import (
    AggregationResult,
    GenerationRequest,
    Issue,
    ProjectRef,
    TeamRef,
    parse_date,
)

logger = logging.getLogger(__name__)


def normalize_issue(raw: Dict[str, Any]) -> Issue:
    """Turn a raw Linear issue node into an Issue."""
    labels_raw = raw.get("labels") or []
    if isinstance(labels_raw, dict):
        labels_raw = labels_raw.get("nodes") or []
    labels: List[str] = []
    for label in labels_raw:
        name = label.get("name") if isinstance(label, dict) else label
        if isinstance(name, str) and name:
            labels.append(name)

    team_raw = raw.get("team") or None
    team = TeamRef(id=team_raw.get("id"), name=team_raw.get("name")) if isinstance(team_raw, dict) else None

    project_raw = raw.get("project") or None
    project = None
    if isinstance(project_raw, dict) and project_raw.get("id"):
        project = ProjectRef(id=project_raw["id"], name=project_raw.get("name"))

    state = raw.get("state") or {}
    if isinstance(state, str):
        state_name, state_type = state, raw.get("stateType")
    else:
        state_name, state_type = state.get("name"), state.get("type")

    priority = raw.get("priority")
    if isinstance(priority, bool) or not isinstance(priority, (int, float)):
        priority = None

    return Issue(
        id=str(raw.get("id") or ""),
        identifier=str(raw.get("identifier") or ""),
        title=(raw.get("title") or "").strip(),
        labels=tuple(labels),
        team=team,
        project=project,
        priority=int(priority) if priority is not None else None,
        completed_at=raw.get("completedAt") or None,
        state_name=state_name,
        state_type=state_type,
        description=raw.get("description") or None,
        url=raw.get("url") or None,
    )


class _IssueFilter:
    """Post-fetch filter built once per request."""

    def __init__(self, request: GenerationRequest):
        self._teams = set(request.teams)
        self._projects = set(request.projects)
        self._labels = {label.lower() for label in request.issue_filters.labels}
        self._state_types = set(request.issue_filters.state_types)
        self._min_priority = request.issue_filters.min_priority or 0
        self._date_from = parse_date(request.date_range.from_)
        self._date_to = parse_date(request.date_range.to, end_of_day=True)

    def accepts(self, issue: Issue) -> bool:
        if not (issue.team and issue.team.id in self._teams):
            return False
        if self._projects and not (issue.project and issue.project.id in self._projects):
            return False
        if self._labels and not any(label.lower() in self._labels for label in issue.labels):
            return False
        if (issue.priority or 0) < self._min_priority:
            return False
        if self._state_types and issue.state_type not in self._state_types:
            return False
        return self._in_date_range(issue)

    def _in_date_range(self, issue: Issue) -> bool:
        # Open issues have no completion timestamp and are not excluded by dates alone.
        if not issue.completed_at:
            return True
        try:
            completed: Optional[datetime] = parse_date(issue.completed_at)
        except ValueError:
            logger.warning(f"Unparseable completedAt '{issue.completed_at}' on {issue.identifier}; keeping issue")
            return True
        if self._date_from and completed < self._date_from:
            return False
        if self._date_to and completed > self._date_to:
            return False
        return True


class IssueAggregator:
    """
    Drives cursor pagination against an IssueSource and returns the filtered,
    de-duplicated issues for a validated GenerationRequest.

    Pages are fetched strictly in sequence (each needs the previous cursor).
    Source errors propagate unchanged; nothing is retried here.
    """

    def __init__(self, source: IssueSource, *, page_size: int = 100, max_pages: int = 50):
        if page_size < 1:
            raise ValueError("page_size must be positive")
        if max_pages < 1:
            raise ValueError("max_pages must be positive")
        self._source = source
        self._page_size = page_size
        self._max_pages = max_pages

    def aggregate(self, request: GenerationRequest) -> AggregationResult:
        issue_filter = _IssueFilter(request)
        issues: List[Issue] = []
        seen: Set[str] = set()
        fetched = 0
        pages = 0

        for team_id in request.teams:
            cursor: Optional[str] = None
            for _page in range(self._max_pages):
                page = self._source.fetch_page(team_id=team_id, cursor=cursor, page_size=self._page_size)
                pages += 1

                nodes = page.get("nodes") or []
                fetched += len(nodes)
                for raw in nodes:
                    issue = normalize_issue(raw)
                    if not issue_filter.accepts(issue):
                        continue
                    key = issue.id or issue.identifier
                    if key:
                        if key in seen:
                            continue
                        seen.add(key)
                    else:
                        logger.warning(f"Issue '{issue.title}' has no id or identifier; kept without de-duplication")
                    issues.append(issue)

                page_info = page.get("pageInfo") or {}
                cursor = page_info.get("endCursor") or None
                if not page_info.get("hasNextPage") or not cursor:
                    break
            else:
                logger.warning(f"Stopped paging team {team_id} after {self._max_pages} pages; results may be partial")

        if fetched != len(issues):
            logger.info(f"Filtered {fetched} issues down to {len(issues)} based on criteria")

        if request.selected_issue_ids:
            selected = set(request.selected_issue_ids)
            issues = [i for i in issues if i.identifier in selected or i.id in selected]
            logger.info(f"Narrowed to {len(issues)} selected issues")

        return AggregationResult(
            issues=tuple(issues),
            total_issues=len(issues),
            fetched_count=fetched,
            pages_fetched=pages,
        )
