from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol
import os
import logging

import requests

from relnotes.resources.release_notes.errors import (
    AggregationAbortedError,
    RateLimitError,
    SourceFetchError,
)

logger = logging.getLogger(__name__)

DEFAULT_LINEAR_API_URL = "https://api.linear.app/graphql"
STATE_TYPES = {"backlog", "unstarted", "started", "completed", "canceled"}

ISSUE_FIELDS = """
          nodes {
            id
            identifier
            title
            description
            priority
            url
            completedAt
            state { name type }
            team { id name key }
            labels { nodes { name } }
            project { id name }
          }
          pageInfo { hasNextPage endCursor }
"""

PROJECT_FIELDS = """
          nodes {
            id
            name
            description
            state
            progress
            startedAt
            completedAt
            targetDate
            url
          }
          pageInfo { hasNextPage hasPreviousPage startCursor endCursor }
"""


class IssueSource(Protocol):
    """
    Cursor-paginated issue source.

    Returns one page as {"nodes": [...raw issues...],
    "pageInfo": {"hasNextPage": bool, "endCursor": str | None}}.
    """

    def fetch_page(
        self,
        *,
        team_id: Optional[str] = None,
        cursor: Optional[str] = None,
        page_size: int = 50,
    ) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class LinearConfig:
    api_key: str
    api_url: str = DEFAULT_LINEAR_API_URL
    state_type: Optional[str] = None

    @staticmethod
    def from_env() -> "LinearConfig":
        api_key = (os.environ.get("LINEAR_API_KEY") or "").strip()
        api_url = (os.environ.get("LINEAR_API_URL") or "").strip().rstrip("/") or DEFAULT_LINEAR_API_URL
        state_type = (os.environ.get("LINEAR_STATE_TYPE") or "").strip().lower() or None

        if not api_key:
            raise SourceFetchError("Missing required Linear env vars: LINEAR_API_KEY")
        if state_type and state_type not in STATE_TYPES:
            raise SourceFetchError(
                f"Invalid LINEAR_STATE_TYPE '{state_type}'. Must be one of: {', '.join(sorted(STATE_TYPES))}"
            )

        return LinearConfig(api_key=api_key, api_url=api_url, state_type=state_type)


def _build_issue_filter(team_id: Optional[str], state_type: Optional[str]) -> Dict[str, Any]:
    issue_filter: Dict[str, Any] = {}
    if team_id:
        issue_filter["team"] = {"id": {"eq": team_id}}
    if state_type:
        issue_filter["state"] = {"type": {"eq": state_type}}
    return issue_filter


class LinearClient:
    """Thin GraphQL client for the Linear API. Does not retry; callers own backoff."""

    def __init__(self, config: LinearConfig, *, timeout_s: int = 30):
        self._config = config
        self._timeout_s = timeout_s
        self._session = requests.Session()
        # Personal API keys go in the header as-is; OAuth tokens need the Bearer prefix.
        token = config.api_key
        if not token.startswith("lin_api_") and not token.lower().startswith("bearer "):
            token = f"Bearer {token}"
        self._session.headers.update(
            {
                "Authorization": token,
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

    def fetch_page(
        self,
        *,
        team_id: Optional[str] = None,
        cursor: Optional[str] = None,
        page_size: int = 50,
    ) -> Dict[str, Any]:
        query = f"""
      query GetIssues($first: Int!, $after: String, $filter: IssueFilter) {{
        issues(first: $first, after: $after, filter: $filter) {{
{ISSUE_FIELDS}
        }}
      }}
    """
        variables: Dict[str, Any] = {
            "first": page_size,
            "after": cursor,
            "filter": _build_issue_filter(team_id, self._config.state_type) or None,
        }
        data = self._post(query, variables)
        return _connection(data, "issues")

    def fetch_projects(self, *, first: int = 50, cursor: Optional[str] = None) -> Dict[str, Any]:
        query = f"""
      query GetProjects($first: Int!, $after: String) {{
        projects(first: $first, after: $after) {{
{PROJECT_FIELDS}
        }}
      }}
    """
        data = self._post(query, {"first": first, "after": cursor})
        return _connection(data, "projects")

    def _post(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        try:
            resp = self._session.post(
                self._config.api_url,
                json={"query": query, "variables": variables},
                timeout=self._timeout_s,
            )
        except requests.Timeout as e:
            raise AggregationAbortedError(f"Linear API request timed out after {self._timeout_s}s: {e}")
        except requests.RequestException as e:
            raise SourceFetchError(f"Linear API request failed: {e}")

        if resp.status_code == 429:
            retry_after_raw = resp.headers.get("Retry-After")
            retry_after = float(retry_after_raw) if retry_after_raw and retry_after_raw.isdigit() else None
            logger.warning(f"Linear rate limited (429). Retry-After: {retry_after_raw or 'unknown'}")
            raise RateLimitError(
                f"Linear API rate limit exceeded. Retry after: {retry_after_raw or 'unknown'}",
                retry_after=retry_after,
            )

        if resp.status_code in (401, 403):
            raise SourceFetchError(
                "Linear authentication/authorization failed (check LINEAR_API_KEY).",
                status=resp.status_code,
            )

        if resp.status_code >= 400:
            raise SourceFetchError(f"Linear API error {resp.status_code}: {resp.text[:500]}", status=resp.status_code)

        try:
            payload = resp.json()
        except ValueError as e:
            raise SourceFetchError(f"Failed to parse Linear response as JSON: {e}")

        errors = payload.get("errors") or []
        if errors:
            messages = ", ".join(str(err.get("message", "")) for err in errors if isinstance(err, dict))
            logger.error(f"Linear GraphQL errors: {messages}")
            raise SourceFetchError(f"GraphQL errors: {messages}", status=400)

        return payload.get("data") or {}


def _connection(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    conn = data.get(name) or {}
    nodes: List[Dict[str, Any]] = conn.get("nodes") or []
    page_info = conn.get("pageInfo") or {}
    return {
        "nodes": nodes,
        "pageInfo": {
            "hasNextPage": bool(page_info.get("hasNextPage", False)),
            "hasPreviousPage": bool(page_info.get("hasPreviousPage", False)),
            "startCursor": page_info.get("startCursor"),
            "endCursor": page_info.get("endCursor"),
        },
    }
