from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest

from relnotes.resources.release_notes.models import Issue, ProjectRef, TeamRef


def raw_issue(
    id: str,
    identifier: str,
    title: str,
    *,
    labels: Optional[List[str]] = None,
    team: str = "t1",
    team_name: str = "Team A",
    project: Optional[str] = "p1",
    priority: Optional[int] = 2,
    completed_at: Optional[str] = "2025-08-01T12:00:00.000Z",
    state_type: str = "completed",
) -> Dict[str, Any]:
    """A Linear GraphQL issue node."""
    return {
        "id": id,
        "identifier": identifier,
        "title": title,
        "labels": {"nodes": [{"name": n} for n in (labels or [])]},
        "state": {"name": "Done" if state_type == "completed" else "In Progress", "type": state_type},
        "team": {"id": team, "name": team_name},
        "project": {"id": project, "name": project.upper()} if project else None,
        "priority": priority,
        "completedAt": completed_at,
    }


def issue(identifier: str, title: str, labels=(), team_name: Optional[str] = None, **kwargs) -> Issue:
    return Issue(
        id=kwargs.pop("id", identifier.lower()),
        identifier=identifier,
        title=title,
        labels=tuple(labels),
        team=TeamRef(id="t1", name=team_name) if team_name else None,
        project=kwargs.pop("project", ProjectRef(id="p1", name="Proj")),
        **kwargs,
    )


class FakeSource:
    """Serves fixed pages per team; records every call."""

    def __init__(self, pages: Dict[Optional[str], List[Dict[str, Any]]], projects: Optional[List[Dict[str, Any]]] = None):
        self._pages = pages
        self._projects = projects or []
        self.calls: List[Dict[str, Any]] = []
        self.project_calls = 0

    def fetch_page(self, *, team_id=None, cursor=None, page_size=50):
        self.calls.append({"team_id": team_id, "cursor": cursor, "page_size": page_size})
        pages = self._pages.get(team_id, self._pages.get(None, []))
        index = 0 if cursor is None else int(cursor.split("-")[1])
        if index >= len(pages):
            return {"nodes": [], "pageInfo": {"hasNextPage": False, "endCursor": None}}
        has_next = index + 1 < len(pages)
        return {
            "nodes": pages[index],
            "pageInfo": {"hasNextPage": has_next, "endCursor": f"cursor-{index + 1}" if has_next else None},
        }

    def fetch_projects(self, *, first=50, cursor=None):
        self.project_calls += 1
        return {"nodes": self._projects[:first], "pageInfo": {"hasNextPage": False, "endCursor": None}}


class FailingSource:
    def __init__(self, error: Exception):
        self.error = error

    def fetch_page(self, **_kwargs):
        raise self.error


@pytest.fixture
def two_page_source() -> FakeSource:
    page1 = [
        raw_issue("1", "ENG-1", "Add feature A", labels=["feature"], project="p1", priority=2),
        raw_issue("2", "ENG-2", "Fix bug B", labels=["bug"], project="p1", priority=1),
    ]
    page2 = [
        raw_issue("3", "ENG-3", "Improve C", labels=["enhancement"], project="p2", priority=3),
    ]
    return FakeSource({"t1": [page1, page2]})
