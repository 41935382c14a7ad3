import pytest

from conftest import FailingSource, FakeSource, raw_issue
from relnotes.resources.release_notes.aggregator import IssueAggregator, normalize_issue
from relnotes.resources.release_notes.errors import RateLimitError, SourceFetchError
from relnotes.resources.release_notes.models import DateRange, GenerationRequest, IssueFilters


def test_project_filter_across_two_pages(two_page_source):
    result = IssueAggregator(two_page_source).aggregate(GenerationRequest(teams=("t1",), projects=("p1",)))

    assert [i.identifier for i in result.issues] == ["ENG-1", "ENG-2"]
    assert result.total_issues == 2
    assert result.pages_fetched == 2
    assert result.fetched_count == 3
    assert [c["cursor"] for c in two_page_source.calls] == [None, "cursor-1"]


def test_labels_and_priority_filters(two_page_source):
    request = GenerationRequest(
        teams=("t1",),
        projects=("p1",),
        issue_filters=IssueFilters(labels=("feature", "bug"), min_priority=0),
    )
    result = IssueAggregator(two_page_source).aggregate(request)
    assert [i.identifier for i in result.issues] == ["ENG-1", "ENG-2"]

    result = IssueAggregator(two_page_source).aggregate(
        GenerationRequest(teams=("t1",), issue_filters=IssueFilters(min_priority=2))
    )
    assert [i.identifier for i in result.issues] == ["ENG-1", "ENG-3"]


def test_aggregation_is_idempotent(two_page_source):
    request = GenerationRequest(teams=("t1",))
    first = IssueAggregator(two_page_source).aggregate(request)
    second = IssueAggregator(two_page_source).aggregate(request)
    assert first.issues == second.issues
    assert first.total_issues == second.total_issues == 3


def test_team_filter_and_dedup_when_source_ignores_team():
    nodes = [
        raw_issue("1", "ENG-1", "Add A", team="t1"),
        raw_issue("2", "OPS-1", "Add B", team="t2"),
        raw_issue("3", "WEB-1", "Add C", team="t3"),
    ]
    source = FakeSource({None: [nodes]})
    result = IssueAggregator(source).aggregate(GenerationRequest(teams=("t1", "t2")))

    assert [i.identifier for i in result.issues] == ["ENG-1", "OPS-1"]
    assert [c["team_id"] for c in source.calls] == ["t1", "t2"]


def test_issue_without_project_is_dropped_once_projects_given():
    source = FakeSource({"t1": [[raw_issue("1", "ENG-1", "Add A", project=None)]]})
    assert IssueAggregator(source).aggregate(GenerationRequest(teams=("t1",), projects=("p1",))).total_issues == 0
    assert IssueAggregator(source).aggregate(GenerationRequest(teams=("t1",))).total_issues == 1


def test_date_range_keeps_open_issues():
    source = FakeSource({"t1": [[
        raw_issue("1", "ENG-1", "Before", completed_at="2025-06-30T23:00:00Z"),
        raw_issue("2", "ENG-2", "Inside", completed_at="2025-07-15T10:00:00Z"),
        raw_issue("3", "ENG-3", "Last day", completed_at="2025-07-31T18:30:00Z"),
        raw_issue("4", "ENG-4", "After", completed_at="2025-08-01T00:00:01Z"),
        raw_issue("5", "ENG-5", "Still open", completed_at=None, state_type="started"),
    ]]})
    request = GenerationRequest(teams=("t1",), date_range=DateRange(from_="2025-07-01", to="2025-07-31"))
    result = IssueAggregator(source).aggregate(request)
    assert [i.identifier for i in result.issues] == ["ENG-2", "ENG-3", "ENG-5"]


def test_state_type_filter():
    source = FakeSource({"t1": [[
        raw_issue("1", "ENG-1", "Done"),
        raw_issue("2", "ENG-2", "Doing", completed_at=None, state_type="started"),
    ]]})
    request = GenerationRequest(teams=("t1",), issue_filters=IssueFilters(state_types=("completed",)))
    assert [i.identifier for i in IssueAggregator(source).aggregate(request).issues] == ["ENG-1"]


def test_selected_issue_ids_narrow_and_recount(two_page_source):
    request = GenerationRequest(teams=("t1",), selected_issue_ids=("ENG-3", "1"))
    result = IssueAggregator(two_page_source).aggregate(request)
    assert [i.identifier for i in result.issues] == ["ENG-1", "ENG-3"]
    assert result.total_issues == len(result.issues) == 2


def test_page_budget_stops_paging():
    pages = [[raw_issue(str(n), f"ENG-{n}", f"Add {n}")] for n in range(5)]
    result = IssueAggregator(FakeSource({"t1": pages}), max_pages=2).aggregate(GenerationRequest(teams=("t1",)))
    assert result.total_issues == 2
    assert result.pages_fetched == 2


@pytest.mark.parametrize("error", [
    SourceFetchError("boom", status=500),
    RateLimitError("slow down", retry_after=30),
])
def test_source_errors_propagate(error):
    with pytest.raises(type(error)) as excinfo:
        IssueAggregator(FailingSource(error)).aggregate(GenerationRequest(teams=("t1",)))
    assert excinfo.value is error


def test_normalize_issue_accepts_flat_shapes():
    issue = normalize_issue({
        "id": "9",
        "identifier": "ENG-9",
        "title": "  Padded  ",
        "labels": ["bug", {"name": "ui"}],
        "state": "Done",
        "stateType": "completed",
        "priority": True,
    })
    assert issue.title == "Padded"
    assert issue.labels == ("bug", "ui")
    assert issue.state_name == "Done"
    assert issue.state_type == "completed"
    assert issue.priority is None
    assert issue.team is None


def test_issues_without_any_key_are_all_kept():
    first = raw_issue("", "", "Untracked change one", labels=["feature"])
    second = raw_issue("", "", "Untracked change two", labels=["feature"])
    result = IssueAggregator(FakeSource({"t1": [[first, second]]})).aggregate(GenerationRequest(teams=("t1",)))
    assert [i.title for i in result.issues] == ["Untracked change one", "Untracked change two"]
