from conftest import issue
from relnotes.resources.release_notes.categorizer import CATEGORY_RULES, categorize, categorize_issue


def test_precedence_example():
    sections = categorize([
        issue("ENG-1", "Add feature A", ["feature"]),
        issue("ENG-2", "Fix bug B", ["bug"]),
        issue("ENG-3", "Improve C", ["enhancement"]),
        issue("ENG-4", "Breaking change", ["breaking"]),
    ])
    assert len(sections.features) == 2
    assert len(sections.bugfixes) == 1
    assert len(sections.improvements) == 0
    assert len(sections.breaking) == 1
    assert [i.identifier for i in sections.features] == ["ENG-1", "ENG-3"]


def test_rules_are_ordered_by_precedence():
    assert [name for name, _ in CATEGORY_RULES] == ["breaking", "bugfixes", "features", "improvements"]


def test_breaking_beats_bug_beats_feature():
    assert categorize_issue(issue("A-1", "Fix login", ["feature", "bug", "breaking"])) == "breaking"
    assert categorize_issue(issue("A-2", "New dashboard", ["feature", "Bug"])) == "bugfixes"
    assert categorize_issue(issue("A-3", "Deprecate v1 endpoints", ["Deprecation"])) == "breaking"


def test_title_patterns_are_case_insensitive():
    assert categorize_issue(issue("A-1", "BREAKING: drop Python 3.7")) == "breaking"
    assert categorize_issue(issue("A-2", "Hotfix for crash on save")) == "bugfixes"
    assert categorize_issue(issue("A-3", "Feature flag for beta users")) == "features"
    assert categorize_issue(issue("A-4", "Refactor billing module")) == "improvements"
    assert categorize_issue(issue("A-5", "Optimize database queries", ["performance"])) == "improvements"


def test_unmatched_issues_are_counted_not_placed():
    issues = [
        issue("ENG-1", "Add OAuth", ["feature"]),
        issue("ENG-2", "Quarterly planning", ["security"]),
        issue("ENG-3", "Write onboarding doc"),
    ]
    sections = categorize(issues)

    assert sections.classified_count == 1
    assert sections.unclassified_count == 2
    assert [i.identifier for i in sections.unclassified] == ["ENG-2", "ENG-3"]
    assert sections.classified_count + sections.unclassified_count == len(issues)


def test_partition_is_disjoint():
    issues = [
        issue(f"ENG-{n}", title, labels)
        for n, (title, labels) in enumerate([
            ("Add export", ["feature"]),
            ("Fix export", ["bug", "feature"]),
            ("Polish export", []),
            ("Breaking: new export format", ["enhancement"]),
            ("Nothing to see", []),
        ])
    ]
    sections = categorize(issues)
    placed = [i.identifier for _, members in sections.items() for i in members]
    assert len(placed) == len(set(placed))
    assert len(placed) <= len(issues)
    assert sections.counts() == {"features": 1, "improvements": 1, "bugfixes": 1, "breaking": 1}


def test_empty_input():
    sections = categorize([])
    assert sections.counts() == {"features": 0, "improvements": 0, "bugfixes": 0, "breaking": 0}
    assert sections.unclassified_count == 0
