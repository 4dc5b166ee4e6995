from datetime import timedelta

import pytest
from requests.exceptions import ConnectionError as RequestsConnectionError, Timeout

from app.adapters.sample.store import SampleActivitySource
from app.core.config import GitHubSession, Settings
from app.core.models.domain import ActivityKind, CommitActivity, IssueActivity, PullRequestActivity, TimeRange
from app.ports.activity_source import ActivitySourceError
from app.services.dashboard import DashboardService


class StubSource:
    name = "github"

    def __init__(self, records=None, error=None):
        self.records = records or []
        self.error = error
        self.requested_days = []

    def fetch_activity(self, days):
        self.requested_days.append(days)
        if self.error:
            raise self.error
        return list(self.records)


@pytest.fixture
def session():
    return GitHubSession(token="token")


def test_without_session_uses_sample_data(now):
    service = DashboardService(Settings())

    summary = service.build_dashboard(TimeRange.LAST_30_DAYS, session=None, now=now)

    assert summary.source == "sample"
    assert summary.has_activity is True
    assert summary.label == "Last 30 days"
    assert summary.totals.commits == sum(summary.commit_activity.values)
    assert len(summary.recent_activity) == 10


def test_sample_dashboard_is_deterministic(now):
    service = DashboardService(Settings())

    first = service.build_dashboard(TimeRange.LAST_90_DAYS, session=None, now=now)
    second = service.build_dashboard(TimeRange.LAST_90_DAYS, session=None, now=now)

    assert first.model_dump_json() == second.model_dump_json()


def test_github_source_is_used_with_a_session(now, session):
    records = [
        CommitActivity(occurred_at=now - timedelta(hours=3), repository_ref="octo/widgets/commit/a", author="octocat", message="fix a.py"),
        CommitActivity(occurred_at=now - timedelta(days=2), repository_ref="octo/widgets/commit/b", author="hubot", message="add b.py"),
        PullRequestActivity(occurred_at=now - timedelta(days=1), author="octocat", state="closed", merged=True),
    ]
    stub = StubSource(records)
    service = DashboardService(Settings(), github_factory=lambda s: stub)

    summary = service.build_dashboard(TimeRange.LAST_7_DAYS, session=session, now=now)

    assert stub.requested_days == [7]
    assert summary.source == "github"
    assert summary.totals.model_dump() == {"commits": 2, "pull_requests": 1, "issues": 0, "active_developers": 2}
    assert summary.commit_activity.values == [0, 0, 0, 0, 1, 0, 1]
    assert [(e.name, e.value) for e in summary.language_distribution] == [("Python", 2)]
    assert [(r.name, r.commits) for r in summary.top_repositories] == [("widgets", 2)]
    assert summary.pull_request_completion.percentage == 100
    assert summary.recent_activity[0].source_id is None
    assert summary.recent_activity[0].repository_ref == "octo/widgets/commit/a"


def test_github_failure_falls_back_to_sample(now, session):
    stub = StubSource(error=ActivitySourceError("Bad credentials"))
    service = DashboardService(Settings(), github_factory=lambda s: stub)

    summary = service.build_dashboard(TimeRange.LAST_30_DAYS, session=session, now=now)

    assert stub.requested_days == [30]
    assert summary.source == "sample"


def test_author_filter_is_case_insensitive(now, session):
    records = [
        CommitActivity(occurred_at=now - timedelta(hours=1), author="Octocat", message="x.go"),
        CommitActivity(occurred_at=now - timedelta(hours=2), author="hubot", message="y.go"),
    ]
    service = DashboardService(Settings(), github_factory=lambda s: StubSource(records))

    summary = service.build_dashboard(TimeRange.LAST_7_DAYS, session=session, now=now, author="octocat")

    assert summary.author == "octocat"
    assert summary.totals.commits == 1


def test_unknown_author_gets_placeholder_charts(now, session):
    records = [CommitActivity(occurred_at=now - timedelta(hours=1), author="hubot")]
    service = DashboardService(Settings(), github_factory=lambda s: StubSource(records))

    summary = service.build_dashboard(TimeRange.LAST_7_DAYS, session=session, now=now, author="nobody")

    assert summary.has_activity is False
    assert summary.commit_activity.labels == [f"Week {i}" for i in range(1, 9)]
    assert [(e.name, e.value) for e in summary.language_distribution] == [("No Language Data", 1)]
    assert all(e.value == 1 for e in summary.work_time_distribution)
    assert summary.top_repositories == []


def test_settings_limit_rollup_and_recent_activity(now):
    service = DashboardService(Settings(dashboard_max_repositories=2, dashboard_recent_limit=3))

    summary = service.build_dashboard(TimeRange.LAST_90_DAYS, session=None, now=now)

    assert len(summary.top_repositories) == 2
    assert len(summary.recent_activity) == 3


def test_recent_activity_is_newest_first(now):
    service = DashboardService(Settings())

    records = service.list_recent_activity(session=None, limit=5, now=now)

    assert len(records) == 5
    assert records == sorted(records, key=lambda r: r.occurred_at, reverse=True)


def test_sample_source_respects_lookback(now):
    records = SampleActivitySource(now).fetch_activity(days=14)

    assert records
    assert all(now - timedelta(days=14) <= r.occurred_at <= now for r in records)


@pytest.mark.parametrize("error", [RequestsConnectionError("network down"), Timeout("read timed out")])
def test_transport_failure_falls_back_to_sample(now, session, error):
    service = DashboardService(Settings(), github_factory=lambda s: StubSource(error=error))

    summary = service.build_dashboard(TimeRange.LAST_7_DAYS, session=session, now=now)

    assert summary.source == "sample"
    assert service.list_recent_activity(session, limit=2, now=now)


def _team_records(now):
    return [
        CommitActivity(occurred_at=now - timedelta(hours=1), repository_ref="octo/widgets/commit/a", author="octocat", message="a.py"),
        CommitActivity(occurred_at=now - timedelta(days=1), repository_ref="octo/gadgets/commit/b", author="hubot", message="b.go"),
        CommitActivity(occurred_at=now - timedelta(days=40), repository_ref="octo/widgets/commit/c", author="octocat", message="c.py"),
        PullRequestActivity(occurred_at=now - timedelta(hours=5), repository_ref="octo/widgets/pull/1", author="Octocat", state="open"),
        IssueActivity(occurred_at=now - timedelta(hours=2), repository_ref="octo/widgets/issues/2", author="hubot", state="closed"),
        IssueActivity(occurred_at=now - timedelta(days=3), repository_ref="octo/gadgets/issues/3", author="hubot", state="open"),
    ]


@pytest.fixture
def team_service(now):
    return DashboardService(Settings(), github_factory=lambda s: StubSource(_team_records(now)))


def test_summary_includes_issue_overview(now, session, team_service):
    summary = team_service.build_dashboard(TimeRange.LAST_7_DAYS, session=session, now=now)

    assert summary.issues_overview.model_dump() == {"open": 1, "closed": 1, "total": 2}


def test_list_developers(now, session, team_service):
    developers = team_service.list_developers(TimeRange.LAST_30_DAYS, session, now=now)

    assert [(d.username, d.commits, d.pull_requests_total, d.issues) for d in developers] == [
        ("octocat", 1, 1, 0),
        ("hubot", 1, 0, 2),
    ]


def test_developer_activity_is_newest_first_and_limited(now, session, team_service):
    records = team_service.developer_activity("OCTOCAT", TimeRange.LAST_90_DAYS, session, limit=2, now=now)

    assert [r.repository_ref for r in records] == ["octo/widgets/commit/a", "octo/widgets/pull/1"]


def test_list_repositories(now, session, team_service):
    repositories = team_service.list_repositories(TimeRange.LAST_7_DAYS, session, now=now)

    assert [(r.name, r.commits, r.pull_requests, r.open_issues, r.closed_issues) for r in repositories] == [
        ("widgets", 1, 1, 0, 1),
        ("gadgets", 1, 0, 1, 0),
    ]


def test_repository_activity_by_kind(now, session, team_service):
    commits = team_service.repository_activity("widgets", ActivityKind.COMMIT, TimeRange.LAST_90_DAYS, session, now=now)
    issues = team_service.repository_activity("gadgets", ActivityKind.ISSUE, TimeRange.LAST_7_DAYS, session, now=now)

    assert [r.repository_ref for r in commits] == ["octo/widgets/commit/a", "octo/widgets/commit/c"]
    assert [r.repository_ref for r in issues] == ["octo/gadgets/issues/3"]
    assert team_service.repository_activity("nope", ActivityKind.COMMIT, TimeRange.LAST_7_DAYS, session, now=now) == []
