import os
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app.adapters.github.adapter import GitHubAccount, GitHubRepository
from app.api.server import create_app
from app.core.config import Settings
from app.core.models.domain import CommitActivity
from app.ports.activity_source import ActivitySourceError

GOOD_TOKEN = "good-token"


class FakeGitHub:
    name = "github"

    def __init__(self, session):
        self.session = session

    def verify(self):
        if self.session.token != GOOD_TOKEN:
            raise ActivitySourceError("Bad credentials")
        if self.session.organization == "private-org":
            raise ActivitySourceError("Not Found")
        return GitHubAccount(login="octocat", name="The Octocat", avatar_url=None)

    def list_repositories(self):
        if self.session.organization == "flaky-org":
            raise ActivitySourceError("Server Error")
        return [
            GitHubRepository(
                full_name="octo/widgets",
                name="widgets",
                description=None,
                url="https://github.com/octo/widgets",
                language="Python",
                stars=3,
                private=False,
                updated_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
            )
        ]

    def fetch_activity(self, days):
        return [
            CommitActivity(
                occurred_at=datetime.now(timezone.utc) - timedelta(hours=1),
                repository_ref="octo/widgets/commit/abc",
                author="octocat",
                message="fix app.py",
            )
        ]


@pytest.fixture
def client(monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    app = create_app(settings=Settings(), github_factory=FakeGitHub)
    return TestClient(app)


def test_health(client):
    res = client.get("/health")

    assert res.status_code == 200
    assert res.json() == {"status": "ok", "github_connected": False}


def test_dashboard_defaults_to_thirty_days_of_sample_data(client):
    res = client.get("/dashboard")

    assert res.status_code == 200
    body = res.json()
    assert body["time_range"] == "30days"
    assert body["source"] == "sample"
    assert body["commit_activity"]["labels"] == ["Week 1", "Week 2", "Week 3", "Week 4"]
    assert [b["name"] for b in body["work_time_distribution"]] == [
        "Morning (6-12)",
        "Afternoon (12-18)",
        "Evening (18-24)",
        "Night (0-6)",
    ]


def test_dashboard_accepts_time_range(client):
    res = client.get("/dashboard", params={"timeRange": "7days"})

    assert res.status_code == 200
    assert len(res.json()["commit_activity"]["values"]) == 7


def test_dashboard_rejects_unknown_time_range(client):
    res = client.get("/dashboard", params={"timeRange": "2weeks"})

    assert res.status_code == 400
    detail = res.json()["detail"]
    assert detail["message"] == "Invalid timeRange"
    assert "365days" in detail["allowed"]


def test_developer_summary(client):
    res = client.get("/developers/alexjohnson/summary", params={"timeRange": "90days"})

    assert res.status_code == 200
    body = res.json()
    assert body["author"] == "alexjohnson"
    assert body["totals"]["active_developers"] <= 1


def test_recent_activities(client):
    res = client.get("/activities/recent", params={"limit": 3})

    assert res.status_code == 200
    items = res.json()
    assert len(items) == 3
    assert {item["kind"] for item in items} <= {"commit", "pull_request", "issue"}


def test_recent_activities_validates_limit(client):
    assert client.get("/activities/recent", params={"limit": 0}).status_code == 422


def test_connect_status_and_disconnect(client):
    assert client.get("/github/status").json()["connected"] is False

    res = client.post("/github/connect", json={"token": GOOD_TOKEN})
    assert res.status_code == 200
    assert res.json()["username"] == "octocat"
    # The session is held by the app, not the process environment.
    assert "GITHUB_TOKEN" not in os.environ

    status = client.get("/github/status").json()
    assert status["connected"] is True
    assert status["username"] == "octocat"

    dashboard = client.get("/dashboard", params={"timeRange": "7days"}).json()
    assert dashboard["source"] == "github"
    assert dashboard["top_repositories"][0]["name"] == "widgets"

    assert client.post("/github/disconnect").json()["success"] is True
    assert client.get("/github/status").json()["connected"] is False
    assert client.get("/dashboard").json()["source"] == "sample"


def test_connect_rejects_bad_token(client):
    res = client.post("/github/connect", json={"token": "nope"})

    assert res.status_code == 401
    assert res.json()["detail"] == "Invalid GitHub token"
    assert client.get("/health").json()["github_connected"] is False


def test_connect_reports_inaccessible_organization(client):
    res = client.post("/github/connect", json={"token": GOOD_TOKEN, "org": "private-org"})

    assert res.status_code == 401
    assert "private-org" in res.json()["detail"]


def test_configured_token_starts_connected(monkeypatch):
    app = create_app(settings=Settings(github_token=GOOD_TOKEN), github_factory=FakeGitHub)

    assert TestClient(app).get("/health").json()["github_connected"] is True


@pytest.mark.parametrize("token", ["", "   "])
def test_connect_rejects_blank_token(client, token):
    res = client.post("/github/connect", json={"token": token})

    assert res.status_code == 422
    assert client.get("/health").json()["github_connected"] is False


def test_connect_strips_token_and_organization(client):
    res = client.post("/github/connect", json={"token": f"  {GOOD_TOKEN} ", "org": "  "})

    assert res.status_code == 200
    assert client.get("/github/status").json()["organization"] is None


def test_developers_list(client):
    res = client.get("/developers", params={"timeRange": "90days"})

    assert res.status_code == 200
    developers = res.json()
    assert {d["username"] for d in developers} <= {"alexjohnson", "sarahc", "mrivera", "emwatson"}
    commits = [d["commits"] for d in developers]
    assert commits == sorted(commits, reverse=True)


def test_developer_activities(client):
    res = client.get("/developers/sarahc/activities", params={"limit": 5})

    assert res.status_code == 200
    items = res.json()
    assert 0 < len(items) <= 5
    assert {item["author"] for item in items} == {"sarahc"}


def test_repositories_and_repository_records(client):
    repositories = client.get("/repositories", params={"timeRange": "30days"}).json()
    names = {r["name"] for r in repositories}
    assert names <= {"frontend", "backend-api", "mobile-app", "documentation"}

    name = repositories[0]["name"]
    commits = client.get(f"/repositories/{name}/commits", params={"timeRange": "30days"}).json()
    assert len(commits) == repositories[0]["commits"]
    assert {c["kind"] for c in commits} == {"commit"}

    for path, kind in (("pull-requests", "pull_request"), ("issues", "issue")):
        res = client.get(f"/repositories/{name}/{path}", params={"timeRange": "30days"})
        assert res.status_code == 200
        assert {item["kind"] for item in res.json()} <= {kind}

    assert client.get("/repositories/unknown-repo/commits").json() == []


def test_dashboard_reports_issue_overview(client):
    overview = client.get("/dashboard").json()["issues_overview"]

    assert overview["open"] + overview["closed"] == overview["total"]


def test_github_repositories_require_a_connection(client):
    res = client.get("/github/repositories")

    assert res.status_code == 401
    assert res.json()["detail"] == "Not connected to GitHub"


def test_github_repositories_after_connect(client):
    client.post("/github/connect", json={"token": GOOD_TOKEN})

    res = client.get("/github/repositories")

    assert res.status_code == 200
    assert res.json()[0]["full_name"] == "octo/widgets"
    assert res.json()[0]["stars"] == 3


def test_github_repositories_upstream_failure():
    settings = Settings(github_token=GOOD_TOKEN, github_organization="flaky-org")
    client = TestClient(create_app(settings=settings, github_factory=FakeGitHub))

    res = client.get("/github/repositories")

    assert res.status_code == 502
    assert "Server Error" in res.json()["detail"]
