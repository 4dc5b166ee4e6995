"""
Shared fixtures: a fixed clock and small record factories.
"""
from datetime import datetime, timedelta, timezone

import pytest

from app.core.models.domain import CommitActivity, IssueActivity, PullRequestActivity

NOW = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_commit():
    def _make(days_ago=0, hours_ago=0, message="", repo="org/repo/x", author="dev", at=None):
        return CommitActivity(
            occurred_at=at or NOW - timedelta(days=days_ago, hours=hours_ago),
            message=message,
            repository_ref=repo,
            author=author,
        )
    return _make


@pytest.fixture
def make_pull_request():
    def _make(days_ago=0, state="open", merged=False, repo="org/repo/pull/1", author="dev"):
        return PullRequestActivity(
            occurred_at=NOW - timedelta(days=days_ago),
            title="Improve things",
            state=state,
            merged=merged,
            repository_ref=repo,
            author=author,
        )
    return _make


@pytest.fixture
def make_issue():
    def _make(days_ago=0, state="open", repo="org/repo/issues/1", author="dev"):
        return IssueActivity(
            occurred_at=NOW - timedelta(days=days_ago),
            title="Something is broken",
            state=state,
            repository_ref=repo,
            author=author,
        )
    return _make
