from dataclasses import dataclass
from typing import Any, List, Optional
from datetime import datetime, timedelta, timezone
from github import Github, GithubException
from requests.exceptions import RequestException
from app.core.config import GitHubSession
from app.core.models.domain import (
    ActivityRecord,
    CommitActivity,
    IssueActivity,
    PullRequestActivity,
)
from app.core.logger import get_logger
from app.ports.activity_source import ActivitySource, ActivitySourceError

logger = get_logger(__name__)

# API errors plus the transport failures PyGithub lets through (timeouts, DNS, resets).
GITHUB_ERRORS = (GithubException, RequestException)


@dataclass(frozen=True)
class GitHubAccount:
    login: str
    name: Optional[str]
    avatar_url: Optional[str]


@dataclass(frozen=True)
class GitHubRepository:
    full_name: str
    name: str
    description: Optional[str]
    url: Optional[str]
    language: Optional[str]
    stars: int
    private: bool
    updated_at: Optional[datetime]


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _error_message(error: Exception) -> str:
    if isinstance(error, GithubException):
        data = error.data if isinstance(error.data, dict) else {}
        return str(data.get("message") or error)
    return f"{type(error).__name__}: {error}"


class GitHubAdapter(ActivitySource):
    """
    Concrete implementation for GitHub.
    Collects commits, pull requests and issues for the most recently updated repositories.
    """

    name = "github"

    def __init__(
        self,
        session: GitHubSession,
        client: Optional[Any] = None,
        *,
        max_commits_per_repo: int = 300,
        max_prs_per_repo: int = 100,
        max_issues_per_repo: int = 100,
    ):
        if not session or not session.token:
            logger.error("Missing GitHub token")
            raise ValueError("❌ A GitHub session with a token is required.")
        self.session = session
        self.client = client or Github(session.token)
        self.max_commits_per_repo = max_commits_per_repo
        self.max_prs_per_repo = max_prs_per_repo
        self.max_issues_per_repo = max_issues_per_repo

    def verify(self) -> GitHubAccount:
        """
        Validates the token (and organization access, if one is configured).
        """
        try:
            user = self.client.get_user()
            account = GitHubAccount(
                login=user.login,
                name=user.name or user.login,
                avatar_url=user.avatar_url,
            )
            if self.session.organization:
                self.client.get_organization(self.session.organization)
            return account
        except GITHUB_ERRORS as e:
            logger.warning(f"GitHub verification failed: {_error_message(e)}")
            raise ActivitySourceError(_error_message(e)) from e

    def _list_repositories(self, limit: Optional[int] = None) -> List[Any]:
        if self.session.organization:
            repos = self.client.get_organization(self.session.organization).get_repos(sort="updated")
        else:
            repos = self.client.get_user().get_repos(sort="updated")
        return list(repos[: limit or self.session.max_repositories])

    def list_repositories(self, limit: int = 100) -> List[GitHubRepository]:
        """
        Repositories visible to the session, most recently updated first.
        Not capped by `max_repositories`; that limit only applies to activity fetches.
        """
        try:
            repos = self._list_repositories(limit)
            return [
                GitHubRepository(
                    full_name=repo.full_name,
                    name=repo.name,
                    description=repo.description,
                    url=repo.html_url,
                    language=repo.language,
                    stars=repo.stargazers_count or 0,
                    private=bool(repo.private),
                    updated_at=_utc(repo.updated_at) if repo.updated_at else None,
                )
                for repo in repos
            ]
        except GITHUB_ERRORS as e:
            logger.error(f"GitHub API Error: {_error_message(e)}")
            raise ActivitySourceError(_error_message(e)) from e

    def _commit_records(self, repo: Any, since: datetime) -> List[ActivityRecord]:
        records: List[ActivityRecord] = []
        for count, commit in enumerate(repo.get_commits(since=since)):
            if count >= self.max_commits_per_repo:
                logger.warning(f"⚠️ Hit safety limit of {self.max_commits_per_repo} commits on {repo.full_name}.")
                break

            files: List[str] = []
            additions = deletions = 0
            if self.session.include_files:
                # One extra request per commit.
                files = [f.filename for f in commit.files[:5]]
                additions = commit.stats.additions
                deletions = commit.stats.deletions

            author = commit.author.login if commit.author else commit.commit.author.name
            records.append(
                CommitActivity(
                    source_id=commit.sha,
                    occurred_at=_utc(commit.commit.author.date),
                    repository_ref=f"{repo.full_name}/commit/{commit.sha}",
                    author=author or "Unknown",
                    url=commit.html_url,
                    message=commit.commit.message or "",
                    files_changed=files,
                    additions=additions,
                    deletions=deletions,
                )
            )
        return records

    def _pull_request_records(self, repo: Any, since: datetime) -> List[ActivityRecord]:
        records: List[ActivityRecord] = []
        for pr in repo.get_pulls(state="all", sort="updated", direction="desc"):
            # Sorted by update time, so everything after this is older.
            if _utc(pr.updated_at) < since:
                break
            if len(records) >= self.max_prs_per_repo:
                logger.warning(f"⚠️ Hit safety limit of {self.max_prs_per_repo} PRs on {repo.full_name}.")
                break

            records.append(
                PullRequestActivity(
                    source_id=str(pr.number),
                    occurred_at=_utc(pr.created_at),
                    repository_ref=f"{repo.full_name}/pull/{pr.number}",
                    author=pr.user.login if pr.user else None,
                    url=pr.html_url,
                    title=pr.title or "",
                    state=pr.state,
                    merged=pr.merged_at is not None,
                )
            )
        return records

    def _issue_records(self, repo: Any, since: datetime) -> List[ActivityRecord]:
        records: List[ActivityRecord] = []
        for issue in repo.get_issues(state="all", since=since):
            # The issues endpoint also lists pull requests.
            if issue.pull_request is not None:
                continue
            if len(records) >= self.max_issues_per_repo:
                logger.warning(f"⚠️ Hit safety limit of {self.max_issues_per_repo} issues on {repo.full_name}.")
                break

            records.append(
                IssueActivity(
                    source_id=str(issue.number),
                    occurred_at=_utc(issue.created_at),
                    repository_ref=f"{repo.full_name}/issues/{issue.number}",
                    author=issue.user.login if issue.user else None,
                    url=issue.html_url,
                    title=issue.title or "",
                    state=issue.state,
                )
            )
        return records

    def fetch_activity(self, days: int) -> List[ActivityRecord]:
        since_date = datetime.now(timezone.utc) - timedelta(days=days)
        logger.info(f"📡 Fetching GitHub activity since {since_date.date()} ({self.session!r})")

        try:
            repositories = self._list_repositories()
        except GITHUB_ERRORS as e:
            logger.error(f"GitHub API Error: {_error_message(e)}")
            raise ActivitySourceError(_error_message(e)) from e

        activities: List[ActivityRecord] = []
        failures = 0
        for repo in repositories:
            try:
                activities.extend(self._commit_records(repo, since_date))
                activities.extend(self._pull_request_records(repo, since_date))
                activities.extend(self._issue_records(repo, since_date))
            except GITHUB_ERRORS as e:
                failures += 1
                logger.error(f"Error fetching activity for {repo.full_name}: {_error_message(e)}")

        if repositories and failures == len(repositories):
            raise ActivitySourceError("Could not fetch activity for any repository")

        activities.sort(key=lambda a: a.occurred_at, reverse=True)
        logger.info(f"✅ Fetched {len(activities)} activities from {len(repositories)} repositories")
        return activities
