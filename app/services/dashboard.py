from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from pydantic import BaseModel
from requests.exceptions import RequestException

from app.adapters.github.adapter import GitHubAdapter
from app.adapters.sample.store import SampleActivitySource
from app.core.analytics import aggregator
from app.core.config import GitHubSession, Settings
from app.core.logger import get_logger
from app.core.models.domain import (
    ActivityKind,
    ActivityRecord,
    ActivityTotals,
    CommitSeries,
    DeveloperStats,
    IssueOverview,
    NamedValue,
    PullRequestCompletion,
    RepositoryRollupEntry,
    RepositoryStats,
    TimeRange,
)
from app.ports.activity_source import ActivitySource, ActivitySourceError

logger = get_logger(__name__)

SourceFactory = Callable[[GitHubSession], ActivitySource]


class DashboardSummary(BaseModel):
    time_range: TimeRange
    label: str
    generated_at: datetime
    source: str
    author: Optional[str] = None
    has_activity: bool
    totals: ActivityTotals
    commit_activity: CommitSeries
    language_distribution: List[NamedValue]
    work_time_distribution: List[NamedValue]
    top_repositories: List[RepositoryRollupEntry]
    pull_request_completion: PullRequestCompletion
    issues_overview: IssueOverview
    recent_activity: List[ActivityRecord]


class DashboardService:
    """
    Resolves an activity source and runs the aggregations for one request.
    """

    def __init__(
        self,
        settings: Settings,
        github_factory: SourceFactory = GitHubAdapter,
        sample_factory: Callable[[datetime], ActivitySource] = SampleActivitySource,
    ):
        self.settings = settings
        self.github_factory = github_factory
        self.sample_factory = sample_factory

    def load_activity(
        self,
        days: int,
        now: datetime,
        session: Optional[GitHubSession],
    ) -> Tuple[str, List[ActivityRecord]]:
        """
        Returns (source name, records). GitHub when a session exists, otherwise
        (or when GitHub fails) the sample dataset.
        """
        if session is not None:
            try:
                source = self.github_factory(session)
                return source.name, source.fetch_activity(days)
            except (ActivitySourceError, RequestException) as e:
                logger.warning(f"⚠️ GitHub unavailable, falling back to sample data: {e}")

        sample = self.sample_factory(now)
        return sample.name, sample.fetch_activity(days)

    def build_dashboard(
        self,
        time_range: TimeRange,
        session: Optional[GitHubSession],
        now: Optional[datetime] = None,
        author: Optional[str] = None,
    ) -> DashboardSummary:
        now = now or datetime.now(timezone.utc)
        source_name, records = self.load_activity(time_range.days, now, session)

        if author:
            records = aggregator.filter_by_author(records, author)

        in_range = aggregator.filter_by_range(records, time_range, now)
        logger.info(
            f"📊 Building {time_range.value} dashboard from {len(in_range)}/{len(records)} "
            f"{source_name} activities" + (f" for {author}" if author else "")
        )

        return DashboardSummary(
            time_range=time_range,
            label=time_range.label,
            generated_at=now,
            source=source_name,
            author=author,
            has_activity=bool(in_range),
            totals=aggregator.activity_totals(records, time_range, now),
            commit_activity=aggregator.commit_series(records, time_range, now),
            language_distribution=aggregator.language_distribution(records, time_range, now),
            work_time_distribution=aggregator.work_time_distribution(records, time_range, now),
            top_repositories=aggregator.repository_rollup(
                records, time_range, now, max_results=self.settings.dashboard_max_repositories
            ),
            pull_request_completion=aggregator.pull_request_completion(records, time_range, now),
            issues_overview=aggregator.issue_overview(records, time_range, now),
            recent_activity=sorted(in_range, key=lambda r: r.occurred_at, reverse=True)[
                : self.settings.dashboard_recent_limit
            ],
        )

    def list_recent_activity(
        self,
        session: Optional[GitHubSession],
        limit: int,
        now: Optional[datetime] = None,
    ) -> List[ActivityRecord]:
        now = now or datetime.now(timezone.utc)
        _, records = self.load_activity(TimeRange.LAST_30_DAYS.days, now, session)
        return sorted(records, key=lambda r: r.occurred_at, reverse=True)[: max(0, limit)]

    # --- Developers ---

    def list_developers(
        self,
        time_range: TimeRange,
        session: Optional[GitHubSession],
        now: Optional[datetime] = None,
    ) -> List[DeveloperStats]:
        now = now or datetime.now(timezone.utc)
        _, records = self.load_activity(time_range.days, now, session)
        return aggregator.developer_rollup(records, time_range, now)

    def developer_activity(
        self,
        username: str,
        time_range: TimeRange,
        session: Optional[GitHubSession],
        limit: int,
        now: Optional[datetime] = None,
    ) -> List[ActivityRecord]:
        now = now or datetime.now(timezone.utc)
        _, records = self.load_activity(time_range.days, now, session)
        mine = aggregator.filter_by_range(aggregator.filter_by_author(records, username), time_range, now)
        return sorted(mine, key=lambda r: r.occurred_at, reverse=True)[: max(0, limit)]

    # --- Repositories ---

    def list_repositories(
        self,
        time_range: TimeRange,
        session: Optional[GitHubSession],
        now: Optional[datetime] = None,
    ) -> List[RepositoryStats]:
        now = now or datetime.now(timezone.utc)
        _, records = self.load_activity(time_range.days, now, session)
        return aggregator.repository_overview(records, time_range, now)

    def repository_activity(
        self,
        name: str,
        kind: ActivityKind,
        time_range: TimeRange,
        session: Optional[GitHubSession],
        now: Optional[datetime] = None,
    ) -> List[ActivityRecord]:
        """Records of one kind for a repository (matched by display name), newest first."""
        now = now or datetime.now(timezone.utc)
        _, records = self.load_activity(time_range.days, now, session)
        in_range = aggregator.filter_by_range(records, time_range, now)
        return sorted(
            aggregator.filter_by_repository(in_range, name, kind),
            key=lambda r: r.occurred_at,
            reverse=True,
        )
