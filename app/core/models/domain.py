from enum import Enum
from typing import Annotated, Any, Iterable, List, Literal, Optional, Union
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class ActivityKind(str, Enum):
    COMMIT = "commit"
    PULL_REQUEST = "pull_request"
    ISSUE = "issue"


class TimeRange(str, Enum):
    """
    Trailing windows the dashboard can be filtered by.
    """
    LAST_7_DAYS = "7days"
    LAST_14_DAYS = "14days"
    LAST_30_DAYS = "30days"
    LAST_90_DAYS = "90days"
    LAST_180_DAYS = "180days"
    LAST_365_DAYS = "365days"

    @property
    def days(self) -> int:
        return int(self.value.replace("days", ""))

    @property
    def label(self) -> str:
        return _TIME_RANGE_LABELS[self]


_TIME_RANGE_LABELS = {
    TimeRange.LAST_7_DAYS: "Last 7 days",
    TimeRange.LAST_14_DAYS: "Last 14 days",
    TimeRange.LAST_30_DAYS: "Last 30 days",
    TimeRange.LAST_90_DAYS: "Last quarter",
    TimeRange.LAST_180_DAYS: "Last 6 months",
    TimeRange.LAST_365_DAYS: "Last year",
}

DEFAULT_TIME_RANGE = TimeRange.LAST_30_DAYS


class _ActivityBase(BaseModel):
    """
    Fields shared by every activity kind.
    """
    model_config = ConfigDict(frozen=True)

    occurred_at: datetime
    repository_ref: Optional[str] = Field(default=None, description="owner/repo/... reference")
    source_id: Optional[str] = Field(default=None, description="Commit SHA, PR or issue number")
    author: Optional[str] = None
    url: Optional[str] = None

    @field_validator("occurred_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Aware timestamps keep their own offset (author's wall clock).
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class CommitActivity(_ActivityBase):
    kind: Literal[ActivityKind.COMMIT] = ActivityKind.COMMIT
    message: str = ""
    files_changed: List[str] = Field(default_factory=list)
    additions: int = 0
    deletions: int = 0

    @property
    def description_text(self) -> str:
        if not self.files_changed:
            return self.message
        return " ".join([self.message, *self.files_changed])


class PullRequestActivity(_ActivityBase):
    kind: Literal[ActivityKind.PULL_REQUEST] = ActivityKind.PULL_REQUEST
    title: str = ""
    state: str = "open"
    merged: bool = False

    @property
    def description_text(self) -> str:
        return self.title


class IssueActivity(_ActivityBase):
    kind: Literal[ActivityKind.ISSUE] = ActivityKind.ISSUE
    title: str = ""
    state: str = "open"

    @property
    def description_text(self) -> str:
        return self.title


ActivityRecord = Annotated[
    Union[CommitActivity, PullRequestActivity, IssueActivity],
    Field(discriminator="kind"),
]

_RECORDS_ADAPTER = TypeAdapter(List[ActivityRecord])


def parse_activity_records(raw: Optional[Iterable[Any]]) -> List[ActivityRecord]:
    """
    Validates raw payloads (dicts or records) into typed activity records.

    Raises pydantic.ValidationError on malformed input; this is the only place
    where records are checked.
    """
    if raw is None:
        return []
    return _RECORDS_ADAPTER.validate_python(list(raw))


# --- Chart-ready outputs ---

class CommitSeries(BaseModel):
    labels: List[str]
    values: List[int]


class NamedValue(BaseModel):
    name: str
    value: int


class RepositoryRollupEntry(BaseModel):
    name: str
    commits: int
    issues: int = Field(..., description="Heuristic estimate, floor(commits * 0.25)")
    last_active_at: datetime


class PullRequestCompletion(BaseModel):
    completed: int
    total: int
    percentage: int


class ActivityTotals(BaseModel):
    commits: int
    pull_requests: int
    issues: int
    active_developers: int


class IssueOverview(BaseModel):
    open: int
    closed: int
    total: int


class DeveloperStats(BaseModel):
    username: str
    commits: int
    pull_requests_total: int
    pull_requests_completed: int
    issues: int
    last_active_at: datetime


class RepositoryStats(BaseModel):
    """Per-repository counts over every record kind (unlike the commit-only rollup)."""

    name: str
    commits: int
    pull_requests: int
    open_issues: int
    closed_issues: int
    contributors: int
    last_active_at: datetime
