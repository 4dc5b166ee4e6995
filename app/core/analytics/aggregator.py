"""
Turns a raw list of activity records into chart-ready series.

Every function here is pure: it takes the records, the selected time range and
an explicit `now`, and allocates a fresh result. Empty input never raises; each
function returns a fixed placeholder shape instead.
"""
from __future__ import annotations

import math
from collections import Counter
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from app.core.analytics.languages import OTHER_LANGUAGE, detect_language
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

UNKNOWN_REPOSITORY = "Unknown Repository"
NO_LANGUAGE_DATA = "No Language Data"
ISSUE_ESTIMATE_RATIO = 0.25
DAILY_BUCKET_MAX_DAYS = 14

# Segment counts for ranges bucketed by period instead of by day.
_PERIOD_SEGMENTS: Dict[TimeRange, int] = {
    TimeRange.LAST_30_DAYS: 4,
    TimeRange.LAST_90_DAYS: 12,
    TimeRange.LAST_180_DAYS: 12,
    TimeRange.LAST_365_DAYS: 12,
}

_EMPTY_SERIES_BUCKETS = 8

WORK_TIME_BUCKETS: List[Tuple[str, int, int]] = [
    ("Morning (6-12)", 6, 12),
    ("Afternoon (12-18)", 12, 18),
    ("Evening (18-24)", 18, 24),
    ("Night (0-6)", 0, 6),
]

# Stand-in language names used when no commit text reveals a language.
_FALLBACK_LANGUAGES: List[Tuple[ActivityKind, str]] = [
    (ActivityKind.COMMIT, "JavaScript"),
    (ActivityKind.PULL_REQUEST, "TypeScript"),
    (ActivityKind.ISSUE, "Documentation"),
]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _range_start(time_range: TimeRange, now: datetime) -> datetime:
    return _as_utc(now) - timedelta(days=time_range.days)


def _commits(records: Iterable[ActivityRecord]) -> List[ActivityRecord]:
    return [r for r in records if r.kind == ActivityKind.COMMIT]


def filter_by_range(
    records: Optional[Sequence[ActivityRecord]],
    time_range: TimeRange,
    now: datetime,
) -> List[ActivityRecord]:
    """
    Keeps records with range_start <= occurred_at <= now, in input order.
    """
    if not records:
        return []
    end = _as_utc(now)
    start = _range_start(time_range, end)
    return [r for r in records if start <= r.occurred_at <= end]


# --- Commit activity ---

def _short_day(value: datetime) -> str:
    return f"{value:%b} {value.day}"


def _month_name(month: int) -> str:
    return datetime(2000, month, 1).strftime("%b")


def _segment_label(
    time_range: TimeRange, index: int, segments: int, start: datetime, end: datetime, now: datetime
) -> str:
    if time_range.days <= 90:
        return f"Week {index + 1}"
    if time_range.days <= 180:
        last_day = end - timedelta(days=1)
        return f"{start:%b} {start.day}–{last_day.day}"
    # Twelve consecutive months ending with now's month. Segments are 31 days
    # long, so labelling by segment start would skip short months.
    months_back = segments - 1 - index
    return _month_name((now.month - 1 - months_back) % 12 + 1)


def _daily_series(commits: List[ActivityRecord], time_range: TimeRange, now: datetime) -> CommitSeries:
    now = _as_utc(now)
    today = now.date()
    days = [today - timedelta(days=offset) for offset in range(time_range.days - 1, -1, -1)]
    values = [0] * len(days)
    for commit in commits:
        local_day = commit.occurred_at.astimezone(now.tzinfo).date()
        # In range but before the first calendar day: count it in the oldest bucket.
        index = max(0, min(len(days) - 1, (local_day - days[0]).days))
        values[index] += 1
    return CommitSeries(labels=[_short_day(d) for d in days], values=values)


def _period_series(commits: List[ActivityRecord], time_range: TimeRange, now: datetime) -> CommitSeries:
    segments = _PERIOD_SEGMENTS[time_range]
    segment_length = timedelta(days=math.ceil(time_range.days / segments))
    start = _range_start(time_range, now)

    boundaries = [start + segment_length * i for i in range(segments + 1)]
    labels = [
        _segment_label(time_range, i, segments, boundaries[i], boundaries[i + 1], now)
        for i in range(segments)
    ]
    values = [0] * segments
    for commit in commits:
        offset = commit.occurred_at - start
        # Half-open [start, end) segments; the last one is unbounded above.
        index = min(segments - 1, int(offset // segment_length))
        values[index] += 1
    return CommitSeries(labels=labels, values=values)


def commit_series(
    records: Optional[Sequence[ActivityRecord]],
    time_range: TimeRange,
    now: datetime,
) -> CommitSeries:
    if not records:
        return CommitSeries(
            labels=[f"Week {i + 1}" for i in range(_EMPTY_SERIES_BUCKETS)],
            values=[0] * _EMPTY_SERIES_BUCKETS,
        )

    commits = _commits(filter_by_range(records, time_range, now))
    if time_range.days <= DAILY_BUCKET_MAX_DAYS:
        return _daily_series(commits, time_range, now)
    return _period_series(commits, time_range, now)


# --- Language distribution ---

def _sorted_distribution(counts: Dict[str, int]) -> List[NamedValue]:
    # sorted() is stable: ties keep first-seen order.
    entries = [NamedValue(name=name, value=value) for name, value in counts.items() if value > 0]
    return sorted(entries, key=lambda entry: entry.value, reverse=True)


def _fallback_languages(in_range: List[ActivityRecord]) -> Dict[str, int]:
    kinds = Counter(r.kind for r in in_range)
    fallback: Dict[str, int] = {}
    for kind, language in _FALLBACK_LANGUAGES:
        count = kinds.get(kind, 0)
        # The first two stand-ins are always present so the chart has two slices.
        if count or len(fallback) < 2:
            fallback[language] = max(1, count)
    return fallback


def language_distribution(
    records: Optional[Sequence[ActivityRecord]],
    time_range: TimeRange,
    now: datetime,
) -> List[NamedValue]:
    in_range = filter_by_range(records, time_range, now)
    if not in_range:
        return [NamedValue(name=NO_LANGUAGE_DATA, value=1)]

    counts: Dict[str, int] = {}
    for commit in _commits(in_range):
        language = detect_language(commit.description_text)
        counts[language] = counts.get(language, 0) + 1

    if not any(name != OTHER_LANGUAGE for name in counts):
        # TODO: surface this as an explicit "estimated" flag instead of fabricated counts.
        return _sorted_distribution(_fallback_languages(in_range))
    return _sorted_distribution(counts)


# --- Work time ---

def work_time_distribution(
    records: Optional[Sequence[ActivityRecord]],
    time_range: TimeRange,
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> List[NamedValue]:
    """
    Buckets every in-range record by hour of day.

    Hours are read from each timestamp's own offset unless `tz` is given.
    An empty window yields 1 per bucket so the chart keeps its shape.
    """
    in_range = filter_by_range(records, time_range, now)
    if not in_range:
        return [NamedValue(name=name, value=1) for name, _, _ in WORK_TIME_BUCKETS]

    counts = {name: 0 for name, _, _ in WORK_TIME_BUCKETS}
    for record in in_range:
        moment = record.occurred_at.astimezone(tz) if tz is not None else record.occurred_at
        for name, start_hour, end_hour in WORK_TIME_BUCKETS:
            if start_hour <= moment.hour < end_hour:
                counts[name] += 1
                break
    return [NamedValue(name=name, value=counts[name]) for name, _, _ in WORK_TIME_BUCKETS]


# --- Repositories ---

def repository_display_name(repository_ref: Optional[str]) -> str:
    parts = (repository_ref or "").split("/")
    if len(parts) > 1 and parts[1].strip():
        return parts[1].strip()
    return UNKNOWN_REPOSITORY


def repository_rollup(
    records: Optional[Sequence[ActivityRecord]],
    time_range: TimeRange,
    now: datetime,
    max_results: int = 5,
) -> List[RepositoryRollupEntry]:
    """
    Per-repository commit counts, most active first.

    `issues` is an estimate derived from the commit count, not a real count of
    issue records.
    """
    groups: Dict[str, List[datetime]] = {}
    for commit in _commits(filter_by_range(records, time_range, now)):
        groups.setdefault(repository_display_name(commit.repository_ref), []).append(commit.occurred_at)

    rollup = [
        RepositoryRollupEntry(
            name=name,
            commits=len(timestamps),
            issues=math.floor(len(timestamps) * ISSUE_ESTIMATE_RATIO),
            last_active_at=max(timestamps),
        )
        for name, timestamps in groups.items()
    ]
    rollup.sort(key=lambda entry: entry.commits, reverse=True)
    return rollup[: max(0, max_results)]


# --- KPI cards ---

def pull_request_completion(
    records: Optional[Sequence[ActivityRecord]],
    time_range: TimeRange,
    now: datetime,
) -> PullRequestCompletion:
    pull_requests = [
        r for r in filter_by_range(records, time_range, now) if r.kind == ActivityKind.PULL_REQUEST
    ]
    total = len(pull_requests)
    completed = sum(1 for pr in pull_requests if pr.merged or pr.state == "closed")
    percentage = (completed * 100) // total if total else 0
    return PullRequestCompletion(completed=completed, total=total, percentage=percentage)


def activity_totals(
    records: Optional[Sequence[ActivityRecord]],
    time_range: TimeRange,
    now: datetime,
) -> ActivityTotals:
    in_range = filter_by_range(records, time_range, now)
    kinds = Counter(r.kind for r in in_range)
    authors = {r.author.strip().lower() for r in in_range if r.author and r.author.strip()}
    return ActivityTotals(
        commits=kinds.get(ActivityKind.COMMIT, 0),
        pull_requests=kinds.get(ActivityKind.PULL_REQUEST, 0),
        issues=kinds.get(ActivityKind.ISSUE, 0),
        active_developers=len(authors),
    )


def issue_overview(
    records: Optional[Sequence[ActivityRecord]],
    time_range: TimeRange,
    now: datetime,
) -> IssueOverview:
    issues = [r for r in filter_by_range(records, time_range, now) if r.kind == ActivityKind.ISSUE]
    closed = sum(1 for issue in issues if issue.state == "closed")
    return IssueOverview(open=len(issues) - closed, closed=closed, total=len(issues))


# --- Developers ---

def _author_key(author: Optional[str]) -> str:
    return (author or "").strip().lower()


def filter_by_author(
    records: Optional[Sequence[ActivityRecord]],
    author: str,
) -> List[ActivityRecord]:
    """Case-insensitive match on the record author; input order is kept."""
    key = _author_key(author)
    return [r for r in records or [] if _author_key(r.author) == key]


def developer_rollup(
    records: Optional[Sequence[ActivityRecord]],
    time_range: TimeRange,
    now: datetime,
) -> List[DeveloperStats]:
    """
    Per-author counts over the window, most commits first.

    Authors are grouped case-insensitively and shown with the first spelling
    seen. Records without an author are left out.
    """
    groups: Dict[str, List[ActivityRecord]] = {}
    for record in filter_by_range(records, time_range, now):
        key = _author_key(record.author)
        if key:
            groups.setdefault(key, []).append(record)

    developers = []
    for group in groups.values():
        kinds = Counter(r.kind for r in group)
        pull_requests = [r for r in group if r.kind == ActivityKind.PULL_REQUEST]
        developers.append(
            DeveloperStats(
                username=group[0].author.strip(),
                commits=kinds.get(ActivityKind.COMMIT, 0),
                pull_requests_total=len(pull_requests),
                pull_requests_completed=sum(1 for pr in pull_requests if pr.merged or pr.state == "closed"),
                issues=kinds.get(ActivityKind.ISSUE, 0),
                last_active_at=max(r.occurred_at for r in group),
            )
        )
    developers.sort(key=lambda d: d.commits, reverse=True)
    return developers


# --- Repository detail ---

def filter_by_repository(
    records: Optional[Sequence[ActivityRecord]],
    name: str,
    kind: Optional[ActivityKind] = None,
) -> List[ActivityRecord]:
    key = name.strip().lower()
    return [
        r for r in records or []
        if repository_display_name(r.repository_ref).lower() == key and (kind is None or r.kind == kind)
    ]


def repository_overview(
    records: Optional[Sequence[ActivityRecord]],
    time_range: TimeRange,
    now: datetime,
) -> List[RepositoryStats]:
    groups: Dict[str, List[ActivityRecord]] = {}
    for record in filter_by_range(records, time_range, now):
        groups.setdefault(repository_display_name(record.repository_ref), []).append(record)

    overview = []
    for name, group in groups.items():
        kinds = Counter(r.kind for r in group)
        issues = [r for r in group if r.kind == ActivityKind.ISSUE]
        closed_issues = sum(1 for issue in issues if issue.state == "closed")
        overview.append(
            RepositoryStats(
                name=name,
                commits=kinds.get(ActivityKind.COMMIT, 0),
                pull_requests=kinds.get(ActivityKind.PULL_REQUEST, 0),
                open_issues=len(issues) - closed_issues,
                closed_issues=closed_issues,
                contributors=len({_author_key(r.author) for r in group if _author_key(r.author)}),
                last_active_at=max(r.occurred_at for r in group),
            )
        )
    overview.sort(key=lambda entry: entry.commits, reverse=True)
    return overview
