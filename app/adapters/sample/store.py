import random
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from app.core.logger import get_logger
from app.core.models.domain import (
    ActivityRecord,
    CommitActivity,
    IssueActivity,
    PullRequestActivity,
)
from app.ports.activity_source import ActivitySource

logger = get_logger(__name__)

SAMPLE_ORGANIZATION = "acme"
SAMPLE_DEVELOPERS: List[str] = ["alexjohnson", "sarahc", "mrivera", "emwatson"]

# (repository, commit message templates)
SAMPLE_REPOSITORIES: List[Tuple[str, List[str]]] = [
    ("frontend", [
        "Fix authentication workflow in login.js",
        "Implement new dashboard widgets in Dashboard.ts",
        "Tweak spacing in layout.scss",
        "Update index.html meta tags",
    ]),
    ("backend-api", [
        "Add pagination to users endpoint in users.py",
        "Refactor token refresh in auth.go",
        "Bump dependencies in package.json",
        "Tighten validation rules",
    ]),
    ("mobile-app", [
        "Fix profile screen crash in ProfileView.swift",
        "Add offline cache in SyncWorker.kt",
        "Update build script deploy.sh",
    ]),
    ("documentation", [
        "Document API rate limits in README.md",
        "Fix typos in CHANGELOG.txt",
        "Update CI config in workflow.yml",
    ]),
]

_PR_TITLES = [
    "Fix authentication workflow",
    "Implement new dashboard features",
    "API enhancements",
    "Improve error messages",
]
_ISSUE_TITLES = [
    "Mobile responsiveness bug in profile page",
    "Dashboard loads slowly for large teams",
    "Broken link in docs",
]

# Hours skewed towards office time.
_HOURS = [9, 10, 11, 11, 14, 15, 16, 16, 17, 20, 22, 1]

SAMPLE_HISTORY_DAYS = 120


class SampleActivitySource(ActivitySource):
    """
    In-memory sample dataset used when GitHub is not connected or unavailable.
    Deterministic for a given `now` so repeated calls render the same charts.
    """

    name = "sample"

    def __init__(self, now: Optional[datetime] = None, seed: int = 482):
        now = now or datetime.now(timezone.utc)
        self.now = now if now.tzinfo else now.replace(tzinfo=timezone.utc)
        self.seed = seed

    def _records(self) -> List[ActivityRecord]:
        rng = random.Random(self.seed)
        records: List[ActivityRecord] = []
        pr_number = 400
        issue_number = 100

        for offset in range(SAMPLE_HISTORY_DAYS):
            day = self.now - timedelta(days=offset)
            for _ in range(rng.randint(0, 4)):
                repo, messages = rng.choice(SAMPLE_REPOSITORIES)
                occurred_at = day.replace(hour=rng.choice(_HOURS), minute=rng.randint(0, 59), second=0, microsecond=0)
                if occurred_at > self.now:
                    occurred_at -= timedelta(days=1)
                sha = f"{rng.getrandbits(40):010x}"
                records.append(
                    CommitActivity(
                        source_id=sha,
                        occurred_at=occurred_at,
                        repository_ref=f"{SAMPLE_ORGANIZATION}/{repo}/commit/{sha}",
                        author=rng.choice(SAMPLE_DEVELOPERS),
                        message=rng.choice(messages),
                        additions=rng.randint(1, 120),
                        deletions=rng.randint(0, 60),
                    )
                )

            if offset % 3 == 0:
                pr_number += 1
                repo, _ = rng.choice(SAMPLE_REPOSITORIES)
                merged = rng.random() < 0.7
                records.append(
                    PullRequestActivity(
                        source_id=str(pr_number),
                        occurred_at=day.replace(hour=rng.choice(_HOURS), minute=0, second=0, microsecond=0) - timedelta(days=1),
                        repository_ref=f"{SAMPLE_ORGANIZATION}/{repo}/pull/{pr_number}",
                        author=rng.choice(SAMPLE_DEVELOPERS),
                        title=rng.choice(_PR_TITLES),
                        state="closed" if merged else "open",
                        merged=merged,
                    )
                )

            if offset % 5 == 0:
                issue_number += 1
                repo, _ = rng.choice(SAMPLE_REPOSITORIES)
                records.append(
                    IssueActivity(
                        source_id=str(issue_number),
                        occurred_at=day.replace(hour=rng.choice(_HOURS), minute=30, second=0, microsecond=0) - timedelta(days=1),
                        repository_ref=f"{SAMPLE_ORGANIZATION}/{repo}/issues/{issue_number}",
                        author=rng.choice(SAMPLE_DEVELOPERS),
                        title=rng.choice(_ISSUE_TITLES),
                        state=rng.choice(["open", "closed"]),
                    )
                )

        records.sort(key=lambda r: r.occurred_at, reverse=True)
        return records

    def fetch_activity(self, days: int) -> List[ActivityRecord]:
        since = self.now - timedelta(days=days)
        records = [r for r in self._records() if r.occurred_at >= since]
        logger.info(f"🧪 Serving {len(records)} sample activities (Lookback: {days} days)")
        return records
