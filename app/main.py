import argparse
from typing import List, Optional

from app.core.config import load_settings
from app.core.models.domain import DEFAULT_TIME_RANGE, NamedValue, TimeRange
from app.services.dashboard import DashboardService, DashboardSummary


def _bar(value: int, peak: int, width: int = 30) -> str:
    if peak <= 0:
        return ""
    return "█" * max(1, round(width * value / peak)) if value else ""


def _print_distribution(title: str, entries: List[NamedValue]) -> None:
    print(f"\n{title}")
    peak = max((e.value for e in entries), default=0)
    for entry in entries:
        print(f"  {entry.name:<20} {entry.value:>5} {_bar(entry.value, peak)}")


def render_summary(summary: DashboardSummary) -> None:
    header = f"📊 ACTIVITY: {summary.label} ({summary.source} data)"
    if summary.author:
        header += f" for {summary.author}"
    print("=" * 60)
    print(header)
    print("=" * 60)

    totals = summary.totals
    print(f"Commits: {totals.commits}  PRs: {totals.pull_requests}  Issues: {totals.issues}  "
          f"Developers: {totals.active_developers}")
    completion = summary.pull_request_completion
    print(f"PR completion: {completion.completed}/{completion.total} ({completion.percentage}%)")
    issues = summary.issues_overview
    print(f"Issues: {issues.open} open, {issues.closed} closed")

    series = summary.commit_activity
    _print_distribution(
        "Commit activity",
        [NamedValue(name=label, value=value) for label, value in zip(series.labels, series.values)],
    )
    _print_distribution("Languages", summary.language_distribution)
    _print_distribution("Work time", summary.work_time_distribution)

    print("\nTop repositories")
    if not summary.top_repositories:
        print("  (no repository activity)")
    for repo in summary.top_repositories:
        print(f"  {repo.name:<20} {repo.commits:>5} commits  ~{repo.issues} issues  "
              f"last active {repo.last_active_at:%Y-%m-%d}")
    print("=" * 60)


def run_dashboard_flow(argv: Optional[List[str]] = None) -> DashboardSummary:
    """
    Runs the full flow: settings -> activity source -> aggregator -> terminal summary.
    """
    parser = argparse.ArgumentParser(description="Print a developer activity summary.")
    parser.add_argument(
        "--time-range",
        choices=[t.value for t in TimeRange],
        default=DEFAULT_TIME_RANGE.value,
    )
    parser.add_argument("--author", default=None, help="Only count activity by this GitHub login")
    args = parser.parse_args(argv)

    settings = load_settings()
    print("🚀 Building developer activity summary...")
    service = DashboardService(settings)
    summary = service.build_dashboard(TimeRange(args.time_range), settings.github_session(), author=args.author)
    render_summary(summary)
    return summary


if __name__ == "__main__":
    run_dashboard_flow()
