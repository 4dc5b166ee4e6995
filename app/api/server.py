# app/api/server.py
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Callable, List, Optional

from fastapi import FastAPI, HTTPException, Depends, Query, Request, status

from app.adapters.github.adapter import GitHubAdapter
from app.api.schemas import (
    GitHubConnectRequest,
    GitHubConnectResponse,
    GitHubRepositoryDTO,
    GitHubStatusDTO,
    HealthDTO,
)
from app.core.config import GitHubSession, Settings, load_settings
from app.core.logger import get_logger
from app.core.models.domain import (
    ActivityKind,
    ActivityRecord,
    DEFAULT_TIME_RANGE,
    DeveloperStats,
    RepositoryStats,
    TimeRange,
)
from app.ports.activity_source import ActivitySourceError
from app.services.dashboard import DashboardService, DashboardSummary

logger = get_logger(__name__)


def _normalize_time_range(value: Optional[str]) -> TimeRange:
    if value is None:
        return DEFAULT_TIME_RANGE
    value = value.strip()
    if not value:
        return DEFAULT_TIME_RANGE
    try:
        return TimeRange(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "Invalid timeRange",
                "allowed": [t.value for t in TimeRange],
            },
        )


def get_time_range(time_range: Optional[str] = Query(default=None, alias="timeRange")) -> TimeRange:
    return _normalize_time_range(time_range)


def get_service(request: Request) -> DashboardService:
    return request.app.state.dashboard_service


def get_session(request: Request) -> Optional[GitHubSession]:
    return request.app.state.github_session


def create_app(
    settings: Optional[Settings] = None,
    github_factory: Callable[[GitHubSession], GitHubAdapter] = GitHubAdapter,
    service: Optional[DashboardService] = None,
) -> FastAPI:
    """
    Builds the API. The GitHub session lives on app.state, never in os.environ.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("🏁 System Startup")
        yield
        logger.info("🛑 System Shutdown")

    settings = settings or load_settings()
    app = FastAPI(title="Developer Activity Dashboard API", lifespan=lifespan)
    app.state.settings = settings
    app.state.dashboard_service = service or DashboardService(settings, github_factory=github_factory)
    app.state.github_session = settings.github_session()

    @app.get("/health", response_model=HealthDTO)
    def health(request: Request):
        return HealthDTO(status="ok", github_connected=request.app.state.github_session is not None)

    # --- Dashboard ---
    @app.get("/dashboard", response_model=DashboardSummary)
    def get_dashboard(
        time_range: TimeRange = Depends(get_time_range),
        service: DashboardService = Depends(get_service),
        session: Optional[GitHubSession] = Depends(get_session),
    ):
        return service.build_dashboard(time_range, session)

    @app.get("/developers/{username}/summary", response_model=DashboardSummary)
    def get_developer_summary(
        username: str,
        time_range: TimeRange = Depends(get_time_range),
        service: DashboardService = Depends(get_service),
        session: Optional[GitHubSession] = Depends(get_session),
    ):
        return service.build_dashboard(time_range, session, author=username)

    @app.get("/developers", response_model=List[DeveloperStats])
    def list_developers(
        time_range: TimeRange = Depends(get_time_range),
        service: DashboardService = Depends(get_service),
        session: Optional[GitHubSession] = Depends(get_session),
    ):
        return service.list_developers(time_range, session)

    @app.get("/developers/{username}/activities", response_model=List[ActivityRecord])
    def get_developer_activities(
        username: str,
        limit: int = Query(default=50, ge=1, le=500),
        time_range: TimeRange = Depends(get_time_range),
        service: DashboardService = Depends(get_service),
        session: Optional[GitHubSession] = Depends(get_session),
    ):
        return service.developer_activity(username, time_range, session, limit)

    # --- Repositories ---
    @app.get("/repositories", response_model=List[RepositoryStats])
    def list_repositories(
        time_range: TimeRange = Depends(get_time_range),
        service: DashboardService = Depends(get_service),
        session: Optional[GitHubSession] = Depends(get_session),
    ):
        return service.list_repositories(time_range, session)

    @app.get("/repositories/{name}/commits", response_model=List[ActivityRecord])
    def get_repository_commits(
        name: str,
        time_range: TimeRange = Depends(get_time_range),
        service: DashboardService = Depends(get_service),
        session: Optional[GitHubSession] = Depends(get_session),
    ):
        return service.repository_activity(name, ActivityKind.COMMIT, time_range, session)

    @app.get("/repositories/{name}/pull-requests", response_model=List[ActivityRecord])
    def get_repository_pull_requests(
        name: str,
        time_range: TimeRange = Depends(get_time_range),
        service: DashboardService = Depends(get_service),
        session: Optional[GitHubSession] = Depends(get_session),
    ):
        return service.repository_activity(name, ActivityKind.PULL_REQUEST, time_range, session)

    @app.get("/repositories/{name}/issues", response_model=List[ActivityRecord])
    def get_repository_issues(
        name: str,
        time_range: TimeRange = Depends(get_time_range),
        service: DashboardService = Depends(get_service),
        session: Optional[GitHubSession] = Depends(get_session),
    ):
        return service.repository_activity(name, ActivityKind.ISSUE, time_range, session)

    @app.get("/activities/recent", response_model=List[ActivityRecord])
    def get_recent_activities(
        limit: int = Query(default=10, ge=1, le=100),
        service: DashboardService = Depends(get_service),
        session: Optional[GitHubSession] = Depends(get_session),
    ):
        return service.list_recent_activity(session, limit)

    # --- GitHub connection ---
    @app.get("/github/status", response_model=GitHubStatusDTO)
    def github_status(session: Optional[GitHubSession] = Depends(get_session)):
        if session is None:
            return GitHubStatusDTO(connected=False)
        try:
            account = github_factory(session).verify()
        except ActivitySourceError:
            return GitHubStatusDTO(connected=False, organization=session.organization)
        return GitHubStatusDTO(
            connected=True,
            username=account.login,
            name=account.name,
            avatar_url=account.avatar_url,
            organization=session.organization,
        )

    @app.get("/github/repositories", response_model=List[GitHubRepositoryDTO])
    def github_repositories(session: Optional[GitHubSession] = Depends(get_session)):
        if session is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not connected to GitHub")
        try:
            repositories = github_factory(session).list_repositories()
        except ActivitySourceError as e:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=f"Failed to fetch GitHub repositories: {e}",
            )
        return [GitHubRepositoryDTO(**asdict(repo)) for repo in repositories]

    @app.post("/github/connect", response_model=GitHubConnectResponse)
    def github_connect(payload: GitHubConnectRequest, request: Request):
        session = GitHubSession(
            token=payload.token,
            organization=payload.organization,
            max_repositories=payload.max_repositories or settings.github_max_repositories,
            include_files=settings.github_include_files,
        )
        try:
            account = github_factory(session).verify()
        except ActivitySourceError as e:
            if session.organization:
                detail = f"Unable to access organization: {session.organization}. Check the token permissions. ({e})"
            else:
                detail = "Invalid GitHub token"
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)

        request.app.state.github_session = session
        logger.info(f"🔗 Connected to GitHub as {account.login}")
        return GitHubConnectResponse(
            success=True,
            message="Connected to GitHub successfully",
            username=account.login,
            avatar_url=account.avatar_url,
        )

    @app.post("/github/disconnect", response_model=GitHubConnectResponse)
    def github_disconnect(request: Request):
        request.app.state.github_session = None
        logger.info("🔌 Disconnected from GitHub")
        return GitHubConnectResponse(success=True, message="Disconnected from GitHub")

    return app


app = create_app()
