import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class GitHubSession:
    """
    Explicit GitHub connection settings, passed to whoever fetches activity.
    """
    token: str
    organization: Optional[str] = None
    max_repositories: int = 5
    include_files: bool = False

    def __repr__(self) -> str:
        # Never leak the token into logs.
        return (
            f"GitHubSession(organization={self.organization!r}, "
            f"max_repositories={self.max_repositories}, include_files={self.include_files})"
        )


@dataclass(frozen=True)
class Settings:
    github_token: Optional[str] = None
    github_organization: Optional[str] = None
    github_max_repositories: int = 5
    github_include_files: bool = False
    dashboard_max_repositories: int = 5
    dashboard_recent_limit: int = 10

    def github_session(self) -> Optional[GitHubSession]:
        """Initial session from configuration, or None when no token is set."""
        if not self.github_token:
            return None
        return GitHubSession(
            token=self.github_token,
            organization=self.github_organization,
            max_repositories=self.github_max_repositories,
            include_files=self.github_include_files,
        )


def load_settings(env_file: Optional[str] = None) -> Settings:
    """
    Reads settings once from the environment (and a .env file found from the
    working directory upwards). Existing environment variables win.
    """
    load_dotenv(env_file or find_dotenv(usecwd=True))
    return Settings(
        github_token=os.getenv("GITHUB_TOKEN") or None,
        github_organization=os.getenv("GITHUB_ORGANIZATION") or None,
        github_max_repositories=_env_int("GITHUB_MAX_REPOSITORIES", 5),
        github_include_files=_env_bool("GITHUB_INCLUDE_FILES"),
        dashboard_max_repositories=_env_int("DASHBOARD_MAX_REPOSITORIES", 5),
        dashboard_recent_limit=_env_int("DASHBOARD_RECENT_LIMIT", 10),
    )
