from datetime import datetime
from pydantic import BaseModel, Field, AliasChoices, ConfigDict, field_validator
from typing import Optional


class GitHubConnectRequest(BaseModel):
    """Payload for POST /github/connect.

    Accepts both snake_case and camelCase inputs.
    """

    model_config = ConfigDict(extra="ignore")

    token: str = Field(..., min_length=1)
    organization: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("organization", "org"),
    )
    max_repositories: Optional[int] = Field(
        default=None,
        ge=1,
        le=50,
        validation_alias=AliasChoices("max_repositories", "maxRepositories"),
    )

    @field_validator("token")
    @classmethod
    def _token_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("token must not be blank")
        return value

    @field_validator("organization")
    @classmethod
    def _blank_organization_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class GitHubStatusDTO(BaseModel):
    connected: bool
    username: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    organization: Optional[str] = None


class GitHubConnectResponse(BaseModel):
    success: bool
    message: str
    username: Optional[str] = None
    avatar_url: Optional[str] = None


class GitHubRepositoryDTO(BaseModel):
    full_name: str
    name: str
    description: Optional[str] = None
    url: Optional[str] = None
    language: Optional[str] = None
    stars: int = 0
    private: bool = False
    updated_at: Optional[datetime] = None


class HealthDTO(BaseModel):
    status: str
    github_connected: bool
