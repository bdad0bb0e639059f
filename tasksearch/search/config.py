"""Configuration for similarity search."""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SearchConfig(BaseSettings):
    """
    Defaults and bounds for similarity search requests.

    Overridable via SEARCH_ environment variables (e.g., SEARCH_MAX_LIMIT=50).
    """

    model_config = SettingsConfigDict(env_prefix="SEARCH_", extra="ignore")

    default_limit: int = Field(
        default=10,
        ge=1,
        description="Results returned when the caller gives no limit",
    )
    max_limit: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Upper bound applied to any requested limit",
    )
    default_min_similarity: float = Field(
        default=0.5,
        ge=-1.0,
        le=1.0,
        description="Exclusive similarity threshold when none is given",
    )

    @model_validator(mode="after")
    def _default_within_max(self) -> "SearchConfig":
        if self.default_limit > self.max_limit:
            raise ValueError("default_limit must not exceed max_limit")
        return self
