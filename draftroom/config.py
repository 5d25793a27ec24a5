"""Configuration management for draftroom."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Config:
    """Application configuration."""

    # Postgres
    database_url: str | None
    pool_min: int
    pool_max: int

    # Trade engine
    fairness_threshold_percent: int
    default_chart: str

    # Auto-pick
    auto_pick_attempts: int

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls(
            database_url=os.environ.get("DATABASE_URL"),
            pool_min=int(os.environ.get("DRAFTROOM_POOL_MIN", "2")),
            pool_max=int(os.environ.get("DRAFTROOM_POOL_MAX", "10")),
            fairness_threshold_percent=int(os.environ.get("DRAFTROOM_FAIRNESS_THRESHOLD", "15")),
            default_chart=os.environ.get("DRAFTROOM_DEFAULT_CHART", "JimmyJohnson"),
            auto_pick_attempts=int(os.environ.get("DRAFTROOM_AUTO_PICK_ATTEMPTS", "3")),
        )


def get_config() -> Config:
    """Get application configuration."""
    return Config.from_env()
