"""Application settings loaded from the environment."""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration. Every field can be set with a DECAN_ prefixed variable."""

    model_config = SettingsConfigDict(
        env_prefix="DECAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(default="Decan Chart API", description="Title shown in the OpenAPI docs")
    log_level: str = Field(default="INFO", description="Root logging level")
    cors_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")

    # Ephemeris
    ephemeris_enabled: bool = Field(
        default=True,
        description="Try the Swiss Ephemeris module before the approximation engine",
    )
    ephemeris_path: Optional[str] = Field(
        default=None,
        description="Directory holding .se1 files. Moshier is used when absent",
    )
    house_system: str = Field(default="Placidus", description="House system for the ephemeris path")
    node_type: str = Field(default="true", description="Lunar node on the ephemeris path (true or mean)")

    # Numeric solvers
    kepler_iterations: int = Field(
        default=3,
        ge=1,
        description="Fixed eccentric-anomaly iterations in the approximation engine",
    )
    solar_return_max_iterations: int = Field(
        default=50,
        ge=1,
        description="Bisection cap for the approximate Solar Return search",
    )
    solar_return_tolerance: float = Field(
        default=1.0 / 60.0,
        gt=0,
        description="Bisection tolerance in degrees (one arc-minute)",
    )
    solar_return_seed_days: float = Field(
        default=5.0,
        description="Days before the birthday where the Solar Return search starts",
    )
    solar_return_window_days: float = Field(
        default=10.0,
        gt=0,
        description="Width of the bisection window in days",
    )


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()
