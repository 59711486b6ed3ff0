"""
Centralized Settings Module - Environment-based configuration

Uses Pydantic BaseSettings for type-safe configuration management.
"""

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List, Optional
from functools import lru_cache


class ValidationSettings(BaseSettings):
    """Lap validator configuration."""

    mad_multiplier: float = Field(
        default=4.0,
        gt=0.0,
        description="Half-width of the outlier band in MAD units"
    )
    min_outlier_samples: int = Field(
        default=5,
        ge=1,
        description="Minimum positive lap times before outlier detection runs"
    )
    mad_floor: float = Field(
        default=1.0,
        gt=0.0,
        description="MAD used when the measured MAD is zero"
    )

    class Config:
        env_prefix = "VALIDATION_"


class MetricsSettings(BaseSettings):
    """Session KPI configuration."""

    degradation_window: int = Field(
        default=10,
        ge=1,
        description="Clean laps averaged at each end of the degradation comparison"
    )

    class Config:
        env_prefix = "METRICS_"


class CacheSettings(BaseSettings):
    """Session cache and rolling pace configuration."""

    rolling_window_seconds: float = Field(
        default=300.0,
        gt=0.0,
        description="Rolling pace window duration"
    )
    rolling_max_points: int = Field(
        default=500,
        ge=2,
        description="Maximum points kept in a rolling pace series"
    )

    class Config:
        env_prefix = "CACHE_"


class DownsampleSettings(BaseSettings):
    """Chart downsampling configuration."""

    min_points: int = Field(default=80, ge=3, description="Lower bound for target points")
    max_points: int = Field(default=500, ge=3, description="Upper bound for target points")
    pixels_per_point: int = Field(default=3, ge=1, description="Container pixels per plotted point")

    class Config:
        env_prefix = "DOWNSAMPLE_"


class IngestionSettings(BaseSettings):
    """Raw table ingestion configuration."""

    delimiters: List[str] = Field(
        default=[";", ","],
        description="Delimiters tried in order for delimited text exports"
    )
    database_time_unit: str = Field(
        default="ms",
        description="Time unit of race database lap tables (ms/s/auto)"
    )
    auto_unit_threshold: float = Field(
        default=200.0,
        gt=0.0,
        description="Median raw lap time at or above which values are read as milliseconds"
    )

    @field_validator("delimiters", mode="before")
    @classmethod
    def parse_delimiters(cls, v):
        """Parse delimiters from a string of characters or a list."""
        if isinstance(v, str):
            return [c for c in v if not c.isspace()]
        return v

    @field_validator("database_time_unit")
    @classmethod
    def validate_time_unit(cls, v: str) -> str:
        """Validate time unit is recognized."""
        valid_units = ["ms", "s", "auto"]
        if v.lower() not in valid_units:
            raise ValueError(f"Invalid time unit. Must be one of: {valid_units}")
        return v.lower()

    class Config:
        env_prefix = "INGESTION_"


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format (json/text)")
    file_path: Optional[str] = Field(default=None, description="Log file path")
    enable_console: bool = Field(default=True, description="Enable console logging")

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    class Config:
        env_prefix = "LOG_"


class Settings(BaseSettings):
    """Main settings aggregating all configuration sections."""

    # Environment
    env: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Debug mode")

    # Sub-settings
    validation: ValidationSettings = Field(default_factory=ValidationSettings)
    metrics: MetricsSettings = Field(default_factory=MetricsSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    downsample: DownsampleSettings = Field(default_factory=DownsampleSettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment is recognized."""
        valid_envs = ["development", "staging", "production", "testing"]
        if v.lower() not in valid_envs:
            raise ValueError(f"Invalid environment. Must be one of: {valid_envs}")
        return v.lower()

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        env_nested_delimiter = "__"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings
    """
    return Settings()
