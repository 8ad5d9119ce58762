"""
Configuration management for FLEETGUARD.

Loads settings from environment variables and YAML config files.
Uses Pydantic for validation.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fleetguard.core.constants import (
    CORRELATION_CACHE_TTL_SECONDS,
    DRIFT_HISTORY_MAX_PAIRS,
    DRIFT_HISTORY_MAX_SAMPLES,
)
from fleetguard.core.exceptions import ConfigurationError


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Values are read from a .env file or the process environment.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Paths
    config_dir: Path = Field(
        default=Path("config"),
        validation_alias="FLEETGUARD_CONFIG_DIR",
        description="Directory containing YAML config files",
    )

    # Correlation monitor state bounds
    correlation_cache_ttl_seconds: float = Field(
        default=CORRELATION_CACHE_TTL_SECONDS,
        validation_alias="CORRELATION_CACHE_TTL_SECONDS",
        gt=0,
        description="Time-to-live of a cached correlation matrix",
    )
    drift_history_max_samples: int = Field(
        default=DRIFT_HISTORY_MAX_SAMPLES,
        validation_alias="DRIFT_HISTORY_MAX_SAMPLES",
        gt=0,
        description="Samples kept per bot pair",
    )
    drift_history_max_pairs: int = Field(
        default=DRIFT_HISTORY_MAX_PAIRS,
        validation_alias="DRIFT_HISTORY_MAX_PAIRS",
        gt=0,
        description="Bot pairs tracked before least-recently-updated eviction",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Logging level",
    )

    @field_validator("config_dir", mode="before")
    @classmethod
    def resolve_path(cls, v: str | Path) -> Path:
        """Convert string to Path and resolve."""
        return Path(v).resolve()

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str) -> str:
        """Ensure log level is uppercase."""
        return v.upper()


class _YamlConfig:
    """Base for config objects backed by one YAML file."""

    section: str = ""

    def __init__(self, config_path: Path):
        self.path = config_path
        self._config = self._load_yaml(config_path)

    @staticmethod
    def _load_yaml(path: Path) -> dict[str, Any]:
        """Load and parse YAML file."""
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}")

        with open(path) as f:
            try:
                return yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    @property
    def raw(self) -> dict[str, Any]:
        """The section of the file this config reads."""
        return self._config.get(self.section, {}) or {}

    def _table(self, key: str, defaults: dict[str, float]) -> dict[str, float]:
        """Merge a name -> number table over defaults, rejecting unknown names."""
        table = dict(defaults)
        overrides = self.raw.get(key, {}) or {}
        for name, value in overrides.items():
            name = str(name)
            if name not in defaults:
                raise ConfigurationError(
                    f"Unknown entry '{name}' in {self.section}.{key} ({self.path})",
                    config_key=f"{self.section}.{key}",
                )
            table[name] = float(value)
        return table


class ScoringConfig(_YamlConfig):
    """Bot Priority Score configuration loaded from scoring.yaml."""

    section = "scoring"

    def to_settings(self):
        """Build BPSSettings from the file, falling back to frozen defaults."""
        from fleetguard.scoring.formula import DEFAULT_BPS_SETTINGS, BPSSettings

        defaults = DEFAULT_BPS_SETTINGS
        weights = self._table("weights", defaults.weights)
        if abs(sum(weights.values()) - 1.0) > 1e-6:
            raise ConfigurationError(
                f"BPS weights must sum to 1.0, got {sum(weights.values()):.4f}",
                config_key="scoring.weights",
            )
        stage_multipliers = self._table("stage_multipliers", defaults.stage_multipliers)
        for stage, value in stage_multipliers.items():
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(
                    f"Stage multiplier for {stage} must be in [0, 1], got {value}",
                    config_key="scoring.stage_multipliers",
                )

        thresholds = self._table("bucket_thresholds", defaults.bucket_thresholds)
        ordered = [thresholds[b] for b in ("A+", "A", "B", "C", "D")]
        if any(hi < lo for hi, lo in zip(ordered, ordered[1:])):
            raise ConfigurationError(
                f"Bucket thresholds must descend A+ >= A >= B >= C >= D, got {ordered}",
                config_key="scoring.bucket_thresholds",
            )

        targets = {
            "expectancy_target": float(self.raw.get("expectancy_target", defaults.expectancy_target)),
            "dd_cap_pct": float(self.raw.get("dd_cap_pct", defaults.dd_cap_pct)),
            "trades_target": float(self.raw.get("trades_target", defaults.trades_target)),
        }
        for key, value in targets.items():
            if not value > 0:
                raise ConfigurationError(
                    f"{key} must be positive, got {value}",
                    config_key=f"scoring.{key}",
                )

        return BPSSettings(
            weights=weights,
            stage_multipliers=stage_multipliers,
            bucket_thresholds=thresholds,
            **targets,
        )


class AllocationConfig(_YamlConfig):
    """Allocation configuration loaded from allocation.yaml."""

    section = "allocation"

    def to_settings(self):
        """Build AllocationSettings from the file."""
        from fleetguard.allocation.engine import DEFAULT_ALLOCATION_SETTINGS, AllocationSettings

        defaults = DEFAULT_ALLOCATION_SETTINGS
        multipliers = self._table("bucket_multipliers", defaults.bucket_multipliers)
        for bucket, value in multipliers.items():
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(
                    f"Bucket multiplier for {bucket} must be in [0, 1], got {value}",
                    config_key="allocation.bucket_multipliers",
                )

        return AllocationSettings(
            bucket_multipliers=multipliers,
            default_capacity_units=float(
                self.raw.get("default_capacity_units", defaults.default_capacity_units)
            ),
        )


class CorrelationConfig(_YamlConfig):
    """Correlation monitor configuration loaded from correlation.yaml."""

    section = "correlation"

    def to_settings(self):
        """Build CorrelationSettings from the file."""
        from fleetguard.correlation.monitor import CorrelationSettings

        defaults = CorrelationSettings()
        return CorrelationSettings(
            default_lookback_days=int(
                self.raw.get("default_lookback_days", defaults.default_lookback_days)
            ),
            high_correlation_threshold=float(
                self.raw.get("high_correlation_threshold", defaults.high_correlation_threshold)
            ),
            cluster_threshold=float(
                self.raw.get("cluster_threshold", defaults.cluster_threshold)
            ),
            min_samples=int(self.raw.get("min_samples", defaults.min_samples)),
        )


class ReadinessConfig(_YamlConfig):
    """Readiness gate thresholds loaded from readiness.yaml."""

    section = "readiness"

    def to_thresholds(self):
        """Build ReadinessThresholds from the file."""
        from fleetguard.readiness.gate import ReadinessThresholds

        defaults = ReadinessThresholds()
        values = {
            name: float(self.raw.get(name, getattr(defaults, name)))
            for name in (
                "market_data_live_threshold_seconds",
                "redis_latency_threshold_ms",
                "oldest_job_age_threshold_seconds",
                "audit_max_age_hours",
                "two_factor_max_age_hours",
            )
        }
        values["queue_backlog_threshold"] = int(
            self.raw.get("queue_backlog_threshold", defaults.queue_backlog_threshold)
        )
        return ReadinessThresholds(**values)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


def load_config(
    config_type: str,
    config_dir: Path | None = None,
) -> ScoringConfig | AllocationConfig | CorrelationConfig | ReadinessConfig:
    """
    Load a specific configuration file.

    Args:
        config_type: One of "scoring", "allocation", "correlation", "readiness"
        config_dir: Override for the configured directory

    Returns:
        Appropriate config object
    """
    base = config_dir if config_dir is not None else get_settings().config_dir
    config_map: dict[str, tuple[Path, type]] = {
        "scoring": (base / "scoring.yaml", ScoringConfig),
        "allocation": (base / "allocation.yaml", AllocationConfig),
        "correlation": (base / "correlation.yaml", CorrelationConfig),
        "readiness": (base / "readiness.yaml", ReadinessConfig),
    }

    if config_type not in config_map:
        raise ConfigurationError(
            f"Unknown config type: {config_type}. "
            f"Valid types: {list(config_map.keys())}"
        )

    path, config_class = config_map[config_type]
    return config_class(path)
