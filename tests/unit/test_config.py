"""Tests for YAML configuration loading."""

from pathlib import Path

import pytest

from fleetguard.allocation.engine import DEFAULT_ALLOCATION_SETTINGS
from fleetguard.core.config import Settings, load_config
from fleetguard.core.exceptions import ConfigurationError
from fleetguard.readiness.gate import DEFAULT_THRESHOLDS
from fleetguard.scoring.formula import DEFAULT_BPS_SETTINGS

REPO_CONFIG = Path(__file__).resolve().parents[2] / "config"


class TestBundledConfig:
    """The shipped YAML files match the built-in defaults."""

    def test_scoring(self):
        assert load_config("scoring", REPO_CONFIG).to_settings() == DEFAULT_BPS_SETTINGS

    def test_allocation(self):
        assert load_config("allocation", REPO_CONFIG).to_settings() == DEFAULT_ALLOCATION_SETTINGS

    def test_readiness(self):
        assert load_config("readiness", REPO_CONFIG).to_thresholds() == DEFAULT_THRESHOLDS

    def test_correlation(self):
        settings = load_config("correlation", REPO_CONFIG).to_settings()
        assert settings.default_lookback_days == 30
        assert settings.cluster_threshold == 0.6


class TestConfigOverrides:
    """Tests for partial overrides and validation."""

    def test_partial_override(self, tmp_path):
        (tmp_path / "scoring.yaml").write_text(
            "scoring:\n  expectancy_target: 80\n  stage_multipliers:\n    CANARY: 0.9\n"
        )
        settings = load_config("scoring", tmp_path).to_settings()

        assert settings.expectancy_target == 80.0
        assert settings.stage_multipliers["CANARY"] == 0.9
        assert settings.stage_multipliers["LIVE"] == 1.0
        assert settings.weights == DEFAULT_BPS_SETTINGS.weights

    def test_empty_file_uses_defaults(self, tmp_path):
        (tmp_path / "allocation.yaml").write_text("")
        assert load_config("allocation", tmp_path).to_settings() == DEFAULT_ALLOCATION_SETTINGS

    def test_weights_must_sum_to_one(self, tmp_path):
        (tmp_path / "scoring.yaml").write_text("scoring:\n  weights:\n    sharpe: 0.5\n")
        with pytest.raises(ConfigurationError, match="sum to 1.0") as exc:
            load_config("scoring", tmp_path).to_settings()
        assert exc.value.config_key == "scoring.weights"

    def test_bucket_thresholds_must_descend(self, tmp_path):
        (tmp_path / "scoring.yaml").write_text("scoring:\n  bucket_thresholds:\n    B: 80\n")
        with pytest.raises(ConfigurationError, match="must descend") as exc:
            load_config("scoring", tmp_path).to_settings()
        assert exc.value.config_key == "scoring.bucket_thresholds"

    def test_equal_bucket_thresholds_allowed(self, tmp_path):
        (tmp_path / "scoring.yaml").write_text("scoring:\n  bucket_thresholds:\n    A: 85\n")
        assert load_config("scoring", tmp_path).to_settings().bucket_thresholds["A"] == 85.0

    @pytest.mark.parametrize("key", ["expectancy_target", "dd_cap_pct", "trades_target"])
    @pytest.mark.parametrize("value", [0, -5])
    def test_targets_must_be_positive(self, tmp_path, key, value):
        (tmp_path / "scoring.yaml").write_text(f"scoring:\n  {key}: {value}\n")
        with pytest.raises(ConfigurationError, match="must be positive") as exc:
            load_config("scoring", tmp_path).to_settings()
        assert exc.value.config_key == f"scoring.{key}"

    def test_unknown_entry(self, tmp_path):
        (tmp_path / "allocation.yaml").write_text("allocation:\n  bucket_multipliers:\n    Z: 0.5\n")
        with pytest.raises(ConfigurationError, match="Unknown entry 'Z'"):
            load_config("allocation", tmp_path).to_settings()

    def test_multiplier_out_of_range(self, tmp_path):
        (tmp_path / "allocation.yaml").write_text("allocation:\n  bucket_multipliers:\n    D: 1.5\n")
        with pytest.raises(ConfigurationError):
            load_config("allocation", tmp_path).to_settings()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config("readiness", tmp_path)

    def test_invalid_yaml(self, tmp_path):
        (tmp_path / "readiness.yaml").write_text("readiness: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config("readiness", tmp_path)

    def test_unknown_config_type(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Unknown config type"):
            load_config("metrics", tmp_path)


class TestSettings:
    """Tests for environment settings."""

    def test_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("FLEETGUARD_CONFIG_DIR", str(tmp_path))
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("DRIFT_HISTORY_MAX_PAIRS", "12")

        settings = Settings()

        assert settings.config_dir == tmp_path.resolve()
        assert settings.log_level == "DEBUG"
        assert settings.drift_history_max_pairs == 12

    def test_rejects_non_positive_ttl(self, monkeypatch):
        monkeypatch.setenv("CORRELATION_CACHE_TTL_SECONDS", "0")
        with pytest.raises(ValueError):
            Settings()
