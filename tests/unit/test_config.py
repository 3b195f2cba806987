"""Tests for configuration module."""

import os

import pytest


def test_settings_defaults():
    """Settings have sensible defaults."""
    from synapse.core.config import Settings

    s = Settings()

    assert s.database_path.name == "synapse.db"
    assert s.log_sessions_to_keep == 5


def test_settings_from_env():
    """Settings can be overridden via environment variables."""
    os.environ["DEBUG"] = "true"
    os.environ["LOG_SESSIONS_TO_KEEP"] = "12"

    try:
        from synapse.core.config import Settings

        s = Settings()

        assert s.debug
        assert s.log_sessions_to_keep == 12
    finally:
        del os.environ["DEBUG"]
        del os.environ["LOG_SESSIONS_TO_KEEP"]


def test_settings_validation():
    """Settings validate constraints."""
    from pydantic import ValidationError

    from synapse.core.config import Settings

    with pytest.raises(ValidationError):
        Settings(log_sessions_to_keep=0)


def test_global_settings_available():
    """Global settings instance is importable."""
    from synapse.core.config import settings

    assert settings is not None
    assert hasattr(settings, "database_path")


class TestDetectionConfig:
    """Tests for the YAML-backed detection configuration."""

    def test_defaults_match_documented_constants(self):
        """Default config carries the documented pipeline constants."""
        from synapse.core.config import DetectionConfig

        config = DetectionConfig()

        assert config.recorder.capacity == 1000
        assert config.recorder.window_ms == 30_000
        assert config.classifier.full_confidence_interactions == 50
        assert config.extraction.top_k == 50
        assert config.extraction.min_sentence_length == 10
        assert config.relatedness.max_distance == 20
        assert config.relatedness.decay == pytest.approx(0.2)
        assert config.relatedness.floor == pytest.approx(0.1)
        assert config.relatedness.edge_threshold == pytest.approx(0.3)

    def test_repo_yaml_loads(self):
        """The shipped detection_config.yaml validates."""
        from synapse.core.config import detection_config

        assert detection_config.recorder.capacity == 1000
        assert detection_config.relatedness.edge_threshold == pytest.approx(0.3)

    def test_load_from_custom_path(self, tmp_path):
        """Sections present in the file override defaults; others keep defaults."""
        from synapse.core.config import load_detection_config

        path = tmp_path / "detection.yaml"
        path.write_text("recorder:\n  capacity: 50\nrelatedness:\n  edge_threshold: 0.5\n")

        config = load_detection_config(path)

        assert config.recorder.capacity == 50
        assert config.relatedness.edge_threshold == pytest.approx(0.5)
        assert config.extraction.top_k == 50

    def test_missing_file_returns_defaults(self, tmp_path):
        from synapse.core.config import DetectionConfig, load_detection_config

        assert load_detection_config(tmp_path / "nope.yaml") == DetectionConfig()

    def test_empty_file_returns_defaults(self, tmp_path):
        from synapse.core.config import DetectionConfig, load_detection_config

        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_detection_config(path) == DetectionConfig()

    def test_floor_of_one_rejected(self):
        """A relatedness floor of 1.0 is invalid."""
        from pydantic import ValidationError

        from synapse.core.config import RelatednessConfig

        with pytest.raises(ValidationError):
            RelatednessConfig(floor=1.0)

    def test_capacity_must_be_positive(self):
        from pydantic import ValidationError

        from synapse.core.config import RecorderConfig

        with pytest.raises(ValidationError):
            RecorderConfig(capacity=0)
