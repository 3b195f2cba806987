"""
Application settings management.

Settings are loaded from environment variables with .env file support.
Detection and extraction tuning lives in config/detection_config.yaml.
All configuration is validated using Pydantic.
"""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment.

    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # ==========================================================================
    # Paths
    # ==========================================================================

    config_dir: Path = Field(
        default=Path("config"),
        description="Directory containing YAML configuration files",
    )
    data_dir: Path = Field(
        default=Path("data"), description="Directory for database and other data files"
    )
    log_dir: Path = Field(default=Path("logs"), description="Directory for log files")

    # ==========================================================================
    # Database
    # ==========================================================================

    database_path: Path = Field(
        default=Path("data/synapse.db"), description="Path to SQLite database file"
    )

    # ==========================================================================
    # Logging
    # ==========================================================================

    log_sessions_to_keep: int = Field(
        default=5, ge=1, le=100, description="Number of run log files to retain"
    )
    debug: bool = Field(default=False, description="Enable debug mode")


# ============================================================================
# Detection Configuration (from YAML)
# ============================================================================


class RecorderConfig(BaseModel):
    """Interaction recorder configuration."""

    capacity: int = Field(
        default=1000, ge=1, le=100_000, description="Maximum retained events (FIFO)"
    )
    window_ms: int = Field(
        default=30_000, ge=1000, description="Trailing analysis window in milliseconds"
    )


class ClassifierConfig(BaseModel):
    """State classifier configuration."""

    full_confidence_interactions: int = Field(
        default=50,
        ge=1,
        description="Interaction count at which data adequacy saturates",
    )
    history_size: int = Field(
        default=100, ge=1, description="Rolling state history kept per session"
    )


class ExtractionConfig(BaseModel):
    """Concept extraction configuration."""

    top_k: int = Field(default=50, ge=1, le=500, description="Concepts kept per text")
    min_sentence_length: int = Field(
        default=10, ge=1, description="Shorter sentence fragments are discarded"
    )
    max_phrase_tokens: int = Field(
        default=3, ge=1, le=10, description="Token cap for non-stopword runs"
    )


class RelatednessConfig(BaseModel):
    """Relatedness scoring and edge-creation configuration."""

    max_distance: int = Field(
        default=20, ge=1, description="Token distance at which the score floors"
    )
    decay: float = Field(default=0.2, gt=0.0, description="Exponential decay rate")
    floor: float = Field(default=0.1, ge=0.0, le=1.0, description="Minimum score")
    edge_threshold: float = Field(
        default=0.3, ge=0.0, le=1.0, description="Score above which an edge is created"
    )

    @field_validator("floor")
    @classmethod
    def floor_below_one(cls, v: float) -> float:
        """A floor of 1.0 would make every co-present pair maximally related."""
        if v >= 1.0:
            raise ValueError("floor must be below 1.0")
        return v


class DetectionConfig(BaseModel):
    """
    Complete detection configuration loaded from detection_config.yaml.

    Holds the tunable constants of both pipelines. The classifier's
    threshold predicates are fixed heuristics and live in code.
    """

    recorder: RecorderConfig = Field(default_factory=RecorderConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    relatedness: RelatednessConfig = Field(default_factory=RelatednessConfig)


def load_detection_config(config_path: Optional[Path] = None) -> DetectionConfig:
    """
    Load detection configuration from YAML file.

    Args:
        config_path: Path to detection_config.yaml. If None, uses default path.

    Returns:
        DetectionConfig with validated settings

    Raises:
        ValueError: If config validation fails
    """
    if config_path is None:
        # Default path: config/detection_config.yaml relative to project root
        current = Path(__file__).resolve().parent.parent.parent
        check_path = current / "config" / "detection_config.yaml"
        if check_path.exists():
            config_path = check_path
        else:
            # Fallback to current working directory
            cwd_config = Path.cwd() / "config" / "detection_config.yaml"
            if cwd_config.exists():
                config_path = cwd_config
            else:
                return DetectionConfig()

    config_path = Path(config_path).resolve()

    if not config_path.exists():
        # Return default config if file not found
        return DetectionConfig()

    with open(str(config_path)) as f:
        config_data = yaml.safe_load(f)

    if not config_data:
        return DetectionConfig()

    return DetectionConfig(**config_data)


# Global settings instance
settings = Settings()

# Global detection config instance
detection_config = load_detection_config()
