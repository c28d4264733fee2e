"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.recommendations import SourceWeights
from .domain.scoring import ScoringWeights, UrgencyMultipliers


class DefaultsConfig(BaseModel):
    """Default settings for searches."""
    search_days: int = 7
    max_search_days: int = 14
    max_options: int = 50
    snapshot_file: Optional[Path] = None

    @field_validator("search_days", "max_search_days", "max_options")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Ensure limits are positive."""
        if value <= 0:
            raise ValueError("search limits must be greater than zero")
        return value

    @model_validator(mode="after")
    def validate_search_window(self) -> "DefaultsConfig":
        """Ensure the default window fits within the maximum window."""
        if self.search_days > self.max_search_days:
            raise ValueError("search_days must not exceed max_search_days")
        return self


class UrgencyConfig(BaseModel):
    """Multipliers applied to the weighted score per urgency level."""
    normal: float = 1.0
    high: float = 1.1
    emergency: float = 1.2

    @field_validator("normal", "high", "emergency")
    @classmethod
    def validate_multiplier(cls, value: float) -> float:
        """Urgency may only raise a score."""
        if value < 1.0:
            raise ValueError(f"Urgency multipliers must be at least 1.0, got {value}")
        return value


class ScoringConfig(BaseModel):
    """Slot scoring weights. Changing them changes rankings; keep them deliberate."""
    experience: float = 0.25
    time_preference: float = 0.20
    sequence: float = 0.20
    room_availability: float = 0.15
    patient_history: float = 0.10
    seasonal: float = 0.10
    urgency: UrgencyConfig = Field(default_factory=UrgencyConfig)

    @field_validator(
        "experience", "time_preference", "sequence",
        "room_availability", "patient_history", "seasonal",
    )
    @classmethod
    def validate_weight(cls, value: float) -> float:
        """Validate weight is between 0 and 1."""
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"Weight must be between 0 and 1, got {value}")
        return value

    @model_validator(mode="after")
    def validate_sum(self) -> "ScoringConfig":
        """Ensure the weights add up to 1.0."""
        total = (
            self.experience + self.time_preference + self.sequence
            + self.room_availability + self.patient_history + self.seasonal
        )
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Scoring weights must sum to 1.0, got {total:.4f}")
        return self

    def to_weights(self) -> ScoringWeights:
        """Get the weights as a domain object."""
        return ScoringWeights(
            experience=self.experience,
            time_preference=self.time_preference,
            sequence=self.sequence,
            room_availability=self.room_availability,
            patient_history=self.patient_history,
            seasonal=self.seasonal,
        )

    def to_urgency_multipliers(self) -> UrgencyMultipliers:
        return UrgencyMultipliers(
            normal=self.urgency.normal,
            high=self.urgency.high,
            emergency=self.urgency.emergency,
        )


class RecommendationWeightsConfig(BaseModel):
    """Weights of the therapy recommendation sources."""
    condition: float = 0.30
    dosha: float = 0.25
    history: float = 0.20
    seasonal: float = 0.15
    sequence: float = 0.10

    @field_validator("condition", "dosha", "history", "seasonal", "sequence")
    @classmethod
    def validate_weight(cls, value: float) -> float:
        if value < 0:
            raise ValueError(f"Weight must not be negative, got {value}")
        return value

    def to_weights(self) -> SourceWeights:
        return SourceWeights(
            condition=self.condition,
            dosha=self.dosha,
            history=self.history,
            seasonal=self.seasonal,
            sequence=self.sequence,
        )


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "Europe/Berlin"
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    recommendation_weights: RecommendationWeightsConfig = Field(
        default_factory=RecommendationWeightsConfig
    )

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of clinicscheduler/)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
