"""
Tests for YAML configuration loading.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from clinicscheduler.config import AppConfig, ScoringConfig
from clinicscheduler.domain.scoring import ScoringWeights, UrgencyMultipliers


def test_defaults_match_domain_defaults():
    config = AppConfig()

    assert config.scoring.to_weights() == ScoringWeights()
    assert config.scoring.to_urgency_multipliers() == UrgencyMultipliers()
    assert config.defaults.search_days == 7
    assert config.timezone == "Europe/Berlin"


def test_load_from_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "timezone: Asia/Kolkata\n"
        "defaults:\n"
        "  search_days: 3\n"
        "  snapshot_file: clinic.json\n"
        "scoring:\n"
        "  experience: 0.30\n"
        "  time_preference: 0.15\n"
        "  urgency:\n"
        "    emergency: 1.5\n",
        encoding="utf-8",
    )

    config = AppConfig.load_from_yaml(path)

    assert config.timezone == "Asia/Kolkata"
    assert config.defaults.search_days == 3
    assert config.defaults.snapshot_file.name == "clinic.json"
    assert config.scoring.to_weights().experience == 0.30
    assert config.scoring.to_urgency_multipliers().emergency == 1.5


def test_empty_yaml_uses_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("", encoding="utf-8")

    assert AppConfig.load_from_yaml(path) == AppConfig()


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        AppConfig.load_from_yaml(tmp_path / "config.yaml")


def test_invalid_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("scoring: [unclosed", encoding="utf-8")

    with pytest.raises(ValueError):
        AppConfig.load_from_yaml(path)


def test_root_must_be_mapping(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ValueError):
        AppConfig.load_from_yaml(path)


class TestValidation:

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValidationError):
            ScoringConfig(experience=0.5)

    def test_weight_out_of_range(self):
        with pytest.raises(ValidationError):
            ScoringConfig(experience=1.5, time_preference=-0.7)

    def test_urgency_cannot_lower_scores(self):
        with pytest.raises(ValidationError):
            AppConfig(scoring={"urgency": {"high": 0.9}})

    def test_unknown_timezone(self):
        with pytest.raises(ValidationError):
            AppConfig(timezone="Mars/Olympus_Mons")

    def test_search_days_within_maximum(self):
        with pytest.raises(ValidationError):
            AppConfig(defaults={"search_days": 20, "max_search_days": 14})

    def test_limits_positive(self):
        with pytest.raises(ValidationError):
            AppConfig(defaults={"max_options": 0})


def test_example_config_is_valid():
    path = Path(__file__).parent.parent / "config.example.yaml"

    config = AppConfig.load_from_yaml(path)

    assert config.scoring.to_weights() == ScoringWeights()
    assert config.defaults.snapshot_file.name == "clinic_snapshot.example.json"
