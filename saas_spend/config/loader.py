"""
Configuration management and loading.

Handles the thresholds and heuristic constants used by the analyses.
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Type, TypeVar

import yaml

T = TypeVar("T")


@dataclass(frozen=True)
class UtilizationConfig:
    """Window used when scoring license utilization."""
    window_days: int = 30
    max_records: int = 30

    def __post_init__(self):
        """Validate window values are positive."""
        if self.window_days <= 0:
            raise ValueError("window_days must be > 0")
        if self.max_records <= 0:
            raise ValueError("max_records must be > 0")


@dataclass(frozen=True)
class ThresholdConfig:
    """Rule thresholds for savings opportunities."""
    unused_rate: float = 10.0
    underutilized_rate: float = 50.0
    duplicate_min_cost: float = 10000.0
    high_priority_savings: float = 5000.0
    medium_priority_savings: float = 1000.0

    def __post_init__(self):
        """Validate thresholds are ordered and within range."""
        if not 0 <= self.unused_rate <= 100:
            raise ValueError("unused_rate must be between 0 and 100")
        if not 0 <= self.underutilized_rate <= 100:
            raise ValueError("underutilized_rate must be between 0 and 100")
        if self.unused_rate >= self.underutilized_rate:
            raise ValueError("unused_rate must be below underutilized_rate")
        if self.duplicate_min_cost < 0:
            raise ValueError("duplicate_min_cost cannot be negative")
        if self.medium_priority_savings > self.high_priority_savings:
            raise ValueError("medium_priority_savings cannot exceed high_priority_savings")


@dataclass(frozen=True)
class HeuristicConfig:
    """Fixed savings estimates and confidence scores.

    These are rules of thumb, not measurements: 70% of idle seats on an
    underutilized license are assumed releasable and consolidating
    overlapping tools is assumed to save 30% of their combined cost.
    """
    underutilized_reduction: float = 0.7
    duplicate_overlap: float = 0.3
    unused_confidence: int = 85
    underutilized_confidence: int = 70
    duplicate_confidence: int = 60

    def __post_init__(self):
        """Validate fractions and confidence scores."""
        if not 0 <= self.underutilized_reduction <= 1:
            raise ValueError("underutilized_reduction must be between 0 and 1")
        if not 0 <= self.duplicate_overlap <= 1:
            raise ValueError("duplicate_overlap must be between 0 and 1")
        for name in ("unused_confidence", "underutilized_confidence", "duplicate_confidence"):
            if not 0 <= getattr(self, name) <= 100:
                raise ValueError(f"{name} must be between 0 and 100")


@dataclass(frozen=True)
class ForecastConfig:
    """Forecast history requirements, growth flags and confidence bounds."""
    lookback_months: int = 12
    min_history_months: int = 3
    high_growth_rate: float = 5.0
    decline_rate: float = -2.0
    max_confidence: float = 90.0
    min_confidence: float = 20.0
    variance_penalty: float = 2.0

    def __post_init__(self):
        """Validate history lengths and confidence bounds."""
        if self.min_history_months < 2:
            raise ValueError("min_history_months must be >= 2")
        if self.lookback_months < self.min_history_months:
            raise ValueError("lookback_months must be >= min_history_months")
        if self.decline_rate >= self.high_growth_rate:
            raise ValueError("decline_rate must be below high_growth_rate")
        if not 0 <= self.min_confidence <= self.max_confidence <= 100:
            raise ValueError("confidence bounds must satisfy 0 <= min <= max <= 100")
        if self.variance_penalty < 0:
            raise ValueError("variance_penalty cannot be negative")


@dataclass(frozen=True)
class AnalysisConfig:
    """Complete analysis configuration."""
    utilization: UtilizationConfig = field(default_factory=UtilizationConfig)
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    heuristics: HeuristicConfig = field(default_factory=HeuristicConfig)
    forecast: ForecastConfig = field(default_factory=ForecastConfig)


DEFAULT_CONFIG = AnalysisConfig()

_SECTIONS: Dict[str, type] = {
    "utilization": UtilizationConfig,
    "thresholds": ThresholdConfig,
    "heuristics": HeuristicConfig,
    "forecast": ForecastConfig,
}


def load_analysis_config(path: str) -> AnalysisConfig:
    """Load and validate analysis configuration from YAML file.

    Every section is optional and missing keys fall back to the defaults,
    but unknown keys and wrongly typed values are rejected so a typo never
    silently changes a threshold.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated AnalysisConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Analysis config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    unknown_keys = set(raw_config.keys()) - set(_SECTIONS)
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    sections = {
        name: _parse_section(raw_config[name], section_type, name)
        for name, section_type in _SECTIONS.items()
        if name in raw_config
    }
    return AnalysisConfig(**sections)


def _parse_section(data: Any, section_type: Type[T], path: str) -> T:
    """Parse and validate one configuration section.

    Args:
        data: Raw section data
        section_type: Dataclass describing the section
        path: Section name for error messages

    Returns:
        Validated section dataclass

    Raises:
        ValueError: If the section is invalid
    """
    if not isinstance(data, dict):
        raise ValueError(f"'{path}' must be a dictionary")

    field_types = {f.name: f.type for f in fields(section_type)}
    unknown_keys = set(data.keys()) - set(field_types)
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")

    values = {}
    for key, value in data.items():
        expected = field_types[key]
        # bool is an int subclass but never a valid threshold
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"'{key}' in {path} must be a number")
        if expected in (int, "int"):
            if not isinstance(value, int):
                raise ValueError(f"'{key}' in {path} must be an integer")
            values[key] = value
        else:
            values[key] = float(value)

    return section_type(**values)
