"""Analysis configuration loaded from TOML and validated with pydantic.

A configuration file looks like::

    enabled_detectors = ["LongMethod", "LargeClass"]

    [thresholds]
    max_lines = 40

    [output]
    format = "json"
    directory = "./analysis-results"
    include_details = true

Every section is optional.  camelCase keys (``enabledDetectors``,
``maxLines``, ``includeDetails``) are accepted as well, and thresholds may
also be written at the top level of the document.
"""

from __future__ import annotations

import re
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import toml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import DEFAULT_OUTPUT_DIR, DEFAULT_OUTPUT_FORMAT, OUTPUT_FORMATS
from .detector_registry import default_thresholds, detector_names, ratio_thresholds
from .smell_detector import SmellDetector

ThresholdValue = Union[bool, int, float]

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


class ConfigError(ValueError):
    """Raised for configuration that cannot be loaded or does not validate."""


def normalize_key(key: str) -> str:
    """``maxLOC`` -> ``max_loc``; snake_case keys pass through unchanged."""
    return _CAMEL_BOUNDARY.sub(r"_\1", key).lower()


def check_threshold(key: str, value: Any) -> ThresholdValue:
    """Validate one threshold override against the type and range of its default."""
    defaults = default_thresholds()
    if key not in defaults:
        raise ValueError(f"unknown threshold '{key}'")
    default = defaults[key]
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ValueError(f"threshold '{key}' must be true or false")
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"threshold '{key}' must be a number, got {value!r}")
    if value < 0:
        raise ValueError(f"threshold '{key}' must not be negative, got {value}")
    if key in ratio_thresholds() and value > 1:
        raise ValueError(f"threshold '{key}' is a ratio and must lie within [0, 1], got {value}")
    if isinstance(default, int) and isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"threshold '{key}' must be a whole number, got {value}")
        return int(value)
    return value


class OutputSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    format: str = DEFAULT_OUTPUT_FORMAT
    directory: str = str(DEFAULT_OUTPUT_DIR)
    include_details: bool = Field(default=True, alias="includeDetails")
    group_by_severity: bool = Field(default=False, alias="groupBySeverity")

    @field_validator("format", mode="before")
    @classmethod
    def _check_format(cls, value: Any) -> str:
        fmt = str(value).strip().lower()
        if fmt not in OUTPUT_FORMATS:
            raise ValueError(
                f"unsupported output format '{value}' (expected one of: {', '.join(OUTPUT_FORMATS)})"
            )
        return fmt


class AnalysisConfig(BaseModel):
    """Validated analysis settings: enabled detectors, threshold overrides, output."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    enabled_detectors: List[str] = Field(default_factory=detector_names, alias="enabledDetectors")
    thresholds: Dict[str, ThresholdValue] = Field(default_factory=dict)
    output: OutputSettings = Field(default_factory=OutputSettings)

    @field_validator("enabled_detectors", mode="before")
    @classmethod
    def _check_detectors(cls, value: Any) -> List[str]:
        if value is None:
            return detector_names()
        if isinstance(value, str) or not isinstance(value, (list, tuple)):
            raise ValueError("enabled_detectors must be a list of detector names")
        known = set(detector_names())
        ordered: List[str] = []
        for name in value:
            if name not in known:
                raise ValueError(f"unknown detector '{name}'")
            if name not in ordered:
                ordered.append(name)
        return ordered

    @field_validator("thresholds", mode="before")
    @classmethod
    def _check_thresholds(cls, value: Any) -> Dict[str, ThresholdValue]:
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            raise ValueError("thresholds must be a table of name = value pairs")
        return {
            normalize_key(str(key)): check_threshold(normalize_key(str(key)), raw)
            for key, raw in value.items()
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]] = None) -> "AnalysisConfig":
        """Build a config from a parsed document, raising :class:`ConfigError` on bad input."""
        document = dict(data or {})
        known = default_thresholds()
        thresholds = dict(document.pop("thresholds", None) or {})
        for key in list(document):
            if normalize_key(key) in known:
                thresholds[key] = document.pop(key)
        if thresholds:
            document["thresholds"] = thresholds
        try:
            return cls.model_validate(document)
        except ValidationError as exc:
            raise ConfigError(_describe(exc)) from exc

    def effective_thresholds(self) -> Dict[str, ThresholdValue]:
        merged = default_thresholds()
        merged.update(self.thresholds)
        return merged

    def thresholds_for(self, detector: SmellDetector) -> Dict[str, Any]:
        return {key: self.thresholds.get(key, default) for key, default in detector.defaults.items()}

    def to_document(self) -> Dict[str, Any]:
        """Plain dict in the on-disk layout, with every threshold spelled out."""
        return {
            "enabled_detectors": list(self.enabled_detectors),
            "thresholds": self.effective_thresholds(),
            "output": self.output.model_dump(),
        }


def _describe(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        where = ".".join(str(part) for part in error.get("loc", ()))
        message = str(error.get("msg", "invalid value")).removeprefix("Value error, ")
        problems.append(f"{where}: {message}" if where else message)
    return "Invalid configuration: " + "; ".join(problems)


def load_config(path: Union[str, Path]) -> AnalysisConfig:
    """Load and validate the TOML configuration at *path*.

    Reading uses the strict TOML 1.0 parser from the standard library;
    ``toml`` is only used to write files.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")
    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Malformed TOML in {config_path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read configuration {config_path}: {exc}") from exc
    return AnalysisConfig.from_dict(data)


def save_config(config: AnalysisConfig, path: Union[str, Path]) -> Path:
    """Write *config* to *path* as TOML, creating parent directories."""
    config_path = Path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        toml.dump(config.to_document(), f)
    return config_path


def generate_sample_config(path: Union[str, Path]) -> Path:
    """Write the default configuration, every detector and threshold included."""
    return save_config(AnalysisConfig(), path)
