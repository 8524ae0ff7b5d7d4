"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest
import toml

from gdsmell.config_manager import (
    AnalysisConfig,
    ConfigError,
    generate_sample_config,
    load_config,
    normalize_key,
    save_config,
)
from gdsmell.detector_registry import LongMethodDetector, detector_names


class TestAnalysisConfig:
    """Tests for AnalysisConfig validation."""

    def test_defaults(self):
        """The default config enables every detector with no overrides."""
        config = AnalysisConfig()
        assert config.enabled_detectors == detector_names()
        assert config.thresholds == {}
        assert config.output.format == "json"
        assert config.output.include_details is True

    def test_camel_case_keys(self):
        """camelCase detector lists, thresholds and output keys are accepted."""
        config = AnalysisConfig.from_dict({
            "enabledDetectors": ["LongMethod"],
            "thresholds": {"maxLines": 30},
            "output": {"includeDetails": False, "format": "TXT"},
        })
        assert config.enabled_detectors == ["LongMethod"]
        assert config.thresholds == {"max_lines": 30}
        assert config.output.include_details is False
        assert config.output.format == "txt"

    def test_top_level_thresholds(self):
        """Threshold keys at the top level are folded into the thresholds table."""
        config = AnalysisConfig.from_dict({"max_autoloads": 8, "thresholds": {"max_lines": 40}})
        assert config.thresholds == {"max_autoloads": 8, "max_lines": 40}

    def test_thresholds_for_detector(self):
        """Detectors see their own defaults with overrides applied."""
        config = AnalysisConfig.from_dict({"thresholds": {"max_lines": 30, "max_autoloads": 9}})
        assert config.thresholds_for(LongMethodDetector()) == {
            "max_lines": 30,
            "max_complexity": 10,
            "max_yields": 7,
        }

    def test_whole_float_coerced(self):
        """Integer thresholds accept whole floats."""
        config = AnalysisConfig.from_dict({"thresholds": {"max_lines": 30.0}})
        assert config.thresholds["max_lines"] == 30
        assert isinstance(config.thresholds["max_lines"], int)

    def test_duplicates_removed(self):
        """Repeated detector names are kept once."""
        config = AnalysisConfig.from_dict({"enabled_detectors": ["LongMethod", "LongMethod"]})
        assert config.enabled_detectors == ["LongMethod"]

    @pytest.mark.parametrize(
        "document,message",
        [
            ({"enabled_detectors": ["NotADetector"]}, "unknown detector"),
            ({"enabled_detectors": "LongMethod"}, "list of detector names"),
            ({"thresholds": {"max_bananas": 3}}, "unknown threshold"),
            ({"thresholds": {"max_lines": -1}}, "must not be negative"),
            ({"thresholds": {"max_lines": "fifty"}}, "must be a number"),
            ({"thresholds": {"max_lines": 10.5}}, "whole number"),
            ({"thresholds": {"min_similarity": 1.5}}, "within [0, 1]"),
            ({"thresholds": {"require_bidirectional": 1}}, "true or false"),
            ({"output": {"format": "pdf"}}, "unsupported output format"),
            ({"surprise": True}, "surprise"),
        ],
    )
    def test_rejections(self, document, message):
        """Invalid documents raise ConfigError naming the problem."""
        with pytest.raises(ConfigError) as exc_info:
            AnalysisConfig.from_dict(document)
        assert message in str(exc_info.value)

    def test_frozen(self):
        """Configs are immutable once built."""
        config = AnalysisConfig()
        with pytest.raises(Exception):
            config.thresholds = {}

    def test_normalize_key(self):
        """camelCase converts to snake_case."""
        assert normalize_key("maxLines") == "max_lines"
        assert normalize_key("godAutoloadLoc") == "god_autoload_loc"
        assert normalize_key("max_lines") == "max_lines"


class TestConfigFiles:
    """Tests for TOML load and save."""

    def test_load(self, temp_dir: Path):
        """A TOML file loads into a validated config."""
        path = temp_dir / "gdsmell.toml"
        path.write_text('enabled_detectors = ["LongMethod"]\n\n[thresholds]\nmax_lines = 25\n')
        config = load_config(path)
        assert config.enabled_detectors == ["LongMethod"]
        assert config.thresholds == {"max_lines": 25}

    def test_missing_file(self, temp_dir: Path):
        """Missing files raise ConfigError."""
        with pytest.raises(ConfigError, match="not found"):
            load_config(temp_dir / "missing.toml")

    @pytest.mark.parametrize(
        "text",
        [
            "enabled_detectors = [\n",
            'enabled_detectors = ["LongMethod",\n',
            "[thresholds\nmax_lines = 3\n",
            "max_lines = = 3\n",
        ],
    )
    def test_malformed_toml(self, temp_dir: Path, text: str):
        """Unparseable TOML raises ConfigError instead of loading partial data."""
        path = temp_dir / "bad.toml"
        path.write_text(text)
        with pytest.raises(ConfigError, match="Malformed TOML"):
            load_config(path)

    def test_invalid_utf8(self, temp_dir: Path):
        """Undecodable bytes are reported as malformed."""
        path = temp_dir / "binary.toml"
        path.write_bytes(b'enabled_detectors = ["\xff"]\n')
        with pytest.raises(ConfigError, match="Malformed TOML"):
            load_config(path)

    def test_save_round_trip(self, temp_dir: Path):
        """Saved configs load back equal."""
        config = AnalysisConfig.from_dict({"enabled_detectors": ["LargeClass"], "thresholds": {"max_fields": 12}})
        path = save_config(config, temp_dir / "nested" / "gdsmell.toml")
        loaded = load_config(path)
        assert loaded.enabled_detectors == ["LargeClass"]
        assert loaded.effective_thresholds()["max_fields"] == 12

    def test_sample_config_lists_everything(self, temp_dir: Path):
        """The sample config spells out every detector and threshold."""
        path = generate_sample_config(temp_dir / "sample.toml")
        data = toml.loads(path.read_text())
        assert data["enabled_detectors"] == detector_names()
        assert data["thresholds"]["max_lines"] == 50
        assert data["output"]["format"] == "json"
