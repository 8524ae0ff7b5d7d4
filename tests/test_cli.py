"""Integration tests for CLI commands."""

from pathlib import Path

import toml
from typer.testing import CliRunner

from gdsmell import __version__
from gdsmell.cli import app


runner = CliRunner()


def _run_dirs(output: Path):
    return [p for p in output.iterdir() if p.is_dir()]


class TestAnalyzeCommand:
    """Tests for 'gdsmell analyze'."""

    def test_analyze_project(self, sample_project_path: Path, temp_dir: Path):
        """Analyzing the sample project writes a JSON report."""
        result = runner.invoke(app, ["analyze", str(sample_project_path), "--output", str(temp_dir)])

        assert result.exit_code == 0
        assert "Analysis complete" in result.stdout
        assert "Report saved" in result.stdout
        assert "Sample Arena" in result.stdout

        run_dirs = _run_dirs(temp_dir)
        assert len(run_dirs) == 1
        assert (run_dirs[0] / "summary.json").exists()

    def test_analyze_nonexistent_path(self, temp_dir: Path):
        """A missing project path exits with an error."""
        result = runner.invoke(app, ["analyze", str(temp_dir / "missing")])

        assert result.exit_code == 1
        assert "not found" in result.stdout

    def test_analyze_text_format(self, sample_project_path: Path, temp_dir: Path):
        """--format txt writes a single text report."""
        result = runner.invoke(
            app, ["analyze", str(sample_project_path), "--output", str(temp_dir), "--format", "txt"]
        )

        assert result.exit_code == 0
        assert (_run_dirs(temp_dir)[0] / "report.txt").exists()

    def test_analyze_html_format(self, sample_project_path: Path, temp_dir: Path):
        """--format html writes a standalone page."""
        result = runner.invoke(
            app, ["analyze", str(sample_project_path), "--output", str(temp_dir), "-f", "html"]
        )

        assert result.exit_code == 0
        assert (_run_dirs(temp_dir)[0] / "report.html").exists()

    def test_analyze_unsupported_format(self, sample_project_path: Path, temp_dir: Path):
        """Unknown formats are rejected before analysis."""
        result = runner.invoke(
            app, ["analyze", str(sample_project_path), "--output", str(temp_dir), "--format", "pdf"]
        )

        assert result.exit_code == 1
        assert "Unsupported output format" in result.stdout
        assert _run_dirs(temp_dir) == []

    def test_analyze_invalid_config(self, sample_project_path: Path, temp_dir: Path):
        """A config naming an unknown detector stops the run."""
        config_path = temp_dir / "bad.toml"
        config_path.write_text('enabled_detectors = ["NotADetector"]\n')

        result = runner.invoke(
            app, ["analyze", str(sample_project_path), "--config", str(config_path), "-o", str(temp_dir)]
        )

        assert result.exit_code == 1
        assert "Invalid configuration" in result.stdout

    def test_analyze_malformed_config(self, sample_project_path: Path, temp_dir: Path):
        """A config file that is not valid TOML stops the run with exit code 1."""
        config_path = temp_dir / "broken.toml"
        config_path.write_text("enabled_detectors = [\n")

        result = runner.invoke(
            app, ["analyze", str(sample_project_path), "--config", str(config_path), "-o", str(temp_dir)]
        )

        assert result.exit_code == 1
        assert "Malformed TOML" in result.stdout
        assert _run_dirs(temp_dir) == []

    def test_analyze_with_config(self, sample_project_path: Path, temp_dir: Path):
        """Only the configured detectors run."""
        config_path = temp_dir / "only_long.toml"
        config_path.write_text('enabled_detectors = ["LongMethod"]\n')
        output = temp_dir / "out"

        result = runner.invoke(
            app, ["analyze", str(sample_project_path), "-c", str(config_path), "-o", str(output)]
        )

        assert result.exit_code == 0
        assert "Analysis complete: 0 smells detected." in result.stdout


class TestGenerateConfigCommand:
    """Tests for 'gdsmell generate-config'."""

    def test_generate_config(self, temp_dir: Path):
        """A sample config is written with every detector listed."""
        path = temp_dir / "gdsmell.toml"
        result = runner.invoke(app, ["generate-config", str(path)])

        assert result.exit_code == 0
        data = toml.loads(path.read_text())
        assert "LongMethod" in data["enabled_detectors"]

    def test_refuses_overwrite(self, temp_dir: Path):
        """An existing file is kept unless --force is passed."""
        path = temp_dir / "gdsmell.toml"
        path.write_text("# mine\n")

        result = runner.invoke(app, ["generate-config", str(path)])
        assert result.exit_code == 1
        assert path.read_text() == "# mine\n"

        result = runner.invoke(app, ["generate-config", str(path), "--force"])
        assert result.exit_code == 0
        assert "enabled_detectors" in path.read_text()


def test_list_detectors():
    """The detector catalog is printed."""
    result = runner.invoke(app, ["list-detectors"])

    assert result.exit_code == 0
    assert "LongMethod" in result.stdout
    assert "GlobalState" in result.stdout


def test_version():
    """--version prints the package version."""
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert f"gdsmell v{__version__}" in result.stdout
