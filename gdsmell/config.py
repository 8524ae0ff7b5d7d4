"""Static settings: file types, skipped directories and default locations."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Set, Tuple

DEFAULT_OUTPUT_DIR = Path(os.environ.get("GDSMELL_OUTPUT_DIR", "./analysis-results")).expanduser()
DEFAULT_CONFIG_FILE = "gdsmell.toml"
PROJECT_FILE = "project.godot"

SUPPORTED_EXTENSIONS: Set[str] = {".gd"}
SCENE_EXTENSIONS: Set[str] = {".tscn"}
OUTPUT_FORMATS: Tuple[str, ...] = ("json", "txt", "html")
DEFAULT_OUTPUT_FORMAT = "json"

SKIP_DIRS: Set[str] = {
    ".godot", ".import", ".git", ".mono", "addons",
    "android", "build", "export", "node_modules",
}

RESOURCE_PREFIX = "res://"
