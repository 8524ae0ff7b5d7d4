"""Analysis orchestrator: runs the detector catalog over a built code model."""

from __future__ import annotations

import logging
import time
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .analysis_result import AnalysisResult, DetectorFailure
from .config_manager import AnalysisConfig
from .detector_registry import create_detectors
from .models import Project
from .parser import GDScriptParser
from .smell_detector import ClassScope, MethodScope, ProjectScope, Scope, SmellDetector, SmellResult

logger = logging.getLogger(__name__)


class AnalysisState(Enum):
    IDLE = "idle"
    CONFIG_LOADED = "config_loaded"
    MODEL_BUILT = "model_built"
    METHODS_SCANNED = "methods_scanned"
    CLASSES_SCANNED = "classes_scanned"
    PROJECT_SCANNED = "project_scanned"
    AGGREGATED = "aggregated"
    DONE = "done"


class SmellOrchestrator:
    """Dispatches every enabled detector over method, class and project scopes.

    A detector that raises is logged and recorded as a
    :class:`~gdsmell.analysis_result.DetectorFailure`; the run carries on
    with the next detector.  Given the same model and configuration the
    result list is identical from run to run.
    """

    def __init__(
        self,
        config: Optional[AnalysisConfig] = None,
        detectors: Optional[Sequence[SmellDetector]] = None,
    ) -> None:
        self.state = AnalysisState.IDLE
        self.config = config or AnalysisConfig()
        if detectors is None:
            self.detectors: List[SmellDetector] = create_detectors(self.config.enabled_detectors)
        else:
            self.detectors = list(detectors)
        self._thresholds: Dict[str, Dict[str, Any]] = {
            detector.name: self.config.thresholds_for(detector) for detector in self.detectors
        }
        self._advance(AnalysisState.CONFIG_LOADED)

    def _advance(self, state: AnalysisState) -> None:
        logger.debug("Analysis state %s -> %s", self.state.value, state.value)
        self.state = state

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def run(self, project_root: Path) -> AnalysisResult:
        """Parse the Godot project at *project_root* and analyze it."""
        started = time.perf_counter()
        parser = GDScriptParser(Path(project_root))
        project = parser.parse_project()
        logger.info(
            "Parsed %d classes from %d scripts in %s",
            len(project.classes), parser.files_parsed, project_root,
        )
        metadata = {
            "project_path": str(project_root),
            "files_analyzed": parser.files_parsed,
            "files_skipped": parser.files_skipped,
            "classes_analyzed": len(project.classes),
            "methods_analyzed": project.method_count,
        }
        result = self.analyze(project, metadata=metadata)
        result.metadata["duration_seconds"] = round(time.perf_counter() - started, 3)
        return result

    def analyze(self, project: Project, metadata: Optional[Dict[str, Any]] = None) -> AnalysisResult:
        """Run every enabled detector against an already built *project*."""
        self.state = AnalysisState.CONFIG_LOADED
        self._advance(AnalysisState.MODEL_BUILT)
        results: List[SmellResult] = []
        failures: List[DetectorFailure] = []

        for klass in project.classes:
            for method in klass.methods:
                self._dispatch(MethodScope(method, klass, klass.file_path), results, failures)
        self._advance(AnalysisState.METHODS_SCANNED)

        for klass in project.classes:
            self._dispatch(ClassScope(klass, project, klass.file_path), results, failures)
        self._advance(AnalysisState.CLASSES_SCANNED)

        self._dispatch(ProjectScope(project), results, failures)
        self._advance(AnalysisState.PROJECT_SCANNED)

        result = AnalysisResult(
            project=project,
            results=results,
            config=self.config,
            metadata=dict(metadata or {}),
            failures=failures,
        )
        result.metadata.setdefault("detectors_run", [detector.name for detector in self.detectors])
        self._advance(AnalysisState.AGGREGATED)
        logger.info(
            "Analysis finished: %d smells detected, %d detector failures",
            len(result.detected_smells), len(failures),
        )
        self._advance(AnalysisState.DONE)
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _dispatch(
        self,
        scope: Scope,
        results: List[SmellResult],
        failures: List[DetectorFailure],
    ) -> None:
        for detector in self.detectors:
            if not detector.supports(scope.kind):
                continue
            try:
                outcome = detector.detect(scope, self._thresholds.get(detector.name, {}))
            except Exception as exc:
                logger.warning("Detector %s failed on %s: %s", detector.name, scope.describe(), exc)
                failures.append(DetectorFailure(detector.name, scope.describe(), str(exc)))
                continue
            if outcome is not None:
                results.append(outcome)
