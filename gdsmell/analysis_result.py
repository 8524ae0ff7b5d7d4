"""Result set of one analysis run, with the groupings the reports need."""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .config_manager import AnalysisConfig
from .models import Project
from .smell_detector import Severity, SmellResult

UNKNOWN_FILE = "<project>"


@dataclass(frozen=True)
class DetectorFailure:
    """A detector that raised while evaluating one scope."""

    detector: str
    scope: str
    error: str

    def to_dict(self) -> Dict[str, str]:
        return {"detector": self.detector, "scope": self.scope, "error": self.error}


@dataclass
class AnalysisResult:
    project: Project
    results: List[SmellResult]
    config: AnalysisConfig
    metadata: Dict[str, Any] = field(default_factory=dict)
    failures: List[DetectorFailure] = field(default_factory=list)

    @property
    def detected_smells(self) -> List[SmellResult]:
        return [result for result in self.results if result.detected]

    def by_severity(self, severity: Severity) -> List[SmellResult]:
        return [result for result in self.detected_smells if result.severity is severity]

    def by_type(self) -> Dict[str, List[SmellResult]]:
        grouped: Dict[str, List[SmellResult]] = OrderedDict()
        for result in self.detected_smells:
            grouped.setdefault(result.smell_name, []).append(result)
        return grouped

    def by_file(self) -> Dict[str, List[SmellResult]]:
        """Detected smells keyed by source file; project-wide smells go under ``<project>``."""
        grouped: Dict[str, List[SmellResult]] = OrderedDict()
        for result in self.detected_smells:
            grouped.setdefault(result.location.file or UNKNOWN_FILE, []).append(result)
        return grouped

    def severity_counts(self) -> Dict[str, int]:
        counts = {severity.value: 0 for severity in reversed(Severity)}
        for result in self.detected_smells:
            counts[result.severity.value] += 1
        return counts

    def sorted_by_severity(self) -> List[SmellResult]:
        return sorted(self.detected_smells, key=lambda result: -result.severity_level)

    def summary(self) -> Dict[str, Any]:
        files = [name for name in self.by_file() if name != UNKNOWN_FILE]
        return {
            "project": self.project.name,
            "total_smells": len(self.detected_smells),
            "by_severity": self.severity_counts(),
            "by_type": {name: len(items) for name, items in self.by_type().items()},
            "files_with_smells": len(files),
            "project_stats": self.project.statistics(),
            "analysis_metadata": dict(self.metadata),
            "failures": len(self.failures),
        }

    def to_dict(self, include_details: bool = True) -> Dict[str, Any]:
        return {
            "summary": self.summary(),
            "smells": [result.to_dict(include_details) for result in self.sorted_by_severity()],
            "failures": [failure.to_dict() for failure in self.failures],
            "config": self.config.to_document(),
        }
