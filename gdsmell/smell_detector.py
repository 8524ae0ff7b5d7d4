"""Detector framework: severities, locations, scopes and the detector base class."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from enum import Enum
from functools import total_ordering
from typing import Any, ClassVar, Dict, FrozenSet, Mapping, Optional, Sequence, Tuple, Union

from .models import Class, Method, Project


@total_ordering
class Severity(Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @property
    def level(self) -> int:
        return list(Severity).index(self) + 1

    def __lt__(self, other: "Severity") -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.level < other.level


@dataclass(frozen=True)
class Location:
    file: Optional[str] = None
    class_name: Optional[str] = None
    method: Optional[str] = None
    project: Optional[str] = None
    parent: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        data = {
            "file": self.file,
            "class": self.class_name,
            "method": self.method,
            "project": self.project,
            "parent": self.parent,
        }
        return {key: value for key, value in data.items() if value is not None}

    def describe(self) -> str:
        if self.class_name and self.method:
            return f"{self.class_name}::{self.method}"
        if self.class_name:
            return self.class_name
        return self.project or self.file or "<project>"


@dataclass(frozen=True)
class SmellDetails:
    """Base for the per-detector details records."""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SmellResult:
    smell_name: str
    detected: bool
    severity: Optional[Severity]
    location: Location
    details: SmellDetails

    def __post_init__(self) -> None:
        if self.detected and self.severity is None:
            raise ValueError(f"{self.smell_name}: a detected smell needs a severity")
        if not self.detected and self.severity is not None:
            raise ValueError(f"{self.smell_name}: severity is only set on detected smells")

    @property
    def severity_level(self) -> int:
        return self.severity.level if self.severity is not None else 0

    def to_dict(self, include_details: bool = True) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "smell": self.smell_name,
            "detected": self.detected,
            "severity": self.severity.value if self.severity else None,
            "location": self.location.to_dict(),
        }
        if include_details:
            data["details"] = self.details.to_dict()
        return data


# ---------------------------------------------------------------------------
# Scopes
# ---------------------------------------------------------------------------

class ScopeKind(Enum):
    METHOD = "method"
    CLASS = "class"
    PROJECT = "project"


@dataclass(frozen=True)
class MethodScope:
    method: Method
    owner: Class
    file_path: Optional[str] = None

    kind: ClassVar[ScopeKind] = ScopeKind.METHOD

    def location(self) -> Location:
        return Location(
            file=self.file_path or self.owner.file_path,
            class_name=self.owner.name.value,
            method=self.method.name.value,
        )

    def describe(self) -> str:
        return f"method {self.owner.name}.{self.method.name}"


@dataclass(frozen=True)
class ClassScope:
    cls: Class
    project: Project
    file_path: Optional[str] = None

    kind: ClassVar[ScopeKind] = ScopeKind.CLASS

    def location(self, parent: Optional[str] = None) -> Location:
        return Location(
            file=self.file_path or self.cls.file_path,
            class_name=self.cls.name.value,
            parent=parent,
        )

    def describe(self) -> str:
        return f"class {self.cls.name}"


@dataclass(frozen=True)
class ProjectScope:
    project: Project

    kind: ClassVar[ScopeKind] = ScopeKind.PROJECT

    def location(self) -> Location:
        return Location(project=self.project.name)

    def describe(self) -> str:
        return f"project {self.project.name}"


Scope = Union[MethodScope, ClassScope, ProjectScope]


# ---------------------------------------------------------------------------
# Detector base
# ---------------------------------------------------------------------------

Tier = Tuple[bool, Severity]


def grade(tiers: Sequence[Tier], default: Severity = Severity.LOW) -> Severity:
    """Return the severity of the first tier whose condition holds."""
    for condition, severity in tiers:
        if condition:
            return severity
    return default


class SmellDetector(ABC):
    """Base class for every smell detector.

    Subclasses declare their ``name``, the scopes they understand and their
    default thresholds, and implement :meth:`evaluate`.  Detectors are pure:
    they read the model, never change it, and never touch the filesystem.
    """

    name: ClassVar[str] = ""
    description: ClassVar[str] = ""
    scopes: ClassVar[FrozenSet[ScopeKind]] = frozenset()
    defaults: ClassVar[Dict[str, Any]] = {}
    ratio_keys: ClassVar[FrozenSet[str]] = frozenset()
    # Relies on best-effort call / field-access edges.
    heuristic: ClassVar[bool] = False

    def supports(self, kind: ScopeKind) -> bool:
        return kind in self.scopes

    def detect(
        self,
        scope: Scope,
        thresholds: Optional[Mapping[str, Any]] = None,
    ) -> Optional[SmellResult]:
        """Evaluate *scope*; ``None`` means the detector does not apply to it."""
        if not self.supports(scope.kind):
            return None
        return self.evaluate(scope, dict(thresholds or {}))

    @abstractmethod
    def evaluate(self, scope: Scope, thresholds: Dict[str, Any]) -> Optional[SmellResult]:
        ...

    def threshold(self, thresholds: Mapping[str, Any], key: str) -> Any:
        if key in thresholds:
            return thresholds[key]
        return self.defaults[key]

    def configured(self, thresholds: Mapping[str, Any]) -> Dict[str, Any]:
        """Effective threshold values for this detector, for the details record."""
        return {key: self.threshold(thresholds, key) for key in self.defaults}

    def result(
        self,
        detected: bool,
        severity: Severity,
        location: Location,
        details: SmellDetails,
    ) -> SmellResult:
        return SmellResult(
            smell_name=self.name,
            detected=detected,
            severity=severity if detected else None,
            location=location,
            details=details,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
