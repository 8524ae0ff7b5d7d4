"""Change preventers: one change forcing edits in many places, or one class changing for many reasons."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Set, Tuple

from .metrics import class_dependencies, resolve_callee
from .models import Class, Method
from .smell_detector import (
    ClassScope,
    ProjectScope,
    ScopeKind,
    Severity,
    SmellDetails,
    SmellDetector,
    SmellResult,
    grade,
)

# Checked in order; a method joins the first group whose rule matches.
CHANGE_GROUPS: Tuple[Tuple[str, Tuple[str, ...], Tuple[str, ...]], ...] = (
    ("getters", ("get_", "is_", "has_"), ()),
    ("setters", ("set_",), ()),
    ("processors", (), ("process", "update", "calculate")),
    ("handlers", (), ("handle", "on_", "callback")),
    ("utilities", (), ("util", "helper", "tool")),
    ("managers", (), ("manage", "control", "direct")),
)


# ===================================================================
# Divergent Change
# ===================================================================

@dataclass(frozen=True)
class ChangeReason:
    description: str
    affected_methods: Tuple[str, ...]
    affected_fields: Tuple[str, ...]
    method_count: int


@dataclass(frozen=True)
class DivergentChangeDetails(SmellDetails):
    change_reasons: Tuple[ChangeReason, ...]
    method_count: int
    field_count: int
    thresholds: Dict[str, Any]


def change_group(method_name: str) -> str:
    lowered = method_name.lower()
    for group, prefixes, fragments in CHANGE_GROUPS:
        if any(lowered.startswith(prefix) for prefix in prefixes):
            return group
        if any(fragment in lowered for fragment in fragments):
            return group
    return ""


def related_fields(klass: Class, methods: Sequence[Method]) -> Tuple[str, ...]:
    names = [method.name.value.lower() for method in methods]
    related: List[str] = []
    for field_name in klass.field_names:
        lowered = field_name.lower()
        for name in names:
            if lowered in name or name.split("_")[0] in lowered:
                related.append(field_name)
                break
    return tuple(related)


def change_reasons(klass: Class) -> List[ChangeReason]:
    groups: Dict[str, List[Method]] = {group: [] for group, _, _ in CHANGE_GROUPS}
    for method in klass.methods:
        group = change_group(method.name.value)
        if group:
            groups[group].append(method)

    reasons = [
        ChangeReason(
            description=f"{group} functionality",
            affected_methods=tuple(m.name.value for m in methods),
            affected_fields=related_fields(klass, methods),
            method_count=len(methods),
        )
        for group, methods in groups.items()
        if len(methods) >= 2
    ]
    if not reasons and klass.method_count > 5:
        reasons.append(ChangeReason(
            description="unorganized functionality",
            affected_methods=tuple(klass.method_names),
            affected_fields=tuple(klass.field_names),
            method_count=klass.method_count,
        ))
    return reasons


class DivergentChangeDetector(SmellDetector):
    name = "DivergentChange"
    description = "Class is changed for many unrelated reasons"
    scopes = frozenset({ScopeKind.CLASS})
    defaults = {"max_reasons": 3}

    def evaluate(self, scope: ClassScope, thresholds: Dict[str, Any]) -> SmellResult:
        klass = scope.cls
        reasons = change_reasons(klass)
        count = len(reasons)

        detected = count > self.threshold(thresholds, "max_reasons")
        severity = grade([
            (count > 7, Severity.CRITICAL),
            (count > 5, Severity.HIGH),
            (count > 3, Severity.MEDIUM),
        ])
        details = DivergentChangeDetails(
            change_reasons=tuple(reasons),
            method_count=klass.method_count,
            field_count=klass.field_count,
            thresholds=self.configured(thresholds),
        )
        return self.result(detected, severity, scope.location(), details)


# ===================================================================
# Shotgun Surgery
# ===================================================================

@dataclass(frozen=True)
class SurgeryPoint:
    kind: str
    subject: str
    affected_classes: Tuple[str, ...]


@dataclass(frozen=True)
class ShotgunSurgeryDetails(SmellDetails):
    surgeries: Tuple[SurgeryPoint, ...]
    max_affected_classes: int
    thresholds: Dict[str, Any]


class ShotgunSurgeryDetector(SmellDetector):
    """One change that ripples through many classes.

    Two shapes are reported: a class that depends on more than
    ``max_classes`` other classes, and a method called from more than
    ``max_caller_classes`` distinct classes.  Callees are resolved by name.
    """

    name = "ShotgunSurgery"
    description = "A single change requires edits across many classes"
    scopes = frozenset({ScopeKind.PROJECT})
    defaults = {"max_classes": 3, "max_caller_classes": 4}
    heuristic = True

    def evaluate(self, scope: ProjectScope, thresholds: Dict[str, Any]) -> SmellResult:
        project = scope.project
        max_classes = self.threshold(thresholds, "max_classes")
        max_callers = self.threshold(thresholds, "max_caller_classes")

        surgeries: List[SurgeryPoint] = []
        callers: Dict[Tuple[str, str], Set[str]] = defaultdict(set)
        for klass in project.classes:
            own = klass.name.value
            dependencies = class_dependencies(klass, project)
            if len(dependencies) > max_classes:
                surgeries.append(SurgeryPoint("class_references", own, tuple(dependencies)))
            for method in klass.methods:
                for edge in sorted(method.calls):
                    resolved = resolve_callee(edge, project)
                    if resolved is not None and resolved[0] != own:
                        callers[resolved].add(own)

        for (class_name, method_name), who in sorted(callers.items()):
            if len(who) > max_callers:
                surgeries.append(SurgeryPoint(
                    "method_callers", f"{class_name}.{method_name}", tuple(sorted(who)),
                ))

        worst = max((len(point.affected_classes) for point in surgeries), default=0)
        severity = grade([
            (worst > 8, Severity.CRITICAL),
            (worst > 5, Severity.HIGH),
            (worst > 3, Severity.MEDIUM),
        ])
        details = ShotgunSurgeryDetails(
            surgeries=tuple(surgeries),
            max_affected_classes=worst,
            thresholds=self.configured(thresholds),
        )
        return self.result(bool(surgeries), severity, scope.location(), details)
