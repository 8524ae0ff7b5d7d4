"""Object-orientation abusers: branching on type codes, half-used fields and inheritance."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from . import metrics
from .models import Class, Method, SourceLine
from .smell_detector import (
    ClassScope,
    MethodScope,
    ScopeKind,
    Severity,
    SmellDetails,
    SmellDetector,
    SmellResult,
    grade,
)

MATCH_HEADER = re.compile(r"^(?:match|switch)\s*\(?\s*([A-Za-z_][\w.]*)")
IF_HEADER = re.compile(r"^if\b")
IF_VARIABLE = re.compile(r"^(?:el)?if\s+\(?\s*(?:not\s+)?([A-Za-z_][\w.]*)")
ELIF_HEADER = re.compile(r"^(?:elif\b|else\s+if\b)")
ELSE_HEADER = re.compile(r"^else\b")
NULL_CHECK = re.compile(r"\bnull\b|\bis_instance_valid\s*\(")


# ===================================================================
# Switch Statements
# ===================================================================

@dataclass(frozen=True)
class BranchConstruct:
    kind: str
    variable: str
    cases: int
    line: Optional[int]


@dataclass(frozen=True)
class SwitchStatementsDetails(SmellDetails):
    switch_count: int
    max_cases: int
    average_cases: float
    duplicated_switches: int
    switches: Tuple[BranchConstruct, ...]
    thresholds: Dict[str, Any]


def _code_lines(method: Method) -> List[SourceLine]:
    return [line for line in method.lines if line.is_code]


def count_match_arms(lines: Sequence[SourceLine], start: int) -> int:
    """Number of arms directly below the ``match`` header at *start*."""
    base = lines[start].indent
    arm_indent: Optional[int] = None
    arms = 0
    for line in lines[start + 1:]:
        if line.indent <= base:
            break
        if arm_indent is None:
            arm_indent = line.indent
        if line.indent == arm_indent:
            arms += 1
    return arms


def if_chain_shape(lines: Sequence[SourceLine], start: int) -> Tuple[int, int]:
    """Return ``(branches, elif_count)`` for the if/elif/else chain at *start*."""
    base = lines[start].indent
    branches, elifs = 1, 0
    for line in lines[start + 1:]:
        if line.indent > base:
            continue
        if line.indent < base:
            break
        content = line.content
        if ELIF_HEADER.match(content):
            branches += 1
            elifs += 1
        elif ELSE_HEADER.match(content):
            branches += 1
            break
        else:
            break
    return branches, elifs


def branch_constructs(method: Method) -> List[BranchConstruct]:
    lines = _code_lines(method)
    constructs: List[BranchConstruct] = []
    for index, line in enumerate(lines):
        content = line.content
        header = MATCH_HEADER.match(content)
        if header:
            constructs.append(BranchConstruct(
                kind="match",
                variable=header.group(1),
                cases=count_match_arms(lines, index),
                line=line.line_number,
            ))
            continue
        if IF_HEADER.match(content):
            branches, elifs = if_chain_shape(lines, index)
            if elifs >= 2:
                variable = IF_VARIABLE.match(content)
                constructs.append(BranchConstruct(
                    kind="if_chain",
                    variable=variable.group(1) if variable else "",
                    cases=branches,
                    line=line.line_number,
                ))
    return constructs


class SwitchStatementsDetector(SmellDetector):
    name = "SwitchStatements"
    description = "Repeated or oversized match statements and if/elif chains on the same value"
    scopes = frozenset({ScopeKind.METHOD})
    defaults = {"max_switches": 2, "max_cases": 5}

    def evaluate(self, scope: MethodScope, thresholds: Dict[str, Any]) -> SmellResult:
        constructs = branch_constructs(scope.method)

        duplicated = 0
        seen: Dict[str, int] = {}
        for construct in constructs:
            if not construct.variable:
                continue
            duplicated += seen.get(construct.variable, 0)
            seen[construct.variable] = seen.get(construct.variable, 0) + 1

        count = len(constructs)
        max_cases = max((c.cases for c in constructs), default=0)
        average = sum(c.cases for c in constructs) / count if count else 0.0

        detected = (
            count > self.threshold(thresholds, "max_switches")
            or max_cases > self.threshold(thresholds, "max_cases")
            or duplicated > 0
        )
        severity = grade([
            (duplicated > 3, Severity.CRITICAL),
            (average > 10 or duplicated > 0, Severity.HIGH),
            (count > 2, Severity.MEDIUM),
        ])
        details = SwitchStatementsDetails(
            switch_count=count,
            max_cases=max_cases,
            average_cases=round(average, 2),
            duplicated_switches=duplicated,
            switches=tuple(constructs),
            thresholds=self.configured(thresholds),
        )
        return self.result(detected, severity, scope.location(), details)


# ===================================================================
# Temporary Field
# ===================================================================

@dataclass(frozen=True)
class TemporaryFieldUsage:
    field: str
    null_checks: int
    usages: int
    conditional_usages: int
    methods: Tuple[str, ...]


@dataclass(frozen=True)
class TemporaryFieldDetails(SmellDetails):
    temporary_fields: Tuple[TemporaryFieldUsage, ...]
    max_null_checks: int
    thresholds: Dict[str, Any]


def field_pattern(name: str) -> "re.Pattern[str]":
    return re.compile(rf"(?:\bself\.|(?<![\w.$])){re.escape(name)}\b")


def is_assignment_to(content: str, name: str) -> bool:
    return bool(re.match(rf"(?:self\.)?{re.escape(name)}\s*(?:[-+*/]?=(?!=)|:=)", content))


def field_usage(klass: Class, name: str) -> TemporaryFieldUsage:
    """Count how *name* is read across the methods of *klass*.

    Assignments are not reads.  A read is conditional when it is the header
    of an if/elif/match/while or sits inside the body of one.
    """
    pattern = field_pattern(name)
    null_checks = usages = conditional = 0
    methods: List[str] = []
    for method in klass.methods:
        used = False
        for index, line in enumerate(method.lines):
            if not line.is_code or not pattern.search(line.content):
                continue
            used = True
            content = line.content
            if is_assignment_to(content, name):
                continue
            usages += 1
            if NULL_CHECK.search(content):
                null_checks += 1
            if metrics.is_conditional_header(content) or metrics.enclosing_conditional(method.lines, index):
                conditional += 1
        if used:
            methods.append(method.name.value)
    return TemporaryFieldUsage(
        field=name,
        null_checks=null_checks,
        usages=usages,
        conditional_usages=conditional,
        methods=tuple(methods),
    )


class TemporaryFieldDetector(SmellDetector):
    name = "TemporaryField"
    description = "Field only meaningful in some situations, guarded by repeated null checks"
    scopes = frozenset({ScopeKind.CLASS})
    defaults = {"max_null_checks": 2, "require_conditional_usage": True}

    def evaluate(self, scope: ClassScope, thresholds: Dict[str, Any]) -> SmellResult:
        klass = scope.cls
        max_checks = self.threshold(thresholds, "max_null_checks")
        require_conditional = self.threshold(thresholds, "require_conditional_usage")

        temporary: List[TemporaryFieldUsage] = []
        for name in klass.field_names:
            usage = field_usage(klass, name)
            conditional_only = usage.usages > 0 and usage.conditional_usages == usage.usages
            if (conditional_only or not require_conditional) and usage.null_checks > max_checks:
                temporary.append(usage)

        worst = max((usage.null_checks for usage in temporary), default=0)
        severity = grade([(worst > 5, Severity.MEDIUM)])
        details = TemporaryFieldDetails(
            temporary_fields=tuple(temporary),
            max_null_checks=worst,
            thresholds=self.configured(thresholds),
        )
        return self.result(bool(temporary), severity, scope.location(), details)


# ===================================================================
# Refused Bequest
# ===================================================================

@dataclass(frozen=True)
class EmptyOverride:
    method: str
    loc: int


@dataclass(frozen=True)
class RefusedBequestDetails(SmellDetails):
    usage_ratio: float
    used_methods: Tuple[str, ...]
    total_parent_methods: int
    empty_overrides: Tuple[EmptyOverride, ...]
    thresholds: Dict[str, Any]


def is_empty_override(method: Method) -> bool:
    """Two lines at most and either empty, ``pass`` or a bare call to the parent."""
    if method.loc > 2:
        return False
    body = method.body_text.lower().strip()
    return (
        body == ""
        or body == "pass"
        or "super." in body
        or "super(" in body
        or ".call(" in body
    )


def uses_parent_method(subclass: Class, method_name: str) -> bool:
    callees = {method_name} | {
        f"{qualifier}.{method_name}" for qualifier in ("super", "self", subclass.name.value)
    }
    if subclass.parent is not None:
        callees.add(f"{subclass.parent.value}.{method_name}")
    return any(method.calls_method(callee) for method in subclass.methods for callee in callees)


class RefusedBequestDetector(SmellDetector):
    """Subclass that ignores most of what it inherits.

    Only applies to classes whose parent is itself a project class; engine
    base classes (``Node2D``, ``CharacterBody2D`` ...) are not modelled.
    """

    name = "RefusedBequest"
    description = "Subclass uses little of its parent or overrides parent methods with empty bodies"
    scopes = frozenset({ScopeKind.CLASS})
    defaults = {"usage_ratio": 0.3, "overridden_empty": 0}
    ratio_keys = frozenset({"usage_ratio"})
    heuristic = True

    def evaluate(self, scope: ClassScope, thresholds: Dict[str, Any]) -> Optional[SmellResult]:
        subclass = scope.cls
        if subclass.parent is None:
            return None
        parent = scope.project.find_class(subclass.parent.value)
        if parent is None:
            return None

        used: List[str] = []
        empty: List[EmptyOverride] = []
        for parent_method in parent.methods:
            name = parent_method.name.value
            if uses_parent_method(subclass, name):
                used.append(name)
            override = subclass.get_method(name)
            if override is not None and is_empty_override(override):
                empty.append(EmptyOverride(method=name, loc=override.loc))

        total = parent.method_count
        ratio = len(used) / total if total else 1.0

        detected = (
            ratio < self.threshold(thresholds, "usage_ratio")
            or len(empty) > self.threshold(thresholds, "overridden_empty")
        )
        severity = grade([
            (ratio <= 0.2 or len(empty) > 5, Severity.HIGH),
            (ratio < 0.3 or len(empty) > 3, Severity.MEDIUM),
        ])
        details = RefusedBequestDetails(
            usage_ratio=round(ratio, 4),
            used_methods=tuple(used),
            total_parent_methods=total,
            empty_overrides=tuple(empty),
            thresholds=self.configured(thresholds),
        )
        return self.result(detected, severity, scope.location(parent=parent.name.value), details)
