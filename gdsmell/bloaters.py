"""Bloater smells: code that has grown too large to work with comfortably."""

from __future__ import annotations

import re
from dataclasses import dataclass
from itertools import combinations
from typing import Any, Dict, Iterable, List, Set, Tuple

from . import metrics
from .smell_detector import (
    ClassScope,
    MethodScope,
    ProjectScope,
    ScopeKind,
    Severity,
    SmellDetails,
    SmellDetector,
    SmellResult,
    grade,
)

MAGIC_NUMBER = re.compile(r"\b\d+\.?\d*\b")
MAGIC_STRING = re.compile(r"""["']([^"']{3,})["']""")
STRING_GET_NODE = re.compile(r"""get_node\s*\(\s*["'][^"']+["']\s*\)""")
NON_MAGIC_STRINGS = (
    re.compile(r"^https?://"),
    re.compile(r"\.(png|jpg|jpeg|gif|tscn|gd)$", re.IGNORECASE),
    re.compile(r"^[A-Z_]+$"),
    re.compile(r"^[a-z_]+$"),
    re.compile(r"^\d+$"),
    re.compile(r"^on_"),
    re.compile(r"_path$"),
    re.compile(r"_name$"),
)
MAX_EXAMPLES = 10


# ===================================================================
# Long Method
# ===================================================================

@dataclass(frozen=True)
class LongMethodDetails(SmellDetails):
    lines_of_code: int
    cyclomatic_complexity: int
    yield_count: int
    thresholds: Dict[str, Any]


class LongMethodDetector(SmellDetector):
    name = "LongMethod"
    description = "Method contains too many lines of code or has high cyclomatic complexity"
    scopes = frozenset({ScopeKind.METHOD})
    defaults = {"max_lines": 50, "max_complexity": 10, "max_yields": 7}

    def evaluate(self, scope: MethodScope, thresholds: Dict[str, Any]) -> SmellResult:
        method = scope.method
        loc = method.loc
        complexity = method.cyclomatic_complexity
        yields = method.yield_count

        detected = (
            loc > self.threshold(thresholds, "max_lines")
            or complexity > self.threshold(thresholds, "max_complexity")
            or yields > self.threshold(thresholds, "max_yields")
        )
        severity = grade([
            (loc > 200 or complexity > 30, Severity.CRITICAL),
            (loc > 100 or complexity > 20, Severity.HIGH),
            (loc > 50 or complexity > 10, Severity.MEDIUM),
        ])
        details = LongMethodDetails(
            lines_of_code=loc,
            cyclomatic_complexity=complexity,
            yield_count=yields,
            thresholds=self.configured(thresholds),
        )
        return self.result(detected, severity, scope.location(), details)


# ===================================================================
# Large Class
# ===================================================================

@dataclass(frozen=True)
class LargeClassDetails(SmellDetails):
    field_count: int
    method_count: int
    total_loc: int
    export_count: int
    coupling: int
    lack_of_cohesion: int
    thresholds: Dict[str, Any]


class LargeClassDetector(SmellDetector):
    name = "LargeClass"
    description = "Class has too many fields, methods or lines of code (god object)"
    scopes = frozenset({ScopeKind.CLASS})
    defaults = {"max_fields": 15, "max_methods": 20, "max_loc": 400, "max_exports": 10}

    def evaluate(self, scope: ClassScope, thresholds: Dict[str, Any]) -> SmellResult:
        klass = scope.cls
        fields = klass.field_count
        methods = klass.method_count
        loc = klass.total_loc
        exports = len(klass.exported_fields)

        detected = (
            fields > self.threshold(thresholds, "max_fields")
            or methods > self.threshold(thresholds, "max_methods")
            or loc > self.threshold(thresholds, "max_loc")
            or exports > self.threshold(thresholds, "max_exports")
        )
        severity = grade([
            (loc > 1000 or methods > 50, Severity.CRITICAL),
            (loc > 600 or methods > 30, Severity.HIGH),
            (loc > 400 or methods > 20, Severity.MEDIUM),
        ])
        details = LargeClassDetails(
            field_count=fields,
            method_count=methods,
            total_loc=loc,
            export_count=exports,
            coupling=klass.coupling(scope.project.classes),
            lack_of_cohesion=klass.lack_of_cohesion(),
            thresholds=self.configured(thresholds),
        )
        return self.result(detected, severity, scope.location(), details)


# ===================================================================
# Long Parameter List
# ===================================================================

@dataclass(frozen=True)
class RelatedParameterGroup:
    prefix: str
    parameters: Tuple[str, ...]
    count: int


@dataclass(frozen=True)
class LongParameterListDetails(SmellDetails):
    parameter_count: int
    related_groups: Tuple[RelatedParameterGroup, ...]
    parameters: Tuple[str, ...]
    thresholds: Dict[str, Any]


class LongParameterListDetector(SmellDetector):
    name = "LongParameterList"
    description = "Method takes too many parameters or parameters that always travel together"
    scopes = frozenset({ScopeKind.METHOD})
    defaults = {"max_params": 4, "max_related_params": 3}

    def evaluate(self, scope: MethodScope, thresholds: Dict[str, Any]) -> SmellResult:
        method = scope.method
        count = len(method.parameters)
        groups = self.related_groups(method.parameter_names, self.threshold(thresholds, "max_related_params"))

        detected = count > self.threshold(thresholds, "max_params") or bool(groups)
        severity = grade([
            (count > 7, Severity.HIGH),
            (count > 4, Severity.MEDIUM),
        ])
        details = LongParameterListDetails(
            parameter_count=count,
            related_groups=groups,
            parameters=tuple(param.signature for param in method.parameters),
            thresholds=self.configured(thresholds),
        )
        return self.result(detected, severity, scope.location(), details)

    @staticmethod
    def related_groups(names: Iterable[str], minimum: int) -> Tuple[RelatedParameterGroup, ...]:
        """Group parameter names by the prefix before their first underscore."""
        by_prefix: Dict[str, List[str]] = {}
        for name in names:
            lowered = name.lower()
            prefix = lowered.lstrip("_").split("_")[0]
            by_prefix.setdefault(prefix, []).append(lowered)
        return tuple(
            RelatedParameterGroup(prefix=prefix, parameters=tuple(group), count=len(group))
            for prefix, group in by_prefix.items()
            if len(group) >= minimum
        )


# ===================================================================
# Primitive Obsession
# ===================================================================

@dataclass(frozen=True)
class PrimitiveExample:
    kind: str
    value: str
    line: str


@dataclass(frozen=True)
class PrimitiveObsessionDetails(SmellDetails):
    magic_numbers: int
    magic_strings: int
    string_get_nodes: int
    untyped_vars: int
    examples: Tuple[PrimitiveExample, ...]
    thresholds: Dict[str, Any]


def is_magic_number(literal: str) -> bool:
    value = float(literal)
    return (abs(value) > 1 and not value.is_integer()) or value > 10


def is_magic_string(text: str) -> bool:
    return len(text) > 3 and not any(pattern.search(text) for pattern in NON_MAGIC_STRINGS)


class PrimitiveObsessionDetector(SmellDetector):
    name = "PrimitiveObsession"
    description = "Magic numbers and strings, string node lookups and untyped variables instead of types"
    scopes = frozenset({ScopeKind.CLASS})
    defaults = {
        "max_magic_numbers": 5,
        "max_magic_strings": 5,
        "max_string_get_nodes": 3,
        "max_untyped_vars": 3,
    }

    def evaluate(self, scope: ClassScope, thresholds: Dict[str, Any]) -> SmellResult:
        klass = scope.cls
        magic_numbers = magic_strings = get_nodes = 0
        examples: List[PrimitiveExample] = []

        for method in klass.methods:
            for line in method.lines:
                if not line.is_code:
                    continue
                content = line.content
                code = metrics.code_of(content)
                uncommented = metrics.strip_trailing_comment(content)
                for literal in MAGIC_NUMBER.findall(code):
                    if is_magic_number(literal):
                        magic_numbers += 1
                        examples.append(PrimitiveExample("magic_number", literal, content))
                for text in MAGIC_STRING.findall(uncommented):
                    if is_magic_string(text):
                        magic_strings += 1
                        examples.append(PrimitiveExample("magic_string", text, content))
                if STRING_GET_NODE.search(uncommented):
                    get_nodes += 1
                    examples.append(PrimitiveExample("string_get_node", "get_node", content))

        untyped = len(klass.untyped_fields)
        detected = (
            magic_numbers > self.threshold(thresholds, "max_magic_numbers")
            or magic_strings > self.threshold(thresholds, "max_magic_strings")
            or get_nodes > self.threshold(thresholds, "max_string_get_nodes")
            or untyped > self.threshold(thresholds, "max_untyped_vars")
        )
        severity = grade([
            (magic_numbers > 15 or untyped > 10, Severity.HIGH),
            (magic_numbers > 5 or get_nodes > 3, Severity.MEDIUM),
        ])
        details = PrimitiveObsessionDetails(
            magic_numbers=magic_numbers,
            magic_strings=magic_strings,
            string_get_nodes=get_nodes,
            untyped_vars=untyped,
            examples=tuple(examples[:MAX_EXAMPLES]),
            thresholds=self.configured(thresholds),
        )
        return self.result(detected, severity, scope.location(), details)


# ===================================================================
# Data Clumps
# ===================================================================

@dataclass(frozen=True)
class DataClump:
    variables: Tuple[str, ...]
    kind: str
    occurrences: int
    methods: Tuple[str, ...]


@dataclass(frozen=True)
class DataClumpsDetails(SmellDetails):
    clump_count: int
    clumps: Tuple[DataClump, ...]
    total_classes: int
    thresholds: Dict[str, Any]


class DataClumpsDetector(SmellDetector):
    """Finds groups of three or more names that keep turning up together.

    Every 3-combination of a method's parameter names (and, separately, of
    the own-class fields it touches) is recorded against that method.
    Combinations seen in the same set of methods are merged into one larger
    clump, so four parameters shared by three methods are reported once.
    """

    name = "DataClumps"
    description = "The same group of parameters or fields recurs across many methods"
    scopes = frozenset({ScopeKind.PROJECT})
    defaults = {"min_clump_size": 3, "min_occurrences": 3}

    def evaluate(self, scope: ProjectScope, thresholds: Dict[str, Any]) -> SmellResult:
        project = scope.project
        min_size = self.threshold(thresholds, "min_clump_size")
        min_occurrences = self.threshold(thresholds, "min_occurrences")

        param_groups: Dict[Tuple[str, ...], List[str]] = {}
        field_groups: Dict[Tuple[str, ...], List[str]] = {}
        for klass in project.classes:
            own = klass.name.value
            for method in klass.methods:
                where = f"{own}.{method.name}"
                self._record(param_groups, method.parameter_names, where)
                accessed = [a.field for a in method.field_accesses if a.owner == own]
                self._record(field_groups, accessed, where)

        clumps = self._merge(param_groups, "parameters") + self._merge(field_groups, "fields")
        clumps = [
            clump for clump in clumps
            if clump.occurrences >= min_occurrences and len(clump.variables) >= min_size
        ]

        largest = max((len(clump.variables) for clump in clumps), default=0)
        detected = bool(clumps)
        severity = grade([
            (largest >= 5, Severity.HIGH),
            (len(clumps) > 3, Severity.MEDIUM),
        ])
        details = DataClumpsDetails(
            clump_count=len(clumps),
            clumps=tuple(clumps),
            total_classes=len(project.classes),
            thresholds=self.configured(thresholds),
        )
        return self.result(detected, severity, scope.location(), details)

    @staticmethod
    def _record(groups: Dict[Tuple[str, ...], List[str]], names: Iterable[str], where: str) -> None:
        unique = sorted(set(names))
        if len(unique) < 3:
            return
        for combo in combinations(unique, 3):
            groups.setdefault(combo, []).append(where)

    @staticmethod
    def _merge(groups: Dict[Tuple[str, ...], List[str]], kind: str) -> List[DataClump]:
        merged: Dict[Tuple[str, ...], Set[str]] = {}
        for combo, methods in groups.items():
            merged.setdefault(tuple(methods), set()).update(combo)
        return [
            DataClump(
                variables=tuple(sorted(variables)),
                kind=kind,
                occurrences=len(methods),
                methods=methods,
            )
            for methods, variables in merged.items()
        ]
