"""Dispensables: code whose absence would make the project cleaner."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from . import metrics
from .metrics import CommentStats
from .models import ACCESSOR_PREFIXES, Class, Method, Project
from .smell_detector import (
    ClassScope,
    Location,
    MethodScope,
    ProjectScope,
    ScopeKind,
    Severity,
    SmellDetails,
    SmellDetector,
    SmellResult,
    grade,
)

PREVIEW_LINES = 3
MAX_REPORTED_DUPLICATES = 10

# Engine callbacks and conventions that are invoked without a visible call site.
ENTRY_POINTS = frozenset({
    "_init",
    "_ready",
    "_enter_tree",
    "_exit_tree",
    "_process",
    "_physics_process",
    "_input",
    "_unhandled_input",
    "_unhandled_key_input",
    "_gui_input",
    "_draw",
    "_notification",
    "_to_string",
    "_get_configuration_warnings",
})
ENTRY_POINT_PREFIXES = ("_on_", "public_")

PASS_STATEMENT = re.compile(r"\bpass\b")
BARE_STATEMENT = re.compile(r"^(?:return\b.*|(?:self\.)?[A-Za-z_]\w*\s*[-+*/]?=(?!=).*)$")

RESPONSIBILITIES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("processing", ("process", "handle")),
    ("management", ("manage", "control")),
    ("computation", ("calculate", "compute")),
    ("rendering", ("draw", "render")),
    ("persistence", ("save", "load")),
)


# ===================================================================
# Duplicate Code
# ===================================================================

@dataclass(frozen=True)
class CodeBlock:
    class_name: str
    method: str
    file: Optional[str]
    lines: int
    preview: str


@dataclass(frozen=True)
class DuplicatePair:
    first: CodeBlock
    second: CodeBlock
    similarity: float


@dataclass(frozen=True)
class DuplicateCodeDetails(SmellDetails):
    duplicate_count: int
    duplicates: Tuple[DuplicatePair, ...]
    thresholds: Dict[str, Any]


def _block(klass: Class, method: Method, lines: List[str]) -> CodeBlock:
    preview = "\n".join(lines[:PREVIEW_LINES])
    if len(lines) > PREVIEW_LINES:
        preview += "\n..."
    return CodeBlock(
        class_name=klass.name.value,
        method=method.name.value,
        file=klass.file_path,
        lines=len(lines),
        preview=preview,
    )


class DuplicateCodeDetector(SmellDetector):
    name = "DuplicateCode"
    description = "Method bodies that repeat the same lines of code"
    scopes = frozenset({ScopeKind.PROJECT})
    defaults = {"min_lines": 5, "min_similarity": 0.6, "similarity_threshold": 6}
    ratio_keys = frozenset({"min_similarity"})

    def evaluate(self, scope: ProjectScope, thresholds: Dict[str, Any]) -> SmellResult:
        min_lines = self.threshold(thresholds, "min_lines")
        min_similarity = self.threshold(thresholds, "min_similarity")

        blocks: List[Tuple[Class, Method, List[str]]] = []
        for klass in scope.project.classes:
            for method in klass.methods:
                lines = [line.content for line in method.lines]
                if len(lines) >= min_lines:
                    blocks.append((klass, method, lines))

        duplicates: List[DuplicatePair] = []
        for i, (first_class, first_method, first_lines) in enumerate(blocks):
            for second_class, second_method, second_lines in blocks[i + 1:]:
                similarity = metrics.block_similarity(first_lines, second_lines)
                if similarity > 0 and similarity >= min_similarity:
                    duplicates.append(DuplicatePair(
                        first=_block(first_class, first_method, first_lines),
                        second=_block(second_class, second_method, second_lines),
                        similarity=round(similarity, 2),
                    ))

        count = len(duplicates)
        severity = grade([
            (count > 10, Severity.CRITICAL),
            (count > 5, Severity.HIGH),
            (count > 2, Severity.MEDIUM),
        ])
        details = DuplicateCodeDetails(
            duplicate_count=count,
            duplicates=tuple(duplicates[:MAX_REPORTED_DUPLICATES]),
            thresholds=self.configured(thresholds),
        )
        return self.result(bool(duplicates), severity, scope.location(), details)


# ===================================================================
# Lazy Class
# ===================================================================

@dataclass(frozen=True)
class LazyClassDetails(SmellDetails):
    total_loc: int
    method_count: int
    real_methods: int
    trivial_methods: int
    responsibilities: Tuple[str, ...]
    thresholds: Dict[str, Any]


def is_trivial_method(method: Method) -> bool:
    """Accessor-named method of three lines or fewer, or a two-line bare return or assignment."""
    if method.is_getter_or_setter:
        return True
    if method.loc > 2:
        return False
    code = [line.content for line in method.lines if line.is_code]
    return all(BARE_STATEMENT.match(content) for content in code)


def responsibilities(klass: Class) -> Tuple[str, ...]:
    found: List[str] = []
    if klass.fields:
        found.append("data_management")
    names = [name.lower() for name in klass.method_names]
    for label, fragments in RESPONSIBILITIES:
        if any(fragment in name for name in names for fragment in fragments):
            found.append(label)
    return tuple(found)


class LazyClassDetector(SmellDetector):
    name = "LazyClass"
    description = "Class does too little to justify its existence"
    scopes = frozenset({ScopeKind.CLASS})
    defaults = {"min_loc": 20, "min_methods": 2, "min_responsibilities": 1}

    def evaluate(self, scope: ClassScope, thresholds: Dict[str, Any]) -> SmellResult:
        klass = scope.cls
        loc = klass.total_loc
        trivial = sum(1 for method in klass.methods if is_trivial_method(method))
        real = klass.method_count - trivial

        detected = (
            loc < self.threshold(thresholds, "min_loc")
            and real < self.threshold(thresholds, "min_methods")
        )
        severity = grade([(loc < 10, Severity.MEDIUM)])
        details = LazyClassDetails(
            total_loc=loc,
            method_count=klass.method_count,
            real_methods=real,
            trivial_methods=trivial,
            responsibilities=responsibilities(klass),
            thresholds=self.configured(thresholds),
        )
        return self.result(detected, severity, scope.location(), details)


# ===================================================================
# Data Class
# ===================================================================

@dataclass(frozen=True)
class DataClassDetails(SmellDetails):
    field_count: int
    public_fields: Tuple[str, ...]
    accessor_methods: Tuple[str, ...]
    behavior_methods: Tuple[str, ...]
    thresholds: Dict[str, Any]


def is_accessor(method: Method) -> bool:
    name = method.name.value.lower()
    if name.startswith(ACCESSOR_PREFIXES):
        return True
    body = method.body_text.lower()
    return method.loc <= 3 and "return " in body and "calculate" not in body and "process" not in body


class DataClassDetector(SmellDetector):
    name = "DataClass"
    description = "Class only holds data and exposes it without behavior of its own"
    scopes = frozenset({ScopeKind.CLASS})
    defaults = {"max_behavior_methods": 0, "max_public_fields": 0, "data_class_max_fields": 3}

    def evaluate(self, scope: ClassScope, thresholds: Dict[str, Any]) -> SmellResult:
        klass = scope.cls
        accessors = [m.name.value for m in klass.methods if is_accessor(m)]
        behaviors = [m.name.value for m in klass.methods if not is_accessor(m)]
        public = klass.public_fields

        detected = len(behaviors) <= self.threshold(thresholds, "max_behavior_methods") and (
            len(public) > self.threshold(thresholds, "max_public_fields")
            or klass.field_count > self.threshold(thresholds, "data_class_max_fields")
        )
        severity = grade([(len(public) > 5, Severity.MEDIUM)])
        details = DataClassDetails(
            field_count=klass.field_count,
            public_fields=tuple(public),
            accessor_methods=tuple(accessors),
            behavior_methods=tuple(behaviors),
            thresholds=self.configured(thresholds),
        )
        return self.result(detected, severity, scope.location(), details)


# ===================================================================
# Speculative Generality
# ===================================================================

@dataclass(frozen=True)
class UnusedMethod:
    class_name: str
    name: str
    loc: int


@dataclass(frozen=True)
class UnusedParameter:
    class_name: str
    method: str
    parameter: str
    type_name: Optional[str]


@dataclass(frozen=True)
class SpeculativeGeneralityDetails(SmellDetails):
    unused_methods: Tuple[UnusedMethod, ...]
    unused_parameters: Tuple[UnusedParameter, ...]
    abstract_classes: Tuple[str, ...]
    thresholds: Dict[str, Any]


def is_entry_point(method: Method) -> bool:
    name = method.name.value.lower()
    return name in ENTRY_POINTS or name.startswith(ENTRY_POINT_PREFIXES)


def referenced_names(project: Project) -> Set[str]:
    return {edge.target for klass in project.classes for method in klass.methods for edge in method.calls}


def is_unused_parameter(name: str, method: Method) -> bool:
    # Leading underscore marks a parameter as intentionally unused.
    if name.startswith("_"):
        return False
    pattern = re.compile(rf"(?<![\w.]){re.escape(name)}\b")
    return not any(pattern.search(line.content) for line in method.lines if line.is_code)


def looks_abstract(klass: Class) -> bool:
    for method in klass.methods:
        if method.loc > 2 or is_entry_point(method):
            continue
        body = method.body_text.lower().strip()
        if body == "" or PASS_STATEMENT.search(body) or "placeholder" in body:
            return True
    return False


class SpeculativeGeneralityDetector(SmellDetector):
    """Unused methods and parameters, and abstract-looking classes with at most one subclass.

    A method is unused when no call edge anywhere in the project ends in its
    name and it is not an engine callback or signal handler.
    """

    name = "SpeculativeGenerality"
    description = "Code written for future needs that never arrived"
    scopes = frozenset({ScopeKind.CLASS, ScopeKind.PROJECT})
    defaults = {"unused_methods": 0, "unused_parameters": 0}

    def evaluate(
        self,
        scope: Union[ClassScope, ProjectScope],
        thresholds: Dict[str, Any],
    ) -> SmellResult:
        project = scope.project
        referenced = referenced_names(project)
        classes = [scope.cls] if isinstance(scope, ClassScope) else list(project.classes)

        unused_methods: List[UnusedMethod] = []
        unused_params: List[UnusedParameter] = []
        abstract: List[str] = []
        for klass in classes:
            own = klass.name.value
            for method in klass.methods:
                if method.name.value not in referenced and not is_entry_point(method):
                    unused_methods.append(UnusedMethod(own, method.name.value, method.loc))
                for param in method.parameters:
                    if is_unused_parameter(param.name.value, method):
                        unused_params.append(UnusedParameter(
                            own, method.name.value, param.name.value, param.type_name,
                        ))
            if looks_abstract(klass) and len(project.subclasses_of(own)) <= 1:
                abstract.append(own)

        detected = (
            len(unused_methods) > self.threshold(thresholds, "unused_methods")
            or len(unused_params) > self.threshold(thresholds, "unused_parameters")
            or bool(abstract)
        )
        severity = grade([
            (len(unused_methods) > 5, Severity.HIGH),
            (len(unused_methods) > 2 or len(unused_params) > 3, Severity.MEDIUM),
        ])
        details = SpeculativeGeneralityDetails(
            unused_methods=tuple(unused_methods),
            unused_parameters=tuple(unused_params),
            abstract_classes=tuple(abstract),
            thresholds=self.configured(thresholds),
        )
        return self.result(detected, severity, scope.location(), details)


# ===================================================================
# Comments
# ===================================================================

@dataclass(frozen=True)
class CommentsDetails(SmellDetails):
    comment_lines: int
    code_lines: int
    total_lines: int
    comment_density: float
    comment_ratio: float
    thresholds: Dict[str, Any]


class CommentsDetector(SmellDetector):
    name = "Comments"
    description = "Comments used as deodorant for code that should explain itself"
    scopes = frozenset({ScopeKind.METHOD, ScopeKind.CLASS})
    defaults = {"max_comment_density": 0.5, "min_non_blank_lines": 10}
    ratio_keys = frozenset({"max_comment_density"})

    def evaluate(
        self,
        scope: Union[MethodScope, ClassScope],
        thresholds: Dict[str, Any],
    ) -> SmellResult:
        if isinstance(scope, MethodScope):
            stats: CommentStats = metrics.comment_density(scope.method.lines)
        else:
            stats = metrics.class_comment_density(scope.cls)
        location: Location = scope.location()

        detected = (
            stats.density > self.threshold(thresholds, "max_comment_density")
            and stats.total_lines > self.threshold(thresholds, "min_non_blank_lines")
        )
        severity = grade([(stats.density > 0.7, Severity.MEDIUM)])
        details = CommentsDetails(
            comment_lines=stats.comment_lines,
            code_lines=stats.code_lines,
            total_lines=stats.total_lines,
            comment_density=round(stats.density, 4),
            comment_ratio=round(stats.ratio, 4),
            thresholds=self.configured(thresholds),
        )
        return self.result(detected, severity, location, details)
