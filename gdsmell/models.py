"""Immutable code model shared by the metric engine, detectors and reports.

The model is built once per analysis run (normally by :mod:`gdsmell.parser`)
and is never mutated afterwards.  Every entity validates itself in
``__post_init__`` and raises :class:`ModelError` on malformed input, which
aborts the construction of the whole project before any detector runs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

from . import metrics

YIELD_PATTERN = re.compile(r"\b(?:yield|await)\b")
ACCESSOR_PREFIXES = ("get_", "set_", "is_", "has_")

# Marker for parameters declared without a type annotation.
UNTYPED: Optional[str] = None


class ModelError(ValueError):
    """Raised when a code model entity cannot be constructed."""


def _set(obj: Any, name: str, value: Any) -> None:
    object.__setattr__(obj, name, value)


def _identifiers(values: Iterable[Union["Identifier", str]], what: str) -> FrozenSet["Identifier"]:
    try:
        return frozenset(Identifier.of(value) for value in values)
    except TypeError as exc:
        raise ModelError(f"{what} must be an iterable of identifiers") from exc


# ---------------------------------------------------------------------------
# Leaf values
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Identifier:
    """Non-empty name token (class, method, field or parameter name)."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value.strip():
            raise ModelError(f"Identifier must be a non-empty string, got {self.value!r}")
        _set(self, "value", self.value.strip())

    @classmethod
    def of(cls, value: Union["Identifier", str]) -> "Identifier":
        return value if isinstance(value, Identifier) else cls(value)

    @property
    def is_private(self) -> bool:
        return self.value.startswith("_")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SourceLine:
    """One physical source line.

    ``text`` keeps the original indentation so block structure (match arms,
    if/elif chains, conditional bodies) can be recovered; ``content`` is the
    stripped text most checks work on.
    """

    text: str
    line_number: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.text, str):
            raise ModelError(f"Source line text must be a string, got {type(self.text).__name__}")
        _set(self, "text", self.text.rstrip("\r\n"))
        if self.line_number is not None and self.line_number < 1:
            raise ModelError(f"Line numbers start at 1, got {self.line_number}")

    @property
    def content(self) -> str:
        return self.text.strip()

    @property
    def indent(self) -> int:
        return metrics.indent_of(self.text)

    @property
    def is_blank(self) -> bool:
        return not self.content

    @property
    def is_comment(self) -> bool:
        content = self.content
        return content.startswith("#") or content.startswith("//")

    @property
    def is_code(self) -> bool:
        return not self.is_blank and not self.is_comment

    def contains(self, substring: str) -> bool:
        return substring in self.text

    @property
    def has_yield_or_await(self) -> bool:
        return self.is_code and bool(YIELD_PATTERN.search(self.content))

    def __str__(self) -> str:
        return self.content


@dataclass(frozen=True)
class Parameter:
    name: Identifier
    type_name: Optional[str] = UNTYPED
    default_value: Optional[str] = None

    def __post_init__(self) -> None:
        _set(self, "name", Identifier.of(self.name))
        if self.type_name is not None and not str(self.type_name).strip():
            _set(self, "type_name", UNTYPED)

    @property
    def is_typed(self) -> bool:
        return self.type_name is not UNTYPED

    @property
    def has_default(self) -> bool:
        return self.default_value is not None

    @property
    def signature(self) -> str:
        text = self.name.value
        if self.is_typed:
            text += f": {self.type_name}"
        if self.has_default:
            text += f" = {self.default_value}"
        return text


@dataclass(frozen=True, order=True)
class CallEdge:
    """Call from a method of ``caller`` (a class name) to ``callee``.

    ``callee`` is qualified the way it appears in source: ``Other.method``,
    ``super.method``, ``variable.method`` or a bare ``method``.
    """

    caller: str
    callee: str

    def __post_init__(self) -> None:
        if not self.caller or not self.callee:
            raise ModelError("Call edges need both a caller and a callee")

    @property
    def qualifier(self) -> str:
        return self.callee.rsplit(".", 1)[0] if "." in self.callee else ""

    @property
    def target(self) -> str:
        return self.callee.rsplit(".", 1)[-1]


@dataclass(frozen=True, order=True)
class FieldAccess:
    owner: str
    field: str

    def __post_init__(self) -> None:
        if not self.owner or not self.field:
            raise ModelError("Field accesses need both an owner and a field name")

    @property
    def is_private(self) -> bool:
        return self.field.startswith("_")


# ---------------------------------------------------------------------------
# Methods and classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Method:
    name: Identifier
    parameters: Tuple[Parameter, ...] = ()
    lines: Tuple[SourceLine, ...] = ()
    calls: FrozenSet[CallEdge] = frozenset()
    field_accesses: FrozenSet[FieldAccess] = frozenset()
    start_line: Optional[int] = None

    def __post_init__(self) -> None:
        _set(self, "name", Identifier.of(self.name))
        _set(self, "parameters", tuple(self.parameters))
        _set(self, "lines", tuple(
            line if isinstance(line, SourceLine) else SourceLine(line) for line in self.lines
        ))
        _set(self, "calls", frozenset(self.calls))
        _set(self, "field_accesses", frozenset(self.field_accesses))
        for param in self.parameters:
            if not isinstance(param, Parameter):
                raise ModelError(f"Method {self.name} has a malformed parameter: {param!r}")
        for edge in self.calls:
            if not isinstance(edge, CallEdge):
                raise ModelError(f"Method {self.name} has a malformed call edge: {edge!r}")
        for access in self.field_accesses:
            if not isinstance(access, FieldAccess):
                raise ModelError(f"Method {self.name} has a malformed field access: {access!r}")

    @property
    def loc(self) -> int:
        return len(self.lines)

    @property
    def cyclomatic_complexity(self) -> int:
        return metrics.cyclomatic_complexity(self.lines)

    @property
    def yield_count(self) -> int:
        return metrics.yield_count(self.lines)

    @property
    def parameter_names(self) -> List[str]:
        return [param.name.value for param in self.parameters]

    @property
    def is_getter_or_setter(self) -> bool:
        """Named like an accessor (get_, set_, is_, has_) and three lines or fewer."""
        return self.name.value.lower().startswith(ACCESSOR_PREFIXES) and self.loc <= 3

    @property
    def signature(self) -> str:
        params = ", ".join(param.signature for param in self.parameters)
        return f"{self.name}({params})"

    @property
    def body_text(self) -> str:
        return " ".join(line.content for line in self.lines)

    def calls_method(self, callee: str) -> bool:
        return any(edge.callee == callee for edge in self.calls)

    def accesses_field(self, owner: str, field_name: str) -> bool:
        return FieldAccess(owner, field_name) in self.field_accesses

    def __str__(self) -> str:
        return self.name.value


@dataclass(frozen=True)
class Class:
    name: Identifier
    fields: FrozenSet[Identifier] = frozenset()
    methods: Tuple[Method, ...] = ()
    parent: Optional[Identifier] = None
    exported_fields: FrozenSet[Identifier] = frozenset()
    autoload: bool = False
    file_path: Optional[str] = None
    typed_fields: FrozenSet[Identifier] = frozenset()

    def __post_init__(self) -> None:
        _set(self, "name", Identifier.of(self.name))
        if self.parent is not None:
            _set(self, "parent", Identifier.of(self.parent))
        _set(self, "fields", _identifiers(self.fields, "fields"))
        _set(self, "exported_fields", _identifiers(self.exported_fields, "exported fields"))
        _set(self, "typed_fields", _identifiers(self.typed_fields, "typed fields"))
        _set(self, "methods", tuple(self.methods))
        for method in self.methods:
            if not isinstance(method, Method):
                raise ModelError(f"Class {self.name} has a malformed method: {method!r}")

    @property
    def total_loc(self) -> int:
        return sum(method.loc for method in self.methods)

    @property
    def method_count(self) -> int:
        return len(self.methods)

    @property
    def field_count(self) -> int:
        return len(self.fields)

    @property
    def field_names(self) -> List[str]:
        return sorted(f.value for f in self.fields)

    @property
    def method_names(self) -> List[str]:
        return [method.name.value for method in self.methods]

    @property
    def untyped_fields(self) -> List[str]:
        return sorted(f.value for f in self.fields - self.typed_fields)

    @property
    def private_fields(self) -> List[str]:
        return sorted(f.value for f in self.fields if f.is_private)

    @property
    def public_fields(self) -> List[str]:
        return sorted(f.value for f in self.fields if not f.is_private)

    def get_method(self, name: str) -> Optional[Method]:
        for method in self.methods:
            if method.name.value == name:
                return method
        return None

    def has_method(self, name: str) -> bool:
        return self.get_method(name) is not None

    def is_parent_of(self, other: "Class") -> bool:
        return other.parent is not None and other.parent == self.name

    def coupling(self, project_classes: Iterable["Class"]) -> int:
        return metrics.coupling_between_objects(self, project_classes)

    def lack_of_cohesion(self) -> int:
        return metrics.lack_of_cohesion(self)

    def __str__(self) -> str:
        return self.name.value


# ---------------------------------------------------------------------------
# Project level
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Scene:
    name: Identifier
    root_node: Optional[str] = None
    child_nodes: Tuple[str, ...] = ()
    script_path: Optional[str] = None
    file_path: Optional[str] = None

    def __post_init__(self) -> None:
        _set(self, "name", Identifier.of(self.name))
        _set(self, "child_nodes", tuple(self.child_nodes))

    @property
    def has_script(self) -> bool:
        return bool(self.script_path)

    @property
    def total_nodes(self) -> int:
        return len(self.child_nodes) + (1 if self.root_node else 0)


@dataclass(frozen=True)
class Signal:
    name: Identifier
    owner: Optional[str] = None
    parameters: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _set(self, "name", Identifier.of(self.name))
        _set(self, "parameters", tuple(self.parameters))


@dataclass(frozen=True)
class Project:
    classes: Tuple[Class, ...] = ()
    scenes: Tuple[Scene, ...] = ()
    autoloads: Tuple[Class, ...] = ()
    signals: Tuple[Signal, ...] = ()
    name: str = "project"

    def __post_init__(self) -> None:
        _set(self, "classes", tuple(self.classes))
        _set(self, "scenes", tuple(self.scenes))
        _set(self, "autoloads", tuple(self.autoloads))
        _set(self, "signals", tuple(self.signals))
        for klass in self.classes:
            if not isinstance(klass, Class):
                raise ModelError(f"Project {self.name} has a malformed class: {klass!r}")
        for autoload in self.autoloads:
            if not autoload.autoload:
                raise ModelError(f"Autoload {autoload.name} is not flagged as an autoload")
            if not any(klass is autoload or klass == autoload for klass in self.classes):
                raise ModelError(f"Autoload {autoload.name} is not one of the project classes")

    @property
    def regular_classes(self) -> List[Class]:
        return [klass for klass in self.classes if not klass.autoload]

    @property
    def class_names(self) -> List[str]:
        return [klass.name.value for klass in self.classes]

    def find_class(self, name: str) -> Optional[Class]:
        for klass in self.classes:
            if klass.name.value == name:
                return klass
        return None

    def subclasses_of(self, name: str) -> List[Class]:
        return [k for k in self.classes if k.parent is not None and k.parent.value == name]

    @property
    def total_loc(self) -> int:
        return sum(klass.total_loc for klass in self.classes)

    @property
    def method_count(self) -> int:
        return sum(klass.method_count for klass in self.classes)

    def statistics(self) -> Dict[str, Any]:
        total_classes = len(self.classes)
        return {
            "total_classes": total_classes,
            "total_scenes": len(self.scenes),
            "autoloads": len(self.autoloads),
            "regular_classes": len(self.regular_classes),
            "total_methods": self.method_count,
            "total_signals": len(self.signals),
            "total_loc": self.total_loc,
            "average_loc_per_class": round(self.total_loc / total_classes, 2) if total_classes else 0,
        }
