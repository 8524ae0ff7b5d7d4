"""Pure metric functions over the code model.

Nothing here reads files or mutates the model; the functions take model
entities (or plain line sequences) and return numbers or small records.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from itertools import combinations
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence, Set, Tuple

if TYPE_CHECKING:  # pragma: no cover
    from .models import CallEdge, Class, Project, SourceLine

TAB_WIDTH = 4

DECISION_PATTERN = re.compile(
    r"\b(?:if|elif|else\s+if|while|for|match|switch|and|or)\b|&&|\|\|"
)
CONDITIONAL_HEADER = re.compile(r"^(?:if|elif|else|match|while)\b")
STRING_LITERAL = re.compile(r'"(?:[^"\\]|\\.)*"|\'(?:[^\'\\]|\\.)*\'')


def indent_of(text: str) -> int:
    """Width of the leading whitespace of *text*; a tab counts as four columns."""
    width = 0
    for char in text:
        if char == " ":
            width += 1
        elif char == "\t":
            width += TAB_WIDTH
        else:
            break
    return width


def strip_string_literals(text: str) -> str:
    """Replace the body of every string literal in *text* with nothing."""
    return STRING_LITERAL.sub('""', text)


def strip_comment(text: str) -> str:
    """Drop a trailing ``#`` comment; string literals must already be stripped."""
    index = text.find("#")
    return text if index < 0 else text[:index]


def strip_trailing_comment(text: str) -> str:
    """Drop a trailing ``#`` comment, keeping string literals (and any ``#`` inside them)."""
    position = 0
    for match in STRING_LITERAL.finditer(text):
        index = text.find("#", position, match.start())
        if index >= 0:
            return text[:index]
        position = match.end()
    index = text.find("#", position)
    return text if index < 0 else text[:index]


def code_of(text: str) -> str:
    return strip_comment(strip_string_literals(text)).strip()


# ---------------------------------------------------------------------------
# Line level metrics
# ---------------------------------------------------------------------------

def cyclomatic_complexity(lines: Iterable["SourceLine"]) -> int:
    """1 + the number of code lines holding at least one decision keyword."""
    complexity = 1
    for line in lines:
        if not line.is_code:
            continue
        if DECISION_PATTERN.search(code_of(line.content)):
            complexity += 1
    return complexity


def yield_count(lines: Iterable["SourceLine"]) -> int:
    return sum(1 for line in lines if line.has_yield_or_await)


@dataclass(frozen=True)
class CommentStats:
    comment_lines: int
    code_lines: int
    total_lines: int
    density: float
    ratio: float


def comment_density(lines: Iterable["SourceLine"]) -> CommentStats:
    """Share of comment lines among the non-blank lines.

    ``ratio`` is comments per code line, ``density`` comments per non-blank
    line.  Both are 0 when there is nothing to divide by.
    """
    comments = code = 0
    for line in lines:
        if line.is_blank:
            continue
        if line.is_comment:
            comments += 1
        else:
            code += 1
    total = comments + code
    return CommentStats(
        comment_lines=comments,
        code_lines=code,
        total_lines=total,
        density=comments / total if total else 0.0,
        ratio=comments / code if code else 0.0,
    )


def class_comment_density(klass: "Class") -> CommentStats:
    lines: List["SourceLine"] = []
    for method in klass.methods:
        lines.extend(method.lines)
    return comment_density(lines)


def block_similarity(first: Sequence[object], second: Sequence[object]) -> float:
    """Similarity of two line blocks.

    |set(first) & set(second)| / max(len(first), len(second)) over the
    trimmed line texts.  Two empty blocks are identical; one empty block
    shares nothing with a non-empty one.
    """
    if not first and not second:
        return 1.0
    if not first or not second:
        return 0.0
    first_set = {str(line).strip() for line in first}
    second_set = {str(line).strip() for line in second}
    return len(first_set & second_set) / max(len(first), len(second))


# ---------------------------------------------------------------------------
# Block structure helpers
# ---------------------------------------------------------------------------

def is_conditional_header(content: str) -> bool:
    return bool(CONDITIONAL_HEADER.match(content))


def enclosing_conditional(lines: Sequence["SourceLine"], index: int) -> bool:
    """True when ``lines[index]`` sits inside an if/elif/else/match/while body.

    Walks back through the less indented ancestors of the line; blank and
    comment lines never open a block.
    """
    if index <= 0 or index >= len(lines):
        return False
    current = lines[index].indent
    for position in range(index - 1, -1, -1):
        line = lines[position]
        if not line.is_code:
            continue
        if line.indent < current:
            if is_conditional_header(line.content):
                return True
            current = line.indent
    return False


# ---------------------------------------------------------------------------
# Class and project metrics
# ---------------------------------------------------------------------------

def _head(qualifier: str) -> str:
    return qualifier.split(".", 1)[0]


def references(source: "Class", target_name: str) -> bool:
    """True if a method of *source* calls into or reads fields of *target_name*."""
    for method in source.methods:
        for edge in method.calls:
            if edge.qualifier and _head(edge.qualifier) == target_name:
                return True
        for access in method.field_accesses:
            if access.owner == target_name:
                return True
    return False


def coupling_between_objects(klass: "Class", classes: Iterable["Class"]) -> int:
    """Number of other classes coupled to *klass* in either direction."""
    own = klass.name.value
    coupled: Set[str] = set()
    for other in classes:
        other_name = other.name.value
        if other_name == own or other_name in coupled:
            continue
        if references(klass, other_name) or references(other, own):
            coupled.add(other_name)
    return len(coupled)


def lack_of_cohesion(klass: "Class") -> int:
    """LCOM: max(0, non-sharing method pairs - sharing method pairs)."""
    if len(klass.methods) < 2:
        return 0
    own = klass.name.value
    declared = {f.value for f in klass.fields}
    accessed = [
        {name for name in declared if method.accesses_field(own, name)}
        for method in klass.methods
    ]
    sharing = non_sharing = 0
    for first, second in combinations(accessed, 2):
        if first & second:
            sharing += 1
        else:
            non_sharing += 1
    return max(0, non_sharing - sharing)


def class_dependencies(klass: "Class", project: "Project") -> List[str]:
    """Sorted names of the other project classes *klass* depends on."""
    own = klass.name.value
    names = set(project.class_names) - {own}
    found: Set[str] = set()
    for method in klass.methods:
        for edge in method.calls:
            head = _head(edge.qualifier) if edge.qualifier else ""
            if head in names:
                found.add(head)
        for access in method.field_accesses:
            if access.owner in names:
                found.add(access.owner)
    return sorted(found)


def _lookup_inherited(project: "Project", class_name: str, method_name: str) -> Optional[str]:
    seen: Set[str] = set()
    current = project.find_class(class_name)
    while current is not None and current.name.value not in seen:
        seen.add(current.name.value)
        if current.has_method(method_name):
            return current.name.value
        if current.parent is None:
            return None
        current = project.find_class(current.parent.value)
    return None


def resolve_callee(edge: "CallEdge", project: "Project") -> Optional[Tuple[str, str]]:
    """Map a call edge onto ``(class_name, method_name)`` by name matching.

    Resolution order: the caller's own hierarchy for bare, ``self`` and
    ``super`` calls, then a project class named like the qualifier, then a
    method name that is unique across the project.  Returns ``None`` when
    nothing matches unambiguously.
    """
    qualifier, target = edge.qualifier, edge.target
    if qualifier in ("", "self"):
        owner = _lookup_inherited(project, edge.caller, target)
        if owner is not None:
            return owner, target
    elif qualifier == "super":
        caller = project.find_class(edge.caller)
        if caller is not None and caller.parent is not None:
            owner = _lookup_inherited(project, caller.parent.value, target)
            if owner is not None:
                return owner, target
        return None
    else:
        owner = _lookup_inherited(project, qualifier, target)
        if owner is not None:
            return owner, target

    candidates = [k.name.value for k in project.classes if k.has_method(target)]
    if len(candidates) == 1:
        return candidates[0], target
    return None
