"""GDScript project parser producing the immutable code model.

Scripts are parsed with Tree-sitter (``tree-sitter-gdscript``).  The syntax
tree gives the structure: top-level statements of the script's class,
``func`` definitions with their parameter lists and bodies, and inner
``class X:`` blocks.  Call and field access edges are then recovered from
the body text with regular expressions and are best effort:

- ``self.foo()`` and bare ``foo()`` calls to own methods become ``Owner.foo``
- ``super.foo()`` / ``.foo()`` become ``super.foo``
- ``x.foo()`` keeps its qualifier, replaced by the declared type when ``x``
  is a typed field or parameter (``var inv: Inventory`` -> ``Inventory.foo``)
- ``Other.field`` / ``typed_var.field`` reads become field accesses on the
  owning class when that class is part of the project

Besides ``.gd`` scripts the parser reads ``.tscn`` scenes and the
``[autoload]`` table of ``project.godot``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

import tree_sitter_gdscript
from tree_sitter import Language, Parser as TSParser

from .config import PROJECT_FILE, RESOURCE_PREFIX, SCENE_EXTENSIONS, SKIP_DIRS, SUPPORTED_EXTENSIONS
from .metrics import TAB_WIDTH, code_of, indent_of
from .models import (
    CallEdge,
    Class,
    FieldAccess,
    Method,
    Parameter,
    Project,
    Scene,
    Signal,
    SourceLine,
)

logger = logging.getLogger(__name__)

GDSCRIPT = Language(tree_sitter_gdscript.language())

INFERRED_TYPE = "inferred"

FUNCTION_NODES = {"function_definition", "constructor_definition"}
CLASS_NODES = {"class_definition"}

CLASS_NAME_RE = re.compile(r"^class_name\s+([A-Za-z_]\w*)")
EXTENDS_RE = re.compile(r"\bextends\s+([\w.]+|\"[^\"]*\"|'[^']*')")
FUNC_RE = re.compile(r"(?:^|\s)func\s+([A-Za-z_]\w*)\s*\(")
SIGNAL_RE = re.compile(r"^signal\s+([A-Za-z_]\w*)")
ANNOTATION_LINE_RE = re.compile(r"^(?:@\w+(?:\([^)]*\))?\s*)+$")
VAR_RE = re.compile(
    r"^(?P<annotations>(?:@\w+(?:\([^)]*\))?\s+)*)"
    r"(?P<export>export\b(?:\s*\([^)]*\))?\s+)?"
    r"(?:onready\s+)?(?:static\s+)?"
    r"var\s+(?P<name>[A-Za-z_]\w*)(?P<rest>.*)$"
)

SELF_CALL = re.compile(r"\bself\s*\.\s*([A-Za-z_]\w*)\s*\(")
SUPER_CALL = re.compile(r"\bsuper\s*\.\s*([A-Za-z_]\w*)\s*\(")
SUPER_BARE_CALL = re.compile(r"\bsuper\s*\(")
LEGACY_SUPER_CALL = re.compile(r"(?:^|[\s(=,\[])\.([A-Za-z_]\w*)\s*\(")
QUALIFIED_CALL = re.compile(r"(?<![\w.$])([A-Za-z_]\w*)\s*\.\s*([A-Za-z_]\w*)\s*\(")
BARE_CALL = re.compile(r"(?<![\w.$])([A-Za-z_]\w*)\s*\(")
QUALIFIED_ATTR = re.compile(r"(?<![\w.$])([A-Za-z_]\w*)\.([A-Za-z_]\w*)\b(?!\s*\()")
CONNECT_LEGACY = re.compile(r"""connect\s*\(\s*["'][^"']*["']\s*,\s*self\s*,\s*["'](\w+)["']""")
CONNECT_CALLABLE = re.compile(r"\.connect\s*\(\s*(?:self\.)?([A-Za-z_]\w*)\s*[,)]")

NODE_HEADER_RE = re.compile(r"^\[node\s+(.*)\]\s*$")
EXT_RESOURCE_RE = re.compile(r"^\[ext_resource\s+(.*)\]\s*$")
ATTRIBUTE_RE = re.compile(r"""(\w+)\s*=\s*(?:"([^"]*)"|([^\s\]]+))""")
SCRIPT_PROPERTY_RE = re.compile(r"""^script\s*=\s*ExtResource\(\s*"?([^")\s]+)"?\s*\)""")
SECTION_RE = re.compile(r"^\[([^\]]+)\]\s*$")
KEY_VALUE_RE = re.compile(r"""^([\w/]+)\s*=\s*"?(.*?)"?\s*$""")

KEYWORDS: Set[str] = {
    "if", "elif", "else", "for", "while", "match", "return", "and", "or", "not",
    "in", "is", "as", "func", "var", "const", "await", "yield", "assert", "self",
    "super", "signal", "class", "extends", "pass", "break", "continue", "breakpoint",
}
BUILTIN_FUNCTIONS: Set[str] = {
    "print", "prints", "printt", "printerr", "print_debug", "push_error", "push_warning",
    "str", "int", "float", "bool", "len", "range", "preload", "load", "typeof", "abs",
    "min", "max", "clamp", "clampf", "clampi", "lerp", "lerpf", "sqrt", "pow", "floor",
    "ceil", "round", "sign", "randi", "randf", "randi_range", "randf_range", "randomize",
    "is_instance_valid", "weakref", "funcref", "deg_to_rad", "rad_to_deg", "deg2rad",
    "rad2deg", "sin", "cos", "tan", "atan2", "fmod", "posmod", "wrapf", "wrapi", "hash",
    "instance_from_id", "str_to_var", "var_to_str", "get_node", "get_tree", "get_parent",
    "emit_signal", "has_method", "call_deferred", "queue_free", "connect",
}
ENGINE_SINGLETONS: Set[str] = {
    "Input", "OS", "Engine", "Time", "ProjectSettings", "ResourceLoader", "ResourceSaver",
    "Performance", "DisplayServer", "AudioServer", "PhysicsServer2D", "PhysicsServer3D",
    "RenderingServer", "VisualServer", "ClassDB", "JSON", "InputMap", "TranslationServer",
    "IP", "Marshalls", "JavaClassWrapper", "JavaScriptBridge", "NavigationServer2D",
    "NavigationServer3D", "ThemeDB", "EditorInterface",
}


@dataclass
class ParsedScript:
    """Classes and signals declared by one ``.gd`` file."""

    classes: List[Class] = field(default_factory=list)
    signals: List[Signal] = field(default_factory=list)


@dataclass
class _MethodDraft:
    name: str
    parameters: List[Parameter]
    lines: List[SourceLine]
    start_line: int


@dataclass
class _ClassDraft:
    name: str
    parent: Optional[str] = None
    fields: List[str] = field(default_factory=list)
    typed_fields: Set[str] = field(default_factory=set)
    exported_fields: Set[str] = field(default_factory=set)
    field_types: Dict[str, str] = field(default_factory=dict)
    methods: List[_MethodDraft] = field(default_factory=list)
    signals: List[Signal] = field(default_factory=list)
    inner: List["_ClassDraft"] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

def pascal_case(stem: str) -> str:
    """``player_controller`` -> ``PlayerController``."""
    parts = re.split(r"[^A-Za-z0-9]+", stem)
    return "".join(part[:1].upper() + part[1:] for part in parts if part) or "Script"


def resource_to_relative(path: str) -> str:
    path = path.strip().lstrip("*")
    if path.startswith(RESOURCE_PREFIX):
        path = path[len(RESOURCE_PREFIX):]
    return path.lstrip("/")


def parse_parameter(text: str) -> Optional[Parameter]:
    """Parse ``name``, ``name: Type``, ``name := value`` or ``name: Type = value``."""
    head, eq, default = text.partition("=")
    head = head.strip()
    inferred = bool(eq) and head.endswith(":")
    head = head.rstrip(":").strip()
    name, _, type_name = head.partition(":")
    name = name.strip()
    if not re.fullmatch(r"[A-Za-z_]\w*", name):
        return None
    type_text = type_name.strip() or (INFERRED_TYPE if inferred else None)
    return Parameter(name, type_text, default.strip() if eq else None)


def _unquote(value: str) -> str:
    return value.strip().strip("\"'")


# ---------------------------------------------------------------------------
# Syntax tree helpers
# ---------------------------------------------------------------------------

def _text(node: Any) -> str:
    return node.text.decode("utf-8")


def _flat(node: Any) -> str:
    """Node text on one line, for statements that wrap."""
    return " ".join(part.strip() for part in _text(node).splitlines() if part.strip())


def _child(node: Any, field_name: str, node_type: str) -> Optional[Any]:
    found = node.child_by_field_name(field_name)
    if found is not None:
        return found
    return next((child for child in node.children if child.type == node_type), None)


def _first_error_line(node: Any) -> int:
    if node.type == "ERROR" or node.is_missing:
        return node.start_point[0] + 1
    for child in node.children:
        if child.has_error:
            return _first_error_line(child)
    return node.start_point[0] + 1


def _iter_nodes(node: Any, types: Set[str]) -> Iterable[Any]:
    if node.type in types:
        yield node
    for child in node.children:
        yield from _iter_nodes(child, types)


def _parameter_nodes(node: Any) -> List[Any]:
    params = _child(node, "parameters", "parameters")
    if params is None:
        return []
    return [child for child in params.named_children if child.type != "comment"]


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class GDScriptParser:
    """Builds a :class:`~gdsmell.models.Project` from a Godot project directory."""

    def __init__(self, project_root: Path) -> None:
        self.project_root = Path(project_root)
        self.files_parsed = 0
        self.files_skipped = 0
        self._parser = TSParser(GDSCRIPT)

    # ------------------------------------------------------------------
    # Project level
    # ------------------------------------------------------------------

    def parse_project(self) -> Project:
        """Parse every script and scene under the project root."""
        self.files_parsed = self.files_skipped = 0
        autoload_paths = self.read_autoloads()

        sources: Dict[str, str] = {}
        for file_path in self.iter_files(SUPPORTED_EXTENSIONS):
            relative = file_path.relative_to(self.project_root).as_posix()
            try:
                sources[relative] = file_path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Failed to read %s: %s", file_path, exc)
                self.files_skipped += 1

        trees = {relative: self.parse_tree(source) for relative, source in sources.items()}
        script_names = {
            relative: self.script_class_name(tree.root_node, relative, autoload_paths.get(relative))
            for relative, tree in trees.items()
        }
        known: Set[str] = set(script_names.values()) | set(autoload_paths.values())
        for tree in trees.values():
            for node in _iter_nodes(tree.root_node, CLASS_NODES):
                name = _child(node, "name", "name")
                if name is not None:
                    known.add(_text(name))

        classes: List[Class] = []
        autoloads: List[Class] = []
        signals: List[Signal] = []
        for relative, source in sources.items():
            try:
                parsed = self._parse_script(
                    trees[relative],
                    source,
                    relative,
                    autoload_name=autoload_paths.get(relative),
                    known_classes=known,
                    script_names=script_names,
                )
            except Exception as exc:
                logger.warning("Failed to parse %s: %s", relative, exc)
                self.files_skipped += 1
                continue
            self.files_parsed += 1
            classes.extend(parsed.classes)
            signals.extend(parsed.signals)
            if relative in autoload_paths and parsed.classes:
                autoloads.append(parsed.classes[0])

        scenes: List[Scene] = []
        for file_path in self.iter_files(SCENE_EXTENSIONS):
            relative = file_path.relative_to(self.project_root).as_posix()
            try:
                scenes.append(self.parse_scene(file_path.read_text(encoding="utf-8"), relative))
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Failed to read scene %s: %s", file_path, exc)

        return Project(
            classes=tuple(classes),
            scenes=tuple(scenes),
            autoloads=tuple(autoloads),
            signals=tuple(signals),
            name=self.project_name(),
        )

    def iter_files(self, extensions: Iterable[str]) -> List[Path]:
        wanted = set(extensions)
        found: List[Path] = []
        for file_path in sorted(self.project_root.rglob("*")):
            if file_path.suffix not in wanted or not file_path.is_file():
                continue
            parts = file_path.relative_to(self.project_root).parts[:-1]
            if any(part in SKIP_DIRS or part.startswith(".") for part in parts):
                continue
            found.append(file_path)
        return found

    def _project_sections(self) -> Dict[str, Dict[str, str]]:
        project_file = self.project_root / PROJECT_FILE
        sections: Dict[str, Dict[str, str]] = {}
        if not project_file.exists():
            return sections
        try:
            text = project_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Failed to read %s: %s", project_file, exc)
            return sections
        current = ""
        for raw in text.splitlines():
            line = raw.strip()
            if not line or line.startswith(";"):
                continue
            section = SECTION_RE.match(line)
            if section:
                current = section.group(1).strip()
                continue
            pair = KEY_VALUE_RE.match(line)
            if pair:
                sections.setdefault(current, {})[pair.group(1)] = pair.group(2)
        return sections

    def read_autoloads(self) -> Dict[str, str]:
        """Map of script path (relative, posix) -> autoload name from ``project.godot``."""
        autoloads: Dict[str, str] = {}
        for name, value in self._project_sections().get("autoload", {}).items():
            relative = resource_to_relative(value)
            if Path(relative).suffix in SUPPORTED_EXTENSIONS:
                autoloads[relative] = name
        return autoloads

    def project_name(self) -> str:
        name = self._project_sections().get("application", {}).get("config/name")
        return name or self.project_root.resolve().name

    # ------------------------------------------------------------------
    # Scenes
    # ------------------------------------------------------------------

    def parse_scene(self, source: str, file_path: str) -> Scene:
        """Read the node tree and root script of a ``.tscn`` scene."""
        scripts: Dict[str, str] = {}
        root: Optional[str] = None
        children: List[str] = []
        script_path: Optional[str] = None
        in_root = False
        for raw in source.splitlines():
            line = raw.strip()
            resource = EXT_RESOURCE_RE.match(line)
            if resource:
                attrs = {k: a or b for k, a, b in ATTRIBUTE_RE.findall(resource.group(1))}
                if attrs.get("type") == "Script" and "id" in attrs and "path" in attrs:
                    scripts[attrs["id"]] = resource_to_relative(attrs["path"])
                continue
            node = NODE_HEADER_RE.match(line)
            if node:
                attrs = {k: a or b for k, a, b in ATTRIBUTE_RE.findall(node.group(1))}
                name = attrs.get("name", "")
                if "parent" not in attrs and root is None:
                    root, in_root = name, True
                else:
                    children.append(name)
                    in_root = False
                continue
            if line.startswith("["):
                in_root = False
                continue
            script = SCRIPT_PROPERTY_RE.match(line)
            if script and in_root:
                script_path = scripts.get(script.group(1))
        return Scene(
            name=Path(file_path).stem,
            root_node=root,
            child_nodes=tuple(children),
            script_path=script_path,
            file_path=file_path,
        )

    # ------------------------------------------------------------------
    # Scripts
    # ------------------------------------------------------------------

    def parse_tree(self, source: str) -> Any:
        return self._parser.parse(source.encode("utf-8"))

    @staticmethod
    def script_class_name(root: Any, file_path: str, autoload_name: Optional[str] = None) -> str:
        """``class_name`` if declared, else the autoload name, else the PascalCased file stem."""
        for node in root.named_children:
            match = CLASS_NAME_RE.match(_flat(node))
            if match:
                return match.group(1)
        return autoload_name or pascal_case(Path(file_path).stem)

    def parse_source(
        self,
        source: str,
        file_path: str,
        autoload_name: Optional[str] = None,
        known_classes: Optional[Set[str]] = None,
        script_names: Optional[Dict[str, str]] = None,
    ) -> ParsedScript:
        """Parse one script into its top-level class plus any inner classes.

        Field accesses on other classes are kept only for names in
        *known_classes* when it is given.  A script with syntax errors
        raises ``ValueError``.
        """
        return self._parse_script(
            self.parse_tree(source), source, file_path, autoload_name, known_classes, script_names
        )

    def _parse_script(
        self,
        tree: Any,
        source: str,
        file_path: str,
        autoload_name: Optional[str] = None,
        known_classes: Optional[Set[str]] = None,
        script_names: Optional[Dict[str, str]] = None,
    ) -> ParsedScript:
        root = tree.root_node
        if root.has_error:
            raise ValueError(f"syntax error near line {_first_error_line(root)}")

        lines = [line.rstrip("\r") for line in source.split("\n")]
        draft = _ClassDraft(name=self.script_class_name(root, file_path, autoload_name))
        self._scan(root, lines, draft)
        if draft.parent and draft.parent[:1] in "\"'":
            parent_path = resource_to_relative(_unquote(draft.parent))
            draft.parent = (script_names or {}).get(parent_path) or pascal_case(Path(parent_path).stem)

        parsed = ParsedScript()
        self._build(draft, file_path, autoload_name is not None, known_classes, parsed)
        return parsed

    def _scan(self, container: Any, lines: List[str], draft: _ClassDraft) -> None:
        """Collect the members declared directly in *container* (script root or class body)."""
        pending_export = False
        for node in container.named_children:
            if node.type == "comment":
                continue
            if node.type in FUNCTION_NODES:
                self._add_method(node, lines, draft)
                pending_export = False
                continue
            if node.type in CLASS_NODES:
                self._add_inner_class(node, lines, draft)
                pending_export = False
                continue

            text = _flat(node)
            if ANNOTATION_LINE_RE.match(text):
                pending_export = pending_export or "@export" in text
                continue

            variable = VAR_RE.match(text)
            if variable:
                self._add_field(draft, variable, pending_export)
            elif text.startswith("class_name") or text.startswith("extends"):
                extends = EXTENDS_RE.search(text)
                if extends:
                    draft.parent = extends.group(1)
            else:
                signal = SIGNAL_RE.match(text)
                if signal:
                    params = [
                        param.name.value
                        for param in (parse_parameter(_text(child)) for child in _parameter_nodes(node))
                        if param is not None
                    ]
                    draft.signals.append(Signal(signal.group(1), owner=draft.name, parameters=tuple(params)))
            pending_export = False

    @staticmethod
    def _add_field(draft: _ClassDraft, match: "re.Match[str]", pending_export: bool) -> None:
        name = match.group("name")
        rest = match.group("rest").strip()
        if name not in draft.fields:
            draft.fields.append(name)
        if pending_export or match.group("export") or "@export" in match.group("annotations"):
            draft.exported_fields.add(name)
        if rest.startswith(":"):
            draft.typed_fields.add(name)
            declared = re.match(r":\s*([A-Za-z_][\w.]*)", rest)
            if declared:
                draft.field_types[name] = declared.group(1)

    def _add_inner_class(self, node: Any, lines: List[str], draft: _ClassDraft) -> None:
        body = _child(node, "body", "class_body")
        header = _text(node) if body is None else node.text[: body.start_byte - node.start_byte].decode("utf-8")
        name_node = _child(node, "name", "name")
        if name_node is not None:
            name = _text(name_node)
        else:
            match = re.match(r"\s*class\s+([A-Za-z_]\w*)", header)
            if match is None:
                raise ValueError(f"class without a name at line {node.start_point[0] + 1}")
            name = match.group(1)
        extends = EXTENDS_RE.search(header)
        child = _ClassDraft(name=name, parent=extends.group(1) if extends else None)
        if body is not None:
            self._scan(body, lines, child)
        draft.inner.append(child)

    def _add_method(self, node: Any, lines: List[str], draft: _ClassDraft) -> None:
        name_node = _child(node, "name", "name")
        if name_node is not None:
            name = _text(name_node)
            start_row = name_node.start_point[0]
        else:
            match = FUNC_RE.search(_flat(node))
            if match is None:
                raise ValueError(f"function without a name at line {node.start_point[0] + 1}")
            name = match.group(1)
            start_row = node.start_point[0]

        parameters = [
            param
            for param in (parse_parameter(_text(child)) for child in _parameter_nodes(node))
            if param is not None
        ]
        body = _child(node, "body", "body")
        member_indent = indent_of(lines[start_row])
        body_lines = self._body_lines(body, lines, member_indent) if body is not None else []
        draft.methods.append(_MethodDraft(name, parameters, body_lines, start_row + 1))

    @staticmethod
    def _body_lines(body: Any, lines: List[str], member_indent: int) -> List[SourceLine]:
        """Non-blank source lines of a function body.

        Comments indented past the ``func`` keyword after the last statement
        still belong to the body; comments dedented to it or further do not.
        """
        start_row = body.start_point[0]
        end_row = body.end_point[0]
        if body.end_point[1] == 0 and end_row > start_row:
            end_row -= 1

        result: List[SourceLine] = []
        row_bytes = lines[start_row].encode("utf-8")
        column = body.start_point[1]
        if row_bytes[:column].strip():
            # body starts on the header line: ``func f(): return 1``
            inline = row_bytes[column:].decode("utf-8").strip()
            if inline and not inline.startswith("#"):
                result.append(SourceLine(" " * (member_indent + TAB_WIDTH) + inline, start_row + 1))
            start_row += 1

        for row in range(end_row + 1, len(lines)):
            stripped = lines[row].strip()
            if not stripped:
                continue
            if stripped.startswith("#") and indent_of(lines[row]) > member_indent:
                end_row = row
                continue
            break
        while end_row >= start_row:
            stripped = lines[end_row].strip()
            if stripped and not (stripped.startswith("#") and indent_of(lines[end_row]) <= member_indent):
                break
            end_row -= 1

        for row in range(start_row, end_row + 1):
            if lines[row].strip():
                result.append(SourceLine(lines[row], row + 1))
        return result

    # ------------------------------------------------------------------
    # Model construction
    # ------------------------------------------------------------------

    def _build(
        self,
        draft: _ClassDraft,
        file_path: str,
        autoload: bool,
        known_classes: Optional[Set[str]],
        parsed: ParsedScript,
    ) -> None:
        method_names = {method.name for method in draft.methods}
        methods = []
        for method in draft.methods:
            aliases = {
                name: type_name
                for name, type_name in draft.field_types.items()
                if type_name[:1].isupper()
            }
            for param in method.parameters:
                if param.is_typed and param.type_name[:1].isupper():
                    aliases[param.name.value] = param.type_name
            calls, accesses = self.extract_edges(
                draft.name,
                method.name,
                method.lines,
                method_names,
                draft.fields,
                aliases,
                known_classes,
            )
            methods.append(Method(
                name=method.name,
                parameters=tuple(method.parameters),
                lines=tuple(method.lines),
                calls=frozenset(calls),
                field_accesses=frozenset(accesses),
                start_line=method.start_line,
            ))

        parsed.classes.append(Class(
            name=draft.name,
            fields=frozenset(draft.fields),
            methods=tuple(methods),
            parent=draft.parent,
            exported_fields=frozenset(draft.exported_fields),
            autoload=autoload,
            file_path=file_path,
            typed_fields=frozenset(draft.typed_fields),
        ))
        parsed.signals.extend(draft.signals)
        for inner in draft.inner:
            self._build(inner, file_path, False, known_classes, parsed)

    @staticmethod
    def extract_edges(
        owner: str,
        method_name: str,
        lines: Iterable[SourceLine],
        method_names: Set[str],
        field_names: Iterable[str],
        aliases: Dict[str, str],
        known_classes: Optional[Set[str]] = None,
    ) -> Tuple[Set[CallEdge], Set[FieldAccess]]:
        """Best-effort call and field-access edges for one method body."""
        calls: Set[CallEdge] = set()
        accesses: Set[FieldAccess] = set()
        own_fields = [
            (name, re.compile(rf"(?:\bself\.|(?<![\w.$])){re.escape(name)}\b(?!\s*\()"))
            for name in field_names
        ]

        for line in lines:
            if not line.is_code:
                continue
            for target in CONNECT_LEGACY.findall(line.content):
                calls.add(CallEdge(owner, f"{owner}.{target}"))
            code = code_of(line.content)

            for target in CONNECT_CALLABLE.findall(code):
                if target in method_names:
                    calls.add(CallEdge(owner, f"{owner}.{target}"))
            for target in SUPER_CALL.findall(code) + LEGACY_SUPER_CALL.findall(code):
                calls.add(CallEdge(owner, f"super.{target}"))
            if SUPER_BARE_CALL.search(code):
                calls.add(CallEdge(owner, f"super.{method_name}"))
            for target in SELF_CALL.findall(code):
                calls.add(CallEdge(owner, f"{owner}.{target}"))
            for qualifier, target in QUALIFIED_CALL.findall(code):
                if qualifier in ("self", "super") or qualifier in ENGINE_SINGLETONS:
                    continue
                calls.add(CallEdge(owner, f"{aliases.get(qualifier, qualifier)}.{target}"))
            for target in BARE_CALL.findall(code):
                if target in KEYWORDS or target in BUILTIN_FUNCTIONS or target[:1].isupper():
                    continue
                calls.add(CallEdge(owner, f"{owner}.{target}" if target in method_names else target))

            for name, pattern in own_fields:
                if pattern.search(code):
                    accesses.add(FieldAccess(owner, name))
            for qualifier, attribute in QUALIFIED_ATTR.findall(code):
                if qualifier in ("self", "super") or attribute.isupper():
                    continue
                resolved = aliases.get(qualifier) or (qualifier if qualifier[:1].isupper() else None)
                if resolved is None or resolved in ENGINE_SINGLETONS:
                    continue
                if known_classes is not None and resolved not in known_classes and resolved != owner:
                    continue
                accesses.add(FieldAccess(resolved, attribute))
        return calls, accesses
