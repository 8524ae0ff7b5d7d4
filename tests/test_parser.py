"""Tests for the GDScript project parser."""

from pathlib import Path

import pytest

from gdsmell.models import CallEdge, FieldAccess
from gdsmell.parser import GDScriptParser, parse_parameter, pascal_case, resource_to_relative


GRID_SOURCE = """extends Node

class Slot:
\tvar item_name: String
\tvar count := 0

\tfunc is_empty() -> bool:
\t\treturn count == 0

func build(
\t\twidth: int,
\t\theight: int) -> void:
\tvar grid = []
\t# fill columns
\tfor x in width:
\t\tgrid.append(x)
# trailing note

func one_liner(): return 1
"""


@pytest.fixture
def parsed_sample(sample_project_path: Path):
    parser = GDScriptParser(sample_project_path)
    return parser, parser.parse_project()


def test_parser_initialization(temp_dir: Path):
    """Test parser can be initialized with a project root."""
    parser = GDScriptParser(temp_dir)
    assert parser.project_root == temp_dir
    assert parser.files_parsed == 0


def test_parse_project_classes(parsed_sample):
    """Every script outside skipped directories becomes a class."""
    parser, project = parsed_sample
    assert sorted(project.class_names) == ["Enemy", "GameManager", "Hud", "Inventory", "Player"]
    assert parser.files_parsed == 5
    assert parser.files_skipped == 0
    assert project.name == "Sample Arena"


def test_autoloads_from_project_file(parsed_sample):
    """Autoloads come from project.godot and are named after their entry."""
    _, project = parsed_sample
    assert [a.name.value for a in project.autoloads] == ["GameManager"]
    manager = project.find_class("GameManager")
    assert manager.autoload
    assert manager.file_path == "autoload/game_manager.gd"
    assert manager.parent.value == "Node"


def test_fields_exports_and_types(parsed_sample):
    """Fields, exports and type annotations are extracted."""
    _, project = parsed_sample
    player = project.find_class("Player")
    assert player.field_names == ["health", "inventory", "max_health", "speed", "target"]
    assert sorted(f.value for f in player.exported_fields) == ["max_health", "speed"]
    assert player.untyped_fields == ["target"]
    assert player.parent.value == "CharacterBody2D"


def test_method_parameters(parsed_sample):
    """Parameters keep their type and default."""
    _, project = parsed_sample
    take_damage = project.find_class("Player").get_method("take_damage")
    amount, source_name = take_damage.parameters
    assert amount.name.value == "amount"
    assert amount.type_name == "int"
    assert source_name.type_name == "String"
    assert source_name.default_value == '""'
    assert take_damage.loc == 4
    assert take_damage.start_line == 25


def test_call_edges(parsed_sample):
    """Calls through typed fields and autoloads are qualified by class name."""
    _, project = parsed_sample
    player = project.find_class("Player")
    assert CallEdge("Player", "Inventory.add_item") in player.get_method("pick_up").calls
    assert CallEdge("Player", "GameManager.register_death") in player.get_method("die").calls
    assert CallEdge("Player", "Player.die") in player.get_method("take_damage").calls
    enemy = project.find_class("Enemy")
    assert CallEdge("Enemy", "take_damage") in enemy.get_method("chase").calls
    assert CallEdge("Enemy", "Enemy.idle") in enemy.get_method("_physics_process").calls


def test_engine_singletons_skipped(parsed_sample):
    """Engine singletons like Input are not call targets."""
    _, project = parsed_sample
    calls = project.find_class("Player").get_method("_physics_process").calls
    assert not any(edge.callee.startswith("Input.") for edge in calls)


def test_field_accesses(parsed_sample):
    """Own fields and fields of known classes are recorded."""
    _, project = parsed_sample
    player = project.find_class("Player")
    assert FieldAccess("Player", "health") in player.get_method("take_damage").field_accesses
    hud = project.find_class("Hud")
    assert FieldAccess("GameManager", "score") in hud.get_method("_process").field_accesses


def test_signals(parsed_sample):
    """Signals are collected with their parameter names."""
    _, project = parsed_sample
    signals = {s.name.value: s for s in project.signals}
    assert set(signals) == {"health_changed", "died"}
    assert signals["health_changed"].parameters == ("new_health",)
    assert signals["health_changed"].owner == "Player"


def test_scenes(parsed_sample):
    """Scenes expose their node tree and root script."""
    _, project = parsed_sample
    scenes = {s.name.value: s for s in project.scenes}
    assert scenes["player"].root_node == "Player"
    assert scenes["player"].script_path == "player.gd"
    assert scenes["player"].total_nodes == 3
    assert scenes["main"].child_nodes == ("Player", "HUD")
    assert not scenes["main"].has_script


def test_inner_class_and_multiline_header():
    """Inner classes, wrapped headers and inline bodies are parsed."""
    parsed = GDScriptParser(Path(".")).parse_source(GRID_SOURCE, "grid_builder.gd")
    names = [c.name.value for c in parsed.classes]
    assert names == ["GridBuilder", "Slot"]

    builder, slot = parsed.classes
    build = builder.get_method("build")
    assert [p.name.value for p in build.parameters] == ["width", "height"]
    assert build.loc == 4
    assert not any("trailing note" in line.text for line in build.lines)
    assert builder.get_method("one_liner").loc == 1

    assert slot.field_names == ["count", "item_name"]
    assert FieldAccess("Slot", "count") in slot.get_method("is_empty").field_accesses


def test_unparseable_file_skipped(temp_dir: Path):
    """A broken script is logged and skipped; the rest of the project parses."""
    (temp_dir / "good.gd").write_text("extends Node\n\nfunc ok():\n\tpass\n")
    (temp_dir / "bad.gd").write_text("extends Node\n\nfunc broken(a, b\n")
    parser = GDScriptParser(temp_dir)
    project = parser.parse_project()
    assert project.class_names == ["Good"]
    assert parser.files_skipped == 1


def test_legacy_syntax(temp_dir: Path):
    """Godot 3 export, onready and .method() super calls are understood."""
    source = (
        "extends Base\n"
        "export(int) var lives = 3\n"
        "onready var label = $Label\n"
        "func _ready():\n"
        "\t._ready()\n"
        "\tconnect(\"died\", self, \"_on_died\")\n"
    )
    parsed = GDScriptParser(temp_dir).parse_source(source, "hero.gd")
    hero = parsed.classes[0]
    assert [f.value for f in hero.exported_fields] == ["lives"]
    assert hero.field_names == ["label", "lives"]
    calls = hero.get_method("_ready").calls
    assert CallEdge("Hero", "super._ready") in calls
    assert CallEdge("Hero", "Hero._on_died") in calls


@pytest.mark.parametrize(
    "text,name,type_name,default",
    [
        ("amount", "amount", None, None),
        ("amount: int", "amount", "int", None),
        ("amount := 5", "amount", "inferred", "5"),
        ('label: String = "a=b"', "label", "String", '"a=b"'),
    ],
)
def test_parse_parameter(text, name, type_name, default):
    """Parameter text is split into name, type and default."""
    param = parse_parameter(text)
    assert param.name.value == name
    assert param.type_name == type_name
    assert param.default_value == default


def test_helpers():
    """Stems become PascalCase; res:// paths become project relative."""
    assert pascal_case("game_manager") == "GameManager"
    assert resource_to_relative('*res://autoload/game_manager.gd') == "autoload/game_manager.gd"


HELP_SOURCE = '''extends Node

func build_help() -> String:
\tvar text = """
Usage:
func not_a_method():
\tpass
"""
\treturn text

func after():
\tpass
'''


def test_multiline_string_is_part_of_body():
    """Text inside a string literal never opens a method."""
    parsed = GDScriptParser(Path(".")).parse_source(HELP_SOURCE, "help.gd")
    help_class = parsed.classes[0]
    assert help_class.method_names == ["build_help", "after"]
    build_help = help_class.get_method("build_help")
    assert build_help.loc == 6
    assert build_help.lines[-1].content == "return text"
    assert help_class.get_method("after").start_line == 11


def test_syntax_error_raises():
    """parse_source reports the line of a syntax error."""
    with pytest.raises(ValueError, match="syntax error"):
        GDScriptParser(Path(".")).parse_source("func broken(a, b\n", "broken.gd")
