"""Tests for bloater detectors."""

import pytest

from gdsmell.bloaters import (
    DataClumpsDetector,
    LargeClassDetector,
    LongMethodDetector,
    LongParameterListDetector,
    PrimitiveObsessionDetector,
    is_magic_number,
)
from gdsmell.models import FieldAccess, Parameter
from gdsmell.smell_detector import ClassScope, MethodScope, ProjectScope, Severity


def _method_scope(method, make_class):
    owner = make_class("Owner", methods=[method])
    return MethodScope(method, owner, owner.file_path)


class TestLongMethod:
    """Tests for LongMethodDetector."""

    @pytest.mark.parametrize(
        "loc,branches,yields",
        [(10, 0, 0), (50, 0, 0), (51, 0, 0), (20, 11, 0), (20, 10, 0), (20, 0, 8), (20, 0, 7)],
    )
    def test_detected_iff_over_any_threshold(self, loc, branches, yields, make_method, make_class):
        """Detected exactly when LOC, complexity or yield count exceeds its threshold."""
        lines = [f"\tif flag_{i}:" for i in range(branches)]
        lines += [f"\tawait step_{i}()" for i in range(yields)]
        lines += [f"\tv_{i} = {i}" for i in range(loc - len(lines))]
        method = make_method(lines=lines)
        result = LongMethodDetector().detect(_method_scope(method, make_class), {})

        expected = method.loc > 50 or method.cyclomatic_complexity > 10 or method.yield_count > 7
        assert result.detected is expected

    def test_custom_thresholds(self, make_method, make_class, code_lines):
        """Overrides replace the defaults."""
        method = make_method(lines=code_lines(12))
        result = LongMethodDetector().detect(_method_scope(method, make_class), {"max_lines": 10})
        assert result.detected
        assert result.details.thresholds["max_lines"] == 10
        assert result.details.thresholds["max_complexity"] == 10

    @pytest.mark.parametrize(
        "loc,severity",
        [(60, Severity.MEDIUM), (101, Severity.HIGH), (201, Severity.CRITICAL)],
    )
    def test_severity_tiers(self, loc, severity, make_method, make_class, code_lines):
        """Severity grows with LOC."""
        method = make_method(lines=code_lines(loc))
        result = LongMethodDetector().detect(_method_scope(method, make_class), {})
        assert result.severity is severity

    def test_yield_only_is_low(self, make_method, make_class):
        """A short method detected on yields alone is Low."""
        method = make_method(lines=[f"\tawait step_{i}()" for i in range(8)])
        result = LongMethodDetector().detect(_method_scope(method, make_class), {})
        assert result.detected
        assert result.severity is Severity.LOW

    def test_not_detected_has_no_severity(self, make_method, make_class):
        """Clean methods produce a result with detected=False and no severity."""
        result = LongMethodDetector().detect(_method_scope(make_method(), make_class), {})
        assert result is not None
        assert not result.detected
        assert result.severity is None

    def test_not_applicable_to_class_scope(self, make_class, make_project):
        """Unsupported scopes yield no result at all."""
        klass = make_class()
        assert LongMethodDetector().detect(ClassScope(klass, make_project([klass])), {}) is None


class TestLargeClass:
    """Tests for LargeClassDetector."""

    def test_sixteen_fields_is_low(self, make_class, make_project):
        """Exceeding only the field limit is detected with Low severity."""
        klass = make_class(fields=[f"field_{i}" for i in range(16)])
        result = LargeClassDetector().detect(ClassScope(klass, make_project([klass])), {})
        assert result.detected
        assert result.severity is Severity.LOW
        assert result.details.field_count == 16

    def test_fifteen_fields_not_detected(self, make_class, make_project):
        """The limit itself is allowed."""
        klass = make_class(fields=[f"field_{i}" for i in range(15)])
        result = LargeClassDetector().detect(ClassScope(klass, make_project([klass])), {})
        assert not result.detected

    def test_many_methods_graded(self, make_class, make_method, make_project):
        """Method count drives severity."""
        klass = make_class(methods=[make_method(f"m_{i}") for i in range(31)])
        result = LargeClassDetector().detect(ClassScope(klass, make_project([klass])), {})
        assert result.detected
        assert result.severity is Severity.HIGH

    def test_exports(self, make_class, make_project):
        """Too many exported fields is a large class too."""
        names = [f"e_{i}" for i in range(11)]
        klass = make_class(fields=names, exported=names)
        result = LargeClassDetector().detect(ClassScope(klass, make_project([klass])), {})
        assert result.detected
        assert result.details.export_count == 11


class TestLongParameterList:
    """Tests for LongParameterListDetector."""

    def test_five_params_medium(self, make_method, make_class):
        """Five unrelated parameters are Medium."""
        method = make_method(params=["a", "b", "c", "d", "e"])
        result = LongParameterListDetector().detect(_method_scope(method, make_class), {})
        assert result.detected
        assert result.severity is Severity.MEDIUM

    def test_eight_params_high(self, make_method, make_class):
        """More than seven parameters are High."""
        method = make_method(params=[f"p{i}" for i in range(8)])
        result = LongParameterListDetector().detect(_method_scope(method, make_class), {})
        assert result.severity is Severity.HIGH

    def test_related_prefix_group(self, make_method, make_class):
        """Three parameters sharing a prefix are detected even under the count limit."""
        method = make_method(params=["pos_x", "pos_y", "pos_z"])
        result = LongParameterListDetector().detect(_method_scope(method, make_class), {})
        assert result.detected
        assert result.severity is Severity.LOW
        assert result.details.related_groups[0].prefix == "pos"

    def test_short_list_clean(self, make_method, make_class):
        """Four unrelated parameters are fine."""
        method = make_method(params=[Parameter("a", "int"), "b", "c", "d"])
        result = LongParameterListDetector().detect(_method_scope(method, make_class), {})
        assert not result.detected


class TestPrimitiveObsession:
    """Tests for PrimitiveObsessionDetector."""

    @pytest.mark.parametrize(
        "literal,magic",
        [("0", False), ("1", False), ("10", False), ("11", True), ("2.5", True), ("0.5", False)],
    )
    def test_magic_numbers(self, literal, magic):
        """Small integers and fractions below one are not magic."""
        assert is_magic_number(literal) is magic

    def test_magic_numbers_detected(self, make_method, make_class, make_project):
        """More than five magic numbers trigger detection."""
        lines = [f"\tdamage = base * {i}.5" for i in range(2, 8)]
        klass = make_class(methods=[make_method(lines=lines)])
        result = PrimitiveObsessionDetector().detect(ClassScope(klass, make_project([klass])), {})
        assert result.detected
        assert result.details.magic_numbers == 6
        assert result.severity is Severity.MEDIUM

    def test_string_node_lookups(self, make_method, make_class, make_project):
        """get_node with string paths counts separately."""
        lines = [f'\tvar n{i} = get_node("Path/To/Node{i}")' for i in range(4)]
        klass = make_class(methods=[make_method(lines=lines)])
        result = PrimitiveObsessionDetector().detect(ClassScope(klass, make_project([klass])), {})
        assert result.details.string_get_nodes == 4
        assert result.detected

    def test_quoted_words_in_comments_ignored(self, make_method, make_class, make_project):
        """Strings quoted inside a trailing comment are not magic strings."""
        lines = [
            '\tlabel.text = "Game Over"  # was "Try Again" before "Wave 2"',
            '\ttint = "#ff8800"  # "Orange Glow"',
            '\t# get_node("Old/Path") and "Not Used"',
            '\tcall_deferred("Respawn Now") # see get_node("Spawn/Point")',
        ]
        klass = make_class(methods=[make_method(lines=lines)])
        result = PrimitiveObsessionDetector().detect(ClassScope(klass, make_project([klass])), {})
        assert result.details.magic_strings == 3
        assert result.details.string_get_nodes == 0
        found = {example.value for example in result.details.examples if example.kind == "magic_string"}
        assert found == {"Game Over", "#ff8800", "Respawn Now"}

    def test_untyped_fields(self, make_class, make_project):
        """Untyped fields count toward obsession."""
        klass = make_class(fields=["a", "b", "c", "d"], typed=[])
        result = PrimitiveObsessionDetector().detect(ClassScope(klass, make_project([klass])), {})
        assert result.detected
        assert result.details.untyped_vars == 4
        assert result.severity is Severity.LOW


class TestDataClumps:
    """Tests for DataClumpsDetector."""

    def test_parameter_clump(self, make_method, make_class, make_project):
        """The same three parameters in three methods form one clump."""
        params = ["x", "y", "z"]
        klass = make_class(methods=[make_method(f"m{i}", params=params) for i in range(3)])
        result = DataClumpsDetector().detect(ProjectScope(make_project([klass])), {})
        assert result.detected
        assert result.details.clump_count == 1
        clump = result.details.clumps[0]
        assert clump.variables == ("x", "y", "z")
        assert clump.occurrences == 3
        assert clump.kind == "parameters"

    def test_larger_group_merged(self, make_method, make_class, make_project):
        """Five shared parameters merge into one High clump."""
        params = ["a", "b", "c", "d", "e"]
        klass = make_class(methods=[make_method(f"m{i}", params=params) for i in range(3)])
        result = DataClumpsDetector().detect(ProjectScope(make_project([klass])), {})
        assert result.details.clump_count == 1
        assert result.details.clumps[0].variables == tuple(params)
        assert result.severity is Severity.HIGH

    def test_two_occurrences_not_enough(self, make_method, make_class, make_project):
        """A group seen in only two methods is not a clump."""
        klass = make_class(methods=[make_method(f"m{i}", params=["x", "y", "z"]) for i in range(2)])
        result = DataClumpsDetector().detect(ProjectScope(make_project([klass])), {})
        assert not result.detected

    def test_field_clump(self, make_method, make_class, make_project):
        """Own fields touched together also form clumps."""
        accesses = [FieldAccess("K", name) for name in ("hp", "mp", "xp")]
        klass = make_class("K", fields=["hp", "mp", "xp"],
                           methods=[make_method(f"m{i}", accesses=accesses) for i in range(3)])
        result = DataClumpsDetector().detect(ProjectScope(make_project([klass])), {})
        assert result.detected
        assert result.details.clumps[0].kind == "fields"
