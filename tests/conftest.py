"""Pytest configuration and fixtures for gdsmell tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Generator, Iterable, List, Optional

import pytest

from gdsmell.models import CallEdge, Class, FieldAccess, Method, Parameter, Project, SourceLine


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_project_path() -> Path:
    """Get path to the sample Godot project."""
    return Path(__file__).parent / "fixtures" / "sample_project"


def _lines(count: int, prefix: str = "value") -> List[str]:
    return [f"\t{prefix}_{i} = {i}" for i in range(count)]


def _method(
    name: str = "work",
    lines: Optional[Iterable[str]] = None,
    params: Iterable = (),
    calls: Iterable[CallEdge] = (),
    accesses: Iterable[FieldAccess] = (),
) -> Method:
    return Method(
        name=name,
        parameters=tuple(p if isinstance(p, Parameter) else Parameter(p) for p in params),
        lines=tuple(SourceLine(text) for text in (lines if lines is not None else ["\tpass"])),
        calls=frozenset(calls),
        field_accesses=frozenset(accesses),
    )


def _class(
    name: str = "Sample",
    methods: Iterable[Method] = (),
    fields: Iterable[str] = (),
    parent: Optional[str] = None,
    autoload: bool = False,
    exported: Iterable[str] = (),
    typed: Iterable[str] = (),
    file_path: Optional[str] = None,
) -> Class:
    return Class(
        name=name,
        fields=frozenset(fields),
        methods=tuple(methods),
        parent=parent,
        exported_fields=frozenset(exported),
        autoload=autoload,
        file_path=file_path or f"{name.lower()}.gd",
        typed_fields=frozenset(typed),
    )


def _project(classes: Iterable[Class] = (), name: str = "test_project") -> Project:
    classes = tuple(classes)
    return Project(
        classes=classes,
        autoloads=tuple(k for k in classes if k.autoload),
        name=name,
    )


@pytest.fixture
def code_lines():
    """Factory for ``n`` distinct indented code lines."""
    return _lines


@pytest.fixture
def make_method():
    """Factory for methods; string parameters become untyped parameters."""
    return _method


@pytest.fixture
def make_class():
    return _class


@pytest.fixture
def make_project():
    """Factory for projects; autoload-flagged classes are registered as autoloads."""
    return _project
