"""
Pytest configuration and fixtures for latebind tests.
"""

import importlib
import sys
import uuid
from pathlib import Path

import pytest

# Add the repository root to path for imports
# This allows `from latebind import ...` to work
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from latebind.config import ResolverSettings, get_settings  # noqa: E402


class StubLoader:
    """
    Loader returning canned values keyed by module_name.

    Values that are exceptions are raised; values that are callables are
    called (so an ``async def`` yields a coroutine, i.e. an async load).
    """

    def __init__(self, values: dict):
        self.values = values
        self.calls: list[str] = []

    def load(self, spec):
        name = spec.module.module_name
        self.calls.append(name)
        value = self.values[name]
        if isinstance(value, Exception):
            raise value
        if callable(value):
            return value()
        return value


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Settings are cached per process; reset around every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings(tmp_path):
    return ResolverSettings(base_dir=str(tmp_path))


@pytest.fixture
def stub_loader_cls():
    return StubLoader


@pytest.fixture
def sample_json_obj():
    """Document used by the JSON resource tests."""
    return {"name": "Franz", "id": 1, "label": "A"}


@pytest.fixture
def franz_json_obj():
    """Exactly the document of the JSON setter scenario, nothing more."""
    return {"name": "Franz", "id": 1}


@pytest.fixture
def make_module(tmp_path, monkeypatch):
    """
    Write an importable module and return its (unique) name.

    Usage:
        name = make_module("def create(n):\\n    return n * 2\\n")
    """
    monkeypatch.syspath_prepend(str(tmp_path))

    def _make(source: str) -> str:
        name = f"lb_fixture_{uuid.uuid4().hex[:12]}"
        (tmp_path / f"{name}.py").write_text(source, encoding="utf-8")
        importlib.invalidate_caches()
        return name

    return _make
