"""Unit-test conftest: no unit test may reach Postgres.

Every storage accessor is swapped for a stub that raises, and the lazily
created engine/session-factory singletons are reset around each test.
Code under test must receive a mocked session instead.
"""

from __future__ import annotations

import pytest

import src.storage as _storage_mod

GUARDED_ACCESSORS = ("get_engine", "get_session_factory", "get_session")


def _guard(name: str):
    def _raise(*args, **kwargs):
        raise RuntimeError(
            f"Unit test attempted a real DB connection via {name}(). "
            "Pass a mocked session instead."
        )

    return _raise


def pytest_configure() -> None:
    """Guard storage before any unit test module is imported."""
    _storage_mod._engine = None  # type: ignore[attr-defined]
    _storage_mod._session_factory = None  # type: ignore[attr-defined]
    for name in GUARDED_ACCESSORS:
        setattr(_storage_mod, name, _guard(name))


@pytest.fixture(autouse=True)
def _isolate_db(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(_storage_mod, "_engine", None)
    monkeypatch.setattr(_storage_mod, "_session_factory", None)
    for name in GUARDED_ACCESSORS:
        monkeypatch.setattr(_storage_mod, name, _guard(name))
