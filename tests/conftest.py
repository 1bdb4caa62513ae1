"""Pytest configuration for the normstore test suite."""

from __future__ import annotations

import pytest

from normstore.config.models import StoreConfig
from normstore.database import Database
from tests._helpers.models import ALL_MODELS


@pytest.fixture
def database() -> Database:
    """Provide a database with every fixture model registered.

    Returns
    -------
    Database
        Booted database with an empty state.
    """
    db = Database(StoreConfig())
    db.register_all(ALL_MODELS)
    db.boot()
    return db


@pytest.fixture(autouse=True)
def _clear_store_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host NORMSTORE_* variables out of config tests."""
    for name in (
        "NORMSTORE_NAMESPACE",
        "NORMSTORE_PRIMARY_KEY",
        "NORMSTORE_LOCAL_ID_PREFIX",
        "NORMSTORE_STRICT_RELATIONS",
    ):
        monkeypatch.delenv(name, raising=False)
