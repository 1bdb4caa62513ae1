"""StoreConfig defaults, environment parsing, and validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from normstore.config.models import StoreConfig
from tests._helpers.expect import expect_equal, expect_true


def test_defaults() -> None:
    """Defaults match the conventional store layout."""
    cfg = StoreConfig()

    expect_equal(cfg.namespace, "entities")
    expect_equal(cfg.default_primary_key, "id")
    expect_equal(cfg.local_id_prefix, "_no_key_")
    expect_true(cfg.strict_relations, message="Strict relations should default on")


def test_from_env_reads_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    """Environment values populate every field."""
    monkeypatch.setenv("NORMSTORE_NAMESPACE", "orm")
    monkeypatch.setenv("NORMSTORE_PRIMARY_KEY", "uuid")
    monkeypatch.setenv("NORMSTORE_LOCAL_ID_PREFIX", "tmp_")
    monkeypatch.setenv("NORMSTORE_STRICT_RELATIONS", "off")

    cfg = StoreConfig.from_env()

    expect_equal(cfg.namespace, "orm")
    expect_equal(cfg.default_primary_key, "uuid")
    expect_equal(cfg.local_id_prefix, "tmp_")
    expect_true(not cfg.strict_relations, message="'off' should disable strict relations")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1", True), ("yes", True), ("FALSE", False), ("0", False), ("no", False)],
)
def test_strict_flag_parsing(monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool) -> None:
    """Boolean flags accept the usual spellings."""
    monkeypatch.setenv("NORMSTORE_STRICT_RELATIONS", raw)

    expect_equal(StoreConfig.from_env().strict_relations, expected)


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"namespace": "  "}, "namespace"),
        ({"default_primary_key": ""}, "default_primary_key"),
        ({"local_id_prefix": ""}, "local_id_prefix"),
    ],
)
def test_blank_values_are_rejected(overrides: dict[str, str], message: str) -> None:
    """Blank identifiers fail validation."""
    with pytest.raises(ValidationError) as excinfo:
        StoreConfig(**overrides)
    if message not in str(excinfo.value):
        pytest.fail(f"Validation error should mention {message}: {excinfo.value}")
