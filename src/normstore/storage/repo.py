"""Repository writing normalized data into the store state."""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from normstore.core.errors import StateError, problem
from normstore.core.types import NormalizedData, Record, State
from normstore.normalizer import Normalizer

if TYPE_CHECKING:
    from normstore.database import Database

log = logging.getLogger(__name__)


def table_data(state: State, entity: str) -> dict[str, Record]:
    """
    Return the ``data`` mapping of an entity table, creating it when absent.

    Returns
    -------
    dict[str, Record]
        Mutable key -> record mapping held by the state.

    Raises
    ------
    StateError
        When the entity entry exists but is not ``{"data": {...}}``-shaped.
    """
    table = state.get(entity)
    if table is None:
        table = {"data": {}}
        state[entity] = table
    if not isinstance(table, MutableMapping):
        raise StateError(
            problem(
                code="state.malformed_table",
                title="Malformed entity table",
                detail=f"State entry '{entity}' is not a mapping.",
                extras={"entity": entity},
            )
        )
    data = table.setdefault("data", {})
    if not isinstance(data, dict):
        raise StateError(
            problem(
                code="state.malformed_table",
                title="Malformed entity table",
                detail=f"State entry '{entity}' has no 'data' mapping.",
                extras={"entity": entity},
            )
        )
    return data


@dataclass(frozen=True)
class Repo:
    """Write nested payloads into a store state through the normalizer."""

    database: Database

    def normalize(self, entity: str, data: Any) -> NormalizedData:
        """
        Normalize ``data`` against ``entity``'s schema.

        Returns
        -------
        NormalizedData
            Entity -> stringified key -> flat record.
        """
        return Normalizer(self.database).normalize(data, entity)

    def create(self, state: State, entity: str, data: Any) -> NormalizedData:
        """
        Replace every table present in the normalized payload.

        The root entity's table is always replaced, so an empty payload
        empties it. Tables the payload does not touch are left alone.

        Returns
        -------
        NormalizedData
            The normalized payload that was written.
        """
        normalized = self.normalize(entity, data)
        root = self.database.model(entity).entity
        tables = dict(normalized)
        tables.setdefault(root, {})
        for name, records in tables.items():
            table_data(state, name)
            state[name]["data"] = dict(records)
            log.debug("Replaced %s with %d record(s)", name, len(records))
        return normalized

    def insert(self, state: State, entity: str, data: Any) -> NormalizedData:
        """
        Merge every table present in the normalized payload key by key.

        Records with an existing key are overwritten; other keys stay.

        Returns
        -------
        NormalizedData
            The normalized payload that was written.
        """
        normalized = self.normalize(entity, data)
        for name, records in normalized.items():
            table_data(state, name).update(records)
            log.debug("Merged %d record(s) into %s", len(records), name)
        return normalized
