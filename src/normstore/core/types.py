"""Core container aliases shared across the normalizer, repo writer, and query layers."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, TypedDict

if TYPE_CHECKING:
    from normstore.model.model import Model
    from normstore.query.query import Query

Record = dict[str, Any]
"""One flat entity instance keyed by field name."""

NormalizedData = dict[str, dict[str, Record]]
"""Entity name -> stringified key -> Record."""

Collection = list["Model"]
"""Ordered sequence of models, in table insertion order."""

DictionaryOne = dict[str, "Model"]
DictionaryMany = dict[str, list["Model"]]

Constraint = Callable[["Query"], object]
"""Callable applied to an eager-load sub-query before it executes."""

LOCAL_ID_FIELD = "$id"


class EntityTable(TypedDict):
    """Store sub-table for a single entity."""

    data: dict[str, Record]


State = dict[str, Any]
"""Store shape: ``{"name": namespace, entity: {"data": {...}}}``."""


def key_of(value: object) -> str:
    """
    Stringify a key value for table and dictionary lookups.

    Returns
    -------
    str
        Key string; integral floats collapse to their integer form.
    """
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def is_identifier(value: object) -> bool:
    """
    Return whether a value can stand in for a primary key.

    Returns
    -------
    bool
        ``True`` for ints, floats, and strings (booleans excluded).
    """
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float, str))


def is_record(value: object) -> bool:
    """
    Return whether a value is an embedded record.

    Returns
    -------
    bool
        ``True`` for mapping values.
    """
    return isinstance(value, Mapping)
