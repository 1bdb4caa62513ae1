"""Read-side query over one entity table with relation eager loading."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any

from normstore.core.errors import StateError, problem
from normstore.core.types import Collection, Constraint, Record, State, key_of
from normstore.query.loader import eager_load

if TYPE_CHECKING:
    from normstore.database import Database
    from normstore.model.model import Model

log = logging.getLogger(__name__)

Predicate = Callable[[Record], bool]

_MISSING = object()


class Query:
    """
    Filter and hydrate rows of ``state[entity]["data"]``.

    ``state`` defaults to the database's own state; sub-queries built for
    eager loads read the same state as their parent query.

    Queries read the table when executed, so a query built before a write
    sees the written rows.
    """

    def __init__(self, database: Database, entity: str, state: State | None = None) -> None:
        self.database = database
        self.state: State = database.state if state is None else state
        self.model: type[Model] = database.model(entity)
        self.entity = self.model.entity
        self.wheres: list[Predicate] = []
        self.load: dict[str, list[Constraint]] = {}

    def new_query(self, entity: str) -> Query:
        """
        Start a query on another entity of the same database.

        Returns
        -------
        Query
            Fresh query without filters or eager loads.
        """
        return Query(self.database, entity, self.state)

    def records(self) -> dict[str, Record]:
        """
        Return the raw table for this query's entity.

        Returns
        -------
        dict[str, Record]
            Stringified key -> record; empty when the table is absent.

        Raises
        ------
        StateError
            When the table exists but has no ``data`` mapping.
        """
        table = self.state.get(self.entity)
        if table is None:
            return {}
        data = table.get("data") if isinstance(table, Mapping) else None
        if not isinstance(data, dict):
            raise StateError(
                problem(
                    code="state.malformed_table",
                    title="Malformed entity table",
                    detail=f"State entry '{self.entity}' has no 'data' mapping.",
                    extras={"entity": self.entity},
                )
            )
        return data

    def where(self, field: str | Predicate, value: Any = _MISSING) -> Query:
        """
        Filter rows by field equality, a field predicate, or a record predicate.

        ``where("name", "John")`` compares equality, ``where("age", lambda v: v > 20)``
        tests the field value, and ``where(lambda record: ...)`` tests the record.

        Returns
        -------
        Query
            This query, for chaining.
        """
        if callable(field):
            self.wheres.append(field)
            return self
        name = field
        if callable(value):
            test = value
            self.wheres.append(lambda record: bool(test(record.get(name))))
        else:
            self.wheres.append(lambda record: record.get(name) == value)
        return self

    def where_fk(self, field: str, values: Iterable[Any]) -> Query:
        """
        Keep rows whose ``field`` matches any of ``values`` by stringified key.

        Returns
        -------
        Query
            This query, for chaining.
        """
        keys = {key_of(value) for value in values if value is not None}

        def _matches(record: Record) -> bool:
            value = record.get(field)
            return value is not None and key_of(value) in keys

        self.wheres.append(_matches)
        return self

    def with_(self, name: str, constraint: Constraint | None = None) -> Query:
        """
        Register a relation to eager-load.

        ``"posts.comments"`` loads ``posts`` and, on the loaded posts,
        ``comments``; the constraint applies to the innermost relation.
        ``"*"`` loads every relation of the model.

        Returns
        -------
        Query
            This query, for chaining.
        """
        if name == "*":
            for relation_name in self.model.relations():
                self.load.setdefault(relation_name, [])
            return self
        head, _, rest = name.partition(".")
        constraints = self.load.setdefault(head, [])
        if rest:
            constraints.append(lambda query: query.with_(rest, constraint))
        elif constraint is not None:
            constraints.append(constraint)
        return self

    def get(self) -> Collection:
        """
        Execute the query.

        Returns
        -------
        Collection
            Matching models in table order, with eager loads applied.
        """
        rows = [record for record in self.records().values() if self._accepts(record)]
        collection = [self.hydrate(record) for record in rows]
        log.debug("Query on %s returned %d row(s)", self.entity, len(collection))
        eager_load(self, collection)
        return collection

    def all(self) -> Collection:
        """Alias of ``get``."""
        return self.get()

    def first(self) -> Model | None:
        """
        Return the first matching model.

        Returns
        -------
        Model | None
            First model in table order, or ``None``.
        """
        collection = self.get()
        return collection[0] if collection else None

    def find(self, key: Any) -> Model | None:
        """
        Return the model stored under ``key`` when it passes the filters.

        Returns
        -------
        Model | None
            Hydrated model, or ``None`` when absent or filtered out.
        """
        if key is None:
            return None
        record = self.records().get(key_of(key))
        if record is None or not self._accepts(record):
            return None
        model = self.hydrate(record)
        eager_load(self, [model])
        return model

    def hydrate(self, record: Record) -> Model:
        """
        Build a model from a stored record without resolving relation fields.

        Returns
        -------
        Model
            Model whose relations are ``None``/empty until eager-loaded.
        """
        return self.model.from_store(record)

    def _accepts(self, record: Record) -> bool:
        return all(predicate(record) for predicate in self.wheres)
