"""Schema-driven decomposition of nested payloads into per-entity tables."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from normstore.core.types import (
    LOCAL_ID_FIELD,
    NormalizedData,
    Record,
    is_record,
    key_of,
)
from normstore.schema.schema import Many, One, Schema, SchemaNode, Union

if TYPE_CHECKING:
    from normstore.database import Database
    from normstore.model.model import Model

log = logging.getLogger(__name__)


@dataclass
class NormalizationContext:
    """
    Accumulator threaded through one normalization pass.

    Attributes
    ----------
    local_id_prefix : str
        Prefix for synthetic ``$id`` values.
    data : NormalizedData
        Entity -> stringified key -> record, filled during decomposition.
    pending : list[tuple[type[Model], Record]]
        Every record entered during decomposition, in post-order.
    """

    local_id_prefix: str
    data: NormalizedData = field(default_factory=dict)
    pending: list[tuple[type[Model], Record]] = field(default_factory=list)
    _counter: Iterator[int] = field(default_factory=lambda: itertools.count(1))
    _seen: set[int] = field(default_factory=set)

    def next_local_id(self) -> str:
        """
        Return a fresh synthetic local identifier.

        Returns
        -------
        str
            ``"<prefix><n>"``, unique within this pass.
        """
        return f"{self.local_id_prefix}{next(self._counter)}"

    def store(self, model: type[Model], key: Any, record: Record) -> Record:
        """
        Enter a record into its entity bucket, merging with an existing entry.

        Returns
        -------
        Record
            The record now held by the bucket.
        """
        bucket = self.data.setdefault(model.entity, {})
        existing = bucket.get(key_of(key))
        if existing is not None:
            existing.update(record)
            record = existing
        else:
            bucket[key_of(key)] = record
        if id(record) not in self._seen:
            self._seen.add(id(record))
            self.pending.append((model, record))
        return record


class Normalizer:
    """
    Decompose nested payloads against a root entity's relation graph.

    A pass has two phases. Decomposition walks the payload depth first,
    replacing embedded related records by their keys and entering every
    record into its entity bucket. Attachment then runs each relation's
    ``attach`` for every record that carried the relation field, so all
    records of the pass are in place before any ``attach`` reads them.
    """

    def __init__(self, database: Database) -> None:
        self.database = database
        self.schema = Schema(database)

    def normalize(self, data: Any, entity: str) -> NormalizedData:
        """
        Normalize a single record or a list of records for ``entity``.

        Parameters
        ----------
        data
            Nested payload: a mapping or a list of mappings. Other values
            normalize to an empty result.
        entity
            Root entity name.

        Returns
        -------
        NormalizedData
            Entity -> stringified key -> flat record.

        Raises
        ------
        SchemaError
            When ``entity`` (or an entity reached through a relation) has no
            registered model.
        """
        model = self.database.model(entity)
        context = NormalizationContext(local_id_prefix=self.database.config.local_id_prefix)
        for item in _as_items(data):
            self._visit(model, item, context)
        self._attach_all(context)
        log.debug(
            "Normalized %s payload into %d bucket(s), %d record(s)",
            model.entity,
            len(context.data),
            sum(len(bucket) for bucket in context.data.values()),
        )
        return context.data

    def _visit(
        self,
        model: type[Model],
        value: Mapping[str, Any],
        context: NormalizationContext,
    ) -> Any:
        record: Record = dict(value)
        key = model.get_id(record)
        if key is None:
            key = record.get(LOCAL_ID_FIELD)
            if key is None:
                key = context.next_local_id()
            record[LOCAL_ID_FIELD] = key
        for name, relation in model.relations().items():
            nested = record.get(name)
            if nested is None:
                continue
            record[name] = self._visit_node(relation.define(self.schema), nested, record, context)
        context.store(model, key, record)
        return key

    def _visit_node(
        self,
        node: SchemaNode,
        value: Any,
        parent: Record,
        context: NormalizationContext,
    ) -> Any:
        if isinstance(node, One):
            if not is_record(value):
                return value
            return self._visit(self.database.model(node.entity), value, context)
        if isinstance(node, Many):
            if not isinstance(value, list):
                return value
            related = self.database.model(node.entity)
            return [
                self._visit(related, item, context) if is_record(item) else item for item in value
            ]
        if isinstance(node, Union):
            if not is_record(value):
                return value
            entity = node.resolve(value, parent)
            if entity is None:
                return value
            return self._visit(self.database.model(entity), value, context)
        return value

    def _attach_all(self, context: NormalizationContext) -> None:
        for model, record in context.pending:
            for name, relation in model.relations().items():
                key = record.get(name)
                if key is None:
                    continue
                relation.attach(key, record, context.data)


def _as_items(data: Any) -> list[Mapping[str, Any]]:
    if is_record(data):
        return [data]
    if isinstance(data, list):
        return [item for item in data if is_record(item)]
    return []
