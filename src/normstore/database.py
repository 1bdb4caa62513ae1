"""Entity registry binding models to a configuration and a store state."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import networkx as nx

from normstore.config.models import StoreConfig
from normstore.core.errors import SchemaError, log_problem, problem, unknown_entity
from normstore.core.types import NormalizedData, State
from normstore.query.query import Query
from normstore.schema.graph import build_relation_graph, relation_cycles, validate_relation_graph
from normstore.storage.repo import Repo

if TYPE_CHECKING:
    from normstore.model.model import Model

log = logging.getLogger(__name__)


class Database:
    """
    Central registry resolving entity names to models.

    Relations look their targets up here at use time, which lets models refer
    to each other by entity name regardless of definition order. The database
    also owns a default store state that ``create``/``insert``/``query``
    operate on.
    """

    def __init__(self, config: StoreConfig | None = None) -> None:
        self.config = config or StoreConfig()
        self._models: dict[str, type[Model]] = {}
        self.state: State = {"name": self.config.namespace}
        self._graph: nx.MultiDiGraph | None = None

    def register(self, model: type[Model]) -> type[Model]:
        """
        Register a model and bind it to this database.

        Returns
        -------
        type[Model]
            The registered model, so the method can be used as a decorator.

        Raises
        ------
        SchemaError
            When the model declares no entity name, or declares a field whose
            name shadows a model attribute such as ``get`` or ``query``.
        """
        if not model.entity:
            raise SchemaError(
                problem(
                    code="schema.missing_entity_name",
                    title="Missing entity name",
                    detail=f"Model '{model.__name__}' does not declare an entity name.",
                    extras={"model": model.__name__},
                )
            )
        model.reset_fields()
        reserved = model.reserved_fields()
        if reserved:
            raise SchemaError(
                problem(
                    code="schema.reserved_field",
                    title="Reserved field name",
                    detail=(
                        f"Model '{model.__name__}' declares field(s) that shadow model "
                        f"attributes: {', '.join(reserved)}."
                    ),
                    extras={"model": model.__name__, "fields": reserved},
                )
            )
        model.database = self
        self._models[model.entity] = model
        self.state.setdefault(model.entity, {"data": {}})
        self._graph = None
        return model

    def register_all(self, models: Iterable[type[Model]]) -> None:
        """Register several models."""
        for model in models:
            self.register(model)

    def has_model(self, entity: str) -> bool:
        """Return whether ``entity`` has a registered model."""
        return entity in self._models

    def model(self, entity: str) -> type[Model]:
        """
        Resolve an entity name to its model.

        Returns
        -------
        type[Model]
            Registered model class.

        Raises
        ------
        SchemaError
            When no model is registered under ``entity``.
        """
        model = self._models.get(entity)
        if model is None:
            raise unknown_entity(entity, known=list(self._models))
        return model

    def models(self) -> dict[str, type[Model]]:
        """Return a copy of the registered models keyed by entity."""
        return dict(self._models)

    def initial_state(self) -> State:
        """
        Build an empty store state for the registered entities.

        Returns
        -------
        State
            ``{"name": namespace, entity: {"data": {}}}`` for every entity.
        """
        state: State = {"name": self.config.namespace}
        for entity in self._models:
            state[entity] = {"data": {}}
        return state

    def relation_graph(self) -> nx.MultiDiGraph:
        """
        Return the entity relation graph, building it on first use.

        Returns
        -------
        nx.MultiDiGraph
            Graph of entities and relation edges.
        """
        if self._graph is None:
            self._graph = build_relation_graph(self._models)
        return self._graph

    def boot(self) -> nx.MultiDiGraph:
        """
        Validate the relation graph of the registered models.

        Returns
        -------
        nx.MultiDiGraph
            Validated relation graph.

        Raises
        ------
        SchemaError
            When ``strict_relations`` is enabled and a relation targets an
            unregistered entity.
        """
        graph = self.relation_graph()
        findings = validate_relation_graph(graph, self._models)
        if findings:
            detail = problem(
                code="schema.unresolved_relation",
                title="Unresolved relation target",
                detail=f"{len(findings)} relation(s) point at unregistered entities.",
                extras={"findings": [finding.to_dict() for finding in findings]},
            )
            if self.config.strict_relations:
                log_problem(log, detail)
                raise SchemaError(detail)
            for finding in findings:
                log.warning(finding.message)
        cycles = relation_cycles(graph)
        log.info(
            "Booted %s with %d entities, %d relation edge(s), %d cycle(s)",
            self.config.namespace,
            graph.number_of_nodes(),
            graph.number_of_edges(),
            len(cycles),
        )
        return graph

    def query(self, entity: str, state: State | None = None) -> Query:
        """
        Start a query on ``entity`` against ``state`` or this database's state.

        Returns
        -------
        Query
            New query.
        """
        return Query(self, entity, state)

    def create(self, entity: str, data: Any) -> NormalizedData:
        """
        Replace the tables touched by ``data`` in this database's state.

        Returns
        -------
        NormalizedData
            The normalized payload that was written.
        """
        return Repo(self).create(self.state, entity, data)

    def insert(self, entity: str, data: Any) -> NormalizedData:
        """
        Merge ``data`` into this database's state.

        Returns
        -------
        NormalizedData
            The normalized payload that was written.
        """
        return Repo(self).insert(self.state, entity, data)
