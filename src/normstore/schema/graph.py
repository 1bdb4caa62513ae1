"""Entity relation graph built with NetworkX for boot-time validation."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

import networkx as nx

if TYPE_CHECKING:
    from normstore.model.model import Model

log = logging.getLogger(__name__)

SAMPLE_LIMIT = 5


@dataclass(frozen=True)
class RelationFinding:
    """Single relation graph issue."""

    rule: str
    entity: str
    field: str
    target: str
    message: str

    def to_dict(self) -> dict[str, str]:
        """
        Serialize the finding for problem-detail extras.

        Returns
        -------
        dict[str, str]
            Plain mapping of the finding's fields.
        """
        return {
            "rule": self.rule,
            "entity": self.entity,
            "field": self.field,
            "target": self.target,
            "message": self.message,
        }


def _target_name(ref: type[Model] | str) -> str:
    return ref if isinstance(ref, str) else ref.entity


def build_relation_graph(models: Mapping[str, type[Model]]) -> nx.MultiDiGraph:
    """
    Build a graph with one node per entity and one edge per relation target.

    Parameters
    ----------
    models
        Registered models keyed by entity name.

    Returns
    -------
    nx.MultiDiGraph
        Directed multigraph; edges carry ``field`` and ``kind`` attributes.
    """
    graph = nx.MultiDiGraph()
    for entity, model in models.items():
        graph.add_node(entity, registered=True)
        for field, relation in model.relations().items():
            for ref in relation.target_refs():
                target = _target_name(ref)
                if target not in graph:
                    graph.add_node(target, registered=target in models)
                graph.add_edge(entity, target, key=field, field=field, kind=relation.kind.value)
    return graph


def validate_relation_graph(
    graph: nx.MultiDiGraph,
    registered: Iterable[str],
) -> list[RelationFinding]:
    """
    Report relation edges that point at entities without a registered model.

    Returns
    -------
    list[RelationFinding]
        One finding per unresolved relation target.
    """
    known = set(registered)
    findings: list[RelationFinding] = []
    for source, target, data in graph.edges(data=True):
        if target in known:
            continue
        findings.append(
            RelationFinding(
                rule="unresolved_target",
                entity=source,
                field=str(data.get("field", "")),
                target=target,
                message=f"{source}.{data.get('field')} points at unregistered entity '{target}'",
            )
        )
    return findings


def relation_cycles(graph: nx.MultiDiGraph) -> list[list[str]]:
    """
    List entity cycles formed by relations, e.g. users -> posts -> users.

    Returns
    -------
    list[list[str]]
        Each cycle as a list of entity names, sorted for stable output.
    """
    simple = nx.DiGraph(graph)
    cycles = [sorted(cycle) for cycle in nx.simple_cycles(simple)]
    cycles.sort()
    if cycles:
        log.debug("Relation cycles (sample): %s", cycles[:SAMPLE_LIMIT])
    return cycles
