"""Eager-load dispatch from a query's ``load`` map to relation ``load``."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from normstore.core.types import Collection

if TYPE_CHECKING:
    from normstore.query.query import Query

log = logging.getLogger(__name__)


def eager_load(query: Query, collection: Collection) -> None:
    """
    Load every relation registered on ``query`` onto ``collection``.

    Raises
    ------
    SchemaError
        When a registered name is not a relation of the query's model.
    """
    if not query.load or not collection:
        return
    for name, constraints in query.load.items():
        relation = query.model.relation_for(name)
        log.debug(
            "Eager-loading %s.%s (%s) for %d model(s)",
            query.entity,
            name,
            relation.kind.value,
            len(collection),
        )
        relation.load(query, collection, name, constraints)
