"""Query layer: filtering, hydration, and relation eager loading."""

from normstore.query.loader import eager_load
from normstore.query.query import Predicate, Query

__all__ = ["Predicate", "Query", "eager_load"]
