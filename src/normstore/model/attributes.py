"""Plain attribute definitions for model fields."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Attr:
    """
    Scalar field with a default.

    ``default`` may be a zero-argument callable, evaluated per instance so
    mutable defaults are never shared.
    """

    default: Any = None

    def make(self, value: Any) -> Any:
        """
        Return the value to set on a model instance.

        Returns
        -------
        Any
            ``value`` when present, otherwise the (evaluated) default.
        """
        if value is not None:
            return value
        if callable(self.default):
            factory: Callable[[], Any] = self.default
            return factory()
        return self.default
