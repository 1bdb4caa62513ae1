"""Model base class and attribute definitions."""

from normstore.model.attributes import Attr
from normstore.model.model import FieldDef, Model

__all__ = ["Attr", "FieldDef", "Model"]
