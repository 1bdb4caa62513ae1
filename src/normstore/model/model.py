"""Model base class: entity metadata, field declarations, and instance hydration."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING, Any, ClassVar

from normstore.core.errors import SchemaError, problem
from normstore.core.types import LOCAL_ID_FIELD, Collection, Record
from normstore.model.attributes import Attr
from normstore.relations.base import Relation
from normstore.relations.belongs_to import BelongsTo
from normstore.relations.belongs_to_many import BelongsToMany
from normstore.relations.has_many import HasMany
from normstore.relations.has_many_by import HasManyBy
from normstore.relations.has_one import HasOne
from normstore.relations.morph_one import MorphMany, MorphOne
from normstore.relations.morph_to import MorphTo

if TYPE_CHECKING:
    from normstore.database import Database
    from normstore.query.query import Query

FieldDef = Attr | Relation


class Model:
    """
    Base class for entity models.

    Subclasses set ``entity`` (the table name), optionally ``primary_key``,
    and override ``fields()`` to declare attributes and relations::

        class Post(Model):
            entity = "posts"

            @classmethod
            def fields(cls):
                return {
                    "id": cls.attr(None),
                    "user_id": cls.attr(None),
                    "author": cls.belongs_to("users", "user_id"),
                    "comments": cls.has_many("comments", "post_id"),
                }

    Instances only carry declared fields. The record an instance was built
    from stays available through ``stored()``.
    """

    entity: ClassVar[str] = ""
    primary_key: ClassVar[str | None] = None
    database: ClassVar[Database | None] = None
    _field_cache: ClassVar[dict[str, FieldDef] | None] = None

    def __init__(self, record: Mapping[str, Any] | None = None) -> None:
        source: Record = dict(record or {})
        self.__dict__["_origin"] = source
        self.fill(source)

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    @classmethod
    def fields(cls) -> dict[str, FieldDef]:
        """Declare the model's attributes and relations."""
        return {}

    @classmethod
    def get_fields(cls) -> dict[str, FieldDef]:
        """
        Return the declared fields, built once per class.

        Returns
        -------
        dict[str, FieldDef]
            Field name -> attribute or relation definition.
        """
        cached = cls.__dict__.get("_field_cache")
        if cached is None:
            cached = dict(cls.fields())
            cls._field_cache = cached
        return cached

    @classmethod
    def reset_fields(cls) -> None:
        """Drop cached field definitions so the next access rebuilds them."""
        cls._field_cache = None

    @classmethod
    def reserved_fields(cls) -> list[str]:
        """
        Return declared field names that would shadow ``Model`` attributes.

        Returns
        -------
        list[str]
            Offending names, sorted; empty for a valid declaration.
        """
        return sorted(name for name in cls.get_fields() if hasattr(Model, name))

    @classmethod
    def relations(cls) -> dict[str, Relation]:
        """
        Return the declared relations.

        Returns
        -------
        dict[str, Relation]
            Field name -> relation definition, in declaration order.
        """
        return {name: f for name, f in cls.get_fields().items() if isinstance(f, Relation)}

    @classmethod
    def relation_for(cls, name: str) -> Relation:
        """
        Look up a declared relation by field name.

        Returns
        -------
        Relation
            The relation definition.

        Raises
        ------
        SchemaError
            When the model declares no relation under ``name``.
        """
        relation = cls.relations().get(name)
        if relation is None:
            raise SchemaError(
                problem(
                    code="schema.undefined_relation",
                    title="Undefined relation",
                    detail=f"Relation '{name}' is not defined on entity '{cls.entity}'.",
                    extras={"entity": cls.entity, "relation": name},
                )
            )
        return relation

    @classmethod
    def key_name(cls) -> str:
        """
        Return the primary key field name.

        Returns
        -------
        str
            Declared primary key, else the bound database's default.
        """
        if cls.primary_key:
            return cls.primary_key
        if cls.database is not None:
            return cls.database.config.default_primary_key
        return "id"

    @classmethod
    def get_id(cls, record: Mapping[str, Any]) -> Any:
        """Return the primary key value of ``record`` or ``None``."""
        return record.get(cls.key_name())

    @classmethod
    def bound_database(cls) -> Database:
        """
        Return the database this model is registered with.

        Returns
        -------
        Database
            Bound database.

        Raises
        ------
        SchemaError
            When the model has not been registered.
        """
        if cls.database is None:
            raise SchemaError(
                problem(
                    code="schema.unregistered_model",
                    title="Unregistered model",
                    detail=f"Model '{cls.__name__}' is not registered with a database.",
                    extras={"model": cls.__name__, "entity": cls.entity},
                )
            )
        return cls.database

    @classmethod
    def resolve(cls, ref: type[Model] | str) -> type[Model]:
        """
        Resolve a model class or entity name to a registered model.

        Returns
        -------
        type[Model]
            Registered model class.
        """
        if isinstance(ref, str):
            return cls.bound_database().model(ref)
        return ref

    # ------------------------------------------------------------------
    # Field helpers
    # ------------------------------------------------------------------

    @classmethod
    def attr(cls, default: Any = None) -> Attr:
        """Declare a plain attribute with a default value."""
        return Attr(default)

    @classmethod
    def has_one(
        cls,
        related: type[Model] | str,
        foreign_key: str,
        local_key: str | None = None,
    ) -> HasOne:
        """Declare a has-one relation."""
        return HasOne(cls, related, foreign_key, local_key)

    @classmethod
    def has_many(
        cls,
        related: type[Model] | str,
        foreign_key: str,
        local_key: str | None = None,
    ) -> HasMany:
        """Declare a has-many relation."""
        return HasMany(cls, related, foreign_key, local_key)

    @classmethod
    def belongs_to(
        cls,
        parent: type[Model] | str,
        foreign_key: str,
        owner_key: str | None = None,
    ) -> BelongsTo:
        """Declare a belongs-to relation."""
        return BelongsTo(cls, parent, foreign_key, owner_key)

    @classmethod
    def has_many_by(
        cls,
        parent: type[Model] | str,
        foreign_key: str,
        owner_key: str | None = None,
    ) -> HasManyBy:
        """Declare a relation through a list of parent keys held by the owner."""
        return HasManyBy(cls, parent, foreign_key, owner_key)

    @classmethod
    def belongs_to_many(  # noqa: PLR0913
        cls,
        related: type[Model] | str,
        pivot: type[Model] | str,
        foreign_pivot_key: str,
        related_pivot_key: str,
        parent_key: str | None = None,
        related_key: str | None = None,
    ) -> BelongsToMany:
        """Declare a many-to-many relation through a pivot entity."""
        return BelongsToMany(
            cls,
            related,
            pivot,
            foreign_pivot_key,
            related_pivot_key,
            parent_key,
            related_key,
        )

    @classmethod
    def morph_to(cls, id_field: str, type_field: str) -> MorphTo:
        """Declare a polymorphic inverse relation."""
        return MorphTo(cls, id_field, type_field)

    @classmethod
    def morph_one(
        cls,
        related: type[Model] | str,
        id_field: str,
        type_field: str,
        local_key: str | None = None,
    ) -> MorphOne:
        """Declare a polymorphic has-one relation."""
        return MorphOne(cls, related, id_field, type_field, local_key)

    @classmethod
    def morph_many(
        cls,
        related: type[Model] | str,
        id_field: str,
        type_field: str,
        local_key: str | None = None,
    ) -> MorphMany:
        """Declare a polymorphic has-many relation."""
        return MorphMany(cls, related, id_field, type_field, local_key)

    # ------------------------------------------------------------------
    # Store access
    # ------------------------------------------------------------------

    @classmethod
    def query(cls) -> Query:
        """
        Start a query on this model's table.

        Returns
        -------
        Query
            Query bound to the model's database.
        """
        return cls.bound_database().query(cls.entity)

    @classmethod
    def find(cls, key: Any) -> Model | None:
        """
        Look up a stored instance by primary key.

        Returns
        -------
        Model | None
            Model for the stored record, or ``None`` when absent.
        """
        return cls.query().find(key)

    @classmethod
    def all(cls) -> Collection:
        """
        Return every stored instance.

        Returns
        -------
        Collection
            Models in table insertion order.
        """
        return cls.query().get()

    @classmethod
    def from_store(cls, record: Mapping[str, Any]) -> Model:
        """
        Hydrate a stored record without resolving its relation fields.

        Relation fields hold keys in the store; they stay ``None``/empty on
        the model until eager-loaded, while ``stored()`` still returns them.

        Returns
        -------
        Model
            Hydrated model.
        """
        relations = cls.relations()
        model = cls({name: value for name, value in record.items() if name not in relations})
        model.__dict__["_origin"] = dict(record)
        return model

    # ------------------------------------------------------------------
    # Instance behaviour
    # ------------------------------------------------------------------

    def fill(self, record: Record) -> None:
        """Set every declared field from ``record``, applying defaults and relation ``make``."""
        for name, field in self.get_fields().items():
            value = record.get(name)
            if isinstance(field, Relation):
                setattr(self, name, field.make(value, record, name))
            else:
                setattr(self, name, field.make(value))
        local_id = record.get(LOCAL_ID_FIELD)
        if local_id is not None:
            self.__dict__[LOCAL_ID_FIELD] = local_id

    def get_key(self) -> Any:
        """Return the primary key value, falling back to the local ``$id``."""
        value = self.__dict__.get(self.key_name())
        if value is None:
            value = self._origin.get(self.key_name())
        if value is None:
            value = self.__dict__.get(LOCAL_ID_FIELD)
        return value

    def get(self, name: str, default: Any = None) -> Any:
        """Return a field value, or ``default`` when the model has no such field."""
        return self.__dict__.get(name, default)

    def stored(self, name: str) -> Any:
        """
        Return a key value as stored on the source record.

        Relation matching reads keys through this method so that a key list
        held under a relation's own field name survives hydration.

        Returns
        -------
        Any
            Source record value, else the current field value.
        """
        origin = self.__dict__["_origin"]
        if name in origin:
            return origin[name]
        return self.__dict__.get(name)

    def to_dict(self) -> Record:
        """
        Serialize the model and any loaded relations to plain data.

        Returns
        -------
        Record
            Field name -> value, with related models serialized recursively.
        """
        payload: Record = {}
        for name in self.get_fields():
            payload[name] = _serialize(self.__dict__.get(name))
        if LOCAL_ID_FIELD in self.__dict__:
            payload[LOCAL_ID_FIELD] = self.__dict__[LOCAL_ID_FIELD]
        return payload

    def __getitem__(self, name: str) -> Any:
        if name not in self.__dict__ or name == "_origin":
            raise KeyError(name)
        return self.__dict__[name]

    def __setitem__(self, name: str, value: Any) -> None:
        setattr(self, name, value)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name != "_origin" and name in self.__dict__

    def __iter__(self) -> Iterator[str]:
        return iter(self.get_fields())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Model):
            return NotImplemented
        return type(self) is type(other) and self.to_dict() == other.to_dict()

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.entity}:{self.get_key()!r})"


def _serialize(value: Any) -> Any:
    if isinstance(value, Model):
        return value.to_dict()
    if isinstance(value, list):
        return [_serialize(item) for item in value]
    return value
