"""Store configuration shared by the database, normalizer, and repo writer."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field, model_validator


def _parse_env_flag(value: str | None, *, default: bool) -> bool:
    """
    Interpret a string environment value as a boolean.

    Parameters
    ----------
    value:
        Raw environment variable value or None.
    default:
        Value to return when the environment variable is unset.

    Returns
    -------
    bool
        Parsed boolean flag.
    """
    if value is None:
        return default
    return value.lower() not in {"0", "false", "no", "off"}


class StoreConfig(BaseModel):
    """
    Runtime settings for a normstore database.

    The namespace becomes the ``name`` entry of the store state, and the key
    settings control how records are indexed during normalization.
    """

    namespace: str = Field(
        default="entities",
        description="Value stored under the state's 'name' entry.",
    )
    default_primary_key: str = Field(
        default="id",
        description="Primary key field used by models that do not declare one.",
    )
    local_id_prefix: str = Field(
        default="_no_key_",
        description="Prefix of synthetic '$id' values assigned to keyless records.",
    )
    strict_relations: bool = Field(
        default=True,
        description="Raise on boot when a relation targets an unregistered entity.",
    )

    @classmethod
    def from_env(cls) -> StoreConfig:
        """
        Construct a StoreConfig from environment variables.

        Returns
        -------
        StoreConfig
            Validated configuration populated from environment values.
        """
        return cls(
            namespace=os.environ.get("NORMSTORE_NAMESPACE", "entities"),
            default_primary_key=os.environ.get("NORMSTORE_PRIMARY_KEY", "id"),
            local_id_prefix=os.environ.get("NORMSTORE_LOCAL_ID_PREFIX", "_no_key_"),
            strict_relations=_parse_env_flag(
                os.environ.get("NORMSTORE_STRICT_RELATIONS"), default=True
            ),
        )

    @model_validator(mode="after")
    def _validate_keys(self) -> StoreConfig:
        """
        Reject blank identifiers.

        Returns
        -------
        StoreConfig
            The validated configuration.

        Raises
        ------
        ValueError
            When the namespace, primary key, or local id prefix is empty.
        """
        if not self.namespace.strip():
            message = "namespace must not be empty"
            raise ValueError(message)
        if not self.default_primary_key.strip():
            message = "default_primary_key must not be empty"
            raise ValueError(message)
        if not self.local_id_prefix:
            message = "local_id_prefix must not be empty"
            raise ValueError(message)
        return self
