"""Configuration models for normstore databases."""

from normstore.config.models import StoreConfig

__all__ = ["StoreConfig"]
