"""Store writer layer."""

from normstore.storage.repo import Repo, table_data

__all__ = ["Repo", "table_data"]
