"""SQLite Secret Store Implementation"""

from .secret_store import SCHEMA_VERSION, DatabaseError, SQLiteSecretStore

__all__ = [
    "SCHEMA_VERSION",
    "DatabaseError",
    "SQLiteSecretStore",
]
