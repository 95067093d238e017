"""
SQLite Secret Store Implementation

Stores token secrets in SQLite, encrypted with a Fernet key held in the OS keyring.
The file layout is tracked with ``PRAGMA user_version``: a fresh file is created
at ``SCHEMA_VERSION``, and a file written by a newer engine is refused rather
than read with the wrong layout.
"""

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union
import structlog
from cryptography.fernet import Fernet, InvalidToken

from ...utils.crypto import DEFAULT_SERVICE_NAME, create_cipher
from ..interface import ISecretStore, account_id_from_key

logger = structlog.get_logger(__name__)


SCHEMA_VERSION = 1

SECRETS_SCHEMA = """
    CREATE TABLE IF NOT EXISTS secrets (
        key TEXT PRIMARY KEY,
        account_id TEXT NOT NULL,
        value BLOB NOT NULL,  -- Fernet token
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
    );
    CREATE INDEX IF NOT EXISTS idx_secrets_account ON secrets(account_id);
"""


class DatabaseError(Exception):
    """Secret store database errors"""
    pass


class SQLiteSecretStore(ISecretStore):
    """SQLite implementation of the secret store"""

    def __init__(
        self,
        db_path: Union[str, Path],
        cipher: Optional[Fernet] = None,
        service_name: str = DEFAULT_SERVICE_NAME,
    ):
        self.db_path = Path(db_path)
        self.service_name = service_name
        self._cipher = cipher
        self._connection: Optional[sqlite3.Connection] = None

    async def initialize(self) -> None:
        """Open the database, create or check the schema and load the encryption key"""
        if str(self.db_path) != ":memory:":
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise DatabaseError(f"Failed to create secret store directory: {e}") from e

        try:
            connection = sqlite3.connect(self.db_path, check_same_thread=False, timeout=30.0)
            connection.row_factory = sqlite3.Row
            connection.execute("PRAGMA journal_mode = WAL")
            self._connection = connection
            self._ensure_schema(connection)
        except sqlite3.Error as e:
            await self.close()
            raise DatabaseError(f"Failed to open secret store: {e}") from e
        except DatabaseError:
            await self.close()
            raise

        if self._cipher is None:
            self._cipher = create_cipher(service_name=self.service_name)
        logger.info("SQLite secret store initialized", db_path=str(self.db_path))

    def _ensure_schema(self, connection: sqlite3.Connection) -> None:
        version = connection.execute("PRAGMA user_version").fetchone()[0]
        if version > SCHEMA_VERSION:
            raise DatabaseError(
                f"Secret store schema version {version} is newer than supported version {SCHEMA_VERSION}"
            )
        if version < SCHEMA_VERSION:
            connection.executescript(SECRETS_SCHEMA)
            connection.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
            connection.commit()
            logger.info("Secret store schema created", version=SCHEMA_VERSION)

    async def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None
            logger.debug("SQLite connection closed")

    async def __aenter__(self) -> "SQLiteSecretStore":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _get_connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise DatabaseError("Secret store used before initialize()")
        return self._connection

    def _get_cipher(self) -> Fernet:
        if self._cipher is None:
            raise DatabaseError("Secret store used before initialize()")
        return self._cipher

    async def save(self, key: str, value: str) -> None:
        connection = self._get_connection()
        try:
            encrypted = self._get_cipher().encrypt(value.encode("utf-8"))
            now = datetime.now().isoformat()
            connection.execute("""
                INSERT INTO secrets (key, account_id, value, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            """, (key, account_id_from_key(key), encrypted, now, now))
            connection.commit()
        except sqlite3.Error as e:
            logger.error("Failed to save secret", error=str(e))
            raise DatabaseError(f"Failed to save secret: {e}") from e

    async def get(self, key: str) -> Optional[str]:
        connection = self._get_connection()
        try:
            row = connection.execute("SELECT value FROM secrets WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            logger.error("Failed to read secret", error=str(e))
            raise DatabaseError(f"Failed to read secret: {e}") from e

        if row is None:
            return None

        try:
            return self._get_cipher().decrypt(bytes(row["value"])).decode("utf-8")
        except InvalidToken:
            # Written with a key that is no longer in the keyring
            logger.warning("Secret could not be decrypted, treating as absent")
            return None

    async def find_all(self, prefix: str) -> List[Tuple[str, str]]:
        connection = self._get_connection()
        try:
            # Case-sensitive literal prefix match
            cursor = connection.execute("""
                SELECT key, account_id FROM secrets
                WHERE substr(key, 1, ?) = ?
                ORDER BY key
            """, (len(prefix), prefix))
            return [(row["key"], row["account_id"]) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            logger.error("Failed to list secrets", error=str(e))
            raise DatabaseError(f"Failed to list secrets: {e}") from e

    async def clear(self, key: str) -> bool:
        connection = self._get_connection()
        try:
            cursor = connection.execute("DELETE FROM secrets WHERE key = ?", (key,))
            connection.commit()
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            logger.error("Failed to delete secret", error=str(e))
            raise DatabaseError(f"Failed to delete secret: {e}") from e
