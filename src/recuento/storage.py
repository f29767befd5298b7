"""Almacén clave-valor y repositorio de actas por categoría.

English: Key-value stores and the per-category acta repository. Writes are
synchronous last-write-wins upserts keyed by category; there is no
cross-category transaction.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
import re
import sqlite3
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple, Union

from recuento.core.models import Category, Session
from recuento.errors import PersistenceError
from recuento.schemas import dump_category, load_category

logger = logging.getLogger(__name__)

SessionMap = Mapping[Category, Sequence[Session]]


class KeyValueStore(Protocol):
    """Colaborador de persistencia clave-valor / Key-value persistence collaborator."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStore:
    """Almacén en memoria para pruebas y sesiones efímeras.

    English: In-memory store for tests and throwaway sessions.
    """

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return sorted(self._data)


class SqliteStore:
    """Almacén clave-valor sobre SQLite.

    English:
        Key-value store backed by SQLite.
    """

    _IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

    def __init__(self, db_path: Union[str, Path], table_name: str = "recuento_kv") -> None:
        """Inicializa la conexión SQLite y la tabla.

        Args:
            db_path (Union[str, Path]): Ruta del archivo SQLite.
            table_name (str): Nombre de la tabla clave-valor.

        English:
            Initializes the SQLite connection and the table.
        """
        self.db_path = str(db_path)
        self.table_name = self._assert_safe_identifier(table_name, "table_name")
        self._connection = sqlite3.connect(self.db_path)
        self._connection.row_factory = sqlite3.Row
        self._ensure_table()

    def close(self) -> None:
        self._connection.close()

    def get(self, key: str) -> Optional[str]:
        row = self._connection.execute(
            f"SELECT value FROM {self.table_name} WHERE key = ?",  # nosec B608 - validated by _assert_safe_identifier.
            (key,),
        ).fetchone()
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        with self._connection:
            self._connection.execute(
                f"""
                INSERT INTO {self.table_name} (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,  # nosec B608 - validated by _assert_safe_identifier.
                (key, value, datetime.now(timezone.utc).isoformat()),
            )

    def remove(self, key: str) -> None:
        with self._connection:
            self._connection.execute(
                f"DELETE FROM {self.table_name} WHERE key = ?",  # nosec B608 - validated by _assert_safe_identifier.
                (key,),
            )

    def keys(self) -> List[str]:
        rows = self._connection.execute(
            f"SELECT key FROM {self.table_name} ORDER BY key"  # nosec B608 - validated by _assert_safe_identifier.
        ).fetchall()
        return [row["key"] for row in rows]

    def _ensure_table(self) -> None:
        with self._connection:
            self._connection.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.table_name} (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """  # nosec B608 - validated by _assert_safe_identifier.
            )

    @classmethod
    def _assert_safe_identifier(cls, value: str, label: str = "identifier") -> str:
        """Validate that *value* is a safe SQL identifier (alphanumeric + underscore)."""
        if not cls._IDENTIFIER_RE.match(value):
            raise ValueError(f"Unsafe SQL {label}: {value!r}")
        return value


def is_mesa_finalized(
    sessions: Iterable[Session],
    mesa_number: str,
    exclude_index: Optional[int] = None,
) -> bool:
    """/** Mesa ya finalizada en la categoría. / Mesa already finalized in the category. **/"""
    if not mesa_number or not mesa_number.strip("0"):
        return False
    for index, session in enumerate(sessions):
        if index == exclude_index:
            continue
        if session.is_finalized and session.mesa_number == mesa_number:
            return True
    return False


def _find_by_mesa(
    all_sessions: SessionMap,
    mesa_number: str,
    attribute: str,
    exclude: Optional[Tuple[Category, int]],
) -> Optional[int]:
    if not mesa_number or not mesa_number.strip("0"):
        return None
    for category in Category:
        for index, session in enumerate(all_sessions.get(category, ())):
            if exclude == (category, index):
                continue
            value = getattr(session, attribute)
            if session.mesa_number == mesa_number and value is not None:
                return value
    return None


def find_surplus_by_mesa(
    all_sessions: SessionMap,
    mesa_number: str,
    exclude: Optional[Tuple[Category, int]] = None,
) -> Optional[int]:
    """Cédulas excedentes ya registradas para la mesa en cualquier categoría.

    English: Surplus ballots already recorded for the mesa in any category.
    """
    return _find_by_mesa(all_sessions, mesa_number, "cedulas_excedentes", exclude)


def find_tcv_by_mesa(
    all_sessions: SessionMap,
    mesa_number: str,
    exclude: Optional[Tuple[Category, int]] = None,
) -> Optional[int]:
    return _find_by_mesa(all_sessions, mesa_number, "tcv", exclude)


class SessionRepository:
    """Persistencia de actas por categoría sobre un ``KeyValueStore``.

    English:
        Per-category acta persistence on top of a ``KeyValueStore``. Any
        store failure (SQLite, OS or custom backend) surfaces as
        ``PersistenceError``.
    """

    def __init__(self, store: KeyValueStore, prefix: str = "recuento") -> None:
        self.store = store
        self.prefix = prefix

    def _key(self, category: Category) -> str:
        return f"{self.prefix}:acta:{category.value}"

    def load(self, category: Category) -> Tuple[List[Session], int]:
        """Lee las actas de la categoría; vacía si no existen.

        English: Read the category actas; empty when nothing is stored.
        """
        try:
            raw = self.store.get(self._key(category))
        except Exception as exc:
            raise PersistenceError(
                f"Lectura fallida / Read failed: {exc}", context={"category": category.value}
            ) from exc
        if raw is None:
            return [], 0
        try:
            return load_category(category, raw)
        except ValueError as exc:
            raise PersistenceError(str(exc), context={"category": category.value}) from exc

    def save(self, category: Category, sessions: Sequence[Session], active_index: int) -> None:
        payload = dump_category(sessions, active_index)
        try:
            self.store.set(self._key(category), payload)
        except Exception as exc:
            raise PersistenceError(
                f"Escritura fallida / Write failed: {exc}", context={"category": category.value}
            ) from exc
        logger.debug("category_saved category=%s actas=%s", category.value, len(sessions))

    def load_all(self) -> Dict[Category, List[Session]]:
        return {category: self.load(category)[0] for category in Category}

    def is_mesa_finalized(self, mesa_number: str, category: Category, exclude_index: Optional[int] = None) -> bool:
        sessions, _ = self.load(category)
        return is_mesa_finalized(sessions, mesa_number, exclude_index)

    def find_surplus_by_mesa(
        self, mesa_number: str, exclude: Optional[Tuple[Category, int]] = None
    ) -> Optional[int]:
        return find_surplus_by_mesa(self.load_all(), mesa_number, exclude)

    def find_tcv_by_mesa(self, mesa_number: str, exclude: Optional[Tuple[Category, int]] = None) -> Optional[int]:
        return find_tcv_by_mesa(self.load_all(), mesa_number, exclude)
