"""Pruebas de persistencia de actas.

Tests for acta persistence: schemas, key-value stores and the repository.
"""

from __future__ import annotations

from datetime import datetime, timezone
import json

import pytest

from recuento.core.models import BallotRecord, Category, SelectedLocation, Session, VoteLimits
from recuento.errors import PersistenceError
from recuento.schemas import dump_category, load_category
from recuento.storage import (
    MemoryStore,
    SessionRepository,
    SqliteStore,
    find_surplus_by_mesa,
    find_tcv_by_mesa,
    is_mesa_finalized,
)


def _build_session(**changes) -> Session:
    base = dict(
        category=Category.DIPUTADOS,
        mesa_number="000123",
        acta_number="000123-01-D",
        total_electores=5,
        records=(BallotRecord(1, "1 | PARTIDO UNO", 1, 2), BallotRecord(2, "BLANCO")),
        location=SelectedLocation("LIMA", "LIMA", "ANCON", "LIMA METROPOLITANA", "LIMA CENTRO 1"),
        vote_limits=VoteLimits(4, 4),
        start_time=datetime(2026, 4, 12, 7, 0, tzinfo=timezone.utc),
        is_mesa_data_saved=True,
        are_mesa_fields_locked=True,
    )
    base.update(changes)
    return Session(**base)


def test_category_payload_uses_camel_case() -> None:
    payload = json.loads(dump_category([_build_session()], 0))

    acta = payload["actas"][0]
    assert payload["activeActaIndex"] == 0
    assert acta["mesaNumber"] == "000123"
    assert acta["voteEntries"][0] == {
        "tableNumber": 1,
        "party": "1 | PARTIDO UNO",
        "preferentialVote1": 1,
        "preferentialVote2": 2,
    }
    assert acta["selectedLocation"]["circunscripcionElectoral"] == "LIMA METROPOLITANA"
    assert acta["isFormFinalized"] is False


def test_payload_restores_sessions_with_timestamps() -> None:
    """Español: La carga reconstruye la sesión incluyendo horas.

    English: Loading rebuilds the session, timestamps included.
    """
    session = _build_session(end_time=datetime(2026, 4, 12, 9, 30, tzinfo=timezone.utc), is_finalized=True, tcv=2)

    sessions, index = load_category(Category.DIPUTADOS, dump_category([session], 0))

    assert index == 0
    assert sessions == [session]


def test_legacy_numeric_mesa_is_padded() -> None:
    raw = {"actas": [{"mesaNumber": 123, "totalElectores": ""}], "activeActaIndex": 0}
    sessions, _ = load_category(Category.PRESIDENCIAL, raw)
    assert sessions[0].mesa_number == "000123"
    assert sessions[0].total_electores is None


def test_active_index_out_of_range_is_rejected() -> None:
    raw = {"actas": [{}], "activeActaIndex": 3}
    with pytest.raises(ValueError):
        load_category(Category.PRESIDENCIAL, raw)


def test_sqlite_store_upserts(tmp_path) -> None:
    store = SqliteStore(tmp_path / "recuento.db")
    store.set("a", "1")
    store.set("a", "2")
    store.set("b", "3")

    assert store.get("a") == "2"
    assert store.keys() == ["a", "b"]
    store.remove("a")
    assert store.get("a") is None
    store.close()


def test_sqlite_store_rejects_unsafe_table(tmp_path) -> None:
    with pytest.raises(ValueError):
        SqliteStore(tmp_path / "recuento.db", table_name="kv; DROP TABLE x")


def test_repository_round_trip_on_sqlite(tmp_path) -> None:
    """Español: El repositorio guarda y recupera por categoría.

    English: The repository saves and restores per category.
    """
    db_path = tmp_path / "recuento.db"
    repository = SessionRepository(SqliteStore(db_path))
    sessions = [_build_session(is_finalized=True, tcv=2), _build_session(mesa_number="000124")]
    repository.save(Category.DIPUTADOS, sessions, 1)

    reopened = SessionRepository(SqliteStore(db_path))
    assert reopened.load(Category.DIPUTADOS) == (sessions, 1)
    assert reopened.load(Category.PRESIDENCIAL) == ([], 0)
    assert reopened.is_mesa_finalized("000123", Category.DIPUTADOS)
    assert not reopened.is_mesa_finalized("000123", Category.DIPUTADOS, exclude_index=0)


def test_repository_wraps_corrupt_payload() -> None:
    store = MemoryStore()
    store.set("recuento:acta:diputados", '{"actas": "nope"}')
    with pytest.raises(PersistenceError) as excinfo:
        SessionRepository(store).load(Category.DIPUTADOS)
    assert excinfo.value.context == {"category": "diputados"}


class BrokenDiskStore(MemoryStore):
    """Almacén sin disco disponible / Store whose disk is gone."""

    def get(self, key: str):
        raise OSError("disk full")

    def set(self, key: str, value: str) -> None:
        raise OSError("disk full")


def test_repository_wraps_any_store_failure() -> None:
    """Español: Cualquier fallo del almacén se reporta como PersistenceError.

    English: Any store failure, not only SQLite ones, becomes a PersistenceError.
    """
    repository = SessionRepository(BrokenDiskStore())

    with pytest.raises(PersistenceError, match="disk full") as excinfo:
        repository.save(Category.DIPUTADOS, [_build_session()], 0)
    assert isinstance(excinfo.value.__cause__, OSError)
    assert excinfo.value.context == {"category": "diputados"}

    with pytest.raises(PersistenceError, match="disk full"):
        repository.load(Category.DIPUTADOS)


def test_mesa_finalized_ignores_empty_mesa() -> None:
    sessions = [_build_session(mesa_number="", is_finalized=True)]
    assert not is_mesa_finalized(sessions, "")
    assert not is_mesa_finalized(sessions, "000000")


def test_find_by_mesa_scans_categories_in_order() -> None:
    all_sessions = {
        Category.PRESIDENCIAL: [_build_session(category=Category.PRESIDENCIAL, cedulas_excedentes=4, tcv=5)],
        Category.DIPUTADOS: [_build_session(cedulas_excedentes=1, tcv=3)],
    }

    assert find_surplus_by_mesa(all_sessions, "000123") == 4
    assert find_tcv_by_mesa(all_sessions, "000123") == 5
    assert find_surplus_by_mesa(all_sessions, "000123", exclude=(Category.PRESIDENCIAL, 0)) == 1
    assert find_tcv_by_mesa(all_sessions, "000999") is None
