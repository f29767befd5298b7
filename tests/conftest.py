"""Fixtures compartidas del motor de conteo.

Shared fixtures for the tally engine tests.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
from typing import Callable, List

import pytest
import structlog

from recuento.core.models import Organization
from recuento.core.reference import (
    CircunscripcionRecord,
    JeeRecord,
    MesaRecord,
    ReferenceTables,
    UbigeoRecord,
)
from recuento.manager import TallySessionManager
from recuento.organizations import OrganizationRegistry
from recuento.storage import MemoryStore, SessionRepository

ORGANIZATIONS: List[Organization] = [
    Organization(key="P1", name="PARTIDO UNO", order=1),
    Organization(key="P2", name="PARTIDO DOS", order=2),
    Organization(key="P3", name="PARTIDO TRES", order=3),
    Organization(key="BLANCO", name="BLANCO"),
    Organization(key="NULO", name="NULO"),
]


@pytest.fixture()
def reference() -> ReferenceTables:
    """Tablas de referencia mínimas / Minimal reference tables."""
    return ReferenceTables(
        ubigeos=(
            UbigeoRecord("140101", "150101", "LIMA", "LIMA", "LIMA"),
            UbigeoRecord("140102", "150102", "LIMA", "LIMA", "ANCON"),
            UbigeoRecord("140201", "150201", "LIMA", "BARRANCA", "BARRANCA"),
            UbigeoRecord("040101", "040101", "AREQUIPA", "AREQUIPA", "AREQUIPA"),
        ),
        circunscripciones=(
            CircunscripcionRecord("UNICO NACIONAL", category="senadoresNacional"),
            CircunscripcionRecord("PERU", category="presidencial"),
            CircunscripcionRecord("PERU", category="parlamentoAndino"),
            CircunscripcionRecord("LIMA METROPOLITANA", departamento="LIMA", provincia="LIMA"),
            CircunscripcionRecord("LIMA PROVINCIAS", departamento="LIMA"),
            CircunscripcionRecord("Arequipa", departamento="AREQUIPA"),
            CircunscripcionRecord("PERUANOS RESIDENTES EN EL EXTRANJERO", departamento="EXTRANJERO"),
        ),
        jees=(JeeRecord("01", "LIMA CENTRO 1"), JeeRecord("07", "AREQUIPA")),
        mesas=(
            MesaRecord("000123", "NACIONAL", "LIMA METROPOLITANA", "LIMA", "LIMA", "ANCON", 5),
            MesaRecord("900001", "EXTRANJERO", "PERUANOS RESIDENTES EN EL EXTRANJERO", "AMERICA", "CHILE", "SANTIAGO", 200),
        ),
    )


@pytest.fixture()
def organizations() -> List[Organization]:
    return list(ORGANIZATIONS)


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def registry(organizations, store: MemoryStore) -> OrganizationRegistry:
    registry = OrganizationRegistry(organizations, store)
    registry.set_selected(["P1", "P2"])
    return registry


@pytest.fixture()
def clock() -> Callable[[], datetime]:
    """Reloj determinista que avanza un minuto por llamada.

    English: Deterministic clock advancing one minute per call.
    """
    current = [datetime(2026, 4, 12, 7, 0, tzinfo=timezone.utc)]

    def tick() -> datetime:
        value = current[0]
        current[0] = value + timedelta(minutes=1)
        return value

    return tick


@pytest.fixture()
def manager(store, registry, reference, clock) -> TallySessionManager:
    return TallySessionManager(SessionRepository(store), registry, reference, clock=clock)


@pytest.fixture()
def restore_logging():
    """Restaura el logging global tras cada prueba.

    English: Restores global logging after each test.
    """
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()
