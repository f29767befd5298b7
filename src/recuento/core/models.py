"""Modelos inmutables del motor de conteo.

English: Immutable models of the tally engine. Sessions are never mutated in
place; transitions in ``recuento.core.session`` return new values built with
``dataclasses.replace``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple

BLANCO = "BLANCO"
NULO = "NULO"
SPECIAL_PARTIES = frozenset({BLANCO, NULO})

ABROAD_CIRCUNSCRIPCION = "PERUANOS RESIDENTES EN EL EXTRANJERO"
MAX_VOTE_LIMIT = 199


class Category(str, Enum):
    """Categorías electorales soportadas.

    English: Supported election categories.
    """

    PRESIDENCIAL = "presidencial"
    SENADORES_NACIONAL = "senadoresNacional"
    SENADORES_REGIONAL = "senadoresRegional"
    DIPUTADOS = "diputados"
    PARLAMENTO_ANDINO = "parlamentoAndino"

    @property
    def code(self) -> str:
        """Letra oficial de la categoría / Official category letter."""
        return _CATEGORY_CODES[self]

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]

    @classmethod
    def parse(cls, value: str) -> "Category":
        """Acepta la clave (``diputados``) o la letra (``D``).

        English: Accept either the key (``diputados``) or the letter (``D``).
        """
        cleaned = value.strip()
        for category in cls:
            if cleaned == category.value or cleaned.upper() == category.code:
                return category
        raise ValueError(f"Unknown category: {value}")


_CATEGORY_CODES: Dict[Category, str] = {
    Category.PRESIDENCIAL: "A",
    Category.SENADORES_NACIONAL: "B",
    Category.SENADORES_REGIONAL: "C",
    Category.DIPUTADOS: "D",
    Category.PARLAMENTO_ANDINO: "E",
}

_CATEGORY_LABELS: Dict[Category, str] = {
    Category.PRESIDENCIAL: "Presidencial",
    Category.SENADORES_NACIONAL: "Senadores D. Único",
    Category.SENADORES_REGIONAL: "Senadores D. Múltiple",
    Category.DIPUTADOS: "Diputados",
    Category.PARLAMENTO_ANDINO: "Parlamento Andino",
}


class SessionState(str, Enum):
    UNCONFIGURED = "unconfigured"
    ACTIVE = "active"
    FINALIZED = "finalized"


@dataclass(frozen=True)
class Organization:
    """Organización política o pseudo-organización BLANCO/NULO.

    Attributes:
        key (str): Clave estable.
        name (str): Nombre visible.
        order (Optional[int]): Orden en la cédula.

    English:
        Political organization or the BLANCO/NULO pseudo-organizations.

    Attributes:
        key (str): Stable key.
        name (str): Display name.
        order (Optional[int]): Ballot order.
    """

    key: str
    name: str
    order: Optional[int] = None

    @property
    def party_key(self) -> str:
        """Clave de agregación ``"{order} | {name}"`` / Aggregation bucket key."""
        if self.order is not None:
            return f"{self.order} | {self.name}"
        return self.name

    @property
    def is_special(self) -> bool:
        return self.key in SPECIAL_PARTIES


BLANCO_ORGANIZATION = Organization(key=BLANCO, name=BLANCO)
NULO_ORGANIZATION = Organization(key=NULO, name=NULO)


@dataclass(frozen=True)
class PreferentialConfig:
    """Casillas de voto preferencial habilitadas.

    English: Enabled preferential-vote slots.
    """

    slot1: bool
    slot2: bool

    @property
    def both_enabled(self) -> bool:
        return self.slot1 and self.slot2


@dataclass(frozen=True)
class VoteLimits:
    """Valor máximo legal por casilla preferencial.

    Attributes:
        preferential1 (int): Límite de la casilla 1 (0 si deshabilitada).
        preferential2 (int): Límite de la casilla 2 (0 si deshabilitada).

    English:
        Maximum legal value per preferential slot.

    Attributes:
        preferential1 (int): Slot 1 limit (0 when disabled).
        preferential2 (int): Slot 2 limit (0 when disabled).
    """

    preferential1: int = 0
    preferential2: int = 0

    def __post_init__(self) -> None:
        for name in ("preferential1", "preferential2"):
            value = getattr(self, name)
            if not 0 <= value <= MAX_VOTE_LIMIT:
                raise ValueError(f"{name} must be within [0, {MAX_VOTE_LIMIT}], got {value}")


@dataclass(frozen=True)
class BallotRecord:
    """Una cédula procesada.

    Attributes:
        table_number (int): Posición secuencial, nunca reutilizada.
        party (str): Clave de partido (``party_key``).
        preferential1 (int): Voto preferencial 1 (0 = ausente).
        preferential2 (int): Voto preferencial 2 (0 = ausente).

    English:
        One processed ballot.

    Attributes:
        table_number (int): Sequence position, never reused.
        party (str): Party key (``party_key``).
        preferential1 (int): Preferential vote 1 (0 = absent).
        preferential2 (int): Preferential vote 2 (0 = absent).
    """

    table_number: int
    party: str
    preferential1: int = 0
    preferential2: int = 0


@dataclass(frozen=True)
class BallotDraft:
    """Cédula candidata antes de validar / Candidate ballot before validation."""

    party: str
    preferential1: int = 0
    preferential2: int = 0


@dataclass(frozen=True)
class SelectedLocation:
    """Ubicación seleccionada para la mesa.

    English: Selected location for the mesa. For abroad mesas the three
    hierarchy levels hold continent, country and city.
    """

    departamento: str = ""
    provincia: str = ""
    distrito: str = ""
    circunscripcion: str = ""
    jee: str = ""

    @property
    def is_complete(self) -> bool:
        return all(
            value.strip()
            for value in (
                self.departamento,
                self.provincia,
                self.distrito,
                self.circunscripcion,
                self.jee,
            )
        )

    @property
    def is_abroad(self) -> bool:
        return self.circunscripcion == ABROAD_CIRCUNSCRIPCION


@dataclass(frozen=True)
class Session:
    """Sesión de conteo de una categoría (un acta).

    Attributes:
        category (Category): Categoría electoral.
        mesa_number (str): Número de mesa de 6 dígitos.
        acta_number (str): Identificador ``NNNNNN-NN-L``.
        total_electores (Optional[int]): Total de electores hábiles (TEH).
        cedulas_excedentes (Optional[int]): Cédulas excedentes.
        tcv (Optional[int]): Total de ciudadanos que votaron; ``None`` usa el conteo.
        records (Tuple[BallotRecord, ...]): Cédulas aceptadas en orden.
        location (SelectedLocation): Ubicación seleccionada.
        vote_limits (VoteLimits): Límites preferenciales.
        start_time (Optional[datetime]): Inicio del conteo.
        end_time (Optional[datetime]): Fin del conteo.
        is_mesa_data_saved (bool): Candado "datos de mesa guardados".
        is_finalized (bool): Candado "finalizado".
        are_mesa_fields_locked (bool): Ubicación y TEH autocompletados.
        editing_table_number (Optional[int]): Cédula en edición.

    English:
        Tally session for one category (one acta). ``tcv`` is ``None`` until
        frozen at finalize or carried over from another acta of the same mesa.
    """

    category: Category
    mesa_number: str = ""
    acta_number: str = ""
    total_electores: Optional[int] = None
    cedulas_excedentes: Optional[int] = None
    tcv: Optional[int] = None
    records: Tuple[BallotRecord, ...] = ()
    location: SelectedLocation = field(default_factory=SelectedLocation)
    vote_limits: VoteLimits = field(default_factory=VoteLimits)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    is_mesa_data_saved: bool = False
    is_finalized: bool = False
    are_mesa_fields_locked: bool = False
    editing_table_number: Optional[int] = None

    @property
    def state(self) -> SessionState:
        if self.is_finalized:
            return SessionState.FINALIZED
        if self.is_mesa_data_saved:
            return SessionState.ACTIVE
        return SessionState.UNCONFIGURED

    @property
    def record_count(self) -> int:
        return len(self.records)

    @property
    def total_citizens_voted(self) -> int:
        """TCV efectivo: el valor fijado o el conteo actual.

        English: Effective TCV, the frozen value or the current record count.
        """
        if self.tcv is not None:
            return self.tcv
        return len(self.records)

    @property
    def last_record(self) -> Optional[BallotRecord]:
        if not self.records:
            return None
        return max(self.records, key=lambda record: record.table_number)
