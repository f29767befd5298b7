"""Agregación de votos, matriz preferencial y estadísticas.

English: Vote aggregation, preferential matrix and summary statistics.
Recomputation is total and pure: the same records always yield the same
tally, so it can be called on every read.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from recuento.core.categories import DEFAULT_MAX_PREFERENTIAL
from recuento.core.models import BLANCO, NULO, SPECIAL_PARTIES, BallotRecord, Organization

TOTAL_KEY = "total"


@dataclass(frozen=True)
class TallyStatistics:
    """Estadísticas de resumen del acta.

    Attributes:
        blank_and_null (int): Votos BLANCO + NULO.
        total_valid_votes (int): Votos por organizaciones políticas.
        total_voters_who_voted (int): Válidos + blancos y nulos.
        participation_rate (float): Porcentaje de participación.
        absenteeism_rate (float): 100 menos la participación.

    English:
        Summary statistics for the acta.
    """

    blank_and_null: int
    total_valid_votes: int
    total_voters_who_voted: int
    participation_rate: float
    absenteeism_rate: float


@dataclass(frozen=True)
class TallyResult:
    """Salida completa del agregador / Full aggregator output."""

    vote_count: Dict[str, int]
    preferential_matrix: Dict[str, Dict[object, int]]
    statistics: TallyStatistics

    @property
    def ranking(self) -> List[Tuple[str, int]]:
        return rank_parties(self.vote_count)


def _empty_row(max_preferential: int) -> Dict[object, int]:
    row: Dict[object, int] = {number: 0 for number in range(1, max_preferential + 1)}
    row[TOTAL_KEY] = 0
    return row


def count_votes(records: Iterable[BallotRecord], organizations: Iterable[Organization]) -> Dict[str, int]:
    """Cuenta cédulas por clave de partido, iniciando todas en cero.

    English: Count records per party key; every organization starts at zero,
    active or not.
    """
    counts: Dict[str, int] = {org.party_key: 0 for org in organizations}
    counts.setdefault(BLANCO, 0)
    counts.setdefault(NULO, 0)
    for record in records:
        counts[record.party] = counts.get(record.party, 0) + 1
    return counts


def build_preferential_matrix(
    records: Iterable[BallotRecord],
    organizations: Iterable[Organization],
    max_preferential: int = DEFAULT_MAX_PREFERENTIAL,
) -> Dict[str, Dict[object, int]]:
    """Distribución de votos preferenciales 1..N por partido.

    English: Preferential distribution 1..N per party. Both slots count;
    values outside the range are ignored. BLANCO/NULO rows stay at zero.
    """
    matrix: Dict[str, Dict[object, int]] = {
        org.party_key: _empty_row(max_preferential) for org in organizations
    }
    for special in (BLANCO, NULO):
        matrix.setdefault(special, _empty_row(max_preferential))
    for record in records:
        if record.party in SPECIAL_PARTIES:
            continue
        row = matrix.setdefault(record.party, _empty_row(max_preferential))
        for value in (record.preferential1, record.preferential2):
            if 1 <= value <= max_preferential:
                row[value] += 1
                row[TOTAL_KEY] += 1
    return matrix


def compute_statistics(vote_count: Mapping[str, int], total_electores: Optional[int]) -> TallyStatistics:
    blank_and_null = vote_count.get(BLANCO, 0) + vote_count.get(NULO, 0)
    total_valid = sum(votes for party, votes in vote_count.items() if party not in SPECIAL_PARTIES)
    voted = total_valid + blank_and_null
    participation = (voted / total_electores * 100) if total_electores else 0.0
    return TallyStatistics(
        blank_and_null=blank_and_null,
        total_valid_votes=total_valid,
        total_voters_who_voted=voted,
        participation_rate=participation,
        absenteeism_rate=100 - participation,
    )


def rank_parties(vote_count: Mapping[str, int]) -> List[Tuple[str, int]]:
    """Ranking descendente por votos; empates por clave.

    English: Descending ranking by votes, ties broken by party key.
    """
    return sorted(vote_count.items(), key=lambda item: (-item[1], item[0]))


def compute_tally(
    records: Iterable[BallotRecord],
    organizations: Iterable[Organization],
    total_electores: Optional[int],
    max_preferential: int = DEFAULT_MAX_PREFERENTIAL,
) -> TallyResult:
    """Recalcula el conteo completo de una sesión.

    English: Recompute the full tally for a session.
    """
    records = tuple(records)
    organizations = tuple(organizations)
    vote_count = count_votes(records, organizations)
    return TallyResult(
        vote_count=vote_count,
        preferential_matrix=build_preferential_matrix(records, organizations, max_preferential),
        statistics=compute_statistics(vote_count, total_electores),
    )
