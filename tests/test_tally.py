"""Pruebas del agregador de votos.

Tests for the vote aggregator.
"""

from __future__ import annotations

import pytest

from recuento.core.categories import VoteLimitEntry, get_vote_limits
from recuento.core.models import BallotRecord, Category, Organization, VoteLimits
from recuento.core.tally import (
    TOTAL_KEY,
    build_preferential_matrix,
    compute_statistics,
    compute_tally,
    count_votes,
    rank_parties,
)

PARTY_ONE = "1 | PARTIDO UNO"
PARTY_TWO = "2 | PARTIDO DOS"
PARTY_THREE = "3 | PARTIDO TRES"

ORGANIZATIONS = [
    Organization(key="P1", name="PARTIDO UNO", order=1),
    Organization(key="P2", name="PARTIDO DOS", order=2),
    Organization(key="P3", name="PARTIDO TRES", order=3),
    Organization(key="BLANCO", name="BLANCO"),
    Organization(key="NULO", name="NULO"),
]


def _build_records():
    return (
        BallotRecord(1, PARTY_ONE, 3, 7),
        BallotRecord(2, PARTY_ONE, 3, 0),
        BallotRecord(3, PARTY_ONE),
        BallotRecord(4, PARTY_TWO, 31, 2),
        BallotRecord(5, "BLANCO"),
    )


def test_every_organization_starts_at_zero() -> None:
    """Español: Todas las organizaciones aparecen aunque no tengan votos.

    English: Every organization is present even without votes.
    """
    counts = count_votes(_build_records(), ORGANIZATIONS)

    assert counts == {PARTY_ONE: 3, PARTY_TWO: 1, PARTY_THREE: 0, "BLANCO": 1, "NULO": 0}
    assert sum(counts.values()) == len(_build_records())


def test_special_buckets_exist_without_organizations() -> None:
    counts = count_votes([], [])
    assert counts == {"BLANCO": 0, "NULO": 0}


def test_preferential_matrix_counts_both_slots() -> None:
    matrix = build_preferential_matrix(_build_records(), ORGANIZATIONS, max_preferential=30)

    assert matrix[PARTY_ONE][3] == 2
    assert matrix[PARTY_ONE][7] == 1
    assert matrix[PARTY_ONE][TOTAL_KEY] == 3
    # 31 cae fuera de rango.
    assert matrix[PARTY_TWO][2] == 1
    assert matrix[PARTY_TWO][TOTAL_KEY] == 1
    assert set(matrix[PARTY_THREE]) == set(range(1, 31)) | {TOTAL_KEY}


def test_preferential_matrix_special_rows_stay_zero() -> None:
    records = (BallotRecord(1, "NULO", 4, 5),)
    matrix = build_preferential_matrix(records, [], max_preferential=10)

    assert matrix["NULO"][TOTAL_KEY] == 0
    assert matrix["BLANCO"][TOTAL_KEY] == 0


def test_statistics_from_counts() -> None:
    stats = compute_statistics({PARTY_ONE: 3, PARTY_TWO: 1, "BLANCO": 1, "NULO": 0}, 10)

    assert stats.blank_and_null == 1
    assert stats.total_valid_votes == 4
    assert stats.total_voters_who_voted == 5
    assert stats.participation_rate == pytest.approx(50.0)
    assert stats.absenteeism_rate == pytest.approx(50.0)


def test_empty_session_has_full_absenteeism() -> None:
    """Español: Sin cédulas el ausentismo es 100 si hay electores.

    English: With no records absenteeism is 100 when electors exist.
    """
    result = compute_tally([], ORGANIZATIONS, 5)

    assert result.statistics.total_voters_who_voted == 0
    assert result.statistics.absenteeism_rate == pytest.approx(100.0)


def test_zero_electors_do_not_divide() -> None:
    stats = compute_statistics({"BLANCO": 0, "NULO": 0}, None)
    assert stats.participation_rate == 0.0
    assert stats.absenteeism_rate == 100.0


def test_ranking_orders_by_votes_then_key() -> None:
    ranking = rank_parties({"B": 2, "A": 2, "C": 5, "D": 0})
    assert ranking == [("C", 5), ("A", 2), ("B", 2), ("D", 0)]


def test_tally_is_pure() -> None:
    records = _build_records()
    first = compute_tally(records, ORGANIZATIONS, 10)
    second = compute_tally(records, ORGANIZATIONS, 10)
    assert first == second
    assert first.ranking[0] == (PARTY_ONE, 3)


def test_vote_limits_from_table() -> None:
    """Español: La tabla de límites reemplaza el valor por defecto.

    English: The limit table overrides the category default.
    """
    entries = [
        VoteLimitEntry("diputados", "LIMA METROPOLITANA", 33),
        VoteLimitEntry("senadoresRegional", "", 3),
        VoteLimitEntry("parlamentoAndino", "", 0),
    ]

    assert get_vote_limits(Category.DIPUTADOS, "LIMA METROPOLITANA", entries) == VoteLimits(33, 33)
    assert get_vote_limits(Category.DIPUTADOS, "Arequipa", entries) == VoteLimits(4, 4)
    assert get_vote_limits(Category.SENADORES_REGIONAL, "Cusco", entries) == VoteLimits(2, 0)
    assert get_vote_limits(Category.SENADORES_REGIONAL, None, entries) == VoteLimits(3, 0)
    assert get_vote_limits(Category.PARLAMENTO_ANDINO, None, entries) == VoteLimits(16, 16)


def test_vote_limits_reject_out_of_range() -> None:
    with pytest.raises(ValueError):
        VoteLimits(200, 0)


def test_party_key_format() -> None:
    assert Organization("P1", "PARTIDO UNO", 1).party_key == PARTY_ONE
    assert Organization("BLANCO", "BLANCO").party_key == "BLANCO"
