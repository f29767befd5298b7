"""Pruebas del validador de cédulas.

Tests for the ballot validator.
"""

from __future__ import annotations

import pytest

from recuento.core.categories import DEFAULT_VOTE_LIMITS, preferential_config
from recuento.core.models import BallotDraft, BallotRecord, Category
from recuento.core.validation import (
    ValidationResult,
    is_valid_acta_number,
    is_valid_elector_count,
    is_valid_mesa_number,
    next_table_number,
    validate_ballot,
)
from recuento.errors import RejectionReason, ValidationError

PARTY_ONE = "1 | PARTIDO UNO"
PARTY_TWO = "2 | PARTIDO DOS"
ACTIVE = frozenset({PARTY_ONE, PARTY_TWO, "BLANCO", "NULO"})


def _validate(draft: BallotDraft, category: Category, records=(), total_electores=10, editing=None):
    return validate_ballot(
        draft,
        records=records,
        total_electores=total_electores,
        vote_limits=DEFAULT_VOTE_LIMITS[category],
        config=preferential_config(category),
        active_parties=ACTIVE,
        editing=editing,
    )


def _records(count: int):
    return tuple(BallotRecord(table_number=index, party=PARTY_ONE) for index in range(1, count + 1))


def test_blank_with_preferential_is_rejected() -> None:
    """Español: BLANCO no admite votos preferenciales.

    English: BLANCO with nonzero preferential values is rejected.
    """
    result = _validate(BallotDraft("BLANCO", 5, 0), Category.SENADORES_NACIONAL)

    assert not result.accepted
    assert result.reason is RejectionReason.PREFERENTIAL_ON_BLANK_OR_NULL


def test_blank_without_preferential_is_accepted() -> None:
    result = _validate(BallotDraft("BLANCO"), Category.SENADORES_NACIONAL)

    assert result.accepted
    assert result.record == BallotRecord(table_number=1, party="BLANCO", preferential1=0, preferential2=0)


def test_capacity_blocks_inserts_but_not_edits() -> None:
    """Español: Con TEH=5 la sexta cédula se rechaza; la quinta se puede editar.

    English: With TEH=5 the sixth insert is rejected and record #5 stays editable.
    """
    records = _records(5)

    insert = _validate(BallotDraft(PARTY_TWO), Category.PRESIDENCIAL, records, total_electores=5)
    assert insert.reason is RejectionReason.CAPACITY_EXCEEDED

    edit = _validate(BallotDraft(PARTY_TWO), Category.PRESIDENCIAL, records, total_electores=5, editing=records[-1])
    assert edit.accepted
    assert edit.record.table_number == 5
    assert edit.record.party == PARTY_TWO


def test_capacity_is_checked_before_organization() -> None:
    result = _validate(BallotDraft(""), Category.PRESIDENCIAL, _records(2), total_electores=2)
    assert result.reason is RejectionReason.CAPACITY_EXCEEDED


def test_missing_elector_total_rejects_first_insert() -> None:
    result = _validate(BallotDraft(PARTY_ONE), Category.PRESIDENCIAL, total_electores=None)
    assert result.reason is RejectionReason.CAPACITY_EXCEEDED


@pytest.mark.parametrize("party", ["", "   "])
def test_missing_organization(party: str) -> None:
    result = _validate(BallotDraft(party), Category.PRESIDENCIAL)
    assert result.reason is RejectionReason.MISSING_ORGANIZATION


def test_inactive_organization() -> None:
    result = _validate(BallotDraft("3 | PARTIDO TRES"), Category.PRESIDENCIAL)
    assert result.reason is RejectionReason.INACTIVE_ORGANIZATION
    assert "3 | PARTIDO TRES" in result.message


@pytest.mark.parametrize("values", [(5, 0), (0, 5), (-1, 0)])
def test_preferential_out_of_range(values) -> None:
    result = _validate(BallotDraft(PARTY_ONE, *values), Category.DIPUTADOS)
    assert result.reason is RejectionReason.PREFERENTIAL_OUT_OF_RANGE


def test_duplicate_nonzero_preferential_pair() -> None:
    result = _validate(BallotDraft(PARTY_ONE, 3, 3), Category.DIPUTADOS)
    assert result.reason is RejectionReason.DUPLICATE_PREFERENTIAL


def test_zero_pair_is_not_a_duplicate() -> None:
    result = _validate(BallotDraft(PARTY_ONE, 0, 0), Category.DIPUTADOS)
    assert result.accepted


def test_disabled_slots_are_forced_to_zero() -> None:
    """Español: Las casillas deshabilitadas se guardan como 0.

    English: Disabled slots are stored as 0 whatever the draft says.
    """
    presidencial = _validate(BallotDraft(PARTY_ONE, 7, 9), Category.PRESIDENCIAL)
    assert presidencial.record == BallotRecord(1, PARTY_ONE, 0, 0)

    regional = _validate(BallotDraft(PARTY_ONE, 2, 2), Category.SENADORES_REGIONAL)
    assert regional.accepted
    assert (regional.record.preferential1, regional.record.preferential2) == (2, 0)


def test_table_numbers_follow_the_highest_record() -> None:
    records = (BallotRecord(1, PARTY_ONE), BallotRecord(4, PARTY_TWO))
    assert next_table_number(records) == 5
    assert next_table_number(()) == 1

    result = _validate(BallotDraft(PARTY_ONE), Category.PRESIDENCIAL, records)
    assert result.record.table_number == 5


def test_raise_for_rejection() -> None:
    rejected = ValidationResult.reject(RejectionReason.MISSING_ORGANIZATION)
    with pytest.raises(ValidationError) as excinfo:
        rejected.raise_for_rejection()
    assert excinfo.value.reason is RejectionReason.MISSING_ORGANIZATION

    accepted = _validate(BallotDraft(PARTY_ONE), Category.PRESIDENCIAL)
    assert accepted.raise_for_rejection().party == PARTY_ONE


def test_acta_and_mesa_formats() -> None:
    """Español: Formatos de mesa y acta.

    English: Mesa and acta format checks.
    """
    assert is_valid_acta_number("123456-01-A")
    assert not is_valid_acta_number("12345-01-A")
    assert not is_valid_acta_number("123456-1-A")
    assert not is_valid_acta_number("123456-01-a")

    assert is_valid_mesa_number("123456")
    assert not is_valid_mesa_number("000000")
    assert not is_valid_mesa_number("12345")
    assert not is_valid_mesa_number("")


@pytest.mark.parametrize(("value", "expected"), [(None, False), (0, False), (1, True), (300, True), (301, False)])
def test_elector_count_range(value, expected: bool) -> None:
    assert is_valid_elector_count(value) is expected
