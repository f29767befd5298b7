"""Validación de cédulas y de precondiciones de inicio.

English: Ballot validation and session start preconditions. Ballot checks
return a typed ``ValidationResult`` and never notify anyone; reacting to a
rejection is the caller's job.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import AbstractSet, Iterable, Optional

from recuento.core.models import (
    SPECIAL_PARTIES,
    BallotDraft,
    BallotRecord,
    PreferentialConfig,
    Session,
    VoteLimits,
)
from recuento.errors import DuplicateSessionError, RejectionReason, ValidationError

ACTA_PATTERN = re.compile(r"^\d{6}-\d{2}-[A-Z]$")
MESA_PATTERN = re.compile(r"^\d{6}$")
MIN_ELECTORES = 1
MAX_ELECTORES = 300

_MESSAGES = {
    RejectionReason.CAPACITY_EXCEEDED: "Se alcanzó el total de electores hábiles / Elector total reached",
    RejectionReason.MISSING_ORGANIZATION: "Seleccione una organización / Select an organization",
    RejectionReason.INACTIVE_ORGANIZATION: "Organización no habilitada / Organization not enabled",
    RejectionReason.PREFERENTIAL_OUT_OF_RANGE: "Voto preferencial fuera de rango / Preferential vote out of range",
    RejectionReason.PREFERENTIAL_ON_BLANK_OR_NULL: (
        "BLANCO y NULO no admiten voto preferencial / BLANCO and NULO take no preferential vote"
    ),
    RejectionReason.DUPLICATE_PREFERENTIAL: (
        "Los votos preferenciales no pueden repetirse / Preferential votes must differ"
    ),
}


@dataclass(frozen=True)
class ValidationResult:
    """Resultado tipado: cédula aceptada o motivo de rechazo.

    English: Typed result, either the accepted record or a tagged rejection.
    """

    record: Optional[BallotRecord] = None
    reason: Optional[RejectionReason] = None
    message: str = ""

    @property
    def accepted(self) -> bool:
        return self.record is not None

    @classmethod
    def reject(cls, reason: RejectionReason, detail: str = "") -> "ValidationResult":
        message = _MESSAGES.get(reason, reason.value)
        if detail:
            message = f"{message}: {detail}"
        return cls(reason=reason, message=message)

    def raise_for_rejection(self) -> BallotRecord:
        """Devuelve la cédula o lanza ``ValidationError``.

        English: Return the record or raise ``ValidationError``.
        """
        if self.record is None:
            raise ValidationError(self.reason, self.message)
        return self.record


def next_table_number(records: Iterable[BallotRecord]) -> int:
    return max((record.table_number for record in records), default=0) + 1


def validate_ballot(
    draft: BallotDraft,
    *,
    records: Iterable[BallotRecord],
    total_electores: Optional[int],
    vote_limits: VoteLimits,
    config: PreferentialConfig,
    active_parties: AbstractSet[str],
    editing: Optional[BallotRecord] = None,
) -> ValidationResult:
    """Valida una cédula candidata para inserción o edición.

    Args:
        draft (BallotDraft): Cédula candidata.
        records (Iterable[BallotRecord]): Cédulas ya aceptadas.
        total_electores (Optional[int]): TEH de la mesa.
        vote_limits (VoteLimits): Límites por casilla.
        config (PreferentialConfig): Casillas habilitadas.
        active_parties (AbstractSet[str]): Claves de partido habilitadas.
        editing (Optional[BallotRecord]): Cédula reemplazada en una edición.

    Returns:
        ValidationResult: Cédula aceptada con su número de tabla, o rechazo.

    English:
        Validate a candidate ballot for insert or edit. Checks run in order:
        capacity (inserts only), organization, slot ranges, BLANCO/NULO
        without preferential votes, distinct nonzero pair. Disabled slots are
        stored as 0. Edits keep the original table number.
    """
    records = tuple(records)
    preferential1 = draft.preferential1 if config.slot1 else 0
    preferential2 = draft.preferential2 if config.slot2 else 0

    if editing is None and len(records) >= (total_electores or 0):
        return ValidationResult.reject(
            RejectionReason.CAPACITY_EXCEEDED, f"{len(records)}/{total_electores or 0}"
        )

    party = (draft.party or "").strip()
    if not party:
        return ValidationResult.reject(RejectionReason.MISSING_ORGANIZATION)
    if party not in active_parties:
        return ValidationResult.reject(RejectionReason.INACTIVE_ORGANIZATION, party)

    if config.slot1 and not 0 <= preferential1 <= vote_limits.preferential1:
        return ValidationResult.reject(
            RejectionReason.PREFERENTIAL_OUT_OF_RANGE, f"1 -> {preferential1} (max {vote_limits.preferential1})"
        )
    if config.slot2 and not 0 <= preferential2 <= vote_limits.preferential2:
        return ValidationResult.reject(
            RejectionReason.PREFERENTIAL_OUT_OF_RANGE, f"2 -> {preferential2} (max {vote_limits.preferential2})"
        )

    if party in SPECIAL_PARTIES and (preferential1 or preferential2):
        return ValidationResult.reject(RejectionReason.PREFERENTIAL_ON_BLANK_OR_NULL, party)

    if config.both_enabled and preferential1 and preferential1 == preferential2:
        return ValidationResult.reject(RejectionReason.DUPLICATE_PREFERENTIAL, str(preferential1))

    table_number = editing.table_number if editing is not None else next_table_number(records)
    return ValidationResult(
        record=BallotRecord(
            table_number=table_number,
            party=party,
            preferential1=preferential1,
            preferential2=preferential2,
        )
    )


def is_valid_mesa_number(value: str) -> bool:
    """/** Exactamente 6 dígitos y mayor que cero. / Exactly 6 digits and > 0. **/"""
    value = (value or "").strip()
    return bool(MESA_PATTERN.match(value)) and int(value) > 0


def is_valid_acta_number(value: str) -> bool:
    return bool(ACTA_PATTERN.match((value or "").strip()))


def is_valid_elector_count(value: Optional[int]) -> bool:
    return value is not None and MIN_ELECTORES <= value <= MAX_ELECTORES


def check_start_preconditions(
    session: Session,
    active_parties: AbstractSet[str],
    *,
    mesa_already_finalized: bool,
) -> None:
    """Verifica en orden las precondiciones para iniciar el conteo.

    English: Check, in order, the preconditions to start the tally. Raises
    ``DuplicateSessionError`` for an already finalized mesa and
    ``ValidationError`` with the failing reason otherwise.
    """
    if mesa_already_finalized:
        raise DuplicateSessionError(
            f"Mesa {session.mesa_number} ya finalizada para {session.category.label} / "
            f"Mesa already finalized for {session.category.value}",
            context={"mesa": session.mesa_number, "category": session.category.value},
        )
    if not session.location.is_complete:
        raise ValidationError(
            RejectionReason.INCOMPLETE_LOCATION,
            "Complete departamento, provincia, distrito, circunscripción y JEE / Complete the location",
        )
    if not any(party not in SPECIAL_PARTIES for party in active_parties):
        raise ValidationError(
            RejectionReason.NO_ACTIVE_ORGANIZATIONS,
            "Habilite al menos una organización política / Enable at least one political organization",
        )
    if not is_valid_mesa_number(session.mesa_number):
        raise ValidationError(
            RejectionReason.INVALID_MESA,
            f"Número de mesa inválido / Invalid mesa number: {session.mesa_number!r}",
        )
    if not is_valid_acta_number(session.acta_number):
        raise ValidationError(
            RejectionReason.INVALID_ACTA,
            f"Formato de acta inválido (NNNNNN-NN-L) / Invalid acta format: {session.acta_number!r}",
        )
    if not is_valid_elector_count(session.total_electores):
        raise ValidationError(
            RejectionReason.INVALID_ELECTOR_COUNT,
            f"TEH debe estar entre {MIN_ELECTORES} y {MAX_ELECTORES} / TEH out of range: {session.total_electores}",
        )
