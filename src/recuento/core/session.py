"""Máquina de estados de la sesión de conteo.

English: Tally session state machine. Every transition takes a ``Session``
and returns a new one (or raises an explicit error); nothing is mutated in
place. ``Unconfigured -> Active -> Finalized`` is the only path, and a
finalized session can only be followed by a fresh sibling session.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import AbstractSet, Optional, Tuple

from recuento.core.categories import is_national, preferential_config
from recuento.core.models import (
    BallotDraft,
    Category,
    SelectedLocation,
    Session,
    SessionState,
    VoteLimits,
)
from recuento.core.reference import MesaRecord
from recuento.core.validation import ValidationResult, check_start_preconditions, validate_ballot
from recuento.errors import LookupMissError, RejectionReason, SessionStateError, ValidationError


def _require_state(session: Session, expected: SessionState, action: str) -> None:
    if session.state is not expected:
        raise SessionStateError(
            f"{action} no permitido en estado {session.state.value} / "
            f"{action} not allowed in state {session.state.value}",
            context={"category": session.category.value, "state": session.state.value, "action": action},
        )


def new_session(category: Category, vote_limits: VoteLimits) -> Session:
    return Session(category=category, vote_limits=vote_limits)


def update_location(session: Session, location: SelectedLocation) -> Session:
    """Reemplaza la ubicación seleccionada.

    English: Replace the selected location. Only allowed while unconfigured;
    auto-filled department/province/district stay fixed while locked.
    """
    _require_state(session, SessionState.UNCONFIGURED, "update_location")
    if session.are_mesa_fields_locked:
        current = session.location
        if (location.departamento, location.provincia, location.distrito) != (
            current.departamento,
            current.provincia,
            current.distrito,
        ):
            raise SessionStateError(
                "Ubicación autocompletada desde la mesa / Location locked by mesa data",
                context={"category": session.category.value, "mesa": session.mesa_number},
            )
    return replace(session, location=location)


def update_vote_limits(session: Session, vote_limits: VoteLimits) -> Session:
    _require_state(session, SessionState.UNCONFIGURED, "update_vote_limits")
    return replace(session, vote_limits=vote_limits)


def set_mesa_data(
    session: Session,
    mesa_number: str,
    acta_number: str,
    total_electores: Optional[int],
    *,
    mesa_record: Optional[MesaRecord],
    category_circunscripcion: Optional[str] = None,
    carried_surplus: Optional[int] = None,
    carried_tcv: Optional[int] = None,
) -> Tuple[Session, Optional[LookupMissError]]:
    """Registra mesa, acta y TEH, autocompletando desde la referencia.

    Con la mesa encontrada se rellenan departamento, provincia, distrito y TEH,
    y se bloquean. La circunscripción viene de la categoría cuando es nacional
    y de la mesa en otro caso. Sin la mesa los valores se aceptan igual y se
    devuelve un ``LookupMissError`` como advertencia.

    English:
        Record mesa, acta and TEH, auto-filling from the polling-table
        reference. A hit stores the reference 6-digit mesa number; a miss
        stores the trimmed input as typed, so ``start`` can reject it, and
        returns a ``LookupMissError`` as a warning instead of raising it.
    """
    _require_state(session, SessionState.UNCONFIGURED, "set_mesa_data")
    mesa = mesa_record.mesa_number if mesa_record is not None else str(mesa_number or "").strip()
    updates = {
        "mesa_number": mesa,
        "acta_number": acta_number.strip().upper(),
        "total_electores": total_electores,
    }
    if carried_surplus is not None:
        updates["cedulas_excedentes"] = carried_surplus
    if carried_tcv is not None:
        updates["tcv"] = carried_tcv

    if mesa_record is None:
        warning = LookupMissError(
            f"Mesa {mesa} no encontrada en la referencia / Mesa not found in reference",
            context={"mesa": mesa, "category": session.category.value},
        )
        return replace(session, are_mesa_fields_locked=False, **updates), warning

    if is_national(session.category):
        circunscripcion = category_circunscripcion or ""
    else:
        circunscripcion = mesa_record.circunscripcion
    location = SelectedLocation(
        departamento=mesa_record.departamento,
        provincia=mesa_record.provincia,
        distrito=mesa_record.distrito,
        circunscripcion=circunscripcion,
        jee=session.location.jee,
    )
    updates["total_electores"] = mesa_record.teh or total_electores
    return replace(session, location=location, are_mesa_fields_locked=True, **updates), None


def start(
    session: Session,
    active_parties: AbstractSet[str],
    *,
    mesa_already_finalized: bool,
    now: datetime,
) -> Session:
    """Inicia el conteo si se cumplen todas las precondiciones.

    English: Start the tally when every precondition holds; otherwise raise
    and leave the session untouched.
    """
    _require_state(session, SessionState.UNCONFIGURED, "start")
    check_start_preconditions(session, active_parties, mesa_already_finalized=mesa_already_finalized)
    return replace(session, start_time=now, is_mesa_data_saved=True)


def add_ballot(
    session: Session,
    draft: BallotDraft,
    active_parties: AbstractSet[str],
) -> Tuple[Session, ValidationResult]:
    _require_state(session, SessionState.ACTIVE, "add_ballot")
    if session.editing_table_number is not None:
        return session, ValidationResult.reject(
            RejectionReason.EDIT_IN_PROGRESS, str(session.editing_table_number)
        )
    result = validate_ballot(
        draft,
        records=session.records,
        total_electores=session.total_electores,
        vote_limits=session.vote_limits,
        config=preferential_config(session.category),
        active_parties=active_parties,
    )
    if not result.accepted:
        return session, result
    return replace(session, records=session.records + (result.record,)), result


def begin_edit(session: Session, table_number: Optional[int] = None) -> Session:
    """Abre la última cédula para edición.

    English: Open the most recent record for editing. Older records are not
    editable.
    """
    _require_state(session, SessionState.ACTIVE, "begin_edit")
    last = session.last_record
    if last is None or (table_number is not None and table_number != last.table_number):
        raise ValidationError(
            RejectionReason.EDIT_NOT_ALLOWED,
            "Solo se puede editar la última cédula / Only the latest record can be edited",
            context={"table_number": table_number},
        )
    return replace(session, editing_table_number=last.table_number)


def confirm_edit(
    session: Session,
    draft: BallotDraft,
    active_parties: AbstractSet[str],
) -> Tuple[Session, ValidationResult]:
    _require_state(session, SessionState.ACTIVE, "confirm_edit")
    if session.editing_table_number is None:
        return session, ValidationResult.reject(RejectionReason.NO_EDIT_IN_PROGRESS)
    original = next(
        record for record in session.records if record.table_number == session.editing_table_number
    )
    result = validate_ballot(
        draft,
        records=session.records,
        total_electores=session.total_electores,
        vote_limits=session.vote_limits,
        config=preferential_config(session.category),
        active_parties=active_parties,
        editing=original,
    )
    if not result.accepted:
        return session, result
    records = tuple(
        result.record if record.table_number == original.table_number else record
        for record in session.records
    )
    return replace(session, records=records, editing_table_number=None), result


def cancel_edit(session: Session) -> Session:
    _require_state(session, SessionState.ACTIVE, "cancel_edit")
    return replace(session, editing_table_number=None)


def set_surplus(session: Session, value: int) -> Session:
    """Registra cédulas excedentes al completar el TEH.

    English: Record surplus ballots; only once the record count reaches TEH.
    """
    _require_state(session, SessionState.ACTIVE, "set_surplus")
    if session.record_count != session.total_electores:
        raise ValidationError(
            RejectionReason.SURPLUS_NOT_ALLOWED,
            f"Cédulas excedentes solo con {session.total_electores} cédulas registradas / "
            f"Surplus ballots need the record count to equal TEH",
        )
    if value < 0:
        raise ValidationError(RejectionReason.INVALID_SURPLUS, f"Valor inválido / Invalid value: {value}")
    return replace(session, cedulas_excedentes=value)


def finalize(session: Session, *, now: datetime) -> Session:
    """Cierra el conteo y congela el TCV.

    English: Close the tally. TCV is frozen to the current record count
    unless it was set explicitly. Any pending edit is discarded.
    """
    _require_state(session, SessionState.ACTIVE, "finalize")
    tcv = session.tcv if session.tcv is not None else session.record_count
    return replace(
        session,
        end_time=now,
        tcv=tcv,
        is_finalized=True,
        editing_table_number=None,
    )


def elapsed_time(session: Session, now: datetime) -> str:
    """Tiempo transcurrido ``HH:MM:SS`` (solo visual).

    English: Elapsed ``HH:MM:SS`` between start and end, or now while active.
    Display only.
    """
    if session.start_time is None:
        return "00:00:00"
    end = session.end_time or now
    seconds = max(int((end - session.start_time).total_seconds()), 0)
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
