"""Mapeo del acta finalizada a campos posicionados.

English: Maps a finalized session plus its tally to positioned field entries
for an external renderer. Organizations outside the active set render
``"-"`` ("not applicable here"), never ``0``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import AbstractSet, List, Optional, Sequence

from recuento.core.models import BLANCO, NULO, Organization, Session, SessionState
from recuento.core.tally import TallyResult
from recuento.core.templates import FieldPosition, TemplateLayout, get_layout
from recuento.errors import SessionStateError

NOT_APPLICABLE = "-"


@dataclass(frozen=True)
class FieldEntry:
    """Valor a pintar en la plantilla / Value to paint on the template."""

    label: str
    value: str
    x: float
    y: float
    size: float


def format_time(value: datetime) -> str:
    return value.strftime("%H:%M:%S")


def format_date(value: datetime) -> str:
    return value.strftime("%d/%m/%Y")


def _entry(label: str, value: object, position: FieldPosition, page_height: float) -> FieldEntry:
    return FieldEntry(
        label=label,
        value=str(value),
        x=position.x,
        y=page_height - position.y_offset,
        size=position.size,
    )


def _common_fields(session: Session, layout: TemplateLayout, page_height: float) -> List[FieldEntry]:
    fields = layout.fields
    location = session.location
    tcv = session.total_citizens_voted
    entries = [
        _entry("mesaNumber", session.mesa_number.zfill(6), fields["mesaNumber"], page_height),
        _entry("actaNumber", session.acta_number, fields["actaNumber"], page_height),
        _entry("jee", location.jee.upper(), fields["jee"], page_height),
        _entry("departamento", location.departamento.upper(), fields["departamento"], page_height),
        _entry("provincia", location.provincia.upper(), fields["provincia"], page_height),
        _entry("distrito", location.distrito.upper(), fields["distrito"], page_height),
    ]
    if session.end_time is not None:
        entries.append(_entry("endTime", format_time(session.end_time), fields["endTime"], page_height))
        entries.append(_entry("endDate", format_date(session.end_time), fields["endDate"], page_height))
    entries.extend(
        [
            _entry("tcvTopRight", tcv, fields["tcvTopRight"], page_height),
            _entry("totalElectores", session.total_electores or 0, fields["totalElectores"], page_height),
            _entry("cedulasExcedentes", session.cedulas_excedentes or 0, fields["cedulasExcedentes"], page_height),
            _entry("tcvBottom", tcv, fields["tcvBottom"], page_height),
        ]
    )
    if session.start_time is not None:
        entries.append(_entry("startTime", format_time(session.start_time), fields["startTime"], page_height))
        entries.append(_entry("startDate", format_date(session.start_time), fields["startDate"], page_height))
    return entries


def _party_votes(
    tally: TallyResult,
    organizations: Sequence[Organization],
    active_parties: AbstractSet[str],
    layout: TemplateLayout,
    page_height: float,
) -> List[FieldEntry]:
    entries: List[FieldEntry] = []
    y_pos = page_height - layout.votes_start_y
    for org in organizations:
        party = org.party_key
        value = tally.vote_count.get(party, 0) if party in active_parties else NOT_APPLICABLE
        label = f"votes:{party}"
        if org.name == BLANCO:
            entries.append(_entry(label, value, layout.blanco, page_height))
        elif org.name == NULO:
            entries.append(_entry(label, value, layout.nulo, page_height))
        else:
            entries.append(FieldEntry(label, str(value), layout.party_votes_x, y_pos, layout.party_votes_size))
            y_pos -= layout.line_height
    return entries


def _preferential_table(
    tally: TallyResult,
    organizations: Sequence[Organization],
    active_parties: AbstractSet[str],
    layout: TemplateLayout,
    page_height: float,
) -> List[FieldEntry]:
    table = layout.preferential_table
    if table is None:
        return []
    entries: List[FieldEntry] = []
    table_y = page_height - table.start_y
    total_x = table.start_x + table.columns * table.cell_width
    for org in organizations:
        if org.is_special or org.name in (BLANCO, NULO):
            continue
        if table_y < table.bottom_margin:
            break
        party = org.party_key
        row = tally.preferential_matrix.get(party) if party in active_parties else None
        row_sum = 0
        for number in range(1, table.columns + 1):
            if row is None:
                value: object = NOT_APPLICABLE
            else:
                value = row.get(number, 0)
                row_sum += value
            entries.append(
                FieldEntry(
                    label=f"preferential:{party}:{number}",
                    value=str(value),
                    x=table.start_x + (number - 1) * table.cell_width,
                    y=table_y,
                    size=table.font_size,
                )
            )
        entries.append(
            FieldEntry(
                label=f"preferential:{party}:total",
                value=NOT_APPLICABLE if row is None else str(row_sum),
                x=total_x,
                y=table_y,
                size=table.font_size,
            )
        )
        table_y -= table.line_height
    return entries


def map_fields(
    session: Session,
    tally: TallyResult,
    organizations: Sequence[Organization],
    active_parties: AbstractSet[str],
    page_height: Optional[float] = None,
) -> List[FieldEntry]:
    """Genera la lista ordenada de campos del acta.

    Args:
        session (Session): Sesión finalizada.
        tally (TallyResult): Conteo de la sesión.
        organizations (Sequence[Organization]): Lista completa en orden de cédula.
        active_parties (AbstractSet[str]): Claves de partido habilitadas.
        page_height (Optional[float]): Alto real de la plantilla, si difiere.

    Returns:
        List[FieldEntry]: Campos comunes, votos por partido y tabla preferencial.
        Vacía para categorías sin plantilla.

    English:
        Build the ordered field list of the acta. Categories without a
        template yield an empty list.
    """
    if session.state is not SessionState.FINALIZED:
        raise SessionStateError(
            "El acta debe estar finalizada / The acta must be finalized",
            context={"category": session.category.value, "state": session.state.value},
        )
    layout = get_layout(session.category)
    if layout is None:
        return []
    height = page_height if page_height is not None else layout.page_height
    return (
        _common_fields(session, layout, height)
        + _party_votes(tally, organizations, active_parties, layout, height)
        + _preferential_table(tally, organizations, active_parties, layout, height)
    )
