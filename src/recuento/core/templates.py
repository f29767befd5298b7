"""Plantillas de acta: coordenadas por categoría y nombres de archivo.

English: Acta templates, per-category coordinates and file names. Only
``presidencial`` and ``senadoresNacional`` have a printable layout.
Coordinates are PDF points; ``y_offset`` is measured from the top edge.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from recuento.core.models import Category

CATEGORY_SEGMENTS: Dict[Category, str] = {
    Category.PRESIDENCIAL: "PRESIDENCIAL",
    Category.SENADORES_NACIONAL: "SENADORES_NACIONAL",
    Category.SENADORES_REGIONAL: "SENADORES_DISTRITO_MULTIPLE",
    Category.DIPUTADOS: "DIPUTADOS_DISTRITO_MULTIPLE",
    Category.PARLAMENTO_ANDINO: "PARLAMENTO_ANDINO",
}

_NO_PREFERENTIAL_SEGMENT = frozenset({Category.PRESIDENCIAL, Category.PARLAMENTO_ANDINO})

A3_SHORT = 841.89
A3_LONG = 1190.55


@dataclass(frozen=True)
class FieldPosition:
    x: float
    y_offset: float
    size: float


@dataclass(frozen=True)
class PreferentialTableLayout:
    """Tabla cruzada de votos preferenciales / Preferential cross-table."""

    start_x: float
    start_y: float
    cell_width: float
    font_size: float
    line_height: float
    columns: int = 30
    bottom_margin: float = 50


@dataclass(frozen=True)
class TemplateLayout:
    """Coordenadas de una plantilla de acta.

    Attributes:
        page_width (float): Ancho de página en puntos.
        page_height (float): Alto de página en puntos.
        line_height (float): Separación entre filas de partidos.
        votes_start_y (float): Desplazamiento de la primera fila de partidos.
        fields (Dict[str, FieldPosition]): Campos comunes del acta.
        party_votes_x (float): Columna de votos por partido.
        party_votes_size (float): Tamaño de fuente de votos.
        blanco (FieldPosition): Posición de votos en blanco.
        nulo (FieldPosition): Posición de votos nulos.
        preferential_table (Optional[PreferentialTableLayout]): Tabla preferencial.

    English:
        Coordinates of an acta template.
    """

    page_width: float
    page_height: float
    line_height: float
    votes_start_y: float
    fields: Dict[str, FieldPosition]
    party_votes_x: float
    party_votes_size: float
    blanco: FieldPosition
    nulo: FieldPosition
    preferential_table: Optional[PreferentialTableLayout] = None


PRESIDENCIAL_LAYOUT = TemplateLayout(
    page_width=A3_SHORT,
    page_height=A3_LONG,
    line_height=21.1,
    votes_start_y=248.5,
    fields={
        "mesaNumber": FieldPosition(45, 132, 14),
        "actaNumber": FieldPosition(137, 132, 14),
        "jee": FieldPosition(230, 132, 14),
        "departamento": FieldPosition(45, 175, 14),
        "provincia": FieldPosition(230, 175, 14),
        "distrito": FieldPosition(410, 175, 14),
        "startTime": FieldPosition(112, 198, 13),
        "startDate": FieldPosition(232, 198, 13),
        "endTime": FieldPosition(112, 1166, 13),
        "endDate": FieldPosition(232, 1166, 13),
        "tcvTopRight": FieldPosition(763, 147, 15),
        "totalElectores": FieldPosition(763, 121, 15),
        "cedulasExcedentes": FieldPosition(475, 1092, 15),
        "tcvBottom": FieldPosition(234.6, 1138, 15),
    },
    party_votes_x=446,
    party_votes_size=15,
    blanco=FieldPosition(234.6, 1092, 15),
    nulo=FieldPosition(234.6, 1115, 15),
)

SENADORES_NACIONAL_LAYOUT = TemplateLayout(
    page_width=A3_LONG,
    page_height=A3_SHORT,
    line_height=15.132,
    votes_start_y=150,
    fields={
        "mesaNumber": FieldPosition(44, 102, 9),
        "actaNumber": FieldPosition(106, 102, 9),
        "jee": FieldPosition(168, 102, 9),
        "departamento": FieldPosition(423, 102, 9),
        "provincia": FieldPosition(581, 102, 9),
        "distrito": FieldPosition(739, 102, 9),
        "startTime": FieldPosition(95, 118, 10),
        "startDate": FieldPosition(205, 118, 10),
        "endTime": FieldPosition(95, 816, 10),
        "endDate": FieldPosition(205, 816, 10),
        "tcvTopRight": FieldPosition(1120, 114, 15),
        "totalElectores": FieldPosition(1120, 91, 15),
        "cedulasExcedentes": FieldPosition(525.6, 753.8, 15),
        "tcvBottom": FieldPosition(245.6, 793.4, 15),
    },
    party_votes_x=225,
    party_votes_size=15,
    blanco=FieldPosition(245.6, 753.8, 15),
    nulo=FieldPosition(245.6, 773.4, 15),
    preferential_table=PreferentialTableLayout(
        start_x=263.8,
        start_y=149,
        cell_width=22.95,
        font_size=11.5,
        line_height=15.132,
    ),
)

LAYOUTS: Dict[Category, TemplateLayout] = {
    Category.PRESIDENCIAL: PRESIDENCIAL_LAYOUT,
    Category.SENADORES_NACIONAL: SENADORES_NACIONAL_LAYOUT,
}


def get_layout(category: Category) -> Optional[TemplateLayout]:
    return LAYOUTS.get(category)


def select_template(category: Category, preferential_limit: int = 0, abroad: bool = False) -> str:
    """Nombre del archivo de plantilla.

    Formato ``{ID}_{SEGMENTO}[_{LIMITE}_PREFERENCIALES][_EXTRANJERO].pdf``;
    presidencial y parlamento andino nunca llevan el segmento preferencial.

    English:
        Template file name. Presidencial and parlamentoAndino never carry the
        preferential segment.
    """
    parts = [category.code, CATEGORY_SEGMENTS[category]]
    if preferential_limit > 0 and category not in _NO_PREFERENTIAL_SEGMENT:
        parts.append(f"{preferential_limit}_PREFERENCIALES")
    if abroad:
        parts.append("EXTRANJERO")
    return "_".join(parts) + ".pdf"


def output_filename(category: Category, mesa_number: str) -> str:
    """``acta_{categoria}_{mesa6}.pdf`` con la categoría en snake_case."""
    slug = "".join(f"_{char.lower()}" if char.isupper() else char for char in category.value)
    return f"acta_{slug}_{str(mesa_number).zfill(6)}.pdf"
