"""Resolución de circunscripción electoral y cascadas de ubicación.

English: Electoral circumscription resolution and location cascades. Every
function here is pure: identical inputs always give identical outputs.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List, Optional, Sequence

from recuento.core.categories import is_national
from recuento.core.models import ABROAD_CIRCUNSCRIPCION, Category, SelectedLocation
from recuento.core.reference import CircunscripcionRecord

CAPITAL = "LIMA"
METROPOLITAN_DEFAULT = "LIMA METROPOLITANA"
CAPITAL_PROVINCES_DEFAULT = "LIMA PROVINCIAS"


def _find(records: Iterable[CircunscripcionRecord], predicate) -> Optional[CircunscripcionRecord]:
    for record in records:
        if predicate(record):
            return record
    return None


def resolve_circunscripcion(
    category: Category,
    departamento: str,
    provincia: str,
    records: Sequence[CircunscripcionRecord],
) -> str:
    """Determina la circunscripción para la categoría y la ubicación.

    Orden de resolución:
        1. Registro propio de la categoría.
        2. Sin departamento: cadena vacía.
        3. Capital: requiere provincia; LIMA/LIMA es metropolitana, el resto
           de provincias usa el registro de provincias de la capital.
        4. Otro departamento: registro departamental o el nombre en mayúsculas.

    English:
        Resolve the circumscription for a category and location. Category
        records take precedence over department-derived ones. Names compare
        case-insensitively; the stored casing is returned.
    """
    if not records:
        return ""

    category_match = _find(records, lambda record: record.category == category.value)
    if category_match is not None:
        return category_match.circunscripcion

    if not departamento:
        return ""

    departamento_upper = departamento.upper()
    if departamento_upper == CAPITAL:
        if not provincia:
            return ""
        if provincia.upper() == CAPITAL:
            match = _find(
                records,
                lambda record: record.category == ""
                and record.departamento.upper() == CAPITAL
                and record.provincia.upper() == CAPITAL,
            )
            return match.circunscripcion if match else METROPOLITAN_DEFAULT
        match = _find(
            records,
            lambda record: record.category == ""
            and record.departamento.upper() == CAPITAL
            and record.provincia == "",
        )
        return match.circunscripcion if match else CAPITAL_PROVINCES_DEFAULT

    match = _find(
        records,
        lambda record: record.category == ""
        and record.departamento.upper() == departamento_upper
        and record.provincia == "",
    )
    return match.circunscripcion if match else departamento_upper


def circunscripcion_options(category: Category, records: Sequence[CircunscripcionRecord]) -> List[str]:
    """Opciones válidas de circunscripción para la categoría.

    English: Valid circumscription options. National categories expose only
    their own record; the rest expose every departmental circumscription.
    """
    if is_national(category):
        match = _find(records, lambda record: record.category == category.value)
        if match is not None and match.circunscripcion.strip():
            return [match.circunscripcion]
        return []
    departmental = {
        record.circunscripcion
        for record in records
        if not record.category.strip() and record.circunscripcion.strip()
    }
    return sorted(departmental)


def auto_circunscripcion(category: Category, records: Sequence[CircunscripcionRecord]) -> Optional[str]:
    """Devuelve la única opción si existe / Return the single option, if any."""
    options = circunscripcion_options(category, records)
    if len(options) == 1:
        return options[0]
    return None


def apply_category(
    location: SelectedLocation,
    category: Category,
    records: Sequence[CircunscripcionRecord],
) -> SelectedLocation:
    """Ajusta la circunscripción al cambiar de categoría.

    English: Adjust the circumscription when the category changes: a single
    option is auto-applied, otherwise the prior selection is cleared.
    """
    single = auto_circunscripcion(category, records)
    return replace(location, circunscripcion=single or "")


def change_departamento(location: SelectedLocation, value: str) -> SelectedLocation:
    return replace(location, departamento=value, provincia="", distrito="", jee="")


def change_provincia(location: SelectedLocation, value: str) -> SelectedLocation:
    return replace(location, provincia=value, distrito="", jee="")


def change_distrito(location: SelectedLocation, value: str) -> SelectedLocation:
    return replace(location, distrito=value)


def change_jee(location: SelectedLocation, value: str) -> SelectedLocation:
    return replace(location, jee=value)


def change_circunscripcion(location: SelectedLocation, value: str) -> SelectedLocation:
    """Cambia la circunscripción; nacional/extranjero limpia la jerarquía.

    English: Change the circumscription. Switching between domestic and abroad
    clears department, province, district and JEE.
    """
    was_abroad = location.circunscripcion == ABROAD_CIRCUNSCRIPCION
    is_abroad = value == ABROAD_CIRCUNSCRIPCION
    if was_abroad != is_abroad:
        return SelectedLocation(circunscripcion=value)
    return replace(location, circunscripcion=value)


def refresh_circunscripcion(
    location: SelectedLocation,
    category: Category,
    records: Sequence[CircunscripcionRecord],
) -> SelectedLocation:
    """Recalcula la circunscripción tras cambiar departamento o provincia.

    English: Recompute the circumscription after a department or province
    change. Abroad selections are left untouched.
    """
    if location.is_abroad:
        return location
    resolved = resolve_circunscripcion(category, location.departamento, location.provincia, records)
    return replace(location, circunscripcion=resolved)
