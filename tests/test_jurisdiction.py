"""Pruebas de resolución de circunscripción.

Tests for circumscription resolution and location cascades.
"""

from __future__ import annotations

from recuento.core.jurisdiction import (
    apply_category,
    auto_circunscripcion,
    change_circunscripcion,
    change_departamento,
    change_provincia,
    circunscripcion_options,
    refresh_circunscripcion,
    resolve_circunscripcion,
)
from recuento.core.models import ABROAD_CIRCUNSCRIPCION, Category, SelectedLocation
from recuento.core.reference import CircunscripcionRecord


def test_capital_without_province_resolves_empty(reference) -> None:
    """Español: Lima sin provincia no tiene circunscripción.

    English: The capital without a province resolves to an empty string.
    """
    records = reference.circunscripciones
    assert resolve_circunscripcion(Category.DIPUTADOS, "LIMA", "", records) == ""


def test_capital_province_resolves_metropolitan(reference) -> None:
    records = reference.circunscripciones
    assert resolve_circunscripcion(Category.DIPUTADOS, "LIMA", "LIMA", records) == "LIMA METROPOLITANA"
    assert resolve_circunscripcion(Category.DIPUTADOS, "lima", "Lima", records) == "LIMA METROPOLITANA"


def test_other_capital_province_resolves_capital_provinces(reference) -> None:
    records = reference.circunscripciones
    assert resolve_circunscripcion(Category.DIPUTADOS, "LIMA", "BARRANCA", records) == "LIMA PROVINCIAS"


def test_capital_defaults_when_records_lack_entries() -> None:
    """English: Without capital records the fixed defaults are returned.

    Sin registros de la capital se devuelven los valores por defecto.
    """
    records = [CircunscripcionRecord("Cusco", departamento="CUSCO")]
    assert resolve_circunscripcion(Category.DIPUTADOS, "LIMA", "LIMA", records) == "LIMA METROPOLITANA"
    assert resolve_circunscripcion(Category.DIPUTADOS, "LIMA", "HUARAL", records) == "LIMA PROVINCIAS"


def test_department_match_keeps_stored_casing(reference) -> None:
    records = reference.circunscripciones
    assert resolve_circunscripcion(Category.SENADORES_REGIONAL, "arequipa", "", records) == "Arequipa"


def test_unknown_department_falls_back_to_uppercase(reference) -> None:
    records = reference.circunscripciones
    assert resolve_circunscripcion(Category.DIPUTADOS, "Cusco", "Cusco", records) == "CUSCO"


def test_category_record_takes_precedence(reference) -> None:
    """Español: La categoría nacional ignora el departamento.

    English: A category record wins over department-derived resolution.
    """
    records = reference.circunscripciones
    assert resolve_circunscripcion(Category.SENADORES_NACIONAL, "LIMA", "LIMA", records) == "UNICO NACIONAL"
    assert resolve_circunscripcion(Category.PRESIDENCIAL, "", "", records) == "PERU"


def test_no_records_resolves_empty() -> None:
    assert resolve_circunscripcion(Category.DIPUTADOS, "LIMA", "LIMA", []) == ""


def test_resolution_is_deterministic(reference) -> None:
    records = reference.circunscripciones
    results = {resolve_circunscripcion(Category.DIPUTADOS, "LIMA", "BARRANCA", records) for _ in range(5)}
    assert results == {"LIMA PROVINCIAS"}


def test_options_for_national_and_departmental_categories(reference) -> None:
    records = reference.circunscripciones
    assert circunscripcion_options(Category.SENADORES_NACIONAL, records) == ["UNICO NACIONAL"]
    assert circunscripcion_options(Category.DIPUTADOS, records) == [
        "Arequipa",
        "LIMA METROPOLITANA",
        "LIMA PROVINCIAS",
        ABROAD_CIRCUNSCRIPCION,
    ]
    assert auto_circunscripcion(Category.PARLAMENTO_ANDINO, records) == "PERU"
    assert auto_circunscripcion(Category.DIPUTADOS, records) is None


def test_apply_category_sets_single_option_or_clears(reference) -> None:
    records = reference.circunscripciones
    location = SelectedLocation(circunscripcion="LIMA METROPOLITANA")

    assert apply_category(location, Category.PRESIDENCIAL, records).circunscripcion == "PERU"
    assert apply_category(location, Category.DIPUTADOS, records).circunscripcion == ""


def test_department_change_clears_dependent_levels() -> None:
    location = SelectedLocation("LIMA", "LIMA", "ANCON", "LIMA METROPOLITANA", "LIMA CENTRO 1")

    changed = change_departamento(location, "AREQUIPA")
    assert (changed.provincia, changed.distrito, changed.jee) == ("", "", "")
    assert changed.circunscripcion == "LIMA METROPOLITANA"

    changed = change_provincia(location, "BARRANCA")
    assert (changed.departamento, changed.distrito, changed.jee) == ("LIMA", "", "")


def test_switching_to_abroad_clears_hierarchy() -> None:
    """Español: Cambiar a extranjero limpia departamento, provincia, distrito y JEE.

    English: Switching domestic to abroad clears the hierarchy.
    """
    location = SelectedLocation("LIMA", "LIMA", "ANCON", "LIMA METROPOLITANA", "LIMA CENTRO 1")

    abroad = change_circunscripcion(location, ABROAD_CIRCUNSCRIPCION)
    assert abroad == SelectedLocation(circunscripcion=ABROAD_CIRCUNSCRIPCION)

    domestic = change_circunscripcion(location, "LIMA PROVINCIAS")
    assert domestic.departamento == "LIMA"
    assert domestic.jee == "LIMA CENTRO 1"


def test_refresh_skips_abroad_locations(reference) -> None:
    records = reference.circunscripciones
    abroad = SelectedLocation("AMERICA", "CHILE", "", ABROAD_CIRCUNSCRIPCION)
    assert refresh_circunscripcion(abroad, Category.DIPUTADOS, records) is abroad

    domestic = SelectedLocation("LIMA", "BARRANCA")
    assert refresh_circunscripcion(domestic, Category.DIPUTADOS, records).circunscripcion == "LIMA PROVINCIAS"
