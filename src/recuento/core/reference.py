"""Tablas de referencia de ubicación en memoria.

English: In-memory location reference tables. They are read-only inputs to
the engine; how they are loaded from files is not this module's concern.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from recuento.core.models import ABROAD_CIRCUNSCRIPCION


@dataclass(frozen=True)
class UbigeoRecord:
    """Registro de ubigeo nacional / National ubigeo record."""

    reniec_code: str
    inei_code: str
    departamento: str
    provincia: str
    distrito: str


@dataclass(frozen=True)
class CircunscripcionRecord:
    """Circunscripción por categoría o por departamento/provincia.

    English: Circumscription keyed by category, or by department/province when
    ``category`` is empty.
    """

    circunscripcion: str
    category: str = ""
    departamento: str = ""
    provincia: str = ""


@dataclass(frozen=True)
class JeeRecord:
    """Jurado Electoral Especial / Judicial electoral area."""

    jee_id: str
    name: str


@dataclass(frozen=True)
class MesaRecord:
    """Registro de mesa electoral.

    Attributes:
        mesa_number (str): Número de mesa con 6 dígitos.
        location_type (str): Tipo de ubicación (nacional/extranjero).
        circunscripcion (str): Circunscripción electoral.
        departamento (str): Departamento o continente.
        provincia (str): Provincia o país.
        distrito (str): Distrito o ciudad.
        teh (Optional[int]): Total de electores hábiles.

    English:
        Polling-table record. Abroad mesas reuse the hierarchy fields for
        continent, country and city.
    """

    mesa_number: str
    location_type: str
    circunscripcion: str
    departamento: str
    provincia: str
    distrito: str
    teh: Optional[int] = None

    @property
    def is_abroad(self) -> bool:
        return self.circunscripcion == ABROAD_CIRCUNSCRIPCION


def _unique_sorted(values) -> List[str]:
    return sorted({value.strip() for value in values if value and value.strip()})


@dataclass(frozen=True)
class ReferenceTables:
    """Colección consultable de las tablas de referencia.

    English: Queryable collection of the reference tables.
    """

    ubigeos: Tuple[UbigeoRecord, ...] = ()
    circunscripciones: Tuple[CircunscripcionRecord, ...] = ()
    jees: Tuple[JeeRecord, ...] = ()
    mesas: Tuple[MesaRecord, ...] = ()

    def departamentos(self, abroad: bool = False) -> List[str]:
        """Departamentos, o continentes para el extranjero.

        English: Departments, or continents for abroad mesas.
        """
        if abroad:
            return _unique_sorted(m.departamento for m in self.mesas if m.is_abroad)
        return _unique_sorted(u.departamento for u in self.ubigeos)

    def provincias(self, departamento: str, abroad: bool = False) -> List[str]:
        if not departamento:
            return []
        if abroad:
            return _unique_sorted(
                m.provincia for m in self.mesas if m.is_abroad and m.departamento == departamento
            )
        return _unique_sorted(u.provincia for u in self.ubigeos if u.departamento == departamento)

    def distritos(self, departamento: str, provincia: str, abroad: bool = False) -> List[str]:
        if not departamento or not provincia:
            return []
        if abroad:
            return _unique_sorted(
                m.distrito
                for m in self.mesas
                if m.is_abroad and m.departamento == departamento and m.provincia == provincia
            )
        return _unique_sorted(
            u.distrito
            for u in self.ubigeos
            if u.departamento == departamento and u.provincia == provincia
        )

    def jee_names(self) -> List[str]:
        return sorted(record.name for record in self.jees if record.jee_id and record.name)

    def find_jee(self, name: str) -> Optional[JeeRecord]:
        for record in self.jees:
            if record.name == name:
                return record
        return None

    def find_mesa(self, mesa_number: str) -> Optional[MesaRecord]:
        """Busca la mesa rellenando con ceros a 6 dígitos.

        English: Look the mesa up, zero-padding it to 6 digits.
        """
        if not mesa_number:
            return None
        padded = str(mesa_number).strip().zfill(6)
        for record in self.mesas:
            if record.mesa_number == padded:
                return record
        return None
