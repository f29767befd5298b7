"""Esquemas pydantic para persistir sesiones por categoría.

English: Pydantic schemas for persisting sessions per category. The stored
JSON uses camelCase keys; legacy payloads with integer mesa numbers are
normalized on load.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from recuento.core.models import (
    BallotRecord,
    Category,
    SelectedLocation,
    Session,
    VoteLimits,
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class VoteLimitsSchema(_CamelModel):
    preferential1: int = Field(default=0, ge=0, le=199)
    preferential2: int = Field(default=0, ge=0, le=199)


class VoteEntrySchema(_CamelModel):
    """Cédula persistida / Persisted ballot record."""

    table_number: int = Field(alias="tableNumber", ge=1)
    party: str = Field(min_length=1)
    preferential_vote1: int = Field(default=0, alias="preferentialVote1", ge=0)
    preferential_vote2: int = Field(default=0, alias="preferentialVote2", ge=0)


class LocationSchema(_CamelModel):
    departamento: str = ""
    provincia: str = ""
    distrito: str = ""
    circunscripcion: str = Field(default="", alias="circunscripcionElectoral")
    jee: str = ""


class ActaSchema(_CamelModel):
    """Esquema de un acta (sesión) persistida.

    English: Persisted acta (session) schema.
    """

    vote_limits: VoteLimitsSchema = Field(default_factory=VoteLimitsSchema, alias="voteLimits")
    vote_entries: List[VoteEntrySchema] = Field(default_factory=list, alias="voteEntries")
    mesa_number: str = Field(default="", alias="mesaNumber")
    acta_number: str = Field(default="", alias="actaNumber")
    total_electores: Optional[int] = Field(default=None, alias="totalElectores", ge=0)
    cedulas_excedentes: Optional[int] = Field(default=None, alias="cedulasExcedentes", ge=0)
    tcv: Optional[int] = Field(default=None, ge=0)
    is_form_finalized: bool = Field(default=False, alias="isFormFinalized")
    is_mesa_data_saved: bool = Field(default=False, alias="isMesaDataSaved")
    are_mesa_fields_locked: bool = Field(default=False, alias="areMesaFieldsLocked")
    start_time: Optional[datetime] = Field(default=None, alias="startTime")
    end_time: Optional[datetime] = Field(default=None, alias="endTime")
    selected_location: LocationSchema = Field(default_factory=LocationSchema, alias="selectedLocation")

    @field_validator("mesa_number", mode="before")
    @classmethod
    def normalize_mesa(cls, value: Any) -> str:
        """Acepta mesas numéricas heredadas y rellena a 6 dígitos.

        English:
            Accept legacy numeric mesas and zero-pad them to 6 digits.
        """
        if value is None:
            return ""
        if isinstance(value, int):
            return str(value).zfill(6) if value > 0 else ""
        return str(value).strip()

    @field_validator("total_electores", "tcv", "cedulas_excedentes", mode="before")
    @classmethod
    def empty_to_none(cls, value: Any) -> Any:
        if value == "":
            return None
        return value


class CategoryDataSchema(_CamelModel):
    """Actas de una categoría y el índice activo.

    English: Actas of one category and the active index.
    """

    actas: List[ActaSchema] = Field(default_factory=list)
    active_acta_index: int = Field(default=0, alias="activeActaIndex", ge=0)

    @field_validator("active_acta_index")
    @classmethod
    def index_within_actas(cls, value: int, info) -> int:
        actas = info.data.get("actas") or []
        if actas and value >= len(actas):
            raise ValueError("activeActaIndex out of range")
        return value


def session_to_schema(session: Session) -> ActaSchema:
    location = session.location
    return ActaSchema(
        vote_limits=VoteLimitsSchema(
            preferential1=session.vote_limits.preferential1,
            preferential2=session.vote_limits.preferential2,
        ),
        vote_entries=[
            VoteEntrySchema(
                table_number=record.table_number,
                party=record.party,
                preferential_vote1=record.preferential1,
                preferential_vote2=record.preferential2,
            )
            for record in session.records
        ],
        mesa_number=session.mesa_number,
        acta_number=session.acta_number,
        total_electores=session.total_electores,
        cedulas_excedentes=session.cedulas_excedentes,
        tcv=session.tcv,
        is_form_finalized=session.is_finalized,
        is_mesa_data_saved=session.is_mesa_data_saved,
        are_mesa_fields_locked=session.are_mesa_fields_locked,
        start_time=session.start_time,
        end_time=session.end_time,
        selected_location=LocationSchema(
            departamento=location.departamento,
            provincia=location.provincia,
            distrito=location.distrito,
            circunscripcion=location.circunscripcion,
            jee=location.jee,
        ),
    )


def schema_to_session(category: Category, acta: ActaSchema) -> Session:
    location = acta.selected_location
    return Session(
        category=category,
        mesa_number=acta.mesa_number,
        acta_number=acta.acta_number,
        total_electores=acta.total_electores,
        cedulas_excedentes=acta.cedulas_excedentes,
        tcv=acta.tcv,
        records=tuple(
            BallotRecord(
                table_number=entry.table_number,
                party=entry.party,
                preferential1=entry.preferential_vote1,
                preferential2=entry.preferential_vote2,
            )
            for entry in acta.vote_entries
        ),
        location=SelectedLocation(
            departamento=location.departamento,
            provincia=location.provincia,
            distrito=location.distrito,
            circunscripcion=location.circunscripcion,
            jee=location.jee,
        ),
        vote_limits=VoteLimits(acta.vote_limits.preferential1, acta.vote_limits.preferential2),
        start_time=acta.start_time,
        end_time=acta.end_time,
        is_mesa_data_saved=acta.is_mesa_data_saved,
        is_finalized=acta.is_form_finalized,
        are_mesa_fields_locked=acta.are_mesa_fields_locked,
    )


def dump_category(sessions: Sequence[Session], active_index: int) -> str:
    """Serializa las actas de una categoría a JSON.

    English: Serialize the actas of a category to JSON.
    """
    payload = CategoryDataSchema(
        actas=[session_to_schema(session) for session in sessions],
        active_acta_index=active_index,
    )
    return payload.model_dump_json(by_alias=True)


def load_category(category: Category, raw: str | bytes | Dict[str, Any]) -> Tuple[List[Session], int]:
    """Reconstruye las actas de una categoría.

    English: Rebuild the actas of a category. Raises ``ValueError`` with the
    validation detail when the payload is malformed.
    """
    try:
        if isinstance(raw, dict):
            data = CategoryDataSchema.model_validate(raw)
        else:
            data = CategoryDataSchema.model_validate_json(raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid stored data for {category.value}: {exc}") from exc
    sessions = [schema_to_session(category, acta) for acta in data.actas]
    return sessions, data.active_acta_index
