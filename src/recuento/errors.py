"""Taxonomía de errores del motor de conteo.

English: Error taxonomy for the tally engine. None of these errors is fatal
to the process; they only reject the offending operation.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class RejectionReason(str, Enum):
    """Motivos de rechazo distinguibles para el usuario.

    English: User-distinguishable rejection reasons.
    """

    CAPACITY_EXCEEDED = "capacity_exceeded"
    MISSING_ORGANIZATION = "missing_organization"
    INACTIVE_ORGANIZATION = "inactive_organization"
    PREFERENTIAL_OUT_OF_RANGE = "preferential_out_of_range"
    PREFERENTIAL_ON_BLANK_OR_NULL = "preferential_on_blank_or_null"
    DUPLICATE_PREFERENTIAL = "duplicate_preferential"
    EDIT_IN_PROGRESS = "edit_in_progress"
    EDIT_NOT_ALLOWED = "edit_not_allowed"
    NO_EDIT_IN_PROGRESS = "no_edit_in_progress"
    INCOMPLETE_LOCATION = "incomplete_location"
    NO_ACTIVE_ORGANIZATIONS = "no_active_organizations"
    INVALID_MESA = "invalid_mesa"
    INVALID_ACTA = "invalid_acta"
    INVALID_ELECTOR_COUNT = "invalid_elector_count"
    SURPLUS_NOT_ALLOWED = "surplus_not_allowed"
    INVALID_SURPLUS = "invalid_surplus"


class RecuentoError(Exception):
    """Error base con contexto estructurado para logs.

    English: Base error carrying structured context for logs.
    """

    def __init__(self, message: str, *, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})


class ValidationError(RecuentoError):
    """Error corregible por el usuario; la mutación no se aplica.

    English: User-correctable error; the mutation is not applied.
    """

    def __init__(
        self,
        reason: RejectionReason,
        message: Optional[str] = None,
        *,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message or reason.value, context=context)
        self.reason = reason


class SessionStateError(RecuentoError):
    """La operación no está permitida en el estado actual de la sesión.

    English: Operation not allowed in the current session state.
    """


class DuplicateSessionError(RecuentoError):
    """La mesa ya fue finalizada para esta categoría.

    English: The mesa was already finalized under this category.
    """


class LookupMissError(RecuentoError):
    """Mesa ausente en la referencia de mesas; se continúa en modo degradado.

    English: Mesa missing from the polling-table reference; degraded continuation.
    """


class PersistenceError(RecuentoError):
    """Fallo del almacén persistente."""


class DocumentGenerationError(RecuentoError):
    """Fallo al generar el documento del acta."""
