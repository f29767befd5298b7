"""Orquestador de sesiones por categoría.

English: Per-category session orchestrator. It keeps an explicit map from
``Category`` to its list of sessions (actas), applies the state-machine
transitions, and persists every committed change. The in-memory map is
authoritative: a persistence failure is logged and the session stays usable.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
import logging
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence

from recuento.core import jurisdiction
from recuento.core import session as transitions
from recuento.core.acta_format import build_acta_number
from recuento.core.categories import (
    DEFAULT_MAX_PREFERENTIAL,
    VoteLimitEntry,
    get_vote_limits,
    preferential_config,
)
from recuento.core.fields import FieldEntry, map_fields
from recuento.core.models import BallotDraft, BallotRecord, Category, SelectedLocation, Session, SessionState
from recuento.core.reference import ReferenceTables
from recuento.core.tally import TallyResult, compute_tally
from recuento.core.validation import ValidationResult, is_valid_mesa_number
from recuento.errors import (
    DuplicateSessionError,
    LookupMissError,
    PersistenceError,
    SessionStateError,
    ValidationError,
)
from recuento.organizations import OrganizationRegistry
from recuento.storage import SessionRepository, find_surplus_by_mesa, find_tcv_by_mesa, is_mesa_finalized

logger = logging.getLogger(__name__)


def _local_now() -> datetime:
    return datetime.now().astimezone()


@dataclass(frozen=True)
class FinalizedActa:
    """Resultado de finalizar: sesión congelada, conteo y campos del acta.

    English: Finalization output, the frozen session, its tally and the
    mapped acta fields.
    """

    session: Session
    tally: TallyResult
    fields: List[FieldEntry]


class TallySessionManager:
    """Gestiona el ciclo de vida de las actas de cada categoría.

    English:
        Manages the lifecycle of each category's actas. Active organizations
        come from the injected registry, never from ambient state.
    """

    def __init__(
        self,
        repository: SessionRepository,
        registry: OrganizationRegistry,
        reference: ReferenceTables,
        *,
        vote_limit_entries: Sequence[VoteLimitEntry] = (),
        clock: Callable[[], datetime] = _local_now,
        max_preferential: int = DEFAULT_MAX_PREFERENTIAL,
    ) -> None:
        self.repository = repository
        self.registry = registry
        self.reference = reference
        self.vote_limit_entries = tuple(vote_limit_entries)
        self.clock = clock
        self.max_preferential = max_preferential
        self._sessions: Dict[Category, List[Session]] = {}
        self._active: Dict[Category, int] = {}

    # ------------------------------------------------------------------
    # Carga y persistencia / Loading and persistence
    # ------------------------------------------------------------------

    def _fresh_session(self, category: Category) -> Session:
        location = jurisdiction.apply_category(SelectedLocation(), category, self.reference.circunscripciones)
        limits = get_vote_limits(category, location.circunscripcion or None, self.vote_limit_entries)
        return replace(transitions.new_session(category, limits), location=location)

    def _ensure_loaded(self, category: Category) -> None:
        if category in self._sessions:
            return
        try:
            sessions, index = self.repository.load(category)
        except PersistenceError as exc:
            logger.error("category_load_failed category=%s error=%s", category.value, exc)
            sessions, index = [], 0
        if not sessions:
            sessions, index = [self._fresh_session(category)], 0
        self._sessions[category] = list(sessions)
        self._active[category] = index

    def _persist(self, category: Category) -> bool:
        try:
            self.repository.save(category, self._sessions[category], self._active[category])
        except PersistenceError as exc:
            logger.error("category_persist_failed category=%s error=%s", category.value, exc)
            return False
        return True

    def save(self, category: Category) -> None:
        """Reintenta la escritura y propaga el error / Retry the write, raising on failure."""
        self._ensure_loaded(category)
        self.repository.save(category, self._sessions[category], self._active[category])

    def _commit(self, category: Category, session: Session) -> Session:
        self._sessions[category][self._active[category]] = session
        self._persist(category)
        return session

    def _all_sessions(self) -> Dict[Category, List[Session]]:
        for category in Category:
            self._ensure_loaded(category)
        return dict(self._sessions)

    # ------------------------------------------------------------------
    # Consultas / Queries
    # ------------------------------------------------------------------

    def current(self, category: Category) -> Session:
        self._ensure_loaded(category)
        return self._sessions[category][self._active[category]]

    def sessions(self, category: Category) -> List[Session]:
        self._ensure_loaded(category)
        return list(self._sessions[category])

    def active_index(self, category: Category) -> int:
        self._ensure_loaded(category)
        return self._active[category]

    def get_session(self, category: Category, index: int) -> Session:
        """Acta previa por índice, solo lectura / Prior acta by index, read-only."""
        sessions = self.sessions(category)
        if not 0 <= index < len(sessions):
            raise IndexError(f"No acta {index} for {category.value}")
        return sessions[index]

    def select_session(self, category: Category, index: int) -> Session:
        session = self.get_session(category, index)
        self._active[category] = index
        self._persist(category)
        return session

    def active_parties(self, category: Category) -> FrozenSet[str]:
        return self.registry.active_parties(self.current(category).location.circunscripcion or None)

    def is_partial_recount(self, category: Category) -> bool:
        """Recuento parcial: solo aplica a categorías con voto preferencial.

        English: Partial recount only applies to categories with
        preferential slots.
        """
        config = preferential_config(category)
        if not (config.slot1 or config.slot2):
            return False
        return self.registry.is_partial_recount(self.current(category).location.circunscripcion or None)

    def tally(self, category: Category, index: Optional[int] = None) -> TallyResult:
        session = self.current(category) if index is None else self.get_session(category, index)
        return compute_tally(
            session.records,
            self.registry.organizations,
            session.total_electores,
            self.max_preferential,
        )

    def elapsed(self, category: Category) -> str:
        return transitions.elapsed_time(self.current(category), self.clock())

    def circunscripcion_options(self, category: Category) -> List[str]:
        return jurisdiction.circunscripcion_options(category, self.reference.circunscripciones)

    def departamentos(self, category: Category) -> List[str]:
        return self.reference.departamentos(abroad=self.current(category).location.is_abroad)

    def provincias(self, category: Category) -> List[str]:
        location = self.current(category).location
        return self.reference.provincias(location.departamento, abroad=location.is_abroad)

    def distritos(self, category: Category) -> List[str]:
        location = self.current(category).location
        return self.reference.distritos(location.departamento, location.provincia, abroad=location.is_abroad)

    def document_fields(
        self,
        category: Category,
        index: Optional[int] = None,
        page_height: Optional[float] = None,
    ) -> List[FieldEntry]:
        session = self.current(category) if index is None else self.get_session(category, index)
        return map_fields(
            session,
            self.tally(category, index),
            self.registry.organizations,
            self.registry.active_parties(session.location.circunscripcion or None),
            page_height=page_height,
        )

    # ------------------------------------------------------------------
    # Ubicación y datos de mesa / Location and mesa data
    # ------------------------------------------------------------------

    def _with_location(self, category: Category, location: SelectedLocation) -> Session:
        session = transitions.update_location(self.current(category), location)
        limits = get_vote_limits(category, location.circunscripcion or None, self.vote_limit_entries)
        if limits != session.vote_limits:
            session = transitions.update_vote_limits(session, limits)
        return self._commit(category, session)

    def set_departamento(self, category: Category, value: str) -> Session:
        location = jurisdiction.change_departamento(self.current(category).location, value)
        location = jurisdiction.refresh_circunscripcion(location, category, self.reference.circunscripciones)
        return self._with_location(category, location)

    def set_provincia(self, category: Category, value: str) -> Session:
        location = jurisdiction.change_provincia(self.current(category).location, value)
        location = jurisdiction.refresh_circunscripcion(location, category, self.reference.circunscripciones)
        return self._with_location(category, location)

    def set_distrito(self, category: Category, value: str) -> Session:
        return self._with_location(category, jurisdiction.change_distrito(self.current(category).location, value))

    def set_circunscripcion(self, category: Category, value: str) -> Session:
        location = jurisdiction.change_circunscripcion(self.current(category).location, value)
        return self._with_location(category, location)

    def set_jee(self, category: Category, value: str) -> Session:
        session = self._with_location(category, jurisdiction.change_jee(self.current(category).location, value))
        acta = self._auto_acta(session)
        if acta and not session.acta_number:
            session = self._commit(category, replace(session, acta_number=acta))
        return session

    def _auto_acta(self, session: Session) -> Optional[str]:
        jee = self.reference.find_jee(session.location.jee)
        if not is_valid_mesa_number(session.mesa_number) or jee is None:
            return None
        return build_acta_number(session.mesa_number, jee.jee_id, session.category)

    def set_mesa_data(
        self,
        category: Category,
        mesa_number: str,
        acta_number: str = "",
        total_electores: Optional[int] = None,
    ) -> Optional[LookupMissError]:
        """Registra la mesa y autocompleta ubicación, TEH y valores compartidos.

        Busca la mesa en la referencia y reutiliza cédulas excedentes y TCV de
        otras actas de la misma mesa. Devuelve un ``LookupMissError`` como
        advertencia si la mesa no existe en la referencia.

        English:
            Record the mesa and auto-fill location, TEH and shared values.
            Returns a ``LookupMissError`` warning when the mesa is unknown;
            the values are stored anyway.
        """
        session = self.current(category)
        mesa_record = self.reference.find_mesa(mesa_number)
        mesa = mesa_record.mesa_number if mesa_record is not None else str(mesa_number or "").strip()
        if is_mesa_finalized(self._sessions[category], mesa, self._active[category]):
            logger.warning("mesa_already_finalized category=%s mesa=%s", category.value, mesa)

        exclude = (category, self._active[category])
        all_sessions = self._all_sessions()
        session, warning = transitions.set_mesa_data(
            session,
            mesa,
            acta_number,
            total_electores,
            mesa_record=mesa_record,
            category_circunscripcion=jurisdiction.auto_circunscripcion(category, self.reference.circunscripciones),
            carried_surplus=find_surplus_by_mesa(all_sessions, mesa, exclude),
            carried_tcv=find_tcv_by_mesa(all_sessions, mesa, exclude),
        )
        if not session.acta_number:
            session = replace(session, acta_number=self._auto_acta(session) or "")
        limits = get_vote_limits(category, session.location.circunscripcion or None, self.vote_limit_entries)
        session = transitions.update_vote_limits(session, limits)
        self._commit(category, session)
        if warning is not None:
            logger.warning("mesa_lookup_miss category=%s mesa=%s", category.value, mesa)
        else:
            logger.info("mesa_autofilled category=%s mesa=%s", category.value, mesa)
        return warning

    # ------------------------------------------------------------------
    # Ciclo de vida / Lifecycle
    # ------------------------------------------------------------------

    def start(self, category: Category) -> Session:
        session = self.current(category)
        try:
            started = transitions.start(
                session,
                self.active_parties(category),
                mesa_already_finalized=is_mesa_finalized(
                    self._sessions[category], session.mesa_number, self._active[category]
                ),
                now=self.clock(),
            )
        except (ValidationError, DuplicateSessionError) as exc:
            logger.info("session_start_rejected category=%s error=%s", category.value, exc)
            raise
        logger.info(
            "session_started category=%s mesa=%s acta=%s",
            category.value,
            started.mesa_number,
            started.acta_number,
        )
        return self._commit(category, started)

    def add_ballot(self, category: Category, draft: BallotDraft) -> ValidationResult:
        session, result = transitions.add_ballot(self.current(category), draft, self.active_parties(category))
        if result.accepted:
            self._commit(category, session)
        else:
            logger.info("ballot_rejected category=%s reason=%s", category.value, result.reason.value)
        return result

    def begin_edit(self, category: Category, table_number: Optional[int] = None) -> BallotRecord:
        session = self._commit(category, transitions.begin_edit(self.current(category), table_number))
        return session.last_record

    def confirm_edit(self, category: Category, draft: BallotDraft) -> ValidationResult:
        session, result = transitions.confirm_edit(self.current(category), draft, self.active_parties(category))
        if result.accepted:
            self._commit(category, session)
        else:
            logger.info("ballot_edit_rejected category=%s reason=%s", category.value, result.reason.value)
        return result

    def cancel_edit(self, category: Category) -> Session:
        return self._commit(category, transitions.cancel_edit(self.current(category)))

    def set_surplus(self, category: Category, value: int) -> Session:
        return self._commit(category, transitions.set_surplus(self.current(category), value))

    def finalize(self, category: Category) -> FinalizedActa:
        """Finaliza el acta activa y mapea sus campos una sola vez.

        English: Finalize the active acta and map its fields once.
        """
        session = self._commit(category, transitions.finalize(self.current(category), now=self.clock()))
        tally = self.tally(category)
        fields = map_fields(
            session,
            tally,
            self.registry.organizations,
            self.active_parties(category),
        )
        logger.info(
            "session_finalized category=%s mesa=%s tcv=%s",
            category.value,
            session.mesa_number,
            session.tcv,
        )
        return FinalizedActa(session=session, tally=tally, fields=fields)

    def new_acta(self, category: Category) -> Session:
        """Crea un acta hermana vacía tras finalizar la actual.

        English: Create an empty sibling acta once the current one is final.
        """
        current = self.current(category)
        if current.state is not SessionState.FINALIZED:
            raise SessionStateError(
                "Finalice el acta actual antes de crear otra / Finalize the current acta first",
                context={"category": category.value, "state": current.state.value},
            )
        fresh = self._fresh_session(category)
        self._sessions[category].append(fresh)
        self._active[category] = len(self._sessions[category]) - 1
        self._persist(category)
        logger.info("new_acta category=%s index=%s", category.value, self._active[category])
        return fresh
