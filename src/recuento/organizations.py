"""Registro de organizaciones habilitadas para el conteo.

English: Registry of organizations enabled for intake. It holds a global
default selection, per-circumscription overrides and, for circumscriptions
in partial-recount mode, a separate partial list. BLANCO and NULO are
always force-included in whatever is returned.
"""

from __future__ import annotations

import json
import logging
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence

from recuento.core.models import (
    BLANCO,
    BLANCO_ORGANIZATION,
    NULO,
    NULO_ORGANIZATION,
    SPECIAL_PARTIES,
    Organization,
)
from recuento.storage import KeyValueStore

logger = logging.getLogger(__name__)


def _with_special_keys(keys: Iterable[str]) -> List[str]:
    ordered = [key for key in dict.fromkeys(keys) if key not in SPECIAL_PARTIES]
    return ordered + [BLANCO, NULO]


class OrganizationRegistry:
    """Lista completa de organizaciones y selección activa persistida.

    English:
        Full organization list plus the persisted active selection.
    """

    def __init__(
        self,
        organizations: Sequence[Organization],
        store: KeyValueStore,
        prefix: str = "recuento",
    ) -> None:
        regular = [org for org in organizations if org.key not in SPECIAL_PARTIES]
        self._organizations: List[Organization] = regular + [BLANCO_ORGANIZATION, NULO_ORGANIZATION]
        self._by_key: Dict[str, Organization] = {org.key: org for org in self._organizations}
        self.store = store
        self.prefix = prefix

    @property
    def organizations(self) -> List[Organization]:
        return list(self._organizations)

    def get(self, key: str) -> Optional[Organization]:
        return self._by_key.get(key)

    @property
    def _global_key(self) -> str:
        return f"{self.prefix}:selectedOrganizations"

    @property
    def _overrides_key(self) -> str:
        return f"{self.prefix}:circunscripcionOrganizations"

    def _read_json(self, key: str, default):
        raw = self.store.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Stored organization selection is not valid JSON ({key}): {exc}") from exc

    def _overrides(self) -> Dict[str, List[str]]:
        return dict(self._read_json(self._overrides_key, {}))

    def seed_defaults(
        self,
        selected: Iterable[str],
        overrides: Optional[Dict[str, List[str]]] = None,
    ) -> None:
        """Escribe selecciones iniciales solo si no hay nada guardado.

        English: Write initial selections only when nothing is stored yet.
        """
        if self.store.get(self._global_key) is None:
            self.set_selected(selected)
        if overrides and self.store.get(self._overrides_key) is None:
            for circunscripcion, keys in overrides.items():
                self.set_circunscripcion_selection(circunscripcion, keys)

    def set_selected(self, keys: Iterable[str]) -> List[str]:
        """Guarda la selección global / Persist the global selection."""
        selection = _with_special_keys(self._known(keys))
        self.store.set(self._global_key, json.dumps(selection))
        logger.info("organizations_selected scope=global count=%s", len(selection))
        return selection

    def set_circunscripcion_selection(self, circunscripcion: str, keys: Iterable[str]) -> List[str]:
        overrides = self._overrides()
        selection = _with_special_keys(self._known(keys))
        overrides[circunscripcion] = selection
        self.store.set(self._overrides_key, json.dumps(overrides, ensure_ascii=False))
        logger.info(
            "organizations_selected scope=circunscripcion circunscripcion=%s count=%s",
            circunscripcion,
            len(selection),
        )
        return selection

    def clear_circunscripcion_selection(self, circunscripcion: str) -> None:
        overrides = self._overrides()
        if overrides.pop(circunscripcion, None) is not None:
            self.store.set(self._overrides_key, json.dumps(overrides, ensure_ascii=False))

    @property
    def _partial_flags_key(self) -> str:
        return f"{self.prefix}:partialRecountMode"

    @property
    def _partial_selection_key(self) -> str:
        return f"{self.prefix}:partialRecountOrganizations"

    def is_partial_recount(self, circunscripcion: Optional[str]) -> bool:
        """Recuento parcial habilitado para la circunscripción.

        English: Whether the circumscription is in partial-recount mode.
        """
        if not circunscripcion:
            return False
        return bool(self._read_json(self._partial_flags_key, {}).get(circunscripcion, False))

    def set_partial_recount(self, circunscripcion: str, enabled: bool) -> None:
        flags = dict(self._read_json(self._partial_flags_key, {}))
        flags[circunscripcion] = bool(enabled)
        self.store.set(self._partial_flags_key, json.dumps(flags, ensure_ascii=False))
        logger.info("partial_recount_mode circunscripcion=%s enabled=%s", circunscripcion, bool(enabled))

    def set_partial_recount_selection(self, circunscripcion: str, keys: Iterable[str]) -> List[str]:
        """Guarda las organizaciones del recuento parcial.

        Se persiste sin BLANCO ni NULO; se añaden al leer.

        English: Persist the partial-recount organizations. Stored without
        BLANCO/NULO, which are added back on read.
        """
        selection = [key for key in self._known(keys) if key not in SPECIAL_PARTIES]
        stored = dict(self._read_json(self._partial_selection_key, {}))
        stored[circunscripcion] = list(dict.fromkeys(selection))
        self.store.set(self._partial_selection_key, json.dumps(stored, ensure_ascii=False))
        logger.info(
            "organizations_selected scope=partial circunscripcion=%s count=%s",
            circunscripcion,
            len(stored[circunscripcion]),
        )
        return _with_special_keys(stored[circunscripcion])

    def selected_keys(self, circunscripcion: Optional[str] = None) -> List[str]:
        """Claves habilitadas: override de la circunscripción o la global.

        English: Enabled keys. A circumscription in partial-recount mode uses
        its partial list; otherwise its override, or else the global
        selection. BLANCO and NULO are always present.
        """
        if self.is_partial_recount(circunscripcion):
            partial = self._read_json(self._partial_selection_key, {}).get(circunscripcion, [])
            return _with_special_keys(partial)
        if circunscripcion:
            override = self._overrides().get(circunscripcion)
            if override is not None:
                return _with_special_keys(override)
        return _with_special_keys(self._read_json(self._global_key, []))

    def active_parties(self, circunscripcion: Optional[str] = None) -> FrozenSet[str]:
        """Claves de partido (``party_key``) de las organizaciones habilitadas."""
        return frozenset(
            self._by_key[key].party_key
            for key in self.selected_keys(circunscripcion)
            if key in self._by_key
        )

    def _known(self, keys: Iterable[str]) -> List[str]:
        known = []
        for key in keys:
            if key in self._by_key:
                known.append(key)
            else:
                logger.warning("organization_unknown key=%s", key)
        return known
