"""Configuración estática por categoría: casillas preferenciales y límites.

English: Static per-category configuration, preferential slots and vote
limits. Limits may come from a ``category;circunscripcion;limit`` table and
fall back to the category defaults when the table has no usable entry.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Dict, FrozenSet, Iterable, Optional

from recuento.core.models import Category, PreferentialConfig, VoteLimits

logger = logging.getLogger(__name__)

DEFAULT_MAX_PREFERENTIAL = 30

PREFERENTIAL_CONFIG: Dict[Category, PreferentialConfig] = {
    Category.PRESIDENCIAL: PreferentialConfig(slot1=False, slot2=False),
    Category.SENADORES_NACIONAL: PreferentialConfig(slot1=True, slot2=True),
    Category.SENADORES_REGIONAL: PreferentialConfig(slot1=True, slot2=False),
    Category.DIPUTADOS: PreferentialConfig(slot1=True, slot2=True),
    Category.PARLAMENTO_ANDINO: PreferentialConfig(slot1=True, slot2=True),
}

NATIONAL_CATEGORIES: FrozenSet[Category] = frozenset(
    {Category.PRESIDENCIAL, Category.PARLAMENTO_ANDINO, Category.SENADORES_NACIONAL}
)

DEFAULT_VOTE_LIMITS: Dict[Category, VoteLimits] = {
    Category.PRESIDENCIAL: VoteLimits(0, 0),
    Category.SENADORES_NACIONAL: VoteLimits(30, 30),
    Category.SENADORES_REGIONAL: VoteLimits(2, 0),
    Category.DIPUTADOS: VoteLimits(4, 4),
    Category.PARLAMENTO_ANDINO: VoteLimits(16, 16),
}


@dataclass(frozen=True)
class VoteLimitEntry:
    """Fila de la tabla de límites preferenciales.

    English: Row of the preferential-limit table.
    """

    category: str
    circunscripcion: str
    limit: int


def preferential_config(category: Category) -> PreferentialConfig:
    return PREFERENTIAL_CONFIG[category]


def is_national(category: Category) -> bool:
    """/** Categoría con circunscripción fija. / Fixed-circumscription category. **/"""
    return category in NATIONAL_CATEGORIES


def get_vote_limits(
    category: Category,
    circunscripcion: Optional[str] = None,
    entries: Iterable[VoteLimitEntry] = (),
) -> VoteLimits:
    """Resuelve límites preferenciales para categoría y circunscripción.

    La primera fila que coincide con la categoría (y con la circunscripción,
    si se indica) aporta el límite para ambas casillas habilitadas. Un límite
    de 0 o la ausencia de fila usa el valor por defecto de la categoría.

    English:
        Resolve preferential limits for a category and circumscription. The
        first row matching the category (and the circumscription, when given)
        supplies the limit for both enabled slots. A zero limit or a missing
        row falls back to the category default.
    """
    limit = 0
    for entry in entries:
        if entry.category != category.value:
            continue
        if circunscripcion and entry.circunscripcion != circunscripcion:
            continue
        limit = entry.limit
        break

    config = PREFERENTIAL_CONFIG[category]
    default = DEFAULT_VOTE_LIMITS[category]
    if not limit:
        return default
    logger.debug(
        "vote_limits_from_table category=%s circunscripcion=%s limit=%s",
        category.value,
        circunscripcion,
        limit,
    )
    return VoteLimits(
        preferential1=limit if config.slot1 else 0,
        preferential2=limit if config.slot2 else 0,
    )
