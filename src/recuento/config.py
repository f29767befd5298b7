"""Configuración validada de Recuento.

Validated Recuento configuration: environment settings plus the optional
YAML file with organizations and preferential-vote limits.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml

from recuento.core.categories import DEFAULT_MAX_PREFERENTIAL, VoteLimitEntry
from recuento.core.models import MAX_VOTE_LIMIT, Category, Organization

_ENV_PATH = Path(".env")
_ENV_LOCAL_PATH = Path(".env.local")
load_dotenv(_ENV_PATH, override=False)
load_dotenv(_ENV_LOCAL_PATH, override=False)


class RecuentoSettings(BaseSettings):
    """Variables de entorno y archivo .env para Recuento.

    English: Environment variables and .env file for Recuento.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    STORAGE_PATH: Path
    LOG_LEVEL: str = "INFO"
    OUTPUT_DIR: Optional[Path] = None
    TALLY_CONFIG_PATH: Optional[Path] = None
    MAX_PREFERENTIAL_NUMBER: int = Field(default=DEFAULT_MAX_PREFERENTIAL, ge=1, le=MAX_VOTE_LIMIT)

    @field_validator("LOG_LEVEL")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported LOG_LEVEL: {value}")
        return level

    @property
    def output_dir(self) -> Path:
        return self.OUTPUT_DIR or self.STORAGE_PATH / "actas"

    @property
    def database_path(self) -> Path:
        return self.STORAGE_PATH / "recuento.db"

    def validate_paths(self) -> None:
        """/** Valida que las rutas críticas existan. / Validate that critical paths exist. **/"""
        if not self.STORAGE_PATH.exists():
            raise ValueError(f"STORAGE_PATH does not exist: {self.STORAGE_PATH}")
        if not self.STORAGE_PATH.is_dir():
            raise ValueError(f"STORAGE_PATH is not a directory: {self.STORAGE_PATH}")


def load_config() -> RecuentoSettings:
    """/** Carga y valida configuración, fallando con detalle. / Load and validate configuration, failing with details. **/"""
    try:
        settings = RecuentoSettings()
        settings.validate_paths()
        return settings
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc


class OrganizationConfig(BaseModel):
    key: str = Field(min_length=1)
    name: str = Field(min_length=1)
    order: Optional[int] = Field(default=None, ge=1)


class VoteLimitConfig(BaseModel):
    """Fila de límite preferencial / Preferential limit row."""

    category: str
    circunscripcion: str = ""
    limit: int = Field(ge=0, le=MAX_VOTE_LIMIT)

    @field_validator("category")
    @classmethod
    def _known_category(cls, value: str) -> str:
        return Category.parse(value).value


class TallyConfig(BaseModel):
    """Organizaciones, selecciones y límites definidos en YAML.

    English: Organizations, selections and limits defined in YAML.
    """

    organizations: List[OrganizationConfig] = Field(default_factory=list)
    selected_organizations: List[str] = Field(default_factory=list)
    circunscripcion_organizations: Dict[str, List[str]] = Field(default_factory=dict)
    vote_limits: List[VoteLimitConfig] = Field(default_factory=list)

    def to_organizations(self) -> List[Organization]:
        return [Organization(key=org.key, name=org.name, order=org.order) for org in self.organizations]

    def to_vote_limit_entries(self) -> List[VoteLimitEntry]:
        return [
            VoteLimitEntry(category=row.category, circunscripcion=row.circunscripcion, limit=row.limit)
            for row in self.vote_limits
        ]


def _load_yaml_mapping(path: Path) -> Dict[str, Any]:
    """Load a YAML mapping or raise a user-facing error.

    Carga un mapa YAML o lanza un error orientado al usuario.
    """
    if not path.exists():
        raise FileNotFoundError(f"Falta {path.as_posix()} (Missing {path.as_posix()}).")
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"{path.name} tiene errores de sintaxis YAML ({path.name} has YAML syntax errors).") from exc
    if not isinstance(raw, dict):
        raise ValueError(f"{path.name} debe ser un mapa YAML ({path.name} must be a YAML mapping).")
    return raw


def load_tally_config(path: Path) -> TallyConfig:
    """Carga ``recuento.yaml`` validado / Load the validated ``recuento.yaml``."""
    raw = _load_yaml_mapping(path)
    try:
        return TallyConfig.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(f"{path.name} no es válido ({path.name} is invalid): {exc}") from exc
