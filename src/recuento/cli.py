"""Interfaz de línea de comandos de Recuento.

English: Recuento command line interface. It reads the SQLite store under
``STORAGE_PATH`` and never mutates tally sessions.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import typer

from recuento.config import RecuentoSettings, TallyConfig, load_config, load_tally_config
from recuento.core.categories import DEFAULT_VOTE_LIMITS, preferential_config
from recuento.core.models import Category
from recuento.core.reference import ReferenceTables
from recuento.core.session import elapsed_time
from recuento.core.templates import select_template
from recuento.documents import FpdfDocumentSink, generate_document
from recuento.errors import RecuentoError
from recuento.logging import bind_context, setup_logging
from recuento.manager import TallySessionManager
from recuento.organizations import OrganizationRegistry
from recuento.storage import SessionRepository, SqliteStore

app = typer.Typer(help="Recuento: conteo manual de votos por mesa / manual vote tally")


def _settings() -> RecuentoSettings:
    try:
        return load_config()
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc


def _build_manager(settings: RecuentoSettings) -> TallySessionManager:
    tally_config = (
        load_tally_config(settings.TALLY_CONFIG_PATH) if settings.TALLY_CONFIG_PATH else TallyConfig()
    )
    store = SqliteStore(settings.database_path)
    registry = OrganizationRegistry(tally_config.to_organizations(), store)
    registry.seed_defaults(tally_config.selected_organizations, tally_config.circunscripcion_organizations)
    return TallySessionManager(
        SessionRepository(store),
        registry,
        ReferenceTables(),
        vote_limit_entries=tally_config.to_vote_limit_entries(),
        max_preferential=settings.MAX_PREFERENTIAL_NUMBER,
    )


def _category(value: str) -> Category:
    try:
        return Category.parse(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.callback()
def main() -> None:
    """Interfaz de línea de comandos de Recuento.

    English: Recuento command line interface.
    """


@app.command()
def categories() -> None:
    """Lista categorías con casillas y límites por defecto."""
    for category in Category:
        config = preferential_config(category)
        limits = DEFAULT_VOTE_LIMITS[category]
        typer.echo(
            f"{category.code} {category.value:<18} {category.label:<22} "
            f"pref1={'si' if config.slot1 else 'no'}({limits.preferential1}) "
            f"pref2={'si' if config.slot2 else 'no'}({limits.preferential2})"
        )


@app.command()
def template(
    category: str,
    limit: int = typer.Option(0, help="Límite preferencial / Preferential limit"),
    abroad: bool = typer.Option(False, help="Mesa en el extranjero / Abroad mesa"),
) -> None:
    """Muestra el nombre de plantilla que corresponde."""
    typer.echo(select_template(_category(category), limit, abroad=abroad))


@app.command()
def status(category: str, index: Optional[int] = typer.Option(None, help="Índice del acta")) -> None:
    """Resumen del acta activa (o la indicada) de la categoría."""
    settings = _settings()
    manager = _build_manager(settings)
    selected = _category(category)
    session = manager.current(selected) if index is None else manager.get_session(selected, index)
    tally = manager.tally(selected, index)
    stats = tally.statistics
    typer.echo(f"categoria={selected.value} estado={session.state.value} acta={session.acta_number or '-'}")
    typer.echo(f"mesa={session.mesa_number or '-'} TEH={session.total_electores or 0} cedulas={session.record_count}")
    typer.echo(f"tiempo={elapsed_time(session, manager.clock())}")
    if manager.is_partial_recount(selected):
        typer.echo("recuento_parcial=si (TCV no validado)")
    typer.echo(
        f"validos={stats.total_valid_votes} blancos_nulos={stats.blank_and_null} "
        f"participacion={stats.participation_rate:.2f}% ausentismo={stats.absenteeism_rate:.2f}%"
    )
    for party, votes in tally.ranking:
        if votes:
            typer.echo(f"  {votes:>4}  {party}")


@app.command()
def fields(category: str, index: Optional[int] = typer.Option(None, help="Índice del acta")) -> None:
    """Imprime los campos mapeados de un acta finalizada."""
    settings = _settings()
    manager = _build_manager(settings)
    try:
        entries = manager.document_fields(_category(category), index)
    except RecuentoError as exc:
        typer.echo(exc.message, err=True)
        raise typer.Exit(code=1) from exc
    for entry in entries:
        typer.echo(f"{entry.label}\t{entry.value}\t{entry.x:.1f}\t{entry.y:.1f}\t{entry.size}")


@app.command()
def render(category: str, index: Optional[int] = typer.Option(None, help="Índice del acta")) -> None:
    """Genera el PDF de un acta finalizada."""
    settings = _settings()
    logger = setup_logging(settings.LOG_LEVEL, settings.STORAGE_PATH)
    manager = _build_manager(settings)
    selected = _category(category)
    session = manager.current(selected) if index is None else manager.get_session(selected, index)
    logger = bind_context(logger, category=selected.value, mesa=session.mesa_number, acta=session.acta_number)
    try:
        entries = manager.document_fields(selected, index)
        result = asyncio.run(generate_document(session, entries, FpdfDocumentSink(settings.output_dir)))
    except RecuentoError as exc:
        logger.error("acta_render_failed", error=exc.message)
        typer.echo(exc.message, err=True)
        raise typer.Exit(code=1) from exc
    logger.info("acta_rendered", template=result.template, location=result.location)
    typer.echo(result.location)


if __name__ == "__main__":
    app()
