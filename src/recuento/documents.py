"""Generación del documento del acta finalizada.

English: Document generation for a finalized acta. Generation is a one-shot
async operation: it hands the complete field list to the sink or raises
``DocumentGenerationError``. It never mutates the session.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Protocol, Sequence, Tuple

from fpdf import FPDF
from fpdf.errors import FPDFException

from recuento.core.fields import FieldEntry
from recuento.core.models import Session, SessionState
from recuento.core.templates import get_layout, output_filename, select_template
from recuento.errors import DocumentGenerationError

logger = logging.getLogger(__name__)


class DocumentSink(Protocol):
    """Destino que pinta los campos y devuelve la ubicación del documento.

    English: Sink that paints the fields and returns the document location.
    """

    def write(
        self,
        fields: Sequence[FieldEntry],
        template: str,
        filename: str,
        page_size: Tuple[float, float],
    ) -> str: ...


@dataclass(frozen=True)
class DocumentResult:
    location: str
    template: str
    filename: str


class FpdfDocumentSink:
    """Pinta los campos con fpdf en una página del tamaño de la plantilla.

    English:
        Paints the fields with fpdf on a page sized like the template. Field
        ``y`` values use a bottom-left origin and are flipped for fpdf.
    """

    def __init__(self, output_dir: Path, font: str = "Helvetica") -> None:
        self.output_dir = Path(output_dir)
        self.font = font

    def write(
        self,
        fields: Sequence[FieldEntry],
        template: str,
        filename: str,
        page_size: Tuple[float, float],
    ) -> str:
        width, height = page_size
        orientation = "L" if width > height else "P"
        pdf = FPDF(orientation=orientation, unit="pt", format=(min(width, height), max(width, height)))
        pdf.set_title(template)
        pdf.set_auto_page_break(False)
        pdf.add_page()
        for entry in fields:
            pdf.set_font(self.font, "B", entry.size)
            pdf.text(entry.x, height - entry.y, entry.value)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        target = self.output_dir / filename
        pdf.output(str(target))
        return str(target)


async def generate_document(
    session: Session,
    fields: Sequence[FieldEntry],
    sink: DocumentSink,
) -> DocumentResult:
    """Entrega los campos del acta finalizada al destino.

    Args:
        session (Session): Sesión finalizada (solo lectura).
        fields (Sequence[FieldEntry]): Campos mapeados del acta.
        sink (DocumentSink): Destino del documento.

    Returns:
        DocumentResult: Ubicación, plantilla y nombre del archivo.

    English:
        Hand the finalized acta fields to the sink. Raises
        ``DocumentGenerationError`` when the acta is not finalized, the
        category has no template, or the sink fails.
    """
    context = {"category": session.category.value, "mesa": session.mesa_number}
    if session.state is not SessionState.FINALIZED:
        raise DocumentGenerationError("El acta no está finalizada / The acta is not finalized", context=context)
    layout = get_layout(session.category)
    if layout is None or not fields:
        raise DocumentGenerationError(
            f"Sin plantilla para {session.category.label} / No template for {session.category.value}",
            context=context,
        )

    template = select_template(
        session.category,
        session.vote_limits.preferential1,
        abroad=session.location.is_abroad,
    )
    filename = output_filename(session.category, session.mesa_number)
    try:
        location = await asyncio.to_thread(
            sink.write,
            list(fields),
            template,
            filename,
            (layout.page_width, layout.page_height),
        )
    except (OSError, ValueError, FPDFException) as exc:
        logger.error("document_generation_failed category=%s mesa=%s error=%s", *context.values(), exc)
        raise DocumentGenerationError(f"No se pudo generar el acta / Could not generate acta: {exc}", context=context) from exc
    logger.info("document_generated category=%s template=%s location=%s", session.category.value, template, location)
    return DocumentResult(location=location, template=template, filename=filename)
