"""Print-style export of an already rendered funnel report.

Print mode is process-wide presentation state: while it is held, every
``no-print`` section is hidden and the document is flagged as printing.
Only one export may hold it at a time; a second caller is rejected with
:class:`ExportInProgressError` instead of waiting.
"""

import asyncio
import logging
import os
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from functools import lru_cache
from io import BytesIO
from pathlib import Path

from reportlab.lib.pagesizes import A4
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from leasedesk.core.config import get_settings
from leasedesk.core.errors import ExportInProgressError
from leasedesk.services.rendering import NO_PRINT, PRINT_HIDDEN, PRINTING, ReportDocument

logger = logging.getLogger(__name__)

Printer = Callable[[ReportDocument], bytes]

_print_gate = threading.Lock()

BUILTIN_FONT = "Helvetica"
BUILTIN_BOLD_FONT = "Helvetica-Bold"

# Unicode fonts tried when PDF_FONT_PATH is unset; Czech note text needs Latin Extended-A glyphs.
SYSTEM_FONT_CANDIDATES: tuple[str, ...] = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    "/Library/Fonts/Arial Unicode.ttf",
    "C:/Windows/Fonts/arial.ttf",
)


def print_in_progress() -> bool:
    return _print_gate.locked()


@contextmanager
def print_mode(document: ReportDocument) -> Iterator[ReportDocument]:
    if not _print_gate.acquire(blocking=False):
        logger.warning("Rejected print export: another export holds print mode")
        raise ExportInProgressError()

    saved_body = set(document.body_classes)
    saved_sections = [set(section.classes) for section in document.sections]
    try:
        for section in document.sections:
            if NO_PRINT in section.classes:
                section.classes.add(PRINT_HIDDEN)
        document.body_classes.add(PRINTING)
        yield document
    finally:
        document.body_classes.clear()
        document.body_classes.update(saved_body)
        for section, classes in zip(document.sections, saved_sections):
            section.classes.clear()
            section.classes.update(classes)
        _print_gate.release()


@lru_cache
def _register_ttf(path: str) -> str:
    name = f"LeaseDesk-{Path(path).stem}"
    pdfmetrics.registerFont(TTFont(name, path))
    logger.info("Registered PDF font %s from %s", name, path)
    return name


def resolve_pdf_fonts() -> tuple[str, str]:
    """Return the (body, heading) font names for the PDF printer.

    A configured PDF_FONT_PATH must load. Otherwise the first installed system
    candidate is used, and the built-in Helvetica only as a last resort; it has
    no glyphs outside Latin-1.
    """
    path = get_settings().PDF_FONT_PATH
    if path is None:
        path = next((c for c in SYSTEM_FONT_CANDIDATES if os.path.isfile(c)), None)
    if path is None:
        logger.warning("No Unicode TTF font found, PDF export falls back to %s", BUILTIN_FONT)
        return BUILTIN_FONT, BUILTIN_BOLD_FONT
    name = _register_ttf(path)
    return name, name


def pdf_printer(document: ReportDocument) -> bytes:
    """Render the currently visible sections to PDF."""
    body_font, heading_font = resolve_pdf_fonts()
    buffer = BytesIO()
    p = canvas.Canvas(buffer, pagesize=A4)
    p.setTitle(document.title)
    _, height = A4
    top = height - 60
    y = top

    def ensure_room(step: float) -> None:
        nonlocal y
        if y - step < 50:
            p.showPage()
            y = top

    for section in document.visible_sections():
        if section.title:
            ensure_room(36)
            y -= 12
            p.setFont(heading_font, 14)
            p.drawString(50, y, section.title)
            y -= 22
        p.setFont(body_font, 10)
        for line in section.lines:
            ensure_room(16)
            p.drawString(50, y, line)
            y -= 16

    p.showPage()
    p.save()
    buffer.seek(0)
    return buffer.read()


async def export_to_pdf(
    document: ReportDocument,
    printer: Printer | None = None,
    *,
    settle_seconds: float | None = None,
    restore_seconds: float | None = None,
) -> bytes:
    """Print ``document`` in print mode and return what the printer produced.

    Not re-entrant. The prior section visibility is restored after the
    restore delay, or immediately when the printer fails.
    """
    settings = get_settings()
    printer = printer or pdf_printer
    settle = settings.PRINT_SETTLE_SECONDS if settle_seconds is None else settle_seconds
    restore = settings.PRINT_RESTORE_SECONDS if restore_seconds is None else restore_seconds

    with print_mode(document):
        await asyncio.sleep(settle)
        try:
            output = await asyncio.to_thread(printer, document)
        except Exception:
            logger.exception("Printer failed for %r", document.title)
            raise
        await asyncio.sleep(restore)
    return output
