import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any

from leasedesk.core.config import get_settings
from leasedesk.schemas.funnel import FunnelAnalysis, FunnelReport
from leasedesk.services.formatters import compact_date
from leasedesk.services.printing import Printer, export_to_pdf
from leasedesk.services.rendering import render_report

logger = logging.getLogger(__name__)

EXPORT_EXTENSIONS = {
    "json": "application/json",
    "pdf": "application/pdf",
}


@dataclass(frozen=True)
class ExportFile:
    filename: str
    content: bytes
    media_type: str


def _iso(value: date | datetime | str) -> str:
    if isinstance(value, str):
        return value
    return value.isoformat()


def generate_export_filename(
    date_from: date | datetime | str,
    date_to: date | datetime | str,
    extension: str,
) -> str:
    if extension not in EXPORT_EXTENSIONS:
        raise ValueError(f"Unsupported export extension: {extension!r}")
    return f"funnel-report-{compact_date(date_from)}-{compact_date(date_to)}.{extension}"


def export_to_json(
    data: Any,
    date_from: date | datetime | str,
    date_to: date | datetime | str,
    exported_at: datetime | None = None,
) -> str:
    """Wrap ``data`` in the versioned snapshot envelope and serialize it."""
    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json", by_alias=True)
    envelope = {
        "version": get_settings().EXPORT_FORMAT_VERSION,
        "exportedAt": (exported_at or datetime.now(timezone.utc)).isoformat(),
        "period": {
            "from": _iso(date_from),
            "to": _iso(date_to),
        },
        "data": data,
    }
    return json.dumps(envelope, indent=2, ensure_ascii=False)


def export_report_json(report: FunnelReport, exported_at: datetime | None = None) -> ExportFile:
    filename = generate_export_filename(report.date_from, report.date_to, "json")
    payload = export_to_json(report, report.date_from, report.date_to, exported_at=exported_at)
    logger.info("Exported funnel report snapshot %s", filename)
    return ExportFile(filename=filename, content=payload.encode("utf-8"), media_type=EXPORT_EXTENSIONS["json"])


async def export_report_pdf(
    analysis: FunnelAnalysis,
    printer: Printer | None = None,
    *,
    settle_seconds: float | None = None,
    restore_seconds: float | None = None,
) -> ExportFile:
    report = analysis.report
    filename = generate_export_filename(report.date_from, report.date_to, "pdf")
    document = render_report(analysis)
    content = await export_to_pdf(
        document,
        printer,
        settle_seconds=settle_seconds,
        restore_seconds=restore_seconds,
    )
    logger.info("Printed funnel report %s", filename)
    return ExportFile(filename=filename, content=content, media_type=EXPORT_EXTENSIONS["pdf"])
