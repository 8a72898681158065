from fastapi import APIRouter
from fastapi.responses import Response

from leasedesk.schemas.funnel import RawFunnelReport
from leasedesk.services.analysis import analyze_report
from leasedesk.services.funnel import build_report
from leasedesk.services.reports import ExportFile, export_report_json, export_report_pdf

router = APIRouter(prefix="/funnel", tags=["reports"])


def _attachment(export: ExportFile) -> Response:
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f"attachment; filename={export.filename}"},
    )


@router.post("/export.json")
def export_funnel_json(payload: RawFunnelReport):
    return _attachment(export_report_json(build_report(payload)))


@router.post("/export.pdf")
async def export_funnel_pdf(payload: RawFunnelReport):
    analysis = analyze_report(build_report(payload))
    return _attachment(await export_report_pdf(analysis))
