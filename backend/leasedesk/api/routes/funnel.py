from fastapi import APIRouter

from leasedesk.schemas.funnel import FunnelAnalysis, FunnelReport, RawFunnelReport
from leasedesk.services.analysis import analyze_report
from leasedesk.services.funnel import build_report

router = APIRouter(prefix="/funnel", tags=["funnel"])


@router.post("/report", response_model=FunnelReport)
def normalized_report(payload: RawFunnelReport):
    return build_report(payload)


@router.post("/analysis", response_model=FunnelAnalysis)
def funnel_analysis(payload: RawFunnelReport):
    return analyze_report(build_report(payload))
