import logging

from leasedesk.core.config import Settings, get_settings
from leasedesk.schemas.funnel import (
    DropOff,
    FunnelAnalysis,
    FunnelReport,
    KPISummary,
    ReasonCount,
    StageNotes,
    StageReasons,
    StageRow,
)
from leasedesk.services.formatters import format_fixed, format_period
from leasedesk.services.funnel import (
    compute_drop_off,
    get_largest_drop_off,
    get_latest_notes,
    validate_percentages,
)
from leasedesk.services.insights import generate_action_items, identify_blockers_from_notes

logger = logging.getLogger(__name__)

OTHER_REASONS_LABEL = "Other"
GOOD_CONVERSION_RATE = 30.0
WARNING_CONVERSION_RATE = 20.0


def conversion_tier(rate: float) -> str:
    if rate >= GOOD_CONVERSION_RATE:
        return "good"
    if rate >= WARNING_CONVERSION_RATE:
        return "warning"
    return "poor"


def summarize_kpis(report: FunnelReport) -> KPISummary:
    return KPISummary(
        total_leads=report.total_leads,
        converted_leads=report.converted_leads,
        declined_leads=report.declined_leads,
        conversion_rate=report.conversion_rate,
        conversion_tier=conversion_tier(report.conversion_rate),
    )


def build_stage_rows(report: FunnelReport, drop_offs: list[DropOff]) -> list[StageRow]:
    rows: list[StageRow] = []
    for index, stage in enumerate(report.stages):
        days = report.average_time_in_stages.get(stage.name) or 0.0
        rows.append(
            StageRow(
                name=stage.name,
                count=stage.count,
                percentage=stage.percentage,
                average_days=days if days > 0 else None,
                drop_off=drop_offs[index] if index < len(drop_offs) else None,
            )
        )
    return rows


def top_declined_reasons(reasons: list[ReasonCount], limit: int = 5) -> list[ReasonCount]:
    """The first ``limit`` reasons plus one aggregated bucket for the rest."""
    top = list(reasons[:limit])
    rest = reasons[limit:]
    if rest:
        top.append(
            ReasonCount(
                reason=OTHER_REASONS_LABEL,
                count=sum(r.count for r in rest),
                percentage=sum(r.percentage for r in rest),
            )
        )
    return top


def describe_largest_drop_off(largest: DropOff | None) -> str | None:
    if largest is None:
        return None
    return (
        f"The largest drop-off is between {largest.from_stage} and {largest.to_stage}. "
        "This is the main area for improving conversion."
    )


def analyze_report(report: FunnelReport, settings: Settings | None = None) -> FunnelAnalysis:
    """Derive everything the report screen and the print export display."""
    settings = settings or get_settings()

    drop_offs = compute_drop_off(report.stages)
    largest = get_largest_drop_off(drop_offs)

    check = validate_percentages(report.declined_reasons, tolerance=settings.FUNNEL_PERCENTAGE_TOLERANCE)
    warning = None
    if report.declined_reasons and not check.ok:
        warning = f"Warning: the percentage total deviates by {format_fixed(check.diff, 2)}%"
        logger.warning("Declined reason percentages deviate from 100%% by %.2f", check.diff)

    all_notes = [note for stage in report.stages for note in stage.notes]

    return FunnelAnalysis(
        report=report,
        period=format_period(report.date_from, report.date_to),
        kpis=summarize_kpis(report),
        stage_rows=build_stage_rows(report, drop_offs),
        drop_offs=drop_offs,
        largest_drop_off=largest,
        largest_drop_off_summary=describe_largest_drop_off(largest),
        percentage_check=check,
        percentage_warning=warning,
        declined_reason_breakdown=top_declined_reasons(
            report.declined_reasons, settings.FUNNEL_TOP_DECLINED_REASONS
        ),
        stage_declined_reasons=[
            StageReasons(stage=stage.name, reasons=stage.declined_reasons[: settings.FUNNEL_STAGE_TOP_REASONS])
            for stage in report.stages
            if stage.declined_reasons
        ],
        latest_notes=[
            StageNotes(stage=stage.name, notes=get_latest_notes(stage.notes, settings.FUNNEL_LATEST_NOTES_LIMIT))
            for stage in report.stages
            if stage.notes
        ],
        blockers=identify_blockers_from_notes(all_notes),
        action_items=generate_action_items(
            largest,
            report.average_time_in_stages,
            dwell_threshold=settings.FUNNEL_DWELL_DAYS_THRESHOLD,
            max_items=settings.FUNNEL_MAX_ACTION_ITEMS,
        ),
    )
