"""Text layout of a funnel analysis, shared by the screen view and print export."""

from dataclasses import dataclass, field
from datetime import datetime

from leasedesk.core.config import get_settings
from leasedesk.schemas.funnel import FunnelAnalysis
from leasedesk.services.formatters import format_datetime, format_fixed, format_number, format_percent

NO_PRINT = "no-print"
PRINT_ONLY = "print-only"
PRINT_HIDDEN = "print-hidden"
PRINTING = "printing"

REPORT_TITLE = "Lead Funnel Report"


@dataclass
class Section:
    key: str
    title: str
    lines: list[str] = field(default_factory=list)
    classes: set[str] = field(default_factory=set)


@dataclass
class ReportDocument:
    title: str
    sections: list[Section] = field(default_factory=list)
    body_classes: set[str] = field(default_factory=set)

    @property
    def printing(self) -> bool:
        return PRINTING in self.body_classes

    def visible_sections(self) -> list[Section]:
        visible: list[Section] = []
        for section in self.sections:
            if PRINT_HIDDEN in section.classes:
                continue
            if PRINT_ONLY in section.classes and not self.printing:
                continue
            visible.append(section)
        return visible

    def section(self, key: str) -> Section:
        for section in self.sections:
            if section.key == key:
                return section
        raise KeyError(key)


def _stage_lines(analysis: FunnelAnalysis) -> list[str]:
    lines = []
    for row in analysis.stage_rows:
        days = format_fixed(row.average_days) if row.average_days is not None else "N/A"
        if row.drop_off is not None:
            drop = f"{format_number(row.drop_off.drop_count)} ({format_percent(row.drop_off.drop_rate)})"
        else:
            drop = "-"
        lines.append(
            f"{row.name}: {format_number(row.count)} | {format_percent(row.percentage)} of total"
            f" | avg days {days} | drop-off {drop}"
        )
    return lines


def _notes_lines(analysis: FunnelAnalysis) -> list[str]:
    lines = []
    if analysis.blockers:
        lines.append("Typical blockers: " + ", ".join(analysis.blockers))
    for group in analysis.latest_notes:
        lines.append(f"{group.stage}:")
        for note in group.notes:
            lines.append(f"  {format_datetime(note.date)} {note.author}: {note.text}")
    if not analysis.latest_notes:
        lines.append("No notes for the selected period")
    return lines


def render_report(analysis: FunnelAnalysis, generated_at: datetime | None = None) -> ReportDocument:
    settings = get_settings()
    generated_at = generated_at or datetime.now()
    kpis = analysis.kpis

    declined = [
        f"{reason.reason}: {format_number(reason.count)} ({format_percent(reason.percentage)})"
        for reason in analysis.declined_reason_breakdown
    ]
    if analysis.percentage_warning:
        declined.insert(0, analysis.percentage_warning)

    stage_reasons = []
    for group in analysis.stage_declined_reasons:
        stage_reasons.append(f"{group.stage}:")
        stage_reasons.extend(
            f"  {r.reason}: {format_number(r.count)} ({format_percent(r.percentage)})" for r in group.reasons
        )

    actions = [f"{index}. {text}" for index, text in enumerate(analysis.action_items, start=1)]
    if analysis.largest_drop_off_summary:
        actions.append(analysis.largest_drop_off_summary)

    sections = [
        Section("controls", "Controls", ["Period: day | week | month | year | custom", "Export: PDF | JSON"], {NO_PRINT}),
        Section(
            "header",
            REPORT_TITLE,
            [f"Period: {analysis.period}", f"Generated: {format_datetime(generated_at)}"],
        ),
        Section(
            "kpis",
            "Key figures",
            [
                f"Total leads: {format_number(kpis.total_leads)}",
                f"Converted: {format_number(kpis.converted_leads)}",
                f"Declined: {format_number(kpis.declined_leads)}",
                f"Conversion rate: {format_percent(kpis.conversion_rate)} ({kpis.conversion_tier})",
            ],
        ),
        Section("stages", "Funnel stages", _stage_lines(analysis)),
        Section("declined_reasons", f"Declined reasons - total ({format_number(kpis.declined_leads)})", declined),
    ]
    if stage_reasons:
        sections.append(Section("stage_declined_reasons", "Declined reasons by stage", stage_reasons))
    sections.extend(
        [
            Section("notes", "Notes and insights", _notes_lines(analysis)),
            Section("action_items", "Recommendations / action items", actions),
            Section(
                "footer",
                "",
                [
                    f"{REPORT_TITLE} | {analysis.period}",
                    f"(c) {generated_at.year} {settings.COMPANY_NAME} | Internal document",
                ],
                {PRINT_ONLY},
            ),
        ]
    )
    return ReportDocument(title=REPORT_TITLE, sections=sections)
