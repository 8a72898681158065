"""Stage normalization and funnel arithmetic.

Every function here is pure: inputs are frozen models and nothing is cached,
so reports built for independent requests never share state.
"""

import logging
from collections.abc import Iterable, Mapping
from numbers import Real

from leasedesk.schemas.funnel import (
    DropOff,
    FunnelReport,
    Note,
    PercentageCheck,
    RawFunnelReport,
    RawReasonCount,
    RawStage,
    ReasonCount,
    Stage,
)

logger = logging.getLogger(__name__)

NEW_LEAD = "New lead"
APPROVED_BY_AM = "Approved by account manager"
HANDED_TO_TECHNICIAN = "Handed to technician"
CONVERTED = "Converted"

CANONICAL_STAGES: tuple[str, ...] = (NEW_LEAD, APPROVED_BY_AM, HANDED_TO_TECHNICIAN, CONVERTED)

# Exact (case-insensitive) labels the reporting backend has used for each stage.
STAGE_ALIASES: dict[str, str] = {
    "new lead": NEW_LEAD,
    "novy lead": NEW_LEAD,
    "nový lead": NEW_LEAD,
    "approved by account manager": APPROVED_BY_AM,
    "approved by am": APPROVED_BY_AM,
    "schvalen am": APPROVED_BY_AM,
    "schválen am": APPROVED_BY_AM,
    "handed to technician": HANDED_TO_TECHNICIAN,
    "predano technikovi": HANDED_TO_TECHNICIAN,
    "předáno technikovi": HANDED_TO_TECHNICIAN,
    "converted": CONVERTED,
    "konvertovano": CONVERTED,
    "konvertováno": CONVERTED,
}

# Substrings of legacy labels folded into a stage, e.g. "Handed to technician (awaiting documents)".
STAGE_LABEL_FRAGMENTS: tuple[tuple[str, str], ...] = (
    ("handed to technician", HANDED_TO_TECHNICIAN),
    ("předáno technikovi", HANDED_TO_TECHNICIAN),
    ("predano technikovi", HANDED_TO_TECHNICIAN),
    ("awaiting documents", HANDED_TO_TECHNICIAN),
)

DEFAULT_PERCENTAGE_TOLERANCE = 0.5
DEFAULT_LATEST_NOTES_LIMIT = 3


def canonical_stage_name(label: str | None) -> str | None:
    """Return the canonical stage for a raw label, or ``None`` when it is unknown."""
    if not label:
        return None
    key = label.strip().lower()
    if key in STAGE_ALIASES:
        return STAGE_ALIASES[key]
    for fragment, stage in STAGE_LABEL_FRAGMENTS:
        if fragment in key:
            return stage
    return None


def _reason(raw: RawReasonCount | ReasonCount) -> ReasonCount:
    return ReasonCount(reason=raw.reason, count=raw.count or 0, percentage=raw.percentage or 0.0)


def _stage(name: str, raw: RawStage | Stage) -> Stage:
    return Stage(
        name=name,
        count=raw.count or 0,
        percentage=raw.percentage or 0.0,
        declined_reasons=[_reason(r) for r in raw.declined_reasons or []],
        notes=list(raw.notes or []),
    )


def normalize_stages(stages: Iterable[RawStage | Stage] | None) -> list[Stage]:
    """Map raw stage entries onto the four canonical stages, in canonical order.

    When two entries resolve to the same stage the later one wins. Stages with
    no entry are zero-filled and labels that match no stage are dropped.
    """
    by_name: dict[str, RawStage | Stage] = {}
    for raw in stages or []:
        name = canonical_stage_name(raw.name)
        if name is None:
            logger.debug("Dropping unrecognized funnel stage %r", raw.name)
            continue
        if name in by_name:
            logger.debug("Stage %r overrides earlier entry for %r", raw.name, name)
        by_name[name] = raw

    return [
        _stage(name, by_name[name]) if name in by_name else Stage(name=name)
        for name in CANONICAL_STAGES
    ]


def compute_drop_off(stages: list[Stage]) -> list[DropOff]:
    drop_offs: list[DropOff] = []
    for current, following in zip(stages, stages[1:]):
        drop_count = current.count - following.count
        drop_rate = drop_count / current.count * 100 if current.count > 0 else 0.0
        drop_offs.append(
            DropOff(
                from_stage=current.name,
                to_stage=following.name,
                drop_count=drop_count,
                drop_rate=drop_rate,
            )
        )
    return drop_offs


def get_largest_drop_off(drop_offs: list[DropOff]) -> DropOff | None:
    """Largest transition by absolute count; the earliest wins a tie."""
    largest: DropOff | None = None
    for drop_off in drop_offs:
        if largest is None or drop_off.drop_count > largest.drop_count:
            largest = drop_off
    return largest


def compute_conversion_rate(converted_leads: int, total_leads: int) -> float:
    if total_leads <= 0:
        return 0.0
    return converted_leads / total_leads * 100


def _percentage_of(item: object) -> float:
    if isinstance(item, Real):
        return float(item)
    if isinstance(item, Mapping):
        return float(item.get("percentage") or 0.0)
    return float(getattr(item, "percentage", 0.0) or 0.0)


def validate_percentages(items: Iterable[object], tolerance: float = DEFAULT_PERCENTAGE_TOLERANCE) -> PercentageCheck:
    """Check that percentage shares add up to 100 within ``tolerance``.

    Accepts plain numbers, mappings or objects with a ``percentage`` field.
    The result is advisory and never raises.
    """
    total = sum(_percentage_of(item) for item in items)
    diff = abs(100 - total)
    return PercentageCheck(ok=diff <= tolerance, diff=diff)


def get_latest_notes(notes: Iterable[Note] | None, limit: int = DEFAULT_LATEST_NOTES_LIMIT) -> list[Note]:
    if not notes:
        return []
    ordered = sorted(notes, key=lambda note: note.date.timestamp(), reverse=True)
    return ordered[:limit]


def normalize_dwell_times(dwell: Mapping[str, float] | None) -> dict[str, float]:
    """Key average dwell days by canonical stage name.

    Unknown labels keep their raw key. Two labels for the same stage resolve
    the same way as stage entries: the later one wins.
    """
    normalized: dict[str, float] = {}
    for label, days in (dwell or {}).items():
        normalized[canonical_stage_name(label) or label] = days
    return normalized


def build_report(raw: RawFunnelReport) -> FunnelReport:
    """Turn an upstream snapshot into a normalized report.

    Missing numbers become 0 and missing lists become empty. The upstream
    conversion rate is trusted whenever it is present.
    """
    total = raw.total_leads or 0
    converted = raw.converted_leads or 0
    conversion_rate = raw.conversion_rate
    if conversion_rate is None:
        conversion_rate = compute_conversion_rate(converted, total)

    return FunnelReport(
        date_from=raw.date_from,
        date_to=raw.date_to,
        total_leads=total,
        converted_leads=converted,
        declined_leads=raw.declined_leads or 0,
        conversion_rate=conversion_rate,
        stages=normalize_stages(raw.stages),
        declined_reasons=[_reason(r) for r in raw.declined_reasons or []],
        average_time_in_stages=normalize_dwell_times(raw.average_time_in_stages),
    )
