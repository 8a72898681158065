"""Narrative layer of the funnel report: note blockers and action items."""

from collections.abc import Callable, Iterable, Mapping

from leasedesk.schemas.funnel import DropOff, Note
from leasedesk.services.formatters import format_fixed
from leasedesk.services.funnel import APPROVED_BY_AM, HANDED_TO_TECHNICIAN, NEW_LEAD

BLOCKER_WAITING = "Waiting on next step"
BLOCKER_MISSING_DOCUMENTS = "Missing documents"
BLOCKER_CONTACT = "Contact problems"
BLOCKER_ASSESSMENT = "Pending assessment"

# Evaluated in this order; one note can raise several labels.
BLOCKER_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (BLOCKER_WAITING, ("ceka", "čeká", "waiting on", "on hold", "awaiting")),
    (BLOCKER_MISSING_DOCUMENTS, ("dokument", "doklad", "document", "paperwork")),
    (BLOCKER_CONTACT, ("nedovolano", "nedovoláno", "nekontaktni", "unreachable", "no answer", "not reachable")),
    (BLOCKER_ASSESSMENT, ("posoudit", "posouz", "kontrola", "assessment", "to be assessed")),
)

DEFAULT_DWELL_DAYS_THRESHOLD = 7.0
DEFAULT_MAX_ACTION_ITEMS = 5
STABLE_PIPELINE_MESSAGE = "Keep the current pace, the pipeline is stable"


def identify_blockers_from_notes(notes: Iterable[Note]) -> list[str]:
    text = " ".join(note.text.lower() for note in notes)
    return [label for label, keywords in BLOCKER_KEYWORDS if any(k in text for k in keywords)]


RulePredicate = Callable[[DropOff | None, Mapping[str, float]], bool]
RuleProducer = Callable[[DropOff | None, Mapping[str, float]], list[str]]


def _drop_off_from(stage: str) -> RulePredicate:
    def predicate(largest: DropOff | None, _dwell: Mapping[str, float]) -> bool:
        return largest is not None and largest.from_stage == stage

    return predicate


def _fixed(*items: str) -> RuleProducer:
    def producer(_largest: DropOff | None, _dwell: Mapping[str, float]) -> list[str]:
        return list(items)

    return producer


def _always(_largest: DropOff | None, _dwell: Mapping[str, float]) -> bool:
    return True


def _long_dwell(threshold: float) -> RuleProducer:
    def producer(_largest: DropOff | None, dwell: Mapping[str, float]) -> list[str]:
        return [
            f'Shorten dwell time in stage "{stage}" (currently {format_fixed(days)} days)'
            for stage, days in dwell.items()
            if days > threshold
        ]

    return producer


def action_rules(dwell_threshold: float = DEFAULT_DWELL_DAYS_THRESHOLD) -> list[tuple[RulePredicate, RuleProducer]]:
    """Ordered (predicate, producer) pairs; every matching rule contributes."""
    return [
        (
            _drop_off_from(NEW_LEAD),
            _fixed(
                "Improve intake qualification of leads and the first-contact strategy",
                "Review the top decline reasons at the first step",
                "Increase the speed of the first contact with each lead",
            ),
        ),
        (
            _drop_off_from(APPROVED_BY_AM),
            _fixed(
                "Speed up the handoff from account manager to technician",
                "Check the SLA for document transfer to the technician",
                "Review the reasons for declines in technical review",
            ),
        ),
        (
            _drop_off_from(HANDED_TO_TECHNICIAN),
            _fixed(
                "Shorten technical review time (SLA monitoring)",
                "Train technicians on the most frequent decline causes",
                "Set up automated reminders after 3 days in technical review",
            ),
        ),
        (_always, _long_dwell(dwell_threshold)),
    ]


def generate_action_items(
    largest_drop_off: DropOff | None,
    average_time_in_stages: Mapping[str, float] | None,
    dwell_threshold: float = DEFAULT_DWELL_DAYS_THRESHOLD,
    max_items: int = DEFAULT_MAX_ACTION_ITEMS,
) -> list[str]:
    dwell = average_time_in_stages or {}
    actions: list[str] = []
    for predicate, producer in action_rules(dwell_threshold):
        if predicate(largest_drop_off, dwell):
            actions.extend(producer(largest_drop_off, dwell))

    if not actions:
        actions.append(STABLE_PIPELINE_MESSAGE)

    return actions[:max_items]
