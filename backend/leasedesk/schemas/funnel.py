from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DateValue = datetime | str


class FunnelModel(BaseModel):
    # camelCase on the wire, snake_case in code; every record is read-only once built.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class Note(FunnelModel):
    text: str
    date: datetime
    author: str = ""


class ReasonCount(FunnelModel):
    reason: str
    count: int = 0
    percentage: float = 0.0


class Stage(FunnelModel):
    name: str
    count: int = 0
    percentage: float = 0.0
    declined_reasons: list[ReasonCount] = Field(default_factory=list)
    notes: list[Note] = Field(default_factory=list)


class DropOff(FunnelModel):
    from_stage: str = Field(alias="from")
    to_stage: str = Field(alias="to")
    drop_count: int
    drop_rate: float


class FunnelReport(FunnelModel):
    date_from: DateValue
    date_to: DateValue
    total_leads: int = 0
    converted_leads: int = 0
    declined_leads: int = 0
    conversion_rate: float = 0.0
    stages: list[Stage] = Field(default_factory=list)
    declined_reasons: list[ReasonCount] = Field(default_factory=list)
    average_time_in_stages: dict[str, float] = Field(default_factory=dict)


# Upstream shapes: every field may be missing or null.


class RawReasonCount(FunnelModel):
    reason: str = ""
    count: int | None = None
    percentage: float | None = None


class RawStage(FunnelModel):
    name: str = Field(default="", validation_alias=AliasChoices("name", "stage"))
    count: int | None = None
    percentage: float | None = None
    declined_reasons: list[RawReasonCount] | None = None
    notes: list[Note] | None = None


class RawFunnelReport(FunnelModel):
    date_from: DateValue
    date_to: DateValue
    total_leads: int | None = None
    converted_leads: int | None = None
    declined_leads: int | None = None
    conversion_rate: float | None = None
    stages: list[RawStage] | None = None
    declined_reasons: list[RawReasonCount] | None = None
    average_time_in_stages: dict[str, float] | None = None


# Derived display values.


class PercentageCheck(FunnelModel):
    ok: bool
    diff: float


class KPISummary(FunnelModel):
    total_leads: int
    converted_leads: int
    declined_leads: int
    conversion_rate: float
    conversion_tier: str


class StageRow(FunnelModel):
    name: str
    count: int
    percentage: float
    average_days: float | None = None
    drop_off: DropOff | None = None


class StageReasons(FunnelModel):
    stage: str
    reasons: list[ReasonCount]


class StageNotes(FunnelModel):
    stage: str
    notes: list[Note]


class FunnelAnalysis(FunnelModel):
    report: FunnelReport
    period: str
    kpis: KPISummary
    stage_rows: list[StageRow]
    drop_offs: list[DropOff]
    largest_drop_off: DropOff | None = None
    largest_drop_off_summary: str | None = None
    percentage_check: PercentageCheck
    percentage_warning: str | None = None
    declined_reason_breakdown: list[ReasonCount]
    stage_declined_reasons: list[StageReasons]
    latest_notes: list[StageNotes]
    blockers: list[str]
    action_items: list[str]
