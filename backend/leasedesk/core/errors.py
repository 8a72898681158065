class FunnelError(Exception):
    """Base class for funnel report failures surfaced to the caller."""


class InvalidDateError(FunnelError, ValueError):
    """A date value could not be parsed into a calendar date."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Not a valid date: {value!r}")


class ExportInProgressError(FunnelError, RuntimeError):
    """A print export was requested while another one still holds print mode."""

    def __init__(self) -> None:
        super().__init__("Another print export is already in progress")
