from leasedesk.api.routes import funnel, reports

__all__ = [
    "funnel",
    "reports",
]
