from fastapi import APIRouter

from leasedesk.api.routes import funnel, reports

api_router = APIRouter()
api_router.include_router(funnel.router)
api_router.include_router(reports.router)
