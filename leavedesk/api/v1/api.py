"""
V1 API router aggregator: wires all endpoint modules together.
"""

from fastapi import APIRouter

from leavedesk.api.v1.endpoints import (absences, analytics, approvals,
                                        health, holidays, settings, users)

api_router = APIRouter()

# Own requests, approvals queue
api_router.include_router(absences.router)
api_router.include_router(approvals.router)

# Reporting
api_router.include_router(analytics.router)

# Policy, calendar, profile
api_router.include_router(settings.router)
api_router.include_router(holidays.router)
api_router.include_router(users.router)

api_router.include_router(health.router)
