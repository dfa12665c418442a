"""Main API router aggregating all routes."""

from fastapi import APIRouter

from leitordocs.api.routes import analysis, csrf, dashboard, health, system

api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(csrf.router)
api_router.include_router(analysis.router)
api_router.include_router(system.router)
api_router.include_router(dashboard.router)
