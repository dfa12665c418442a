"""FastAPI dependencies for API routes.

Shared clients live on ``app.state`` (created in the lifespan); the getters
build them lazily so the app also works without a lifespan run.
"""

from collections.abc import Callable
from typing import Annotated, TypeVar

from fastapi import Depends, Request

from leitordocs.config import get_settings
from leitordocs.domain.analysis import DocumentAnalysisService
from leitordocs.infrastructure.ai.factory import AIServiceFactory, get_ai_factory
from leitordocs.infrastructure.cache.analysis_store import AnalysisStore
from leitordocs.infrastructure.supabase import (
    AnalysisLogRepository,
    CompanyRepository,
    CreditsService,
    SupabaseRestClient,
)

T = TypeVar("T")


def _state_resource(request: Request, name: str, build: Callable[[], T]) -> T:
    resource = getattr(request.app.state, name, None)
    if resource is None:
        resource = build()
        setattr(request.app.state, name, resource)
    return resource


def build_analysis_store() -> AnalysisStore:
    settings = get_settings()
    return AnalysisStore(
        ttl_seconds=settings.analysis_cache_ttl_seconds,
        max_entries=settings.analysis_cache_max_entries,
    )


def get_analysis_store(request: Request) -> AnalysisStore:
    return _state_resource(request, "analysis_store", build_analysis_store)


def get_supabase(request: Request) -> SupabaseRestClient:
    return _state_resource(request, "supabase", SupabaseRestClient)


def get_ai_service_factory(request: Request) -> AIServiceFactory:
    return _state_resource(request, "ai_factory", get_ai_factory)


SupabaseDep = Annotated[SupabaseRestClient, Depends(get_supabase)]
AIFactoryDep = Annotated[AIServiceFactory, Depends(get_ai_service_factory)]


def get_credits_service(rest: SupabaseDep) -> CreditsService:
    return CreditsService(rest, default_limit=get_settings().default_monthly_credits)


def get_analysis_log_repository(rest: SupabaseDep) -> AnalysisLogRepository:
    return AnalysisLogRepository(rest)


CreditsDep = Annotated[CreditsService, Depends(get_credits_service)]
AnalysisLogsDep = Annotated[AnalysisLogRepository, Depends(get_analysis_log_repository)]


def get_analysis_service(
    rest: SupabaseDep,
    credits: CreditsDep,
    logs: AnalysisLogsDep,
    ai_factory: AIFactoryDep,
    store: Annotated[AnalysisStore, Depends(get_analysis_store)],
) -> DocumentAnalysisService:
    settings = get_settings()
    return DocumentAnalysisService(
        credits=credits,
        logs=logs,
        companies=CompanyRepository(rest),
        ai_factory=ai_factory,
        store=store,
        default_company=settings.default_company,
        max_file_size_bytes=settings.upload_max_size_bytes,
    )


AnalysisServiceDep = Annotated[DocumentAnalysisService, Depends(get_analysis_service)]

__all__ = [
    "AIFactoryDep",
    "AnalysisLogsDep",
    "AnalysisServiceDep",
    "CreditsDep",
    "SupabaseDep",
    "get_analysis_service",
    "get_analysis_store",
]
