"""Shared API schemas and base models."""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from leitordocs.config import AIProviderName
from leitordocs.domain.audit import AlertsSummary
from leitordocs.infrastructure.supabase.credits import UserCredits


class APIRequestModel(BaseModel):
    """Base model for request bodies.

    Forbids unknown fields to avoid silently accepting typos or outdated clients.
    """

    model_config = ConfigDict(extra="forbid")


class CamelModel(BaseModel):
    """Serialized with camelCase keys, which the frontend expects."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalysisData(CamelModel):
    analysis: Any
    analysis_type: str
    provider: str
    original_name: str
    suggested_file_name: str
    batch_id: str | None = None
    alerts: list[str] = []


class AnalyzeResponse(BaseModel):
    success: bool = True
    data: AnalysisData


class CsrfTokenResponse(CamelModel):
    success: bool = True
    csrf_token: str


class ProvidersData(BaseModel):
    providers: list[str]
    default: str


class ProvidersResponse(BaseModel):
    success: bool = True
    data: ProvidersData


class SetDefaultProviderRequest(APIRequestModel):
    provider: AIProviderName


class CreditsResponse(BaseModel):
    success: bool = True
    data: UserCredits


class AlertsResponse(BaseModel):
    success: bool = True
    data: AlertsSummary
