"""Supabase (PostgREST) integration."""

from leitordocs.infrastructure.supabase.analysis_logs import AnalysisLogEntry, AnalysisLogRepository
from leitordocs.infrastructure.supabase.client import SupabaseRestClient
from leitordocs.infrastructure.supabase.companies import CompanyPromptConfig, CompanyRepository
from leitordocs.infrastructure.supabase.credits import CreditsService, UserCredits

__all__ = [
    "AnalysisLogEntry",
    "AnalysisLogRepository",
    "CompanyPromptConfig",
    "CompanyRepository",
    "CreditsService",
    "SupabaseRestClient",
    "UserCredits",
]
