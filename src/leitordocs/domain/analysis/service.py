"""Document analysis service - core business logic of ``POST /api/analyze``."""

import time
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any

from leitordocs.domain.audit import detect_alerts
from leitordocs.domain.naming import generate_file_name_from_analysis
from leitordocs.infrastructure.ai.base import parse_analysis
from leitordocs.infrastructure.ai.factory import AIServiceFactory
from leitordocs.infrastructure.ai.prompts import DEFAULT_ANALYSIS_TYPE, get_default_prompt
from leitordocs.infrastructure.cache.analysis_store import AnalysisStore
from leitordocs.infrastructure.document.uploads import (
    MAX_FILE_SIZE_BYTES,
    UploadedDocument,
    prepare_upload,
)
from leitordocs.infrastructure.supabase.analysis_logs import (
    AnalysisLogEntry,
    AnalysisLogRepository,
)
from leitordocs.infrastructure.supabase.companies import CompanyRepository
from leitordocs.infrastructure.supabase.credits import CreditsService
from leitordocs.observability.metrics import ANALYSIS_COUNT, AUDIT_ALERTS
from leitordocs.shared.concurrency import run_in_upload_worker
from leitordocs.shared.context import UserContext
from leitordocs.shared.exceptions import (
    AIServiceError,
    CompanyAccessDeniedError,
    CreditDebitError,
    InsufficientCreditsError,
)
from leitordocs.shared.logging import get_logger

logger = get_logger(__name__)


@dataclass
class AnalysisOutcome:
    """Result of one document analysis."""

    analysis: Any
    analysis_type: str
    provider: str
    original_name: str
    suggested_file_name: str
    batch_id: str | None = None
    alerts: list[str] = field(default_factory=list)
    from_cache: bool = False


def file_extension(file_name: str) -> str:
    return PurePath(file_name).suffix.lower()


def renamed_file_name(original_name: str, analysis: Any, analysis_type: str) -> str:
    """Name for ``POST /api/download-renamed``: generated from the analysis,
    keeping the original extension."""
    return generate_file_name_from_analysis(
        analysis,
        analysis_type or DEFAULT_ANALYSIS_TYPE,
        file_extension(original_name),
    )


class DocumentAnalysisService:
    """Orchestrates credits, permissions, caching, AI reading, auditing and
    logging for a single uploaded document.

    Credits are checked before any work and debited only after a fresh
    analysis succeeds. Cached results are never debited twice.
    """

    def __init__(
        self,
        credits: CreditsService,
        logs: AnalysisLogRepository,
        companies: CompanyRepository,
        ai_factory: AIServiceFactory,
        store: AnalysisStore,
        *,
        default_company: str,
        max_file_size_bytes: int = MAX_FILE_SIZE_BYTES,
    ) -> None:
        self.credits = credits
        self.logs = logs
        self.companies = companies
        self.ai_factory = ai_factory
        self.store = store
        self.default_company = default_company
        self.max_file_size_bytes = max_file_size_bytes

    async def analyze(
        self,
        user: UserContext,
        content: bytes,
        file_name: str,
        mime_type: str | None,
        *,
        analysis_type: str | None = None,
        company: str | None = None,
        provider: str | None = None,
        batch_id: str | None = None,
    ) -> AnalysisOutcome:
        """Analyze one uploaded document.

        Raises:
            CreditsUnavailableError: Credits could not be verified
            InsufficientCreditsError: No credits left this month
            CompanyAccessDeniedError: The user may not use this company
            ValidationError: The upload is empty, too large or unsupported
            AIServiceError: Every provider attempt failed
            CreditDebitError: The analysis succeeded but could not be paid for
        """
        started = time.perf_counter()
        analysis_type = analysis_type or DEFAULT_ANALYSIS_TYPE
        company = company or self.default_company

        await self._ensure_credits(user.user_id)

        if not user.can_access_company(company):
            logger.warning("company_access_denied", user_id=user.user_id, company=company)
            raise CompanyAccessDeniedError(company)

        upload = await run_in_upload_worker(
            prepare_upload, content, file_name, mime_type, self.max_file_size_bytes
        )

        cached = self.store.get(upload.file_name, upload.file_hash, analysis_type, company)
        if cached is not None:
            return await self._from_cache(user, upload, cached, analysis_type, company, batch_id, started)

        # Another request may have spent the last credit meanwhile
        await self._ensure_credits(user.user_id)

        config = await self.companies.get_prompt_config(company)
        prompt = (config.prompt_for(analysis_type) if config else None) or get_default_prompt(
            analysis_type
        )
        naming_pattern = config.naming_pattern if config else None

        provider_name = provider or self.ai_factory.default_provider
        try:
            client = self.ai_factory.get_service(provider)
            provider_name = client.provider
            if upload.is_pdf:
                response = await client.analyze_pdf(upload.content, prompt, upload.file_name)
            else:
                response = await client.analyze_image(
                    upload.content, upload.mime_type, prompt, upload.file_name
                )
        except AIServiceError as e:
            ANALYSIS_COUNT.labels(provider=provider_name, outcome="error").inc()
            await self._log_failure(user, upload, analysis_type, provider_name, company, e.message, started)
            raise

        analysis = parse_analysis(response.content)

        try:
            await self.credits.debit_credit(user.user_id, 1)
        except CreditDebitError as e:
            ANALYSIS_COUNT.labels(provider=provider_name, outcome="debit_failed").inc()
            await self._log_failure(user, upload, analysis_type, provider_name, company, e.message, started)
            raise

        suggested = generate_file_name_from_analysis(
            analysis, analysis_type, upload.extension, naming_pattern
        )
        self.store.store(
            upload.file_name,
            upload.file_hash,
            analysis_type,
            {"analysis": analysis, "provider": provider_name, "suggested_file_name": suggested},
            batch_id=batch_id,
            company=company,
        )

        alerts = self._audit(analysis, upload.file_name, provider_name)
        await self.logs.log_analysis(
            user.user_id,
            AnalysisLogEntry(
                analysis_type=analysis_type,
                provider=provider_name,
                company=company,
                file_name=upload.file_name,
                file_hash=upload.file_hash,
                processing_time_ms=_elapsed_ms(started),
                credits_debited=1,
                raw_response=analysis,
                ai_alerts=alerts,
            ),
        )

        ANALYSIS_COUNT.labels(provider=provider_name, outcome="success").inc()
        logger.info(
            "document_analyzed",
            user_id=user.user_id,
            provider=provider_name,
            analysis_type=analysis_type,
            alerts=len(alerts),
            duration_ms=_elapsed_ms(started),
        )

        return AnalysisOutcome(
            analysis=analysis,
            analysis_type=analysis_type,
            provider=provider_name,
            original_name=upload.file_name,
            suggested_file_name=suggested,
            batch_id=batch_id,
            alerts=alerts,
        )

    async def _ensure_credits(self, user_id: str) -> None:
        credits = await self.credits.get_user_credits(user_id)
        if credits.credits_remaining < 1:
            logger.info("analysis_blocked_no_credits", user_id=user_id)
            raise InsufficientCreditsError(credits.credits_remaining, credits.credits_limit)

    async def _from_cache(
        self,
        user: UserContext,
        upload: UploadedDocument,
        cached: dict[str, Any],
        analysis_type: str,
        company: str,
        batch_id: str | None,
        started: float,
    ) -> AnalysisOutcome:
        analysis = cached["analysis"]
        provider_name = cached["provider"]
        alerts = self._audit(analysis, upload.file_name, provider_name)

        await self.logs.log_analysis(
            user.user_id,
            AnalysisLogEntry(
                analysis_type=analysis_type,
                provider=provider_name,
                company=company,
                file_name=upload.file_name,
                file_hash=upload.file_hash,
                is_from_cache=True,
                processing_time_ms=_elapsed_ms(started),
                raw_response=analysis,
                ai_alerts=alerts,
            ),
        )
        ANALYSIS_COUNT.labels(provider=provider_name, outcome="cached").inc()
        logger.info("analysis_cache_hit", user_id=user.user_id, analysis_type=analysis_type)

        return AnalysisOutcome(
            analysis=analysis,
            analysis_type=analysis_type,
            provider=provider_name,
            original_name=upload.file_name,
            suggested_file_name=cached["suggested_file_name"],
            batch_id=batch_id,
            alerts=alerts,
            from_cache=True,
        )

    def _audit(self, analysis: Any, file_name: str, provider: str) -> list[str]:
        alerts = detect_alerts(analysis)
        if alerts:
            AUDIT_ALERTS.inc(len(alerts))
            logger.warning(
                "analysis_audit_alerts",
                file_name=file_name,
                provider=provider,
                alerts=alerts,
            )
        return alerts

    async def _log_failure(
        self,
        user: UserContext,
        upload: UploadedDocument,
        analysis_type: str,
        provider: str,
        company: str,
        error_message: str,
        started: float,
    ) -> None:
        await self.logs.log_analysis(
            user.user_id,
            AnalysisLogEntry(
                analysis_type=analysis_type,
                provider=provider,
                company=company,
                file_name=upload.file_name,
                file_hash=upload.file_hash,
                processing_time_ms=_elapsed_ms(started),
                success=False,
                error_message=error_message,
            ),
        )


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
