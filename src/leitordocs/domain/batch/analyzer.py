"""Bounded-concurrency batch analysis client.

Uploads a list of documents to ``POST /api/analyze`` in consecutive chunks of
``concurrency`` files. Chunks run strictly in order; files inside a chunk are
in flight together. Every file yields exactly one result record, so one bad
file never aborts the batch.
"""

import asyncio
import io
import json
import mimetypes
import threading
import time
import zipfile
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path, PurePath
from typing import Any, TypeVar

import httpx

from leitordocs.domain.naming import unique_archive_name
from leitordocs.shared.exceptions import InsufficientCreditsError
from leitordocs.shared.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_CONCURRENCY = 2
ERROR_RESULT = "ERRO"
INVALID_RESPONSE = "Resposta inválida do servidor"
HISTORY_LIMIT = 100
CSRF_COOKIE_NAME = "csrf_token"
CSRF_HEADER_NAME = "x-csrf-token"

ProgressCallback = Callable[[int, int], None]
ResultsCallback = Callable[[list["BatchItemResult"]], None]

_last_batch_ms = 0
_batch_id_lock = threading.Lock()


def new_batch_id(now_ms: int | None = None) -> str:
    """Return ``batch_<epoch-millis>``, unique within the process.

    If the clock has not advanced since the previous id, the millisecond
    value is bumped so two runs never share an id.
    """
    global _last_batch_ms
    with _batch_id_lock:
        ms = now_ms if now_ms is not None else int(time.time() * 1000)
        if ms <= _last_batch_ms:
            ms = _last_batch_ms + 1
        _last_batch_ms = ms
    return f"batch_{ms}"


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices ``[0, size)``, ``[size, 2*size)``, ..."""
    if size < 1:
        raise ValueError("Chunk size must be at least 1")
    for start in range(0, len(items), size):
        yield items[start : start + size]


def summary_message(success_count: int, total: int) -> str:
    if success_count == total:
        return f"{success_count} analisado(s) com sucesso!"
    return f"{success_count} de {total} processados. Verifique erros."


@dataclass(frozen=True)
class BatchFile:
    """A document queued for analysis."""

    file_name: str
    content: bytes
    mime_type: str

    @classmethod
    def from_path(cls, path: str | Path) -> "BatchFile":
        path = Path(path)
        mime_type, _ = mimetypes.guess_type(path.name)
        return cls(
            file_name=path.name,
            content=path.read_bytes(),
            mime_type=mime_type or "application/octet-stream",
        )


@dataclass(frozen=True)
class BatchItemResult:
    """Outcome for one file. ``result`` is ``"ERRO"`` when ``error`` is set."""

    id: str
    file_name: str
    result: str
    error: str | None
    timestamp: str
    alerts: tuple[str, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "fileName": self.file_name,
            "result": self.result,
            "error": self.error,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class BatchPlan:
    """Pre-flight comparison of a batch against the remaining credits."""

    total: int
    credits_remaining: int

    @property
    def fits(self) -> bool:
        return self.total <= self.credits_remaining

    @property
    def affordable_count(self) -> int:
        return max(0, min(self.total, self.credits_remaining))

    def affordable_files(self, files: Sequence[T]) -> list[T]:
        """The prefix of ``files`` the remaining credits pay for."""
        return list(files[: self.affordable_count])


def plan_batch(files: Sequence[Any], credits_remaining: int) -> BatchPlan:
    return BatchPlan(total=len(files), credits_remaining=credits_remaining)


@dataclass
class BatchReport:
    batch_id: str
    total: int
    results: list[BatchItemResult] = field(default_factory=list)
    credits: dict[str, Any] | None = None

    @property
    def successes(self) -> list[BatchItemResult]:
        return [r for r in self.results if r.succeeded]

    @property
    def failures(self) -> list[BatchItemResult]:
        return [r for r in self.results if not r.succeeded]

    @property
    def all_succeeded(self) -> bool:
        return len(self.successes) == self.total

    @property
    def message(self) -> str:
        return summary_message(len(self.successes), self.total)

    def history_entries(
        self,
        limit: int = HISTORY_LIMIT,
        previous: Sequence[BatchItemResult] = (),
    ) -> list[BatchItemResult]:
        """Successful records first, then older history, capped at ``limit``."""
        return [*self.successes, *previous][:limit]

    def build_renamed_archive(self, files: Sequence[BatchFile]) -> bytes:
        """ZIP of the successfully analyzed files, each named after its result."""
        by_name = {f.file_name: f for f in files}
        used_names: set[str] = set()
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
            for item in self.successes:
                original = by_name.get(item.file_name)
                if original is None:
                    continue
                extension = PurePath(item.file_name).suffix.lstrip(".") or "jpg"
                name = unique_archive_name(item.result, extension, used_names)
                archive.writestr(name, original.content)
        return buffer.getvalue()


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class BatchAnalyzer:
    """Runs batches against a Leitor de Docs server.

    Usage:
        async with BatchAnalyzer("https://docs.example.com", token) as analyzer:
            report = await analyzer.run(files, company="acme", provider="gemini")
    """

    def __init__(
        self,
        base_url: str,
        access_token: str,
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
        on_progress: ProgressCallback | None = None,
        on_results: ResultsCallback | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.concurrency = concurrency
        self.on_progress = on_progress
        self.on_results = on_results
        # No client-side timeout unless asked: the server bounds each analysis
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {access_token}"},
            transport=transport,
            timeout=timeout,
        )
        self._csrf_token: str | None = None

    async def __aenter__(self) -> "BatchAnalyzer":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def fetch_csrf_token(self) -> str:
        """Get a CSRF token and keep it as both cookie and header value."""
        response = await self.client.get("/api/csrf-token")
        response.raise_for_status()
        token = response.json()["csrfToken"]
        self.client.cookies.set(CSRF_COOKIE_NAME, token)
        self._csrf_token = token
        return token

    async def fetch_credits(self) -> dict[str, Any] | None:
        """Current monthly credits, or None if the server could not say."""
        try:
            response = await self.client.get("/api/credits")
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("batch_credits_fetch_failed", error=str(e))
            return None
        if not isinstance(body, dict) or not body.get("success"):
            error = body.get("error") if isinstance(body, dict) else None
            logger.warning("batch_credits_fetch_failed", error=error)
            return None
        data = body.get("data")
        return data if isinstance(data, dict) else None

    async def analyze_file(
        self,
        file: BatchFile,
        index: int,
        batch_id: str,
        *,
        company: str,
        provider: str,
        analysis_type: str,
    ) -> BatchItemResult:
        """Analyze one file. Never raises: failures become an ``ERRO`` record."""
        item_id = f"{batch_id}_{index}"
        try:
            response = await self.client.post(
                "/api/analyze",
                files={"image": (file.file_name, file.content, file.mime_type)},
                data={
                    "analysisType": analysis_type,
                    "company": company,
                    "provider": provider,
                    "batchId": batch_id,
                },
                headers={CSRF_HEADER_NAME: self._csrf_token or ""},
            )
            body = response.json()
        except httpx.HTTPError as e:
            return self._failed(item_id, file, str(e) or type(e).__name__)
        except ValueError:
            return self._failed(item_id, file, INVALID_RESPONSE)

        if not isinstance(body, dict) or not body.get("success"):
            error = body.get("error") if isinstance(body, dict) else None
            return self._failed(item_id, file, error or f"HTTP {response.status_code}")

        data = body.get("data") or {}
        if not isinstance(data, dict):
            return self._failed(item_id, file, INVALID_RESPONSE)
        alerts = data.get("alerts") or []
        if not isinstance(alerts, list):
            return self._failed(item_id, file, INVALID_RESPONSE)

        result = data.get("suggestedFileName") or data.get("analysis")
        if not isinstance(result, str):
            result = json.dumps(result, ensure_ascii=False)

        return BatchItemResult(
            id=item_id,
            file_name=file.file_name,
            result=result,
            error=None,
            timestamp=_now_iso(),
            alerts=tuple(alerts),
        )

    def _failed(self, item_id: str, file: BatchFile, error: str) -> BatchItemResult:
        logger.warning("batch_item_failed", item_id=item_id, file_name=file.file_name, error=error)
        return BatchItemResult(
            id=item_id,
            file_name=file.file_name,
            result=ERROR_RESULT,
            error=error,
            timestamp=_now_iso(),
        )

    async def run(
        self,
        files: Sequence[BatchFile],
        *,
        company: str,
        provider: str,
        analysis_type: str = "financial-receipt",
        credits_remaining: int | None = None,
        allow_partial: bool = False,
    ) -> BatchReport:
        """Analyze ``files`` and return one record per file, in input order.

        Raises:
            InsufficientCreditsError: If the batch exceeds the remaining
                credits and ``allow_partial`` is False
        """
        if credits_remaining is None:
            credits = await self.fetch_credits()
            if credits is not None:
                credits_remaining = credits.get("credits_remaining")

        if credits_remaining is not None:
            plan = plan_batch(files, credits_remaining)
            if not plan.fits:
                if not allow_partial:
                    raise InsufficientCreditsError(credits_remaining)
                logger.info(
                    "batch_trimmed_to_credits",
                    requested=plan.total,
                    kept=plan.affordable_count,
                )
                files = plan.affordable_files(files)
        else:
            logger.warning("batch_credits_unknown")

        batch_id = new_batch_id()
        total = len(files)
        report = BatchReport(batch_id=batch_id, total=total)
        logger.info("batch_started", batch_id=batch_id, total=total, concurrency=self.concurrency)

        if total and self._csrf_token is None:
            try:
                await self.fetch_csrf_token()
            except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
                # Each upload will then come back as a CSRF rejection record
                logger.warning("batch_csrf_token_failed", error=str(e))

        processed = 0

        async def settle(file: BatchFile, index: int) -> BatchItemResult:
            nonlocal processed
            result = await self.analyze_file(
                file,
                index,
                batch_id,
                company=company,
                provider=provider,
                analysis_type=analysis_type,
            )
            processed += 1
            if self.on_progress:
                self.on_progress(processed, total)
            return result

        for offset, chunk in zip(range(0, total, self.concurrency), chunked(files, self.concurrency)):
            chunk_results = await asyncio.gather(
                *(settle(file, offset + i) for i, file in enumerate(chunk))
            )
            report.results.extend(chunk_results)
            if self.on_results:
                self.on_results(list(report.results))

        report.credits = await self.fetch_credits()
        logger.info(
            "batch_finished",
            batch_id=batch_id,
            succeeded=len(report.successes),
            failed=len(report.failures),
        )
        return report
