"""Document analysis API routes."""

from urllib.parse import quote

from fastapi import APIRouter, File, Form, Request, Response, UploadFile

from leitordocs.api.deps import AnalysisServiceDep
from leitordocs.api.middleware.auth import CurrentUser
from leitordocs.api.ratelimit import RATE_LIMIT_ANALYZE, RATE_LIMIT_DEFAULT, limiter
from leitordocs.api.schemas import AnalysisData, AnalyzeResponse
from leitordocs.config import get_settings
from leitordocs.domain.analysis import renamed_file_name
from leitordocs.infrastructure.ai.base import parse_analysis
from leitordocs.infrastructure.ai.prompts import DEFAULT_ANALYSIS_TYPE
from leitordocs.infrastructure.document.uploads import prepare_upload

router = APIRouter(tags=["Analysis"])


def attachment_header(file_name: str) -> str:
    """``Content-Disposition`` value that survives non-ASCII names."""
    ascii_name = file_name.encode("ascii", "ignore").decode().replace('"', "") or "arquivo"
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(file_name)}"


@router.post("/analyze", response_model=AnalyzeResponse)
@limiter.limit(RATE_LIMIT_ANALYZE)
async def analyze_document(
    request: Request,
    user: CurrentUser,
    service: AnalysisServiceDep,
    image: UploadFile = File(...),
    analysis_type: str = Form(DEFAULT_ANALYSIS_TYPE, alias="analysisType"),
    company: str | None = Form(None),
    provider: str | None = Form(None),
    batch_id: str | None = Form(None, alias="batchId"),
) -> AnalyzeResponse:
    """Analyze an uploaded receipt (image or PDF) and suggest a file name.

    Costs one credit unless the same file was analyzed recently.
    """
    _ = request
    content = await image.read()

    outcome = await service.analyze(
        user.to_user_context(),
        content,
        image.filename or "documento",
        image.content_type,
        analysis_type=analysis_type,
        company=company,
        provider=provider,
        batch_id=batch_id,
    )

    return AnalyzeResponse(
        data=AnalysisData(
            analysis=outcome.analysis,
            analysis_type=outcome.analysis_type,
            provider=outcome.provider,
            original_name=outcome.original_name,
            suggested_file_name=outcome.suggested_file_name,
            batch_id=outcome.batch_id,
            alerts=outcome.alerts,
        )
    )


@router.post("/download-renamed")
@limiter.limit(RATE_LIMIT_DEFAULT)
async def download_renamed(
    request: Request,
    user: CurrentUser,
    file: UploadFile = File(...),
    analysis: str = Form(...),
    analysis_type: str = Form(DEFAULT_ANALYSIS_TYPE, alias="analysisType"),
) -> Response:
    """Return the uploaded file under the name generated from its analysis."""
    _ = request, user
    content = await file.read()
    upload = prepare_upload(
        content,
        file.filename or "documento",
        file.content_type,
        get_settings().upload_max_size_bytes,
    )

    file_name = renamed_file_name(upload.file_name, parse_analysis(analysis), analysis_type)
    return Response(
        content=upload.content,
        media_type=upload.mime_type,
        headers={"Content-Disposition": attachment_header(file_name)},
    )
