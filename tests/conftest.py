"""
Pytest configuration and fixtures for Leitor de Docs tests.
"""
import os
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

# Local test environment: dev auth, no real Supabase or AI keys
os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("AUTH_PROVIDER", "dev")

from leitordocs.api.deps import get_analysis_service
from leitordocs.api.ratelimit import limiter
from leitordocs.config import Settings
from leitordocs.domain.analysis import DocumentAnalysisService
from leitordocs.infrastructure.ai.base import AIResponse
from leitordocs.infrastructure.cache.analysis_store import AnalysisStore
from leitordocs.infrastructure.supabase.analysis_logs import AnalysisLogRepository
from leitordocs.infrastructure.supabase.companies import CompanyRepository
from leitordocs.infrastructure.supabase.credits import CreditsService, UserCredits
from leitordocs.main import create_app
from leitordocs.shared.context import UserContext


class FakeVisionClient:
    """Stands in for a provider client; records the prompts it receives."""

    def __init__(self, content: str = "DATA: 05-03\nVENDA: 123\nVALOR: 150.00", provider: str = "gemini"):
        self.provider = provider
        self.default_model = "fake-model"
        self.content = content
        self.calls: list[dict[str, Any]] = []

    def _response(self) -> AIResponse:
        return AIResponse(
            content=self.content,
            provider=self.provider,
            model=self.default_model,
            input_tokens=100,
            output_tokens=20,
            total_tokens=120,
            cost_cents=0.01,
            latency_ms=5.0,
        )

    async def analyze_image(self, image_data: bytes, mime_type: str, prompt: str, file_name: str = "") -> AIResponse:
        self.calls.append({"kind": "image", "mime_type": mime_type, "prompt": prompt})
        return self._response()

    async def analyze_pdf(self, pdf_data: bytes, prompt: str, file_name: str = "") -> AIResponse:
        self.calls.append({"kind": "pdf", "prompt": prompt})
        return self._response()

    async def close(self) -> None:
        pass


def make_credits(remaining: int = 10, limit: int = 2500) -> UserCredits:
    return UserCredits(
        credits_used=limit - remaining,
        credits_limit=limit,
        credits_remaining=remaining,
        month_year="2026-10",
    )


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        app_env="development",
        auth_provider="dev",
        supabase_url="https://test.supabase.co",
        supabase_anon_key="test-anon-key",
        supabase_service_role_key="test-service-key",
        supabase_jwt_secret="test-jwt-secret-at-least-32-chars-long",
        gemini_api_key="test-gemini-key",
    )


@pytest.fixture
def user_context() -> UserContext:
    return UserContext(user_id="user-1", user_role="user")


@pytest.fixture
def vision_client() -> FakeVisionClient:
    return FakeVisionClient()


@pytest.fixture
def mock_credits() -> MagicMock:
    """CreditsService with plenty of credits."""
    mock = MagicMock(spec=CreditsService)
    mock.get_user_credits = AsyncMock(return_value=make_credits())
    mock.debit_credit = AsyncMock()
    return mock


@pytest.fixture
def mock_logs() -> MagicMock:
    mock = MagicMock(spec=AnalysisLogRepository)
    mock.log_analysis = AsyncMock(return_value=None)
    mock.list_recent = AsyncMock(return_value=[])
    return mock


@pytest.fixture
def mock_companies() -> MagicMock:
    mock = MagicMock(spec=CompanyRepository)
    mock.get_prompt_config = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def mock_ai_factory(vision_client: FakeVisionClient) -> MagicMock:
    mock = MagicMock()
    mock.default_provider = "gemini"
    mock.get_service.return_value = vision_client
    mock.available_providers.return_value = ["gemini"]
    return mock


@pytest.fixture
def analysis_service(
    mock_credits: MagicMock,
    mock_logs: MagicMock,
    mock_companies: MagicMock,
    mock_ai_factory: MagicMock,
) -> DocumentAnalysisService:
    return DocumentAnalysisService(
        credits=mock_credits,
        logs=mock_logs,
        companies=mock_companies,
        ai_factory=mock_ai_factory,
        store=AnalysisStore(),
        default_company="enia-marcia-joias",
    )


@pytest.fixture
def app(analysis_service: DocumentAnalysisService) -> FastAPI:
    """Create test FastAPI application with the analysis service mocked."""
    limiter.enabled = False
    app = create_app()
    app.dependency_overrides[get_analysis_service] = lambda: analysis_service
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create sync test client."""
    return TestClient(app)


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Dev auth accepts any bearer token."""
    return {"Authorization": "Bearer test-token"}


@pytest.fixture
def csrf_headers(client: TestClient, auth_headers: dict[str, str]) -> dict[str, str]:
    """Fetch a CSRF token (sets the cookie on the client) and return request headers."""
    token = client.get("/api/csrf-token").json()["csrfToken"]
    return {**auth_headers, "x-csrf-token": token}
