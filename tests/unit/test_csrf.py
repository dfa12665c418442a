"""Unit tests for the double-submit cookie CSRF guard."""

import json
from unittest.mock import MagicMock, patch

import pytest
from starlette.requests import Request
from starlette.responses import Response

from leitordocs.api.middleware.csrf import (
    CSRF_MESSAGES,
    CsrfCode,
    check_tokens,
    csrf_error_response,
    generate_token,
    issue_token,
    tokens_match,
    validate,
)
from leitordocs.config import Settings


def _request(method: str = "POST", cookie: str | None = None, header: str | None = None) -> Request:
    headers = []
    if cookie is not None:
        headers.append((b"cookie", f"csrf_token={cookie}".encode()))
    if header is not None:
        headers.append((b"x-csrf-token", header.encode()))
    return Request({"type": "http", "method": method, "path": "/api/analyze", "headers": headers})


class TestTokenGeneration:
    """Test token generation."""

    def test_token_is_64_hex_chars(self):
        token = generate_token()

        assert len(token) == 64
        int(token, 16)

    def test_tokens_are_unique(self):
        assert generate_token() != generate_token()


class TestCheckTokens:
    """Test the validation predicate."""

    @pytest.mark.parametrize("method", ["GET", "HEAD", "OPTIONS", "get"])
    def test_safe_methods_always_pass(self, method):
        assert check_tokens(method, None, None).passed

    def test_matching_tokens_pass(self):
        assert check_tokens("POST", "abc123", "abc123").passed

    def test_different_tokens_invalid(self):
        assert check_tokens("POST", "abc123", "abc124").code == CsrfCode.INVALID

    def test_different_lengths_invalid(self):
        assert check_tokens("POST", "abc123", "abc1234").code == CsrfCode.INVALID

    @pytest.mark.parametrize(
        "cookie,header",
        [(None, "abc123"), ("abc123", None), (None, None), ("", "abc123")],
    )
    def test_missing_token(self, cookie, header):
        assert check_tokens("POST", cookie, header).code == CsrfCode.MISSING

    def test_compare_failure_reports_error(self):
        with patch(
            "leitordocs.api.middleware.csrf.hmac.compare_digest",
            side_effect=TypeError("boom"),
        ):
            check = check_tokens("DELETE", "abc123", "abc123")

        assert check.code == CsrfCode.ERROR

    def test_unencodable_token_reports_error(self):
        # Lone surrogates cannot be encoded as UTF-8
        assert check_tokens("POST", "abc\udc80", "abc123").code == CsrfCode.ERROR

    def test_tokens_match_is_byte_exact(self):
        assert tokens_match("ção", "ção")
        assert not tokens_match("ção", "cao")


class TestValidateRequest:
    """Test validation of whole requests."""

    def test_reads_cookie_and_header(self, test_settings: Settings):
        request = _request(cookie="tok", header="tok")

        assert validate(request, test_settings).passed

    def test_missing_header(self, test_settings: Settings):
        request = _request(cookie="tok")

        assert validate(request, test_settings).code == CsrfCode.MISSING

    def test_get_without_tokens(self, test_settings: Settings):
        assert validate(_request("GET"), test_settings).passed


class TestIssueToken:
    """Test token issuance."""

    def test_new_token_sets_cookie(self, test_settings: Settings):
        request = _request("GET")
        response = Response()

        token = issue_token(request, response, test_settings)

        cookie = response.headers["set-cookie"]
        assert f"csrf_token={token}" in cookie
        assert "samesite=strict" in cookie.lower()
        assert "max-age=3600" in cookie.lower()
        assert "httponly" not in cookie.lower()
        assert "secure" not in cookie.lower()
        assert request.state.csrf_token == token

    def test_existing_cookie_is_reused(self, test_settings: Settings):
        request = _request("GET", cookie="existing-token")
        response = Response()

        token = issue_token(request, response, test_settings)

        assert token == "existing-token"
        assert "set-cookie" not in response.headers

    def test_cookie_is_secure_in_production(self):
        settings = MagicMock(
            csrf_cookie_name="csrf_token",
            csrf_token_ttl_seconds=3600,
            is_production=True,
        )
        response = Response()

        issue_token(_request("GET"), response, settings)

        assert "secure" in response.headers["set-cookie"].lower()


class TestErrorResponse:
    """Test the 403 body."""

    @pytest.mark.parametrize("code", list(CsrfCode))
    def test_body_shape(self, code):
        response = csrf_error_response(code)

        assert response.status_code == 403
        assert json.loads(response.body) == {
            "success": False,
            "error": CSRF_MESSAGES[code],
            "code": code.value,
        }

    def test_messages(self):
        assert CSRF_MESSAGES[CsrfCode.MISSING] == "Token CSRF ausente"
        assert CSRF_MESSAGES[CsrfCode.INVALID] == "Token CSRF inválido"
        assert CSRF_MESSAGES[CsrfCode.ERROR] == "Erro na validação CSRF"
