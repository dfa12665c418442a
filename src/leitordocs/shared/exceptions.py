"""Custom exception hierarchy for Leitor de Docs."""

from typing import Any


class LeitorDocsError(Exception):
    """Base exception for all Leitor de Docs errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


# ----- Authentication Errors -----


class AuthenticationError(LeitorDocsError):
    """Authentication failed."""

    pass


class TokenExpiredError(AuthenticationError):
    """JWT token has expired."""

    pass


class TokenInvalidError(AuthenticationError):
    """JWT token is invalid."""

    pass


class UnauthorizedError(LeitorDocsError):
    """User is not authorized to perform this action."""

    pass


class CompanyAccessDeniedError(UnauthorizedError):
    """User may not analyze documents for this company."""

    def __init__(self, company: str) -> None:
        super().__init__(
            message=f"Acesso negado para a empresa: {company}",
            details={"company": company},
        )


# ----- Validation Errors -----


class ValidationError(LeitorDocsError):
    """Input validation failed."""

    pass


class FileTooLargeError(ValidationError):
    """Uploaded file exceeds size limit."""

    def __init__(self, max_size_mb: int) -> None:
        super().__init__(
            message=f"Arquivo muito grande. Tamanho máximo: {max_size_mb} MB",
            details={"max_size_mb": max_size_mb},
        )


class UnsupportedFileTypeError(ValidationError):
    """File type is not supported."""

    def __init__(self, file_type: str, supported: list[str]) -> None:
        super().__init__(
            message=f"Tipo de arquivo '{file_type}' não suportado",
            details={"file_type": file_type, "supported_types": supported},
        )


# ----- External Service Errors -----


class ExternalServiceError(LeitorDocsError):
    """Error from an external service."""

    pass


class AIServiceError(ExternalServiceError):
    """Error from an AI vision provider."""

    pass


class AIRateLimitError(AIServiceError):
    """AI service rate limit exceeded."""

    pass


class SupabaseError(ExternalServiceError):
    """Error talking to Supabase (PostgREST/RPC)."""

    pass


# ----- Credits Errors -----


class CreditsUnavailableError(ExternalServiceError):
    """Credits could not be verified; requests are blocked, never waved through."""

    def __init__(self, message: str = "Sistema de créditos temporariamente indisponível") -> None:
        super().__init__(message=message)


class InsufficientCreditsError(LeitorDocsError):
    """User has no credits left for this month."""

    def __init__(self, credits_remaining: int, credits_limit: int | None = None) -> None:
        super().__init__(
            message="Créditos insuficientes",
            details={
                "credits_remaining": credits_remaining,
                "credits_limit": credits_limit,
            },
        )


class CreditDebitError(LeitorDocsError):
    """Analysis succeeded but the credit could not be debited."""

    def __init__(self) -> None:
        super().__init__(message="Erro ao processar créditos. Análise não pode ser concluída.")
