"""Error Hierarchy — typed, categorized exceptions for all GameSync failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are surfaced to callers; provider errors never are
    - to_response() produces the REST envelope
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with GameSyncError base: FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - Provider errors (MetadataRateLimitError, MetadataApiError) are part of the
      hierarchy so the pipeline can route them, but they are swallowed there
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    AUTHENTICATION = "authentication"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    account_id: str | None = None
    job_id: str | None = None
    provider_id: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class GameSyncError(Exception):
    """Base exception for all GameSync errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "account_id": self.context.account_id,
                    "job_id": self.context.job_id,
                    "provider_id": self.context.provider_id,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class InputValidationError(GameSyncError):
    """User-facing input failed validation (missing name, bad interval)."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class ResourceNotFoundError(GameSyncError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type


class AccessDeniedError(GameSyncError):
    """Caller does not own the requested account."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Access denied", "ACCESS_DENIED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 403,
        )


class DeviceTokenInvalidError(GameSyncError):
    """Push agent presented a missing, unknown or revoked device token."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Invalid or revoked device token", "DEVICE_TOKEN_INVALID",
            ErrorCategory.AUTHENTICATION, ErrorSeverity.WARNING, context, 401,
        )


class PushImportRejectedError(GameSyncError):
    """Push payload rejected before any game was processed."""
    def __init__(
        self, message: str, details: list[dict] | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "PUSH_IMPORT_REJECTED", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.details = details or []

    def to_response(self) -> dict:
        response = super().to_response()
        response["error"]["details"] = self.details
        return response


class PlayerProfileValidationError(GameSyncError):
    """Player-count profile violates a title invariant. Caught by the clamp ladder."""
    def __init__(self, violations: list[str], context: ErrorContext | None = None):
        super().__init__(
            f"Invalid player profile: {'; '.join(violations)}",
            "PLAYER_PROFILE_INVALID", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )
        self.violations = violations


class InvalidJobTransitionError(GameSyncError):
    """SyncJob moved along an edge the state machine does not allow."""
    def __init__(self, current: str, target: str, context: ErrorContext | None = None):
        super().__init__(
            f"Sync job cannot move from {current} to {target}",
            "INVALID_JOB_TRANSITION", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )
        self.current = current
        self.target = target


class EnrichmentQueueFullError(GameSyncError):
    """Background enrichment queue has no free slot."""
    def __init__(self, capacity: int, context: ErrorContext | None = None):
        super().__init__(
            f"Enrichment queue is full ({capacity} pending)",
            "ENRICHMENT_QUEUE_FULL", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 503,
        )


# ─── Connector / Provider Errors ────────────────────────────────

class ConnectorError(GameSyncError):
    """Game-source connector failed (auth, network, upstream)."""
    def __init__(
        self, message: str, error_code: str, provider: str,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.provider_id = provider
        super().__init__(
            message, error_code, ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, ctx, 502,
        )
        self.provider = provider


class MetadataRateLimitError(GameSyncError):
    """Metadata provider signalled a rate limit."""
    def __init__(
        self, provider_id: str, status_code: int = 429,
        retry_after_ms: int | None = None, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.provider_id = provider_id
        ctx.retry_after_ms = retry_after_ms
        super().__init__(
            f"Rate limit exceeded for {provider_id} ({status_code})",
            "METADATA_RATE_LIMITED", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.WARNING, ctx, 503,
        )
        self.provider_id = provider_id
        self.status_code = status_code
        self.retry_after_ms = retry_after_ms


class MetadataApiError(GameSyncError):
    """Metadata provider request failed for a reason other than rate limiting."""
    def __init__(
        self, provider_id: str, message: str, status_code: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.provider_id = provider_id
        super().__init__(
            f"{provider_id} API error: {message}",
            "METADATA_API_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.WARNING, ctx, 502,
        )
        self.provider_id = provider_id
        self.status_code = status_code


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(GameSyncError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
