"""
Scheduling error taxonomy plus error aggregation for de-duplicated logging.
"""
import hashlib
import time
from collections import defaultdict
from enum import Enum
from typing import Any, Dict, Optional

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


class SchedulingError(Exception):
    """Base class for every failure the scheduling core reports to a caller."""

    code = "INTERNAL_ERROR"
    status = 500
    default_detail = "Internal Server Error."

    def __init__(self, detail: Optional[str] = None, **context: Any):
        self.detail = detail or self.default_detail
        self.context = context
        super().__init__(self.detail)


class MissingFields(SchedulingError):
    code = "MISSING_FIELDS"
    status = 400
    default_detail = "There are fields that are missing."

    def __init__(self, fields: Optional[list[str]] = None, detail: Optional[str] = None):
        self.fields = fields or []
        if detail is None and self.fields:
            detail = f"Missing fields: {', '.join(self.fields)}"
        super().__init__(detail, fields=self.fields)


class InvalidParameter(SchedulingError):
    code = "INVALID_PARAMETER"
    status = 400
    default_detail = "Invalid parameter."


class NotFound(SchedulingError):
    code = "NOT_FOUND"
    status = 404
    default_detail = "Not Found."


class QuotaExceeded(SchedulingError):
    status = 403
    BUSINESS = "business"
    MONTHLY = "monthly"

    def __init__(self, scope: str = BUSINESS, detail: Optional[str] = None):
        self.scope = scope
        if scope == self.MONTHLY:
            self.code = "EXCEED_CONSULTATIONS"
            detail = detail or "You have exceeded the number of consultations allowed per month"
        else:
            self.code = "EXCEED_BUSINESS_CONSULTATIONS"
            detail = detail or "The number of consultations contracted by your entity have been exceeded"
        super().__init__(detail, scope=scope)


class NoCapacity(SchedulingError):
    code = "NO_CAPACITY"
    status = 409
    default_detail = "No psychologist is available for the requested time."


class SlotConflict(SchedulingError):
    code = "DUPLICATE_ENTRY"
    status = 409
    default_detail = "The psychologist is not available for the requested time."


class PermissionDenied(SchedulingError):
    code = "NO_PERMISSION"
    status = 403
    default_detail = "No Permission."


class InternalError(SchedulingError):
    pass


class ErrorSeverity(Enum):
    """Error severity levels for alerting."""
    LOW = "low"           # validation errors, expected failures
    MEDIUM = "medium"     # conflicts, recoverable errors
    HIGH = "high"         # permission failures, internal errors
    CRITICAL = "critical"


class ErrorPattern:
    """Track error patterns to reduce duplicate logging."""

    def __init__(self, error_type: str, message: str, context: Dict[str, Any]):
        self.error_type = error_type
        self.message = message[:100]
        self.context = {k: v for k, v in context.items() if k in ['endpoint', 'actor_id', 'method']}
        self.fingerprint = self._generate_fingerprint()
        self.first_seen = time.time()
        self.last_seen = time.time()
        self.count = 1

    def _generate_fingerprint(self) -> str:
        content = f"{self.error_type}:{self.message}:{self.context.get('endpoint', '')}"
        return hashlib.md5(content.encode(), usedforsecurity=False).hexdigest()[:8]

    def update(self):
        self.last_seen = time.time()
        self.count += 1


class ErrorAggregator:
    """Aggregate and deduplicate errors."""

    def __init__(self, log_threshold: int = 10, time_window: int = 300):
        self.log_threshold = log_threshold
        self.time_window = time_window
        self.patterns: Dict[str, ErrorPattern] = {}

    def _determine_severity(self, error: Exception) -> ErrorSeverity:
        if isinstance(error, (PermissionDenied, InternalError)) or not isinstance(error, SchedulingError):
            return ErrorSeverity.HIGH
        if isinstance(error, (NoCapacity, SlotConflict, QuotaExceeded)):
            return ErrorSeverity.MEDIUM
        return ErrorSeverity.LOW

    def should_log(self, pattern: ErrorPattern, severity: ErrorSeverity) -> bool:
        if severity in [ErrorSeverity.HIGH, ErrorSeverity.CRITICAL]:
            return True

        if pattern.count == 1:
            return True

        if severity == ErrorSeverity.MEDIUM and pattern.count % self.log_threshold == 0:
            return True

        if severity == ErrorSeverity.LOW and pattern.count % (self.log_threshold * 5) == 0:
            return True

        return False

    def log_error(self, error: Exception, context: Optional[Dict[str, Any]] = None,
                  severity: Optional[ErrorSeverity] = None) -> str:
        """Log error with deduplication and frequency control."""
        context = context or {}

        if severity is None:
            severity = self._determine_severity(error)

        error_type = type(error).__name__
        message = str(error)

        pattern = ErrorPattern(error_type, message, context)
        fingerprint = pattern.fingerprint

        if fingerprint in self.patterns:
            self.patterns[fingerprint].update()
            pattern = self.patterns[fingerprint]
        else:
            self.patterns[fingerprint] = pattern

        if self.should_log(pattern, severity):
            logger.error(
                "aggregated_error",
                error_hash=fingerprint,
                error_type=error_type,
                message=message[:200],
                count=pattern.count,
                severity=severity.value,
                **context
            )

        return fingerprint

    def get_error_summary(self) -> Dict[str, Any]:
        """Get summary of recent errors for monitoring."""
        now = time.time()
        recent = [p for p in self.patterns.values() if now - p.last_seen < self.time_window]

        by_type: Dict[str, int] = defaultdict(int)
        for pattern in recent:
            by_type[pattern.error_type] += pattern.count

        top_errors = sorted(recent, key=lambda p: p.count, reverse=True)[:5]
        return {
            "total_unique_errors": len(recent),
            "total_error_count": sum(p.count for p in recent),
            "by_type": dict(by_type),
            "top_errors": [
                {"fingerprint": p.fingerprint, "type": p.error_type, "message": p.message, "count": p.count}
                for p in top_errors
            ],
        }


# Global error aggregator instance
error_aggregator = ErrorAggregator()


def log_error(error: Exception, context: Optional[Dict[str, Any]] = None,
              severity: Optional[ErrorSeverity] = None) -> str:
    """Convenience function to log errors through the global aggregator."""
    return error_aggregator.log_error(error, context, severity)


async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    """Render a SchedulingError as `{"code", "detail"}` with its HTTP status."""
    log_error(exc, {"endpoint": request.url.path, "method": request.method})
    content: Dict[str, Any] = {"code": exc.code, "detail": exc.detail}
    fields = getattr(exc, "fields", None)
    if fields:
        content["fields"] = fields
    return JSONResponse(status_code=exc.status, content=content)
