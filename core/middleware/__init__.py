"""
Core middleware package.

This package provides the HTTP-layer components:
- Error handling with sensitive data sanitization
- Structured logging with PII masking
- Capability checks mapping portal roles to recruitment permissions
"""

from core.middleware.error_handling import (
    ErrorHandlingMiddleware,
    setup_error_handlers,
    sanitize_error_message,
)

from core.middleware.logging import (
    StructuredLoggingMiddleware,
    setup_logging,
)

from core.middleware.authorization import (
    CallerContext,
    Permission,
    StaffRole,
    check_permission,
    require_permission,
    resolve_caller,
)

__all__ = [
    # Error handling
    "ErrorHandlingMiddleware",
    "setup_error_handlers",
    "sanitize_error_message",
    # Logging
    "StructuredLoggingMiddleware",
    "setup_logging",
    # Authorization
    "CallerContext",
    "Permission",
    "StaffRole",
    "check_permission",
    "require_permission",
    "resolve_caller",
]
