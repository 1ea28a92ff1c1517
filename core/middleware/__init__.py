"""
Core middleware package.

- Error handling with sensitive data sanitization
- Structured logging with credential masking
- Redis-based rate limiting on the credential endpoints
- Identity resolution from bearer tokens
- Role gates and ownership checks
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

from core.middleware.rate_limiting import (
    RateLimitMiddleware,
    SlidingWindowRateLimiter,
    create_rate_limiter,
)

from core.middleware.authentication import (
    Principal,
    get_current_principal,
    get_optional_principal,
    resolve_principal,
)

from core.middleware.authorization import (
    InsufficientPermissions,
    NotResourceOwner,
    authorize_ownership,
    authorize_role,
    require_admin,
    require_employer,
    require_jobseeker,
    require_role,
)

__all__ = [
    # Error handling
    "ErrorHandlingMiddleware",
    "setup_error_handlers",
    "sanitize_error_message",
    # Logging
    "StructuredLoggingMiddleware",
    "setup_logging",
    # Rate limiting
    "RateLimitMiddleware",
    "SlidingWindowRateLimiter",
    "create_rate_limiter",
    # Authentication
    "Principal",
    "get_current_principal",
    "get_optional_principal",
    "resolve_principal",
    # Authorization
    "InsufficientPermissions",
    "NotResourceOwner",
    "authorize_ownership",
    "authorize_role",
    "require_admin",
    "require_employer",
    "require_jobseeker",
    "require_role",
]
