"""Security configuration constants for the quality gate API.

This module centralizes:
- Keys that are redacted from structured logs
- Which error-response fields each environment may expose
"""

# Keys redacted from structured log payloads. Matching is substring-based and
# case-insensitive, so "x-api-key" and "gemini_api_key" are both covered.
SENSITIVE_KEYS: set[str] = {
    # Provider credentials
    "api_key",
    "secret",
    "token",
    "password",
    "authorization",
    "bearer",
    "cookie",
    "session_id",
    # Uploaded reference images are large and may contain personal data
    "image_base64",
    "image_data",
    # Personal data a seller may paste into shop context
    "email",
    "phone",
    "address",
}

# Production-only error response fields
PRODUCTION_ERROR_FIELDS: set[str] = {
    "correlation_id",
    "type",
}

# Development adds diagnostics on top of the production fields
DEVELOPMENT_ERROR_FIELDS: set[str] = PRODUCTION_ERROR_FIELDS | {
    "details",
    "traceback",
    "exception_type",
    "validation_errors",
}


def get_allowed_error_fields(environment: str) -> set[str]:
    """Get allowed error response fields based on environment.

    Args:
        environment: The application environment (production, development, etc.)

    Returns:
        Set of allowed field names for error responses
    """
    if environment == "production":
        return PRODUCTION_ERROR_FIELDS.copy()
    return DEVELOPMENT_ERROR_FIELDS.copy()


def is_sensitive_key(key: str) -> bool:
    """Return True if `key` names a value that must be redacted from logs."""
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in SENSITIVE_KEYS)
