"""
Custom error classes for the POLOAR planning dashboard.
Structured error handling with error codes across all modules.

Hierarchy:
    DashboardError
    ├── APIError
    │   ├── PipedriveError
    │   ├── APITimeoutError
    │   ├── APIRateLimitError
    │   └── APIAuthError
    ├── DataError
    │   ├── ConfigError
    │   ├── SchemaValidationError
    │   └── DataFetchError
    └── PlanningError
        └── MissingDealsError
"""


class DashboardError(Exception):
    """Base exception for all dashboard errors."""

    def __init__(self, message: str, code: str = "UNKNOWN", details: dict = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(f"[{code}] {message}")


# --- API Errors ---

class APIError(DashboardError):
    """Base class for external API errors."""

    def __init__(self, message: str, code: str = "API_ERROR",
                 status_code: int = None, url: str = None, **kwargs):
        self.status_code = status_code
        self.url = url
        details = {"status_code": status_code, "url": url, **kwargs}
        super().__init__(message, code=code, details=details)


class PipedriveError(APIError):
    """Pipedrive answered with an error or an unsuccessful payload."""

    def __init__(self, message: str = "Falha ao verificar negócios no Pipedrive",
                 status_code: int = None):
        super().__init__(
            message, code="PIPEDRIVE_ERROR", status_code=status_code,
            url="pipedrive/api/v2/deals",
        )


class APITimeoutError(APIError):
    """Request timed out."""

    def __init__(self, url: str, timeout: int):
        super().__init__(
            f"Request timed out after {timeout}s: {url}",
            code="API_TIMEOUT", url=url, timeout=timeout,
        )


class APIRateLimitError(APIError):
    """Rate limit exceeded."""

    def __init__(self, url: str, retry_after: int = None):
        msg = f"Rate limit exceeded: {url}"
        if retry_after:
            msg += f" (retry after {retry_after}s)"
        super().__init__(
            msg, code="API_RATE_LIMIT", status_code=429,
            url=url, retry_after=retry_after,
        )


class APIAuthError(APIError):
    """Authentication or authorization failure."""

    def __init__(self, url: str, status_code: int = 401):
        super().__init__(
            f"Authentication failed: {url}",
            code="API_AUTH_FAILED", url=url, status_code=status_code,
        )


# --- Data Errors ---

class DataError(DashboardError):
    """Base class for data processing errors."""
    pass


class ConfigError(DataError):
    """Missing or invalid configuration."""

    def __init__(self, message: str, setting: str = None):
        super().__init__(
            message, code="CONFIG_ERROR", details={"setting": setting},
        )


class SchemaValidationError(DataError):
    """Input doesn't match the expected shape."""

    def __init__(self, message: str, field: str = None):
        super().__init__(
            message, code="SCHEMA_INVALID", details={"field": field},
        )


class DataFetchError(DataError):
    """Failed to read from or write to storage."""

    def __init__(self, message: str, source: str = None):
        super().__init__(
            message, code="DATA_FETCH_FAILED", details={"source": source},
        )


# --- Planning Errors ---

class PlanningError(DashboardError):
    """Planning submission or import error."""
    pass


class MissingDealsError(PlanningError):
    """Some deal IDs don't exist in Pipedrive."""

    def __init__(self, missing_ids: list):
        self.missing_ids = list(missing_ids)
        joined = ", ".join(str(i) for i in self.missing_ids)
        super().__init__(
            f"Os seguintes IDs não foram encontrados: {joined}",
            code="MISSING_DEALS", details={"missing_ids": self.missing_ids},
        )
