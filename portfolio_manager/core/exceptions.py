"""Application error types, translated to HTTP responses in ``main.py``."""


class PortfolioManagerError(Exception):
    """Base class for errors raised by the portfolio manager."""

    error_code = "PORTFOLIO_MANAGER_ERROR"


class ValidationError(PortfolioManagerError, ValueError):
    """Input that violates an entity invariant."""

    error_code = "VALIDATION_ERROR"


class ResourceNotFoundError(PortfolioManagerError, LookupError):
    error_code = "RESOURCE_NOT_FOUND"

    def __init__(self, resource: str, field: str, value: str):
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} not found with {field}: {value}")


class DuplicateResourceError(PortfolioManagerError):
    error_code = "DUPLICATE_RESOURCE"

    def __init__(self, resource: str, field: str, value: str):
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} already exists with {field}: {value}")


class QuoteProviderError(PortfolioManagerError):
    """The external quote provider failed after retries."""

    error_code = "QUOTE_PROVIDER_ERROR"


class ConcurrentUpdateError(PortfolioManagerError):
    """A conditional write lost to a concurrent change; the caller may retry."""

    error_code = "CONCURRENT_UPDATE"

    def __init__(self, resource: str, value: str):
        self.resource = resource
        self.value = value
        super().__init__(f"{resource} {value} was changed concurrently, retry the request")
