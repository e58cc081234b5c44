from typing import Any


class AppError(Exception):
    """Base application error for the weather gateway."""


class ParameterMissingError(AppError):
    """Raised when a required request parameter is absent or blank."""


class ProviderError(AppError):
    """Base error for upstream provider failures."""


class UpstreamTimeoutError(ProviderError):
    """Raised when an upstream provider does not answer within its deadline."""


class UpstreamHTTPError(ProviderError):
    """Raised when an upstream provider answers with a non-success HTTP status."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpstreamMalformedError(ProviderError):
    """Raised when a provider payload is not JSON, misses required fields or carries an error status."""


class ProviderUnavailableError(ProviderError):
    """Raised when a provider cannot be reached at all (DNS, connection refused, TLS...)."""


class ResourceExhaustedError(AppError):
    """Raised when every stage of a provider chain failed."""

    def __init__(self, capability: str, outcomes: list[Any]) -> None:
        failures = ", ".join(
            f"{outcome.stage}={outcome.failure.value}" for outcome in outcomes if outcome.failure is not None
        )
        super().__init__(f"All providers failed for {capability}: {failures or 'no stages configured'}")
        self.capability = capability
        self.outcomes = outcomes
