"""
Service Contracts and Errors

Common base for the engine's services and the error hierarchy shared by
providers, the orchestrator and the API layer.

Providers raise ExternalAPIError subclasses internally; strategies turn
them into "no answer". Only ValidationError and NotFound are meant to
reach API callers.
"""

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class BaseService(ABC, Generic[InputT, OutputT]):
    """
    A service takes one typed request and returns one typed result.

    execute() is the request entry point; health_check() reports whether
    the service can currently answer.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Name used in logs and error messages."""
        pass

    @abstractmethod
    async def execute(self, input_data: InputT) -> OutputT:
        """
        Handle one request.

        Raises:
            ValidationError: input cannot be resolved
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass


class ServiceError(Exception):
    """Raised by a named service; str() is prefixed with that name."""

    def __init__(self, service_name: str, message: str, details: Optional[dict] = None):
        self.service_name = service_name
        self.message = message
        self.details = details or {}
        super().__init__(f"[{service_name}] {message}")


class ValidationError(ServiceError):
    """Input validation error."""
    pass


class ExternalAPIError(ServiceError):
    """External API call failed."""
    pass


class UpstreamUnavailable(ExternalAPIError):
    """Timeout, connection failure, non-2xx status (429 included)."""
    pass


class UpstreamMalformed(ExternalAPIError):
    """Successful response with missing, empty or non-numeric fields."""
    pass


class NotFound(ServiceError):
    """No eligible provider could resolve the request."""
    pass


class ConversionDegraded(ServiceError):
    """Exchange-rate chain exhausted; the static fallback rate applies."""
    pass


class UnsupportedCurrencyPair(ValidationError):
    """Only USD <-> BRL conversions are supported."""
    pass
