"""
eBook Generator Custom Exceptions
"""

from dataclasses import dataclass
from typing import List, Optional


class EbookGeneratorError(Exception):
    """Base exception for the eBook generator"""
    pass


class CredentialMissingError(EbookGeneratorError):
    """No API credential configured for a provider"""
    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"[{provider}] API key not configured")


class ProviderTimeoutError(EbookGeneratorError):
    """Provider call exceeded its deadline"""
    def __init__(self, provider: str, operation: str, timeout: float):
        self.provider = provider
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"[{provider}] {operation} timed out after {timeout:g}s")


class ProviderError(EbookGeneratorError):
    """Backend returned a non-success response"""
    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        self.provider = provider
        self.status_code = status_code
        self.detail = message
        prefix = f"[{provider}] HTTP {status_code}: " if status_code else f"[{provider}] "
        super().__init__(prefix + message)


class MalformedResponseError(EbookGeneratorError):
    """Structured output could not be parsed"""
    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"[{provider}] malformed response: {message}")


class EmptyResponseError(EbookGeneratorError):
    """Backend returned no content"""
    def __init__(self, provider: str, what: str = "content"):
        self.provider = provider
        super().__init__(f"[{provider}] empty {what} returned")


@dataclass
class ProviderFailure:
    """One failed attempt inside a fallback chain"""
    provider: str
    message: str

    def to_dict(self) -> dict:
        return {"provider": self.provider, "message": self.message}


class AllProvidersFailedError(EbookGeneratorError):
    """Every provider in the fallback chain failed"""
    def __init__(self, operation: str, failures: List[ProviderFailure]):
        self.operation = operation
        self.failures = list(failures)
        if self.failures:
            reasons = "; ".join(f"{f.provider}: {f.message}" for f in self.failures)
        else:
            reasons = "no configured providers"
        super().__init__(f"All providers failed for {operation} ({reasons})")


class ConversionError(EbookGeneratorError):
    """Book data could not be converted to an export format"""
    pass


class InvalidStateError(EbookGeneratorError):
    """Operation not allowed in the run's current state"""
    pass


class PersistenceWarning(EbookGeneratorError):
    """Best-effort persistence failed. Logged, never raised."""
    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Persistence '{operation}' failed: {cause}")
