"""Application error taxonomy.

Every failure that crosses a module boundary is one of these types. The
Stage Driver relies on `ProviderError.is_transient` to decide between
retrying and failing an item; the API layer relies on `code` and
`to_dict()` to render the response envelope.
"""

from enum import StrEnum
from typing import Any


class ErrorKind(StrEnum):
    """Closed set of provider failure kinds."""

    GENERATION_FAILED = "generation_failed"
    MALFORMED_INPUT = "malformed_input"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    CONTENT_POLICY = "content_policy"
    TRANSIENT = "transient"


TRANSIENT_KINDS = frozenset({ErrorKind.RATE_LIMITED, ErrorKind.TIMEOUT, ErrorKind.TRANSIENT})


class AppError(Exception):
    """Base class for all application errors."""

    code = "AppError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


class NotFoundError(AppError):
    """A brief, batch or item does not exist."""

    code = "NotFound"

    def __init__(self, resource: str, resource_id: Any) -> None:
        super().__init__(f"{resource} not found: {resource_id}")
        self.resource = resource
        self.resource_id = str(resource_id)

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "resource": self.resource, "id": self.resource_id}


class ValidationError(AppError):
    """Bad input shape, out-of-range count or a failed precondition."""

    code = "ValidationError"

    def __init__(self, message: str, fields: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.fields = fields or {}

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "fields": self.fields}


class ProviderError(AppError):
    """A provider call failed.

    Args:
        provider: Name of the provider implementation that failed
        message: Provider-supplied or adapter-supplied message
        kind: Failure classification used for retry decisions
        retry_after: Seconds the provider asked us to wait (rate limits)
        billable_units: Units the provider charged despite failing, if any
    """

    code = "ProviderError"

    def __init__(
        self,
        provider: str,
        message: str,
        kind: ErrorKind = ErrorKind.GENERATION_FAILED,
        retry_after: float | None = None,
        billable_units: float | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.kind = ErrorKind(kind)
        self.retry_after = retry_after
        self.billable_units = billable_units
        if self.kind == ErrorKind.RATE_LIMITED:
            self.code = "RateLimited"

    @property
    def is_transient(self) -> bool:
        return self.kind in TRANSIENT_KINDS

    def __str__(self) -> str:
        return f"[{self.provider}:{self.kind}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        data = {**super().to_dict(), "provider": self.provider, "kind": str(self.kind)}
        if self.retry_after is not None:
            data["retry_after"] = self.retry_after
        return data


class ScriptError(ProviderError):
    """Script generation failed."""


class AvatarError(ProviderError):
    """Avatar clip generation failed."""


class CompositionError(ProviderError):
    """Composing the final video failed."""

    code = "CompositionError"


class BRollError(ProviderError):
    """Fetching supporting clips failed."""


class UploadError(AppError):
    """The storage collaborator rejected an upload. Never retried here."""

    code = "UploadError"

    def __init__(self, message: str, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "key": self.key}


class RetryExhaustedError(AppError):
    """A transient failure persisted through the whole retry budget."""

    code = "RetryExhausted"

    def __init__(self, last_error: Exception, attempts: int) -> None:
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")
        self.last_error = last_error
        self.attempts = attempts

    def to_dict(self) -> dict[str, Any]:
        data = {**super().to_dict(), "attempts": self.attempts}
        if isinstance(self.last_error, AppError):
            data["cause"] = self.last_error.to_dict()
        return data
