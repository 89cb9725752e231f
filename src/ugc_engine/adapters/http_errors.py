"""Map httpx failures onto the provider error taxonomy."""

import httpx

from ugc_engine.errors import ErrorKind, ProviderError


def classify_http_error(
    error_cls: type[ProviderError],
    provider: str,
    exc: httpx.HTTPError,
) -> ProviderError:
    """Translate an httpx exception into a typed provider error.

    429 is rate limited (honouring Retry-After), 5xx and transport errors
    are transient, timeouts are TIMEOUT, other 4xx are malformed input.
    """
    if isinstance(exc, httpx.TimeoutException):
        return error_cls(provider, f"Request timed out: {exc}", ErrorKind.TIMEOUT)

    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        message = f"{response.status_code} - {response.text[:500]}"
        if response.status_code == 429:
            retry_after = _parse_retry_after(response.headers.get("retry-after"))
            return error_cls(provider, message, ErrorKind.RATE_LIMITED, retry_after=retry_after)
        if response.status_code >= 500:
            return error_cls(provider, message, ErrorKind.TRANSIENT)
        return error_cls(provider, message, ErrorKind.MALFORMED_INPUT)

    return error_cls(provider, str(exc) or exc.__class__.__name__, ErrorKind.TRANSIENT)


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None
