"""Error taxonomy for processing cycles.

Every fatal outcome of a cycle is a ``ProcessingError`` carrying a short ``kind`` tag
and a message that can be shown to the user as-is. ``Cancelled`` sits
outside that hierarchy: a superseded or user-cancelled cycle is not a failure.
"""

from __future__ import annotations


class ProcessingError(Exception):
    kind = "error"
    default_message = "Processing failed. Please try again."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class ConfigError(ProcessingError):
    kind = "config"
    default_message = "API key not configured. Add your API key in settings."


class InputError(ProcessingError):
    kind = "input"
    default_message = "No readable screenshots to process."


class ParseError(ProcessingError):
    kind = "parse"
    default_message = (
        "Failed to parse problem information. Please try again or use clearer screenshots."
    )


class RemoteAPIError(ProcessingError):
    kind = "remote"
    default_message = "Failed to process with the model API. Please try again."

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimited(RemoteAPIError):
    kind = "rate_limited"
    default_message = "API rate limit exceeded. Please wait and try again."


class BadRequest(RemoteAPIError):
    kind = "bad_request"
    default_message = "Invalid request to the model API. Please check your screenshots."


class Forbidden(RemoteAPIError):
    kind = "forbidden"
    default_message = "Invalid API key or insufficient permissions."


class RemoteTimeout(ProcessingError):
    kind = "timeout"
    default_message = "The model API did not respond in time. Please try again."


class TransientNetworkError(ProcessingError):
    kind = "network"
    default_message = "Network error while contacting the model API. Please try again."


class ResponseEmpty(ProcessingError):
    kind = "empty"
    default_message = "The model returned an empty response."


class BlockedResponse(ResponseEmpty):
    kind = "blocked"
    default_message = "The response was blocked by the provider's content policy."


class TruncatedResponse(ResponseEmpty):
    kind = "truncated"
    default_message = "The response was cut off by the output token limit."


def error_for_status(status_code: int, detail: str = "") -> RemoteAPIError:
    """Classify a non-2xx HTTP status from a model provider."""
    if status_code == 429:
        cls: type[RemoteAPIError] = RateLimited
    elif status_code == 400:
        cls = BadRequest
    elif status_code in (401, 403):
        cls = Forbidden
    else:
        cls = RemoteAPIError
    message = cls.default_message
    if cls is RemoteAPIError:
        message = f"Model API returned HTTP {status_code}."
        if detail:
            message += f" {detail[:200]}"
    return cls(message, status_code=status_code)


class Cancelled(Exception):
    """Raised by a cycle that was cancelled or superseded by a newer one."""

    def __init__(self, message: str = "Processing was canceled by the user.") -> None:
        super().__init__(message)
