"""Exception types and error-message extraction for the admin grid."""

from dataclasses import dataclass
from typing import Any

_FALLBACK_TITLE: str = "An unexpected error occurred"


class AdminGridError(Exception):
    """Base class for every error raised by ``reflex_admin_grid``."""


class FieldConfigError(AdminGridError, ValueError):
    """A field descriptor list is malformed (raised by ``build()``)."""


class ResourceError(AdminGridError):
    """A resource-service call failed.

    Args:
        message: Human-readable message.  May use the ``"title: detail"``
            convention understood by :func:`extract_error_message`.
        status: Optional HTTP-like status code.
        body: Optional structured error body, e.g.
            ``{"success": False, "error": "Conflict: name already taken"}``.
    """

    def __init__(
        self,
        message: str = "",
        *,
        status: int | None = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.body = body


class NetworkError(ResourceError):
    """Transport-level failure talking to the resource service."""


class AuthError(ResourceError):
    """401/403 from the resource service (handled above the engines)."""


class NotFoundError(ResourceError):
    """The requested record does not exist."""


@dataclass(frozen=True)
class ErrorMessage:
    """A title/detail pair ready for a toast or inline banner."""

    title: str
    message: str | None = None


def _split_title(text: str) -> ErrorMessage:
    """Split ``"Title: detail"`` on the first colon."""
    title, sep, rest = text.partition(":")
    if not sep:
        return ErrorMessage(title=text)
    return ErrorMessage(title=title.strip(), message=rest.strip())


def extract_error_message(error: Any) -> ErrorMessage:
    """Turn any failure payload into an :class:`ErrorMessage`.

    Looks, in order, at:

    * a plain string,
    * the structured ``body`` (``ResourceError.body`` or a dict's
      ``"error"`` key): its ``"error"`` string, then its ``"message"``
      string, or the body itself when it is a string,
    * the exception / dict ``message``.

    Whatever is found is split on the first ``:`` into title and detail.
    """
    if error is None or error == "":
        return ErrorMessage(title=_FALLBACK_TITLE)

    if isinstance(error, str):
        return ErrorMessage(title=error)

    if isinstance(error, ResourceError):
        body = error.body
        message = error.message
    elif isinstance(error, dict):
        body = error.get("error")
        message = error.get("message")
    else:
        body = None
        message = str(error) if isinstance(error, Exception) else None

    if isinstance(body, dict):
        nested = body.get("error")
        if isinstance(nested, str) and nested:
            return _split_title(nested)
        nested = body.get("message")
        if isinstance(nested, str) and nested:
            return _split_title(nested)
    elif isinstance(body, str) and body:
        return _split_title(body)

    if isinstance(message, str) and message:
        return _split_title(message)

    return ErrorMessage(title=_FALLBACK_TITLE)
