"""
Error taxonomy for the segment port client.

Every failure crosses the package boundary as one of these exceptions so
callers can render a diagnostic without inspecting transport details:

- InvalidInputError: rejected before any request is sent.
- AuthError: the login exchange failed.
- ApiError / NotFoundError: the manager answered with a non-200 status.
- DecodeError: a 200 response could not be mapped to a segment port.
- TransportError: the HTTP exchange itself failed (connect, timeout, ...).
"""

from typing import Optional

# Payload excerpts attached to DecodeError are capped at this many characters
EXCERPT_MAX_CHARS = 200


def _excerpt(body: str) -> str:
    if len(body) <= EXCERPT_MAX_CHARS:
        return body
    return body[:EXCERPT_MAX_CHARS] + "..."


class SegmentPortError(Exception):
    """Base class for all segment port client exceptions."""


class InvalidInputError(SegmentPortError):
    """Raised for a malformed endpoint, missing identifier or invalid desired state."""


class AuthError(SegmentPortError):
    """Raised when the session login exchange does not yield credentials."""

    def __init__(self, status: int, message: Optional[str] = None):
        self.status = status
        super().__init__(message or f"Session login failed with status code {status}")


class ApiError(SegmentPortError):
    """Raised when the manager answers an API call with a non-200 status."""

    def __init__(
        self,
        status: int,
        body: str = "",
        segment_id: Optional[str] = None,
        port_id: Optional[str] = None,
    ):
        self.status = status
        self.body = body
        self.segment_id = segment_id
        self.port_id = port_id
        super().__init__(self._describe())

    def _describe(self) -> str:
        target = f"segment '{self.segment_id}'" if self.segment_id else "segment"
        if self.port_id:
            target += f" port '{self.port_id}'"
        msg = f"Unexpected status code {self.status} for {target}"
        if self.body:
            msg += f": {_excerpt(self.body)}"
        return msg


class NotFoundError(ApiError):
    """Raised for HTTP 404. Read and delete paths treat this as absence."""

    def __init__(
        self,
        body: str = "",
        segment_id: Optional[str] = None,
        port_id: Optional[str] = None,
    ):
        super().__init__(404, body, segment_id, port_id)


class DecodeError(SegmentPortError):
    """Raised when a 200 payload is not valid JSON or does not match the schema."""

    def __init__(
        self,
        message: str,
        payload: str = "",
        segment_id: Optional[str] = None,
        port_id: Optional[str] = None,
    ):
        self.excerpt = _excerpt(payload)
        self.segment_id = segment_id
        self.port_id = port_id
        detail = f"{message} (payload: {self.excerpt!r})" if payload else message
        super().__init__(detail)


class TransportError(SegmentPortError):
    """Raised when the HTTP exchange fails before a status code is received."""
