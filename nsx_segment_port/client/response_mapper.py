"""
Map manager responses to segment port records or typed errors.

Success is exactly HTTP 200.  A 404 raises :class:`NotFoundError`, which is
an :class:`ApiError`, so callers that only care about "failed" can catch
``ApiError`` while read and delete paths can treat 404 as absence.
"""

import json
import logging
from typing import Any, Dict, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from ..errors import ApiError, DecodeError, NotFoundError
from ..schemas import SegmentPortList, SegmentPortObserved

logger = logging.getLogger(__name__)

Body = Union[bytes, str]
T = TypeVar("T", bound=BaseModel)


def _text(body: Optional[Body]) -> str:
    if body is None:
        return ""
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return body


def check_status(
    status: int,
    body: Optional[Body] = None,
    segment_id: Optional[str] = None,
    port_id: Optional[str] = None,
) -> None:
    """
    Raise the typed error for any status other than 200.

    Raises:
        NotFoundError: status 404.
        ApiError: any other non-200 status, with the raw body attached.
    """
    if status == 200:
        return
    text = _text(body)
    if status == 404:
        raise NotFoundError(text, segment_id=segment_id, port_id=port_id)
    raise ApiError(status, text, segment_id=segment_id, port_id=port_id)


def _decode(
    model: Type[T],
    status: int,
    body: Optional[Body],
    segment_id: Optional[str],
    port_id: Optional[str],
) -> T:
    check_status(status, body, segment_id, port_id)
    text = _text(body)

    try:
        payload: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DecodeError(
            f"Invalid JSON received for {model.__name__}: {exc.msg}",
            text, segment_id, port_id,
        ) from exc

    if not isinstance(payload, dict):
        raise DecodeError(
            f"Expected a JSON object for {model.__name__}, got {type(payload).__name__}",
            text, segment_id, port_id,
        )

    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise DecodeError(
            f"Schema mismatch for {model.__name__}: {exc.error_count()} error(s), "
            f"first: {_first_error(exc)}",
            text, segment_id, port_id,
        ) from exc


def _first_error(exc: ValidationError) -> str:
    err: Dict[str, Any] = exc.errors()[0]
    location = ".".join(str(part) for part in err.get("loc", ()))
    return f"{location}: {err.get('msg', '')}"


def decode_segment_port(
    status: int,
    body: Optional[Body],
    segment_id: Optional[str] = None,
    port_id: Optional[str] = None,
) -> SegmentPortObserved:
    """
    Decode a single segment port.

    Keys the server omitted stay ABSENT and keys sent as ``""`` stay EMPTY on
    the returned record.

    Raises:
        NotFoundError, ApiError: non-200 status.
        DecodeError: 200 with a body that is not a valid segment port.
    """
    observed = _decode(SegmentPortObserved, status, body, segment_id, port_id)
    logger.debug(
        f"Decoded segment port '{observed.id}'",
        extra={"segment_id": segment_id, "port_id": port_id},
    )
    return observed


def decode_segment_port_list(
    status: int,
    body: Optional[Body],
    segment_id: Optional[str] = None,
) -> SegmentPortList:
    """
    Decode a list response.  ``results`` keeps the server's order.

    Raises:
        NotFoundError, ApiError: non-200 status.
        DecodeError: 200 with a body that is not a valid list response.
    """
    listing = _decode(SegmentPortList, status, body, segment_id, None)
    logger.debug(
        f"Decoded {len(listing.results)} segment port(s)",
        extra={"segment_id": segment_id},
    )
    return listing
