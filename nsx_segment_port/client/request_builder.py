"""
Request construction for the segment port endpoints.

Each builder returns an ``httpx.Request`` ready to send through the session's
client.  Identifiers are percent-escaped as single path segments, so ``/``,
``?`` and ``#`` inside an id never change which resource is addressed.

Header order of precedence:
  1. caller headers (and request editors) are applied first;
  2. ``X-XSRF-TOKEN`` and ``Cookie`` from the session are stamped last;
  3. ``Content-Type: application/json`` is added to PATCH and DELETE only
     when nobody set a content type before.
"""

import json
import logging
from typing import Callable, Mapping, Optional, Sequence
from urllib.parse import quote

import httpx

from ..auth.session import XSRF_HEADER, Session
from ..config import USER_AGENT
from ..errors import InvalidInputError
from ..schemas import SegmentPortDesired

logger = logging.getLogger(__name__)

API_ROOT = "/policy/api/v1"
JSON_CONTENT_TYPE = "application/json"

RequestEditor = Callable[[httpx.Request], None]


def segment_ports_path(
    segment_id: str,
    port_id: Optional[str] = None,
    require_port: bool = False,
) -> str:
    """
    Resolve ``/policy/api/v1/infra/segments/{segment_id}/ports[/{port_id}]``.

    Raises:
        InvalidInputError: empty segment id, or empty port id when required.
    """
    if not segment_id:
        raise InvalidInputError("segment_id must not be empty")
    if require_port and not port_id:
        raise InvalidInputError(f"port_id must not be empty (segment '{segment_id}')")

    path = f"{API_ROOT}/infra/segments/{quote(segment_id, safe='')}/ports"
    if port_id:
        path += f"/{quote(port_id, safe='')}"
    return path


def _build(
    session: Session,
    method: str,
    path: str,
    body: Optional[bytes] = None,
    headers: Optional[Mapping[str, str]] = None,
    editors: Sequence[RequestEditor] = (),
    json_content: bool = False,
) -> httpx.Request:
    request = session.http.build_request(
        method,
        path,
        content=body,
        headers=dict(headers or {}),
    )

    for editor in editors:
        editor(request)

    request.headers["User-Agent"] = USER_AGENT
    request.headers["Accept"] = JSON_CONTENT_TYPE
    request.headers[XSRF_HEADER] = session.xsrf_token
    request.headers["Cookie"] = session.cookie

    if json_content and "Content-Type" not in request.headers:
        request.headers["Content-Type"] = JSON_CONTENT_TYPE

    logger.debug(f"Built request {method} {request.url}")
    return request


def build_list_request(
    session: Session,
    segment_id: str,
    headers: Optional[Mapping[str, str]] = None,
    editors: Sequence[RequestEditor] = (),
) -> httpx.Request:
    """``GET .../segments/{segment_id}/ports``."""
    path = segment_ports_path(segment_id)
    return _build(session, "GET", path, headers=headers, editors=editors)


def build_get_request(
    session: Session,
    segment_id: str,
    port_id: str,
    headers: Optional[Mapping[str, str]] = None,
    editors: Sequence[RequestEditor] = (),
) -> httpx.Request:
    """``GET .../segments/{segment_id}/ports/{port_id}``."""
    path = segment_ports_path(segment_id, port_id, require_port=True)
    return _build(session, "GET", path, headers=headers, editors=editors)


def build_patch_request(
    session: Session,
    segment_id: str,
    port_id: str,
    desired: SegmentPortDesired,
    headers: Optional[Mapping[str, str]] = None,
    editors: Sequence[RequestEditor] = (),
) -> httpx.Request:
    """
    ``PATCH .../segments/{segment_id}/ports/{port_id}`` with the desired port.

    The body holds only the present fields of ``desired``: absent fields are
    omitted, explicit empty strings are sent as ``""``.  ``segment_id`` and
    ``port_id`` travel in the URL only.
    """
    path = segment_ports_path(segment_id, port_id, require_port=True)
    body = json.dumps(desired.to_wire()).encode("utf-8")
    return _build(
        session, "PATCH", path,
        body=body, headers=headers, editors=editors, json_content=True,
    )


def build_delete_request(
    session: Session,
    segment_id: str,
    port_id: str,
    headers: Optional[Mapping[str, str]] = None,
    editors: Sequence[RequestEditor] = (),
) -> httpx.Request:
    """``DELETE .../segments/{segment_id}/ports/{port_id}``."""
    path = segment_ports_path(segment_id, port_id, require_port=True)
    return _build(
        session, "DELETE", path,
        headers=headers, editors=editors, json_content=True,
    )
