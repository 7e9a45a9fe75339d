"""
NSX Policy API client for segment ports.

One :class:`NsxClient` owns one :class:`Session`.  Every method sends exactly
one HTTP exchange and maps the response; no method retries.  Transport
failures surface as :class:`TransportError`.
"""

import logging
from typing import List, Mapping, Optional, Sequence

import httpx

from ..auth.session import Session
from ..errors import TransportError
from ..schemas import SegmentPortDesired, SegmentPortList, SegmentPortObserved
from ..utils.logging_utils import LogTimer
from .request_builder import (
    RequestEditor,
    build_delete_request,
    build_get_request,
    build_list_request,
    build_patch_request,
)
from .response_mapper import check_status, decode_segment_port, decode_segment_port_list

logger = logging.getLogger(__name__)


class NsxClient:
    """
    Segment port client bound to one NSX manager.

    Args:
        endpoint: Manager host or URL.  ``https://`` is assumed without a
            scheme (``http://`` in insecure mode).
        username: NSX user for the session login.
        password: NSX password for the session login.
        insecure: Skip certificate verification and default to ``http://``.
        timeout: Transport timeout in seconds, enforced by httpx.
        require_credentials: Fail the login when the manager returns no
            token and no cookie.
        transport: Optional httpx transport, e.g. ``httpx.MockTransport``.
        request_editors: Callables run on every request before the session
            credentials are stamped.

    Raises:
        InvalidInputError: the endpoint cannot be used.
    """

    def __init__(
        self,
        endpoint: str,
        username: str,
        password: str,
        insecure: bool = False,
        timeout: float = 30.0,
        require_credentials: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        request_editors: Sequence[RequestEditor] = (),
    ):
        logger.debug("Creating new NSX API client")
        self.session = Session(endpoint, insecure=insecure, timeout=timeout, transport=transport)
        self._username = username
        self._password = password
        self.require_credentials = require_credentials
        self.request_editors: List[RequestEditor] = list(request_editors)

    async def __aenter__(self) -> "NsxClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.session.aclose()

    async def authenticate(self) -> None:
        """Log in (or log in again) with the configured credentials."""
        await self.session.authenticate(
            self._username,
            self._password,
            require_credentials=self.require_credentials,
        )

    async def _send(
        self,
        request: httpx.Request,
        operation: str,
        segment_id: str,
        port_id: Optional[str] = None,
    ) -> httpx.Response:
        try:
            with LogTimer(logger, operation, segment_id=segment_id, port_id=port_id) as timer:
                response = await self.session.http.send(request)
                timer.set_status(response.status_code)
        except httpx.HTTPError as exc:
            raise TransportError(f"{operation} failed: {exc}") from exc
        return response

    async def list_segment_ports(
        self,
        segment_id: str,
        headers: Optional[Mapping[str, str]] = None,
    ) -> SegmentPortList:
        request = build_list_request(
            self.session, segment_id, headers=headers, editors=self.request_editors,
        )
        response = await self._send(request, "List segment ports", segment_id)
        return decode_segment_port_list(response.status_code, response.content, segment_id)

    async def get_segment_port(
        self,
        segment_id: str,
        port_id: str,
        headers: Optional[Mapping[str, str]] = None,
    ) -> SegmentPortObserved:
        request = build_get_request(
            self.session, segment_id, port_id, headers=headers, editors=self.request_editors,
        )
        response = await self._send(request, "Get segment port", segment_id, port_id)
        return decode_segment_port(response.status_code, response.content, segment_id, port_id)

    async def patch_segment_port(
        self,
        segment_id: str,
        port_id: str,
        desired: SegmentPortDesired,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Create or fully replace a port.  The response body is not used."""
        request = build_patch_request(
            self.session, segment_id, port_id, desired,
            headers=headers, editors=self.request_editors,
        )
        response = await self._send(request, "Patch segment port", segment_id, port_id)
        check_status(response.status_code, response.content, segment_id, port_id)

    async def delete_segment_port(
        self,
        segment_id: str,
        port_id: str,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        """
        Send ``DELETE`` for a port.

        Only for managers that allow it; :class:`SegmentPortReconciler`
        detaches ports instead.
        """
        request = build_delete_request(
            self.session, segment_id, port_id, headers=headers, editors=self.request_editors,
        )
        response = await self._send(request, "Delete segment port", segment_id, port_id)
        check_status(response.status_code, response.content, segment_id, port_id)
