"""
Pytest configuration and fixtures for the segment port client tests.

Provides:
- FakeNsxManager: an in-memory NSX manager served through httpx.MockTransport
- NsxClient / SegmentPortReconciler fixtures already logged in to it
"""

import json
import re
from typing import Dict, List, Optional, Tuple
from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio

from nsx_segment_port.client import NsxClient
from nsx_segment_port.services import SegmentPortReconciler

SEGMENT_ID = "web-seg"

PORTS_PATH_RE = re.compile(
    r"^/policy/api/v1/infra/segments/(?P<segment>[^/]+)/ports(?:/(?P<port>[^/]+))?$"
)


class FakeNsxManager:
    """
    Minimal NSX manager.

    - session login with form credentials, one new token per login
    - PATCH is a full replace that adds the server-computed paths
    - every API call must carry the current token and cookie
    - ``overrides`` pins a canned response to a ``(method, path)`` pair
    """

    def __init__(self, username: str = "admin", password: str = "s3cret"):
        self.username = username
        self.password = password
        self.cookie_value = "JSESSIONID=abc123;"
        self.logins = 0
        self.token = ""
        self.ports: Dict[Tuple[str, str], dict] = {}
        self.requests: List[httpx.Request] = []
        self.overrides: Dict[Tuple[str, str], httpx.Response] = {}

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def api_requests(self) -> List[Tuple[str, str]]:
        return [
            (r.method, r.url.path) for r in self.requests
            if r.url.path != "/api/session/create"
        ]

    def seed(self, segment_id: str, port_id: str, **fields) -> dict:
        record = self._store(segment_id, port_id, fields)
        return record

    def _store(self, segment_id: str, port_id: str, body: dict) -> dict:
        record = dict(body)
        record.setdefault("id", port_id)
        record["resource_type"] = "SegmentPort"
        record["path"] = f"/infra/segments/{segment_id}/ports/{port_id}"
        record["relative_path"] = port_id
        record["parent_path"] = f"/infra/segments/{segment_id}"
        record["marked_for_delete"] = False
        record["_revision"] = self.ports.get((segment_id, port_id), {}).get("_revision", -1) + 1
        self.ports[(segment_id, port_id)] = record
        return record

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        canned = self.overrides.get((request.method, path))
        if canned is not None:
            return canned

        if path == "/api/session/create":
            return self._login(request)

        if (
            request.headers.get("X-XSRF-TOKEN") != self.token
            or request.headers.get("Cookie") != self.cookie_value
        ):
            return httpx.Response(403, json={"error_message": "Forbidden"})

        match = PORTS_PATH_RE.match(path)
        if not match:
            return httpx.Response(400, json={"error_message": f"Unknown path {path}"})
        segment_id, port_id = match.group("segment"), match.group("port")

        if port_id is None and request.method == "GET":
            results = [
                record for (seg, _), record in self.ports.items() if seg == segment_id
            ]
            return httpx.Response(200, json={
                "results": results,
                "result_count": len(results),
                "sort_by": "display_name",
                "sort_ascending": True,
            })

        key = (segment_id, port_id)
        if request.method == "GET":
            if key not in self.ports:
                return self._not_found(port_id)
            return httpx.Response(200, json=self.ports[key])
        if request.method == "PATCH":
            self._store(segment_id, port_id, json.loads(request.content))
            return httpx.Response(200)
        if request.method == "DELETE":
            self.ports.pop(key, None)
            return httpx.Response(200)
        return httpx.Response(405)

    def _login(self, request: httpx.Request) -> httpx.Response:
        form = parse_qs(request.content.decode())
        if form.get("j_username") != [self.username] or form.get("j_password") != [self.password]:
            return httpx.Response(403, json={"error_message": "Bad credentials"})
        self.logins += 1
        self.token = f"tok{self.logins}"
        return httpx.Response(
            200,
            headers=[
                ("Set-Cookie", f"{self.cookie_value} Path=/; Secure; HttpOnly"),
                ("x-xsrf-token", self.token),
            ],
        )

    @staticmethod
    def _not_found(port_id: Optional[str]) -> httpx.Response:
        return httpx.Response(404, json={
            "error_code": 500090,
            "error_message": f"The path=[/infra/segments/web-seg/ports/{port_id}] is invalid",
        })


@pytest.fixture
def nsx() -> FakeNsxManager:
    return FakeNsxManager()


@pytest_asyncio.fixture
async def client(nsx: FakeNsxManager):
    """NsxClient logged in to the fake manager."""
    nsx_client = NsxClient(
        "nsx.example.test",
        nsx.username,
        nsx.password,
        transport=nsx.transport,
    )
    await nsx_client.authenticate()
    yield nsx_client
    await nsx_client.aclose()


@pytest_asyncio.fixture
async def reconciler(client: NsxClient) -> SegmentPortReconciler:
    return SegmentPortReconciler(client)
