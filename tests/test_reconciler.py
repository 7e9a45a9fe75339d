"""
Tests for segment port reconciliation.

Covers:
- detach_attachment for CHILD, PARENT and unattached ports
- create_or_update read-after-write and idempotence
- delete as detach, and delete of a missing port
- get error mapping
- display name lookup
"""

import json

import httpx
import pytest

from nsx_segment_port.errors import ApiError, DecodeError, NotFoundError
from nsx_segment_port.schemas import Presence, SegmentPortDesired, SegmentPortObserved
from nsx_segment_port.services.reconciler import detach_attachment, matches_display_name

SEGMENT_ID = "web-seg"
PORTS_PATH = f"/policy/api/v1/infra/segments/{SEGMENT_ID}/ports"

CHILD_ATTACHMENT = {
    "id": "vif-1",
    "type": "CHILD",
    "context_id": "parent-vif",
    "app_id": "app-1",
    "traffic_tag": 10,
    "allocate_addresses": "NONE",
}


def _observed(**fields) -> SegmentPortObserved:
    payload = {"id": "p1", "resource_type": "SegmentPort"}
    payload.update(fields)
    return SegmentPortObserved.model_validate(payload)


def _patch_bodies(nsx):
    return [json.loads(r.content) for r in nsx.requests if r.method == "PATCH"]


class TestDetachAttachment:
    """Pure detach transformation."""

    def test_child_clears_child_only_fields(self):
        observed = _observed(display_name="vm1-eth0", attachment=CHILD_ATTACHMENT)
        desired = detach_attachment(observed)
        assert desired.to_wire() == {
            "id": "p1",
            "display_name": "vm1-eth0",
            "attachment": {"id": "vif-1"},
        }
        for name in ("type", "context_id", "app_id", "traffic_tag", "allocate_addresses"):
            assert desired.attachment.presence(name) is Presence.ABSENT

    def test_parent_clears_only_type(self):
        observed = _observed(attachment={"id": "vif-1", "type": "PARENT", "context_id": ""})
        desired = detach_attachment(observed)
        assert desired.to_wire()["attachment"] == {"id": "vif-1", "context_id": ""}
        assert desired.attachment.presence("context_id") is Presence.EMPTY

    def test_child_without_id_drops_the_attachment(self):
        attachment = {k: v for k, v in CHILD_ATTACHMENT.items() if k != "id"}
        desired = detach_attachment(_observed(attachment=attachment))
        assert desired.to_wire() == {"id": "p1"}
        assert desired.presence("attachment") is Presence.ABSENT

    def test_attachment_with_only_nulls_left_is_dropped(self):
        desired = detach_attachment(_observed(attachment={"id": None, "type": "PARENT"}))
        assert "attachment" not in desired.to_wire()

    def test_no_attachment_is_unchanged(self):
        observed = _observed(display_name="vm1-eth0", description="")
        desired = detach_attachment(observed)
        assert desired.to_wire() == {"id": "p1", "display_name": "vm1-eth0", "description": ""}
        assert desired.presence("attachment") is Presence.ABSENT

    def test_other_fields_keep_presence(self):
        observed = _observed(
            description="",
            admin_state="UP",
            address_bindings=[{"ip_address": "10.0.0.5", "vlan_id": 0}],
            attachment=CHILD_ATTACHMENT,
        )
        desired = detach_attachment(observed)
        assert desired.presence("description") is Presence.EMPTY
        assert desired.presence("admin_state") is Presence.VALUE
        assert desired.presence("display_name") is Presence.ABSENT
        assert desired.to_wire()["address_bindings"] == [{"ip_address": "10.0.0.5", "vlan_id": 0}]

    def test_observed_record_untouched(self):
        observed = _observed(attachment=CHILD_ATTACHMENT)
        detach_attachment(observed)
        assert observed.attachment.type == "CHILD"
        assert observed.attachment.traffic_tag == 10


class TestCreateOrUpdate:
    """Write followed by a read of the server's view."""

    @pytest.mark.asyncio
    async def test_returns_server_computed_paths(self, reconciler, nsx):
        desired = SegmentPortDesired(id="p1", display_name="vm1-eth0", admin_state="UP")
        observed = await reconciler.create_or_update(SEGMENT_ID, "p1", desired)

        assert observed.id == "p1"
        assert observed.path == f"/infra/segments/{SEGMENT_ID}/ports/p1"
        assert observed.relative_path == "p1"
        assert observed.parent_path == f"/infra/segments/{SEGMENT_ID}"
        assert observed.resource_type == "SegmentPort"
        assert nsx.api_requests() == [
            ("PATCH", f"{PORTS_PATH}/p1"),
            ("GET", f"{PORTS_PATH}/p1"),
        ]

    @pytest.mark.asyncio
    async def test_empty_description_reaches_the_server(self, reconciler, nsx):
        desired = SegmentPortDesired(id="p1", description="")
        observed = await reconciler.create_or_update(SEGMENT_ID, "p1", desired)

        assert _patch_bodies(nsx) == [{"id": "p1", "description": ""}]
        assert observed.presence("description") is Presence.EMPTY
        assert observed.presence("display_name") is Presence.ABSENT

    @pytest.mark.asyncio
    async def test_idempotent(self, reconciler):
        desired = SegmentPortDesired(
            id="p1",
            display_name="vm1-eth0",
            attachment=CHILD_ATTACHMENT,
        )
        first = await reconciler.create_or_update(SEGMENT_ID, "p1", desired)
        second = await reconciler.create_or_update(SEGMENT_ID, "p1", desired)
        assert first.to_wire() == second.to_wire()

    @pytest.mark.asyncio
    async def test_patch_failure_skips_the_read(self, reconciler, nsx):
        nsx.overrides[("PATCH", f"{PORTS_PATH}/p1")] = httpx.Response(
            400, json={"error_message": "Invalid attachment"},
        )
        with pytest.raises(ApiError) as exc_info:
            await reconciler.create_or_update(SEGMENT_ID, "p1", SegmentPortDesired(id="p1"))
        assert exc_info.value.status == 400
        assert nsx.api_requests() == [("PATCH", f"{PORTS_PATH}/p1")]


class TestDelete:
    """Delete detaches the workload instead of removing the port."""

    @pytest.mark.asyncio
    async def test_child_port_is_detached(self, reconciler, nsx):
        nsx.seed(
            SEGMENT_ID, "p1",
            display_name="vm1-eth0",
            description="",
            attachment=CHILD_ATTACHMENT,
        )
        observed = await reconciler.delete(SEGMENT_ID, "p1")

        assert _patch_bodies(nsx) == [{
            "id": "p1",
            "display_name": "vm1-eth0",
            "description": "",
            "attachment": {"id": "vif-1"},
        }]
        assert observed.attachment.presence("type") is Presence.ABSENT
        assert observed.attachment.presence("traffic_tag") is Presence.ABSENT
        assert observed.attachment.id == "vif-1"
        assert observed.presence("description") is Presence.EMPTY
        assert (SEGMENT_ID, "p1") in nsx.ports
        assert nsx.api_requests() == [
            ("GET", f"{PORTS_PATH}/p1"),
            ("PATCH", f"{PORTS_PATH}/p1"),
            ("GET", f"{PORTS_PATH}/p1"),
        ]

    @pytest.mark.asyncio
    async def test_parent_port_keeps_context(self, reconciler, nsx):
        nsx.seed(
            SEGMENT_ID, "p1",
            attachment={"id": "vif-1", "type": "PARENT", "context_id": "ctx"},
        )
        observed = await reconciler.delete(SEGMENT_ID, "p1")

        assert _patch_bodies(nsx)[0]["attachment"] == {"id": "vif-1", "context_id": "ctx"}
        assert observed.attachment.context_id == "ctx"
        assert observed.attachment.type is None

    @pytest.mark.asyncio
    async def test_bare_parent_attachment_is_removed(self, reconciler, nsx):
        nsx.seed(SEGMENT_ID, "p1", display_name="vm1-eth0", attachment={"type": "PARENT"})
        observed = await reconciler.delete(SEGMENT_ID, "p1")

        assert _patch_bodies(nsx) == [{"id": "p1", "display_name": "vm1-eth0"}]
        assert observed.presence("attachment") is Presence.ABSENT

    @pytest.mark.asyncio
    async def test_missing_port_is_already_deleted(self, reconciler, nsx):
        assert await reconciler.delete(SEGMENT_ID, "gone") is None
        assert nsx.api_requests() == [("GET", f"{PORTS_PATH}/gone")]

    @pytest.mark.asyncio
    async def test_other_read_errors_propagate(self, reconciler, nsx):
        nsx.overrides[("GET", f"{PORTS_PATH}/p1")] = httpx.Response(503, text="busy")
        with pytest.raises(ApiError) as exc_info:
            await reconciler.delete(SEGMENT_ID, "p1")
        assert exc_info.value.status == 503
        assert not _patch_bodies(nsx)


class TestGet:
    """Status and payload mapping through the reconciler."""

    @pytest.mark.asyncio
    async def test_existing_port(self, reconciler, nsx):
        nsx.seed(SEGMENT_ID, "p1", display_name="vm1-eth0")
        observed = await reconciler.get(SEGMENT_ID, "p1")
        assert observed.display_name == "vm1-eth0"

    @pytest.mark.asyncio
    async def test_404_is_not_found(self, reconciler):
        with pytest.raises(NotFoundError) as exc_info:
            await reconciler.get(SEGMENT_ID, "gone")
        assert exc_info.value.port_id == "gone"
        assert exc_info.value.segment_id == SEGMENT_ID

    @pytest.mark.asyncio
    async def test_500_carries_body(self, reconciler, nsx):
        nsx.overrides[("GET", f"{PORTS_PATH}/p1")] = httpx.Response(500, text="internal failure")
        with pytest.raises(ApiError) as exc_info:
            await reconciler.get(SEGMENT_ID, "p1")
        assert exc_info.value.status == 500
        assert exc_info.value.body == "internal failure"

    @pytest.mark.asyncio
    async def test_unparsable_200(self, reconciler, nsx):
        nsx.overrides[("GET", f"{PORTS_PATH}/p1")] = httpx.Response(200, text="<html></html>")
        with pytest.raises(DecodeError) as exc_info:
            await reconciler.get(SEGMENT_ID, "p1")
        assert exc_info.value.excerpt == "<html></html>"

    @pytest.mark.asyncio
    async def test_reauthentication_is_used_by_later_calls(self, reconciler, client, nsx):
        nsx.seed(SEGMENT_ID, "p1")
        await client.authenticate()
        assert nsx.token == "tok2"
        observed = await reconciler.get(SEGMENT_ID, "p1")
        assert observed.id == "p1"


class TestFindByDisplayName:
    """Prefix lookup over the server's list order."""

    @pytest.mark.parametrize("name, expected", [
        ("vm1-eth0", True),
        ("VM1", True),
        ("vm1-eth0-extra", False),
        ("eth0", False),
        ("", True),
    ])
    def test_matches_display_name(self, name, expected):
        port = _observed(display_name="vm1-eth0")
        assert matches_display_name(port, name) is expected

    def test_missing_display_name_never_matches_a_name(self):
        assert matches_display_name(_observed(), "vm1") is False

    @pytest.mark.asyncio
    async def test_first_match_in_server_order(self, reconciler, nsx):
        for port_id in ("vm1-eth0", "vm10-eth0", "other"):
            nsx.seed(SEGMENT_ID, port_id, display_name=port_id)
        port = await reconciler.find_by_display_name(SEGMENT_ID, "vm1")
        assert port.id == "vm1-eth0"

    @pytest.mark.asyncio
    async def test_order_decides_between_prefix_matches(self, reconciler, nsx):
        for port_id in ("vm10-eth0", "vm1-eth0", "other"):
            nsx.seed(SEGMENT_ID, port_id, display_name=port_id)
        port = await reconciler.find_by_display_name(SEGMENT_ID, "vm1")
        assert port.id == "vm10-eth0"

    @pytest.mark.asyncio
    async def test_case_insensitive(self, reconciler, nsx):
        nsx.seed(SEGMENT_ID, "p1", display_name="Web-01-NIC0")
        port = await reconciler.find_by_display_name(SEGMENT_ID, "web-01")
        assert port.id == "p1"

    @pytest.mark.asyncio
    async def test_no_match_returns_none(self, reconciler, nsx):
        nsx.seed(SEGMENT_ID, "p1", display_name="db-01")
        assert await reconciler.find_by_display_name(SEGMENT_ID, "web") is None
        assert nsx.api_requests() == [("GET", PORTS_PATH)]

    @pytest.mark.asyncio
    async def test_ports_on_other_segments_are_ignored(self, reconciler, nsx):
        nsx.seed("db-seg", "p9", display_name="web-01")
        assert await reconciler.find_by_display_name(SEGMENT_ID, "web") is None

    @pytest.mark.asyncio
    async def test_list_keeps_server_order(self, reconciler, nsx):
        for port_id in ("c", "a", "b"):
            nsx.seed(SEGMENT_ID, port_id, display_name=port_id)
        listing = await reconciler.list(SEGMENT_ID)
        assert [p.id for p in listing.results] == ["c", "a", "b"]
        assert listing.result_count == 3
