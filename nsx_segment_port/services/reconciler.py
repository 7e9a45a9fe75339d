"""
Segment port reconciliation.

Translates desired state into manager calls and returns the server's view
of the port after each call.  Nothing is cached between calls.

Delete is a detach: the manager keeps segment ports it did not create, so
"deleting" one means reading it, clearing its attachment, and writing it
back::

    get  ->  detach_attachment (pure)  ->  create_or_update
"""

import logging
from typing import Optional

from ..client.api_client import NsxClient
from ..errors import NotFoundError
from ..schemas import (
    SegmentPortDesired,
    SegmentPortList,
    SegmentPortObserved,
    without_fields,
)

logger = logging.getLogger(__name__)

# Attachment fields that only apply to CHILD attachments
CHILD_ONLY_FIELDS = ("allocate_addresses", "app_id", "context_id", "traffic_tag")


def detach_attachment(observed: SegmentPortObserved) -> SegmentPortDesired:
    """
    Desired state that detaches the workload from ``observed``.

    Everything else keeps its presence.  For a CHILD attachment the
    CHILD-only fields are cleared as well; the attachment type is always
    cleared.  An attachment left with no fields is dropped altogether.
    """
    desired = SegmentPortDesired.from_observed(observed)
    attachment = desired.attachment
    if attachment is None:
        return desired

    cleared = ["type"]
    if attachment.is_child:
        cleared.extend(CHILD_ONLY_FIELDS)

    detached = without_fields(attachment, *cleared)
    if not detached.to_wire():
        return without_fields(desired, "attachment")
    return desired.model_copy(update={"attachment": detached})


def matches_display_name(port: SegmentPortObserved, name: str) -> bool:
    """Case-insensitive prefix match of the port display name against ``name``."""
    return (port.display_name or "").lower().startswith(name.lower())


class SegmentPortReconciler:
    """Create, read, update and delete segment ports through an :class:`NsxClient`."""

    def __init__(self, client: NsxClient):
        self.client = client

    async def list(self, segment_id: str) -> SegmentPortList:
        return await self.client.list_segment_ports(segment_id)

    async def find_by_display_name(
        self,
        segment_id: str,
        name: str,
    ) -> Optional[SegmentPortObserved]:
        """
        First port, in server order, whose display name starts with ``name``
        (case-insensitive).  Returns ``None`` when nothing matches.
        """
        listing = await self.list(segment_id)
        for port in listing.results:
            if matches_display_name(port, name):
                logger.debug(
                    f"Port '{port.id}' matches name '{name}'",
                    extra={"segment_id": segment_id},
                )
                return port
        logger.debug(f"No port matches name '{name}'", extra={"segment_id": segment_id})
        return None

    async def get(self, segment_id: str, port_id: str) -> SegmentPortObserved:
        """
        Raises:
            NotFoundError: the port does not exist.
        """
        return await self.client.get_segment_port(segment_id, port_id)

    async def create_or_update(
        self,
        segment_id: str,
        port_id: str,
        desired: SegmentPortDesired,
    ) -> SegmentPortObserved:
        """
        Write ``desired`` as a full replace and return the server's record,
        including the computed ``path``, ``relative_path`` and ``parent_path``.
        """
        await self.client.patch_segment_port(segment_id, port_id, desired)
        observed = await self.client.get_segment_port(segment_id, port_id)
        logger.info(
            f"Reconciled segment port '{observed.id}'",
            extra={"segment_id": segment_id, "port_id": port_id},
        )
        return observed

    async def delete(self, segment_id: str, port_id: str) -> Optional[SegmentPortObserved]:
        """
        Detach the port.

        Returns the detached record, or ``None`` when the port does not exist
        (already gone is a successful delete).
        """
        try:
            observed = await self.get(segment_id, port_id)
        except NotFoundError:
            logger.info(
                "Segment port already absent, nothing to delete",
                extra={"segment_id": segment_id, "port_id": port_id},
            )
            return None

        desired = detach_attachment(observed)
        return await self.create_or_update(segment_id, port_id, desired)
