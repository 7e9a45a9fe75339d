"""
Pydantic v2 schemas for NSX segment ports with explicit field presence.

Architecture:
  - *Fields classes: pure field definitions shared by desired and observed
    records.  Only the invariants that hold on both sides are validated here
    (attachment type is PARENT or CHILD).
  - SegmentPortDesired: inherits the fields and ADDS strict validators so bad
    desired state is rejected before a request is built.
  - SegmentPortObserved: inherits the fields directly plus the server-computed
    paths, so any payload the manager returns decodes without tripping over
    values we would never send ourselves.

Presence:
  The manager treats "field omitted" differently from "field sent as an empty
  string" in a PATCH, so every optional field is tri-state:

    ABSENT  never supplied, or JSON null
    EMPTY   supplied as "" (or [])
    VALUE   supplied with a value

  Presence is carried by pydantic's ``model_fields_set``: decoding records
  exactly the keys the server sent, and ``to_wire`` dumps with
  ``exclude_unset`` + ``exclude_none`` so encoding emits exactly the fields
  that are present.  Both directions use the same rule.
"""

from enum import Enum
from ipaddress import ip_address as parse_ip
from typing import Any, Dict, List, Optional, TypeVar
import re

from pydantic import BaseModel, Field, field_validator


# ── Allowed value sets ───────────────────────────────────────────────

ADMIN_STATE_UP = "UP"
ADMIN_STATE_DOWN = "DOWN"
VALID_ADMIN_STATES = frozenset({ADMIN_STATE_UP, ADMIN_STATE_DOWN})

ATTACHMENT_PARENT = "PARENT"
ATTACHMENT_CHILD = "CHILD"
VALID_ATTACHMENT_TYPES = frozenset({ATTACHMENT_PARENT, ATTACHMENT_CHILD})

VALID_ALLOCATE_ADDRESSES = frozenset({
    "IP_POOL", "MAC_POOL", "BOTH", "DHCP", "DHCPV6", "SLAAC", "NONE",
})

RESOURCE_TYPE_SEGMENT_PORT = "SegmentPort"

# Server-computed fields, never part of a desired record
OBSERVED_ONLY_FIELDS = frozenset({"parent_path", "path", "relative_path", "resource_type"})

# ── Reusable validators ──────────────────────────────────────────────

MAC_RE = re.compile(r"^([0-9A-Fa-f]{2}[:\-]){5}[0-9A-Fa-f]{2}$")


def _validate_ip(value: str, field_name: str = "IP address") -> str:
    """Validate an IPv4 or IPv6 address string."""
    try:
        parse_ip(value)
    except ValueError:
        raise ValueError(
            f"Invalid {field_name} '{value}'. "
            "Expected IPv4 (e.g. 192.168.1.1) or IPv6 (e.g. 2001:db8::1)"
        )
    return value


def _validate_mac(value: str) -> str:
    """Validate a MAC address string."""
    if not MAC_RE.match(value):
        raise ValueError(
            f"Invalid MAC address '{value}'. "
            "Expected format XX:XX:XX:XX:XX:XX or XX-XX-XX-XX-XX-XX "
            "(6 pairs of hex digits)"
        )
    return value


# ═══════════════════════════════════════════════════════════════════════
# PRESENCE
# ═══════════════════════════════════════════════════════════════════════

class Presence(str, Enum):
    """Tri-state classification of an optional field."""

    ABSENT = "absent"
    EMPTY = "empty"
    VALUE = "value"


M = TypeVar("M", bound="PresenceModel")


class PresenceModel(BaseModel):
    """Base model exposing the presence of each field."""

    def presence(self, name: str) -> Presence:
        if name not in type(self).model_fields:
            raise KeyError(name)
        if name not in self.model_fields_set:
            return Presence.ABSENT
        value = getattr(self, name)
        if value is None:
            return Presence.ABSENT
        if value == "" or value == []:
            return Presence.EMPTY
        return Presence.VALUE

    def presence_map(self, prefix: str = "") -> Dict[str, Presence]:
        """
        Presence of every field, nested models flattened with dotted names
        (``attachment.traffic_tag``).
        """
        result: Dict[str, Presence] = {}
        for name in type(self).model_fields:
            state = self.presence(name)
            result[prefix + name] = state
            value = getattr(self, name)
            if state is not Presence.ABSENT and isinstance(value, PresenceModel):
                result.update(value.presence_map(prefix=f"{prefix}{name}."))
        return result

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready dict containing only the present fields."""
        return self.model_dump(mode="json", exclude_unset=True, exclude_none=True)


def without_fields(model: M, *names: str) -> M:
    """Copy of ``model`` with ``names`` made ABSENT; other presence is kept."""
    keep = model.model_fields_set - set(names)
    values = {name: getattr(model, name) for name in keep}
    return type(model).model_construct(_fields_set=keep, **values)


# ═══════════════════════════════════════════════════════════════════════
# NESTED RECORDS
# ═══════════════════════════════════════════════════════════════════════

class AddressBinding(PresenceModel):
    """One IP/MAC/VLAN binding on a segment port."""

    ip_address: Optional[str] = None
    mac_address: Optional[str] = None
    vlan_id: Optional[int] = Field(None, ge=0, le=4094)


class PortAttachment(PresenceModel):
    """
    How a workload is bound to the port.

    ``allocate_addresses``, ``app_id``, ``context_id`` and ``traffic_tag``
    only mean something when ``type`` is CHILD.
    """

    allocate_addresses: Optional[str] = None
    app_id: Optional[str] = None
    context_id: Optional[str] = None
    id: Optional[str] = None
    traffic_tag: Optional[int] = Field(None, ge=0, le=4094)
    type: Optional[str] = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return v
        if v not in VALID_ATTACHMENT_TYPES:
            raise ValueError(
                f"Invalid attachment type '{v}'. "
                f"Allowed values (case sensitive): {', '.join(sorted(VALID_ATTACHMENT_TYPES))}"
            )
        return v

    @property
    def is_child(self) -> bool:
        return self.type == ATTACHMENT_CHILD


# ═══════════════════════════════════════════════════════════════════════
# SEGMENT PORT SCHEMAS
# ═══════════════════════════════════════════════════════════════════════

class SegmentPortFields(PresenceModel):
    """Pure field definitions for segment ports.  No validators."""

    address_bindings: Optional[List[AddressBinding]] = None
    admin_state: Optional[str] = None
    attachment: Optional[PortAttachment] = None
    description: Optional[str] = None
    display_name: Optional[str] = None
    id: Optional[str] = None


class _SegmentPortValidators:
    """Mixin-style validators applied to desired state only."""

    @field_validator("admin_state")
    @classmethod
    def validate_admin_state(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return v
        upper = v.upper()
        if upper not in VALID_ADMIN_STATES:
            raise ValueError(
                f"Invalid admin state '{v}'. "
                f"Allowed values: {', '.join(sorted(VALID_ADMIN_STATES))}"
            )
        return upper

    @field_validator("address_bindings")
    @classmethod
    def validate_address_bindings(
        cls, v: Optional[List[AddressBinding]]
    ) -> Optional[List[AddressBinding]]:
        if v is None:
            return v
        for binding in v:
            if binding.ip_address:
                _validate_ip(binding.ip_address, "binding IP address")
            if binding.mac_address:
                _validate_mac(binding.mac_address)
        return v

    @field_validator("attachment")
    @classmethod
    def validate_allocate_addresses(
        cls, v: Optional[PortAttachment]
    ) -> Optional[PortAttachment]:
        if v is None or not v.allocate_addresses:
            return v
        if v.allocate_addresses not in VALID_ALLOCATE_ADDRESSES:
            raise ValueError(
                f"Invalid allocate_addresses '{v.allocate_addresses}'. "
                f"Allowed values: {', '.join(sorted(VALID_ALLOCATE_ADDRESSES))}"
            )
        return v


class SegmentPortDesired(SegmentPortFields, _SegmentPortValidators):
    """Desired segment port: fields + strict validation."""

    @classmethod
    def from_observed(cls, observed: "SegmentPortObserved") -> "SegmentPortDesired":
        """
        Desired record equal to what the server reports, presence included.

        Observed values are trusted as-is and not re-validated.
        """
        present = {
            name for name in cls.model_fields
            if name in observed.model_fields_set
        }
        values = {name: getattr(observed, name) for name in present}
        if values.get("address_bindings") is not None:
            values["address_bindings"] = list(values["address_bindings"])
        return cls.model_construct(_fields_set=present, **values)


class SegmentPortObserved(SegmentPortFields):
    """Segment port as reported by the manager.  No desired-state validators."""

    id: str
    resource_type: str
    parent_path: Optional[str] = None
    path: Optional[str] = None
    relative_path: Optional[str] = None


class SegmentPortList(BaseModel):
    """One page of ``GET .../ports``, in the order the server returned it."""

    results: List[SegmentPortObserved] = Field(default_factory=list)
    result_count: Optional[int] = None
    sort_by: Optional[str] = None
    sort_ascending: Optional[bool] = None
    cursor: Optional[str] = None
