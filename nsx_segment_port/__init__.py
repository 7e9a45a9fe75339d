"""
nsx_segment_port

Client and reconciliation layer for NSX-T Policy segment ports.

Layout:
config holds env driven settings
errors holds the exception taxonomy
schemas holds desired/observed records with tri-state field presence
auth holds the session login and credential handling
client holds request building, response mapping and the API client
services holds the reconciler and the front-end facing provider
"""

from .client import NsxClient
from .errors import (
    ApiError,
    AuthError,
    DecodeError,
    InvalidInputError,
    NotFoundError,
    SegmentPortError,
    TransportError,
)
from .schemas import (
    AddressBinding,
    PortAttachment,
    Presence,
    SegmentPortDesired,
    SegmentPortList,
    SegmentPortObserved,
)
from .services import SegmentPortProvider, SegmentPortReconciler

__all__ = [
    "NsxClient",
    "ApiError",
    "AuthError",
    "DecodeError",
    "InvalidInputError",
    "NotFoundError",
    "SegmentPortError",
    "TransportError",
    "AddressBinding",
    "PortAttachment",
    "Presence",
    "SegmentPortDesired",
    "SegmentPortList",
    "SegmentPortObserved",
    "SegmentPortProvider",
    "SegmentPortReconciler",
]
