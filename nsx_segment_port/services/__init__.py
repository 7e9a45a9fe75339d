"""Services package: reconciliation and the front-end facing provider."""

from .reconciler import (
    SegmentPortReconciler,
    detach_attachment,
    matches_display_name,
)
from .provider import SegmentPortProvider, VALID_OPERATIONS

__all__ = [
    "SegmentPortReconciler",
    "detach_attachment",
    "matches_display_name",
    "SegmentPortProvider",
    "VALID_OPERATIONS",
]
