"""NSX Policy API client package: request building, response mapping, transport."""

from .api_client import NsxClient
from .request_builder import (
    build_delete_request,
    build_get_request,
    build_list_request,
    build_patch_request,
    segment_ports_path,
)
from .response_mapper import check_status, decode_segment_port, decode_segment_port_list

__all__ = [
    "NsxClient",
    "build_delete_request",
    "build_get_request",
    "build_list_request",
    "build_patch_request",
    "segment_ports_path",
    "check_status",
    "decode_segment_port",
    "decode_segment_port_list",
]
