"""
Authentication package for the segment port client.

Provides:
- Endpoint normalization and TLS policy selection
- Session login with XSRF token and session cookie extraction
- Case-insensitive response header matching
"""

from .session import (
    Credentials,
    Session,
    extract_session_cookie,
    match_header,
    match_header_values,
    normalize_endpoint,
)

__all__ = [
    "Credentials",
    "Session",
    "extract_session_cookie",
    "match_header",
    "match_header_values",
    "normalize_endpoint",
]
