"""
Inbound contract used by the declarative front-end.

The front-end owns desired and persisted state; it calls::

    provider = await SegmentPortProvider.configure(endpoint, username, password, insecure)
    observed = await provider.reconcile("create", segment_id, port_id, desired)
    observed = await provider.reconcile("read", segment_id, port_id)   # None if gone
    await provider.reconcile("delete", segment_id, port_id)
    port = await provider.lookup(segment_id, vm_name)                  # data source
    port = await provider.import_state(segment_id, port_id)

Errors cross this boundary as the exceptions in :mod:`nsx_segment_port.errors`.
"""

from typing import Optional, Union

import httpx
from pydantic import ValidationError

from ..client.api_client import NsxClient
from ..config import Settings, settings as default_settings
from ..errors import InvalidInputError, NotFoundError
from ..schemas import SegmentPortDesired, SegmentPortObserved
from ..utils.logging_utils import get_logger, set_debug
from .reconciler import SegmentPortReconciler

logger = get_logger(__name__)

OP_CREATE = "create"
OP_READ = "read"
OP_UPDATE = "update"
OP_DELETE = "delete"
VALID_OPERATIONS = frozenset({OP_CREATE, OP_READ, OP_UPDATE, OP_DELETE})

DEFAULT_HOST = "127.0.0.1"
DEFAULT_USERNAME = "admin"
DEFAULT_PASSWORD = "password"
DEFAULT_INSECURE = False


def _with_default(value, setting, default, label: str):
    """Explicit value, then setting, then default with a warning."""
    if value is not None:
        return value
    if setting is not None:
        return setting
    logger.warning(
        f"Missing NSX {label} (using default value: "
        f"{'********' if label == 'password' else default})"
    )
    return default


class SegmentPortProvider:
    """Reconciliation entry point bound to one configured client."""

    def __init__(self, client: NsxClient):
        self.client = client
        self.reconciler = SegmentPortReconciler(client)

    @classmethod
    async def configure(
        cls,
        endpoint: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        insecure: Optional[bool] = None,
        debug: Optional[bool] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "SegmentPortProvider":
        """
        Build an authenticated provider.

        Values not passed fall back to ``NSX_*`` settings, then to the
        defaults ``127.0.0.1`` / ``admin`` / ``password`` / secure, each
        default logged as a warning.

        Raises:
            InvalidInputError: unusable endpoint.
            AuthError: login rejected.
            TransportError: manager unreachable.
        """
        cfg = settings or default_settings
        set_debug(debug if debug is not None else cfg.NSX_DEBUG)

        host = _with_default(endpoint, cfg.NSX_HOST, DEFAULT_HOST, "Manager API hostname")
        user = _with_default(username, cfg.NSX_USERNAME, DEFAULT_USERNAME, "API username")
        secret = _with_default(password, cfg.NSX_PASSWORD, DEFAULT_PASSWORD, "password")
        skip_tls = _with_default(insecure, cfg.NSX_INSECURE, DEFAULT_INSECURE, "Manager API insecure")

        client = NsxClient(
            host,
            user,
            secret,
            insecure=skip_tls,
            timeout=cfg.NSX_TIMEOUT_SECONDS,
            require_credentials=cfg.NSX_STRICT_AUTH,
            transport=transport,
        )
        try:
            await client.authenticate()
        except Exception:
            await client.aclose()
            raise

        logger.info(f"Configured NSX segment port provider for {client.session.base_url}")
        return cls(client)

    async def __aenter__(self) -> "SegmentPortProvider":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def reconcile(
        self,
        op: str,
        segment_id: str,
        port_id: Optional[str] = None,
        desired: Optional[Union[SegmentPortDesired, dict]] = None,
    ) -> Optional[SegmentPortObserved]:
        """
        Run one lifecycle operation for ``(segment_id, port_id)``.

        Returns:
            create / update: the observed port after the write.
            read: the observed port, or ``None`` when it no longer exists.
            delete: ``None``.
        """
        if op not in VALID_OPERATIONS:
            raise InvalidInputError(
                f"Invalid operation '{op}'. "
                f"Allowed values: {', '.join(sorted(VALID_OPERATIONS))}"
            )
        if not port_id:
            raise InvalidInputError(f"port_id is required for '{op}'")

        if op == OP_READ:
            try:
                return await self.reconciler.get(segment_id, port_id)
            except NotFoundError:
                logger.info(
                    "Segment port no longer exists, removing from state",
                    extra={"segment_id": segment_id, "port_id": port_id},
                )
                return None

        if op == OP_DELETE:
            await self.reconciler.delete(segment_id, port_id)
            return None

        if desired is None:
            raise InvalidInputError(f"desired state is required for '{op}'")
        if isinstance(desired, dict):
            desired = self._parse_desired(desired)
        return await self.reconciler.create_or_update(segment_id, port_id, desired)

    async def lookup(self, segment_id: str, vm_name: str) -> Optional[SegmentPortObserved]:
        """Port whose display name starts with ``vm_name``, or ``None``."""
        if not vm_name:
            raise InvalidInputError("vm_name must not be empty")
        return await self.reconciler.find_by_display_name(segment_id, vm_name)

    async def import_state(self, segment_id: str, port_id: str) -> SegmentPortObserved:
        """
        Adopt an existing port by its key.

        Raises:
            NotFoundError: there is nothing to import.
        """
        if not port_id:
            raise InvalidInputError("port_id is required for import")
        return await self.reconciler.get(segment_id, port_id)

    @staticmethod
    def _parse_desired(data: dict) -> SegmentPortDesired:
        try:
            return SegmentPortDesired.model_validate(data)
        except ValidationError as exc:
            raise InvalidInputError(f"Invalid desired segment port: {exc}") from exc
