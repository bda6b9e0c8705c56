"""MAAS REST API client.

Provides an HTTP client with OAuth request signing, thread safety,
and automatic response validation using Pydantic models.
"""

import threading
import time
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

import httpx
import structlog

from ..errors import MAASAPIError
from .auth import MAASOAuth
from .types import RawDNSResourceData, RawMachineData, RawZoneData

logger = structlog.get_logger(__name__)

DEFAULT_API_VERSION = "2.0"

DEFAULT_TIMEOUT = 30.0

MACHINES_PATH = "machines/"
DNS_RESOURCES_PATH = "dnsresources/"
ZONES_PATH = "zones/"


def encode_form(values: Mapping[str, Any] | None) -> dict[str, Any]:
    """Encode request parameters the way MAAS expects them.

    None values are dropped and booleans become ``true``/``false``.
    Other values are passed through for httpx to encode.
    """
    encoded: dict[str, Any] = {}
    for key, value in (values or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            encoded[key] = "true" if value else "false"
        else:
            encoded[key] = value
    return encoded


class MAASApiClient:
    """HTTP client for the MAAS REST API.

    Handles authentication, makes HTTP requests, converts error responses
    into :class:`~maas_client.errors.MAASAPIError` and returns
    Pydantic-validated data objects. Builder logic lives in the resources
    package.

    Thread-safe through thread-local storage of httpx.Client instances.
    Can be used as a context manager for automatic cleanup.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the REST API client.

        Args:
            endpoint: MAAS URL (e.g., "http://maas.example.com:5240/MAAS").
            api_key: MAAS API key ("consumer_key:token_key:token_secret").
            api_version: MAAS API version (default: 2.0).
            timeout: Request timeout in seconds (default: 30.0).
            transport: Optional httpx transport, mainly for tests.

        Raises:
            ValueError: If endpoint is empty, the API key is malformed or
                timeout is not positive.
        """
        if not endpoint:
            msg = "endpoint cannot be empty"
            raise ValueError(msg)
        if timeout <= 0:
            msg = "timeout must be positive"
            raise ValueError(msg)

        self.endpoint = endpoint.rstrip("/")
        self.api_version = api_version
        self.base_url = f"{self.endpoint}/api/{api_version}/"
        self._timeout = timeout
        self._transport = transport
        self._auth = MAASOAuth(api_key)
        self._headers = {"Accept": "application/json"}

        # Use thread-local storage for httpx.Client (thread safety)
        self._local = threading.local()

    @property
    def client(self) -> httpx.Client:
        """Get or create thread-local httpx client.

        Each thread gets its own httpx.Client instance for thread safety.
        Clients are created lazily and reused within the same thread.

        Returns:
            Thread-local httpx.Client instance.
        """
        if not hasattr(self._local, "client") or self._local.client.is_closed:
            self._local.client = httpx.Client(
                base_url=self.base_url,
                headers=self._headers,
                auth=self._auth,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._local.client

    def __enter__(self):
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager and cleanup resources."""
        self.close()

    def close(self):
        """Close the thread-local HTTP client if open."""
        if hasattr(self._local, "client") and not self._local.client.is_closed:
            self._local.client.close()

    def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Mapping[str, Any] | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> Any:
        """Make HTTP request to the MAAS API.

        Handles request execution, error checking, and JSON parsing.
        Logs request details and duration.

        Args:
            method: HTTP method.
            endpoint: API path relative to the API root (e.g., "machines/").
            params: Optional query parameters.
            data: Optional form body.

        Returns:
            Decoded JSON response, or None for an empty response.

        Raises:
            httpx.HTTPError: If the HTTP request fails in transport.
            MAASAPIError: If MAAS answers with a non-2xx status, or with a 2xx
                status whose body is not JSON.
        """
        start_time = time.time()
        params = encode_form(params)
        data = encode_form(data) if data is not None else None

        try:
            logger.debug(
                "Making API request",
                method=method,
                endpoint=endpoint,
                params=params,
            )
            response = self.client.request(method, endpoint, params=params, data=data)
        except httpx.HTTPError:
            duration = time.time() - start_time
            logger.exception(
                "API request failed",
                method=method,
                endpoint=endpoint,
                duration_seconds=round(duration, 3),
            )
            raise

        duration = time.time() - start_time
        logger.debug(
            "API request completed",
            status_code=response.status_code,
            duration_seconds=round(duration, 3),
        )

        if response.is_error:
            message = response.text.strip()
            logger.error(
                "API error response",
                method=method,
                endpoint=endpoint,
                status_code=response.status_code,
                error_message=message,
            )
            raise MAASAPIError(response.status_code, message, method, endpoint)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            body = response.text.strip()
            logger.error(
                "API response is not JSON",
                method=method,
                endpoint=endpoint,
                status_code=response.status_code,
                content_type=response.headers.get("content-type", ""),
            )
            raise MAASAPIError(response.status_code, body, method, endpoint) from exc

    # -----------------------------------------------------------------------
    # Machines
    # -----------------------------------------------------------------------

    @staticmethod
    def _machine_path(system_id: str) -> str:
        if not system_id:
            msg = "system_id cannot be empty"
            raise ValueError(msg)
        return f"{MACHINES_PATH}{quote(system_id, safe='')}/"

    def _machine_op(
        self,
        system_id: str,
        op: str,
        data: Mapping[str, Any] | None = None,
    ) -> RawMachineData:
        payload = self._make_request(
            "POST",
            self._machine_path(system_id),
            params={"op": op},
            data=data or {},
        )
        return RawMachineData.model_validate(payload)

    def list_machines(
        self,
        filters: Mapping[str, Any] | None = None,
    ) -> list[RawMachineData]:
        """Fetch machines known to MAAS.

        Args:
            filters: Optional query filters (e.g., {"zone": "az1"}).

        Returns:
            List of validated RawMachineData objects.
        """
        data = self._make_request("GET", MACHINES_PATH, params=filters)
        return [RawMachineData.model_validate(item) for item in data or []]

    def get_machine(self, system_id: str) -> RawMachineData:
        """Fetch a single machine by system ID."""
        data = self._make_request("GET", self._machine_path(system_id))
        return RawMachineData.model_validate(data)

    def allocate_machine(
        self,
        constraints: Mapping[str, Any] | None = None,
    ) -> RawMachineData:
        """Ask MAAS to allocate a machine matching ``constraints``.

        Returns:
            The allocated machine.

        Raises:
            MAASAPIError: 409 if no machine matches, 400/404 on bad values.
        """
        data = self._make_request(
            "POST",
            MACHINES_PATH,
            params={"op": "allocate"},
            data=constraints or {},
        )
        return RawMachineData.model_validate(data)

    def update_machine(
        self,
        system_id: str,
        fields: Mapping[str, Any],
    ) -> RawMachineData:
        """Update machine fields and return the updated machine."""
        data = self._make_request("PUT", self._machine_path(system_id), data=fields)
        return RawMachineData.model_validate(data)

    def deploy_machine(
        self,
        system_id: str,
        options: Mapping[str, Any] | None = None,
    ) -> RawMachineData:
        """Ask MAAS to deploy an allocated machine.

        MAAS returns as soon as the deployment has been accepted; the
        machine then moves through Deploying to Deployed on its own.
        """
        return self._machine_op(system_id, "deploy", options)

    def release_machine(
        self,
        system_id: str,
        options: Mapping[str, Any] | None = None,
    ) -> RawMachineData:
        """Ask MAAS to release a machine back to the pool."""
        return self._machine_op(system_id, "release", options)

    def power_on_machine(
        self,
        system_id: str,
        options: Mapping[str, Any] | None = None,
    ) -> RawMachineData:
        """Ask MAAS to power on a machine."""
        return self._machine_op(system_id, "power_on", options)

    def power_off_machine(
        self,
        system_id: str,
        options: Mapping[str, Any] | None = None,
    ) -> RawMachineData:
        """Ask MAAS to power off a machine."""
        return self._machine_op(system_id, "power_off", options)

    # -----------------------------------------------------------------------
    # DNS resources
    # -----------------------------------------------------------------------

    @staticmethod
    def _dns_resource_path(resource_id: int) -> str:
        return f"{DNS_RESOURCES_PATH}{int(resource_id)}/"

    def list_dns_resources(
        self,
        filters: Mapping[str, Any] | None = None,
    ) -> list[RawDNSResourceData]:
        """Fetch DNS resources, optionally filtered (e.g., by fqdn)."""
        data = self._make_request("GET", DNS_RESOURCES_PATH, params=filters)
        return [RawDNSResourceData.model_validate(item) for item in data or []]

    def get_dns_resource(self, resource_id: int) -> RawDNSResourceData:
        """Fetch a single DNS resource by ID."""
        data = self._make_request("GET", self._dns_resource_path(resource_id))
        return RawDNSResourceData.model_validate(data)

    def create_dns_resource(self, fields: Mapping[str, Any]) -> RawDNSResourceData:
        """Create a DNS resource and return it."""
        data = self._make_request("POST", DNS_RESOURCES_PATH, data=fields)
        return RawDNSResourceData.model_validate(data)

    def update_dns_resource(
        self,
        resource_id: int,
        fields: Mapping[str, Any],
    ) -> RawDNSResourceData:
        """Update a DNS resource and return the updated resource."""
        data = self._make_request(
            "PUT",
            self._dns_resource_path(resource_id),
            data=fields,
        )
        return RawDNSResourceData.model_validate(data)

    def delete_dns_resource(self, resource_id: int) -> None:
        """Delete a DNS resource."""
        self._make_request("DELETE", self._dns_resource_path(resource_id))

    # -----------------------------------------------------------------------
    # Zones
    # -----------------------------------------------------------------------

    def list_zones(self) -> list[RawZoneData]:
        """Fetch all availability zones."""
        data = self._make_request("GET", ZONES_PATH)
        return [RawZoneData.model_validate(item) for item in data or []]
