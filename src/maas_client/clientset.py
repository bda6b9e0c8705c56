"""Entry point tying the API client to the resource collections."""

from collections.abc import Mapping

import httpx
import structlog

from . import maasapi
from .config import ClientConfig, config_from_env
from .resources.dnsresources import DNSResources
from .resources.machines import Machines
from .resources.zones import Zones

logger = structlog.get_logger(__name__)


class ClientSet:
    """Access to MAAS resource collections through one API client.

    Can be used as a context manager to close the underlying HTTP client.
    """

    def __init__(self, api_client: maasapi.MAASApiClient):
        self.api_client = api_client

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> "ClientSet":
        """Construct a client set from validated config."""
        api_client = maasapi.MAASApiClient(
            endpoint=config.endpoint,
            api_key=config.api_key,
            api_version=config.api_version,
            timeout=config.timeout,
            transport=transport,
        )
        logger.info("Created MAAS client", base_url=api_client.base_url)
        return cls(api_client)

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> "ClientSet":
        """Construct a client set from MAAS_ENDPOINT and MAAS_API_KEY."""
        return cls.from_config(config_from_env(environ), transport=transport)

    def __enter__(self):
        """Return the client set itself."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Close the client set on leaving the block."""
        self.close()

    def close(self) -> None:
        """Close the HTTP client of the calling thread."""
        self.api_client.close()

    def machines(self) -> Machines:
        """Machines collection: listing, lookup and allocation."""
        return Machines(self.api_client)

    def dns_resources(self) -> DNSResources:
        """DNS resources collection: listing, lookup and creation."""
        return DNSResources(self.api_client)

    def zones(self) -> Zones:
        """Availability zones collection."""
        return Zones(self.api_client)


def new_authenticated_client_set(
    endpoint: str,
    api_key: str,
    api_version: str = maasapi.DEFAULT_API_VERSION,
    timeout: float = maasapi.DEFAULT_TIMEOUT,
) -> ClientSet:
    """Create a client set for ``endpoint`` authenticated with ``api_key``."""
    config = ClientConfig(
        endpoint=endpoint,
        api_key=api_key,
        api_version=api_version,
        timeout=timeout,
    )
    return ClientSet.from_config(config)
