"""DNS resource handles, listing, creation, modification and deletion.

DNS resources have their own lifecycle and are not tied to machines.
"""

from collections.abc import Iterable

import structlog

from .. import maasapi
from .builder import Builder

logger = structlog.get_logger(__name__)


class DNSResource:
    """Read-only snapshot of a MAAS DNS resource."""

    def __init__(
        self,
        client: maasapi.MAASApiClient,
        data: maasapi.types.RawDNSResourceData,
    ):
        self._client = client
        self.data = data

    def __repr__(self) -> str:
        return f"DNSResource(id={self.id!r}, fqdn={self.fqdn!r})"

    @property
    def id(self) -> int:
        """Numeric DNS resource ID."""
        return self.data.id

    @property
    def fqdn(self) -> str:
        """Fully qualified domain name."""
        return self.data.fqdn

    @property
    def address_ttl(self) -> int | None:
        """TTL of the address records; None means the domain default."""
        return self.data.address_ttl

    @property
    def ip_addresses(self) -> list[str]:
        """Plain IP addresses, skipping entries MAAS reports without one."""
        return [entry.ip for entry in self.data.ip_addresses if entry.ip]

    @property
    def resource_uri(self) -> str:
        """API path of the DNS resource."""
        return self.data.resource_uri

    def get(self) -> "DNSResource":
        """Fetch a fresh snapshot of this DNS resource."""
        return DNSResource(self._client, self._client.get_dns_resource(self.id))

    def modifier(self) -> "DNSResourceModifier":
        """Start an update of this DNS resource."""
        return DNSResourceModifier(self._client, self.id)

    def delete(self) -> None:
        """Delete the DNS resource in MAAS. The handle must not be used after."""
        logger.info("Deleting DNS resource", id=self.id, fqdn=self.fqdn)
        self._client.delete_dns_resource(self.id)


class DNSResources:
    """Collection of MAAS DNS resources."""

    def __init__(self, client: maasapi.MAASApiClient):
        self._client = client

    def list(self, fqdn: str | None = None) -> list[DNSResource]:
        """Fetch DNS resources.

        Args:
            fqdn: If given, only resources with this FQDN are returned.

        Returns:
            List of DNS resource snapshots.
        """
        raw_resources = self._client.list_dns_resources({"fqdn": fqdn})
        return [DNSResource(self._client, raw) for raw in raw_resources]

    def dns_resource(self, resource_id: int) -> DNSResource:
        """Return an unfetched handle; call :meth:`DNSResource.get` to load it."""
        data = maasapi.types.RawDNSResourceData(id=resource_id)
        return DNSResource(self._client, data)

    def builder(self) -> "DNSResourceBuilder":
        """Start creating a DNS resource."""
        return DNSResourceBuilder(self._client)


def _join_addresses(ip_addresses: Iterable[str]) -> str:
    return " ".join(ip_addresses)


class DNSResourceBuilder(Builder):
    """Builds and fires one DNS resource creation."""

    def with_fqdn(self, fqdn: str) -> "DNSResourceBuilder":
        return self._set("fqdn", fqdn)

    def with_address_ttl(self, address_ttl: int) -> "DNSResourceBuilder":
        return self._set("address_ttl", address_ttl)

    def with_ip_addresses(self, ip_addresses: Iterable[str]) -> "DNSResourceBuilder":
        """Addresses for the A/AAAA records, sent space-separated."""
        return self._set("ip_addresses", _join_addresses(ip_addresses))

    def create(self) -> DNSResource:
        """Create the DNS resource and return its snapshot."""
        fields = self._fire()
        logger.info("Creating DNS resource", fqdn=fields.get("fqdn"))
        raw = self._client.create_dns_resource(fields)
        return DNSResource(self._client, raw)


class DNSResourceModifier(Builder):
    """Builds and fires one DNS resource update."""

    def __init__(self, client: maasapi.MAASApiClient, resource_id: int):
        super().__init__(client)
        self.resource_id = resource_id

    def set_fqdn(self, fqdn: str) -> "DNSResourceModifier":
        return self._set("fqdn", fqdn)

    def set_address_ttl(self, address_ttl: int) -> "DNSResourceModifier":
        return self._set("address_ttl", address_ttl)

    def set_ip_addresses(self, ip_addresses: Iterable[str]) -> "DNSResourceModifier":
        return self._set("ip_addresses", _join_addresses(ip_addresses))

    def modify(self) -> DNSResource:
        """Send the changes and return the updated snapshot."""
        fields = self._fire()
        logger.info("Updating DNS resource", id=self.resource_id, fields=fields)
        raw = self._client.update_dns_resource(self.resource_id, fields)
        return DNSResource(self._client, raw)
