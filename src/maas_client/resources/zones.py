"""Availability zones."""

from .. import maasapi


class Zone:
    """Read-only snapshot of a MAAS availability zone."""

    def __init__(self, data: maasapi.types.RawZoneData):
        self.data = data

    @property
    def id(self) -> int:
        """Numeric zone ID."""
        return self.data.id

    @property
    def name(self) -> str:
        """Zone name, e.g. "default"."""
        return self.data.name

    @property
    def description(self) -> str:
        """Free-text description; empty when unset."""
        return self.data.description

    def __repr__(self) -> str:
        return f"Zone(name={self.name!r})"


class Zones:
    """Collection of availability zones."""

    def __init__(self, client: maasapi.MAASApiClient):
        self._client = client

    def list(self) -> list[Zone]:
        """Fetch all zones known to MAAS."""
        return [Zone(raw) for raw in self._client.list_zones()]
