"""Raw API response types for the MAAS REST API.

Pydantic models representing the structure of data returned by the MAAS
2.0 API with minimal processing. Models are frozen so that a response, once
validated, is an immutable snapshot. Unknown fields are ignored.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class MachineState(str, Enum):
    """Common values of a machine's ``status_name``."""

    NEW = "New"
    COMMISSIONING = "Commissioning"
    READY = "Ready"
    ALLOCATED = "Allocated"
    DEPLOYING = "Deploying"
    DEPLOYED = "Deployed"
    RELEASING = "Releasing"
    DISK_ERASING = "Disk erasing"
    FAILED_DEPLOYMENT = "Failed deployment"
    BROKEN = "Broken"


class RawModel(BaseModel):
    """Base for all raw response models."""

    model_config = ConfigDict(frozen=True, extra="ignore")


class RawZoneData(RawModel):
    """Availability zone, as embedded in machines or listed on its own."""

    id: int = 0
    name: str = ""
    description: str = ""


class RawResourcePoolData(RawModel):
    """Resource pool embedded in machine data."""

    id: int = 0
    name: str = ""
    description: str = ""


class RawMachineData(RawModel):
    """Raw machine data from the MAAS API.

    ``swap_size`` is in bytes and is None when MAAS uses its default.
    ``memory`` is in MiB.
    """

    # Core identification
    system_id: str = ""
    hostname: str = ""
    fqdn: str = ""
    resource_uri: str = ""

    # Lifecycle
    status_name: str = ""
    status_message: str | None = None
    power_state: str = ""

    # Placement
    zone: RawZoneData | None = None
    pool: RawResourcePoolData | None = None

    # Networking
    ip_addresses: list[str] = Field(default_factory=list)

    # Operating system
    osystem: str = ""
    distro_series: str = ""
    swap_size: int | None = None

    # Hardware
    architecture: str = ""
    cpu_count: int = 0
    memory: int = 0
    tag_names: list[str] = Field(default_factory=list)


class RawIPAddressData(RawModel):
    """IP address entry of a DNS resource."""

    id: int | None = None
    ip: str | None = None


class RawDNSResourceData(RawModel):
    """Raw DNS resource data from the MAAS API.

    ``address_ttl`` is None when the domain's TTL applies.
    """

    id: int = 0
    fqdn: str = ""
    address_ttl: int | None = None
    ip_addresses: list[RawIPAddressData] = Field(default_factory=list)
    resource_uri: str = ""
