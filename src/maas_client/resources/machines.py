"""Machine handles and the allocate, modify, deploy and release builders.

Each builder fires a single MAAS request and returns a new :class:`Machine`
snapshot. Nothing here enforces the order of operations; MAAS validates
every transition itself.

Example:
    machine = client_set.machines().allocator().with_zone("az1").allocate()
    machine = machine.modifier().set_swap_size(0).update()
    machine = (
        machine.deployer()
        .set_os_system("ubuntu")
        .set_distro_series("noble")
        .set_ephemeral_deploy(True)
        .deploy()
    )
    machine = machine.wait_for_state(MachineState.DEPLOYED, timeout=1800)
    machine.releaser().with_comment("done").release()
"""

import base64
import time
from collections.abc import Iterable

import httpx
import structlog

from .. import maasapi
from ..errors import (
    InvalidConstraintError,
    MAASAPIError,
    NoEligibleMachineError,
    WaitForStateTimeout,
)
from ..maasapi.types import MachineState
from .builder import Builder
from .zones import Zone

logger = structlog.get_logger(__name__)

DEFAULT_WAIT_TIMEOUT = 1800.0
DEFAULT_POLL_INTERVAL = 10.0

_ALLOCATION_ERRORS: dict[int, type[MAASAPIError]] = {
    httpx.codes.CONFLICT: NoEligibleMachineError,
    httpx.codes.BAD_REQUEST: InvalidConstraintError,
    httpx.codes.NOT_FOUND: InvalidConstraintError,
}


def _state_name(state: str | MachineState) -> str:
    return state.value if isinstance(state, MachineState) else state


class Machine:
    """Handle on one MAAS machine.

    Accessors read from the snapshot returned by the request that produced
    this handle; they never touch the network. Use :meth:`get` for a fresh
    snapshot.
    """

    def __init__(
        self,
        client: maasapi.MAASApiClient,
        data: maasapi.types.RawMachineData,
    ):
        self._client = client
        self.data = data

    def __repr__(self) -> str:
        return f"Machine(system_id={self.system_id!r}, state={self.state!r})"

    @property
    def system_id(self) -> str:
        """MAAS system ID, e.g. "e37xxm"."""
        return self.data.system_id

    @property
    def hostname(self) -> str:
        """Short hostname."""
        return self.data.hostname

    @property
    def fqdn(self) -> str:
        """Fully qualified domain name."""
        return self.data.fqdn

    @property
    def state(self) -> str:
        """Deployment state, e.g. "Allocated" or "Deployed"."""
        return self.data.status_name

    @property
    def status_message(self) -> str | None:
        """Latest status event text, if MAAS reports one."""
        return self.data.status_message

    @property
    def power_state(self) -> str:
        """Power state as MAAS reports it, e.g. "on"."""
        return self.data.power_state

    @property
    def zone(self) -> Zone | None:
        """Availability zone, or None on an unfetched handle."""
        return Zone(self.data.zone) if self.data.zone is not None else None

    @property
    def pool(self) -> str:
        """Name of the resource pool, empty when unknown."""
        return self.data.pool.name if self.data.pool is not None else ""

    @property
    def ip_addresses(self) -> list[str]:
        """Copy of the addresses assigned to the machine."""
        return list(self.data.ip_addresses)

    @property
    def os_system(self) -> str:
        """Operating system deployed or selected, e.g. "ubuntu"."""
        return self.data.osystem

    @property
    def distro_series(self) -> str:
        """Release of the operating system, e.g. "noble"."""
        return self.data.distro_series

    @property
    def swap_size(self) -> int | None:
        """Swap size in bytes; None lets MAAS choose."""
        return self.data.swap_size

    @property
    def architecture(self) -> str:
        """Architecture, e.g. "amd64/generic"."""
        return self.data.architecture

    @property
    def cpu_count(self) -> int:
        """Number of CPU cores."""
        return self.data.cpu_count

    @property
    def memory(self) -> int:
        """Memory in MiB."""
        return self.data.memory

    @property
    def tags(self) -> list[str]:
        """Copy of the tag names."""
        return list(self.data.tag_names)

    @property
    def resource_uri(self) -> str:
        """API path of the machine."""
        return self.data.resource_uri

    def get(self) -> "Machine":
        """Fetch a fresh snapshot of this machine."""
        return Machine(self._client, self._client.get_machine(self.system_id))

    def modifier(self) -> "Modifier":
        """Start an update of this machine."""
        return Modifier(self._client, self.system_id)

    def deployer(self) -> "Deployer":
        """Start a deployment of this machine."""
        return Deployer(self._client, self.system_id)

    def releaser(self) -> "Releaser":
        """Start a release of this machine."""
        return Releaser(self._client, self.system_id)

    def power_on(self, comment: str | None = None) -> "Machine":
        """Ask MAAS to power the machine on. Returns once MAAS accepts."""
        logger.info("Powering on machine", system_id=self.system_id)
        raw = self._client.power_on_machine(self.system_id, {"comment": comment})
        return Machine(self._client, raw)

    def power_off(self, comment: str | None = None) -> "Machine":
        """Ask MAAS to power the machine off. Returns once MAAS accepts."""
        logger.info("Powering off machine", system_id=self.system_id)
        raw = self._client.power_off_machine(self.system_id, {"comment": comment})
        return Machine(self._client, raw)

    def wait_for_state(
        self,
        *states: str,
        timeout: float = DEFAULT_WAIT_TIMEOUT,
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> "Machine":
        """Poll MAAS until the machine reaches one of ``states``.

        Deployment and release are accepted synchronously but completed by
        MAAS in the background; this is how callers wait for completion.

        Args:
            states: Acceptable values of :attr:`state`, e.g.
                ``MachineState.DEPLOYED``.
            timeout: Seconds to keep polling before giving up.
            interval: Seconds to sleep between polls.

        Returns:
            The first snapshot whose state is one of ``states``.

        Raises:
            ValueError: If no state is given.
            WaitForStateTimeout: If ``timeout`` elapses first.
        """
        if not states:
            msg = "at least one state is required"
            raise ValueError(msg)

        deadline = time.monotonic() + timeout
        while True:
            machine = self.get()
            if machine.state in states:
                return machine
            if time.monotonic() >= deadline:
                wanted = ", ".join(_state_name(s) for s in states)
                msg = (
                    f"Machine {self.system_id} did not reach {wanted} within "
                    f"{timeout}s (last state: {machine.state})"
                )
                raise WaitForStateTimeout(msg)
            logger.debug(
                "Waiting for machine state",
                system_id=self.system_id,
                state=machine.state,
                wanted=[_state_name(s) for s in states],
            )
            time.sleep(interval)


class Machines:
    """Collection of MAAS machines."""

    def __init__(self, client: maasapi.MAASApiClient):
        self._client = client

    def list(self, **filters: str) -> list[Machine]:
        """Fetch machines, optionally filtered (e.g., ``zone="az1"``)."""
        return [
            Machine(self._client, raw)
            for raw in self._client.list_machines(filters)
        ]

    def machine(self, system_id: str) -> Machine:
        """Return an unfetched handle; call :meth:`Machine.get` to load it."""
        data = maasapi.types.RawMachineData(system_id=system_id)
        return Machine(self._client, data)

    def allocator(self) -> "Allocator":
        """Start an allocation request."""
        return Allocator(self._client)


class Allocator(Builder):
    """Builds and fires one machine allocation request."""

    def with_zone(self, zone: str) -> "Allocator":
        return self._set("zone", zone)

    def with_system_id(self, system_id: str) -> "Allocator":
        return self._set("system_id", system_id)

    def with_hostname(self, hostname: str) -> "Allocator":
        return self._set("name", hostname)

    def with_pool(self, pool: str) -> "Allocator":
        return self._set("pool", pool)

    def with_architecture(self, architecture: str) -> "Allocator":
        return self._set("arch", architecture)

    def with_min_cpu_count(self, cpu_count: int) -> "Allocator":
        return self._set("cpu_count", cpu_count)

    def with_min_memory(self, memory_mb: int) -> "Allocator":
        """Require at least ``memory_mb`` MiB of memory."""
        return self._set("mem", memory_mb)

    def with_tags(self, tags: Iterable[str]) -> "Allocator":
        """Require every one of ``tags``."""
        return self._set("tags", ",".join(tags))

    def allocate(self) -> Machine:
        """Allocate a machine matching the accumulated constraints.

        Raises:
            NoEligibleMachineError: If no available machine matches.
            InvalidConstraintError: If MAAS rejects a constraint value.
            MAASAPIError: For any other error response.
        """
        constraints = self._fire()
        logger.info("Allocating machine", constraints=constraints)
        try:
            raw = self._client.allocate_machine(constraints)
        except MAASAPIError as exc:
            error_class = _ALLOCATION_ERRORS.get(exc.status_code)
            if error_class is None:
                raise
            raise error_class(
                exc.status_code,
                exc.message,
                exc.method,
                exc.path,
            ) from exc

        logger.info("Allocated machine", system_id=raw.system_id, hostname=raw.hostname)
        return Machine(self._client, raw)


class Modifier(Builder):
    """Builds and fires one machine update."""

    def __init__(self, client: maasapi.MAASApiClient, system_id: str):
        super().__init__(client)
        self.system_id = system_id

    def set_swap_size(self, swap_size: int) -> "Modifier":
        """Swap size in bytes; 0 disables swap."""
        return self._set("swap_size", swap_size)

    def set_hostname(self, hostname: str) -> "Modifier":
        return self._set("hostname", hostname)

    def set_description(self, description: str) -> "Modifier":
        return self._set("description", description)

    def update(self) -> Machine:
        """Send the changes and return the updated snapshot."""
        fields = self._fire()
        logger.info("Updating machine", system_id=self.system_id, fields=fields)
        raw = self._client.update_machine(self.system_id, fields)
        return Machine(self._client, raw)


class Deployer(Builder):
    """Builds and fires one deployment request.

    Ephemeral deployments run the OS from memory; persistent deployments
    (the MAAS default) install it to disk.
    """

    def __init__(self, client: maasapi.MAASApiClient, system_id: str):
        super().__init__(client)
        self.system_id = system_id

    def set_os_system(self, os_system: str) -> "Deployer":
        return self._set("osystem", os_system)

    def set_distro_series(self, distro_series: str) -> "Deployer":
        return self._set("distro_series", distro_series)

    def set_ephemeral_deploy(self, ephemeral: bool) -> "Deployer":
        return self._set("ephemeral_deploy", ephemeral)

    def set_hwe_kernel(self, hwe_kernel: str) -> "Deployer":
        return self._set("hwe_kernel", hwe_kernel)

    def set_user_data(self, user_data: bytes | str) -> "Deployer":
        """Cloud-init user data; encoded to base64 before sending."""
        if isinstance(user_data, str):
            user_data = user_data.encode()
        return self._set("user_data", base64.b64encode(user_data).decode("ascii"))

    def deploy(self) -> Machine:
        """Request deployment.

        Returns as soon as MAAS has accepted the request, usually with the
        machine in the Deploying state. Use :meth:`Machine.wait_for_state`
        to wait for Deployed.
        """
        options = self._fire()
        logger.info(
            "Deploying machine",
            system_id=self.system_id,
            osystem=options.get("osystem"),
            distro_series=options.get("distro_series"),
            ephemeral=bool(options.get("ephemeral_deploy", False)),
        )
        raw = self._client.deploy_machine(self.system_id, options)
        return Machine(self._client, raw)


class Releaser(Builder):
    """Builds and fires one release request.

    Releasing a machine that is not allocated is rejected by MAAS and
    raises :class:`~maas_client.errors.MAASAPIError`.
    """

    def __init__(self, client: maasapi.MAASApiClient, system_id: str):
        super().__init__(client)
        self.system_id = system_id

    def with_comment(self, comment: str) -> "Releaser":
        return self._set("comment", comment)

    def with_erase(self, erase: bool = True) -> "Releaser":
        """Erase the disks before the machine returns to Ready."""
        return self._set("erase", erase)

    def with_force(self, force: bool = True) -> "Releaser":
        """Release even if the machine is in a state MAAS would refuse."""
        return self._set("force", force)

    def release(self) -> Machine:
        """Release the machine and return the snapshot MAAS sends back."""
        options = self._fire()
        logger.info("Releasing machine", system_id=self.system_id)
        raw = self._client.release_machine(self.system_id, options)
        return Machine(self._client, raw)
