"""Deploy a machine in ephemeral and then persistent mode, releasing each.

Every machine this program allocates is released again, whether its
deployment succeeded, failed in MAAS or timed out.

Requires MAAS_ENDPOINT and MAAS_API_KEY in the environment.
"""

import sys

import structlog

from maas_client import ClientSet, MAASError, MachineState, configure_logging
from maas_client.resources.machines import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_WAIT_TIMEOUT,
    Machine,
)

logger = structlog.get_logger(__name__)


def deploy_machine(
    machine: Machine,
    ephemeral: bool,
    timeout: float = DEFAULT_WAIT_TIMEOUT,
    interval: float = DEFAULT_POLL_INTERVAL,
) -> Machine:
    """Configure and deploy an allocated machine and wait for the outcome.

    Returns the snapshot in either Deployed or Failed deployment.
    """
    machine = machine.modifier().set_swap_size(0).update()

    machine = (
        machine.deployer()
        .set_os_system("ubuntu")
        .set_distro_series("noble")
        .set_ephemeral_deploy(ephemeral)
        .deploy()
    )
    logger.info("Deployment accepted", system_id=machine.system_id, state=machine.state)

    return machine.wait_for_state(
        MachineState.DEPLOYED,
        MachineState.FAILED_DEPLOYMENT,
        timeout=timeout,
        interval=interval,
    )


def release_machine(machine: Machine) -> None:
    try:
        machine.releaser().with_comment("Example cleanup").release()
    except MAASError as exc:
        logger.warning(
            "Failed to release machine",
            system_id=machine.system_id,
            error=str(exc),
        )
    else:
        logger.info("Released machine", system_id=machine.system_id)


def deploy_and_release(
    client_set: ClientSet,
    ephemeral: bool,
    timeout: float = DEFAULT_WAIT_TIMEOUT,
    interval: float = DEFAULT_POLL_INTERVAL,
) -> bool:
    """Allocate and deploy one machine, then release it.

    Returns:
        True if the machine reached Deployed.
    """
    mode = "ephemeral" if ephemeral else "persistent"
    try:
        machine = client_set.machines().allocator().allocate()
    except MAASError:
        logger.exception("Failed to allocate machine", mode=mode)
        return False
    logger.info("Allocated machine", system_id=machine.system_id, mode=mode)

    deployed = False
    try:
        result = deploy_machine(machine, ephemeral, timeout=timeout, interval=interval)
        deployed = result.state == MachineState.DEPLOYED
        if deployed:
            logger.info("Deployed machine", system_id=result.system_id, mode=mode)
        else:
            logger.error(
                "Deployment failed",
                system_id=result.system_id,
                mode=mode,
                status_message=result.status_message,
            )
    except MAASError:
        logger.exception(
            "Failed to deploy machine",
            system_id=machine.system_id,
            mode=mode,
        )
    finally:
        release_machine(machine)
    return deployed


def run(
    client_set: ClientSet,
    timeout: float = DEFAULT_WAIT_TIMEOUT,
    interval: float = DEFAULT_POLL_INTERVAL,
) -> int:
    """Try both deployment modes; exit status 1 if either did not deploy."""
    results = [
        deploy_and_release(client_set, ephemeral, timeout=timeout, interval=interval)
        for ephemeral in (True, False)
    ]
    return 0 if all(results) else 1


def main() -> int:
    configure_logging("INFO")
    try:
        client_set = ClientSet.from_env()
    except ValueError as exc:
        logger.error(str(exc))
        return 1

    with client_set:
        return run(client_set)


if __name__ == "__main__":
    sys.exit(main())
