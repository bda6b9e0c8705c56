"""List DNS resources, optionally filtered by FQDN.

Usage: python dns_resources.py [FQDN]

Requires MAAS_ENDPOINT and MAAS_API_KEY in the environment.
"""

import sys

import structlog

from maas_client import ClientSet, MAASError, configure_logging

logger = structlog.get_logger(__name__)


def main(argv: list[str]) -> int:
    configure_logging("INFO")
    fqdn = argv[1] if len(argv) > 1 else None
    try:
        client_set = ClientSet.from_env()
    except ValueError as exc:
        logger.error(str(exc))
        return 1

    with client_set:
        try:
            resources = client_set.dns_resources().list(fqdn=fqdn)
        except MAASError:
            logger.exception("Failed to list DNS resources")
            return 1

    for resource in resources:
        print(resource.id, resource.fqdn, resource.address_ttl, *resource.ip_addresses)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
