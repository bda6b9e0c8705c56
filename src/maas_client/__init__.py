"""MAAS client.

Client library for the MAAS bare-metal provisioning REST API. Machines are
allocated, modified, deployed and released through single-shot builders;
DNS resources and zones are managed through the same client set.
"""

from .clientset import ClientSet, new_authenticated_client_set
from .config import ClientConfig, config_from_env, configure_logging, load_config
from .errors import (
    BuilderAlreadyFiredError,
    InvalidConstraintError,
    MAASAPIError,
    MAASError,
    NoEligibleMachineError,
    WaitForStateTimeout,
)
from .maasapi.types import MachineState

__version__ = "0.1.0"

__all__ = [
    "BuilderAlreadyFiredError",
    "ClientConfig",
    "ClientSet",
    "InvalidConstraintError",
    "MAASAPIError",
    "MAASError",
    "MachineState",
    "NoEligibleMachineError",
    "WaitForStateTimeout",
    "config_from_env",
    "configure_logging",
    "load_config",
    "new_authenticated_client_set",
]
