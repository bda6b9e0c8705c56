"""Exceptions raised by the MAAS client.

Remote failures are reported as :class:`MAASAPIError` (or one of its
allocation-specific subclasses). Transport failures are not wrapped: the
``httpx.HTTPError`` raised by the transport reaches the caller unchanged.
"""


class MAASError(Exception):
    """Base class for all MAAS client errors."""


class MAASAPIError(MAASError):
    """Raised when MAAS answers a request with a non-2xx status.

    Attributes:
        status_code: HTTP status code returned by MAAS.
        message: Response body, which MAAS uses for its error text.
        method: HTTP method of the failed request.
        path: API path of the failed request, relative to the API root.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        method: str = "",
        path: str = "",
    ):
        self.status_code = status_code
        self.message = message
        self.method = method
        self.path = path
        super().__init__(
            f"MAAS API error {status_code} for {method} {path}: {message}",
        )


class NoEligibleMachineError(MAASAPIError):
    """Raised when no available machine matches the allocation constraints."""


class InvalidConstraintError(MAASAPIError):
    """Raised when MAAS rejects an allocation constraint value."""


class BuilderAlreadyFiredError(MAASError):
    """Raised when a builder is used again after its terminal action."""


class WaitForStateTimeout(MAASError):
    """Raised when a machine does not reach the expected state in time."""
