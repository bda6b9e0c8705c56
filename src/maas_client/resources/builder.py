"""Single-shot request builder shared by all resource builders."""

from typing import Any, TypeVar

from ..errors import BuilderAlreadyFiredError
from ..maasapi import MAASApiClient

B = TypeVar("B", bound="Builder")


class Builder:
    """Accumulates request parameters for exactly one API call.

    Setters return the builder so calls can be chained. The terminal action
    of a subclass calls :meth:`_fire` to obtain the parameters; from then
    on, whether the call succeeds or not, every setter and the terminal
    action raise :class:`BuilderAlreadyFiredError`.
    """

    def __init__(self, client: MAASApiClient):
        self._client = client
        self._params: dict[str, Any] = {}
        self._fired = False

    @property
    def fired(self) -> bool:
        """Whether the terminal action has already run."""
        return self._fired

    @property
    def params(self) -> dict[str, Any]:
        """Copy of the parameters accumulated so far."""
        return dict(self._params)

    def _check_not_fired(self) -> None:
        if self._fired:
            msg = f"{type(self).__name__} has already been used; create a new one"
            raise BuilderAlreadyFiredError(msg)

    def _set(self: B, key: str, value: Any) -> B:
        self._check_not_fired()
        self._params[key] = value
        return self

    def _fire(self) -> dict[str, Any]:
        self._check_not_fired()
        self._fired = True
        return dict(self._params)
