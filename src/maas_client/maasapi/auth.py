"""OAuth request signing for the MAAS API.

MAAS API keys have the form ``consumer_key:token_key:token_secret`` and are
used with OAuth 1.0 PLAINTEXT signatures and an empty consumer secret.
"""

from collections.abc import Generator

import httpx
from oauthlib import oauth1

API_KEY_PARTS = 3


def parse_api_key(api_key: str) -> tuple[str, str, str]:
    """Split a MAAS API key into its OAuth components.

    Args:
        api_key: Key as shown in the MAAS UI or by ``maas apikey``.

    Returns:
        Tuple of (consumer_key, token_key, token_secret).

    Raises:
        ValueError: If the key does not have three non-empty parts.
    """
    parts = api_key.strip().split(":")
    if len(parts) != API_KEY_PARTS or not all(parts):
        msg = "MAAS API key must have the form 'consumer_key:token_key:token_secret'"
        raise ValueError(msg)
    consumer_key, token_key, token_secret = parts
    return consumer_key, token_key, token_secret


class MAASOAuth(httpx.Auth):
    """httpx authentication flow that signs each request for MAAS."""

    def __init__(self, api_key: str):
        consumer_key, token_key, token_secret = parse_api_key(api_key)
        self.consumer_key = consumer_key
        self._token_key = token_key
        self._token_secret = token_secret

    def _oauth_client(self) -> oauth1.Client:
        # A fresh client per request gets a fresh nonce and timestamp.
        return oauth1.Client(
            self.consumer_key,
            client_secret="",
            resource_owner_key=self._token_key,
            resource_owner_secret=self._token_secret,
            signature_method=oauth1.SIGNATURE_PLAINTEXT,
        )

    def sign(self, url: str, method: str) -> str:
        """Return the ``Authorization`` header value for a request."""
        _, headers, _ = self._oauth_client().sign(url, http_method=method)
        return headers["Authorization"]

    def auth_flow(
        self,
        request: httpx.Request,
    ) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = self.sign(str(request.url), request.method)
        yield request
