"""MAAS REST API client package.

Provides a lightweight HTTP client for the MAAS REST API that returns
raw, validated API response types with minimal processing. The fluent
builder layer is implemented in the resources package.

Exports:
    MAASApiClient: HTTP client with OAuth signing and error handling.
    MAASOAuth: httpx authentication flow for MAAS API keys.
    types: Module containing Pydantic models for API responses.
    DEFAULT_API_VERSION: Default MAAS API version.
    DEFAULT_TIMEOUT: Default HTTP request timeout.
"""

from . import types
from .auth import MAASOAuth, parse_api_key
from .client import (
    DEFAULT_API_VERSION,
    DEFAULT_TIMEOUT,
    MAASApiClient,
)

__all__ = [
    "DEFAULT_API_VERSION",
    "DEFAULT_TIMEOUT",
    "MAASApiClient",
    "MAASOAuth",
    "parse_api_key",
    "types",
]
