"""Client configuration and logging setup."""

import json
import logging
import os
import pathlib
from collections.abc import Mapping
from typing import TextIO

import pydantic
import structlog

from . import maasapi

ENDPOINT_ENV_VAR = "MAAS_ENDPOINT"
API_KEY_ENV_VAR = "MAAS_API_KEY"
API_VERSION_ENV_VAR = "MAAS_API_VERSION"


class ClientConfig(pydantic.BaseModel):
    """Configuration for a MAAS client set."""

    endpoint: str = pydantic.Field(description="MAAS URL, e.g. http://host:5240/MAAS")
    api_key: str = pydantic.Field(
        description="MAAS API key (consumer_key:token_key:token_secret)",
        repr=False,
    )
    api_version: str = pydantic.Field(
        maasapi.DEFAULT_API_VERSION,
        description="MAAS API version",
    )
    timeout: float = pydantic.Field(
        maasapi.DEFAULT_TIMEOUT,
        description="Request timeout in seconds",
        gt=0,
    )


def configure_logging(log_level_name: str, file: TextIO | None = None) -> None:
    """Configure structlog for logfmt output.

    Args:
        log_level_name: Level name such as ``"debug"`` or ``"INFO"``. Unknown
            names fall back to INFO.
        file: Stream to write to; stdout when omitted.
    """
    log_level = getattr(logging, log_level_name.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.EventRenamer("msg"),
            structlog.processors.format_exc_info,
            structlog.processors.LogfmtRenderer(
                key_order=("timestamp", "level", "msg", "system_id"),
                drop_missing=True,
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=file),
        cache_logger_on_first_use=True,
    )


def _env_overrides(environ: Mapping[str, str]) -> dict[str, str]:
    overrides = {
        "endpoint": environ.get(ENDPOINT_ENV_VAR, ""),
        "api_key": environ.get(API_KEY_ENV_VAR, ""),
        "api_version": environ.get(API_VERSION_ENV_VAR, ""),
    }
    return {field: value for field, value in overrides.items() if value}


def load_config(
    config_path: str,
    environ: Mapping[str, str] | None = None,
) -> ClientConfig:
    """Load configuration from a JSON file.

    Non-empty MAAS_ENDPOINT, MAAS_API_KEY and MAAS_API_VERSION variables take
    precedence over the values in the file, so a checked-in file can omit the
    API key.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
        pydantic.ValidationError: If the merged settings are invalid.
    """
    path = pathlib.Path(config_path)
    if not path.is_file():
        msg = f"MAAS client configuration not found: {config_path}"
        raise FileNotFoundError(msg)

    data = json.loads(path.read_text())
    data.update(_env_overrides(os.environ if environ is None else environ))
    return ClientConfig.model_validate(data)


def config_from_env(environ: Mapping[str, str] | None = None) -> ClientConfig:
    """Build configuration from MAAS_ENDPOINT, MAAS_API_KEY and MAAS_API_VERSION.

    Args:
        environ: Mapping to read instead of ``os.environ``.

    Raises:
        ValueError: If MAAS_ENDPOINT or MAAS_API_KEY is unset or empty.
    """
    values = _env_overrides(os.environ if environ is None else environ)
    if "endpoint" not in values or "api_key" not in values:
        msg = (
            f"{ENDPOINT_ENV_VAR} and {API_KEY_ENV_VAR} environment variables "
            "must be set"
        )
        raise ValueError(msg)

    return ClientConfig.model_validate(values)
