"""courier: composable HTTP client middleware."""

import importlib.metadata
import logging

from courier.adapters import HttpxAdapter
from courier.client import Client, create_client
from courier.config import FrozenConfig, ResolvedConfig, resolve_config
from courier.core.exceptions import (
    CourierError,
    HTTPStatusError,
    InvalidPipelineError,
    InvariantViolationError,
    MiddlewareOptionsError,
    MockError,
)
from courier.core.multipart import Multipart
from courier.core.query import build_url, encode_query
from courier.core.types import Env, Failure, Method, Result, Success
from courier.middleware import (
    JSON,
    BaseUrl,
    DecodeFormUrlencoded,
    EncodeFormUrlencoded,
    FormUrlencoded,
    Headers,
    Logger,
    RaiseOnStatus,
    Retry,
)
from courier.mock import MockAdapter
from courier.pipeline import Adapter, Middleware, Next, build_chain, run
from courier.telemetry import TelemetryContext, TelemetryReporter

# Version handling
try:
    __version__ = importlib.metadata.version("courier-http")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

# Set up a null handler for the library's root logger.
# This prevents 'No handler found' errors if the consuming app has no logging configured.
logging.getLogger(__name__).addHandler(logging.NullHandler())

# Public API
__all__ = [  # noqa: RUF022
    # Clients
    "Client",
    "create_client",
    # Pipeline
    "Middleware",
    "Adapter",
    "Next",
    "build_chain",
    "run",
    # Core types
    "Env",
    "Method",
    "Result",
    "Success",
    "Failure",
    "Multipart",
    "encode_query",
    "build_url",
    # Stages
    "BaseUrl",
    "DecodeFormUrlencoded",
    "EncodeFormUrlencoded",
    "FormUrlencoded",
    "Headers",
    "JSON",
    "Logger",
    "RaiseOnStatus",
    "Retry",
    # Adapters
    "HttpxAdapter",
    "MockAdapter",
    # Configuration
    "FrozenConfig",
    "ResolvedConfig",
    "resolve_config",
    # Telemetry (extension points)
    "TelemetryContext",
    "TelemetryReporter",
    # Exceptions
    "CourierError",
    "HTTPStatusError",
    "InvalidPipelineError",
    "InvariantViolationError",
    "MiddlewareOptionsError",
    "MockError",
]
