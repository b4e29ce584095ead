"""Minimal IoT Hub HTTP client signing every request with a SAS token."""
from iothub_http.services.hub import (
    ConnectionString,
    HubClientSettings,
    HubResponse,
    IotHubHttpClient,
    IotHubService,
    parse_connection_string,
)

__version__ = "0.1.0"

__all__ = [
    "ConnectionString",
    "HubClientSettings",
    "HubResponse",
    "IotHubHttpClient",
    "IotHubService",
    "parse_connection_string",
    "__version__",
]
