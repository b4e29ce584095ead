"""HTTP access to an IoT Hub authenticated with Shared Access Signatures."""
from .connection_string import ConnectionString, parse_connection_string
from .errors import (
    ConnectionStringError,
    DeviceRecordError,
    DeviceScopeError,
    HubConfigError,
    HubTransportError,
    IotHubError,
)
from .sas import SasToken, build_sas_token, generate_sas_token, resource_for
from .settings import HubClientSettings, load_settings
from .client import HubResponse, IotHubHttpClient
from .service import IotHubService
from .models import AuthenticationMechanism, Device, SymmetricKey, X509Thumbprint

__all__ = [
    "ConnectionString",
    "parse_connection_string",
    "IotHubError",
    "HubConfigError",
    "ConnectionStringError",
    "DeviceScopeError",
    "HubTransportError",
    "DeviceRecordError",
    "SasToken",
    "build_sas_token",
    "generate_sas_token",
    "resource_for",
    "HubClientSettings",
    "load_settings",
    "HubResponse",
    "IotHubHttpClient",
    "IotHubService",
    "AuthenticationMechanism",
    "Device",
    "SymmetricKey",
    "X509Thumbprint",
]
