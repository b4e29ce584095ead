from __future__ import annotations

import base64
import hashlib
import hmac
import threading
import time
from urllib.parse import unquote

import httpx
import pytest

from iothub_http.services.hub import (
    ConnectionStringError,
    HubClientSettings,
    HubConfigError,
    HubResponse,
    HubTransportError,
    IotHubHttpClient,
    parse_connection_string,
)

KEY = "y2R1N8XvMBRjN9yl+r3Z4vuYhpHMuWc8zvUpF/1e2IM="
SERVICE_CS = f"HostName=Blahblah.azure-devices.net;SharedAccessKeyName=iothubowner;SharedAccessKey={KEY}"


class _Recorder:
    def __init__(self, status: int = 200, body: str = "{}") -> None:
        self.status = status
        self.body = body
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, text=self.body)


@pytest.fixture()
def recorder():
    return _Recorder()


@pytest.fixture()
def client(recorder):
    c = IotHubHttpClient.from_connection_string(SERVICE_CS, transport=httpx.MockTransport(recorder))
    yield c
    c.close()


def _token_fields(request: httpx.Request) -> dict[str, str]:
    value = request.headers["Authorization"]
    assert value.startswith("SharedAccessSignature ")
    return dict(part.split("=", 1) for part in value.split(" ", 1)[1].split("&"))


def test_perform_sets_headers_and_returns_body_and_status(client, recorder):
    url = client.url("/devices/dev1", {"api-version": "2016-11-14"})
    body, status = client.perform("PUT", url, '{"deviceId":"dev1"}')
    assert (body, status) == ("{}", "200 OK")

    request = recorder.requests[0]
    assert request.method == "PUT"
    assert request.url.scheme == "https"
    assert request.url.host == "blahblah.azure-devices.net"
    assert request.url.path == "/devices/dev1"
    assert request.url.query == b"api-version=2016-11-14"
    assert request.headers["Content-Type"] == "application/json"
    assert request.headers["User-Agent"] == "iothub-http/0.1.0"
    assert "If-Match" not in request.headers
    assert request.content == b'{"deviceId":"dev1"}'


def test_token_signs_lowercased_host(client, recorder):
    client.perform("GET", client.url("/devices"))
    fields = _token_fields(recorder.requests[0])
    assert fields["sr"] == "blahblah.azure-devices.net"
    assert fields["skn"] == "iothubowner"
    expected = hmac.new(base64.b64decode(KEY), f"blahblah.azure-devices.net\n{fields['se']}".encode(), hashlib.sha256).digest()
    assert unquote(fields["sig"]) == base64.b64encode(expected).decode()


def test_path_scope_signs_request_path(recorder):
    settings = HubClientSettings(resource_scope="path")
    with IotHubHttpClient.from_connection_string(SERVICE_CS, settings, transport=httpx.MockTransport(recorder)) as client:
        client.perform("GET", client.url("/devices/dev1", {"api-version": "x"}))
    assert _token_fields(recorder.requests[0])["sr"] == "blahblah.azure-devices.net%2Fdevices%2Fdev1"


def test_fresh_token_per_request(client, recorder):
    first = client.authorization("https://h/devices", now=1_000)
    second = client.authorization("https://h/devices", now=2_000)
    assert first != second
    assert first.endswith("&se=4600&skn=iothubowner")


def test_delete_sends_unconditional_if_match(client, recorder):
    client.perform("delete", client.url("/devices/dev1"))
    request = recorder.requests[0]
    assert request.method == "DELETE"
    assert request.headers["If-Match"] == "*"


def test_non_2xx_is_returned_as_data():
    recorder = _Recorder(status=404, body='{"Message":"DeviceNotFound"}')
    with IotHubHttpClient.from_connection_string(SERVICE_CS, transport=httpx.MockTransport(recorder)) as client:
        response = client.perform("DELETE", client.url("/devices/missing"))
    assert response.status == "404 Not Found"
    assert response.status_code == 404
    assert not response.ok
    assert "DeviceNotFound" in response.body


def test_empty_body_on_no_content():
    recorder = _Recorder(status=204, body="")
    with IotHubHttpClient.from_connection_string(SERVICE_CS, transport=httpx.MockTransport(recorder)) as client:
        response = client.perform("DELETE", client.url("/devices/dev1"))
    assert response == HubResponse(body="", status="204 No Content")
    assert response.ok


@pytest.mark.parametrize("error", [httpx.ConnectError, httpx.ReadTimeout])
def test_network_failures_raise_transport_error(error):
    def handler(request: httpx.Request) -> httpx.Response:
        raise error("unreachable", request=request)

    with IotHubHttpClient.from_connection_string(SERVICE_CS, transport=httpx.MockTransport(handler)) as client:
        url = client.url("/devices")
        with pytest.raises(HubTransportError) as excinfo:
            client.perform("GET", url)
    assert excinfo.value.method == "GET"
    assert excinfo.value.url == url
    assert isinstance(excinfo.value.__cause__, error)


def test_pool_is_shared_between_requests(client, recorder):
    pool = client._http
    for _ in range(3):
        client.perform("GET", client.url("/devices"))
    assert client._http is pool
    assert len(recorder.requests) == 3


@pytest.mark.parametrize(
    "connection_string,error",
    [
        (f"SharedAccessKey={KEY}", HubConfigError),
        ("HostName=h", HubConfigError),
        ("HostName=h;SharedAccessKey=***", ConnectionStringError),
    ],
)
def test_configuration_errors_before_any_request(connection_string, error):
    with pytest.raises(error):
        IotHubHttpClient.from_connection_string(connection_string)


def test_is_device():
    creds = parse_connection_string(f"HostName=h;SharedAccessKey={KEY};DeviceId=d1")
    with IotHubHttpClient(creds) as client:
        assert client.is_device
        assert client.host_name == "h"


def test_query_parameters_are_escaped(client):
    url = client.url("/devices", {"top": 3, "api-version": "a&b c"})
    assert url == "https://Blahblah.azure-devices.net/devices?top=3&api-version=a%26b+c"


def test_callers_beyond_the_cap_wait_then_time_out():
    release = threading.Event()
    entered = threading.Event()

    def handler(request: httpx.Request) -> httpx.Response:
        entered.set()
        release.wait(5)
        return httpx.Response(200, text="{}")

    settings = HubClientSettings(max_idle_connections=1, timeout=0.3)
    with IotHubHttpClient.from_connection_string(SERVICE_CS, settings, transport=httpx.MockTransport(handler)) as client:
        url = client.url("/devices")
        outcome: list[object] = []

        def hold() -> None:
            try:
                outcome.append(client.perform("GET", url))
            except HubTransportError as exc:
                outcome.append(exc)

        holder = threading.Thread(target=hold)
        holder.start()
        assert entered.wait(5)
        started = time.monotonic()
        with pytest.raises(HubTransportError) as excinfo:
            client.perform("GET", url)
        assert time.monotonic() - started < 2.0
        assert isinstance(excinfo.value.__cause__, httpx.PoolTimeout)
        release.set()
        holder.join(5)
        assert len(outcome) == 1
        assert client.perform("GET", url).status == "200 OK"
