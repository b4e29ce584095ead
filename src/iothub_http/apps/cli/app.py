# src/iothub_http/apps/cli/app.py
"""``iothub-http`` command line: one command per hub operation plus a demo run."""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from iothub_http.config import const
from iothub_http.services.hub import (
    HubConfigError,
    HubResponse,
    HubTransportError,
    IotHubService,
    generate_sas_token,
    load_settings,
)

_log = logging.getLogger("iothub_http.cli")

app = typer.Typer(help="Talk to an IoT Hub over HTTPS with SAS authentication.")
device_app = typer.Typer(help="Device registry (service connection string).")
message_app = typer.Typer(help="Device messages (device connection string).")
app.add_typer(device_app, name="device")
app.add_typer(message_app, name="message")

DEFAULT_DEVICE_ID = "testDevice1"


@dataclass
class _State:
    connection_string: str | None
    config: Path | None


@app.callback()
def main(
    ctx: typer.Context,
    connection_string: Optional[str] = typer.Option(
        None, "--connection-string", "-c", envvar=const.CONNECTION_STRING_ENV, help="HostName=...;SharedAccessKey=..."
    ),
    config: Optional[Path] = typer.Option(None, "--config", help="YAML file with client settings"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log requests"),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = _State(connection_string=connection_string, config=config)


def _service(ctx: typer.Context) -> IotHubService:
    state: _State = ctx.obj
    if not state.connection_string:
        typer.echo(f"No connection string: pass --connection-string or set {const.CONNECTION_STRING_ENV}", err=True)
        raise typer.Exit(2)
    try:
        settings = load_settings(state.config)
        return IotHubService.from_connection_string(state.connection_string, settings)
    except HubConfigError as exc:
        typer.echo(f"Invalid configuration: {exc}", err=True)
        raise typer.Exit(2) from exc


def _run(ctx: typer.Context, call) -> None:
    with _service(ctx) as svc:
        try:
            _print(call(svc))
        except HubConfigError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(2) from exc
        except HubTransportError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(1) from exc


def _print(response: HubResponse) -> None:
    typer.echo(f"{response.body}, {response.status}")


@app.command("token")
def cmd_token(
    ctx: typer.Context,
    resource: Optional[str] = typer.Option(None, "--resource", help="Resource to sign (defaults to the host name)"),
    ttl: Optional[int] = typer.Option(None, "--ttl", help="Lifetime in seconds"),
):
    """Print a SAS token for the configured hub."""
    with _service(ctx) as svc:
        creds = svc.client.credentials
        try:
            token = generate_sas_token(
                resource or creds.host_name,
                creds.shared_access_key,
                key_name=creds.shared_access_key_name,
                ttl=ttl or svc.client.settings.token_ttl,
            )
        except HubConfigError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(2) from exc
    typer.echo(token)


@device_app.command("create")
def device_create(ctx: typer.Context, device_id: str):
    _run(ctx, lambda svc: svc.create_device(device_id))


@device_app.command("get")
def device_get(ctx: typer.Context, device_id: str):
    _run(ctx, lambda svc: svc.get_device(device_id))


@device_app.command("delete")
def device_delete(ctx: typer.Context, device_id: str):
    _run(ctx, lambda svc: svc.delete_device(device_id))


@device_app.command("purge")
def device_purge(ctx: typer.Context, device_id: str):
    """Purge pending cloud-to-device commands."""
    _run(ctx, lambda svc: svc.purge_commands(device_id))


@device_app.command("list")
def device_list(ctx: typer.Context, top: int = typer.Option(10, "--top", min=1)):
    _run(ctx, lambda svc: svc.list_devices(top))


@message_app.command("send")
def message_send(ctx: typer.Context, payload: str):
    _run(ctx, lambda svc: svc.send_message(payload))


@message_app.command("receive")
def message_receive(ctx: typer.Context):
    _run(ctx, lambda svc: svc.receive_message())


@app.command("demo")
def cmd_demo(
    ctx: typer.Context,
    device_id: str = typer.Option(DEFAULT_DEVICE_ID, "--device-id", help="Device used by the provisioning run"),
    count: int = typer.Option(10, "--count", help="Messages sent by the message run"),
    interval: float = typer.Option(0.0, "--interval", help="Seconds between messages"),
):
    """Provisioning run for service credentials, message run for device credentials."""
    with _service(ctx) as svc:
        try:
            if not svc.is_device:
                _log.info("No DeviceId in connection string, running provisioning test.")
                _print(svc.list_devices(10))
                _print(svc.create_device(device_id))
                _print(svc.get_device(device_id))
                _print(svc.purge_commands(device_id))
            else:
                _log.info("DeviceId defined in connection string, running message test.")
                _print(svc.receive_message())
                for i in range(count):
                    _print(svc.send_message(json.dumps({"count": i})))
                    if interval:
                        time.sleep(interval)
        except HubTransportError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(1) from exc


def run() -> None:
    app()


if __name__ == "__main__":
    run()


__all__ = ["app", "run"]
