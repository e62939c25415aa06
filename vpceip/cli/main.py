# vpceip CLI — main entry point
"""vpceip CLI — manage VPC Elastic IPs from the terminal."""

from __future__ import annotations

from typing import Optional

import click
from rich.markup import escape
from rich.table import Table

from ..common import console, die, init_logging, print_info, print_step, print_success, print_warning
from ..config import settings
from ..models import ElasticIPResource

ERROR_LOG = "errors.jsonl"


def _build_adapter(region: str, create_timeout: Optional[float] = None, delete_timeout: Optional[float] = None):
    from ..providers.base import Timeouts
    from ..providers.vpc.adapter import VpcEIPAdapter
    from ..providers.vpc.client import VpcClientProvider

    timeouts = Timeouts.from_settings()
    if create_timeout:
        timeouts.create = create_timeout
    if delete_timeout:
        timeouts.delete = delete_timeout
    return VpcEIPAdapter(VpcClientProvider.from_settings(settings), region=region, timeouts=timeouts)


def _show_resource(eip: ElasticIPResource) -> None:
    table = Table(title=f"Elastic IP {eip.id}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Status", eip.status)
    table.add_row("Region", eip.region)
    table.add_row("Type", eip.publicip.type)
    table.add_row("Address", eip.publicip.ip_address)
    table.add_row("Port", eip.publicip.port_id or "[dim]unbound[/dim]")
    table.add_row("Bandwidth ID", eip.bandwidth_id)
    table.add_row("Bandwidth", f"{eip.bandwidth.name} ({eip.bandwidth.size} Mbit/s)")
    table.add_row("Share type", eip.bandwidth.share_type)
    table.add_row("Charge mode", eip.bandwidth.charge_mode)
    console.print(table)


def _parse_value_specs(pairs: tuple[str, ...]) -> dict[str, str]:
    specs: dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--value-spec")
        k, v = pair.split("=", 1)
        specs[k.strip()] = v.strip()
    return specs


@click.group()
@click.version_option(version=settings.app_version, prog_name="vpceip")
@click.option("--debug", is_flag=True, default=False, help="Write debug logs to the log directory")
def cli(debug: bool):
    """vpceip — allocate and manage Elastic IPs through the VPC v1 API."""
    from ..services.errors import error_tracker

    error_tracker.attach(settings.log_dir / ERROR_LOG)
    if debug or settings.debug:
        log_file = init_logging(debug=True)
        print_info(f"Logging to {log_file}")


@cli.command()
@click.option("--region", default="", help="Region (defaults to VPCEIP_REGION)")
@click.option("--type", "ip_type", required=True, help="EIP type, e.g. 5_bgp")
@click.option("--ip-address", default="", help="Request a specific address")
@click.option("--port-id", default="", help="Port to bind after allocation")
@click.option("--bandwidth-name", required=True)
@click.option("--bandwidth-size", required=True, type=int, help="Mbit/s")
@click.option("--share-type", required=True, help="PER or WHOLE")
@click.option("--charge-mode", default="", help="bandwidth or traffic")
@click.option("--value-spec", "value_specs", multiple=True, help="Extra create option KEY=VALUE")
@click.option("--timeout", type=float, default=None, help="Create timeout in seconds")
def create(
    region: str, ip_type: str, ip_address: str, port_id: str,
    bandwidth_name: str, bandwidth_size: int, share_type: str, charge_mode: str,
    value_specs: tuple[str, ...], timeout: Optional[float],
):
    """Allocate a new Elastic IP."""
    from ..models import ElasticIPConfig

    config = ElasticIPConfig(
        region=region,
        publicip={"type": ip_type, "ip_address": ip_address, "port_id": port_id},
        bandwidth={
            "name": bandwidth_name, "size": bandwidth_size,
            "share_type": share_type, "charge_mode": charge_mode,
        },
        value_specs=_parse_value_specs(value_specs),
    )
    adapter = _build_adapter(region, create_timeout=timeout)

    print_step("Allocating Elastic IP...")
    eip = adapter.create(config)
    print_success(f"Elastic IP {eip.id} allocated: {eip.public_ip_address}")
    _show_resource(eip)


@cli.command()
@click.argument("eip_id")
@click.option("--region", default="", help="Region (defaults to VPCEIP_REGION)")
def show(eip_id: str, region: str):
    """Show an Elastic IP and its bandwidth."""
    eip = _build_adapter(region).read(eip_id, region)
    if eip is None:
        print_warning(f"Elastic IP {eip_id} not found")
        raise SystemExit(1)
    _show_resource(eip)


@cli.command()
@click.argument("eip_id")
@click.option("--region", default="", help="Region (defaults to VPCEIP_REGION)")
@click.option("--bandwidth-name", default=None)
@click.option("--bandwidth-size", default=None, type=int, help="Mbit/s")
@click.option("--port-id", default=None, help="Port to bind")
@click.option("--unbind", is_flag=True, default=False, help="Unbind the current port")
def update(
    eip_id: str, region: str, bandwidth_name: Optional[str],
    bandwidth_size: Optional[int], port_id: Optional[str], unbind: bool,
):
    """Resize/rename the bandwidth or change the bound port."""
    adapter = _build_adapter(region)
    current = adapter.read(eip_id, region)
    if current is None:
        print_warning(f"Elastic IP {eip_id} not found")
        raise SystemExit(1)

    bandwidth = current.bandwidth.model_copy(update={
        k: v for k, v in (("name", bandwidth_name), ("size", bandwidth_size)) if v is not None
    })
    publicip = current.publicip
    if unbind:
        publicip = publicip.model_copy(update={"port_id": ""})
    elif port_id is not None:
        publicip = publicip.model_copy(update={"port_id": port_id})

    desired = current.model_copy(update={"bandwidth": bandwidth, "publicip": publicip})
    result = adapter.update(eip_id, current, desired)
    if result is None:
        print_warning(f"Elastic IP {eip_id} disappeared during update")
        raise SystemExit(1)
    if result is current:
        print_info("Nothing to change.")
    else:
        print_success(f"Elastic IP {eip_id} updated")
    _show_resource(result)


@cli.command()
@click.argument("eip_id")
@click.option("--region", default="", help="Region (defaults to VPCEIP_REGION)")
@click.option("--timeout", type=float, default=None, help="Delete timeout in seconds")
@click.confirmation_option(prompt="Release this Elastic IP?")
def delete(eip_id: str, region: str, timeout: Optional[float]):
    """Release an Elastic IP and its bandwidth."""
    print_step(f"Releasing Elastic IP {eip_id}...")
    _build_adapter(region, delete_timeout=timeout).delete(eip_id, region)
    print_success(f"Elastic IP {eip_id} released")


@cli.command()
@click.option("--region", default="", help="Region (defaults to VPCEIP_REGION)")
def endpoint(region: str):
    """Print the resolved VPC v1 endpoint for a region."""
    from ..providers.vpc.client import VpcClientProvider

    client = VpcClientProvider.from_settings(settings).vpc_v1_client(region or settings.region)
    click.echo(client.endpoint)


@cli.command()
@click.option("--resource", "resource_id", default=None, help="Only failures of this EIP")
@click.option("--operation", default=None, type=click.Choice(["create", "read", "update", "delete", "import"]))
@click.option("--limit", default=20, show_default=True)
@click.option("--clear", is_flag=True, default=False, help="Forget all recorded failures")
def errors(resource_id: Optional[str], operation: Optional[str], limit: int, clear: bool):
    """List recent failed operations, newest first."""
    from datetime import datetime

    from ..services.errors import error_tracker

    if clear:
        error_tracker.clear()
        print_success("Error log cleared")
        return

    entries = error_tracker.recent(resource_id=resource_id, operation=operation, limit=limit)
    if not entries:
        print_info("No recorded failures.")
        return

    table = Table(title="Recent failures")
    table.add_column("Time", style="dim")
    table.add_column("Operation", style="cyan")
    table.add_column("Resource")
    table.add_column("Error")
    for e in entries:
        table.add_row(
            datetime.fromtimestamp(e.timestamp).strftime("%m-%d %H:%M:%S"),
            e.operation,
            e.resource_id or "-",
            f"[red]{e.error_type}[/red] {escape(e.message)}",
        )
    console.print(table)


def main() -> None:
    """Console entry point; reports failures without a traceback."""
    from pydantic import ValidationError

    from ..providers.base import ReplacementRequiredError, ResourceOperationError
    from ..providers.vpc.client import APIError, EndpointNotFoundError

    try:
        cli()
    except (ResourceOperationError, ReplacementRequiredError) as e:
        die(escape(str(e)))
    except APIError as e:
        die(escape(f"API request failed: {e}"))
    except EndpointNotFoundError as e:
        die(escape(f"Endpoint lookup failed: {e}"))
    except ValidationError as e:
        die(escape(f"Invalid configuration: {e}"))


if __name__ == "__main__":
    main()
