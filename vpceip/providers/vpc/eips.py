"""VPC v1 public IP (EIP) API calls."""

from __future__ import annotations

from pydantic import BaseModel

from .client import ServiceClient
from .options import ApplyOpts, EIPUpdateOpts

# Provider statuses in which the EIP is usable (unbound or bound).
READY_STATUSES = ("ACTIVE", "DOWN")
ERROR_STATUSES = ("ERROR", "BIND_ERROR")
PENDING_DELETE = "PENDING_DELETE"


class PublicIP(BaseModel):
    id: str
    status: str = ""
    type: str = ""
    public_ip_address: str = ""
    private_ip_address: str = ""
    port_id: str = ""
    tenant_id: str = ""
    create_time: str = ""
    bandwidth_id: str = ""
    bandwidth_size: int = 0
    bandwidth_share_type: str = ""


def _extract(payload: dict) -> PublicIP:
    raw = {k: v for k, v in payload.get("publicip", {}).items() if v is not None}
    return PublicIP(**raw)


def apply(client: ServiceClient, opts: ApplyOpts) -> PublicIP:
    """Allocate a public IP together with a new bandwidth."""
    return _extract(client.request("POST", "publicips", opts.to_request()))


def get(client: ServiceClient, eip_id: str) -> PublicIP:
    return _extract(client.request("GET", f"publicips/{eip_id}"))


def update(client: ServiceClient, eip_id: str, opts: EIPUpdateOpts) -> PublicIP:
    """Bind or unbind the port of a public IP."""
    return _extract(client.request("PUT", f"publicips/{eip_id}", opts.to_request()))


def delete(client: ServiceClient, eip_id: str) -> None:
    client.request("DELETE", f"publicips/{eip_id}")
