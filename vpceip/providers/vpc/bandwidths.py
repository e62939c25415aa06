"""VPC v1 bandwidth API calls."""

from __future__ import annotations

from pydantic import BaseModel

from .client import ServiceClient
from .options import BandwidthUpdateOpts


class Bandwidth(BaseModel):
    id: str
    name: str = ""
    size: int = 0
    share_type: str = ""
    charge_mode: str = ""
    bandwidth_type: str = ""
    tenant_id: str = ""


def _extract(payload: dict) -> Bandwidth:
    raw = {k: v for k, v in payload.get("bandwidth", {}).items() if v is not None}
    return Bandwidth(**raw)


def get(client: ServiceClient, bandwidth_id: str) -> Bandwidth:
    return _extract(client.request("GET", f"bandwidths/{bandwidth_id}"))


def update(client: ServiceClient, bandwidth_id: str, opts: BandwidthUpdateOpts) -> Bandwidth:
    """Rename or resize a bandwidth."""
    return _extract(client.request("PUT", f"bandwidths/{bandwidth_id}", opts.to_request()))
