"""Request option types and the mapping from configuration records to them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ...models import ElasticIPConfig


@dataclass
class PublicIPOpts:
    type: str
    address: str = ""

    def to_request(self) -> dict[str, Any]:
        body: dict[str, Any] = {"type": self.type}
        if self.address:
            body["ip_address"] = self.address
        return body


@dataclass
class BandwidthOpts:
    name: str
    size: int
    share_type: str
    charge_mode: str = ""

    def to_request(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "name": self.name,
            "size": self.size,
            "share_type": self.share_type,
        }
        if self.charge_mode:
            body["charge_mode"] = self.charge_mode
        return body


@dataclass
class ApplyOpts:
    ip: PublicIPOpts
    bandwidth: BandwidthOpts
    value_specs: dict[str, Any] = field(default_factory=dict)

    def to_request(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "publicip": self.ip.to_request(),
            "bandwidth": self.bandwidth.to_request(),
        }
        body.update(self.value_specs)
        return body


@dataclass
class BandwidthUpdateOpts:
    name: str = ""
    size: int = 0

    def to_request(self) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if self.name:
            body["name"] = self.name
        if self.size:
            body["size"] = self.size
        return {"bandwidth": body}


@dataclass
class EIPUpdateOpts:
    port_id: Optional[str] = None

    def to_request(self) -> dict[str, Any]:
        # null unbinds the port
        return {"publicip": {"port_id": self.port_id or None}}


# ---------------------------------------------------------------------------
# Mapping
# ---------------------------------------------------------------------------


def _require(config: ElasticIPConfig, block: str) -> Any:
    value = getattr(config, block, None)
    if value is None:
        raise ValueError(f"Elastic IP configuration has no '{block}' block")
    return value


def public_ip_opts(config: ElasticIPConfig) -> PublicIPOpts:
    ip = _require(config, "publicip")
    return PublicIPOpts(type=ip.type, address=ip.ip_address)


def bandwidth_opts(config: ElasticIPConfig) -> BandwidthOpts:
    bw = _require(config, "bandwidth")
    return BandwidthOpts(
        name=bw.name,
        size=bw.size,
        share_type=bw.share_type,
        charge_mode=bw.charge_mode,
    )


def apply_opts(config: ElasticIPConfig) -> ApplyOpts:
    return ApplyOpts(
        ip=public_ip_opts(config),
        bandwidth=bandwidth_opts(config),
        value_specs=dict(config.value_specs),
    )


def bandwidth_update_opts(config: ElasticIPConfig) -> BandwidthUpdateOpts:
    bw = _require(config, "bandwidth")
    return BandwidthUpdateOpts(name=bw.name, size=bw.size)


def eip_update_opts(config: ElasticIPConfig) -> EIPUpdateOpts:
    ip = _require(config, "publicip")
    return EIPUpdateOpts(port_id=ip.port_id)
