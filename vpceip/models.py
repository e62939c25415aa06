"""Elastic IP configuration and state records."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

# Changing any of these requires releasing the EIP and allocating a new one.
FORCE_NEW_FIELDS: tuple[str, ...] = (
    "publicip.type",
    "publicip.ip_address",
    "bandwidth.share_type",
    "bandwidth.charge_mode",
)


class PublicIPSpec(BaseModel):
    type: str = Field(..., min_length=1, description="EIP type, e.g. '5_bgp'")
    ip_address: str = ""
    port_id: str = ""


class BandwidthSpec(BaseModel):
    name: str = Field(..., min_length=1)
    size: int = Field(..., gt=0, description="Bandwidth size in Mbit/s")
    share_type: str = Field(..., min_length=1, description="PER (dedicated) or WHOLE (shared)")
    charge_mode: str = ""


def _single_block(value: Any, block: str) -> Any:
    """Unwrap the legacy one-element list form of a nested block."""
    if isinstance(value, (list, tuple)):
        if len(value) != 1:
            raise ValueError(f"'{block}' block must contain exactly one entry, got {len(value)}")
        return value[0]
    return value


class ElasticIPConfig(BaseModel):
    """Desired configuration of one Elastic IP."""

    region: str = ""
    publicip: PublicIPSpec
    bandwidth: BandwidthSpec
    value_specs: dict[str, Any] = Field(default_factory=dict)

    @field_validator("publicip", mode="before")
    @classmethod
    def _unwrap_publicip(cls, v: Any) -> Any:
        return _single_block(v, "publicip")

    @field_validator("bandwidth", mode="before")
    @classmethod
    def _unwrap_bandwidth(cls, v: Any) -> Any:
        return _single_block(v, "bandwidth")

    def force_new_changes(self, desired: "ElasticIPConfig") -> list[str]:
        """Return the ForceNew fields that differ between self and *desired*.

        Optional fields left empty in *desired* are provider-computed and do
        not count as a change.
        """
        changed = []
        for dotted in FORCE_NEW_FIELDS:
            block, attr = dotted.split(".")
            old = getattr(getattr(self, block), attr)
            new = getattr(getattr(desired, block), attr)
            if new and new != old:
                changed.append(dotted)
        return changed


class ElasticIPResource(ElasticIPConfig):
    """Observed state of an allocated Elastic IP."""

    id: str
    status: str = ""
    bandwidth_id: str = ""
    tenant_id: str = ""
    create_time: str = ""

    @property
    def public_ip_address(self) -> str:
        return self.publicip.ip_address
