"""Shared pytest fixtures — an in-memory VPC v1 API and a fake clock."""

from __future__ import annotations

import itertools
from typing import Any, Optional

import pytest

from vpceip.config import settings
from vpceip.models import ElasticIPConfig
from vpceip.providers.base import Timeouts
from vpceip.providers.vpc.adapter import VpcEIPAdapter
from vpceip.providers.vpc.client import NotFoundError
from vpceip.services.errors import error_tracker


class FakeVpcAPI:
    """Stands in for a ServiceClient; keeps EIPs and bandwidths in dicts.

    ``create_ticks`` GETs report PENDING_CREATE before an EIP turns DOWN.
    ``delete_ticks`` GETs report PENDING_DELETE before a deleted EIP vanishes.
    """

    endpoint = "https://vpc.test-1.example.com/v1/proj-1/"

    def __init__(self, create_ticks: int = 0, delete_ticks: int = 0) -> None:
        self.eips: dict[str, dict[str, Any]] = {}
        self.bandwidths: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str, Optional[dict]]] = []
        self.failures: dict[tuple[str, str], Exception] = {}
        self.create_ticks = create_ticks
        self.delete_ticks = delete_ticks
        self._ids = itertools.count(1)
        self._countdown: dict[str, int] = {}

    # -- test helpers --------------------------------------------------------

    def calls_for(self, method: str, collection: str) -> list[tuple[str, str, Optional[dict]]]:
        return [c for c in self.calls if c[0] == method and c[1].split("/")[0] == collection]

    def fail(self, method: str, collection: str, exc: Exception) -> None:
        self.failures[(method, collection)] = exc

    def seed(self, status: str = "DOWN", port_id: str = "") -> str:
        """Add an existing EIP and return its ID."""
        eip_id = f"eip-{next(self._ids)}"
        bw_id = f"bw-{eip_id}"
        self.bandwidths[bw_id] = {
            "id": bw_id, "name": "seeded-bw", "size": 5,
            "share_type": "PER", "charge_mode": "bandwidth",
        }
        self.eips[eip_id] = {
            "id": eip_id, "status": status, "type": "5_bgp",
            "public_ip_address": "198.51.100.7", "port_id": port_id,
            "tenant_id": "proj-1", "create_time": "2026-10-17 10:00:00",
            "bandwidth_id": bw_id,
        }
        return eip_id

    # -- ServiceClient interface ---------------------------------------------

    def request(self, method: str, path: str, data: Optional[dict] = None) -> dict:
        self.calls.append((method, path, data))
        collection, _, item = path.partition("/")
        if (method, collection) in self.failures:
            raise self.failures[(method, collection)]

        if collection == "publicips":
            return self._publicips(method, item, data)
        if collection == "bandwidths":
            return self._bandwidths(method, item, data)
        raise NotFoundError(404, f"unknown path {path}")

    def _publicips(self, method: str, item: str, data: Optional[dict]) -> dict:
        if method == "POST":
            eip_id = f"eip-{next(self._ids)}"
            bw_id = f"bw-{eip_id}"
            bw = dict(data["bandwidth"])
            self.bandwidths[bw_id] = {"id": bw_id, "charge_mode": bw.pop("charge_mode", "bandwidth"), **bw}
            ip = data["publicip"]
            self.eips[eip_id] = {
                "id": eip_id,
                "status": "PENDING_CREATE" if self.create_ticks else "DOWN",
                "type": ip["type"],
                "public_ip_address": ip.get("ip_address", f"203.0.113.{len(self.eips) + 10}"),
                "port_id": "",
                "tenant_id": "proj-1",
                "create_time": "2026-10-17 10:00:00",
                "bandwidth_id": bw_id,
            }
            self._countdown[eip_id] = self.create_ticks
            return {"publicip": self._view(eip_id)}

        if item not in self.eips:
            raise NotFoundError(404, f"Publicip {item} could not be found")

        if method == "GET":
            eip = self.eips[item]
            if eip["status"] in ("PENDING_CREATE", "PENDING_DELETE"):
                if self._countdown.get(item, 0) <= 0:
                    if eip["status"] == "PENDING_DELETE":
                        del self.eips[item]
                        raise NotFoundError(404, f"Publicip {item} could not be found")
                    eip["status"] = "DOWN"
                else:
                    self._countdown[item] -= 1
            return {"publicip": self._view(item)}

        if method == "PUT":
            port_id = data["publicip"]["port_id"]
            self.eips[item]["port_id"] = port_id or ""
            self.eips[item]["status"] = "ACTIVE" if port_id else "DOWN"
            return {"publicip": self._view(item)}

        if method == "DELETE":
            if self.delete_ticks:
                self.eips[item]["status"] = "PENDING_DELETE"
                self._countdown[item] = self.delete_ticks
            else:
                del self.eips[item]
            return {}

        raise AssertionError(f"unexpected {method} publicips/{item}")

    def _bandwidths(self, method: str, item: str, data: Optional[dict]) -> dict:
        if item not in self.bandwidths:
            raise NotFoundError(404, f"Bandwidth {item} could not be found")
        if method == "PUT":
            self.bandwidths[item].update(data["bandwidth"])
        return {"bandwidth": dict(self.bandwidths[item])}

    def _view(self, eip_id: str) -> dict:
        eip = dict(self.eips[eip_id])
        bw = self.bandwidths.get(eip["bandwidth_id"])
        if bw:
            eip["bandwidth_size"] = bw["size"]
            eip["bandwidth_share_type"] = bw["share_type"]
        return eip


class FakeClientProvider:
    """Returns the same fake API for every region."""

    def __init__(self, api: FakeVpcAPI) -> None:
        self.api = api
        self.regions: list[str] = []

    def vpc_v1_client(self, region: str) -> FakeVpcAPI:
        self.regions.append(region)
        return self.api


class FakeClock:
    """Monotonic clock that only advances when slept on."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    """Adapter polls must not really sleep during tests."""
    monkeypatch.setattr("vpceip.services.waiter.time.sleep", lambda s: None)


@pytest.fixture(autouse=True)
def error_log(monkeypatch, tmp_path):
    """Fresh failure log per test, kept under tmp_path instead of the home dir."""
    monkeypatch.setattr(settings, "log_dir", tmp_path / "logs")
    error_tracker.detach()
    error_tracker.clear()
    yield error_tracker
    error_tracker.detach()
    error_tracker.clear()


@pytest.fixture
def fake_api() -> FakeVpcAPI:
    return FakeVpcAPI()


@pytest.fixture
def adapter(fake_api: FakeVpcAPI) -> VpcEIPAdapter:
    return VpcEIPAdapter(
        FakeClientProvider(fake_api),
        region="test-1",
        timeouts=Timeouts(create=60, delete=60),
        poll_delay=0,
        poll_min_timeout=0,
    )


@pytest.fixture
def eip_config() -> ElasticIPConfig:
    return ElasticIPConfig(
        publicip={"type": "5_bgp"},
        bandwidth={"name": "eip-bw", "size": 10, "share_type": "PER"},
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
