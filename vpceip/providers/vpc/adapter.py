"""VPC v1 Elastic IP adapter — create, read, update and delete one EIP.

An EIP is allocated together with its bandwidth in a single apply request.
Bandwidth name/size and the bound port can change in place; every other
field forces a new resource.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ...config import settings
from ...models import BandwidthSpec, ElasticIPConfig, ElasticIPResource, PublicIPSpec
from ...services.waiter import StateChangeConf, UnexpectedStateError
from ..base import ReplacementRequiredError, ResourceAdapter, ResourceOperationError, Timeouts
from . import bandwidths, eips
from .client import NotFoundError, ServiceClient, VpcClientProvider
from .options import apply_opts, bandwidth_update_opts, eip_update_opts

logger = logging.getLogger(__name__)

STATE_ACTIVE = "ACTIVE"
STATE_DELETED = "DELETED"


class VpcEIPAdapter(ResourceAdapter[ElasticIPConfig, ElasticIPResource]):
    """Elastic IP resource backed by the VPC v1 publicips/bandwidths API."""

    def __init__(
        self,
        clients: VpcClientProvider,
        region: str = "",
        timeouts: Optional[Timeouts] = None,
        poll_delay: Optional[float] = None,
        poll_min_timeout: Optional[float] = None,
    ) -> None:
        super().__init__(timeouts)
        self._clients = clients
        self._region = region or settings.region
        self._poll_delay = settings.poll_delay if poll_delay is None else poll_delay
        self._poll_min_timeout = (
            settings.poll_min_timeout if poll_min_timeout is None else poll_min_timeout
        )

    @property
    def resource_type(self) -> str:
        return "vpc_eip_v1"

    def _client(self, operation: str, region: str = "") -> ServiceClient:
        return self._tracked_call(
            operation, "Error creating VPC client",
            self._clients.vpc_v1_client, region or self._region,
        )

    # ── Create ────────────────────────────────────────────────────────────

    def create(self, config: ElasticIPConfig) -> ElasticIPResource:
        client = self._client("create", config.region)

        opts = apply_opts(config)
        logger.debug("Create Options: %r", opts)
        eip = self._tracked_call("create", "Error allocating EIP", eips.apply, client, opts)

        logger.debug("Waiting for EIP %s to become available.", eip.id)
        conf = StateChangeConf(
            target=[STATE_ACTIVE],
            refresh=self._active_refresh(client, eip.id),
            timeout=self.timeouts.create,
            delay=self._poll_delay,
            min_timeout=self._poll_min_timeout,
        )
        self._tracked_call(
            "create", f"Error waiting for EIP {eip.id} to become ready", conf.wait_for_state,
            resource_id=eip.id,
        )

        # The apply request carries no port; binding is a separate publicip update.
        if config.publicip.port_id:
            bind_opts = eip_update_opts(config)
            logger.debug("PublicIP Update Options: %r", bind_opts)
            self._tracked_call(
                "create", f"Error binding port to EIP {eip.id}", eips.update, client, eip.id, bind_opts,
                resource_id=eip.id,
            )

        state = self.read(eip.id, config.region)
        if state is None:
            raise ResourceOperationError("create", f"EIP {eip.id} disappeared after creation")
        # Extra create options are not echoed by the API; keep the requested ones.
        return state.model_copy(update={"value_specs": dict(config.value_specs)})

    @staticmethod
    def _active_refresh(client: ServiceClient, eip_id: str):
        def refresh() -> tuple[Any, str]:
            e = eips.get(client, eip_id)
            logger.debug("EIP: %r", e)
            if e.status in eips.READY_STATUSES:
                return e, STATE_ACTIVE
            if e.status in eips.ERROR_STATUSES:
                raise UnexpectedStateError(e.status, [STATE_ACTIVE])
            return e, e.status
        return refresh

    # ── Read ──────────────────────────────────────────────────────────────

    def read(self, resource_id: str, region: str = "") -> Optional[ElasticIPResource]:
        client = self._client("read", region)

        try:
            eip = eips.get(client, resource_id)
        except NotFoundError:
            logger.info("EIP %s not found, removing from state", resource_id)
            return None
        except Exception as e:
            self._record("read", e, resource_id)
            raise ResourceOperationError("read", f"Error retrieving EIP {resource_id}: {e}") from e

        if not eip.bandwidth_id:
            err = ResourceOperationError("read", f"EIP {resource_id} has no bandwidth reference")
            self._record("read", err, resource_id)
            raise err

        bw = self._tracked_call(
            "read", "Error fetching bandwidth", bandwidths.get, client, eip.bandwidth_id,
            resource_id=resource_id,
        )

        return ElasticIPResource(
            id=eip.id,
            region=region or self._region,
            status=eip.status,
            bandwidth_id=eip.bandwidth_id,
            tenant_id=eip.tenant_id,
            create_time=eip.create_time,
            publicip=PublicIPSpec(
                type=eip.type,
                ip_address=eip.public_ip_address,
                port_id=eip.port_id,
            ),
            bandwidth=BandwidthSpec(
                name=bw.name,
                size=eip.bandwidth_size,
                share_type=eip.bandwidth_share_type,
                charge_mode=bw.charge_mode,
            ),
        )

    # ── Update ────────────────────────────────────────────────────────────

    def update(
        self,
        resource_id: str,
        current: ElasticIPResource,
        desired: ElasticIPConfig,
    ) -> Optional[ElasticIPResource]:
        replace = current.force_new_changes(desired)
        if replace:
            raise ReplacementRequiredError(replace)

        bandwidth_changed = (
            desired.bandwidth.name != current.bandwidth.name
            or desired.bandwidth.size != current.bandwidth.size
        )
        port_changed = desired.publicip.port_id != current.publicip.port_id
        if not (bandwidth_changed or port_changed):
            logger.debug("EIP %s: nothing to update", resource_id)
            return current

        region = desired.region or current.region
        client = self._client("update", region)
        applied: list[str] = []

        if bandwidth_changed:
            opts = bandwidth_update_opts(desired)
            logger.debug("Bandwidth Update Options: %r", opts)

            bandwidth_id = current.bandwidth_id
            if not bandwidth_id:
                try:
                    bandwidth_id = eips.get(client, resource_id).bandwidth_id
                except NotFoundError:
                    logger.info("EIP %s not found, removing from state", resource_id)
                    return None
                except Exception as e:
                    self._record("update", e, resource_id)
                    raise ResourceOperationError("update", f"Error retrieving EIP {resource_id}: {e}") from e

            self._tracked_call(
                "update", "Error updating bandwidth", bandwidths.update, client, bandwidth_id, opts,
                resource_id=resource_id,
            )
            applied.append("bandwidth")

        if port_changed:
            opts = eip_update_opts(desired)
            logger.debug("PublicIP Update Options: %r", opts)
            try:
                eips.update(client, resource_id, opts)
            except Exception as e:
                self._record("update", e, resource_id)
                raise ResourceOperationError(
                    "update", f"Error updating publicip: {e}", applied=applied,
                ) from e
            applied.append("publicip")

        state = self.read(resource_id, region)
        if state is not None:
            state = state.model_copy(update={"value_specs": dict(desired.value_specs)})
        return state

    # ── Delete ────────────────────────────────────────────────────────────

    def delete(self, resource_id: str, region: str = "") -> None:
        client = self._client("delete", region)

        conf = StateChangeConf(
            pending=[STATE_ACTIVE],
            target=[STATE_DELETED],
            refresh=self._delete_refresh(client, resource_id),
            timeout=self.timeouts.delete,
            delay=self._poll_delay,
            min_timeout=self._poll_min_timeout,
        )
        self._tracked_call("delete", "Error deleting EIP", conf.wait_for_state, resource_id=resource_id)

    @staticmethod
    def _delete_refresh(client: ServiceClient, eip_id: str):
        """Re-issue the delete until the EIP is gone.

        No delete is sent while the provider reports the EIP as PENDING_DELETE.
        """
        gone = {"id": eip_id, "status": STATE_DELETED}

        def refresh() -> tuple[Any, str]:
            logger.debug("Attempting to delete EIP %s.", eip_id)
            try:
                e = eips.get(client, eip_id)
            except NotFoundError:
                logger.debug("Successfully deleted EIP %s", eip_id)
                return gone, STATE_DELETED

            if e.status == eips.PENDING_DELETE:
                logger.debug("EIP %s is being released.", eip_id)
                return e, STATE_ACTIVE

            try:
                eips.delete(client, eip_id)
            except NotFoundError:
                logger.debug("Successfully deleted EIP %s", eip_id)
                return gone, STATE_DELETED

            logger.debug("EIP %s still active.", eip_id)
            return e, STATE_ACTIVE
        return refresh
