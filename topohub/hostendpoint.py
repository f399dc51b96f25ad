"""Reconciler that mirrors HostEndpoint objects into RedfishStatus or SSHStatus."""

from __future__ import annotations

import copy
import logging
from datetime import datetime, timezone
from typing import Any

from .client import ApiError, ConflictError, NotFoundError, Request, Result
from .meta import (
    API_VERSION,
    HOST_TYPE_ENDPOINT,
    KIND_HOST_ENDPOINT,
    LABEL_CLIENT_MODE,
    LABEL_IP_ADDR,
    ObjectMeta,
    OwnerReference,
)
from .resources import (
    ENDPOINT_TYPE_REDFISH,
    ENDPOINT_TYPE_SSH,
    HOST_TYPE_SSH,
    BasicInfo,
    HostEndpoint,
    HostEndpointSpec,
    LogStruct,
    RedfishStatus,
    RedfishStatusStatus,
    SSHBasicInfo,
    SSHStatus,
)

DEFAULT_REDFISH_PORT = 443
RETRY_SECONDS = 2.0


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def spec_equal(basic: BasicInfo, spec: HostEndpointSpec) -> bool:
    """Tell whether a RedfishStatus basic block already reflects an endpoint spec."""
    if basic.ip_addr != spec.ip_addr:
        return False
    if (spec.cluster_name or "") != basic.cluster_name:
        return False
    if spec.secret_name is None or basic.secret_name != spec.secret_name:
        return False
    if spec.secret_namespace is None or basic.secret_namespace != spec.secret_namespace:
        return False
    if spec.https is None or basic.https != spec.https:
        return False
    if spec.port is None or basic.port != spec.port:
        return False
    expected_type = spec.type if spec.type is not None else ENDPOINT_TYPE_REDFISH
    return basic.type == expected_type


def spec_equal_ssh(basic: SSHBasicInfo, spec: HostEndpointSpec) -> bool:
    """Tell whether an SSHStatus basic block already reflects an endpoint spec."""
    if basic.ip_addr != spec.ip_addr:
        return False
    if spec.port is not None and basic.port != spec.port:
        return False
    if spec.secret_name is not None and basic.secret_name != spec.secret_name:
        return False
    if spec.secret_namespace is not None and basic.secret_namespace != spec.secret_namespace:
        return False
    return basic.cluster_name == (spec.cluster_name or "")


def _owner_metadata(host_endpoint: HostEndpoint, mode: str) -> ObjectMeta:
    return ObjectMeta(
        name=host_endpoint.metadata.name,
        labels={
            LABEL_IP_ADDR: host_endpoint.spec.ip_addr,
            LABEL_CLIENT_MODE: mode,
        },
        owner_references=[
            OwnerReference(
                api_version=API_VERSION,
                kind=KIND_HOST_ENDPOINT,
                name=host_endpoint.metadata.name,
                uid=host_endpoint.metadata.uid,
                controller=True,
                block_owner_deletion=True,
            )
        ],
    )


def _apply_redfish_spec(basic: BasicInfo, spec: HostEndpointSpec) -> None:
    if spec.secret_name is not None:
        basic.secret_name = spec.secret_name
    if spec.secret_namespace is not None:
        basic.secret_namespace = spec.secret_namespace
    if spec.https is not None:
        basic.https = spec.https
    if spec.port is not None:
        basic.port = spec.port


class HostEndpointReconciler:
    """Creates and refreshes the status object that belongs to each HostEndpoint."""

    def __init__(self, client: Any, config: Any = None) -> None:
        self.client = client
        self.config = config
        self._log = logging.getLogger("topohub.hostendpoint")

    def reconcile(self, request: Request) -> Result:
        """Run one reconcile pass for the named HostEndpoint."""
        try:
            host_endpoint = self.client.get(HostEndpoint, request.name)
        except NotFoundError:
            self._log.info("HostEndpoint %s not found, ignoring", request.name)
            return Result()
        except ApiError as err:
            self._log.error("failed to get HostEndpoint %s: %s", request.name, err)
            raise

        try:
            self.handle_host_endpoint(host_endpoint)
        except Exception as err:
            self._log.error(
                "failed to handle HostEndpoint %s, retry in %ss: %s",
                request.name, RETRY_SECONDS, err,
            )
            raise
        return Result()

    def handle_host_endpoint(self, host_endpoint: HostEndpoint) -> None:
        """Dispatch on the endpoint type; unknown types are treated as redfish."""
        self._log.debug(
            "processing HostEndpoint %s (IP: %s)",
            host_endpoint.metadata.name, host_endpoint.spec.ip_addr,
        )
        endpoint_type = host_endpoint.spec.type or ENDPOINT_TYPE_REDFISH
        if endpoint_type == ENDPOINT_TYPE_SSH:
            self._handle_ssh_endpoint(host_endpoint)
            return
        if endpoint_type != ENDPOINT_TYPE_REDFISH:
            self._log.warning("unknown endpoint type %s, treating as redfish", endpoint_type)
        self._handle_redfish_endpoint(host_endpoint)

    def _handle_redfish_endpoint(self, host_endpoint: HostEndpoint) -> None:
        name = host_endpoint.metadata.name
        spec = host_endpoint.spec
        try:
            existing = self.client.get(RedfishStatus, name)
        except NotFoundError:
            existing = None

        if existing is not None:
            if spec_equal(existing.status.basic, spec):
                self._log.debug("RedfishStatus %s exists with same spec", name)
                return
            self._log.info("updating RedfishStatus %s due to spec change", name)
            updated = copy.deepcopy(existing)
            updated.status.last_update_time = _now()
            updated.status.basic = BasicInfo(
                type=HOST_TYPE_ENDPOINT,
                ip_addr=spec.ip_addr,
                https=True,
                port=DEFAULT_REDFISH_PORT,
            )
            _apply_redfish_spec(updated.status.basic, spec)
            try:
                self.client.update(updated)
            except ConflictError:
                self._log.debug("conflict updating RedfishStatus %s, will retry", name)
                raise
            self._log.info("successfully updated RedfishStatus %s", name)
            return

        # Status cannot be set on creation: create the bare object first,
        # then write its status separately.
        redfish_status = RedfishStatus(metadata=_owner_metadata(host_endpoint, HOST_TYPE_ENDPOINT))
        self._log.debug("creating new RedfishStatus %s", name)
        self.client.create(redfish_status)

        redfish_status.status = RedfishStatusStatus(
            healthy=False,
            last_update_time=_now(),
            basic=BasicInfo(
                type=HOST_TYPE_ENDPOINT,
                ip_addr=spec.ip_addr,
                https=True,
                port=DEFAULT_REDFISH_PORT,
                cluster_name=spec.cluster_name or "",
            ),
            info={},
            log=LogStruct(),
        )
        _apply_redfish_spec(redfish_status.status.basic, spec)
        self.client.update_status(redfish_status)
        basic = redfish_status.status.basic
        self._log.info(
            "successfully created RedfishStatus %s - IP: %s, Secret: %s/%s, Port: %d",
            name, basic.ip_addr, basic.secret_namespace, basic.secret_name, basic.port,
        )

    def _handle_ssh_endpoint(self, host_endpoint: HostEndpoint) -> None:
        name = host_endpoint.metadata.name
        spec = host_endpoint.spec
        try:
            existing = self.client.get(SSHStatus, name)
        except NotFoundError:
            existing = None

        if existing is not None:
            if spec_equal_ssh(existing.status.basic, spec):
                self._log.debug("SSHStatus %s exists with same spec", name)
                return
            if spec.port is None:
                raise ValueError(f"ssh HostEndpoint {name!r} has no port")
            self._log.info("updating SSHStatus %s due to spec change", name)
            updated = copy.deepcopy(existing)
            updated.status.last_update_time = _now()
            basic = SSHBasicInfo(type=HOST_TYPE_SSH, ip_addr=spec.ip_addr, port=spec.port)
            if updated.status.info is None:
                updated.status.info = {}
            if spec.secret_name is not None:
                basic.secret_name = spec.secret_name
            if spec.secret_namespace is not None:
                basic.secret_namespace = spec.secret_namespace
            if spec.cluster_name is not None:
                basic.cluster_name = spec.cluster_name
            updated.status.basic = basic
            try:
                self.client.update_status(updated)
            except ConflictError:
                self._log.debug("conflict updating SSHStatus %s, will retry", name)
                raise
            self._log.info(
                "successfully updated SSHStatus %s - IP: %s, Secret: %s/%s, Port: %d",
                name, basic.ip_addr, basic.secret_namespace, basic.secret_name, basic.port,
            )
            return

        ssh_status = SSHStatus(metadata=_owner_metadata(host_endpoint, HOST_TYPE_SSH))
        self._log.debug("creating new SSHStatus %s", name)
        self.client.create(ssh_status)