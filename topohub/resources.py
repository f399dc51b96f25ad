"""Typed resources of the topohub API group and their manifest form."""

import copy
from collections.abc import Mapping
from dataclasses import MISSING, dataclass, field, fields, is_dataclass
from typing import Any, Optional, Union, get_args, get_origin

from .meta import (
    API_VERSION,
    GROUP_NAME,
    KIND_BINDING_IP,
    KIND_HOST_ENDPOINT,
    KIND_HOST_OPERATION,
    KIND_SSH_STATUS,
    KIND_SUBNET,
    Condition,
    ObjectMeta,
)

LABEL_REDFISH_STATUS = GROUP_NAME + "/redfishstatus"

ENDPOINT_TYPE_REDFISH = "redfish"
ENDPOINT_TYPE_SSH = "ssh"

HOST_TYPE_SSH = "ssh"

HOST_OPERATION_STATUS_PENDING = "pending"
HOST_OPERATION_STATUS_SUCCESS = "success"
HOST_OPERATION_STATUS_FAILED = "failure"

BOOT_CMD_ON = "On"
BOOT_CMD_FORCE_ON = "ForceOn"
BOOT_CMD_FORCE_OFF = "ForceOff"
BOOT_CMD_GRACEFUL_SHUTDOWN = "GracefulShutdown"
BOOT_CMD_FORCE_RESTART = "ForceRestart"
BOOT_CMD_GRACEFUL_RESTART = "GracefulRestart"
BOOT_CMD_RESET_PXE_ONCE = "PxeReboot"

BOOT_COMMANDS = (
    BOOT_CMD_FORCE_ON,
    BOOT_CMD_ON,
    BOOT_CMD_FORCE_OFF,
    BOOT_CMD_GRACEFUL_SHUTDOWN,
    BOOT_CMD_FORCE_RESTART,
    BOOT_CMD_GRACEFUL_RESTART,
    BOOT_CMD_RESET_PXE_ONCE,
)


def _f(json_name: str, *, omitempty: bool = False, default: Any = MISSING,
       default_factory: Any = MISSING) -> Any:
    metadata = {"json": json_name, "omitempty": omitempty}
    if default_factory is not MISSING:
        return field(default_factory=default_factory, metadata=metadata)
    if default is not MISSING:
        return field(default=default, metadata=metadata)
    return field(metadata=metadata)


# ---------------------------------------------------------------- BindingIp

@dataclass(kw_only=True)
class BindingIpSpec:
    subnet: str = _f("subnet")
    ip_addr: str = _f("ipAddr")
    mac_addr: str = _f("macAddr")


@dataclass(kw_only=True)
class BindingIpStatus:
    valid: bool = _f("valid", default=False)


@dataclass(kw_only=True)
class BindingIp:
    KIND = KIND_BINDING_IP
    PLURAL = "bindingips"

    metadata: ObjectMeta = _f("metadata", default_factory=ObjectMeta)
    spec: BindingIpSpec = _f("spec")
    status: BindingIpStatus = _f("status", omitempty=True, default_factory=BindingIpStatus)


# ------------------------------------------------------------- HostEndpoint

@dataclass(kw_only=True)
class HostEndpointSpec:
    ip_addr: str = _f("ipAddr")
    cluster_name: Optional[str] = _f("clusterName", omitempty=True, default=None)
    secret_name: Optional[str] = _f("secretName", omitempty=True, default=None)
    secret_namespace: Optional[str] = _f("secretNamespace", omitempty=True, default=None)
    https: Optional[bool] = _f("https", omitempty=True, default=None)
    port: Optional[int] = _f("port", omitempty=True, default=None)
    type: Optional[str] = _f("type", omitempty=True, default=None)


@dataclass(kw_only=True)
class HostEndpoint:
    KIND = KIND_HOST_ENDPOINT
    PLURAL = "hostendpoints"

    metadata: ObjectMeta = _f("metadata", default_factory=ObjectMeta)
    spec: HostEndpointSpec = _f("spec", omitempty=True)

    def deep_copy(self) -> "HostEndpoint":
        """Return an independent copy sharing no mutable state."""
        return copy.deepcopy(self)


# ------------------------------------------------------------ HostOperation

@dataclass(kw_only=True)
class HostOperationSpec:
    action: str = _f("action")
    redfish_status_name: str = _f("redfishStatusName")


@dataclass(kw_only=True)
class HostOperationStatus:
    status: str = _f("status", omitempty=True, default="")
    message: str = _f("message", omitempty=True, default="")
    last_update_time: str = _f("lastUpdateTime", omitempty=True, default="")
    cluster_name: str = _f("clusterName", omitempty=True, default="")
    ip_addr: str = _f("ipAddr", omitempty=True, default="")


@dataclass(kw_only=True)
class HostOperation:
    KIND = KIND_HOST_OPERATION
    PLURAL = "hostoperations"

    metadata: ObjectMeta = _f("metadata", default_factory=ObjectMeta)
    spec: HostOperationSpec = _f("spec", omitempty=True)
    status: HostOperationStatus = _f("status", omitempty=True,
                                     default_factory=HostOperationStatus)


# ------------------------------------------------------------ RedfishStatus

@dataclass(kw_only=True)
class LogEntry:
    time: str = _f("time", default="")
    message: str = _f("message", default="")


@dataclass(kw_only=True)
class LogStruct:
    total_log_account: int = _f("totalLogAccount", default=0)
    warning_log_account: int = _f("warningLogAccount", default=0)
    lastest_log: Optional[LogEntry] = _f("lastestLog", omitempty=True, default=None)
    lastest_warning_log: Optional[LogEntry] = _f("lastestWarningLog", omitempty=True,
                                                 default=None)


@dataclass(kw_only=True)
class BasicInfo:
    cluster_name: str = _f("clusterName", default="")
    type: str = _f("type", default="")
    ip_addr: str = _f("ipAddr", default="")
    secret_name: str = _f("secretName", default="")
    secret_namespace: str = _f("secretNamespace", default="")
    https: bool = _f("https", default=False)
    port: int = _f("port", default=0)
    mac: str = _f("mac", omitempty=True, default="")
    active_dhcp_client: bool = _f("activeDhcpClient", omitempty=True, default=False)
    dhcp_expire_time: Optional[str] = _f("dhcpExpireTime", omitempty=True, default=None)
    subnet_name: Optional[str] = _f("subnetName", omitempty=True, default=None)
    hostname: Optional[str] = _f("hostname", omitempty=True, default=None)


@dataclass(kw_only=True)
class RedfishStatusStatus:
    healthy: bool = _f("healthy", default=False)
    last_update_time: str = _f("lastUpdateTime", default="")
    basic: BasicInfo = _f("basic", default_factory=BasicInfo)
    info: dict[str, str] = _f("info", default_factory=dict)
    log: LogStruct = _f("log", default_factory=LogStruct)


@dataclass(kw_only=True)
class RedfishStatus:
    # The stored kind is the type name, not the lower-case kind constant.
    KIND = "RedfishStatus"
    PLURAL = "redfishstatuses"

    metadata: ObjectMeta = _f("metadata", default_factory=ObjectMeta)
    status: RedfishStatusStatus = _f("status", omitempty=True,
                                     default_factory=RedfishStatusStatus)


# ---------------------------------------------------------------- SSHStatus

@dataclass(kw_only=True)
class SSHBasicInfo:
    cluster_name: str = _f("clusterName", default="")
    type: str = _f("type", default="")
    ip_addr: str = _f("ipAddr", default="")
    secret_name: str = _f("secretName", default="")
    secret_namespace: str = _f("secretNamespace", default="")
    port: int = _f("port", default=0)
    ssh_key_auth: bool = _f("sshKeyAuth", omitempty=True, default=False)
    subnet_name: Optional[str] = _f("subnetName", omitempty=True, default=None)


@dataclass(kw_only=True)
class SSHStatusStatus:
    healthy: bool = _f("healthy", default=False)
    last_update_time: str = _f("lastUpdateTime", default="")
    basic: SSHBasicInfo = _f("basic", default_factory=SSHBasicInfo)
    info: dict[str, str] = _f("info", default_factory=dict)


@dataclass(kw_only=True)
class SSHStatus:
    KIND = KIND_SSH_STATUS
    PLURAL = "sshstatuses"

    metadata: ObjectMeta = _f("metadata", default_factory=ObjectMeta)
    status: SSHStatusStatus = _f("status", omitempty=True, default_factory=SSHStatusStatus)


# ------------------------------------------------------------------- Subnet

@dataclass(kw_only=True)
class IPv4SubnetSpec:
    subnet: str = _f("subnet")
    ip_range: str = _f("ipRange")
    gateway: Optional[str] = _f("gateway", omitempty=True, default=None)
    dns: Optional[str] = _f("dns", omitempty=True, default=None)


@dataclass(kw_only=True)
class InterfaceSpec:
    interface: str = _f("interface")
    ipv4: str = _f("ipv4")
    vlan_id: Optional[int] = _f("vlanId", omitempty=True, default=None)


@dataclass(kw_only=True)
class SyncRedfishstatusSpec:
    enabled: bool = _f("enabled", default=False)
    enable_bind_dhcp_ip: bool = _f("enableBindDhcpIP", default=True)
    default_cluster_name: Optional[str] = _f("defaultClusterName", omitempty=True,
                                             default=None)


@dataclass(kw_only=True)
class FeatureSpec:
    sync_redfishstatus: SyncRedfishstatusSpec = _f("syncRedfishstatus",
                                                   default_factory=SyncRedfishstatusSpec)
    enable_pxe: bool = _f("enablePxe", default=False)
    enable_ztp: bool = _f("enableZtp", default=False)
    enable_dhcp_trusted_only: bool = _f("enableDhcpTrustedOnly", default=False)


@dataclass(kw_only=True)
class SubnetSpec:
    ipv4_subnet: IPv4SubnetSpec = _f("ipv4Subnet")
    interface: InterfaceSpec = _f("interface")
    feature: Optional[FeatureSpec] = _f("feature", omitempty=True, default=None)


@dataclass(kw_only=True)
class DhcpStatusSpec:
    dhcp_ip_total_amount: int = _f("dhcpIpTotalAmount", default=0)
    dhcp_ip_available_amount: int = _f("dhcpIpAvailableAmount", default=0)
    dhcp_ip_active_amount: int = _f("dhcpIpActiveAmount", default=0)
    dhcp_ip_bind_amount: int = _f("dhcpIpBindAmount", default=0)


@dataclass(kw_only=True)
class SubnetStatus:
    dhcp_status: Optional[DhcpStatusSpec] = _f("dhcpStatus", omitempty=True, default=None)
    host_node: Optional[str] = _f("hostNode", omitempty=True, default=None)
    conditions: list[Condition] = _f("conditions", omitempty=True, default_factory=list)
    dhcp_client_details: str = _f("dhcpClientDetails", default="")


@dataclass(kw_only=True)
class Subnet:
    KIND = KIND_SUBNET
    PLURAL = "subnets"

    metadata: ObjectMeta = _f("metadata", default_factory=ObjectMeta)
    spec: SubnetSpec = _f("spec", omitempty=True)
    status: SubnetStatus = _f("status", omitempty=True, default_factory=SubnetStatus)


_KINDS: dict[str, type] = {
    cls.KIND: cls
    for cls in (BindingIp, HostEndpoint, HostOperation, RedfishStatus, SSHStatus, Subnet)
}


# ---------------------------------------------------------- serialisation

def _is_empty(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool, dict, list)) and not value


def _encode(value: Any) -> Any:
    if isinstance(value, (ObjectMeta, Condition)):
        return value.to_dict()
    if is_dataclass(value):
        out: dict[str, Any] = {}
        for f in fields(value):
            item = getattr(value, f.name)
            if item is None:
                continue
            if f.metadata.get("omitempty") and _is_empty(item):
                continue
            out[f.metadata.get("json", f.name)] = _encode(item)
        return out
    if isinstance(value, list):
        return [_encode(item) for item in value]
    if isinstance(value, dict):
        return {key: _encode(item) for key, item in value.items()}
    return value


def _decode(tp: Any, data: Any, path: str) -> Any:
    origin = get_origin(tp)
    if origin is Union:
        if data is None:
            return None
        inner = next(arg for arg in get_args(tp) if arg is not type(None))
        return _decode(inner, data, path)
    if origin is list:
        if data is None:
            return []
        if not isinstance(data, list):
            raise ValueError(f"{path}: expected a list")
        (item_type,) = get_args(tp)
        return [_decode(item_type, item, f"{path}[{i}]") for i, item in enumerate(data)]
    if origin is dict:
        if data is None:
            return {}
        if not isinstance(data, Mapping):
            raise ValueError(f"{path}: expected a mapping")
        _, value_type = get_args(tp)
        return {str(k): _decode(value_type, v, f"{path}.{k}") for k, v in data.items()}
    if tp in (ObjectMeta, Condition):
        return tp.from_dict(data)
    if is_dataclass(tp):
        return _decode_dataclass(tp, data, path)
    if tp is bool:
        if not isinstance(data, bool):
            raise ValueError(f"{path}: expected a boolean")
        return data
    if tp is int:
        if isinstance(data, bool) or not isinstance(data, int):
            raise ValueError(f"{path}: expected an integer")
        return data
    if tp is str:
        if not isinstance(data, str):
            raise ValueError(f"{path}: expected a string")
        return data
    raise ValueError(f"{path}: unsupported field type {tp!r}")


def _decode_dataclass(cls: type, data: Any, path: str) -> Any:
    if not isinstance(data, Mapping):
        raise ValueError(f"{path}: expected a mapping")
    kwargs: dict[str, Any] = {}
    for f in fields(cls):
        key = f.metadata.get("json", f.name)
        raw = data.get(key)
        if raw is None:
            if f.default is MISSING and f.default_factory is MISSING:
                raise ValueError(f"{path}.{key}: required field is missing")
            continue
        kwargs[f.name] = _decode(f.type, raw, f"{path}.{key}")
    return cls(**kwargs)


def to_manifest(obj: Any) -> dict[str, Any]:
    """Serialise a top-level resource into its manifest dictionary."""
    cls = type(obj)
    if _KINDS.get(getattr(cls, "KIND", None)) is not cls:
        raise TypeError(f"{cls.__name__} is not a top-level resource")
    return {"apiVersion": API_VERSION, "kind": cls.KIND, **_encode(obj)}


def from_manifest(data: Any) -> Any:
    """Build a typed resource from a manifest dictionary."""
    if not isinstance(data, Mapping):
        raise ValueError("manifest must be a mapping")
    api_version = data.get("apiVersion")
    if api_version is not None and api_version != API_VERSION:
        raise ValueError(f"unsupported apiVersion {api_version!r}")
    kind = data.get("kind")
    cls = _KINDS.get(kind)
    if cls is None:
        raise ValueError(f"unknown kind {kind!r}")
    return _decode_dataclass(cls, data, kind)