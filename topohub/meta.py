"""API group constants and the object metadata shared by every resource."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

GROUP_NAME = "topohub.infrastructure.io"
VERSION = "v1beta1"
API_VERSION = GROUP_NAME + "/" + VERSION
SCHEME_GROUP_VERSION = (GROUP_NAME, VERSION)

KIND_SUBNET = "Subnet"
KIND_HOST_ENDPOINT = "HostEndpoint"
KIND_REDFISH_STATUS = "redfishStatus"
KIND_HOST_OPERATION = "HostOperation"
KIND_BINDING_IP = "BindingIp"
KIND_SSH_STATUS = "SSHStatus"

LABEL_IP_ADDR = GROUP_NAME + "/ipAddr"
LABEL_CLIENT_MODE = GROUP_NAME + "/mode"
LABEL_CLIENT_ACTIVE = GROUP_NAME + "/dhcp-ip-active"
LABEL_CLUSTER_NAME = GROUP_NAME + "/cluster-name"
LABEL_SUBNET_NAME = GROUP_NAME + "/subnet-name"

HOST_TYPE_DHCP = "dhcp"
HOST_TYPE_ENDPOINT = "hostendpoint"


def group_resource(resource: str) -> tuple[str, str]:
    """Qualify an unqualified resource name with this API group."""
    return (GROUP_NAME, resource)


def _require_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a mapping, got {type(data).__name__}")
    return data


def _get(data: Mapping[str, Any], key: str, kind: type, default: Any) -> Any:
    value = data.get(key)
    if value is None:
        return default
    if kind is int and isinstance(value, bool):
        raise ValueError(f"field {key!r} must be an integer")
    if not isinstance(value, kind):
        raise ValueError(f"field {key!r} must be of type {kind.__name__}")
    return value


def _str_map(data: Mapping[str, Any], key: str) -> dict[str, str]:
    raw = _get(data, key, Mapping, {})
    if not all(isinstance(k, str) and isinstance(v, str) for k, v in raw.items()):
        raise ValueError(f"field {key!r} must map strings to strings")
    return dict(raw)


@dataclass(kw_only=True)
class OwnerReference:
    """A reference to the object that owns another one."""

    api_version: str
    kind: str
    name: str
    uid: str = ""
    controller: Optional[bool] = None
    block_owner_deletion: Optional[bool] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "name": self.name,
            "uid": self.uid,
        }
        if self.controller is not None:
            out["controller"] = self.controller
        if self.block_owner_deletion is not None:
            out["blockOwnerDeletion"] = self.block_owner_deletion
        return out

    @classmethod
    def from_dict(cls, data: Any) -> OwnerReference:
        data = _require_mapping(data, "ownerReference")
        return cls(
            api_version=_get(data, "apiVersion", str, ""),
            kind=_get(data, "kind", str, ""),
            name=_get(data, "name", str, ""),
            uid=_get(data, "uid", str, ""),
            controller=_get(data, "controller", bool, None),
            block_owner_deletion=_get(data, "blockOwnerDeletion", bool, None),
        )


@dataclass(kw_only=True)
class Condition:
    """One observation of an object's state."""

    type: str
    status: str
    reason: str = ""
    message: str = ""
    last_transition_time: str = ""
    observed_generation: int = 0

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "type": self.type,
            "status": self.status,
            "lastTransitionTime": self.last_transition_time,
            "reason": self.reason,
            "message": self.message,
        }
        if self.observed_generation:
            out["observedGeneration"] = self.observed_generation
        return out

    @classmethod
    def from_dict(cls, data: Any) -> Condition:
        data = _require_mapping(data, "condition")
        return cls(
            type=_get(data, "type", str, ""),
            status=_get(data, "status", str, ""),
            reason=_get(data, "reason", str, ""),
            message=_get(data, "message", str, ""),
            last_transition_time=_get(data, "lastTransitionTime", str, ""),
            observed_generation=_get(data, "observedGeneration", int, 0),
        )


@dataclass(kw_only=True)
class ObjectMeta:
    """Name, labels and bookkeeping fields of a stored object."""

    name: str = ""
    uid: str = ""
    resource_version: str = ""
    generation: int = 0
    creation_timestamp: Optional[str] = None
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    owner_references: list[OwnerReference] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialise, leaving out every empty field."""
        out: dict[str, Any] = {}
        if self.name:
            out["name"] = self.name
        if self.uid:
            out["uid"] = self.uid
        if self.resource_version:
            out["resourceVersion"] = self.resource_version
        if self.generation:
            out["generation"] = self.generation
        if self.creation_timestamp is not None:
            out["creationTimestamp"] = self.creation_timestamp
        if self.labels:
            out["labels"] = dict(self.labels)
        if self.annotations:
            out["annotations"] = dict(self.annotations)
        if self.owner_references:
            out["ownerReferences"] = [ref.to_dict() for ref in self.owner_references]
        return out

    @classmethod
    def from_dict(cls, data: Any) -> ObjectMeta:
        data = _require_mapping(data, "metadata")
        refs = _get(data, "ownerReferences", list, [])
        return cls(
            name=_get(data, "name", str, ""),
            uid=_get(data, "uid", str, ""),
            resource_version=_get(data, "resourceVersion", str, ""),
            generation=_get(data, "generation", int, 0),
            creation_timestamp=_get(data, "creationTimestamp", str, None),
            labels=_str_map(data, "labels"),
            annotations=_str_map(data, "annotations"),
            owner_references=[OwnerReference.from_dict(ref) for ref in refs],
        )