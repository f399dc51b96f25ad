"""API errors, reconcile request types and an in-memory resource store."""

from __future__ import annotations

import copy
import threading
import uuid
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Any, Union

from .meta import GROUP_NAME, VERSION
from .resources import (
    BindingIp,
    HostEndpoint,
    HostOperation,
    RedfishStatus,
    SSHStatus,
    Subnet,
)

_RESOURCE_CLASSES = (BindingIp, HostEndpoint, HostOperation, RedfishStatus, SSHStatus, Subnet)
_BY_KIND: dict[str, type] = {cls.KIND: cls for cls in _RESOURCE_CLASSES}

KindLike = Union[str, type]


class ApiError(Exception):
    """A request to the resource store failed."""


class NotFoundError(ApiError):
    """The requested object does not exist."""


class ConflictError(ApiError):
    """The object changed since it was read, or already exists."""


@dataclass(frozen=True)
class Request:
    """Identifies the object a reconcile pass works on."""

    name: str
    namespace: str = ""


@dataclass(frozen=True)
class Result:
    """Outcome of a reconcile pass: whether and when to run it again."""

    requeue: bool = False
    requeue_after: float = 0.0


def _resolve(kind: KindLike) -> type:
    if isinstance(kind, type):
        cls = _BY_KIND.get(getattr(kind, "KIND", None))
        if cls is kind:
            return cls
    elif isinstance(kind, str) and kind in _BY_KIND:
        return _BY_KIND[kind]
    raise LookupError(f"no resource found for {kind!r}")


def resource_for_kind(kind: KindLike) -> tuple[str, str, str]:
    """Return (group, version, plural resource) for a kind name or resource class."""
    cls = _resolve(kind)
    return (GROUP_NAME, VERSION, cls.PLURAL)


def _status_default(cls: type) -> Any:
    for f in fields(cls):
        if f.name == "status":
            return f.default_factory()  # type: ignore[misc]
    return None


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class InMemoryClient:
    """A thread-safe store of typed resources with API-server semantics.

    Objects are copied on the way in and out; writes bump the resource
    version and reject stale versions; the status of kinds that have one is
    written only through update_status.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._objects: dict[tuple[str, str], Any] = {}
        self._version = 0

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    @staticmethod
    def _key(obj: Any) -> tuple[str, str]:
        cls = _resolve(type(obj))
        name = obj.metadata.name
        if not name:
            raise ApiError(f"{cls.KIND}: resource name may not be empty")
        return cls.KIND, name

    def _existing(self, key: tuple[str, str]) -> Any:
        stored = self._objects.get(key)
        if stored is None:
            raise NotFoundError(f'{key[0]} "{key[1]}" not found')
        return stored

    @staticmethod
    def _check_version(obj: Any, stored: Any) -> None:
        wanted = obj.metadata.resource_version
        if wanted and wanted != stored.metadata.resource_version:
            raise ConflictError(
                f'{type(obj).KIND} "{obj.metadata.name}": the object has been modified'
            )

    @staticmethod
    def _sync_meta(obj: Any, stored: Any) -> None:
        obj.metadata.uid = stored.metadata.uid
        obj.metadata.resource_version = stored.metadata.resource_version
        obj.metadata.creation_timestamp = stored.metadata.creation_timestamp
        obj.metadata.generation = stored.metadata.generation

    def get(self, kind: KindLike, name: str) -> Any:
        """Return a copy of the named object."""
        cls = _resolve(kind)
        with self._lock:
            return copy.deepcopy(self._existing((cls.KIND, name)))

    def list(self, kind: KindLike) -> list[Any]:
        """Return copies of every object of a kind, ordered by name."""
        cls = _resolve(kind)
        with self._lock:
            found = [obj for (k, _), obj in self._objects.items() if k == cls.KIND]
            return [copy.deepcopy(obj) for obj in sorted(found, key=lambda o: o.metadata.name)]

    def create(self, obj: Any) -> Any:
        """Store a new object; any status it carries is dropped."""
        key = self._key(obj)
        with self._lock:
            if key in self._objects:
                raise ConflictError(f'{key[0]} "{key[1]}" already exists')
            stored = copy.deepcopy(obj)
            status = _status_default(type(obj))
            if status is not None:
                stored.status = status
            meta = stored.metadata
            meta.uid = meta.uid or str(uuid.uuid4())
            meta.resource_version = self._next_version()
            if meta.creation_timestamp is None:
                meta.creation_timestamp = _now()
            meta.generation = 1
            self._objects[key] = stored
            self._sync_meta(obj, stored)
            return copy.deepcopy(stored)

    def update(self, obj: Any) -> Any:
        """Replace an object's metadata and spec, keeping its stored status."""
        key = self._key(obj)
        with self._lock:
            stored = self._existing(key)
            self._check_version(obj, stored)
            new = copy.deepcopy(obj)
            if _status_default(type(obj)) is not None:
                new.status = copy.deepcopy(stored.status)
            new.metadata.uid = stored.metadata.uid
            new.metadata.creation_timestamp = stored.metadata.creation_timestamp
            new.metadata.generation = stored.metadata.generation + 1
            new.metadata.resource_version = self._next_version()
            self._objects[key] = new
            self._sync_meta(obj, new)
            return copy.deepcopy(new)

    def update_status(self, obj: Any) -> Any:
        """Replace only the status of a stored object."""
        if _status_default(type(obj)) is None:
            raise ApiError(f"{type(obj).KIND} has no status subresource")
        key = self._key(obj)
        with self._lock:
            stored = self._existing(key)
            self._check_version(obj, stored)
            new = copy.deepcopy(stored)
            new.status = copy.deepcopy(obj.status)
            new.metadata.resource_version = self._next_version()
            self._objects[key] = new
            self._sync_meta(obj, new)
            return copy.deepcopy(new)

    def delete(self, kind: KindLike, name: str) -> None:
        """Remove the named object."""
        cls = _resolve(kind)
        with self._lock:
            self._existing((cls.KIND, name))
            del self._objects[(cls.KIND, name)]