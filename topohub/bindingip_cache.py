"""A thread-safe cache of IP-to-MAC bindings, keyed by binding name."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class BindingIPInfo:
    """What the DHCP server needs to know about one binding."""

    subnet: str = ""
    ip_addr: str = ""
    mac_addr: str = ""
    valid: bool = False
    hostname: str = ""


class BindingIPCache:
    """Bindings by name, safe to share between threads."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._data: dict[str, BindingIPInfo] = {}

    def add(self, name: str, info: BindingIPInfo) -> None:
        """Add or replace the binding stored under a name."""
        with self._lock:
            self._data[name] = info

    def delete(self, name: str) -> None:
        """Forget a binding; unknown names are ignored."""
        with self._lock:
            self._data.pop(name, None)

    def get(self, name: str) -> Optional[BindingIPInfo]:
        """Return the binding stored under a name, or None."""
        with self._lock:
            return self._data.get(name)

    def get_all(self) -> list[BindingIPInfo]:
        """Return every cached binding."""
        with self._lock:
            return list(self._data.values())

    def get_info_for_subnet(self, subnet_name: str) -> list[BindingIPInfo]:
        """Return the bindings that belong to a subnet."""
        with self._lock:
            return [info for info in self._data.values() if info.subnet == subnet_name]

    def get_by_subnet(self, subnet: str) -> dict[str, BindingIPInfo]:
        """Return the bindings of a subnet, keyed by binding name."""
        with self._lock:
            return {name: info for name, info in self._data.items() if info.subnet == subnet}


binding_ip_cache_database = BindingIPCache()