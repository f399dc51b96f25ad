"""Reconciler that validates IP bindings and feeds them to the DHCP server."""

from __future__ import annotations

import ipaddress
import logging
import queue
import threading
from typing import Any, Optional

from .bindingip_cache import BindingIPCache, BindingIPInfo, binding_ip_cache_database
from .client import ApiError, ConflictError, NotFoundError, Request, Result
from .resources import BindingIp, Subnet

_binding_ip_lock = threading.Lock()

RESYNC_SECONDS = 60.0


def _parse_ip(text: str) -> Optional[ipaddress._BaseAddress]:
    try:
        return ipaddress.ip_address(text)
    except ValueError:
        return None


def _ip_in_range(ip: ipaddress._BaseAddress, ip_range: str) -> bool:
    """Check an address against a range list such as 'a-b,c-d'."""
    for part in ip_range.split(","):
        start, sep, end = part.strip().partition("-")
        low = _parse_ip(start.strip())
        high = _parse_ip(end.strip()) if sep else low
        if low is None or high is None:
            continue
        if low.version == ip.version == high.version and low <= ip <= high:
            return True
    return False


class BindingIPController:
    """Keeps BindingIp status and the binding cache in step with the store."""

    def __init__(
        self,
        client: Any,
        config: Any = None,
        added: Optional[Any] = None,
        deleted: Optional[Any] = None,
        cache: Optional[BindingIPCache] = None,
    ) -> None:
        self.client = client
        self.config = config
        self.added = added if added is not None else queue.Queue()
        self.deleted = deleted if deleted is not None else queue.Queue()
        self.cache = cache if cache is not None else binding_ip_cache_database
        self._log = logging.getLogger("topohub.bindingip")

    def process_binding_ip(self, binding_ip: BindingIp) -> None:
        """Update the cache and announce bindings whose spec is new or changed."""
        name = binding_ip.metadata.name
        info = BindingIPInfo(
            subnet=binding_ip.spec.subnet,
            ip_addr=binding_ip.spec.ip_addr,
            mac_addr=binding_ip.spec.mac_addr,
            valid=binding_ip.status.valid,
            hostname=name,
        )
        with _binding_ip_lock:
            old = self.cache.get(name)
            if old is None:
                self.cache.add(name, info)
                self._log.info("new bindingIP added to cache: %s", info)
                self.added.put(info)
            elif (
                old.ip_addr != info.ip_addr
                or old.mac_addr.casefold() != info.mac_addr.casefold()
                or old.subnet != info.subnet
            ):
                self._log.info("bindingIP %s spec changed, notify the dhcp server", name)
                self.cache.add(name, info)
                self.added.put(info)
            elif old != info:
                self._log.info("valid status of bindingIP changes, from %s to %s", old, info)
                self.cache.add(name, info)
            else:
                self._log.debug("bindingIP %s does not change", name)

    def update_binding_ip_status(self, binding_ip: BindingIp) -> BindingIp:
        """Mark the binding valid when its address lies in its subnet's range."""
        updated = BindingIp(
            metadata=binding_ip.metadata,
            spec=binding_ip.spec,
            status=type(binding_ip.status)(valid=binding_ip.status.valid),
        )
        spec = updated.spec
        try:
            subnet = self.client.get(Subnet, spec.subnet)
        except ApiError:
            updated.status.valid = False
            self._log.debug("subnet %s not found, set status.valid to false", spec.subnet)
        else:
            ip_range = subnet.spec.ipv4_subnet.ip_range
            ip = _parse_ip(spec.ip_addr)
            updated.status.valid = ip is not None and _ip_in_range(ip, ip_range)
            self._log.debug(
                "IP %s in subnet %s range %s: valid=%s",
                spec.ip_addr, spec.subnet, ip_range, updated.status.valid,
            )

        if updated.status != binding_ip.status:
            self._log.info("status change to %s, updating", updated.status)
            return self.client.update_status(updated)
        return updated

    def reconcile(self, request: Request) -> Result:
        """Run one reconcile pass for the named binding."""
        try:
            binding_ip = self.client.get(BindingIp, request.name)
        except NotFoundError:
            data = self.cache.get(request.name)
            if data is not None:
                self.cache.delete(request.name)
                gone = BindingIPInfo(
                    subnet=data.subnet,
                    ip_addr=data.ip_addr,
                    mac_addr=data.mac_addr,
                    hostname=data.hostname,
                )
                self.deleted.put(gone)
                self._log.info("bindingIP deleted, notify the dhcp server: %s", gone)
            return Result()
        except ApiError as err:
            self._log.error("failed to get BindingIp %s: %s", request.name, err)
            raise

        try:
            self.update_binding_ip_status(binding_ip)
        except ConflictError:
            self._log.debug("conflict while updating BindingIp status, will retry")
            return Result(requeue=True)
        except ApiError as err:
            self._log.error("failed to update BindingIp status: %s", err)
            raise

        self.process_binding_ip(binding_ip)
        return Result(requeue_after=RESYNC_SECONDS)