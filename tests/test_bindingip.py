import queue

import pytest

from topohub.bindingip import BindingIPController
from topohub.bindingip_cache import BindingIPCache, BindingIPInfo
from topohub.client import ApiError, ConflictError, InMemoryClient, Request, Result
from topohub.meta import ObjectMeta
from topohub.resources import (
    BindingIp,
    BindingIpSpec,
    InterfaceSpec,
    IPv4SubnetSpec,
    Subnet,
    SubnetSpec,
)

MAC = "aa:bb:cc:dd:ee:01"


def _subnet(ip_range="192.168.1.10-192.168.1.100"):
    return Subnet(
        metadata=ObjectMeta(name="s1"),
        spec=SubnetSpec(
            ipv4_subnet=IPv4SubnetSpec(subnet="192.168.1.0/24", ip_range=ip_range),
            interface=InterfaceSpec(interface="eth0", ipv4="192.168.1.2/24"),
        ),
    )


def _binding(ip="192.168.1.50", subnet="s1", mac=MAC):
    return BindingIp(
        metadata=ObjectMeta(name="b1"),
        spec=BindingIpSpec(subnet=subnet, ip_addr=ip, mac_addr=mac),
    )


def _drain(q):
    items = []
    while not q.empty():
        items.append(q.get_nowait())
    return items


def _setup(ip="192.168.1.50", ip_range="192.168.1.10-192.168.1.100", with_subnet=True):
    client = InMemoryClient()
    if with_subnet:
        client.create(_subnet(ip_range))
    client.create(_binding(ip=ip))
    controller = BindingIPController(
        client, added=queue.Queue(), deleted=queue.Queue(), cache=BindingIPCache()
    )
    return client, controller


def test_new_binding_in_range_becomes_valid_and_is_announced():
    client, controller = _setup()
    result = controller.reconcile(Request("b1"))
    assert result == Result(requeue_after=60.0)
    assert client.get(BindingIp, "b1").status.valid is True
    added = _drain(controller.added)
    assert added == [BindingIPInfo(subnet="s1", ip_addr="192.168.1.50", mac_addr=MAC,
                                   valid=False, hostname="b1")]


def test_second_pass_updates_cache_without_event():
    _, controller = _setup()
    controller.reconcile(Request("b1"))
    _drain(controller.added)
    controller.reconcile(Request("b1"))
    assert _drain(controller.added) == []
    assert controller.cache.get("b1").valid is True


def test_out_of_range_stays_invalid_without_write():
    client, controller = _setup(ip="192.168.1.200")
    version = client.get(BindingIp, "b1").metadata.resource_version
    controller.reconcile(Request("b1"))
    stored = client.get(BindingIp, "b1")
    assert stored.status.valid is False
    assert stored.metadata.resource_version == version


def test_missing_subnet_is_invalid():
    client, controller = _setup(with_subnet=False)
    controller.reconcile(Request("b1"))
    assert client.get(BindingIp, "b1").status.valid is False
    assert len(_drain(controller.added)) == 1


def test_unparseable_ip_is_invalid():
    client, controller = _setup(ip="not-an-ip")
    controller.reconcile(Request("b1"))
    assert client.get(BindingIp, "b1").status.valid is False


def test_second_range_of_list_is_checked():
    client, controller = _setup(ip="10.0.0.5", ip_range="192.168.1.10-192.168.1.20,10.0.0.1-10.0.0.9")
    controller.reconcile(Request("b1"))
    assert client.get(BindingIp, "b1").status.valid is True


def test_spec_change_is_announced_again():
    client, controller = _setup()
    controller.reconcile(Request("b1"))
    _drain(controller.added)
    obj = client.get(BindingIp, "b1")
    obj.spec.ip_addr = "192.168.1.60"
    client.update(obj)
    controller.reconcile(Request("b1"))
    added = _drain(controller.added)
    assert [info.ip_addr for info in added] == ["192.168.1.60"]


def test_mac_case_change_is_not_announced():
    client, controller = _setup()
    controller.reconcile(Request("b1"))
    controller.reconcile(Request("b1"))
    _drain(controller.added)
    obj = client.get(BindingIp, "b1")
    obj.spec.mac_addr = MAC.upper()
    client.update(obj)
    controller.reconcile(Request("b1"))
    assert _drain(controller.added) == []


def test_deleted_binding_is_announced_and_forgotten():
    client, controller = _setup()
    controller.reconcile(Request("b1"))
    controller.reconcile(Request("b1"))
    client.delete(BindingIp, "b1")
    assert controller.reconcile(Request("b1")) == Result()
    assert _drain(controller.deleted) == [
        BindingIPInfo(subnet="s1", ip_addr="192.168.1.50", mac_addr=MAC, valid=False, hostname="b1")
    ]
    assert controller.cache.get("b1") is None


def test_unknown_deleted_binding_sends_nothing():
    client = InMemoryClient()
    controller = BindingIPController(client, cache=BindingIPCache())
    assert controller.reconcile(Request("ghost")) == Result()
    assert controller.deleted.empty()


class _ConflictOnStatus:
    def __init__(self, inner):
        self._inner = inner

    def get(self, kind, name):
        return self._inner.get(kind, name)

    def update_status(self, obj):
        raise ConflictError("conflict")


class _BrokenGet:
    def get(self, kind, name):
        raise ApiError("boom")


def test_conflict_requeues_without_processing():
    client, _ = _setup()
    controller = BindingIPController(_ConflictOnStatus(client), cache=BindingIPCache())
    assert controller.reconcile(Request("b1")) == Result(requeue=True)
    assert controller.cache.get_all() == []


def test_other_get_errors_propagate():
    controller = BindingIPController(_BrokenGet(), cache=BindingIPCache())
    with pytest.raises(ApiError, match="boom"):
        controller.reconcile(Request("b1"))


def test_update_binding_ip_status_returns_updated_object():
    client, controller = _setup()
    updated = controller.update_binding_ip_status(client.get(BindingIp, "b1"))
    assert updated.status.valid is True
    assert updated.metadata.resource_version == client.get(BindingIp, "b1").metadata.resource_version