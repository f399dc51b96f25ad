import pytest

from topohub.meta import API_VERSION, LABEL_IP_ADDR, Condition, ObjectMeta, OwnerReference
from topohub.resources import (
    BOOT_CMD_RESET_PXE_ONCE,
    ENDPOINT_TYPE_SSH,
    HOST_OPERATION_STATUS_SUCCESS,
    BasicInfo,
    BindingIp,
    BindingIpSpec,
    BindingIpStatus,
    DhcpStatusSpec,
    FeatureSpec,
    HostEndpoint,
    HostEndpointSpec,
    HostOperation,
    HostOperationSpec,
    HostOperationStatus,
    InterfaceSpec,
    IPv4SubnetSpec,
    LogEntry,
    LogStruct,
    RedfishStatus,
    RedfishStatusStatus,
    SSHBasicInfo,
    SSHStatus,
    SSHStatusStatus,
    Subnet,
    SubnetSpec,
    SubnetStatus,
    SyncRedfishstatusSpec,
    from_manifest,
    to_manifest,
)


def _binding():
    return BindingIp(
        metadata=ObjectMeta(name="bind-1"),
        spec=BindingIpSpec(subnet="net1", ip_addr="192.168.1.10", mac_addr="00:00:5e:00:53:01"),
        status=BindingIpStatus(valid=True),
    )


def test_binding_ip_manifest_fields():
    data = to_manifest(_binding())
    assert data["apiVersion"] == API_VERSION
    assert data["kind"] == "BindingIp"
    assert data["spec"] == {
        "subnet": "net1",
        "ipAddr": "192.168.1.10",
        "macAddr": "00:00:5e:00:53:01",
    }
    assert data["status"] == {"valid": True}


def test_binding_ip_round_trip():
    obj = _binding()
    assert from_manifest(to_manifest(obj)) == obj


def test_host_endpoint_optional_fields_omitted():
    endpoint = HostEndpoint(metadata=ObjectMeta(name="h"), spec=HostEndpointSpec(ip_addr="10.0.0.5"))
    data = to_manifest(endpoint)
    assert data["spec"] == {"ipAddr": "10.0.0.5"}
    assert from_manifest(data) == endpoint


def test_host_endpoint_full_round_trip():
    endpoint = HostEndpoint(
        metadata=ObjectMeta(name="h", labels={LABEL_IP_ADDR: "10.0.0.5"}),
        spec=HostEndpointSpec(
            ip_addr="10.0.0.5",
            cluster_name="c1",
            secret_name="s",
            secret_namespace="ns",
            https=False,
            port=22,
            type=ENDPOINT_TYPE_SSH,
        ),
    )
    data = to_manifest(endpoint)
    assert data["spec"]["https"] is False
    assert data["spec"]["type"] == "ssh"
    assert from_manifest(data) == endpoint


def test_host_endpoint_deep_copy_is_independent():
    endpoint = HostEndpoint(
        metadata=ObjectMeta(name="h", labels={"k": "v"}),
        spec=HostEndpointSpec(ip_addr="10.0.0.5", port=443),
    )
    clone = endpoint.deep_copy()
    assert clone == endpoint
    clone.spec.port = 8443
    clone.metadata.labels["k"] = "changed"
    assert endpoint.spec.port == 443
    assert endpoint.metadata.labels == {"k": "v"}


def test_host_operation_status_omits_empty_fields():
    op = HostOperation(
        metadata=ObjectMeta(name="op"),
        spec=HostOperationSpec(action=BOOT_CMD_RESET_PXE_ONCE, redfish_status_name="h"),
    )
    data = to_manifest(op)
    assert data["status"] == {}
    assert data["spec"] == {"action": "PxeReboot", "redfishStatusName": "h"}
    op.status = HostOperationStatus(status=HOST_OPERATION_STATUS_SUCCESS, ip_addr="10.0.0.5")
    data = to_manifest(op)
    assert data["status"] == {"status": "success", "ipAddr": "10.0.0.5"}
    assert from_manifest(data) == op


def test_redfish_status_round_trip_with_logs():
    status = RedfishStatus(
        metadata=ObjectMeta(
            name="h",
            owner_references=[OwnerReference(api_version=API_VERSION, kind="HostEndpoint",
                                             name="h", controller=True)],
        ),
        status=RedfishStatusStatus(
            healthy=True,
            last_update_time="2024-01-01T00:00:00Z",
            basic=BasicInfo(type="hostendpoint", ip_addr="10.0.0.5", https=True, port=443,
                            subnet_name="net1"),
            info={"model": "m"},
            log=LogStruct(total_log_account=2, warning_log_account=1,
                          lastest_log=LogEntry(time="t", message="m")),
        ),
    )
    data = to_manifest(status)
    assert data["kind"] == "RedfishStatus"
    assert "mac" not in data["status"]["basic"]
    assert "lastestWarningLog" not in data["status"]["log"]
    assert from_manifest(data) == status


def test_redfish_status_null_info_decodes_to_empty():
    data = to_manifest(RedfishStatus(metadata=ObjectMeta(name="h")))
    data["status"]["info"] = None
    assert from_manifest(data).status.info == {}


def test_ssh_status_round_trip():
    status = SSHStatus(
        metadata=ObjectMeta(name="s"),
        status=SSHStatusStatus(
            basic=SSHBasicInfo(type="ssh", ip_addr="10.0.0.6", port=22, ssh_key_auth=True),
            info={},
        ),
    )
    data = to_manifest(status)
    assert data["kind"] == "SSHStatus"
    assert data["status"]["basic"]["sshKeyAuth"] is True
    assert from_manifest(data) == status


def _subnet():
    return Subnet(
        metadata=ObjectMeta(name="net1"),
        spec=SubnetSpec(
            ipv4_subnet=IPv4SubnetSpec(subnet="192.168.1.0/24",
                                       ip_range="192.168.1.10-192.168.1.20",
                                       gateway="192.168.1.1"),
            interface=InterfaceSpec(interface="eth1", ipv4="192.168.1.2/24", vlan_id=0),
            feature=FeatureSpec(sync_redfishstatus=SyncRedfishstatusSpec(enabled=True),
                                enable_pxe=True),
        ),
        status=SubnetStatus(
            dhcp_status=DhcpStatusSpec(dhcp_ip_total_amount=11, dhcp_ip_available_amount=11),
            conditions=[Condition(type="Ready", status="True")],
        ),
    )


def test_subnet_round_trip():
    obj = _subnet()
    assert from_manifest(to_manifest(obj)) == obj


def test_subnet_status_always_carries_client_details():
    data = to_manifest(_subnet())
    assert data["status"]["dhcpClientDetails"] == ""
    assert "vlanId" not in data["spec"]["interface"]


def test_sync_spec_defaults_bind_dhcp_ip_to_true():
    data = to_manifest(_subnet())
    del data["spec"]["feature"]["syncRedfishstatus"]["enableBindDhcpIP"]
    decoded = from_manifest(data)
    assert decoded.spec.feature.sync_redfishstatus.enable_bind_dhcp_ip is True


def test_unknown_kind_rejected():
    with pytest.raises(ValueError):
        from_manifest({"apiVersion": API_VERSION, "kind": "Pod", "metadata": {}})


def test_wrong_api_version_rejected():
    data = to_manifest(_binding())
    data["apiVersion"] = "v1"
    with pytest.raises(ValueError):
        from_manifest(data)


def test_missing_required_field_rejected():
    data = to_manifest(_binding())
    del data["spec"]["ipAddr"]
    with pytest.raises(ValueError):
        from_manifest(data)


def test_wrong_field_type_rejected():
    data = to_manifest(_binding())
    data["status"]["valid"] = "yes"
    with pytest.raises(ValueError):
        from_manifest(data)


def test_to_manifest_rejects_nested_types():
    with pytest.raises(TypeError):
        to_manifest(BindingIpSpec(subnet="a", ip_addr="b", mac_addr="c"))