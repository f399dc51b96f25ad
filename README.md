# topohub

`topohub` is a library for keeping track of bare-metal hosts that are managed
over Redfish or SSH. It contains:

- **Resource models** in `topohub.resources`. These are dataclasses for the
  resources `Subnet`, `BindingIp`, `HostEndpoint`, `HostOperation`,
  `RedfishStatus` and `SSHStatus`. `to_manifest(obj)` turns a resource into a
  manifest dictionary. `from_manifest(data)` turns a manifest back into a
  typed object, and raises `ValueError` on an unknown kind, an unsupported
  `apiVersion`, a missing required field or a value of the wrong type.
  `topohub.meta` holds the API group constants, the label keys,
  `ObjectMeta`, `OwnerReference`, `Condition` and `group_resource`.
- **An in-memory resource store**, `topohub.client.InMemoryClient`. It has
  `get`, `list`, `create`, `update`, `update_status` and `delete`, and works
  like an API server:
  - objects are copied on the way in and on the way out;
  - every write bumps the resource version;
  - a write carrying a stale resource version raises `ConflictError`;
  - a missing object raises `NotFoundError`;
  - `create` drops any status the object carries, and `update` keeps the
    stored status, so status is written only through `update_status`.

  Both errors derive from `ApiError`. `resource_for_kind` maps a kind name or
  a resource class to `(group, version, plural)`. `Request` and `Result`
  describe one reconcile pass.
- **A binding cache**, `topohub.bindingip_cache.BindingIPCache`. It is a
  thread-safe store of `BindingIPInfo` entries keyed by binding name, and can
  be looked up by subnet. A shared instance is `binding_ip_cache_database`.
- **Reconcilers**:
  - `topohub.bindingip.BindingIPController` sets a `BindingIp` to valid when
    its address lies in the IP range of its subnet (for example
    `"10.0.0.10-10.0.0.20,10.0.1.5-10.0.1.9"`). It updates the binding cache,
    and puts new or changed bindings on its `added` queue and removed ones on
    its `deleted` queue. A successful pass returns
    `Result(requeue_after=60.0)`, and a status conflict returns
    `Result(requeue=True)`.
  - `topohub.hostendpoint.HostEndpointReconciler` creates or refreshes the
    `RedfishStatus` (the default type) or `SSHStatus` that belongs to each
    `HostEndpoint`. New status objects carry the endpoint's labels and an
    owner reference to it. `spec_equal` and `spec_equal_ssh` decide whether
    an existing status already matches the endpoint.
- **Agent configuration** in `topohub.config`. `load_agent_config()` builds an
  `AgentConfig` from the environment and `feature-config.yaml`, checks it, and
  prepares the storage tree. Every failure raises `ConfigError`.
- **A static file server** for PXE and ZTP files,
  `topohub.httpserver.HttpServer`. `run()` binds the port and serves the HTTP
  storage directory from a background thread. `stop()` shuts it down, and
  calling it again does nothing. `server_address` gives the bound address
  while the server is running.

## Installation

```
pip install .
```

## Example

```python
from topohub.client import InMemoryClient, Request
from topohub.hostendpoint import HostEndpointReconciler
from topohub.resources import from_manifest

client = InMemoryClient()
endpoint = from_manifest({
    "apiVersion": "topohub.infrastructure.io/v1beta1",
    "kind": "HostEndpoint",
    "metadata": {"name": "host-a"},
    "spec": {"ipAddr": "192.168.1.10", "port": 443, "https": True},
})
client.create(endpoint)

reconciler = HostEndpointReconciler(client)
reconciler.reconcile(Request(name="host-a"))

status = client.get("RedfishStatus", "host-a")
print(status.status.basic.ip_addr)  # 192.168.1.10
```

## Agent configuration

`load_agent_config(environ=None)` reads `os.environ` by default. These
variables are required:

- `POD_NAMESPACE`
- `NODE_NAME`
- `WEBHOOK_CERT_DIR`
- `STORAGE_PATH`
- `FEATURE_CONFIG_PATH`
- `DHCP_CONFIG_TEMPLATE_PATH`

It then goes through these steps in order:

1. It reads `feature-config.yaml` from `FEATURE_CONFIG_PATH`. The keys are
   `redfishPort`, `redfishHttps`, `redfishSecretname`,
   `redfishSecretNamespace`, `redfishStatusUpdateInterval`,
   `sshStatusUpdateInterval`, `dhcpServerInterface`, `httpServerPort` and
   `httpServerEnabled`. `dhcpServerInterface` must be set, and it must name a
   network interface that exists on the host.
2. It checks that `WEBHOOK_CERT_DIR` holds `tls.crt`, `tls.key` and `ca.crt`.
3. It prepares the storage tree under `STORAGE_PATH`, which must already
   exist. It creates the `dhcp/lease`, `dhcp/config`, `dhcp/log`, `tftp`,
   `tftp/boot/grub/x86_64-efi`, `http`, `http/iso` and `http/ztp`
   directories. It gives `tftp` to uid/gid 65534 with mode 0777. It copies
   `core.efi` into place if it is not already there, and replaces
   `http/tools` with a fresh copy of the tools directory.

The copy sources default to `/files/core.efi` and `/tools`. They can be
changed with the optional `CORE_EFI_SOURCE` and `TOOLS_SOURCE` variables.

## What this package does not do

- It has no command-line program and no long-running agent process.
- It does not connect to a real cluster API. `InMemoryClient` is the only
  store it provides.
- It does not include admission webhooks, a DHCP server, or the controllers
  for subnets, secrets, host operations and status polling.
- It does not talk to Redfish or SSH endpoints. It keeps their status
  objects, but it does not fill them from live hosts.

## Tests

```
pip install .[test]
pytest
```