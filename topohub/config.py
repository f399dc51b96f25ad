"""Agent configuration from the environment, the feature file and the storage tree."""

from __future__ import annotations

import logging
import os
import shutil
import socket
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

FEATURE_CONFIG_FILE = "feature-config.yaml"
WEBHOOK_CERT_FILES = ("tls.crt", "tls.key", "ca.crt")
TFTP_PXE_EFI_DIR = "boot/grub/x86_64-efi"
NOBODY_OWNER = (65534, 65534)
DEFAULT_CORE_EFI_SOURCE = "/files/core.efi"
DEFAULT_TOOLS_SOURCE = "/tools"

REQUIRED_ENV = (
    ("POD_NAMESPACE", "pod_namespace"),
    ("NODE_NAME", "node_name"),
    ("WEBHOOK_CERT_DIR", "webhook_cert_dir"),
    ("STORAGE_PATH", "storage_path"),
    ("FEATURE_CONFIG_PATH", "feature_config_path"),
    ("DHCP_CONFIG_TEMPLATE_PATH", "dhcp_config_template_path"),
)

_log = logging.getLogger("topohub.config")


class ConfigError(Exception):
    """The agent configuration is missing, malformed or unusable."""


@dataclass(kw_only=True)
class FeatureConfig:
    """Settings read from the feature configuration file."""

    redfish_port: int = 0
    redfish_https: bool = False
    redfish_secret_name: str = ""
    redfish_secret_namespace: str = ""
    redfish_status_update_interval: int = 0
    ssh_status_update_interval: int = 0
    dhcp_server_interface: str = ""
    http_server_port: str = ""
    http_server_enabled: bool = False


_FEATURE_KEYS = (
    ("redfishPort", "redfish_port", int),
    ("redfishHttps", "redfish_https", bool),
    ("redfishSecretname", "redfish_secret_name", str),
    ("redfishSecretNamespace", "redfish_secret_namespace", str),
    ("redfishStatusUpdateInterval", "redfish_status_update_interval", int),
    ("sshStatusUpdateInterval", "ssh_status_update_interval", int),
    ("dhcpServerInterface", "dhcp_server_interface", str),
    ("httpServerPort", "http_server_port", str),
    ("httpServerEnabled", "http_server_enabled", bool),
)


def _parse_feature_config(text: str) -> FeatureConfig:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as err:
        raise ConfigError(f"failed to parse {FEATURE_CONFIG_FILE}: {err}") from err
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ConfigError(f"failed to parse {FEATURE_CONFIG_FILE}: top level must be a mapping")

    values: dict[str, Any] = {}
    for key, attr, kind in _FEATURE_KEYS:
        value = data.get(key)
        if value is None:
            continue
        if kind is str and isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        elif kind is int and isinstance(value, bool):
            raise ConfigError(f"failed to parse {FEATURE_CONFIG_FILE}: {key} must be an integer")
        if not isinstance(value, kind):
            raise ConfigError(
                f"failed to parse {FEATURE_CONFIG_FILE}: {key} must be of type {kind.__name__}"
            )
        values[attr] = value
    return FeatureConfig(**values)


def _check_interface(name: str) -> None:
    try:
        socket.if_nametoindex(name)
    except OSError as err:
        raise ConfigError(f"failed to find dhcpServer Interface {name}: {err}") from err


@dataclass(kw_only=True)
class AgentConfig:
    """Everything the agent needs to know to run."""

    pod_namespace: str = ""
    node_name: str = ""
    webhook_cert_dir: str = ""

    storage_path: str = ""
    storage_path_dhcp_log: str = ""
    storage_path_dhcp_lease: str = ""
    storage_path_dhcp_config: str = ""
    storage_path_http: str = ""
    storage_path_http_ztp: str = ""
    storage_path_http_iso: str = ""
    storage_path_http_tools: str = ""
    storage_path_tftp: str = ""
    storage_path_tftp_relative_dir_for_pxe_efi: str = ""
    storage_path_tftp_absolute_dir_for_pxe_efi: str = ""

    dhcp_config_template_path: str = ""
    feature_config_path: str = ""

    redfish_port: int = 0
    redfish_https: bool = False
    redfish_secret_name: str = ""
    redfish_secret_namespace: str = ""
    redfish_status_update_interval: int = 0
    ssh_status_update_interval: int = 0

    dhcp_server_interface: str = ""
    http_enabled: bool = False
    http_port: str = ""

    core_efi_source: str = DEFAULT_CORE_EFI_SOURCE
    tools_source: str = DEFAULT_TOOLS_SOURCE
    tftp_owner: Optional[tuple[int, int]] = NOBODY_OWNER

    def load_feature_config(self) -> None:
        """Read the feature file and check that the DHCP interface exists."""
        path = Path(self.feature_config_path) / FEATURE_CONFIG_FILE
        try:
            text = path.read_text()
        except OSError as err:
            raise ConfigError(f"failed to read {FEATURE_CONFIG_FILE}: {err}") from err

        feature = _parse_feature_config(text)
        self.redfish_port = feature.redfish_port
        self.redfish_https = feature.redfish_https
        self.redfish_secret_name = feature.redfish_secret_name
        self.redfish_secret_namespace = feature.redfish_secret_namespace
        self.redfish_status_update_interval = feature.redfish_status_update_interval
        self.ssh_status_update_interval = feature.ssh_status_update_interval
        self.dhcp_server_interface = feature.dhcp_server_interface
        self.http_port = feature.http_server_port
        self.http_enabled = feature.http_server_enabled

        if not self.dhcp_server_interface:
            raise ConfigError("dhcpServerInterface is empty")
        _check_interface(self.dhcp_server_interface)

    def verify_webhook_cert_dir(self) -> None:
        """Check that the webhook certificate directory holds every required file."""
        for name in WEBHOOK_CERT_FILES:
            path = Path(self.webhook_cert_dir) / name
            try:
                path.stat()
            except OSError as err:
                raise ConfigError(
                    f"required webhook certificate file {name} not found: {err}"
                ) from err

    def init_storage_directory(self) -> None:
        """Derive the storage layout, create it and seed it with boot files and tools."""
        root = Path(self.storage_path)
        if not root.exists():
            raise ConfigError(f"did not exist storage path {self.storage_path}")

        tftp = root / "tftp"
        http = root / "http"
        self.storage_path_dhcp_lease = str(root / "dhcp/lease")
        self.storage_path_dhcp_config = str(root / "dhcp/config")
        self.storage_path_dhcp_log = str(root / "dhcp/log")
        self.storage_path_tftp = str(tftp)
        self.storage_path_tftp_relative_dir_for_pxe_efi = TFTP_PXE_EFI_DIR
        self.storage_path_tftp_absolute_dir_for_pxe_efi = str(tftp / TFTP_PXE_EFI_DIR)
        self.storage_path_http = str(http)
        self.storage_path_http_ztp = str(http / "ztp")
        self.storage_path_http_iso = str(http / "iso")
        self.storage_path_http_tools = str(http / "tools")

        for directory in (
            self.storage_path_dhcp_lease,
            self.storage_path_dhcp_config,
            self.storage_path_dhcp_log,
            self.storage_path_tftp,
            self.storage_path_tftp_absolute_dir_for_pxe_efi,
            self.storage_path_http,
            self.storage_path_http_iso,
            self.storage_path_http_ztp,
        ):
            try:
                os.makedirs(directory, mode=0o755, exist_ok=True)
            except OSError as err:
                raise ConfigError(f"failed to create subdirectory {directory}: {err}") from err

        if self.tftp_owner is not None:
            try:
                os.chown(self.storage_path_tftp, *self.tftp_owner)
            except OSError as err:
                raise ConfigError(f"failed to change ownership of TFTP directory: {err}") from err
        try:
            os.chmod(self.storage_path_tftp, 0o777)
        except OSError as err:
            raise ConfigError(f"failed to change permissions of TFTP directory: {err}") from err

        self._install_core_efi()
        self._install_tools()

    def _install_core_efi(self) -> None:
        target = Path(self.storage_path_tftp_absolute_dir_for_pxe_efi) / "core.efi"
        if target.exists():
            return
        source = Path(self.core_efi_source)
        if not source.exists():
            raise ConfigError("source core.efi not found")
        _log.info("%s exists, copying to %s", source, target)
        try:
            target.write_bytes(source.read_bytes())
            os.chmod(target, 0o644)
        except OSError as err:
            raise ConfigError(f"failed to copy core.efi to {target}: {err}") from err
        _log.info("successfully copied core.efi to %s", target)

    def _install_tools(self) -> None:
        tools = Path(self.storage_path_http_tools)
        try:
            if tools.exists():
                shutil.rmtree(tools)
        except OSError as err:
            raise ConfigError(f"failed to delete tools directory {tools}: {err}") from err
        try:
            tools.mkdir(mode=0o755, parents=True)
        except OSError as err:
            raise ConfigError(f"failed to create tools directory {tools}: {err}") from err
        try:
            shutil.copytree(self.tools_source, tools, dirs_exist_ok=True)
        except (OSError, shutil.Error) as err:
            raise ConfigError(f"failed to copy tools: {err}") from err


def load_agent_config(environ: Optional[Mapping[str, str]] = None) -> AgentConfig:
    """Build and validate the agent configuration.

    Required variables are POD_NAMESPACE, NODE_NAME, WEBHOOK_CERT_DIR,
    STORAGE_PATH, FEATURE_CONFIG_PATH and DHCP_CONFIG_TEMPLATE_PATH.
    CORE_EFI_SOURCE and TOOLS_SOURCE may override where boot files and
    tools are copied from.
    """
    env = os.environ if environ is None else environ
    config = AgentConfig()
    for variable, attr in REQUIRED_ENV:
        value = env.get(variable, "")
        if not value:
            raise ConfigError(f"{variable} environment variable not set")
        setattr(config, attr, value)
    if env.get("CORE_EFI_SOURCE"):
        config.core_efi_source = env["CORE_EFI_SOURCE"]
    if env.get("TOOLS_SOURCE"):
        config.tools_source = env["TOOLS_SOURCE"]

    try:
        config.load_feature_config()
    except ConfigError as err:
        raise ConfigError(f"failed to load feature configuration: {err}") from err
    try:
        config.verify_webhook_cert_dir()
    except ConfigError as err:
        raise ConfigError(f"webhook certificate verification failed: {err}") from err
    try:
        config.init_storage_directory()
    except ConfigError as err:
        raise ConfigError(f"failed to ensure storage path: {err}") from err

    _log.info("agent configuration loaded successfully")
    return config