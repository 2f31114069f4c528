"""InstallConfig root model for kiln.

This module defines the install configuration every generated artifact is
derived from:
- ObjectMeta: Cluster name
- Admin: Admin user credentials and SSH key
- Networking: Service and cluster networks
- MachinePool: Named pool of machines with a replica count
- InstallConfig: Root model with from_yaml()
"""

from __future__ import annotations

from ipaddress import IPv4Address, IPv4Network
from pathlib import Path
from typing import Any

import pydantic
import yaml
from pydantic import BaseModel, ConfigDict, Field

from kiln_core.errors import ConfigurationError
from kiln_core.schemas.platform import Platform

# Name of the machine pool whose replicas form the control plane
PRIMARY_POOL_NAME = "primary"

# Replica count used when no primary pool declares one
DEFAULT_PRIMARY_REPLICAS = 1

# Offset of the cluster DNS service within the service network
CLUSTER_DNS_HOST_INDEX = 10

# Cluster names become DNS labels
CLUSTER_NAME_PATTERN = r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$"


class ObjectMeta(BaseModel):
    """Identifying metadata of the cluster."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(
        ...,
        min_length=1,
        max_length=63,
        pattern=CLUSTER_NAME_PATTERN,
        description="Cluster name (DNS label)",
    )


class Admin(BaseModel):
    """Configuration for the admin user."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    email: str = Field(..., min_length=1, description="Email address of the admin user")
    password: str = Field(default="", description="Password of the admin user")
    ssh_key: str = Field(default="", description="SSH public key for access to machines")


class ClusterNetwork(BaseModel):
    """An IP block pods are assigned addresses from."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    cidr: IPv4Network = Field(..., description="Pod network block")
    host_subnet_length: int = Field(
        default=9,
        ge=1,
        le=32,
        description="Bits of each node's host subnet",
    )


class Networking(BaseModel):
    """Network configuration of the cluster."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: str = Field(default="OVNKubernetes", description="Pod network provider")
    service_cidr: IPv4Network = Field(
        default=IPv4Network("172.30.0.0/16"),
        description="IP block service addresses are assigned from",
    )
    cluster_networks: list[ClusterNetwork] = Field(
        default_factory=list,
        description="IP blocks pod addresses are assigned from",
    )
    pod_cidr: IPv4Network | None = Field(
        default=None,
        description="Deprecated single pod block, used when cluster_networks is empty",
    )


class MachinePool(BaseModel):
    """A named pool of identically configured machines."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Pool name (e.g. primary, worker)")
    replicas: int | None = Field(
        default=None,
        ge=0,
        description="Number of machines in the pool",
    )


class InstallConfig(BaseModel):
    """Root configuration model for install-config.yaml.

    Attributes:
        metadata: Cluster identity.
        cluster_id: Unique cluster identifier.
        admin: Admin user configuration.
        base_domain: Base DNS domain of the cluster.
        networking: Service and pod networks.
        machines: Machine pools to install.
        platform: Target platform.
        pull_secret: Secret used to pull images.

    Example:
        >>> config = InstallConfig.from_yaml(Path("install-config.yaml"))
        >>> config.primary_count()
        3
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    metadata: ObjectMeta = Field(..., description="Cluster metadata")
    cluster_id: str = Field(..., min_length=1, description="Unique cluster identifier")
    admin: Admin = Field(..., description="Admin user configuration")
    base_domain: str = Field(..., min_length=1, description="Base DNS domain")
    networking: Networking = Field(
        default_factory=Networking,
        description="Network configuration",
    )
    machines: list[MachinePool] = Field(
        default_factory=list,
        description="Machine pools to install",
    )
    platform: Platform = Field(default_factory=Platform, description="Target platform")
    pull_secret: str = Field(default="", description="Secret used to pull images")

    def primary_count(self) -> int:
        """Return the replica count of the primary machine pool.

        Defaults to one if no pool named "primary" declares replicas.
        """
        for pool in self.machines:
            if pool.name == PRIMARY_POOL_NAME and pool.replicas is not None:
                return pool.replicas
        return DEFAULT_PRIMARY_REPLICAS

    def cluster_dns_ip(self) -> IPv4Address:
        """Return the address of the cluster DNS service.

        The tenth host of the service network.

        Raises:
            ValueError: If the service network is too small.
        """
        network = self.networking.service_cidr
        if network.num_addresses <= CLUSTER_DNS_HOST_INDEX:
            raise ValueError(f"service network {network} is too small for the cluster DNS IP")
        return network.network_address + CLUSTER_DNS_HOST_INDEX

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, source: str | None = None) -> InstallConfig:
        """Validate raw install configuration data.

        Args:
            data: Parsed configuration mapping.
            source: Where the data came from, for error messages.

        Raises:
            ConfigurationError: If validation fails.
        """
        try:
            return cls.model_validate(data)
        except pydantic.ValidationError as e:
            first = e.errors()[0]
            field_path = ".".join(str(p) for p in first["loc"]) or None
            raise ConfigurationError(
                f"Invalid install configuration: {first['msg']}",
                file_path=source,
                field_path=field_path,
                internal_details=str(e),
            ) from e

    @classmethod
    def from_yaml(cls, path: Path | str) -> InstallConfig:
        """Load InstallConfig from a YAML file.

        Args:
            path: Path to install-config.yaml.

        Returns:
            Parsed and validated InstallConfig.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ConfigurationError: If the YAML is invalid or validation fails.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Install config not found: {path}")

        try:
            data = yaml.safe_load(path.read_text())
        except yaml.YAMLError as e:
            raise ConfigurationError(
                "Install configuration is not valid YAML",
                file_path=str(path),
                internal_details=str(e),
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                "Install configuration must be a YAML mapping",
                file_path=str(path),
            )

        return cls.from_dict(data, source=str(path))
