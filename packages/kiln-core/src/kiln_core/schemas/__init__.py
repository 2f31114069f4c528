"""Configuration schemas for kiln."""

from __future__ import annotations

from kiln_core.schemas.install_config import (
    DEFAULT_PRIMARY_REPLICAS,
    PRIMARY_POOL_NAME,
    Admin,
    ClusterNetwork,
    InstallConfig,
    MachinePool,
    Networking,
    ObjectMeta,
)
from kiln_core.schemas.platform import (
    PLATFORM_NAME_AWS,
    PLATFORM_NAME_LIBVIRT,
    PLATFORM_NAME_OPENSTACK,
    AWSPlatform,
    LibvirtPlatform,
    OpenStackPlatform,
    Platform,
)

__all__: list[str] = [
    # Install configuration
    "InstallConfig",
    "ObjectMeta",
    "Admin",
    "Networking",
    "ClusterNetwork",
    "MachinePool",
    "PRIMARY_POOL_NAME",
    "DEFAULT_PRIMARY_REPLICAS",
    # Platforms
    "Platform",
    "AWSPlatform",
    "LibvirtPlatform",
    "OpenStackPlatform",
    "PLATFORM_NAME_AWS",
    "PLATFORM_NAME_LIBVIRT",
    "PLATFORM_NAME_OPENSTACK",
]
