"""Platform models for the install configuration.

This module defines the target platform an install runs on:
- AWSPlatform, LibvirtPlatform, OpenStackPlatform: Platform-specific settings
- Platform: Container holding at most one of the above
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing_extensions import Self

# Platform names returned by Platform.name()
PLATFORM_NAME_AWS = "aws"
PLATFORM_NAME_LIBVIRT = "libvirt"
PLATFORM_NAME_OPENSTACK = "openstack"


class AWSPlatform(BaseModel):
    """Configuration used when installing on AWS."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    region: str = Field(..., min_length=1, description="AWS region")
    vpc_cidr_block: str | None = Field(
        default=None,
        description="CIDR block of the VPC created for the cluster",
    )
    user_tags: dict[str, str] = Field(
        default_factory=dict,
        description="Additional tags applied to created resources",
    )


class LibvirtPlatform(BaseModel):
    """Configuration used when installing on libvirt."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    uri: str = Field(
        default="qemu:///system",
        description="Libvirt connection URI",
    )
    network_if_name: str = Field(
        default="tt0",
        description="Name of the libvirt network interface",
    )


class OpenStackPlatform(BaseModel):
    """Configuration used when installing on OpenStack."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    region: str = Field(..., min_length=1, description="OpenStack region")
    cloud: str = Field(
        default="openstack",
        description="Name of the cloud entry in clouds.yaml",
    )
    external_network: str = Field(
        default="public",
        description="External network used for floating IPs",
    )


class Platform(BaseModel):
    """Target platform of the install. Only one platform may be set.

    Example:
        >>> Platform(aws=AWSPlatform(region="us-east-1")).name()
        'aws'
        >>> Platform().name()
        ''
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    aws: AWSPlatform | None = Field(default=None, description="AWS configuration")
    libvirt: LibvirtPlatform | None = Field(default=None, description="Libvirt configuration")
    openstack: OpenStackPlatform | None = Field(
        default=None,
        description="OpenStack configuration",
    )

    @model_validator(mode="after")
    def validate_single_platform(self) -> Self:
        """Reject configurations that set more than one platform.

        Raises:
            ValueError: If two or more platforms are configured.
        """
        configured = [p for p in (self.aws, self.libvirt, self.openstack) if p is not None]
        if len(configured) > 1:
            raise ValueError("Only one platform may be configured")
        return self

    def name(self) -> str:
        """Return the configured platform's name, or "" if none is set."""
        if self.aws is not None:
            return PLATFORM_NAME_AWS
        if self.libvirt is not None:
            return PLATFORM_NAME_LIBVIRT
        if self.openstack is not None:
            return PLATFORM_NAME_OPENSTACK
        return ""
