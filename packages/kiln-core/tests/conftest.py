"""Shared pytest fixtures for kiln-core tests.

This module provides common fixtures used across unit tests.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest
import structlog
import yaml

from kiln_core.context import ConfigContext
from kiln_core.schemas import InstallConfig


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> None:
    """Configure structlog to output to stdout for test capture.

    Ensures structlog writes to stdout so capsys can capture the
    internal_details logged by KilnError.
    """
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,  # Important for test isolation
    )


@pytest.fixture
def sample_install_config_yaml() -> dict[str, Any]:
    """Return a valid install-config.yaml structure.

    Three primary machines, AWS platform, default networking.
    """
    return {
        "metadata": {"name": "test-cluster"},
        "cluster_id": "5a1e1ba8-0c2f-4c4f-9a3d-1f3e7bb0d8a2",
        "admin": {
            "email": "admin@example.com",
            "password": "not-a-real-password",
            "ssh_key": "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAITest admin@example.com",
        },
        "base_domain": "example.com",
        "networking": {
            "type": "OVNKubernetes",
            "service_cidr": "172.30.0.0/16",
            "cluster_networks": [{"cidr": "10.128.0.0/14", "host_subnet_length": 9}],
        },
        "machines": [
            {"name": "primary", "replicas": 3},
            {"name": "worker", "replicas": 2},
        ],
        "platform": {"aws": {"region": "us-east-1"}},
        "pull_secret": '{"auths": {}}',
    }


@pytest.fixture
def sample_install_config(sample_install_config_yaml: dict[str, Any]) -> InstallConfig:
    """Return the sample install configuration as a validated model."""
    return InstallConfig.model_validate(sample_install_config_yaml)


@pytest.fixture
def config_context(sample_install_config: InstallConfig) -> ConfigContext:
    """Return a ConfigContext holding the sample install configuration."""
    return ConfigContext(install_config=sample_install_config)


@pytest.fixture
def install_config_file(tmp_path: Path, sample_install_config_yaml: dict[str, Any]) -> Path:
    """Write the sample install configuration to a temporary file."""
    path = tmp_path / "install-config.yaml"
    path.write_text(yaml.dump(sample_install_config_yaml))
    return path
