"""Bootstrap machine assets."""

from __future__ import annotations

from kiln_core.assets.bootstrap.bootstrap import (
    BOOTSTRAP_IGN_FILENAME,
    DEFAULT_RELEASE_IMAGE,
    BootstrapIgnition,
    BootstrapTemplateData,
    get_template_data,
)

__all__: list[str] = [
    "BootstrapIgnition",
    "BootstrapTemplateData",
    "get_template_data",
    "BOOTSTRAP_IGN_FILENAME",
    "DEFAULT_RELEASE_IMAGE",
]
