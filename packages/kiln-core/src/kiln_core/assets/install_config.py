"""Install configuration asset."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from kiln_core.asset.base import File, WritableAsset
from kiln_core.asset.serialization import dump_versioned_yaml, load_versioned_yaml
from kiln_core.errors import ConfigurationError, GenerationError, LoadError
from kiln_core.schemas.install_config import InstallConfig

if TYPE_CHECKING:
    from kiln_core.asset.fetcher import FileFetcher
    from kiln_core.asset.parents import Parents

logger = logging.getLogger(__name__)

INSTALL_CONFIG_FILENAME = "install-config.yaml"
INSTALL_CONFIG_KIND = "InstallConfig"


class InstallConfigAsset(WritableAsset):
    """The validated install configuration every other asset derives from.

    Generated from ConfigContext.install_config, or loaded from a previously
    written install-config.yaml.

    Attributes:
        config: The install configuration, once resolved.
        file: The persisted form of the configuration.
    """

    def __init__(self) -> None:
        self.config: InstallConfig | None = None
        self.file: File | None = None

    def generate(self, parents: Parents) -> None:
        config = parents.context.install_config
        if config is None:
            raise GenerationError(
                self.name(),
                "no install configuration provided",
            )

        self.config = config
        self.file = File(
            path=INSTALL_CONFIG_FILENAME,
            data=dump_versioned_yaml(INSTALL_CONFIG_KIND, config.model_dump(mode="json")),
            mode=0o600,
        )

    def name(self) -> str:
        return "Install Config"

    def files(self) -> list[File]:
        return [self.file] if self.file is not None else []

    def load(self, fetcher: FileFetcher) -> bool:
        try:
            file = fetcher.fetch_by_name(INSTALL_CONFIG_FILENAME)
        except FileNotFoundError:
            return False

        spec = load_versioned_yaml(self.name(), file.data, INSTALL_CONFIG_KIND)
        try:
            config = InstallConfig.from_dict(spec, source=INSTALL_CONFIG_FILENAME)
        except ConfigurationError as e:
            raise LoadError(self.name(), "persisted install config is invalid", cause=e) from e

        logger.debug("Loaded install config for cluster %s", config.metadata.name)
        self.config, self.file = config, file
        return True

    def require_config(self) -> InstallConfig:
        """Return the resolved configuration.

        Raises:
            RuntimeError: If called before the asset was resolved.
        """
        if self.config is None:
            raise RuntimeError("InstallConfigAsset has not been resolved")
        return self.config
