"""Configuration context for a resolution session.

Assets never read the process environment. The entry point builds one
ConfigContext, either explicitly or from KilnSettings (the only place
KILN_* environment variables are read), and AssetGraph hands it to every
asset through Parents.context.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from kiln_core.schemas.install_config import InstallConfig

logger = logging.getLogger(__name__)

# Prefix of environment variables read by KilnSettings
SETTINGS_ENV_PREFIX = "KILN_"


class KilnSettings(BaseSettings):
    """Process-level settings for kiln.

    Loaded from environment variables with the KILN_ prefix.

    Example:
        >>> # KILN_RELEASE_IMAGE_OVERRIDE=quay.io/example/release:v2
        >>> settings = KilnSettings()
        >>> settings.release_image_override
        'quay.io/example/release:v2'
    """

    model_config = SettingsConfigDict(
        env_prefix=SETTINGS_ENV_PREFIX,
        env_file=".env",
        extra="ignore",
    )

    install_config_path: Path | None = Field(
        default=None,
        description="Path to install-config.yaml",
    )
    release_image_override: str | None = Field(
        default=None,
        description="Release image used instead of the default (not advised)",
    )


class ConfigContext(BaseModel):
    """External parameters available to every asset in a session.

    Attributes:
        install_config: Install configuration the install-config asset is
            generated from. May be None when it is loaded from persisted state.
        release_image_override: Replaces the default release image.

    Example:
        >>> context = ConfigContext(
        ...     install_config=InstallConfig.from_yaml(Path("install-config.yaml")),
        ...     release_image_override="quay.io/example/release:v2",
        ... )
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    install_config: InstallConfig | None = Field(
        default=None,
        description="Install configuration",
    )
    release_image_override: str | None = Field(
        default=None,
        description="Release image override",
    )

    @classmethod
    def from_settings(cls, settings: KilnSettings | None = None) -> ConfigContext:
        """Build a ConfigContext from process settings.

        Args:
            settings: Settings to use. Read from the environment if None.

        Returns:
            ConfigContext with the install config loaded from
            settings.install_config_path, when set.

        Raises:
            FileNotFoundError: If install_config_path does not exist.
            ConfigurationError: If the install config is invalid.
        """
        settings = settings if settings is not None else KilnSettings()

        install_config = None
        if settings.install_config_path is not None:
            logger.info("Loading install config from %s", settings.install_config_path)
            install_config = InstallConfig.from_yaml(settings.install_config_path)

        return cls(
            install_config=install_config,
            release_image_override=settings.release_image_override or None,
        )
