"""Resolved-dependency view handed to Asset.generate()."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING

from kiln_core.asset.base import AssetDescriptor, AssetT, descriptor_name
from kiln_core.errors import UndeclaredDependencyError

if TYPE_CHECKING:
    from kiln_core.asset.base import Asset
    from kiln_core.context import ConfigContext


class Parents:
    """Read-only snapshot of an asset's resolved dependencies.

    Contains exactly the dependencies the asset declared, in declaration
    order, plus the session's ConfigContext.

    Attributes:
        context: Configuration context of the resolution session.

    Example:
        >>> install_config = parents.get(InstallConfigAsset)
        >>> install_config.config.base_domain
        'example.com'
    """

    def __init__(
        self,
        resolved: Mapping[AssetDescriptor, Asset],
        context: ConfigContext,
    ) -> None:
        self._resolved = MappingProxyType(dict(resolved))
        self.context = context

    def get(self, descriptor: type[AssetT]) -> AssetT:
        """Return the resolved instance of a declared dependency.

        Args:
            descriptor: Asset class declared in dependencies().

        Returns:
            The resolved asset instance, typed as the requested class.

        Raises:
            UndeclaredDependencyError: If the descriptor was not declared.
        """
        try:
            asset = self._resolved[descriptor]
        except KeyError:
            raise UndeclaredDependencyError(
                descriptor_name(descriptor),
                [descriptor_name(d) for d in self._resolved],
            ) from None
        return asset  # type: ignore[return-value]

    def __iter__(self) -> Iterator[AssetDescriptor]:
        return iter(self._resolved)

    def __len__(self) -> int:
        return len(self._resolved)

    def __contains__(self, descriptor: object) -> bool:
        return descriptor in self._resolved

    def __repr__(self) -> str:
        names = ", ".join(d.__name__ for d in self._resolved)
        return f"Parents({names})"
