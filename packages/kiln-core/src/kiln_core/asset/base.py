"""Asset contracts for the kiln asset graph.

This module defines the unit of work resolved by AssetGraph:
- Asset: Declares dependencies and generates output from them
- WritableAsset: An Asset that exposes files and can load persisted state
- File: A single destination-relative file produced by a WritableAsset

An asset's class is its descriptor: the graph instantiates each descriptor
once per session and shares the instance with every dependent.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from kiln_core.asset.fetcher import FileFetcher
    from kiln_core.asset.parents import Parents

AssetT = TypeVar("AssetT", bound="Asset")

AssetDescriptor = type["Asset"]


def descriptor_name(descriptor: AssetDescriptor) -> str:
    """Return a stable dotted name for an asset descriptor.

    Args:
        descriptor: Asset class.

    Returns:
        "<module>.<qualname>" of the class.
    """
    return f"{descriptor.__module__}.{descriptor.__qualname__}"


@dataclass(frozen=True)
class File:
    """A file produced by an asset.

    Attributes:
        path: Destination-relative path (e.g. "auth/kubeconfig-admin").
        mode: Permission bits applied when the file is materialized.
        data: File content.
    """

    path: str
    data: bytes
    mode: int = 0o644

    @classmethod
    def from_text(cls, path: str, text: str, mode: int = 0o644) -> File:
        """Create a File from UTF-8 text."""
        return cls(path=path, data=text.encode("utf-8"), mode=mode)

    def text(self) -> str:
        """Return the file content decoded as UTF-8."""
        return self.data.decode("utf-8")


class Asset(ABC):
    """A unit of generation in the asset graph.

    Subclasses must be constructible without arguments. Everything an asset
    needs comes from its resolved dependencies and the session's
    ConfigContext, both available through Parents.

    Example:
        >>> class ClusterName(Asset):
        ...     def dependencies(self):
        ...         return [InstallConfigAsset]
        ...
        ...     def generate(self, parents):
        ...         self.value = parents.get(InstallConfigAsset).config.metadata.name
        ...
        ...     def name(self):
        ...         return "Cluster Name"
    """

    def dependencies(self) -> Sequence[AssetDescriptor]:
        """Return the descriptors of the assets this asset depends on.

        Must be pure and return the same sequence every time it is called.
        Order matters: dependencies are resolved in the order returned.
        """
        return ()

    @abstractmethod
    def generate(self, parents: Parents) -> None:
        """Populate this asset's fields from its resolved dependencies.

        Args:
            parents: Resolved declared dependencies and the session context.

        Raises:
            GenerationError: If the output cannot be produced.
        """

    @abstractmethod
    def name(self) -> str:
        """Return the human-friendly name of the asset."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name()!r}>"


class WritableAsset(Asset):
    """An asset whose output can be persisted as files and loaded back."""

    @abstractmethod
    def files(self) -> list[File]:
        """Return the files generated or loaded by the asset.

        Returns an empty list before the asset is resolved.
        """

    @abstractmethod
    def load(self, fetcher: FileFetcher) -> bool:
        """Rebuild the asset from persisted files.

        Must not consult dependencies.

        Args:
            fetcher: Read-only access to previously persisted files.

        Returns:
            True if the asset was loaded, False if nothing was persisted.

        Raises:
            LoadError: If a persisted artifact exists but is unusable.
        """
