"""Root invocation surface for kiln.

generate_assets() runs one resolution session for a root asset and returns
the files to materialize. write_files() persists them below a directory.
Nothing is written unless the whole graph resolved.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Generic

from kiln_core.asset.base import AssetT, File, WritableAsset
from kiln_core.asset.fetcher import FileFetcher
from kiln_core.asset.graph import AssetGraph
from kiln_core.context import ConfigContext
from kiln_core.errors import DuplicateFilePathError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationResult(Generic[AssetT]):
    """Outcome of a successful resolution session.

    Attributes:
        asset: The resolved root asset.
        files: Files to materialize.
        loaded: Names of assets restored from persisted state.
    """

    asset: AssetT
    files: tuple[File, ...]
    loaded: tuple[str, ...] = field(default=())

    def write(self, directory: Path | str) -> list[Path]:
        """Materialize the files below directory."""
        return write_files(self.files, directory)


def generate_assets(
    root: type[AssetT],
    context: ConfigContext | None = None,
    fetcher: FileFetcher | None = None,
    *,
    include_dependencies: bool = False,
    timeout: float | None = None,
    cancel_event: threading.Event | None = None,
) -> GenerationResult[AssetT]:
    """Resolve a root asset and collect its files.

    Args:
        root: Descriptor of the root asset.
        context: Configuration for the session.
        fetcher: Persisted-state reader offered to every writable asset.
        include_dependencies: Collect files of every resolved writable asset
            (in resolution order) instead of the root's files only.
        timeout: Seconds before the session is cancelled.
        cancel_event: Event that cancels the session when set.

    Returns:
        GenerationResult with the root asset and its files.

    Raises:
        KilnError: The session's error, whose chain names every asset from
            the root down to the failure.

    Example:
        >>> result = generate_assets(BootstrapIgnition, context)
        >>> result.write("cluster-assets")
    """
    graph = AssetGraph(context, fetcher, timeout=timeout, cancel_event=cancel_event)
    asset = graph.resolve(root)

    if include_dependencies:
        files = graph.files()
    elif isinstance(asset, WritableAsset):
        files = asset.files()
    else:
        files = []

    loaded = tuple(a.name() for a in graph.resolved_assets() if graph.was_loaded(type(a)))
    logger.info(
        "Resolved %s: %d assets, %d files, %d loaded from persisted state",
        asset.name(),
        len(graph.resolved_assets()),
        len(files),
        len(loaded),
    )
    return GenerationResult(asset=asset, files=tuple(files), loaded=loaded)


def write_files(files: tuple[File, ...] | list[File], directory: Path | str) -> list[Path]:
    """Write files below directory.

    Args:
        files: Files with destination-relative paths.
        directory: Destination directory, created if missing.

    Returns:
        Paths written, in input order.

    Raises:
        DuplicateFilePathError: If two files share a path. Checked before
            anything is written.
        ValueError: If a path escapes the destination directory.
    """
    directory = Path(directory)
    seen: set[str] = set()
    for f in files:
        if f.path in seen:
            raise DuplicateFilePathError(f.path)
        seen.add(f.path)
        if Path(f.path).is_absolute() or ".." in Path(f.path).parts:
            raise ValueError(f"File path must be relative to the destination: {f.path}")

    written: list[Path] = []
    for f in files:
        target = directory / f.path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(f.data)
        target.chmod(f.mode)
        written.append(target)
        logger.debug("Wrote %s (mode %o)", target, f.mode)

    return written
