"""Read-only access to previously persisted asset files.

WritableAsset.load() receives a FileFetcher. A missing file is reported as
FileNotFoundError so load() can tell "nothing persisted" apart from any
other I/O failure.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol, runtime_checkable

from kiln_core.asset.base import File

logger = logging.getLogger(__name__)


@runtime_checkable
class FileFetcher(Protocol):
    """Fetches persisted files by destination-relative name."""

    def fetch_by_name(self, name: str) -> File:
        """Return the persisted file called name.

        Raises:
            FileNotFoundError: If no such file was persisted.
            OSError: For any other read failure.
        """
        ...


class DirectoryFileFetcher:
    """FileFetcher reading from a directory on disk.

    Attributes:
        root: Directory that previously materialized files live under.

    Example:
        >>> fetcher = DirectoryFileFetcher(Path("cluster-assets"))
        >>> fetcher.fetch_by_name("bootstrap.ign").path
        'bootstrap.ign'
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def fetch_by_name(self, name: str) -> File:
        path = self.root / name
        data = path.read_bytes()
        logger.debug("Fetched persisted file %s (%d bytes)", path, len(data))
        return File(path=name, data=data, mode=path.stat().st_mode & 0o777)


class InMemoryFileFetcher:
    """FileFetcher backed by an in-memory set of files."""

    def __init__(self, files: Iterable[File] = ()) -> None:
        self._files = {f.path: f for f in files}

    def fetch_by_name(self, name: str) -> File:
        try:
            return self._files[name]
        except KeyError:
            raise FileNotFoundError(name) from None


class EmptyFileFetcher:
    """FileFetcher with nothing persisted; every asset is generated."""

    def fetch_by_name(self, name: str) -> File:
        raise FileNotFoundError(name)
