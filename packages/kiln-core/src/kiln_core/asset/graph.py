"""Asset graph resolution for kiln.

AssetGraph walks the dependency graph declared by assets depth-first, in
declaration order, and produces every asset exactly once per session:

1. Dependencies are resolved first (memoized by descriptor)
2. Writable assets get one chance to load persisted state
3. Otherwise the asset is generated from its resolved dependencies

A request for a descriptor that is still in progress is a cycle and aborts
the session. Any other failure marks the node failed and is wrapped with the
dependent's name at every level on its way up to the caller.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum

from kiln_core.asset.base import (
    Asset,
    AssetDescriptor,
    AssetT,
    File,
    WritableAsset,
    descriptor_name,
)
from kiln_core.asset.fetcher import EmptyFileFetcher, FileFetcher
from kiln_core.asset.parents import Parents
from kiln_core.context import ConfigContext
from kiln_core.errors import (
    CyclicDependencyError,
    DependencyFailedError,
    GenerationError,
    KilnError,
    LoadError,
    ResolutionCancelledError,
)

logger = logging.getLogger(__name__)


class NodeState(str, Enum):
    """Resolution state of an asset node.

    Values:
        UNVISITED: Not requested yet in this session.
        IN_PROGRESS: Dependencies are being resolved.
        RESOLVED: Loaded or generated; the instance is final.
        FAILED: Resolution failed; the error is kept on the node.
    """

    UNVISITED = "unvisited"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass
class AssetNode:
    """An asset instance and its resolution state within one session."""

    descriptor: AssetDescriptor
    asset: Asset
    dependencies: tuple[AssetDescriptor, ...] = ()
    state: NodeState = NodeState.UNVISITED
    error: KilnError | None = field(default=None, repr=False)
    loaded: bool = False


class AssetGraph:
    """Resolves assets and their dependencies for one session.

    An AssetGraph instance is a single resolution session: it owns the node
    table, so the same descriptor always yields the same instance. Create a
    new AssetGraph for a new session.

    Attributes:
        context: Configuration shared with every asset through Parents.
        fetcher: Source of previously persisted files for load().

    Example:
        >>> graph = AssetGraph(context, DirectoryFileFetcher("cluster-assets"))
        >>> bootstrap = graph.resolve(BootstrapIgnition)
        >>> [f.path for f in bootstrap.files()]
        ['bootstrap.ign']
    """

    def __init__(
        self,
        context: ConfigContext | None = None,
        fetcher: FileFetcher | None = None,
        *,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """Initialize the AssetGraph.

        Args:
            context: Session configuration. Defaults to an empty ConfigContext.
            fetcher: Persisted-state reader. Defaults to a fetcher with
                nothing persisted, so every asset is generated.
            timeout: Seconds after which loading or generating any further
                asset raises ResolutionCancelledError.
            cancel_event: Event that cancels the session when set.
        """
        self.context = context if context is not None else ConfigContext()
        self.fetcher = fetcher if fetcher is not None else EmptyFileFetcher()
        self._timeout = timeout
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._cancel_event = cancel_event
        self._nodes: dict[AssetDescriptor, AssetNode] = {}
        self._stack: list[AssetNode] = []
        self._completed: list[AssetNode] = []

    def resolve(self, descriptor: type[AssetT]) -> AssetT:
        """Resolve an asset and, first, everything it depends on.

        Args:
            descriptor: Asset class to resolve.

        Returns:
            The resolved asset instance (shared within this session).

        Raises:
            CyclicDependencyError: If the asset depends on itself.
            DependencyFailedError: If one of its dependencies failed.
            LoadError: If persisted state exists but cannot be loaded.
            GenerationError: If the asset failed to generate.
            ResolutionCancelledError: If the session was cancelled or timed out.
        """
        node = self._nodes.get(descriptor)
        if node is not None:
            if node.state is NodeState.RESOLVED:
                logger.debug("Reusing resolved asset %s", node.asset.name())
                return node.asset  # type: ignore[return-value]
            if node.state is NodeState.IN_PROGRESS:
                raise self._cycle_error(node)
            if node.error is not None:
                raise node.error

        node = self._create_node(descriptor)
        node.state = NodeState.IN_PROGRESS
        self._stack.append(node)
        try:
            parents = self._resolve_dependencies(node)
            self._load_or_generate(node, parents)
        except KilnError as e:
            node.state = NodeState.FAILED
            node.error = e
            raise
        except Exception as e:
            node.state = NodeState.FAILED
            node.error = GenerationError(
                node.asset.name(),
                f"failed to resolve: {e}",
                cause=e,
                internal_details=repr(e),
            )
            raise node.error from e
        finally:
            self._stack.pop()

        node.state = NodeState.RESOLVED
        self._completed.append(node)
        return node.asset  # type: ignore[return-value]

    def state(self, descriptor: AssetDescriptor) -> NodeState:
        """Return the resolution state of a descriptor in this session."""
        node = self._nodes.get(descriptor)
        return node.state if node is not None else NodeState.UNVISITED

    def was_loaded(self, descriptor: AssetDescriptor) -> bool:
        """Return True if the descriptor was loaded instead of generated."""
        node = self._nodes.get(descriptor)
        return node is not None and node.loaded

    def resolved_assets(self) -> list[Asset]:
        """Return resolved assets in the order they completed."""
        return [node.asset for node in self._completed]

    def files(self) -> list[File]:
        """Return the files of every resolved writable asset, in completion order."""
        files: list[File] = []
        for asset in self.resolved_assets():
            if isinstance(asset, WritableAsset):
                files.extend(asset.files())
        return files

    def _create_node(self, descriptor: AssetDescriptor) -> AssetNode:
        name = descriptor_name(descriptor)
        try:
            asset = descriptor()
        except TypeError as e:
            raise GenerationError(
                name,
                "asset cannot be instantiated without arguments",
                cause=e,
                internal_details=str(e),
            ) from e
        except Exception as e:
            raise GenerationError(
                name,
                f"failed to instantiate asset: {e}",
                cause=e,
                internal_details=repr(e),
            ) from e

        try:
            dependencies = tuple(asset.dependencies())
        except Exception as e:
            raise GenerationError(
                asset.name(),
                f"failed to declare dependencies: {e}",
                cause=e,
                internal_details=repr(e),
            ) from e

        node = AssetNode(
            descriptor=descriptor,
            asset=asset,
            dependencies=dependencies,
        )
        self._nodes[descriptor] = node
        return node

    def _cycle_error(self, repeated: AssetNode) -> CyclicDependencyError:
        names = [node.asset.name() for node in self._stack]
        names.append(repeated.asset.name())
        logger.debug("Cycle detected: %s", " -> ".join(names))
        return CyclicDependencyError(names)

    def _resolve_dependencies(self, node: AssetNode) -> Parents:
        name = node.asset.name()
        logger.debug(
            "Resolving %s (%d dependencies)",
            name,
            len(node.dependencies),
        )

        resolved: dict[AssetDescriptor, Asset] = {}
        for dependency in node.dependencies:
            try:
                resolved[dependency] = self.resolve(dependency)
            except CyclicDependencyError:
                raise
            except KilnError as e:
                raise DependencyFailedError(name, e) from e

        return Parents(resolved, self.context)

    def _load_or_generate(self, node: AssetNode, parents: Parents) -> None:
        asset = node.asset
        name = asset.name()

        if isinstance(asset, WritableAsset):
            self._check_cancelled(name)
            if self._load(asset, name):
                node.loaded = True
                logger.info("Loaded %s from persisted state", name)
                return

        self._check_cancelled(name)
        try:
            asset.generate(parents)
        except GenerationError:
            raise
        except KilnError as e:
            raise GenerationError(name, f"failed to generate: {e.user_message}", cause=e) from e
        except Exception as e:
            raise GenerationError(
                name,
                f"failed to generate: {e}",
                cause=e,
                internal_details=repr(e),
            ) from e
        logger.info("Generated %s", name)

    def _load(self, asset: WritableAsset, name: str) -> bool:
        try:
            return asset.load(self.fetcher)
        except LoadError:
            raise
        except KilnError as e:
            raise LoadError(name, f"failed to load: {e.user_message}", cause=e) from e
        except Exception as e:
            raise LoadError(
                name,
                f"failed to load: {e}",
                cause=e,
                internal_details=repr(e),
            ) from e

    def _check_cancelled(self, name: str) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise ResolutionCancelledError(name, "resolution cancelled")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise ResolutionCancelledError(
                name,
                f"resolution timed out after {self._timeout} seconds",
            )
