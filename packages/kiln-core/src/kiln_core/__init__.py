"""kiln-core: Asset graph engine for deployment artifacts.

This package provides:
- Asset / WritableAsset: Units of generation with declared dependencies
- AssetGraph: Memoized, cycle-detecting load-or-generate resolver
- ConfigContext: Explicit configuration threaded through a session
- generate_assets: Resolve a root asset and collect its files
- Concrete assets: install config, kubeconfigs, manifests, bootstrap ignition
"""

from __future__ import annotations

__version__ = "0.1.0"

# Asset engine
from kiln_core.asset import (
    Asset,
    AssetGraph,
    DirectoryFileFetcher,
    File,
    FileFetcher,
    InMemoryFileFetcher,
    NodeState,
    Parents,
    WritableAsset,
)

# Configuration
from kiln_core.context import ConfigContext, KilnSettings

# Error types
from kiln_core.errors import (
    AssetError,
    ConfigurationError,
    CyclicDependencyError,
    DependencyFailedError,
    DuplicateFilePathError,
    GenerationError,
    IncompatibleArtifactError,
    KilnError,
    LoadError,
    ResolutionCancelledError,
    UndeclaredDependencyError,
)

# Root invocation
from kiln_core.generator import GenerationResult, generate_assets, write_files

# Schema models
from kiln_core.schemas import InstallConfig, MachinePool, Platform

__all__ = [
    "__version__",
    # Asset engine
    "Asset",
    "WritableAsset",
    "File",
    "Parents",
    "AssetGraph",
    "NodeState",
    "FileFetcher",
    "DirectoryFileFetcher",
    "InMemoryFileFetcher",
    # Configuration
    "ConfigContext",
    "KilnSettings",
    # Errors
    "KilnError",
    "AssetError",
    "CyclicDependencyError",
    "DependencyFailedError",
    "LoadError",
    "IncompatibleArtifactError",
    "GenerationError",
    "ResolutionCancelledError",
    "UndeclaredDependencyError",
    "ConfigurationError",
    "DuplicateFilePathError",
    # Root invocation
    "generate_assets",
    "GenerationResult",
    "write_files",
    # Schema models
    "InstallConfig",
    "MachinePool",
    "Platform",
]
