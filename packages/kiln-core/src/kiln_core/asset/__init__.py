"""Asset graph engine for kiln.

This module exports the asset contracts and the resolver:
- Asset, WritableAsset, File: Units of generation and their output
- Parents: Read-only view of an asset's resolved dependencies
- AssetGraph: Memoized, cycle-detecting load-or-generate resolver
- FileFetcher implementations: Read previously persisted files
"""

from __future__ import annotations

from kiln_core.asset.base import (
    Asset,
    AssetDescriptor,
    File,
    WritableAsset,
    descriptor_name,
)
from kiln_core.asset.fetcher import (
    DirectoryFileFetcher,
    EmptyFileFetcher,
    FileFetcher,
    InMemoryFileFetcher,
)
from kiln_core.asset.graph import AssetGraph, AssetNode, NodeState
from kiln_core.asset.parents import Parents

__all__: list[str] = [
    # Contracts
    "Asset",
    "AssetDescriptor",
    "WritableAsset",
    "File",
    "descriptor_name",
    # Resolution
    "AssetGraph",
    "AssetNode",
    "NodeState",
    "Parents",
    # Persisted state
    "FileFetcher",
    "DirectoryFileFetcher",
    "InMemoryFileFetcher",
    "EmptyFileFetcher",
]
