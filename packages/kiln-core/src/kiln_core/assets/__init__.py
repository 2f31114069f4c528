"""Concrete assets generated by kiln.

Dependency graph (arrows point at dependencies):

    BootstrapIgnition -> InstallConfigAsset
                      -> AdminKubeconfig   -> InstallConfigAsset
                      -> KubeletKubeconfig -> InstallConfigAsset
                      -> ClusterManifests  -> InstallConfigAsset
                      -> OperatorManifests -> InstallConfigAsset
"""

from __future__ import annotations

from kiln_core.assets.bootstrap import BootstrapIgnition
from kiln_core.assets.install_config import InstallConfigAsset
from kiln_core.assets.kubeconfig import AdminKubeconfig, Kubeconfig, KubeletKubeconfig
from kiln_core.assets.manifests import ClusterManifests, OperatorManifests

__all__: list[str] = [
    "InstallConfigAsset",
    "Kubeconfig",
    "AdminKubeconfig",
    "KubeletKubeconfig",
    "ClusterManifests",
    "OperatorManifests",
    "BootstrapIgnition",
]
