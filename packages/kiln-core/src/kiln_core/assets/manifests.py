"""Manifest assets.

ClusterManifests emits the ConfigMaps the control plane reads its install-time
settings from. OperatorManifests emits what the cluster operators consume once
bootkube has finished.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from kiln_core.asset.base import AssetDescriptor, File, WritableAsset
from kiln_core.asset.serialization import check_type_meta, dump_yaml, parse_yaml
from kiln_core.assets.install_config import InstallConfigAsset
from kiln_core.errors import LoadError

if TYPE_CHECKING:
    from kiln_core.asset.fetcher import FileFetcher
    from kiln_core.asset.parents import Parents
    from kiln_core.schemas.install_config import InstallConfig

logger = logging.getLogger(__name__)

MANIFEST_DIR = "manifests"
CLUSTER_CONFIG_FILENAME = f"{MANIFEST_DIR}/cluster-config.yaml"
CLUSTER_DNS_FILENAME = f"{MANIFEST_DIR}/cluster-dns-config.yaml"
MANIFEST_FILENAMES = (CLUSTER_CONFIG_FILENAME, CLUSTER_DNS_FILENAME)

OPERATOR_DIR = "operators"
OPERATOR_NAMESPACE_FILENAME = f"{OPERATOR_DIR}/00-namespace.yaml"
OPERATOR_CLUSTER_INFO_FILENAME = f"{OPERATOR_DIR}/cluster-info.yaml"

SYSTEM_NAMESPACE = "kube-system"
OPERATOR_NAMESPACE = "kiln-system"


def config_map(name: str, data: dict[str, str], namespace: str = SYSTEM_NAMESPACE) -> dict[str, Any]:
    """Return a v1 ConfigMap document."""
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": name, "namespace": namespace},
        "data": data,
    }


def load_manifest_set(
    asset_name: str,
    fetcher: FileFetcher,
    expected: Sequence[tuple[str, str]],
) -> list[File] | None:
    """Load manifests that are persisted together.

    Args:
        asset_name: Name of the loading asset (for error messages).
        fetcher: Persisted-state reader.
        expected: (filename, kind) pairs of v1 documents, in order.

    Returns:
        The files in expected order, or None if none of them was persisted.

    Raises:
        LoadError: If only some of the files were persisted, or one is malformed.
        IncompatibleArtifactError: If a document has another apiVersion or kind.
    """
    files: list[File] = []
    for filename, _ in expected:
        try:
            files.append(fetcher.fetch_by_name(filename))
        except FileNotFoundError:
            if files:
                raise LoadError(
                    asset_name,
                    f"persisted manifests are incomplete: {filename} is missing",
                ) from None
            return None

    for f, (_, kind) in zip(files, expected):
        document = parse_yaml(asset_name, f.data)
        check_type_meta(asset_name, document, api_version="v1", kind=kind)

    logger.debug("Loaded %d manifests for %s", len(files), asset_name)
    return files


class ClusterManifests(WritableAsset):
    """Kubernetes manifests applied while bootstrapping the cluster.

    Attributes:
        file_list: Manifest files, in MANIFEST_FILENAMES order.
    """

    def __init__(self) -> None:
        self.file_list: list[File] = []

    def dependencies(self) -> Sequence[AssetDescriptor]:
        return [InstallConfigAsset]

    def generate(self, parents: Parents) -> None:
        config = parents.get(InstallConfigAsset).require_config()

        self.file_list = [
            File(
                path=CLUSTER_CONFIG_FILENAME,
                data=dump_yaml(self._cluster_config(config)),
            ),
            File(
                path=CLUSTER_DNS_FILENAME,
                data=dump_yaml(self._cluster_dns(config)),
            ),
        ]

    def name(self) -> str:
        return "Cluster Manifests"

    def files(self) -> list[File]:
        return list(self.file_list)

    def load(self, fetcher: FileFetcher) -> bool:
        files = load_manifest_set(
            self.name(),
            fetcher,
            [(filename, "ConfigMap") for filename in MANIFEST_FILENAMES],
        )
        if files is None:
            return False
        self.file_list = files
        return True

    def _cluster_config(self, config: InstallConfig) -> dict[str, Any]:
        install_config = dump_yaml(config.model_dump(mode="json")).decode("utf-8")
        return config_map("cluster-config-v1", {"install-config": install_config})

    def _cluster_dns(self, config: InstallConfig) -> dict[str, Any]:
        return config_map(
            "cluster-dns",
            {
                "baseDomain": config.base_domain,
                "clusterDNSIP": str(config.cluster_dns_ip()),
            },
        )


class OperatorManifests(WritableAsset):
    """Manifests consumed by the cluster operators started after bootkube.

    The operator namespace and a cluster-info ConfigMap describing the
    install, applied by operators.sh once the control plane is up.
    """

    def __init__(self) -> None:
        self.file_list: list[File] = []

    def dependencies(self) -> Sequence[AssetDescriptor]:
        return [InstallConfigAsset]

    def generate(self, parents: Parents) -> None:
        config = parents.get(InstallConfigAsset).require_config()

        namespace = {
            "apiVersion": "v1",
            "kind": "Namespace",
            "metadata": {"name": OPERATOR_NAMESPACE},
        }
        cluster_info = config_map(
            "cluster-info",
            {
                "clusterName": config.metadata.name,
                "clusterID": config.cluster_id,
                "baseDomain": config.base_domain,
                "platform": config.platform.name(),
            },
            namespace=OPERATOR_NAMESPACE,
        )
        self.file_list = [
            File(path=OPERATOR_NAMESPACE_FILENAME, data=dump_yaml(namespace)),
            File(path=OPERATOR_CLUSTER_INFO_FILENAME, data=dump_yaml(cluster_info)),
        ]

    def name(self) -> str:
        return "Operator Manifests"

    def files(self) -> list[File]:
        return list(self.file_list)

    def load(self, fetcher: FileFetcher) -> bool:
        files = load_manifest_set(
            self.name(),
            fetcher,
            [
                (OPERATOR_NAMESPACE_FILENAME, "Namespace"),
                (OPERATOR_CLUSTER_INFO_FILENAME, "ConfigMap"),
            ],
        )
        if files is None:
            return False
        self.file_list = files
        return True
