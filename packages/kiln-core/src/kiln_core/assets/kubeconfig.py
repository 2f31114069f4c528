"""Kubeconfig assets.

Kubeconfigs reference credentials by path; the certificates themselves are
provisioned outside kiln and mounted under TLS_DIR.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, ClassVar

from kiln_core.asset.base import AssetDescriptor, File, WritableAsset
from kiln_core.asset.serialization import check_type_meta, dump_yaml, parse_yaml
from kiln_core.assets.install_config import InstallConfigAsset

if TYPE_CHECKING:
    from kiln_core.asset.fetcher import FileFetcher
    from kiln_core.asset.parents import Parents
    from kiln_core.schemas.install_config import InstallConfig

KUBECONFIG_API_VERSION = "v1"
KUBECONFIG_KIND = "Config"

# Directory holding the certificates kubeconfigs point at
TLS_DIR = "/opt/kiln/tls"

API_SERVER_PORT = 6443


def api_server_url(config: InstallConfig) -> str:
    """Return the external API server URL of the cluster."""
    return f"https://{config.metadata.name}-api.{config.base_domain}:{API_SERVER_PORT}"


class Kubeconfig(WritableAsset):
    """Base class for kubeconfig assets.

    Subclasses set user_name, filename and display_name.
    """

    user_name: ClassVar[str]
    filename: ClassVar[str]
    display_name: ClassVar[str]

    def __init__(self) -> None:
        self.document: dict[str, Any] | None = None
        self.file: File | None = None

    def dependencies(self) -> Sequence[AssetDescriptor]:
        return [InstallConfigAsset]

    def generate(self, parents: Parents) -> None:
        config = parents.get(InstallConfigAsset).require_config()
        cluster_name = config.metadata.name

        self.document = {
            "apiVersion": KUBECONFIG_API_VERSION,
            "kind": KUBECONFIG_KIND,
            "clusters": [
                {
                    "name": cluster_name,
                    "cluster": {
                        "server": api_server_url(config),
                        "certificate-authority": f"{TLS_DIR}/root-ca.crt",
                    },
                }
            ],
            "users": [
                {
                    "name": self.user_name,
                    "user": {
                        "client-certificate": f"{TLS_DIR}/{self.user_name}.crt",
                        "client-key": f"{TLS_DIR}/{self.user_name}.key",
                    },
                }
            ],
            "contexts": [
                {
                    "name": self.user_name,
                    "context": {"cluster": cluster_name, "user": self.user_name},
                }
            ],
            "current-context": self.user_name,
            "preferences": {},
        }
        self.file = File(path=self.filename, data=dump_yaml(self.document), mode=0o600)

    def name(self) -> str:
        return self.display_name

    def files(self) -> list[File]:
        return [self.file] if self.file is not None else []

    def load(self, fetcher: FileFetcher) -> bool:
        try:
            file = fetcher.fetch_by_name(self.filename)
        except FileNotFoundError:
            return False

        document = parse_yaml(self.name(), file.data)
        check_type_meta(
            self.name(),
            document,
            api_version=KUBECONFIG_API_VERSION,
            kind=KUBECONFIG_KIND,
        )
        self.document, self.file = document, file
        return True


class AdminKubeconfig(Kubeconfig):
    """Kubeconfig for the cluster admin user."""

    user_name = "admin"
    filename = "auth/kubeconfig-admin"
    display_name = "Kubeconfig Admin"


class KubeletKubeconfig(Kubeconfig):
    """Kubeconfig used by the kubelet on bootstrap and control plane machines."""

    user_name = "kubelet"
    filename = "auth/kubeconfig-kubelet"
    display_name = "Kubeconfig Kubelet"
