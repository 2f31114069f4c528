"""Bootstrap machine Ignition config asset."""

from __future__ import annotations

import json
import logging
import posixpath
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING

import pydantic
from jinja2 import StrictUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment

from kiln_core.asset.base import AssetDescriptor, File, WritableAsset
from kiln_core.assets.bootstrap import content
from kiln_core.assets.install_config import InstallConfigAsset
from kiln_core.assets.kubeconfig import AdminKubeconfig, KubeletKubeconfig
from kiln_core.assets.manifests import ClusterManifests, OperatorManifests
from kiln_core.errors import GenerationError, IncompatibleArtifactError, LoadError
from kiln_core.ignition import IGNITION_VERSION, IgnitionConfig, IgnitionConfigBuilder

if TYPE_CHECKING:
    from kiln_core.asset.fetcher import FileFetcher
    from kiln_core.asset.parents import Parents
    from kiln_core.context import ConfigContext
    from kiln_core.schemas.install_config import InstallConfig

logger = logging.getLogger(__name__)

ROOT_DIR = "/opt/kiln"
DEFAULT_RELEASE_IMAGE = "quay.io/kiln/release:v1.0"
BOOTSTRAP_IGN_FILENAME = "bootstrap.ign"

BOOTKUBE_IMAGE = "quay.io/coreos/bootkube:v0.10.0"
ETCD_CERT_SIGNER_IMAGE = (
    "quay.io/coreos/kube-etcd-signer-server:678cc8e6841e2121ebfdb6e2db568fce290b67d6"
)
ETCDCTL_IMAGE = "quay.io/coreos/etcd:v3.2.14"

ETCD_CLIENT_PORT = 2379

_TEMPLATE_ENV = SandboxedEnvironment(
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    undefined=StrictUndefined,
)


@dataclass(frozen=True)
class BootstrapTemplateData:
    """Values substituted into the bootstrap templates."""

    bootkube_image: str
    cluster_dns_ip: str
    etcd_cert_signer_image: str
    etcd_cluster: str
    etcdctl_image: str
    release_image: str


def etcd_endpoints(config: InstallConfig) -> list[str]:
    """Return the client URL of every etcd member, one per primary machine."""
    return [
        f"https://{config.metadata.name}-etcd-{i}.{config.base_domain}:{ETCD_CLIENT_PORT}"
        for i in range(config.primary_count())
    ]


def release_image(context: ConfigContext) -> str:
    """Return the release image, honoring the context override."""
    override = context.release_image_override
    if override:
        logger.warning("Found override for release image. Please be warned, this is not advised")
        return override
    return DEFAULT_RELEASE_IMAGE


def get_template_data(config: InstallConfig, context: ConfigContext) -> BootstrapTemplateData:
    """Build the data used to render the bootstrap templates.

    Raises:
        ValueError: If the cluster DNS IP cannot be derived.
    """
    return BootstrapTemplateData(
        bootkube_image=BOOTKUBE_IMAGE,
        cluster_dns_ip=str(config.cluster_dns_ip()),
        etcd_cert_signer_image=ETCD_CERT_SIGNER_IMAGE,
        etcd_cluster=",".join(etcd_endpoints(config)),
        etcdctl_image=ETCDCTL_IMAGE,
        release_image=release_image(context),
    )


class BootstrapIgnition(WritableAsset):
    """Ignition config for the bootstrap machine.

    Attributes:
        config: The assembled Ignition config.
        file: bootstrap.ign, the serialized config.
    """

    def __init__(self) -> None:
        self.config: IgnitionConfig | None = None
        self.file: File | None = None

    def dependencies(self) -> Sequence[AssetDescriptor]:
        return [
            InstallConfigAsset,
            AdminKubeconfig,
            KubeletKubeconfig,
            ClusterManifests,
            OperatorManifests,
        ]

    def generate(self, parents: Parents) -> None:
        install_config = parents.get(InstallConfigAsset).require_config()

        try:
            template_data = get_template_data(install_config, parents.context)
        except ValueError as e:
            raise GenerationError(
                self.name(),
                f"failed to get bootstrap template data: {e}",
                cause=e,
            ) from e

        builder = IgnitionConfigBuilder()
        self._add_bootstrap_files(builder, parents)
        self._add_bootkube_files(builder, parents, template_data)
        self._add_temporary_bootkube_files(builder, template_data)
        self._add_operator_files(builder, parents)

        builder.add_unit("bootkube.service", content.BOOTKUBE_SERVICE)
        builder.add_unit("operators.service", content.OPERATORS_SERVICE)
        builder.add_unit("progress.service", content.PROGRESS_SERVICE, enabled=True)
        builder.add_unit("kubelet.service", content.KUBELET_SERVICE, enabled=True)
        builder.add_user("core", [install_config.admin.ssh_key])

        self.config = builder.build()
        self.file = File(path=BOOTSTRAP_IGN_FILENAME, data=self.config.to_json(), mode=0o600)

    def name(self) -> str:
        return "Bootstrap Ignition Config"

    def files(self) -> list[File]:
        return [self.file] if self.file is not None else []

    def load(self, fetcher: FileFetcher) -> bool:
        try:
            file = fetcher.fetch_by_name(BOOTSTRAP_IGN_FILENAME)
        except FileNotFoundError:
            return False

        try:
            document = json.loads(file.data)
        except ValueError as e:
            raise LoadError(self.name(), "persisted ignition config is not valid JSON", cause=e) from e

        section = document.get("ignition") if isinstance(document, dict) else None
        version = section.get("version") if isinstance(section, dict) else None
        if version != IGNITION_VERSION:
            raise IncompatibleArtifactError(
                self.name(),
                expected=f"ignition {IGNITION_VERSION}",
                found=f"ignition {version}",
            )

        try:
            config = IgnitionConfig.model_validate(document)
        except pydantic.ValidationError as e:
            raise LoadError(
                self.name(),
                "persisted ignition config is invalid",
                cause=e,
                internal_details=str(e),
            ) from e

        self.config, self.file = config, file
        return True

    def _render(self, template: str, template_data: BootstrapTemplateData) -> str:
        try:
            return _TEMPLATE_ENV.from_string(template).render(asdict(template_data))
        except TemplateError as e:
            raise GenerationError(
                self.name(),
                "failed to render bootstrap template",
                cause=e,
                internal_details=str(e),
            ) from e

    def _add_bootstrap_files(self, builder: IgnitionConfigBuilder, parents: Parents) -> None:
        kubelet_kubeconfig = parents.get(KubeletKubeconfig)

        builder.add_file_from_bytes(
            "/etc/kubernetes/kubeconfig",
            0o600,
            kubelet_kubeconfig.files()[0].data,
        )
        builder.add_file_from_string(
            "/usr/local/bin/report-progress.sh",
            0o555,
            content.REPORT_PROGRESS_SH,
        )

    def _add_bootkube_files(
        self,
        builder: IgnitionConfigBuilder,
        parents: Parents,
        template_data: BootstrapTemplateData,
    ) -> None:
        overrides_dir = posixpath.join(ROOT_DIR, "bootkube-config-overrides")

        builder.add_file_from_string(
            "/usr/local/bin/bootkube.sh",
            0o555,
            self._render(content.BOOTKUBE_SH_TEMPLATE, template_data),
        )
        for filename in sorted(content.BOOTKUBE_CONFIG_OVERRIDES):
            builder.add_file_from_string(
                posixpath.join(overrides_dir, filename),
                0o600,
                self._render(content.BOOTKUBE_CONFIG_OVERRIDES[filename], template_data),
            )
        builder.add_files_from_asset(ROOT_DIR, 0o600, parents.get(AdminKubeconfig))
        builder.add_files_from_asset(ROOT_DIR, 0o644, parents.get(ClusterManifests))

    def _add_temporary_bootkube_files(
        self,
        builder: IgnitionConfigBuilder,
        template_data: BootstrapTemplateData,
    ) -> None:
        for dirname, manifests in (
            ("pod-checkpointer-operator-bootstrap", content.POD_CHECKPOINTER_BOOTKUBE_MANIFESTS),
            ("kube-proxy-operator-bootstrap", content.KUBE_PROXY_BOOTKUBE_MANIFESTS),
        ):
            for filename in sorted(manifests):
                builder.add_file_from_string(
                    posixpath.join(ROOT_DIR, dirname, filename),
                    0o644,
                    manifests[filename],
                )

        kube_dns_dir = posixpath.join(ROOT_DIR, "kube-dns-operator-bootstrap")
        builder.add_file_from_string(
            posixpath.join(kube_dns_dir, "kube-dns-svc.yaml"),
            0o644,
            self._render(content.KUBE_DNS_SERVICE_TEMPLATE, template_data),
        )

    def _add_operator_files(self, builder: IgnitionConfigBuilder, parents: Parents) -> None:
        builder.add_file_from_string("/usr/local/bin/operators.sh", 0o555, content.OPERATORS_SH)
        builder.add_files_from_asset(ROOT_DIR, 0o644, parents.get(OperatorManifests))
