"""Unit tests for the bootstrap Ignition asset."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import pytest
import yaml

from kiln_core.asset import AssetGraph, File, InMemoryFileFetcher
from kiln_core.assets import (
    BootstrapIgnition,
    ClusterManifests,
    KubeletKubeconfig,
    OperatorManifests,
)
from kiln_core.assets.bootstrap import DEFAULT_RELEASE_IMAGE, get_template_data
from kiln_core.assets.bootstrap.bootstrap import etcd_endpoints, release_image
from kiln_core.context import ConfigContext
from kiln_core.errors import (
    DependencyFailedError,
    GenerationError,
    IncompatibleArtifactError,
    LoadError,
)
from kiln_core.ignition import IgnitionConfig
from kiln_core.schemas import InstallConfig

if TYPE_CHECKING:
    from _pytest.logging import LogCaptureFixture


@pytest.fixture
def bootstrap(config_context: ConfigContext) -> BootstrapIgnition:
    """Return a resolved bootstrap asset."""
    return AssetGraph(config_context).resolve(BootstrapIgnition)


def _config(bootstrap: BootstrapIgnition) -> IgnitionConfig:
    assert bootstrap.config is not None
    return bootstrap.config


class TestTemplateData:
    """Tests for the values substituted into templates."""

    def test_etcd_endpoints_one_per_primary(self, sample_install_config: InstallConfig) -> None:
        """There is one etcd member per primary machine."""
        assert etcd_endpoints(sample_install_config) == [
            "https://test-cluster-etcd-0.example.com:2379",
            "https://test-cluster-etcd-1.example.com:2379",
            "https://test-cluster-etcd-2.example.com:2379",
        ]

    def test_single_etcd_without_primary_pool(self, sample_install_config: InstallConfig) -> None:
        """Without a primary pool there is one etcd member."""
        config = sample_install_config.model_copy(update={"machines": []})
        assert len(etcd_endpoints(config)) == 1

    def test_template_data(self, sample_install_config: InstallConfig) -> None:
        """Template data joins the endpoints and derives the DNS IP."""
        data = get_template_data(sample_install_config, ConfigContext())

        assert data.cluster_dns_ip == "172.30.0.10"
        assert data.etcd_cluster.count(",") == 2
        assert data.release_image == DEFAULT_RELEASE_IMAGE

    def test_release_image_override_warns(self, caplog: LogCaptureFixture) -> None:
        """An override is used and a warning is logged."""
        context = ConfigContext(release_image_override="quay.io/example/release:v2")

        with caplog.at_level(logging.WARNING):
            image = release_image(context)

        assert image == "quay.io/example/release:v2"
        assert "Found override for release image" in caplog.text

    def test_no_warning_without_override(self, caplog: LogCaptureFixture) -> None:
        """The default image is used silently."""
        with caplog.at_level(logging.WARNING):
            assert release_image(ConfigContext()) == DEFAULT_RELEASE_IMAGE

        assert "override" not in caplog.text


class TestGenerate:
    """Tests for the generated Ignition config."""

    def test_file(self, bootstrap: BootstrapIgnition) -> None:
        """bootstrap.ign is private Ignition 2.2.0 JSON."""
        [file] = bootstrap.files()
        document = json.loads(file.data)

        assert file.path == "bootstrap.ign"
        assert file.mode == 0o600
        assert document["ignition"]["version"] == "2.2.0"

    def test_file_paths(self, bootstrap: BootstrapIgnition) -> None:
        """Files are emitted in a fixed order."""
        paths = [f.path for f in _config(bootstrap).storage.files]

        assert paths == [
            "/etc/kubernetes/kubeconfig",
            "/usr/local/bin/report-progress.sh",
            "/usr/local/bin/bootkube.sh",
            "/opt/kiln/bootkube-config-overrides/kube-apiserver-config-overrides.yaml",
            "/opt/kiln/bootkube-config-overrides/kube-controller-manager-config-overrides.yaml",
            "/opt/kiln/auth/kubeconfig-admin",
            "/opt/kiln/manifests/cluster-config.yaml",
            "/opt/kiln/manifests/cluster-dns-config.yaml",
            "/opt/kiln/pod-checkpointer-operator-bootstrap/pod-checkpointer-config.yaml",
            "/opt/kiln/kube-proxy-operator-bootstrap/kube-proxy-config.yaml",
            "/opt/kiln/kube-dns-operator-bootstrap/kube-dns-svc.yaml",
            "/usr/local/bin/operators.sh",
            "/opt/kiln/operators/00-namespace.yaml",
            "/opt/kiln/operators/cluster-info.yaml",
        ]

    def test_kubelet_kubeconfig_embedded(self, config_context: ConfigContext) -> None:
        """The kubelet kubeconfig is copied verbatim."""
        graph = AssetGraph(config_context)
        bootstrap = graph.resolve(BootstrapIgnition)
        kubelet = graph.resolve(KubeletKubeconfig)

        embedded = _config(bootstrap).file("/etc/kubernetes/kubeconfig")
        assert embedded.data() == kubelet.files()[0].data
        assert embedded.mode == 0o600

    def test_manifests_embedded(self, config_context: ConfigContext) -> None:
        """Manifests are placed under the kiln root directory."""
        graph = AssetGraph(config_context)
        bootstrap = graph.resolve(BootstrapIgnition)
        manifests = graph.resolve(ClusterManifests)

        embedded = _config(bootstrap).file("/opt/kiln/manifests/cluster-dns-config.yaml")
        assert embedded.data() == manifests.files()[1].data
        assert embedded.mode == 0o644

    def test_scripts_executable(self, bootstrap: BootstrapIgnition) -> None:
        """Scripts are installed read-only executable."""
        config = _config(bootstrap)
        assert config.file("/usr/local/bin/bootkube.sh").mode == 0o555
        assert config.file("/usr/local/bin/report-progress.sh").mode == 0o555

    def test_bootkube_script_rendered(self, bootstrap: BootstrapIgnition) -> None:
        """bootkube.sh is rendered with the release image and etcd servers."""
        script = _config(bootstrap).file("/usr/local/bin/bootkube.sh").data().decode()

        assert f"Rendering cluster assets from {DEFAULT_RELEASE_IMAGE}" in script
        assert (
            "--etcd-servers=https://test-cluster-etcd-0.example.com:2379,"
            "https://test-cluster-etcd-1.example.com:2379,"
            "https://test-cluster-etcd-2.example.com:2379"
        ) in script
        assert "{{" not in script

    def test_apiserver_override_lists_endpoints(self, bootstrap: BootstrapIgnition) -> None:
        """The API server override lists every etcd endpoint."""
        path = "/opt/kiln/bootkube-config-overrides/kube-apiserver-config-overrides.yaml"
        document: dict[str, Any] = yaml.safe_load(_config(bootstrap).file(path).data())

        assert document["storageConfig"]["urls"] == [
            "https://test-cluster-etcd-0.example.com:2379",
            "https://test-cluster-etcd-1.example.com:2379",
            "https://test-cluster-etcd-2.example.com:2379",
        ]

    def test_kube_dns_service(self, bootstrap: BootstrapIgnition) -> None:
        """The kube-dns service uses the cluster DNS IP."""
        path = "/opt/kiln/kube-dns-operator-bootstrap/kube-dns-svc.yaml"
        document = yaml.safe_load(_config(bootstrap).file(path).data())

        assert document["spec"]["clusterIP"] == "172.30.0.10"

    def test_operator_files(self, config_context: ConfigContext) -> None:
        """operators.sh and the operator manifests are embedded."""
        graph = AssetGraph(config_context)
        bootstrap = graph.resolve(BootstrapIgnition)
        operators = graph.resolve(OperatorManifests)
        config = _config(bootstrap)

        script = config.file("/usr/local/bin/operators.sh")
        assert script.mode == 0o555
        assert b"/opt/kiln/operators" in script.data()

        embedded = config.file("/opt/kiln/operators/cluster-info.yaml")
        assert embedded.data() == operators.files()[1].data
        assert embedded.mode == 0o644

    @pytest.mark.parametrize(
        ("path", "name"),
        [
            (
                "/opt/kiln/pod-checkpointer-operator-bootstrap/pod-checkpointer-config.yaml",
                "pod-checkpointer-operator-config",
            ),
            (
                "/opt/kiln/kube-proxy-operator-bootstrap/kube-proxy-config.yaml",
                "kube-proxy-operator-config",
            ),
        ],
    )
    def test_temporary_operator_configs(self, bootstrap: BootstrapIgnition, path: str, name: str) -> None:
        """Temporary operator configs are ConfigMaps readable by bootkube."""
        embedded = _config(bootstrap).file(path)
        document = yaml.safe_load(embedded.data())

        assert embedded.mode == 0o644
        assert document["kind"] == "ConfigMap"
        assert document["metadata"]["name"] == name

    def test_units(self, bootstrap: BootstrapIgnition) -> None:
        """bootkube and operators are pulled in by progress; progress and kubelet are enabled."""
        units = {u.name: u for u in _config(bootstrap).systemd.units}

        assert list(units) == [
            "bootkube.service",
            "operators.service",
            "progress.service",
            "kubelet.service",
        ]
        assert units["bootkube.service"].enabled is None
        assert units["operators.service"].enabled is None
        assert units["progress.service"].enabled is True
        assert units["kubelet.service"].enabled is True

    def test_core_user(self, bootstrap: BootstrapIgnition, sample_install_config: InstallConfig) -> None:
        """The core user gets the admin SSH key."""
        [user] = _config(bootstrap).passwd.users

        assert user.name == "core"
        assert user.ssh_authorized_keys == (sample_install_config.admin.ssh_key,)

    def test_release_image_override(self, sample_install_config: InstallConfig) -> None:
        """An override replaces the release image in bootkube.sh."""
        context = ConfigContext(
            install_config=sample_install_config,
            release_image_override="quay.io/example/release:v2",
        )
        bootstrap = AssetGraph(context).resolve(BootstrapIgnition)

        script = _config(bootstrap).file("/usr/local/bin/bootkube.sh").data().decode()
        assert "quay.io/example/release:v2" in script

    def test_deterministic(self, config_context: ConfigContext) -> None:
        """Two sessions produce byte-identical output."""
        first = AssetGraph(config_context).resolve(BootstrapIgnition)
        second = AssetGraph(config_context).resolve(BootstrapIgnition)

        assert first.files() == second.files()


class TestGenerateErrors:
    """Tests for failures while generating the bootstrap config."""

    def test_missing_install_config(self) -> None:
        """Without an install config the chain ends at the install config."""
        with pytest.raises(DependencyFailedError) as exc_info:
            AssetGraph().resolve(BootstrapIgnition)

        assert exc_info.value.chain == ["Bootstrap Ignition Config", "Install Config"]
        assert isinstance(exc_info.value.root_cause, GenerationError)

    def test_service_network_too_small(self, sample_install_config: InstallConfig) -> None:
        """A service network without a DNS address fails the manifests."""
        config = InstallConfig.model_validate(
            {
                **sample_install_config.model_dump(mode="json"),
                "networking": {"service_cidr": "10.0.0.0/29"},
            }
        )

        with pytest.raises(DependencyFailedError) as exc_info:
            AssetGraph(ConfigContext(install_config=config)).resolve(BootstrapIgnition)

        assert exc_info.value.chain == ["Bootstrap Ignition Config", "Cluster Manifests"]
        assert "too small" in str(exc_info.value)


class TestLoad:
    """Tests for loading a persisted bootstrap config."""

    def test_load_round_trip(self, bootstrap: BootstrapIgnition) -> None:
        """A generated config loads back."""
        asset = BootstrapIgnition()
        assert asset.load(InMemoryFileFetcher(bootstrap.files()))

        assert asset.config == bootstrap.config
        assert asset.files() == bootstrap.files()

    def test_load_missing(self) -> None:
        """Nothing persisted: load() returns False."""
        assert BootstrapIgnition().load(InMemoryFileFetcher()) is False

    def test_load_version_mismatch(self) -> None:
        """An Ignition config of another version is incompatible."""
        data = json.dumps({"ignition": {"version": "3.0.0"}}).encode()
        fetcher = InMemoryFileFetcher([File("bootstrap.ign", data)])

        with pytest.raises(IncompatibleArtifactError) as exc_info:
            BootstrapIgnition().load(fetcher)

        assert exc_info.value.found == "ignition 3.0.0"

    @pytest.mark.parametrize("document", [{"ignition": "2.2.0"}, ["ignition"], "2.2.0"])
    def test_load_malformed_ignition_section(self, document: Any) -> None:
        """A document without an ignition object is incompatible, not a crash."""
        fetcher = InMemoryFileFetcher([File("bootstrap.ign", json.dumps(document).encode())])

        with pytest.raises(IncompatibleArtifactError) as exc_info:
            BootstrapIgnition().load(fetcher)

        assert exc_info.value.found == "ignition None"

    def test_load_invalid_json(self) -> None:
        """Malformed JSON is a LoadError."""
        fetcher = InMemoryFileFetcher([File("bootstrap.ign", b"{not json")])

        with pytest.raises(LoadError, match="not valid JSON"):
            BootstrapIgnition().load(fetcher)

    def test_load_invalid_structure(self) -> None:
        """A versioned document that does not match the model is a LoadError."""
        data = json.dumps({"ignition": {"version": "2.2.0"}, "storage": {"files": [{}]}}).encode()
        fetcher = InMemoryFileFetcher([File("bootstrap.ign", data)])

        with pytest.raises(LoadError, match="invalid"):
            BootstrapIgnition().load(fetcher)

    def test_loaded_bootstrap_skips_generation(self, config_context: ConfigContext) -> None:
        """A persisted bootstrap.ign is reused even when inputs could regenerate it."""
        persisted = AssetGraph(config_context).resolve(BootstrapIgnition).files()

        graph = AssetGraph(config_context, InMemoryFileFetcher(persisted))
        asset = graph.resolve(BootstrapIgnition)

        assert graph.was_loaded(BootstrapIgnition)
        assert asset.files() == persisted
