"""Unit tests for kubeconfig assets."""

from __future__ import annotations

import pytest
import yaml

from kiln_core.asset import AssetGraph, File, InMemoryFileFetcher
from kiln_core.assets import AdminKubeconfig, InstallConfigAsset, KubeletKubeconfig
from kiln_core.assets.kubeconfig import TLS_DIR
from kiln_core.context import ConfigContext
from kiln_core.errors import IncompatibleArtifactError, LoadError


class TestGenerate:
    """Tests for generating kubeconfigs."""

    @pytest.mark.parametrize(
        ("descriptor", "user", "path"),
        [
            (AdminKubeconfig, "admin", "auth/kubeconfig-admin"),
            (KubeletKubeconfig, "kubelet", "auth/kubeconfig-kubelet"),
        ],
    )
    def test_kubeconfig_document(
        self,
        config_context: ConfigContext,
        descriptor: type[AdminKubeconfig] | type[KubeletKubeconfig],
        user: str,
        path: str,
    ) -> None:
        """Each kubeconfig targets the cluster API as its own user."""
        asset = AssetGraph(config_context).resolve(descriptor)

        [file] = asset.files()
        document = yaml.safe_load(file.data)

        assert file.path == path
        assert file.mode == 0o600
        assert document["apiVersion"] == "v1"
        assert document["kind"] == "Config"
        assert document["current-context"] == user
        cluster = document["clusters"][0]
        assert cluster["name"] == "test-cluster"
        assert cluster["cluster"]["server"] == "https://test-cluster-api.example.com:6443"
        assert document["users"][0]["user"]["client-key"] == f"{TLS_DIR}/{user}.key"

    def test_depends_on_install_config(self) -> None:
        """Kubeconfigs are derived from the install config."""
        assert list(AdminKubeconfig().dependencies()) == [InstallConfigAsset]

    def test_names(self) -> None:
        """Each kubeconfig has its own name."""
        assert AdminKubeconfig().name() == "Kubeconfig Admin"
        assert KubeletKubeconfig().name() == "Kubeconfig Kubelet"

    def test_shared_install_config(self, config_context: ConfigContext) -> None:
        """Both kubeconfigs in a session read one install config instance."""
        graph = AssetGraph(config_context)
        graph.resolve(AdminKubeconfig)
        graph.resolve(KubeletKubeconfig)

        names = [a.name() for a in graph.resolved_assets()]
        assert names == ["Install Config", "Kubeconfig Admin", "Kubeconfig Kubelet"]


class TestLoad:
    """Tests for loading persisted kubeconfigs."""

    def test_load_round_trip(self, config_context: ConfigContext) -> None:
        """A generated kubeconfig loads back."""
        generated = AssetGraph(config_context).resolve(AdminKubeconfig)

        asset = AdminKubeconfig()
        assert asset.load(InMemoryFileFetcher(generated.files()))
        assert asset.document == generated.document

    def test_load_missing(self) -> None:
        """Nothing persisted: load() returns False."""
        assert KubeletKubeconfig().load(InMemoryFileFetcher()) is False

    def test_load_wrong_kind(self) -> None:
        """A persisted document of another kind is incompatible."""
        fetcher = InMemoryFileFetcher(
            [File.from_text("auth/kubeconfig-admin", "apiVersion: v1\nkind: Secret\n")]
        )
        with pytest.raises(IncompatibleArtifactError):
            AdminKubeconfig().load(fetcher)

    def test_load_malformed(self) -> None:
        """Malformed YAML is a LoadError."""
        fetcher = InMemoryFileFetcher([File.from_text("auth/kubeconfig-admin", "clusters: [")])
        with pytest.raises(LoadError):
            AdminKubeconfig().load(fetcher)
