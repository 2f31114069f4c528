"""Self-describing, versioned formats for persisted asset files.

Every persisted artifact carries its own version marker so load() can reject
artifacts written by an incompatible release instead of misreading them:
- kiln-owned YAML documents carry ``apiVersion: kiln.dev/v1`` and a ``kind``
- native formats (kubeconfig, Kubernetes manifests) carry their own
  ``apiVersion``/``kind`` and are checked with check_type_meta()
"""

from __future__ import annotations

from typing import Any

import yaml

from kiln_core.errors import IncompatibleArtifactError, LoadError

# Version of the YAML envelope written by kiln assets
KILN_API_VERSION = "kiln.dev/v1"


def dump_yaml(document: dict[str, Any]) -> bytes:
    """Serialize a document as deterministic YAML.

    Keys keep insertion order so identical inputs give identical bytes.
    """
    return yaml.safe_dump(document, sort_keys=False, default_flow_style=False).encode("utf-8")


def dump_versioned_yaml(kind: str, spec: dict[str, Any]) -> bytes:
    """Serialize spec inside a kiln versioned envelope.

    Args:
        kind: Artifact kind (e.g. "InstallConfig").
        spec: Payload.

    Returns:
        UTF-8 YAML bytes.

    Example:
        >>> dump_versioned_yaml("InstallConfig", {"baseDomain": "example.com"})
        b'apiVersion: kiln.dev/v1\\nkind: InstallConfig\\nspec:\\n  baseDomain: example.com\\n'
    """
    return dump_yaml({"apiVersion": KILN_API_VERSION, "kind": kind, "spec": spec})


def parse_yaml(asset_name: str, data: bytes) -> dict[str, Any]:
    """Parse persisted YAML into a mapping.

    Raises:
        LoadError: If the content is not valid YAML or not a mapping.
    """
    try:
        document = yaml.safe_load(data)
    except yaml.YAMLError as e:
        raise LoadError(
            asset_name,
            "persisted file is not valid YAML",
            cause=e,
            internal_details=str(e),
        ) from e

    if not isinstance(document, dict):
        raise LoadError(asset_name, "persisted file is not a YAML mapping")
    return document


def check_type_meta(
    asset_name: str,
    document: dict[str, Any],
    *,
    api_version: str,
    kind: str,
) -> None:
    """Verify a document's apiVersion and kind.

    Raises:
        IncompatibleArtifactError: If either differs from the expected value.
    """
    found_version = document.get("apiVersion")
    found_kind = document.get("kind")
    if found_version != api_version or found_kind != kind:
        raise IncompatibleArtifactError(
            asset_name,
            expected=f"{api_version}/{kind}",
            found=f"{found_version}/{found_kind}",
        )


def load_versioned_yaml(asset_name: str, data: bytes, kind: str) -> dict[str, Any]:
    """Parse a kiln versioned envelope and return its spec.

    Args:
        asset_name: Name of the loading asset (for error messages).
        data: Persisted bytes.
        kind: Expected artifact kind.

    Returns:
        The envelope's spec mapping.

    Raises:
        LoadError: If the content is malformed.
        IncompatibleArtifactError: If apiVersion or kind do not match.
    """
    document = parse_yaml(asset_name, data)
    check_type_meta(asset_name, document, api_version=KILN_API_VERSION, kind=kind)

    spec = document.get("spec")
    if not isinstance(spec, dict):
        raise LoadError(asset_name, f"persisted {kind} has no spec mapping")
    return spec
