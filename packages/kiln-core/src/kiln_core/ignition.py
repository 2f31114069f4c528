"""Ignition machine provisioning payloads.

This module models the subset of the Ignition config format kiln emits and
provides IgnitionConfigBuilder, an append-only builder local to one asset's
generate() call. The builder returns an immutable IgnitionConfig; no asset
keeps a handle on another asset's files after resolution.
"""

from __future__ import annotations

import base64
import posixpath
from collections.abc import Iterable
from urllib.parse import unquote_to_bytes

from pydantic import BaseModel, ConfigDict, Field

from kiln_core.asset.base import WritableAsset

# Ignition spec version written to and accepted from persisted payloads
IGNITION_VERSION = "2.2.0"

DATA_URL_PREFIX = "data:text/plain;charset=utf-8;base64,"


class FileContents(BaseModel):
    """Contents of an Ignition file, as a data URL."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    source: str = Field(..., description="Data URL holding the file content")


class IgnitionFile(BaseModel):
    """A file written to the machine's root filesystem."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    filesystem: str = Field(default="root", description="Target filesystem")
    path: str = Field(..., min_length=1, description="Absolute path on the machine")
    mode: int = Field(default=0o644, ge=0, le=0o7777, description="Permission bits")
    contents: FileContents = Field(..., description="File contents")

    def data(self) -> bytes:
        """Decode the file's data URL."""
        return decode_data_url(self.contents.source)


class SystemdUnit(BaseModel):
    """A systemd unit installed on the machine."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Unit name (e.g. kubelet.service)")
    contents: str = Field(..., description="Unit file contents")
    enabled: bool | None = Field(default=None, description="Enable the unit at boot")


class PasswdUser(BaseModel):
    """A user account created on the machine."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    name: str = Field(..., min_length=1, description="User name")
    ssh_authorized_keys: tuple[str, ...] = Field(
        default=(),
        alias="sshAuthorizedKeys",
        description="Authorized SSH public keys",
    )


class IgnitionSection(BaseModel):
    """The ignition section carrying the spec version."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    version: str = Field(..., description="Ignition spec version")


class Storage(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    files: tuple[IgnitionFile, ...] = ()


class Systemd(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    units: tuple[SystemdUnit, ...] = ()


class Passwd(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    users: tuple[PasswdUser, ...] = ()


class IgnitionConfig(BaseModel):
    """An Ignition config.

    Example:
        >>> builder = IgnitionConfigBuilder()
        >>> builder.add_file_from_string("/etc/motd", 0o644, "hello")
        >>> config = builder.build()
        >>> config.file("/etc/motd").data()
        b'hello'
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    ignition: IgnitionSection = Field(
        default_factory=lambda: IgnitionSection(version=IGNITION_VERSION),
    )
    storage: Storage = Field(default_factory=Storage)
    systemd: Systemd = Field(default_factory=Systemd)
    passwd: Passwd = Field(default_factory=Passwd)

    def file(self, path: str) -> IgnitionFile:
        """Return the file at path.

        Raises:
            KeyError: If no file has that path.
        """
        for f in self.storage.files:
            if f.path == path:
                return f
        raise KeyError(path)

    def to_json(self) -> bytes:
        """Serialize to compact, deterministic Ignition JSON."""
        return self.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")

    @classmethod
    def from_json(cls, data: bytes | str) -> IgnitionConfig:
        """Parse Ignition JSON.

        Raises:
            pydantic.ValidationError: If the JSON does not match the model.
        """
        return cls.model_validate_json(data)


def encode_data_url(data: bytes) -> str:
    """Encode bytes as a base64 text/plain data URL."""
    return DATA_URL_PREFIX + base64.b64encode(data).decode("ascii")


def decode_data_url(source: str) -> bytes:
    """Decode a data URL produced by encode_data_url (or a plain one).

    Raises:
        ValueError: If source is not a data URL.
    """
    if not source.startswith("data:") or "," not in source:
        raise ValueError(f"not a data URL: {source[:32]}")
    header, payload = source.split(",", 1)
    if header.endswith(";base64"):
        return base64.b64decode(payload)
    return unquote_to_bytes(payload)


def file_from_bytes(path: str, mode: int, data: bytes) -> IgnitionFile:
    """Create an IgnitionFile from bytes."""
    return IgnitionFile(path=path, mode=mode, contents=FileContents(source=encode_data_url(data)))


def file_from_string(path: str, mode: int, text: str) -> IgnitionFile:
    """Create an IgnitionFile from UTF-8 text."""
    return file_from_bytes(path, mode, text.encode("utf-8"))


def files_from_asset(root_dir: str, mode: int, asset: WritableAsset) -> list[IgnitionFile]:
    """Create IgnitionFiles for every file of an asset, placed under root_dir."""
    return [
        file_from_bytes(posixpath.join(root_dir, f.path), mode, f.data)
        for f in asset.files()
    ]


class IgnitionConfigBuilder:
    """Append-only builder for an IgnitionConfig.

    Rejects two files with the same path so an asset never emits colliding
    files.
    """

    def __init__(self) -> None:
        self._files: list[IgnitionFile] = []
        self._paths: set[str] = set()
        self._units: list[SystemdUnit] = []
        self._users: list[PasswdUser] = []

    def add_file(self, file: IgnitionFile) -> None:
        """Append a file.

        Raises:
            ValueError: If a file with the same path was already added.
        """
        if file.path in self._paths:
            raise ValueError(f"duplicate ignition file path: {file.path}")
        self._paths.add(file.path)
        self._files.append(file)

    def add_files(self, files: Iterable[IgnitionFile]) -> None:
        for f in files:
            self.add_file(f)

    def add_file_from_bytes(self, path: str, mode: int, data: bytes) -> None:
        self.add_file(file_from_bytes(path, mode, data))

    def add_file_from_string(self, path: str, mode: int, text: str) -> None:
        self.add_file(file_from_string(path, mode, text))

    def add_files_from_asset(self, root_dir: str, mode: int, asset: WritableAsset) -> None:
        self.add_files(files_from_asset(root_dir, mode, asset))

    def add_unit(self, name: str, contents: str, *, enabled: bool | None = None) -> None:
        self._units.append(SystemdUnit(name=name, contents=contents, enabled=enabled))

    def add_user(self, name: str, ssh_authorized_keys: Iterable[str] = ()) -> None:
        keys = tuple(k for k in ssh_authorized_keys if k)
        self._users.append(PasswdUser(name=name, ssh_authorized_keys=keys))

    def build(self) -> IgnitionConfig:
        """Return the immutable IgnitionConfig built so far."""
        return IgnitionConfig(
            storage=Storage(files=tuple(self._files)),
            systemd=Systemd(units=tuple(self._units)),
            passwd=Passwd(users=tuple(self._users)),
        )
