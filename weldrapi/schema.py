"""Data types exchanged with a WELDR API server."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Mapping

Data = Mapping[str, Any] | None


def _lookup(data: Data, key: str) -> Any:
    """Return the value for key, matching case-insensitively like the server's decoder."""
    if not data:
        return None
    if key in data:
        return data[key]
    lowered = key.lower()
    return next((value for name, value in data.items() if name.lower() == lowered), None)


def _decode_items(decode_item: Callable[[Any], Any], value: Any) -> list[Any]:
    return [decode_item(item) for item in value] if value else []


def _scalar(kind: type, key: str | None = None) -> Any:
    """A str, int, float or bool field that is blank when the key is missing."""
    blank = kind()
    return field(
        default=blank,
        metadata={"key": key, "decode": lambda v: blank if v is None else kind(v)},
    )


def _optional_int(key: str | None = None) -> Any:
    return field(
        default=None,
        metadata={"key": key, "decode": lambda v: None if v is None else int(v)},
    )


def _items(decode_item: Callable[[Any], Any], key: str | None = None) -> Any:
    return field(
        default_factory=list,
        metadata={"key": key, "decode": lambda v: _decode_items(decode_item, v)},
    )


def _nested(record: type, key: str | None = None) -> Any:
    return field(default_factory=record, metadata={"key": key, "decode": record.from_dict})


def _evra(epoch: int, version: str, release: str, arch: str) -> str:
    evra = f"{version}-{release}.{arch}"
    return f"{epoch}:{evra}" if epoch else evra


def _json_object(body: bytes | str, prefix: str = "") -> dict[str, Any]:
    """Parse a JSON object, prefixing any error message with prefix."""
    try:
        data = json.loads(body)
    except ValueError as err:
        raise ValueError(f"{prefix}{err}") from err
    if not isinstance(data, dict):
        raise ValueError(f"{prefix}response is not a JSON object")
    return data


def _status_from_body(body: bytes) -> APIResponse | None:
    """Return the status response held in body, or None if there is none."""
    if not body:
        return None
    try:
        return APIResponse.from_json(body)
    except ValueError:
        return None


def _build(cls: type, data: Data) -> Any:
    """Build a dataclass from a decoded JSON object using its fields' metadata."""
    values = {}
    for item in fields(cls):
        decode = item.metadata.get("decode")
        if decode is not None:
            values[item.name] = decode(_lookup(data, item.metadata.get("key") or item.name))
    return cls(**values)


@dataclass
class APIErrorMsg:
    """A single API error with an id and a message."""

    id: str = _scalar(str)
    msg: str = _scalar(str)

    def __str__(self) -> str:
        return f"{self.id}: {self.msg}"

    @classmethod
    def from_dict(cls, data: Data) -> APIErrorMsg:
        return _build(cls, data)


@dataclass
class APIResponse:
    """Success or failure status returned by the server, with any errors."""

    status: bool = _scalar(bool)
    errors: list[APIErrorMsg] = _items(APIErrorMsg.from_dict)
    status_code: int = 0

    def __str__(self) -> str:
        return str(self.errors[0]) if self.errors else ""

    def all_errors(self) -> list[str]:
        """Return every error as an 'ID: message' string."""
        return [str(error) for error in self.errors]

    @classmethod
    def from_dict(cls, data: Data) -> APIResponse:
        return _build(cls, data)

    @classmethod
    def from_json(cls, body: bytes | str) -> APIResponse:
        """Parse a status response body; raises ValueError on invalid JSON."""
        data = json.loads(body)
        if not isinstance(data, dict):
            raise ValueError("status response is not a JSON object")
        return cls.from_dict(data)


class APIError(Exception):
    """Raised when the server reports an error response."""

    def __init__(self, response: APIResponse) -> None:
        self.response = response
        super().__init__(str(response) or f"API request failed with status {response.status_code}")

    @property
    def errors(self) -> list[APIErrorMsg]:
        return self.response.errors

    @property
    def status_code(self) -> int:
        return self.response.status_code


@dataclass
class PackageNEVRA:
    """Name, epoch, version, release and arch of a package."""

    arch: str = _scalar(str)
    epoch: int = _scalar(int)
    name: str = _scalar(str)
    version: str = _scalar(str)
    release: str = _scalar(str)

    def __str__(self) -> str:
        return f"{self.name}-{_evra(self.epoch, self.version, self.release, self.arch)}"

    @classmethod
    def from_dict(cls, data: Data) -> PackageNEVRA:
        return _build(cls, data)


@dataclass
class StatusV0:
    """Response to /api/status."""

    api: str = _scalar(str)
    db_supported: bool = _scalar(bool)
    db_version: str = _scalar(str)
    schema_version: str = _scalar(str)
    backend: str = _scalar(str)
    build: str = _scalar(str)
    messages: list[str] = _items(str)

    @classmethod
    def from_dict(cls, data: Data) -> StatusV0:
        return _build(cls, data)


@dataclass
class BlueprintsListV0:
    """Response to /blueprints/list."""

    total: int = _scalar(int)
    offset: int = _scalar(int)
    limit: int = _scalar(int)
    blueprints: list[str] = _items(str)

    @classmethod
    def from_dict(cls, data: Data) -> BlueprintsListV0:
        return _build(cls, data)


@dataclass
class Change:
    """A single commit made to a blueprint."""

    commit: str = _scalar(str)
    message: str = _scalar(str)
    revision: int | None = _optional_int()
    timestamp: str = _scalar(str)

    @classmethod
    def from_dict(cls, data: Data) -> Change:
        return _build(cls, data)


@dataclass
class BlueprintChanges:
    """The list of changes made to one blueprint."""

    changes: list[Change] = _items(Change.from_dict)
    name: str = _scalar(str)
    total: int = _scalar(int)

    @classmethod
    def from_dict(cls, data: Data) -> BlueprintChanges:
        return _build(cls, data)


@dataclass
class BlueprintsChangesV0:
    """Response to /blueprints/changes/."""

    changes: list[BlueprintChanges] = _items(BlueprintChanges.from_dict, "blueprints")
    errors: list[APIErrorMsg] = _items(APIErrorMsg.from_dict)
    limit: int = _scalar(int)
    offset: int = _scalar(int)

    @classmethod
    def from_dict(cls, data: Data) -> BlueprintsChangesV0:
        return _build(cls, data)


@dataclass
class ComposeStatusV0:
    """One entry of the compose queue, finished or failed lists."""

    id: str = _scalar(str)
    blueprint: str = _scalar(str)
    version: str = _scalar(str)
    type: str = _scalar(str, "compose_type")
    size: int = _scalar(int, "image_size")
    status: str = _scalar(str, "queue_status")
    job_created: float = _scalar(float)
    job_started: float = _scalar(float)
    job_finished: float = _scalar(float)

    @classmethod
    def from_dict(cls, data: Data) -> ComposeStatusV0:
        return _build(cls, data)


@dataclass
class ComposeTypesV0:
    """A compose type and whether it is enabled."""

    name: str = _scalar(str)
    enabled: bool = _scalar(bool)

    @classmethod
    def from_dict(cls, data: Data) -> ComposeTypesV0:
        return _build(cls, data)


@dataclass
class ComposeStartV0:
    """Response to a successful compose start."""

    id: str = _scalar(str, "build_id")
    status: bool = _scalar(bool)

    @classmethod
    def from_dict(cls, data: Data) -> ComposeStartV0:
        return _build(cls, data)


@dataclass
class ComposeDeleteV0:
    """Result of deleting one compose."""

    id: str = _scalar(str, "uuid")
    status: bool = _scalar(bool)

    @classmethod
    def from_dict(cls, data: Data) -> ComposeDeleteV0:
        return _build(cls, data)


@dataclass
class ComposeCancelV0:
    """Result of cancelling a compose."""

    id: str = _scalar(str, "uuid")
    status: bool = _scalar(bool)

    @classmethod
    def from_dict(cls, data: Data) -> ComposeCancelV0:
        return _build(cls, data)


@dataclass
class Package:
    """An RPM package named in a blueprint."""

    name: str = _scalar(str)
    version: str = _scalar(str)

    @classmethod
    def from_dict(cls, data: Data) -> Package:
        return _build(cls, data)


@dataclass
class Group:
    """A package group named in a blueprint."""

    name: str = _scalar(str)

    @classmethod
    def from_dict(cls, data: Data) -> Group:
        return _build(cls, data)


@dataclass
class InfoBlueprint:
    """The parts of a blueprint reported by compose info."""

    name: str = _scalar(str)
    description: str = _scalar(str)
    version: str = _scalar(str)
    packages: list[Package] = _items(Package.from_dict)
    modules: list[Package] = _items(Package.from_dict)
    groups: list[Group] = _items(Group.from_dict)

    @classmethod
    def from_dict(cls, data: Data) -> InfoBlueprint:
        return _build(cls, data)


@dataclass
class ComposeInfoV0:
    """Response to /compose/info."""

    id: str = _scalar(str)
    config: str = _scalar(str)
    blueprint: InfoBlueprint = _nested(InfoBlueprint)
    commit: str = _scalar(str)
    dependencies: list[PackageNEVRA] = field(
        default_factory=list,
        metadata={
            "key": "deps",
            "decode": lambda deps: _decode_items(PackageNEVRA.from_dict, _lookup(deps, "packages")),
        },
    )
    compose_type: str = _scalar(str)
    queue_status: str = _scalar(str)
    image_size: int = _scalar(int)

    @classmethod
    def from_dict(cls, data: Data) -> ComposeInfoV0:
        return _build(cls, data)


@dataclass
class ModuleV0:
    """The name and type of a module."""

    name: str = _scalar(str)
    type: str = _scalar(str, "group_type")

    @classmethod
    def from_dict(cls, data: Data) -> ModuleV0:
        return _build(cls, data)


@dataclass
class ModulesListV0:
    """Response to /modules/list."""

    total: int = _scalar(int)
    offset: int = _scalar(int)
    limit: int = _scalar(int)
    modules: list[ModuleV0] = _items(ModuleV0.from_dict)

    @classmethod
    def from_dict(cls, data: Data) -> ModulesListV0:
        return _build(cls, data)


@dataclass
class ProjectSourceV0:
    """Source details of a project build."""

    license: str = _scalar(str)
    version: str = _scalar(str)
    source_ref: str = _scalar(str)

    @classmethod
    def from_dict(cls, data: Data) -> ProjectSourceV0:
        return _build(cls, data)


@dataclass
class ProjectBuildV0:
    """Details about a single project build."""

    arch: str = _scalar(str)
    build_time: str = _scalar(str)
    epoch: int = _scalar(int)
    release: str = _scalar(str)
    source: ProjectSourceV0 = _nested(ProjectSourceV0)
    changelog: str = _scalar(str)
    build_config_ref: str = _scalar(str)
    build_env_ref: str = _scalar(str)

    def __str__(self) -> str:
        evra = _evra(self.epoch, self.source.version, self.release, self.arch)
        return f"{evra} at {self.build_time} for {self.changelog}"

    @classmethod
    def from_dict(cls, data: Data) -> ProjectBuildV0:
        return _build(cls, data)


@dataclass
class ProjectSpecV0:
    """Details about a project release."""

    name: str = _scalar(str)
    epoch: int = _scalar(int)
    version: str = _scalar(str)
    release: str = _scalar(str)
    arch: str = _scalar(str)
    remote_location: str = _scalar(str)
    checksum: str = _scalar(str)
    secrets: str = _scalar(str)
    check_gpg: bool = _scalar(bool)

    def __str__(self) -> str:
        return f"{self.name}-{_evra(self.epoch, self.version, self.release, self.arch)}"

    @classmethod
    def from_dict(cls, data: Data) -> ProjectSpecV0:
        return _build(cls, data)


@dataclass
class ProjectV0:
    """Details about a project."""

    name: str = _scalar(str)
    summary: str = _scalar(str)
    description: str = _scalar(str)
    homepage: str = _scalar(str)
    upstream_vcs: str = _scalar(str)
    builds: list[ProjectBuildV0] = _items(ProjectBuildV0.from_dict)
    dependencies: list[ProjectSpecV0] = _items(ProjectSpecV0.from_dict)

    @classmethod
    def from_dict(cls, data: Data) -> ProjectV0:
        return _build(cls, data)


@dataclass
class ProjectsListV0:
    """Response to /projects/list."""

    total: int = _scalar(int)
    offset: int = _scalar(int)
    limit: int = _scalar(int)
    projects: list[ProjectV0] = _items(ProjectV0.from_dict)

    @classmethod
    def from_dict(cls, data: Data) -> ProjectsListV0:
        return _build(cls, data)