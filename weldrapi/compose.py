"""Compose requests: starting, listing, cancelling and downloading builds."""

from __future__ import annotations

import datetime
import json
import tomllib
from typing import Any, Mapping

from .schema import (
    APIError,
    APIErrorMsg,
    ComposeCancelV0,
    ComposeDeleteV0,
    ComposeInfoV0,
    ComposeStartV0,
    ComposeStatusV0,
    ComposeTypesV0,
)

_MIB = 1024 * 1024
_BRANCH = "master"


def _field(data: Mapping[str, Any], key: str) -> Any:
    """Look up key case-insensitively, the way the server's replies are matched."""
    if key in data:
        return data[key]
    lowered = key.lower()
    for name, value in data.items():
        if name.lower() == lowered:
            return value
    return None


def _json_object(body: bytes, prefix: str = "") -> dict[str, Any]:
    try:
        data = json.loads(body)
    except ValueError as err:
        raise ValueError(f"{prefix}{err}") from err
    if not isinstance(data, dict):
        raise ValueError(f"{prefix}response is not a JSON object")
    return data


def _statuses(data: Mapping[str, Any], key: str) -> list[ComposeStatusV0]:
    return [ComposeStatusV0.from_dict(c) for c in _field(data, key) or []]


def _errors(data: Mapping[str, Any]) -> list[APIErrorMsg]:
    return [APIErrorMsg.from_dict(e) for e in _field(data, "errors") or []]


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _base_settings(blueprint: str, compose_type: str, size: int) -> dict[str, Any]:
    return {
        "blueprint_name": blueprint,
        "compose_type": compose_type,
        "branch": _BRANCH,
        "size": size * _MIB,
    }


def _ostree(ref: str, parent: str, url: str) -> dict[str, str]:
    return {"ref": ref, "parent": parent, "url": url}


def _upload(profile_file: str, image_name: str) -> dict[str, Any]:
    """Read an upload profile TOML file and set the image name on it."""
    with open(profile_file, "rb") as f:
        profile = tomllib.load(f)
    provider = _field(profile, "provider")
    return {
        "provider": "" if provider is None else str(provider),
        "image_name": image_name,
        "settings": _field(profile, "settings"),
    }


class ComposeMixin:
    """Compose requests; mixed into a Client."""

    def list_composes(self) -> list[ComposeStatusV0]:
        """Return the queued, running, finished and failed composes, in that order.

        Raises APIError when the server rejects one of the requests.
        """
        queue = _json_object(self.get_raw("GET", "/compose/queue"), "ERROR: ")
        composes = _statuses(queue, "new") + _statuses(queue, "run")
        finished = _json_object(self.get_raw("GET", "/compose/finished"), "ERROR: ")
        composes += _statuses(finished, "finished")
        failed = _json_object(self.get_raw("GET", "/compose/failed"), "ERROR: ")
        composes += _statuses(failed, "failed")
        return composes

    def get_compose_types(self, distro: str = "") -> list[str]:
        """Return the names of the enabled compose types, optionally for one distro."""
        route = f"/compose/types?distro={distro}" if distro else "/compose/types"
        data = _json_object(self.get_raw("GET", route))
        types = [ComposeTypesV0.from_dict(t) for t in _field(data, "types") or []]
        return [t.name for t in types if t.enabled]

    def start_compose(self, blueprint: str, compose_type: str, size: int = 0) -> str:
        """Start a compose of a blueprint and return its build id. size is in MiB."""
        return self.start_compose_test(blueprint, compose_type, size, 0)

    def start_compose_test(self, blueprint: str, compose_type: str, size: int = 0,
                           test: int = 0) -> str:
        """Start a compose; test=1 makes a fake failed one, test=2 a fake finished one."""
        return self._start_compose(_base_settings(blueprint, compose_type, size), test)

    def start_compose_upload(self, blueprint: str, compose_type: str, image_name: str,
                             profile_file: str, size: int = 0) -> str:
        """Start a compose and upload the image using the TOML profile file."""
        return self.start_compose_test_upload(
            blueprint, compose_type, image_name, profile_file, size, 0
        )

    def start_compose_test_upload(self, blueprint: str, compose_type: str, image_name: str,
                                  profile_file: str, size: int = 0, test: int = 0) -> str:
        """Start a compose, optionally a test one, with an upload to a provider."""
        settings = _base_settings(blueprint, compose_type, size)
        settings["upload"] = _upload(profile_file, image_name)
        return self._start_compose(settings, test)

    def start_ostree_compose(self, blueprint: str, compose_type: str, ref: str,
                             parent: str, url: str, size: int = 0) -> str:
        """Start an OSTree compose and return its build id."""
        return self.start_ostree_compose_test(blueprint, compose_type, ref, parent, url, size, 0)

    def start_ostree_compose_test(self, blueprint: str, compose_type: str, ref: str,
                                  parent: str, url: str, size: int = 0, test: int = 0) -> str:
        """Start an OSTree compose, optionally a test one."""
        settings = _base_settings(blueprint, compose_type, size)
        settings["ostree"] = _ostree(ref, parent, url)
        return self._start_compose(settings, test)

    def start_ostree_compose_upload(self, blueprint: str, compose_type: str, image_name: str,
                                    profile_file: str, ref: str, parent: str, url: str,
                                    size: int = 0) -> str:
        """Start an OSTree compose with an upload to a provider."""
        return self.start_ostree_compose_test_upload(
            blueprint, compose_type, image_name, profile_file, ref, parent, url, size, 0
        )

    def start_ostree_compose_test_upload(self, blueprint: str, compose_type: str,
                                         image_name: str, profile_file: str, ref: str,
                                         parent: str, url: str, size: int = 0,
                                         test: int = 0) -> str:
        """Start an OSTree compose, optionally a test one, with an upload to a provider."""
        settings = _base_settings(blueprint, compose_type, size)
        settings["ostree"] = _ostree(ref, parent, url)
        settings["upload"] = _upload(profile_file, image_name)
        return self._start_compose(settings, test)

    def _start_compose(self, settings: Mapping[str, Any], test: int) -> str:
        data = json.dumps(settings, separators=(",", ":"), default=_json_default)
        route = f"/compose?test={test}" if test > 0 else "/compose"
        body = self.post_json(route, data)
        return ComposeStartV0.from_dict(_json_object(body)).id

    def delete_composes(self, ids: list[str]) -> tuple[list[ComposeDeleteV0], list[APIErrorMsg]]:
        """Delete composes; returns the status of each and any errors."""
        try:
            body = self.delete_raw(f"/compose/delete/{','.join(ids)}")
        except APIError as err:
            return [], err.errors
        data = _json_object(body, "ERROR: ")
        uuids = [ComposeDeleteV0.from_dict(u) for u in _field(data, "uuids") or []]
        return uuids, _errors(data)

    def cancel_compose(self, compose_id: str) -> tuple[ComposeCancelV0, list[APIErrorMsg]]:
        """Cancel a waiting or running compose; returns its status and any errors."""
        try:
            body = self.delete_raw(f"/compose/cancel/{compose_id}")
        except APIError as err:
            return ComposeCancelV0(), err.errors
        return ComposeCancelV0.from_dict(_json_object(body, "ERROR: ")), []

    def compose_log(self, compose_id: str, size: int = 1024) -> str:
        """Return the last size bytes of a running compose's log."""
        return self.get_raw("GET", f"/compose/log/{compose_id}?size={size}").decode()

    def compose_logs(self, compose_id: str) -> str:
        """Save the compose's logs in the current directory and return the file name."""
        return self.compose_logs_path(compose_id, "")

    def compose_logs_path(self, compose_id: str, path: str = "") -> str:
        """Save the compose's logs to a directory or file and return the file name."""
        return self.get_file_path(f"/compose/logs/{compose_id}", path)

    def compose_metadata(self, compose_id: str) -> str:
        """Save the compose's metadata in the current directory and return the file name."""
        return self.compose_metadata_path(compose_id, "")

    def compose_metadata_path(self, compose_id: str, path: str = "") -> str:
        """Save the compose's metadata to a directory or file and return the file name."""
        return self.get_file_path(f"/compose/metadata/{compose_id}", path)

    def compose_results(self, compose_id: str) -> str:
        """Save the compose's results in the current directory and return the file name."""
        return self.compose_results_path(compose_id, "")

    def compose_results_path(self, compose_id: str, path: str = "") -> str:
        """Save the compose's results to a directory or file and return the file name."""
        return self.get_file_path(f"/compose/results/{compose_id}", path)

    def compose_image(self, compose_id: str) -> str:
        """Save the compose's image in the current directory and return the file name."""
        return self.compose_image_path(compose_id, "")

    def compose_image_path(self, compose_id: str, path: str = "") -> str:
        """Save the compose's image to a directory or file and return the file name."""
        return self.get_file_path(f"/compose/image/{compose_id}", path)

    def compose_info(self, compose_id: str) -> ComposeInfoV0:
        """Return details about one compose; raises APIError for unknown ids."""
        body = self.get_raw("GET", f"/compose/info/{compose_id}")
        return ComposeInfoV0.from_dict(_json_object(body, "ERROR: "))