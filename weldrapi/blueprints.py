"""Blueprint requests: listing, fetching, pushing, tagging and depsolving."""

from __future__ import annotations

import json
from typing import Any

from .schema import APIError, APIErrorMsg, APIResponse, BlueprintsChangesV0, BlueprintsListV0, BlueprintChanges

_NO_CHANGE_ROUTE = "/blueprints/change/ is not provided by this server version"


def _json_object(body: bytes, prefix: str = "") -> dict[str, Any]:
    """Decode a JSON object, raising ValueError with prefix on failure."""
    try:
        data = json.loads(body)
    except ValueError as err:
        raise ValueError(f"{prefix}{err}") from err
    if not isinstance(data, dict):
        raise ValueError(f"{prefix}response is not a JSON object")
    return data


def _errors(data: dict[str, Any]) -> list[APIErrorMsg]:
    return [APIErrorMsg.from_dict(e) for e in data.get("errors") or []]


def _status_from_body(body: bytes) -> APIResponse | None:
    """Parse a status response from a successful reply, if it carries one."""
    if not body:
        return None
    try:
        return APIResponse.from_json(body)
    except ValueError:
        return None


def _largest_change_total(body: bytes) -> float:
    changes = BlueprintsChangesV0.from_dict(_json_object(body))
    return float(max((b.total for b in changes.changes), default=0))


class BlueprintsMixin:
    """Blueprint requests; mixed into a Client."""

    def list_blueprints(self) -> list[str]:
        """Return the names of every blueprint on the server."""
        body = self.get_json_all("/blueprints/list")
        return BlueprintsListV0.from_dict(_json_object(body)).blueprints

    def get_blueprints_toml(self, names: list[str]) -> list[str]:
        """Return each named blueprint as TOML; raises APIError on the first failure."""
        return [
            self.get_raw("GET", f"/blueprints/info/{name}?format=toml").decode()
            for name in names
        ]

    def get_frozen_blueprints_toml(self, names: list[str]) -> list[str]:
        """Return the frozen blueprints as TOML, skipping any the server rejects."""
        result = []
        for name in names:
            try:
                body = self.get_raw("GET", f"/blueprints/freeze/{name}?format=toml")
            except APIError:
                continue
            result.append(body.decode())
        return result

    def get_blueprints_json(self, names: list[str]) -> tuple[list[Any], list[APIErrorMsg]]:
        """Return the decoded blueprints and any errors the server reported."""
        try:
            body = self.get_raw("GET", f"/blueprints/info/{','.join(names)}")
        except APIError as err:
            return [], err.errors
        data = _json_object(body, "ERROR: ")
        return list(data.get("blueprints") or []), _errors(data)

    def get_frozen_blueprints_json(self, names: list[str]) -> tuple[list[Any], list[APIErrorMsg]]:
        """Return the frozen blueprints and any errors the server reported."""
        try:
            body = self.get_raw("GET", f"/blueprints/freeze/{','.join(names)}")
        except APIError as err:
            return [], err.errors
        data = _json_object(body, "ERROR: ")
        blueprints = [
            entry["blueprint"]
            for entry in data.get("blueprints") or []
            if isinstance(entry, dict) and "blueprint" in entry
        ]
        return blueprints, _errors(data)

    def delete_blueprint(self, name: str) -> None:
        """Delete a blueprint; raises APIError when the server refuses."""
        self.delete_raw(f"/blueprints/delete/{name}")

    def push_blueprint_toml(self, blueprint: str) -> APIResponse | None:
        """Push a TOML blueprint as a new commit and return the server status."""
        return _status_from_body(self.post_toml("/blueprints/new", blueprint))

    def push_blueprint_workspace_toml(self, blueprint: str) -> APIResponse | None:
        """Push a TOML blueprint to the temporary workspace and return the server status."""
        return _status_from_body(self.post_toml("/blueprints/workspace", blueprint))

    def tag_blueprint(self, name: str) -> APIResponse | None:
        """Tag the latest commit of a blueprint as a release."""
        return _status_from_body(self.post_json(f"/blueprints/tag/{name}", ""))

    def undo_blueprint(self, name: str, commit: str) -> APIResponse | None:
        """Revert a blueprint to a previous commit."""
        return _status_from_body(self.post_json(f"/blueprints/undo/{name}/{commit}", ""))

    def get_blueprints_changes(self, names: list[str]) -> tuple[list[BlueprintChanges], list[APIErrorMsg]]:
        """Return every commit made to the named blueprints, and any errors."""
        route = f"/blueprints/changes/{','.join(names)}"
        try:
            body = self.get_json_all_fn_total(route, _largest_change_total)
        except APIError as err:
            return [], err.errors
        changes = BlueprintsChangesV0.from_dict(_json_object(body, "ERROR: "))
        return changes.changes, changes.errors

    def get_blueprint_change_toml(self, name: str, commit: str) -> str:
        """Return one commit of a blueprint as TOML."""
        try:
            body = self.get_raw("GET", f"/blueprints/change/{name}/{commit}?format=toml")
        except APIError as err:
            if err.status_code == 404:
                raise RuntimeError(_NO_CHANGE_ROUTE) from err
            raise
        return body.decode()

    def get_blueprint_change_json(self, name: str, commit: str) -> Any:
        """Return one commit of a blueprint, decoded from JSON."""
        try:
            body = self.get_raw("GET", f"/blueprints/change/{name}/{commit}")
        except APIError as err:
            if err.status_code == 404:
                raise RuntimeError(_NO_CHANGE_ROUTE) from err
            raise
        try:
            return json.loads(body)
        except ValueError as err:
            raise ValueError(f"ERROR: {err}") from err

    def depsolve_blueprints(self, names: list[str]) -> tuple[list[Any], list[APIErrorMsg]]:
        """Return the blueprints with their dependencies, and any errors."""
        try:
            body = self.get_raw("GET", f"/blueprints/depsolve/{','.join(names)}")
        except APIError as err:
            return [], err.errors
        data = _json_object(body, "ERROR: ")
        return list(data.get("blueprints") or []), _errors(data)