"""Project requests: listing, describing and depsolving projects."""

from __future__ import annotations

import json
from typing import Any, Mapping

from .schema import APIError, APIErrorMsg, ProjectsListV0, ProjectV0


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


def _with_distro(route: str, distro: str) -> str:
    return f"{route}?distro={distro}" if distro else route


class ProjectsMixin:
    """Project requests; mixed into a Client."""

    def list_projects(self, distro: str = "") -> list[ProjectV0]:
        """Return every project, optionally for one distribution."""
        body = self.get_json_all(_with_distro("/projects/list", distro))
        return ProjectsListV0.from_dict(_json_object(body)).projects

    def projects_info(self, projects: list[str], distro: str = "") -> list[ProjectV0]:
        """Return detailed information about the named projects.

        Raises APIError when the server rejects the request.
        """
        route = _with_distro(f"/projects/info/{','.join(projects)}", distro)
        data = _json_object(self.get_raw("GET", route), "ERROR: ")
        return [ProjectV0.from_dict(p) for p in _field(data, "projects") or []]

    def depsolve_projects(self, names: list[str], distro: str = "") -> tuple[list[Any], list[APIErrorMsg]]:
        """Return the dependencies of the named projects, and any errors."""
        route = _with_distro(f"/projects/depsolve/{','.join(names)}", distro)
        try:
            body = self.get_raw("GET", route)
        except APIError as err:
            return [], err.errors
        data = _json_object(body, "ERROR: ")
        errors = [APIErrorMsg.from_dict(e) for e in _field(data, "errors") or []]
        return list(_field(data, "projects") or []), errors