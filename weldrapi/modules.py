"""Module requests: listing, searching and describing modules.

The server has no real modules; these are packages.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from .schema import ModulesListV0, ModuleV0, ProjectV0


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


class ModulesMixin:
    """Module requests; mixed into a Client."""

    def list_modules(self, distro: str = "") -> list[ModuleV0]:
        """Return every module, optionally for one distribution."""
        body = self.get_json_all(_with_distro("/modules/list", distro))
        return ModulesListV0.from_dict(_json_object(body)).modules

    def search_modules(self, names: list[str], distro: str = "") -> list[ModuleV0]:
        """Return the modules matching all of the globs in names."""
        route = _with_distro(f"/modules/list/{','.join(names)}", distro)
        body = self.get_json_all(route)
        return ModulesListV0.from_dict(_json_object(body)).modules

    def modules_info(self, names: list[str], distro: str = "") -> list[ProjectV0]:
        """Return detailed information, including dependencies, about the modules.

        Raises APIError when the server rejects the request.
        """
        route = _with_distro(f"/modules/info/{','.join(names)}", distro)
        data = _json_object(self.get_raw("GET", route), "ERROR: ")
        return [ProjectV0.from_dict(m) for m in _field(data, "modules") or []]