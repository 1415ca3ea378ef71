"""Package source requests."""

from __future__ import annotations

from typing import Any

from .schema import APIError, APIErrorMsg, APIResponse, _json_object, _status_from_body


class SourcesMixin:
    """Source requests; mixed into a Client."""

    def list_sources(self) -> list[str]:
        """Return the sorted ids of every source."""
        data = _json_object(self.get_raw("GET", "/projects/source/list"))
        return sorted(str(s) for s in data.get("sources") or [])

    def get_sources_json(self, names: list[str]) -> tuple[dict[str, Any], list[APIErrorMsg]]:
        """Return the named sources keyed by id, and any errors."""
        try:
            body = self.get_raw("GET", f"/projects/source/info/{','.join(names)}")
        except APIError as err:
            return {}, err.errors
        data = _json_object(body, "ERROR: ")
        errors = [APIErrorMsg.from_dict(e) for e in data.get("errors") or []]
        return dict(data.get("sources") or {}), errors

    def new_source_toml(self, source: str) -> APIResponse | None:
        """Add or update a source from TOML and return the server status."""
        return _status_from_body(self.post_toml("/projects/source/new", source))

    def delete_source(self, source_id: str) -> None:
        """Delete a source; raises APIError when the server refuses, e.g. for system sources."""
        self.delete_raw(f"/projects/source/delete/{source_id}")