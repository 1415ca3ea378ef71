"""Server status and distribution listing."""

from __future__ import annotations

import json

from .schema import StatusV0

_STATUS_ROUTE = "/api/status"
_STATUS_ERRORS = frozenset({400, 404})


class StatusMixin:
    """Status and distro requests; mixed into a Client."""

    def server_status(self) -> StatusV0:
        """Return the status of the API server; raises APIError on 400 or 404."""
        resp = self.request_raw_url("GET", _STATUS_ROUTE, "", {})
        if resp.status_code in _STATUS_ERRORS:
            raise self._api_error(resp)
        with resp.body as stream:
            data = stream.read()
        self._raw_func("GET", _STATUS_ROUTE, 200, data)
        decoded = json.loads(data)
        if not isinstance(decoded, dict):
            raise ValueError("status response is not a JSON object")
        return StatusV0.from_dict(decoded)

    def list_distros(self) -> list[str]:
        """Return the sorted names of the available distributions."""
        data = json.loads(self.get_raw("GET", "/distros/list"))
        if not isinstance(data, dict):
            raise ValueError("distros response is not a JSON object")
        return sorted(str(d) for d in data.get("distros") or [])