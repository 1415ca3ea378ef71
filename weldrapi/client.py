"""HTTP plumbing for talking to a WELDR API server."""

from __future__ import annotations

import bisect
import http.client
import io
import json
import os
import shutil
import socket
import stat
import tempfile
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Callable, Iterable, Mapping, Protocol

from urllib.parse import urlsplit

from .schema import APIError, APIResponse, ComposeStatusV0

RawCallback = Callable[[str, str, int, bytes], None]

_ERROR_STATUSES = frozenset({400, 404, 500})
_DELETE_ERROR_STATUSES = frozenset({400, 404})
_STATUS_ORDER = {"RUNNING": 0, "WAITING": 1, "FINISHED": 2, "FAILED": 3}
_UNKNOWN_STATUS_RANK = 4


@dataclass
class Request:
    """An HTTP request about to be sent to the server."""

    method: str
    url: str
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class Response:
    """An HTTP response; body is a readable binary stream."""

    status_code: int
    body: BinaryIO = field(default_factory=io.BytesIO)
    headers: dict[str, str] = field(default_factory=dict)
    request: Request | None = None


class _Transport(Protocol):
    def do(self, request: Request) -> Response: ...


def _header(headers: Mapping[str, str], name: str) -> str:
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return ""


def _request_uri(url: str) -> str:
    parts = urlsplit(url)
    uri = parts.path or "/"
    if parts.query:
        uri = f"{uri}?{parts.query}"
    return uri


class _UnixHTTPConnection(http.client.HTTPConnection):
    def __init__(self, host: str, socket_path: str) -> None:
        super().__init__(host)
        self._socket_path = socket_path

    def connect(self) -> None:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.connect(self._socket_path)
        except OSError:
            sock.close()
            raise
        self.sock = sock


class UnixSocketTransport:
    """Sends HTTP requests over a Unix domain socket."""

    def __init__(self, socket_path: str) -> None:
        self.socket_path = socket_path

    def do(self, request: Request) -> Response:
        parts = urlsplit(request.url)
        conn = _UnixHTTPConnection(parts.hostname or "localhost", self.socket_path)
        headers = {**request.headers, "Connection": "close"}
        try:
            conn.request(
                request.method,
                _request_uri(request.url),
                body=request.body or None,
                headers=headers,
            )
            reply = conn.getresponse()
        except BaseException:
            conn.close()
            raise
        return Response(
            status_code=reply.status,
            body=reply,  # type: ignore[arg-type]
            headers={key.lower(): value for key, value in reply.getheaders()},
            request=request,
        )


def _top_level_total(body: bytes) -> float:
    data = json.loads(body)
    if not isinstance(data, dict):
        raise ValueError("Response is not a JSON object")
    if "total" not in data:
        raise ValueError("Response is missing the total value")
    total = data["total"]
    if isinstance(total, bool) or not isinstance(total, (int, float)):
        raise ValueError("Response 'total' is not a float64")
    return float(total)


def _format_limit(total: float) -> str:
    if float(total).is_integer():
        return str(int(total))
    return repr(float(total))


def _private_opener(path: str, flags: int) -> int:
    return os.open(path, flags, 0o600)


class Client:
    """Connection details and low-level requests for a WELDR API server."""

    def __init__(self, transport: _Transport, api_version: int = 1, socket_path: str = "") -> None:
        self.transport = transport
        self.socket_path = socket_path
        self.version = api_version
        self.protocol = "http"
        self.host = "localhost"
        self._raw_func: RawCallback = lambda method, path, status, body: None

    def set_raw_callback(self, fn: RawCallback) -> None:
        """Call fn(method, path, status, body) with every raw server response."""
        self._raw_func = fn

    def api_url(self, route: str) -> str:
        """Return the full URL of an API route, including the API version."""
        if route.startswith("/"):
            route = route[1:]
        return f"{self.protocol}://{self.host}/api/v{self.version}/{route}"

    def raw_url(self, route: str) -> str:
        """Return the full URL of a route without the API path and version."""
        if route.startswith("/"):
            route = route[1:]
        return f"{self.protocol}://{self.host}/{route}"

    def _send(self, method: str, url: str, body: str | bytes,
              headers: Mapping[str, str] | None) -> Response:
        payload = body.encode() if isinstance(body, str) else bytes(body)
        req = Request(method, url, payload, dict(headers or {}))
        try:
            resp = self.transport.do(req)
        except OSError as err:
            problem = check_socket_error(self.socket_path, err)
            if problem is err or problem is None:
                raise
            raise problem from err
        if resp.request is None:
            resp.request = req
        return resp

    def request(self, method: str, route: str, body: str | bytes = "",
                headers: Mapping[str, str] | None = None) -> Response:
        """Send a request to an API route and return the response, whatever its status."""
        return self._send(method, self.api_url(route), body, headers)

    def request_raw_url(self, method: str, route: str, body: str | bytes = "",
                        headers: Mapping[str, str] | None = None) -> Response:
        """Send a request to a route without the API path and version."""
        return self._send(method, self.raw_url(route), body, headers)

    def _api_error(self, resp: Response) -> APIError:
        with resp.body as stream:
            data = stream.read()
        req = resp.request
        if req is not None:
            self._raw_func(req.method, _request_uri(req.url), resp.status_code, data)
        response = APIResponse.from_json(data)
        response.status_code = resp.status_code
        return APIError(response)

    def get_raw_body(self, method: str, path: str) -> BinaryIO:
        """Return the response body stream; the caller must close it.

        Raises APIError when the server answers 400, 404 or 500.
        """
        resp = self.request(method, path, "", {})
        if resp.status_code in _ERROR_STATUSES:
            raise self._api_error(resp)
        return resp.body

    def get_raw(self, method: str, path: str) -> bytes:
        """Return the whole response body; raises APIError on server errors."""
        with self.get_raw_body(method, path) as stream:
            data = stream.read()
        self._raw_func(method, path, 200, data)
        return data

    def get_json_all(self, path: str) -> bytes:
        """Fetch every result of a paginated route whose total is at the top level."""
        return self.get_json_all_fn_total(path, _top_level_total)

    def get_json_all_fn_total(self, path: str, fn: Callable[[bytes], float]) -> bytes:
        """Fetch every result of a paginated route, using fn to find the total."""
        body = self.get_raw("GET", append_query(path, "limit=0"))
        total = fn(body)
        return self.get_raw("GET", append_query(path, f"limit={_format_limit(total)}"))

    def get_file(self, path: str) -> tuple[str, str, str]:
        """Save the response to a temporary file.

        Returns the file name, the content-disposition and the content-type.
        The caller is responsible for removing the file.
        """
        resp = self.request("GET", path, "", {})
        if resp.status_code in _ERROR_STATUSES:
            raise self._api_error(resp)
        with resp.body as stream, tempfile.NamedTemporaryFile(
            prefix="composer-cli-file-", delete=False
        ) as out:
            shutil.copyfileobj(stream, out)
        return (
            out.name,
            _header(resp.headers, "content-disposition"),
            _header(resp.headers, "content-type"),
        )

    def get_file_path(self, route: str, path: str = "") -> str:
        """Save the response of route to path and return the file name.

        An existing directory gets the server's file name under it, a path
        ending in '/' must exist, anything else is taken as the file name.
        An existing file is never overwritten.
        """
        resp = self.request("GET", route, "", {})
        if resp.status_code in _ERROR_STATUSES:
            raise self._api_error(resp)
        with resp.body as stream:
            file_name = _target_file_name(path, resp.headers)
            if os.path.exists(file_name):
                raise FileExistsError(f"{file_name} exists, skipping download")
            with open(file_name, "xb", opener=_private_opener) as out:
                shutil.copyfileobj(stream, out)
        return file_name

    def post_raw(self, path: str, body: str | bytes,
                 headers: Mapping[str, str] | None = None) -> bytes:
        """POST raw data and return the response body; raises APIError on server errors."""
        resp = self.request("POST", path, body, headers)
        if resp.status_code in _ERROR_STATUSES:
            raise self._api_error(resp)
        with resp.body as stream:
            data = stream.read()
        self._raw_func("POST", path, 200, data)
        return data

    def post_toml(self, path: str, body: str | bytes) -> bytes:
        """POST TOML data with Content-Type text/x-toml."""
        return self.post_raw(path, body, {"Content-Type": "text/x-toml"})

    def post_json(self, path: str, body: str | bytes) -> bytes:
        """POST JSON data with Content-Type application/json."""
        return self.post_raw(path, body, {"Content-Type": "application/json"})

    def delete_raw(self, path: str) -> bytes:
        """Send a DELETE request; raises APIError when the server answers 400 or 404."""
        resp = self.request("DELETE", path, "", None)
        if resp.status_code in _DELETE_ERROR_STATUSES:
            raise self._api_error(resp)
        with resp.body as stream:
            data = stream.read()
        self._raw_func("DELETE", path, 200, data)
        return data


def _target_file_name(path: str, headers: Mapping[str, str]) -> str:
    if not path:
        return get_content_filename(_header(headers, "content-disposition"))
    try:
        info = os.stat(path)
    except FileNotFoundError:
        if path.endswith("/"):
            raise FileNotFoundError(f"{path} does not exist") from None
        return path
    if stat.S_ISDIR(info.st_mode):
        return os.path.join(path, get_content_filename(_header(headers, "content-disposition")))
    return path


def sort_compose_status(composes: Iterable[ComposeStatusV0]) -> list[ComposeStatusV0]:
    """Sort composes by status (running, waiting, finished, failed, other),
    then blueprint name, blueprint version and compose type."""

    def key(compose: ComposeStatusV0) -> tuple[Any, ...]:
        rank = _STATUS_ORDER.get(compose.status, _UNKNOWN_STATUS_RANK)
        return (rank, compose.blueprint, compose.version, compose.type)

    return sorted(composes, key=key)


def is_string_in_slice(items: list[str], s: str) -> bool:
    """Return True if s is in the sorted list items."""
    i = bisect.bisect_left(items, s)
    return i < len(items) and items[i] == s


def _base_name(path: str) -> str:
    if not path:
        return "."
    stripped = path.rstrip("/")
    if not stripped:
        return "/"
    return stripped.rsplit("/", 1)[-1]


def get_content_filename(header: str) -> str:
    """Return the file name from a content-disposition header; raises ValueError."""
    for part in header.split(";"):
        part = part.strip()
        fields = part.split("=")
        if len(fields) == 2 and fields[0] == "filename":
            filename = _base_name(fields[1].strip())
            if filename in ("/", ".", ".."):
                raise ValueError(f"Invalid filename in header: {part}")
            return filename
    raise ValueError(f"No filename in header: {header}")


def move_file(src: str, dst: str) -> None:
    """Copy src over dst and remove src once the copy succeeded."""
    shutil.copyfile(src, dst)
    os.remove(src)


def append_query(url: str, query: str) -> str:
    """Add a query string, with '?' for the first one and '&' after that."""
    if "?" in url:
        return f"{url}&{query}"
    return f"{url}?{query}"


def _group_name(gid: int) -> str:
    try:
        import grp
    except ImportError:
        return ""
    try:
        return grp.getgrgid(gid).gr_name
    except KeyError:
        return ""


def check_socket_error(socket_path: str, request_error: BaseException | None) -> BaseException | None:
    """Explain a failed request by problems with the socket, if there are any.

    Returns a more helpful exception when the socket is missing or not
    accessible, otherwise request_error itself.
    """
    try:
        info = os.stat(socket_path)
    except FileNotFoundError:
        return ConnectionError(
            f"{socket_path} does not exist.\n"
            "  Check to make sure that osbuild-composer.socket is enabled and started. eg.\n"
            "  systemctl enable osbuild-composer.socket && systemctl start osbuild-composer.socket"
        )
    except OSError as err:
        return err

    if not os.access(socket_path, os.R_OK | os.W_OK):
        group = _group_name(info.st_gid)
        if not group:
            return PermissionError(f"you do not have permission to access {socket_path}")
        return PermissionError(
            f"you do not have permission to access {socket_path}.  "
            f"Check to make sure that you are a member of the {group} group"
        )
    return request_error