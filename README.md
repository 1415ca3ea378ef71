# weldrapi

A Python client for the WELDR API, the HTTP interface that an image-builder
server exposes on a Unix domain socket. It covers blueprints, composes,
sources, modules, projects, distributions and the server status.

It uses only the standard library and needs Python 3.11 or later.

## Connecting

`weldrapi.api.init_client_unix_socket(api_version, socket_path)` returns a
`WeldrClient` that talks to the server over the given socket:

```python
from weldrapi.api import init_client_unix_socket

client = init_client_unix_socket(1, "/run/weldr/api.socket")

status = client.server_status()
print(status.backend, status.build)
```

## Results and errors

Calls return their result directly and report failures as exceptions:

- `weldrapi.schema.APIError` is raised when the server answers with an
  error response (400, 404 or 500; 400 or 404 for DELETE requests and for
  `server_status`). Its `response` is the `APIResponse`, and it also offers
  `errors` (a list of `APIErrorMsg`) and `status_code`. `str(response)` is
  the first error as `"ID: message"`; `response.all_errors()` gives them all.
- When a request cannot be sent, the socket is checked: a missing socket
  raises `ConnectionError` with a hint to start the server's socket unit, and
  a socket you may not read and write raises `PermissionError`, naming the
  socket's group where it can be found.
- A body that is not the expected JSON raises `ValueError`.

Calls that ask about several items at once return the items together with a
list of `APIErrorMsg` for the ones the server could not handle, and return
an empty item list with the server's errors when the whole request is
rejected: `get_blueprints_json`, `get_frozen_blueprints_json`,
`get_blueprints_changes`, `depsolve_blueprints`, `get_sources_json`,
`depsolve_projects`, `delete_composes` and `cancel_compose`.

```python
names = client.list_blueprints()
toml_texts = client.get_blueprints_toml(names)

blueprints, errors = client.get_blueprints_json(["http-server"])
for error in errors:
    print(error)

compose_id = client.start_compose("http-server", "qcow2", 0)
composes = client.list_composes()
```

Posting calls (`push_blueprint_toml`, `push_blueprint_workspace_toml`,
`tag_blueprint`, `undo_blueprint`, `new_source_toml`) return the
`APIResponse` the server sent back, or `None` if the reply held none.
`get_blueprint_change_toml` and `get_blueprint_change_json` raise
`RuntimeError` when the server does not provide that route.
`get_frozen_blueprints_toml` skips blueprints the server rejects.

## Composes

`start_compose`, `start_ostree_compose` and their `*_upload` forms start a
build and return its id; sizes are given in MiB. The upload forms read the
provider and settings from a TOML profile file. The `*_test` forms take a
`test` value: 1 makes a fake failed compose, 2 a fake finished one.

`weldrapi.client.sort_compose_status(composes)` orders composes by status
(running, waiting, finished, failed, anything else), then blueprint name,
version and compose type.

## Downloads

`compose_logs`, `compose_metadata`, `compose_results` and `compose_image`
save the file under the name the server gives in the current directory and
return that name. Their `*_path` forms take a path: an existing directory
gets the file under the server's name, a path ending in `/` must exist
(otherwise `FileNotFoundError`), and any other path is used as the file
name. An existing file is never overwritten: `FileExistsError` is raised.
`client.get_file(route)` saves a response to a temporary file and returns
its name with the content-disposition and content-type headers.

## Watching raw traffic

`client.set_raw_callback(fn)` registers `fn(method, path, status, body)`,
called with every raw response body the client receives, including error
responses.

## Testing

`weldrapi.testing.MockTransport` stands in for the socket. Give it a
function that turns a `weldrapi.client.Request` into a
`weldrapi.client.Response`; the most recent request is kept on
`transport.request`.

```python
import io

from weldrapi.api import new_client
from weldrapi.client import Response
from weldrapi.testing import MockTransport

transport = MockTransport(
    lambda request: Response(200, io.BytesIO(b'{"distros": ["fedora-38"]}'))
)
client = new_client(transport, 1, "")
assert client.list_distros() == ["fedora-38"]
assert transport.request.url == "http://localhost/api/v1/distros/list"
```

`weldrapi.testing.set_up_temporary_repository()` creates an empty package
repository under `/tmp` by running `createrepo_c`, which must be installed;
`tear_down_temporary_repository(directory)` removes it.

## What it does not do

This is a library only. It has no command-line tool, does not run or manage
the server, and does not interpret blueprint or source TOML itself: that
text is passed to the server as it is.