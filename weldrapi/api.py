"""The complete client for a WELDR API server.

For normal use call init_client_unix_socket() with the API version and the
path of the server's Unix domain socket. For testing, new_client() accepts
any transport, such as weldrapi.testing.MockTransport.
"""

from __future__ import annotations

from .blueprints import BlueprintsMixin
from .client import Client, UnixSocketTransport, _Transport
from .compose import ComposeMixin
from .modules import ModulesMixin
from .projects import ProjectsMixin
from .sources import SourcesMixin
from .status import StatusMixin


class WeldrClient(
    BlueprintsMixin,
    ComposeMixin,
    ModulesMixin,
    ProjectsMixin,
    SourcesMixin,
    StatusMixin,
    Client,
):
    """A client offering every request the WELDR API supports."""


def new_client(transport: _Transport, api_version: int = 1, socket_path: str = "") -> WeldrClient:
    """Return a client that sends its requests through transport."""
    return WeldrClient(transport, api_version, socket_path)


def init_client_unix_socket(api_version: int, socket_path: str) -> WeldrClient:
    """Return a client talking to the server over the Unix socket at socket_path."""
    return new_client(UnixSocketTransport(socket_path), api_version, socket_path)