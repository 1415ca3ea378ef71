"""Helpers for exercising the client without a running server."""

from __future__ import annotations

import os
import shutil
import subprocess
import tempfile
from typing import Callable

from .client import Request, Response


class MockTransport:
    """A transport that records the last request and answers with do_func."""

    def __init__(self, do_func: Callable[[Request], Response]) -> None:
        self.do_func = do_func
        self.request: Request | None = None

    def do(self, request: Request) -> Response:
        self.request = request
        return self.do_func(request)


def set_up_temporary_repository() -> str:
    """Create an empty package repository under /tmp and return its path."""
    directory = tempfile.mkdtemp(prefix="osbuild-composer-test-", dir="/tmp")
    subprocess.run(["createrepo_c", os.path.join(directory)], check=True)
    return directory


def tear_down_temporary_repository(directory: str) -> None:
    """Remove a temporary repository; a missing directory is not an error."""
    try:
        shutil.rmtree(directory)
    except FileNotFoundError:
        pass