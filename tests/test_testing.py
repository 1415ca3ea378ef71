import io
import os
import subprocess
from unittest import mock

import pytest

from weldrapi.client import Client, Request, Response
from weldrapi.testing import (
    MockTransport,
    set_up_temporary_repository,
    tear_down_temporary_repository,
)


def test_mock_transport_records_request():
    reply = Response(200, io.BytesIO(b"data"))
    transport = MockTransport(lambda request: reply)
    request = Request("GET", "http://localhost/api/v1/route")
    assert transport.do(request) is reply
    assert transport.request is request


def test_mock_transport_with_client():
    transport = MockTransport(lambda request: Response(200, io.BytesIO(request.body)))
    client = Client(transport, 1, "")
    assert client.post_raw("/echo", "hello", {}) == b"hello"
    assert transport.request.method == "POST"
    assert transport.request.url == client.api_url("/echo")


def test_set_up_temporary_repository():
    with mock.patch("weldrapi.testing.subprocess.run") as run:
        directory = set_up_temporary_repository()
    try:
        assert directory.startswith("/tmp/osbuild-composer-test-")
        assert os.path.isdir(directory)
        run.assert_called_once_with(["createrepo_c", directory], check=True)
    finally:
        tear_down_temporary_repository(directory)
    assert not os.path.exists(directory)


def test_set_up_temporary_repository_failure():
    failure = subprocess.CalledProcessError(1, ["createrepo_c"])
    with mock.patch("weldrapi.testing.subprocess.run", side_effect=failure):
        with pytest.raises(subprocess.CalledProcessError):
            set_up_temporary_repository()


def test_tear_down_temporary_repository(tmp_path):
    repo = tmp_path / "repo"
    (repo / "repodata").mkdir(parents=True)
    (repo / "repodata" / "repomd.xml").write_text("<repomd/>")
    tear_down_temporary_repository(str(repo))
    assert not repo.exists()
    tear_down_temporary_repository(str(repo))
    assert not repo.exists()