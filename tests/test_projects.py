import io
import json
from urllib.parse import parse_qs, urlsplit

import pytest

from weldrapi.client import Client, Response
from weldrapi.projects import ProjectsMixin
from weldrapi.schema import APIError, APIErrorMsg
from weldrapi.testing import MockTransport


class _ProjectsClient(ProjectsMixin, Client):
    pass


def _project(name):
    return {
        "name": name,
        "summary": f"{name} summary",
        "description": f"{name} description",
        "homepage": "",
        "upstream_vcs": "UPSTREAM_VCS",
        "builds": [{
            "arch": "x86_64",
            "build_time": "2021-01-01T00:00:00",
            "epoch": 0,
            "release": "1.fc33",
            "source": {"license": "GPLv3+", "version": "5.0", "source_ref": "SOURCE_REF"},
            "changelog": "CHANGELOG_NEEDED",
            "build_config_ref": "BUILD_CONFIG_REF",
            "build_env_ref": "BUILD_ENV_REF",
        }],
    }


PROJECTS = [_project("bash"), _project("filesystem"), _project("tmux")]


def _reply(request, status, payload):
    data = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    return Response(status_code=status, body=io.BytesIO(data), headers={}, request=request)


def _query(request):
    return parse_qs(urlsplit(request.url).query)


def _path(request):
    return urlsplit(request.url).path


def _paginated(request):
    limit = int(_query(request)["limit"][0])
    return _reply(request, 200, {
        "total": len(PROJECTS), "offset": 0, "limit": limit, "projects": PROJECTS[:limit],
    })


def _make(do_func):
    mock = MockTransport(do_func)
    return _ProjectsClient(mock, 1, ""), mock


def test_list_projects():
    client, mock = _make(_paginated)
    projects = client.list_projects("")
    assert len(projects) >= 2
    assert [p.name for p in projects] == ["bash", "filesystem", "tmux"]
    assert _path(mock.request) == "/api/v1/projects/list"
    assert _query(mock.request)["limit"] == ["3"]


def test_list_projects_distro():
    client, mock = _make(_paginated)
    projects = client.list_projects("fedora-38")
    assert len(projects) >= 2
    assert _query(mock.request)["distro"] == ["fedora-38"]


def test_list_projects_builds_decoded():
    client, _ = _make(_paginated)
    build = client.list_projects("")[0].builds[0]
    assert build.source.version == "5.0"
    assert build.release == "1.fc33"


def test_projects_info():
    client, mock = _make(lambda req: _reply(req, 200, {"projects": [_project("bash")]}))
    projects = client.projects_info(["bash"], "")
    assert len(projects) == 1
    assert projects[0].name == "bash"
    assert _path(mock.request) == "/api/v1/projects/info/bash"


def test_projects_info_distro():
    client, mock = _make(lambda req: _reply(req, 200, {"projects": [_project("bash")]}))
    projects = client.projects_info(["bash"], "fedora-38")
    assert len(projects) == 1
    assert _query(mock.request)["distro"] == ["fedora-38"]


def test_projects_info_multiple():
    client, mock = _make(lambda req: _reply(req, 200, {"projects": PROJECTS}))
    projects = client.projects_info(["bash", "filesystem", "tmux"], "")
    assert len(projects) == 3
    assert _path(mock.request) == "/api/v1/projects/info/bash,filesystem,tmux"


def test_projects_info_multiple_one_error():
    client, _ = _make(lambda req: _reply(req, 200, {"projects": PROJECTS[:2]}))
    projects = client.projects_info(["bash", "filesystem", "bart"], "")
    assert len(projects) == 2


@pytest.mark.parametrize("distro", ["", "fedora-38"])
def test_projects_info_one_error(distro):
    error = {"status": False, "errors": [
        {"id": "UnknownProject", "msg": "No packages have been found."},
    ]}
    client, _ = _make(lambda req: _reply(req, 400, error))
    with pytest.raises(APIError) as excinfo:
        client.projects_info(["bart"], distro)
    assert excinfo.value.response.status is False
    assert len(excinfo.value.errors) == 1
    assert excinfo.value.errors[0].id == "UnknownProject"
    assert excinfo.value.errors[0].msg == "No packages have been found."


def test_projects_info_bad_json():
    client, _ = _make(lambda req: _reply(req, 200, b"not really json"))
    with pytest.raises(ValueError, match="^ERROR: "):
        client.projects_info(["bash"], "")


@pytest.mark.parametrize("distro", ["", "fedora-38"])
def test_depsolve_projects(distro):
    deps_reply = {"projects": [
        {"name": "bash", "epoch": 0, "version": "5.0", "release": "1.fc33", "arch": "x86_64"},
        {"name": "filesystem", "epoch": 0, "version": "3.14", "release": "3.fc33", "arch": "x86_64"},
    ], "errors": []}
    client, mock = _make(lambda req: _reply(req, 200, deps_reply))
    deps, errors = client.depsolve_projects(["bash"], distro)
    assert errors == []
    assert len(deps) >= 1
    names = [d["name"] for d in deps]
    assert "bash" in names
    assert "filesystem" in names
    assert _path(mock.request) == "/api/v1/projects/depsolve/bash"
    if distro:
        assert _query(mock.request)["distro"] == [distro]


def test_depsolve_projects_body_errors():
    deps_reply = {"projects": [{"name": "bash"}], "errors": [
        {"id": "UnknownProject", "msg": "bart is not a project"},
    ]}
    client, _ = _make(lambda req: _reply(req, 200, deps_reply))
    deps, errors = client.depsolve_projects(["bash", "bart"], "")
    assert deps == [{"name": "bash"}]
    assert errors == [APIErrorMsg("UnknownProject", "bart is not a project")]


def test_depsolve_projects_api_error():
    error = {"status": False, "errors": [{"id": "ERROR400", "msg": "Sent a 400"}]}
    client, _ = _make(lambda req: _reply(req, 400, error))
    deps, errors = client.depsolve_projects(["bart"], "")
    assert deps == []
    assert errors == [APIErrorMsg("ERROR400", "Sent a 400")]