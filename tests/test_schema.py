import json

import pytest

from weldrapi.schema import (
    APIError,
    APIErrorMsg,
    APIResponse,
    BlueprintsChangesV0,
    BlueprintsListV0,
    Change,
    ComposeCancelV0,
    ComposeDeleteV0,
    ComposeInfoV0,
    ComposeStartV0,
    ComposeStatusV0,
    ComposeTypesV0,
    ModulesListV0,
    PackageNEVRA,
    ProjectBuildV0,
    ProjectSourceV0,
    ProjectSpecV0,
    ProjectsListV0,
    StatusV0,
)


def test_api_error_msg_string():
    msg = APIErrorMsg("ERROR-ID", "Error message string")
    assert str(msg) == "ERROR-ID: Error message string"


def test_api_response_none():
    resp = APIResponse(status=False, errors=[])
    assert str(resp) == ""
    assert resp.all_errors() == []


def test_api_response_one():
    resp = APIResponse(status=False, errors=[APIErrorMsg("ERROR-ID", "Error message string")])
    assert str(resp) == "ERROR-ID: Error message string"
    assert len(resp.errors) == 1
    assert resp.all_errors() == ["ERROR-ID: Error message string"]


def test_api_response_few():
    resp = APIResponse(
        status=False,
        errors=[
            APIErrorMsg("ERROR-1", "Error message #1"),
            APIErrorMsg("ERROR-2", "Error message #2"),
            APIErrorMsg("ERROR-3", "Error message #3"),
        ],
    )
    assert str(resp) == "ERROR-1: Error message #1"
    assert len(resp.errors) == 3
    assert resp.all_errors() == [
        "ERROR-1: Error message #1",
        "ERROR-2: Error message #2",
        "ERROR-3: Error message #3",
    ]


def test_new_api_response_one():
    body = b'{"status": false, "errors": [{"id": "ERROR404", "msg": "Sent a 404"}]}'
    resp = APIResponse.from_json(body)
    assert resp == APIResponse(status=False, errors=[APIErrorMsg("ERROR404", "Sent a 404")])


def test_new_api_response_few():
    body = """{"status": false,
              "errors": [
                  {"id": "ERROR404", "msg": "Sent a 404"},
                  {"id": "ERROR-2", "msg": "Error message #2"},
                  {"id": "ERROR-3", "msg": "Error message #3"}
              ]}"""
    resp = APIResponse.from_json(body)
    assert resp == APIResponse(
        status=False,
        errors=[
            APIErrorMsg("ERROR404", "Sent a 404"),
            APIErrorMsg("ERROR-2", "Error message #2"),
            APIErrorMsg("ERROR-3", "Error message #3"),
        ],
    )


def test_new_api_response_none():
    resp = APIResponse.from_json('{"status": false, "errors": []}')
    assert resp == APIResponse(status=False, errors=[])


def test_new_api_response_error():
    with pytest.raises(json.JSONDecodeError):
        APIResponse.from_json('{"status": ')


def test_new_api_response_status_true():
    resp = APIResponse.from_json('{"status": true}')
    assert resp.status is True
    assert resp.errors == []


def test_api_error_carries_response():
    resp = APIResponse(status=False, errors=[APIErrorMsg("ERROR400", "Sent a 400")], status_code=400)
    with pytest.raises(APIError) as info:
        raise APIError(resp)
    assert str(info.value) == "ERROR400: Sent a 400"
    assert info.value.status_code == 400
    assert info.value.errors == [APIErrorMsg("ERROR400", "Sent a 400")]


def test_package_nevra_string():
    pkgs = [
        PackageNEVRA("x86_64", 0, "chrony", "4.0", "1.fc33"),
        PackageNEVRA("noarch", 1, "grub2-common", "2.04", "33.fc33"),
    ]
    assert f"{pkgs[0]}" == "chrony-4.0-1.fc33.x86_64"
    assert f"{pkgs[1]}" == "grub2-common-1:2.04-33.fc33.noarch"


def test_package_nevra_from_dict():
    pkg = PackageNEVRA.from_dict(
        {"arch": "noarch", "epoch": 1, "name": "grub2-common", "version": "2.04", "release": "33.fc33"}
    )
    assert str(pkg) == "grub2-common-1:2.04-33.fc33.noarch"


def test_status_from_dict_defaults():
    status = StatusV0.from_dict({"api": "1", "db_supported": True, "backend": "osbuild-composer"})
    assert status.api == "1"
    assert status.db_supported is True
    assert status.backend == "osbuild-composer"
    assert status.messages == []


def test_blueprints_list_from_dict():
    bl = BlueprintsListV0.from_dict({"total": 2, "offset": 0, "limit": 2, "blueprints": ["a", "b"]})
    assert bl == BlueprintsListV0(total=2, offset=0, limit=2, blueprints=["a", "b"])


def test_blueprints_changes_from_dict():
    data = {
        "blueprints": [
            {"name": "bp-1", "total": 15, "changes": [{"commit": "foo", "revision": 3}]},
            {"name": "bp-2", "total": 42, "changes": [{"commit": "bar"}]},
        ],
        "errors": [],
        "offset": 0,
        "limit": 42,
    }
    changes = BlueprintsChangesV0.from_dict(data)
    assert [c.total for c in changes.changes] == [15, 42]
    assert changes.changes[0].changes[0] == Change(commit="foo", revision=3)
    assert changes.changes[1].changes[0].revision is None
    assert changes.limit == 42


def test_compose_status_from_dict():
    cs = ComposeStatusV0.from_dict(
        {
            "id": "uuid-1",
            "blueprint": "tmux-server",
            "version": "1.1.0",
            "compose_type": "qcow2",
            "image_size": 2147483648,
            "queue_status": "RUNNING",
            "job_created": 1.5,
        }
    )
    assert cs.type == "qcow2"
    assert cs.status == "RUNNING"
    assert cs.size == 2147483648
    assert cs.job_created == 1.5
    assert cs.job_finished == 0.0


def test_compose_types_case_insensitive():
    assert ComposeTypesV0.from_dict({"name": "qcow2", "enabled": True}) == ComposeTypesV0("qcow2", True)
    assert ComposeTypesV0.from_dict({"Name": "ami", "Enabled": False}) == ComposeTypesV0("ami", False)


def test_compose_start_delete_cancel():
    assert ComposeStartV0.from_dict({"build_id": "abc", "status": True}) == ComposeStartV0("abc", True)
    assert ComposeDeleteV0.from_dict({"uuid": "abc", "status": True}) == ComposeDeleteV0("abc", True)
    assert ComposeCancelV0.from_dict({"uuid": "abc", "status": False}) == ComposeCancelV0("abc", False)


def test_compose_info_from_dict():
    info = ComposeInfoV0.from_dict(
        {
            "id": "abc",
            "blueprint": {"name": "cli-test-bp-1", "packages": [{"name": "bash", "version": "*"}]},
            "deps": {"packages": [{"name": "bash", "version": "5.0", "release": "1", "arch": "x86_64"}]},
            "compose_type": "qcow2",
            "queue_status": "FINISHED",
        }
    )
    assert info.blueprint.name == "cli-test-bp-1"
    assert info.blueprint.packages[0].name == "bash"
    assert str(info.dependencies[0]) == "bash-5.0-1.x86_64"
    assert info.queue_status == "FINISHED"


def test_compose_info_empty():
    assert ComposeInfoV0.from_dict({}) == ComposeInfoV0()


def test_modules_list_from_dict():
    ml = ModulesListV0.from_dict({"total": 1, "modules": [{"name": "tmux", "group_type": "rpm"}]})
    assert ml.modules[0].name == "tmux"
    assert ml.modules[0].type == "rpm"


def test_project_build_string():
    build = ProjectBuildV0(
        arch="x86_64",
        build_time="2021-01-01",
        release="1.fc33",
        source=ProjectSourceV0(version="5.0"),
        changelog="fix",
    )
    assert str(build) == "5.0-1.fc33.x86_64 at 2021-01-01 for fix"
    build.epoch = 2
    assert str(build) == "2:5.0-1.fc33.x86_64 at 2021-01-01 for fix"


def test_project_spec_string():
    spec = ProjectSpecV0(name="bash", version="5.0", release="1.fc33", arch="x86_64")
    assert str(spec) == "bash-5.0-1.fc33.x86_64"
    spec.epoch = 1
    assert str(spec) == "bash-1:5.0-1.fc33.x86_64"


def test_projects_list_from_dict():
    pl = ProjectsListV0.from_dict(
        {
            "total": 1,
            "projects": [
                {
                    "name": "bash",
                    "builds": [{"arch": "x86_64", "release": "1", "source": {"version": "5.0", "license": "GPL"}}],
                    "dependencies": [{"name": "filesystem", "version": "3", "release": "1", "arch": "noarch"}],
                }
            ],
        }
    )
    project = pl.projects[0]
    assert project.name == "bash"
    assert project.builds[0].source.license == "GPL"
    assert str(project.dependencies[0]) == "filesystem-3-1.noarch"