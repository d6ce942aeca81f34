"""Tests for the deployment target client."""

from unittest import mock

import pytest

from deltamerge.reconcile.errors import CollaboratorError
from deltamerge.target.client import TargetClient, unit_stem


@pytest.fixture
def runner(make_result):
    runner = mock.Mock()
    runner.execute.return_value = make_result(stdout="ok\n")
    return runner


@pytest.fixture
def client(config, runner):
    return TargetClient(config, "uat", runner=runner)


def test_unit_stem():
    assert unit_stem("Foo.cls") == "Foo"
    assert unit_stem("Foo.cls-meta.xml") == "Foo.cls-meta"


def test_unit_args(client):
    """Test that each unit becomes one metadata argument."""
    assert client.unit_args(["A.cls", "B.cls"]) == (
        "-m ApexClass:A -m ApexClass:B"
    )


def test_retrieve(client, runner, tmp_path):
    """Test the retrieve command line and output directory."""
    out = tmp_path / "work" / "target"

    client.retrieve(["A.cls"], out)

    assert out.is_dir()
    command = runner.execute.call_args.args[0]
    assert command == (
        "sf project retrieve start -m ApexClass:A --target-org uat "
        f"--output-dir {out}"
    )
    assert runner.execute.call_args.kwargs["timeout"] == 600


def test_retrieve_failure(client, runner, tmp_path, make_result):
    """Test that a failed retrieve raises CollaboratorError."""
    runner.execute.return_value = make_result(exited=1, stderr="auth expired")

    with pytest.raises(CollaboratorError, match="retrieve") as exc_info:
        client.retrieve(["A.cls"], tmp_path)

    assert exc_info.value.output == "auth expired"


def test_read(client, tmp_path):
    """Test reading retrieved units through the layout template."""
    classes = tmp_path / "classes"
    classes.mkdir()
    (classes / "A.cls").write_bytes(b"a\r\nb\r\n")

    assert client.read("A.cls", tmp_path) == "a\r\nb\r\n"
    assert client.read("Missing.cls", tmp_path) is None


def test_publish_copies_into_project(client, runner, config, tmp_path):
    """Test that merged files land in the project before deploying."""
    merged = tmp_path / "A.cls"
    merged.write_text("merged\n")
    repo_path = "force-app/main/default/classes/A.cls"

    client.publish(["A.cls"], {"A.cls": (merged, repo_path)})

    assert (config.source.repo / repo_path).read_text() == "merged\n"
    assert runner.execute.call_args.args[0] == (
        "sf project deploy start -m ApexClass:A --target-org uat"
    )


def test_publish_without_copy(client, config, tmp_path):
    """Test that copying can be turned off."""
    config.target.copy_to_project = False
    merged = tmp_path / "A.cls"
    merged.write_text("merged\n")

    client.publish(["A.cls"], {"A.cls": (merged, "classes/A.cls")})

    assert not (config.source.repo / "classes" / "A.cls").exists()


def test_publish_failure(client, runner, make_result):
    runner.execute.return_value = make_result(exited=1, stdout="deploy failed")

    with pytest.raises(CollaboratorError) as exc_info:
        client.publish(["A.cls"])

    assert exc_info.value.output == "deploy failed"


def test_unit_args_are_shell_quoted(client):
    """Test that names from git paths cannot break out of the command."""
    assert client.unit_args(["My Class.cls", "x;rm -rf ~.cls"]) == (
        "-m ApexClass:'My Class' -m ApexClass:'x;rm -rf ~'"
    )
