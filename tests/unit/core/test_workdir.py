"""Tests for per-change working directories."""

import pytest

from deltamerge.core.workdir import ROLES, WorkDir


def test_create_layout(tmp_path):
    """Test one subdirectory per role under <prefix><change>."""
    workdir = WorkDir(tmp_path, "42").create()

    assert workdir.path == tmp_path / "pr-merge-42"
    for role in ROLES:
        assert (workdir.path / role).is_dir()


def test_create_fresh_discards_previous_run(tmp_path):
    workdir = WorkDir(tmp_path, "42").create()
    workdir.write("merged", "Old.cls", "stale\n")

    workdir.create(fresh=True)

    assert workdir.read("merged", "Old.cls") is None


def test_write_keeps_text_exact(tmp_path):
    """Test that text is written without newline translation."""
    workdir = WorkDir(tmp_path, "42", prefix="run-").create()

    path = workdir.write("before", "A.cls", "a\nb")

    assert path == tmp_path / "run-42" / "before" / "A.cls"
    assert path.read_bytes() == b"a\nb"
    assert workdir.read("before", "A.cls") == "a\nb"


def test_unknown_role(tmp_path):
    with pytest.raises(ValueError, match="Unknown role"):
        WorkDir(tmp_path, "42").role_dir("scratch")


def test_remove(tmp_path):
    workdir = WorkDir(tmp_path, "42").create()

    assert workdir.remove()
    assert not workdir.path.exists()
    assert not workdir.remove()
