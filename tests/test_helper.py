import os
import tarfile

import pytest

from sonoplugins import helper


def test_get_results_dir_reads_environment(monkeypatch, tmp_path):
    monkeypatch.setenv(helper.SONOBUOY_RESULTS_DIR_KEY, str(tmp_path))
    assert helper.get_results_dir() == str(tmp_path)


def test_get_results_dir_empty_when_unset(monkeypatch):
    monkeypatch.delenv(helper.SONOBUOY_RESULTS_DIR_KEY, raising=False)
    assert helper.get_results_dir() == ""


def test_done_without_results_dir_writes_nothing(monkeypatch, tmp_path):
    monkeypatch.delenv(helper.SONOBUOY_RESULTS_DIR_KEY, raising=False)
    monkeypatch.chdir(tmp_path)
    assert helper.done() is None
    assert os.listdir(tmp_path) == []


def test_write_done_writes_path(monkeypatch, tmp_path):
    monkeypatch.setenv(helper.SONOBUOY_RESULTS_DIR_KEY, str(tmp_path))
    result = helper.write_done("/some/results.yaml")
    assert result is None
    assert (tmp_path / "done").read_text() == "/some/results.yaml"


def test_write_done_missing_directory_raises(monkeypatch, tmp_path):
    monkeypatch.setenv(helper.SONOBUOY_RESULTS_DIR_KEY, str(tmp_path / "missing"))
    with pytest.raises(OSError, match="failed write done file"):
        helper.write_done("x")


def test_done_archives_directory_and_writes_done(monkeypatch, tmp_path):
    (tmp_path / "a.txt").write_text("hello")
    sub = tmp_path / "sub"
    sub.mkdir()
    (sub / "b.txt").write_text("world")
    monkeypatch.setenv(helper.SONOBUOY_RESULTS_DIR_KEY, str(tmp_path))

    result = helper.done()

    assert result is None
    tarball = tmp_path / "results.tar.gz"
    assert tarball.exists()
    with tarfile.open(tarball) as tar:
        names = sorted(tar.getnames())
    assert names == ["a.txt", os.path.join("sub", "b.txt")]
    assert (tmp_path / "done").read_text() == str(tarball)