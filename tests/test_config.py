"""Tests for workspace path resolution."""

from pathlib import Path

import pytest

from composer_export.config import get_global_storage_path, get_workspace_path
from composer_export.errors import UnsupportedPlatform


@pytest.fixture
def linux_proc(tmp_path):
    proc = tmp_path / "version"
    proc.write_text("Linux version 6.1.0 (gcc) #1 SMP", encoding="utf-8")
    return proc


@pytest.fixture
def wsl_proc(tmp_path):
    proc = tmp_path / "version"
    proc.write_text("Linux version 5.15.90.1-microsoft-standard-WSL2", encoding="utf-8")
    return proc


class TestGetWorkspacePath:
    def test_env_override(self, tmp_path):
        path = get_workspace_path(environ={"WORKSPACE_PATH": "/custom/ws"}, platform="sunos5")
        assert path == Path("/custom/ws")

    def test_windows(self, tmp_path):
        path = get_workspace_path(environ={}, platform="win32", home=tmp_path)
        assert path == tmp_path / "AppData" / "Roaming" / "Cursor" / "User" / "workspaceStorage"

    def test_macos(self, tmp_path):
        path = get_workspace_path(environ={}, platform="darwin", home=tmp_path)
        assert path == (
            tmp_path / "Library" / "Application Support" / "Cursor" / "User" / "workspaceStorage"
        )

    def test_linux(self, tmp_path, linux_proc):
        path = get_workspace_path(
            environ={}, platform="linux", home=tmp_path, proc_version=linux_proc
        )
        assert path == tmp_path / ".config" / "Cursor" / "User" / "workspaceStorage"

    def test_wsl_uses_windows_profile(self, tmp_path, wsl_proc):
        users = tmp_path / "Users"
        for name in ("Default", "Public", "alice"):
            (users / name).mkdir(parents=True)
        path = get_workspace_path(
            environ={}, platform="linux", home=tmp_path,
            proc_version=wsl_proc, wsl_users_dir=users,
        )
        assert path == users / "alice" / "AppData" / "Roaming" / "Cursor" / "User" / "workspaceStorage"

    def test_wsl_without_users_dir(self, tmp_path, wsl_proc):
        path = get_workspace_path(
            environ={}, platform="linux", home=tmp_path,
            proc_version=wsl_proc, wsl_users_dir=tmp_path / "missing",
        )
        assert path == tmp_path / ".config" / "Cursor" / "User" / "workspaceStorage"

    def test_detection_failure_falls_back(self, tmp_path):
        path = get_workspace_path(
            environ={}, platform="linux", home=tmp_path,
            proc_version=tmp_path / "no-such-file",
        )
        assert path == tmp_path / ".config" / "Cursor" / "User" / "workspaceStorage"

    def test_unsupported_platform(self, tmp_path):
        with pytest.raises(UnsupportedPlatform) as exc:
            get_workspace_path(environ={}, platform="sunos5", home=tmp_path)
        assert "sunos5" in str(exc.value)


def test_global_storage_path():
    db = Path("/data/Cursor/User/workspaceStorage/abc/state.vscdb")
    assert get_global_storage_path(db) == Path("/data/Cursor/User/globalStorage/state.vscdb")
