"""Platform-aware path resolution for Cursor's state databases."""

import logging
import os
import sys
from pathlib import Path
from typing import Mapping, Optional

from .errors import UnsupportedPlatform

logger = logging.getLogger(__name__)

WORKSPACE_PATH_ENV = "WORKSPACE_PATH"
STATE_DB_NAME = "state.vscdb"

WSL_USERS_DIR = Path("/mnt/c/Users")
PROC_VERSION = Path("/proc/version")
_WINDOWS_SYSTEM_PROFILES = {"Public", "Default", "Default User", "All Users", "desktop.ini"}

_CURSOR_WORKSPACE_SUFFIX = Path("Cursor") / "User" / "workspaceStorage"


def get_workspace_path(
    environ: Optional[Mapping[str, str]] = None,
    platform: Optional[str] = None,
    home: Optional[Path] = None,
    proc_version: Path = PROC_VERSION,
    wsl_users_dir: Path = WSL_USERS_DIR,
) -> Path:
    """Return the path to Cursor's workspaceStorage directory.

    ``WORKSPACE_PATH`` in ``environ`` overrides everything. Otherwise the
    location depends on ``platform`` (a ``sys.platform`` value). On Linux
    under WSL the Windows host's Cursor data is preferred.

    Raises:
        UnsupportedPlatform: ``platform`` is not win32, darwin or linux.
    """
    environ = os.environ if environ is None else environ
    platform = sys.platform if platform is None else platform
    home = Path.home() if home is None else home

    env = environ.get(WORKSPACE_PATH_ENV)
    if env:
        return Path(env)

    if platform == "win32":
        return home / "AppData" / "Roaming" / _CURSOR_WORKSPACE_SUFFIX
    elif platform == "darwin":
        return home / "Library" / "Application Support" / _CURSOR_WORKSPACE_SUFFIX
    elif platform.startswith("linux"):
        wsl_path = _find_wsl_workspace_path(proc_version, wsl_users_dir)
        if wsl_path is not None:
            return wsl_path
        return home / ".config" / _CURSOR_WORKSPACE_SUFFIX

    raise UnsupportedPlatform(platform)


def get_global_storage_path(workspace_db: Path) -> Path:
    """Return the global state.vscdb that sits beside workspaceStorage.

    ``workspace_db`` is ``<root>/<workspace-id>/state.vscdb``; the global
    store is ``<root>/../globalStorage/state.vscdb``.
    """
    workspace_root = Path(workspace_db).parent.parent
    return workspace_root.parent / "globalStorage" / STATE_DB_NAME


def _find_wsl_workspace_path(proc_version: Path, users_dir: Path) -> Optional[Path]:
    """Locate the Windows host's workspaceStorage when running under WSL."""
    try:
        if "microsoft" not in proc_version.read_text(encoding="utf-8").lower():
            return None
        if not users_dir.is_dir():
            return None
        for entry in sorted(users_dir.iterdir()):
            if entry.name in _WINDOWS_SYSTEM_PROFILES or not entry.is_dir():
                continue
            return entry / "AppData" / "Roaming" / _CURSOR_WORKSPACE_SUFFIX
    except OSError as e:
        logger.debug("WSL detection failed, using Linux path: %s", e)
    return None
