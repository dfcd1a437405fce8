"""Collect composer conversations across workspaces and resolve their details.

Every workspace directory under workspaceStorage holds its own
``state.vscdb`` with a summary of its composers. The full conversation of a
composer usually lives in the global database next to workspaceStorage.
"""

import logging
import re
import sqlite3
import urllib.parse
from contextlib import closing
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from .config import STATE_DB_NAME, get_global_storage_path
from .core import Composer, ComposerDetail, ComposerMessage
from .errors import StoreReadFailure, WorkspaceRootNotFound
from .store import (
    BUBBLE_PREFIX,
    COMPOSER_DETAIL_PREFIX,
    DISK_KV_TABLE,
    connect_readonly,
    load_json,
    query_value,
    read_composer_index,
    read_workspace_folder,
)

logger = logging.getLogger(__name__)

UNKNOWN_PROJECT = "unknown-project"
SUMMARY_MAX_LEN = 50

_PATH_SEPARATORS = re.compile(r"[/\\]")


def get_composers(workspace_root: Path) -> list[Composer]:
    """Return every composer of every workspace, most recently updated first.

    Workspaces without a state database are skipped; unreadable or malformed
    ones are logged and skipped.

    Raises:
        WorkspaceRootNotFound: ``workspace_root`` does not exist.
    """
    workspace_root = Path(workspace_root)
    if not workspace_root.exists():
        raise WorkspaceRootNotFound(workspace_root)

    composers = []
    for ws_dir in sorted(workspace_root.iterdir()):
        if not ws_dir.is_dir():
            continue
        db_path = ws_dir / STATE_DB_NAME
        if not db_path.exists():
            continue

        folder = read_workspace_folder(ws_dir)
        try:
            with closing(connect_readonly(db_path)) as conn:
                index = read_composer_index(conn)
        except (StoreReadFailure, sqlite3.Error) as e:
            logger.warning("Skipping workspace %s: %s", ws_dir.name, e)
            continue

        if index is None:
            continue
        for composer in index.all_composers:
            composer.workspace_id = ws_dir.name
            composer.workspace_folder = folder
            composers.append(composer)

    composers.sort(key=lambda c: c.updated_ms, reverse=True)
    return composers


def get_composer_details(
    db_path: Path, composer_id: str
) -> Union[ComposerDetail, Composer, None]:
    """Return the most complete record available for a composer.

    The global store's ``composerData:<id>`` record wins when present.
    Otherwise the summary composer from the workspace database is returned
    as-is. None means the composer is in neither.
    """
    db_path = Path(db_path)
    with closing(connect_readonly(db_path)) as conn:
        try:
            index = read_composer_index(conn)
        except StoreReadFailure as e:
            logger.warning("Unreadable composer data in %s: %s", db_path, e)
            return None
        if index is None:
            return None

        global_db = get_global_storage_path(db_path)
        logger.debug("globalDbPath: %s", global_db)
        logger.debug("cursorDiskKV key: %s%s", COMPOSER_DETAIL_PREFIX, composer_id)

        if global_db.exists():
            detail = _read_global_detail(global_db, composer_id)
            if detail is not None:
                return detail

        return index.find(composer_id)


def _read_global_detail(global_db: Path, composer_id: str) -> Optional[ComposerDetail]:
    key = COMPOSER_DETAIL_PREFIX + composer_id
    try:
        with closing(connect_readonly(global_db)) as conn:
            raw = query_value(conn, DISK_KV_TABLE, key)
            if raw is None:
                return None
            detail = ComposerDetail.from_dict(load_json(raw, key), composer_id)
            if detail.conversation is None and detail.bubble_ids:
                detail.conversation = _read_bubbles(conn, composer_id, detail.bubble_ids)
            return detail
    except (StoreReadFailure, sqlite3.Error) as e:
        logger.warning("Ignoring global detail for %s: %s", composer_id, e)
        return None


def _read_bubbles(
    conn: sqlite3.Connection, composer_id: str, bubble_ids: list[str]
) -> list[ComposerMessage]:
    """Fetch split-out bubbles in conversation-header order."""
    messages = []
    for bubble_id in bubble_ids:
        key = f"{BUBBLE_PREFIX}{composer_id}:{bubble_id}"
        raw = query_value(conn, DISK_KV_TABLE, key)
        if raw is None:
            logger.debug("Missing bubble %s", key)
            continue
        try:
            messages.append(ComposerMessage.from_dict(load_json(raw, key)))
        except StoreReadFailure as e:
            logger.debug("Skipping bubble %s: %s", key, e)
    return messages


# ── Projects ─────────────────────────────────────────────────────


def get_project_name(composer: Composer) -> str:
    """Name the project after the last segment of the workspace folder."""
    folder = composer.workspace_folder
    if folder:
        parts = _PATH_SEPARATORS.split(folder.rstrip("/\\"))
        if parts[-1]:
            if folder.startswith("file://"):
                return urllib.parse.unquote(parts[-1])
            return parts[-1]
    return UNKNOWN_PROJECT


def group_by_project(composers: list[Composer]) -> dict[str, list[Composer]]:
    projects: dict[str, list[Composer]] = {}
    for composer in composers:
        projects.setdefault(get_project_name(composer), []).append(composer)
    return projects


def sort_by_recency(composers: list[Composer]) -> list[Composer]:
    return sorted(composers, key=lambda c: c.recency_ms, reverse=True)


def rank_projects(projects: dict[str, list[Composer]]) -> list[tuple[str, int]]:
    """Return ``(project, latest_ms)`` pairs, most recently active first."""
    ranked = [
        (name, max(c.recency_ms for c in composers))
        for name, composers in projects.items()
        if composers
    ]
    ranked.sort(key=lambda p: p[1], reverse=True)
    return ranked


def get_log_summary(composer: Composer) -> str:
    """First line of the composer's name or text, at most 50 characters."""
    text = composer.name or composer.text or ""
    first_line = text.split("\n")[0].strip()
    if len(first_line) > SUMMARY_MAX_LEN:
        return first_line[: SUMMARY_MAX_LEN - 3] + "..."
    return first_line


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as ``YYYYMMDD_HHMM`` for filenames."""
    return dt.strftime("%Y%m%d_%H%M")


def default_filename(project: str, dt: datetime) -> str:
    return f"{project}_{format_timestamp(dt)}.md"
