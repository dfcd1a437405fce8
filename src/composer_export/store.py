"""Read-only access to Cursor's state.vscdb key/value databases.

Both the per-workspace and the global database are SQLite files with an
``ItemTable`` and a ``cursorDiskKV`` table, each a plain key/value pair.
"""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Optional

from .core import ComposerIndex
from .errors import StoreReadFailure

logger = logging.getLogger(__name__)

ITEM_TABLE = "ItemTable"
DISK_KV_TABLE = "cursorDiskKV"
COMPOSER_DATA_KEY = "composer.composerData"
COMPOSER_DETAIL_PREFIX = "composerData:"
BUBBLE_PREFIX = "bubbleId:"


def connect_readonly(db_path: Path) -> sqlite3.Connection:
    """Open a state database without ever taking a write lock."""
    return sqlite3.connect(f"file:{db_path}?mode=ro", uri=True)


def query_value(conn: sqlite3.Connection, table: str, key: str) -> Optional[str]:
    """Read a single key from ``table``; None if the key is absent."""
    cur = conn.execute(f"SELECT value FROM {table} WHERE key = ?", (key,))
    row = cur.fetchone()
    if row is None or row[0] is None:
        return None
    val = row[0]
    if isinstance(val, bytes):
        return val.decode("utf-8", errors="replace")
    return str(val)


def load_json(raw: str, what: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise StoreReadFailure(f"Corrupt {what}: {e}") from e


def read_composer_index(conn: sqlite3.Connection) -> Optional[ComposerIndex]:
    """Parse the workspace's ``composer.composerData`` record.

    Returns None when the workspace has no composer data.

    Raises:
        StoreReadFailure: the record is not valid JSON or has the wrong shape.
    """
    raw = query_value(conn, ITEM_TABLE, COMPOSER_DATA_KEY)
    if raw is None:
        return None
    return ComposerIndex.from_dict(load_json(raw, COMPOSER_DATA_KEY))


def read_workspace_folder(ws_dir: Path) -> Optional[str]:
    """Return the ``folder`` recorded in workspace.json, if any."""
    ws_json = ws_dir / "workspace.json"
    if not ws_json.exists():
        return None
    try:
        data = json.loads(ws_json.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read workspace.json in %s: %s", ws_dir, e)
        return None
    folder = data.get("folder") if isinstance(data, dict) else None
    return folder if isinstance(folder, str) and folder else None
