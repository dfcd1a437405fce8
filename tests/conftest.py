"""Shared test fixtures for composer-export."""

import json
import sqlite3
from datetime import datetime, timezone

import pytest


def _ms(*args) -> int:
    return int(datetime(*args, tzinfo=timezone.utc).timestamp() * 1000)


JAN15_10 = _ms(2025, 1, 15, 10, 0, 0)
JAN15_11 = _ms(2025, 1, 15, 11, 0, 0)
JAN15_14 = _ms(2025, 1, 15, 14, 0, 0)
JAN16_09 = _ms(2025, 1, 16, 9, 0, 0)
JAN10_08 = _ms(2025, 1, 10, 8, 0, 0)


def make_state_db(db_path, item_table=None, disk_kv=None):
    """Create a state.vscdb with the two key/value tables Cursor uses."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.execute("CREATE TABLE ItemTable (key TEXT UNIQUE ON CONFLICT REPLACE, value BLOB)")
    conn.execute("CREATE TABLE cursorDiskKV (key TEXT UNIQUE ON CONFLICT REPLACE, value BLOB)")
    for key, value in (item_table or {}).items():
        if not isinstance(value, str):
            value = json.dumps(value)
        conn.execute("INSERT INTO ItemTable VALUES (?, ?)", (key, value))
    for key, value in (disk_kv or {}).items():
        if not isinstance(value, str):
            value = json.dumps(value)
        conn.execute("INSERT INTO cursorDiskKV VALUES (?, ?)", (key, value))
    conn.commit()
    conn.close()
    return db_path


def _composer_data(*composers):
    return {
        "allComposers": list(composers),
        "selectedComposerId": composers[0]["composerId"] if composers else None,
        "composerDataVersion": 1,
    }


@pytest.fixture
def workspace_root(tmp_path):
    """Create a synthetic workspaceStorage with several workspaces.

    - abc123hash: my-project, two composers with summary conversations
    - def456hash: other-project, one unnamed composer without lastUpdatedAt
    - nofolder: no workspace.json
    - nodb: a directory without state.vscdb (skipped)
    - corrupt: composer data that is not JSON (skipped)
    """
    root = tmp_path / "User" / "workspaceStorage"

    ws = root / "abc123hash"
    ws.mkdir(parents=True)
    (ws / "workspace.json").write_text(
        json.dumps({"folder": "file:///Users/testuser/dev/my-project"}), encoding="utf-8"
    )
    make_state_db(ws / "state.vscdb", item_table={
        "composer.composerData": _composer_data(
            {
                "composerId": "comp-uuid-001",
                "name": "Fix auth bug",
                "createdAt": JAN15_10,
                "lastUpdatedAt": JAN15_11,
                "conversation": [
                    {"type": 1, "bubbleId": "s1", "text": "summary question"},
                ],
            },
            {
                "composerId": "comp-uuid-002",
                "name": "Add dark mode",
                "createdAt": JAN15_11 + 1000,
                "lastUpdatedAt": JAN15_14,
                "conversation": [
                    {
                        "type": 1,
                        "bubbleId": "d1",
                        "text": "Add dark mode to the settings page",
                        "context": {"selections": [{"text": "const theme = 'light';"}]},
                    },
                    {"type": 2, "bubbleId": "d2", "text": "", "richText": "Added a theme toggle"},
                ],
            },
        ),
    })

    ws = root / "def456hash"
    ws.mkdir(parents=True)
    (ws / "workspace.json").write_text(
        json.dumps({"folder": "/home/testuser/work/other-project"}), encoding="utf-8"
    )
    make_state_db(ws / "state.vscdb", item_table={
        "composer.composerData": _composer_data(
            {
                "composerId": "comp-uuid-003",
                "text": "Explain the build\nand the release steps",
                "createdAt": JAN16_09,
            },
        ),
    })

    make_state_db(root / "nofolder" / "state.vscdb", item_table={
        "composer.composerData": _composer_data(
            {"composerId": "comp-uuid-004", "name": "Split bubbles", "lastUpdatedAt": JAN10_08},
        ),
    })

    (root / "nodb").mkdir()
    (root / "nodb" / "workspace.json").write_text('{"folder": "/tmp/nodb"}', encoding="utf-8")

    make_state_db(root / "corrupt" / "state.vscdb", item_table={
        "composer.composerData": "{not json",
    })

    return root


@pytest.fixture
def global_store(workspace_root):
    """Create the global state.vscdb next to workspaceStorage."""
    db_path = workspace_root.parent / "globalStorage" / "state.vscdb"
    return make_state_db(db_path, disk_kv={
        "composerData:comp-uuid-001": {
            "composerId": "comp-uuid-001",
            "conversation": [
                {"type": 1, "bubbleId": "g1", "text": "Fix the login bug in auth.ts"},
                {"type": 2, "bubbleId": "g2", "text": "", "richText": "Token validation is fixed."},
            ],
        },
        "composerData:comp-uuid-004": {
            "composerId": "comp-uuid-004",
            "fullConversationHeadersOnly": [
                {"bubbleId": "b1", "type": 1},
                {"bubbleId": "b2", "type": 2},
                {"bubbleId": "b3", "type": 2},
            ],
        },
        "bubbleId:comp-uuid-004:b1": {"type": 1, "bubbleId": "b1", "text": "Hello bubbles"},
        "bubbleId:comp-uuid-004:b2": {"type": 2, "bubbleId": "b2", "text": "Split reply"},
    })
