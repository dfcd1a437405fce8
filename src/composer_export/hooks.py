"""Install or remove the composer export step in the Husky pre-commit hook.

The step lives between two sentinel comments so it can be detected and
removed again without touching the rest of the hook.
"""

import logging
import os
import shlex
import stat
from pathlib import Path

logger = logging.getLogger(__name__)

HOOK_FILE = Path(".husky") / "pre-commit"
MARKER_START = "# Cursor Composer Export Start"
MARKER_END = "# Cursor Composer Export End"
EXPORT_COMMAND = "composer-export"


def build_hook_block(output_dir: str) -> str:
    """Return the sentinel-delimited shell block for ``output_dir``."""
    quoted = shlex.quote(str(output_dir))
    return "\n".join([
        MARKER_START,
        "# Ensure output directory exists",
        f"mkdir -p {quoted}",
        "",
        "# Export with default settings to specified path",
        f"{EXPORT_COMMAND} {quoted} --default",
        "",
        "# Add all exported files (including hidden files)",
        f"git add -f {quoted}/.",
        MARKER_END,
    ])


def install_hook(output_dir: str, hook_file: Path = HOOK_FILE) -> bool:
    """Append the export block to the pre-commit hook and make it executable.

    Returns False without changing anything when the block is already there.
    """
    hook_file = Path(hook_file)
    existing = ""
    if hook_file.exists():
        existing = hook_file.read_text(encoding="utf-8")
        if MARKER_START in existing:
            logger.info("Git hook already contains composer export commands")
            return False

    hook_file.parent.mkdir(parents=True, exist_ok=True)
    hook_file.write_text(f"{existing}\n\n{build_hook_block(output_dir)}\n", encoding="utf-8")

    mode = hook_file.stat().st_mode
    os.chmod(hook_file, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    logger.info("Composer export commands added to %s", hook_file)
    return True


def remove_hook(hook_file: Path = HOOK_FILE) -> bool:
    """Delete the export block from the pre-commit hook.

    Returns False when there is no hook file or no complete block in it.
    """
    hook_file = Path(hook_file)
    if not hook_file.exists():
        logger.info("No existing hook file found at %s", hook_file)
        return False

    lines = hook_file.read_text(encoding="utf-8").split("\n")
    start = next((i for i, line in enumerate(lines) if MARKER_START in line), -1)
    end = next((i for i, line in enumerate(lines) if MARKER_END in line), -1)
    if start == -1 or end == -1 or end < start:
        logger.info("Composer export section not found in %s", hook_file)
        return False

    remaining = lines[:start] + lines[end + 1:]
    hook_file.write_text("\n".join(remaining).strip(), encoding="utf-8")
    logger.info("Composer export commands removed from %s", hook_file)
    return True
