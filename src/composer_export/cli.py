"""CLI entry points for composer-export."""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Mapping, Optional

import click

from .composers import (
    default_filename,
    get_composer_details,
    get_composers,
    get_project_name,
    group_by_project,
)
from .config import STATE_DB_NAME, get_workspace_path
from .errors import ComposerExportError, UserQuit
from .export import build_transcript, transcript_to_markdown, write_transcript
from .hooks import HOOK_FILE, install_hook, remove_hook
from .prompts import prompt_filename, prompt_output_dir, select_conversation, select_project

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = ".composer-logs"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def export_conversation(
    output_dir: Path,
    use_defaults: bool,
    environ: Mapping[str, str],
    current_dir_name: str,
    platform: Optional[str] = None,
) -> Path:
    """Run the whole export: locate, collect, select, resolve, render, write."""
    if use_defaults:
        output_dir.mkdir(parents=True, exist_ok=True)
    else:
        output_dir = prompt_output_dir(output_dir)

    workspace_root = get_workspace_path(environ=environ, platform=platform)
    logger.debug("Workspace root: %s", workspace_root)
    composers = get_composers(workspace_root)
    if not composers:
        raise ComposerExportError(f"No composer conversations found in {workspace_root}")

    projects = group_by_project(composers)
    project_composers = select_project(projects, current_dir_name, use_defaults)
    selected = select_conversation(project_composers, use_defaults)

    if use_defaults:
        filename = default_filename(get_project_name(selected), datetime.now())
    else:
        filename = prompt_filename(selected)

    db_path = workspace_root / selected.workspace_id / STATE_DB_NAME
    details = get_composer_details(db_path, selected.composer_id)
    markdown = transcript_to_markdown(build_transcript(selected, details))
    return write_transcript(markdown, output_dir, filename)


@click.command()
@click.argument(
    "output_dir",
    required=False,
    default=DEFAULT_OUTPUT_DIR,
    type=click.Path(file_okay=False, path_type=Path),
)
@click.option(
    "--default",
    "use_defaults",
    is_flag=True,
    help="Skip all prompts and export the most recent conversation.",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
def main(output_dir: Path, use_defaults: bool, verbose: bool):
    """Export a Cursor composer conversation to Markdown in OUTPUT_DIR."""
    _configure_logging(verbose)
    try:
        path = export_conversation(
            output_dir,
            use_defaults,
            environ=os.environ,
            current_dir_name=Path.cwd().name,
        )
    except UserQuit:
        sys.exit(UserQuit.exit_code)
    except click.Abort:
        raise
    except ComposerExportError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        logger.debug("Export failed", exc_info=True)
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if use_defaults:
        click.echo(str(path))
    else:
        click.echo(f"\nExported to: {path}")


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
def hook(verbose: bool):
    """Manage the composer export step in the Husky pre-commit hook."""
    _configure_logging(verbose)


@hook.command()
@click.argument("output_dir", required=False, default=DEFAULT_OUTPUT_DIR)
@click.option(
    "--hook-file",
    default=str(HOOK_FILE),
    show_default=True,
    type=click.Path(dir_okay=False, path_type=Path),
)
def install(output_dir: str, hook_file: Path):
    """Run composer-export on every commit, writing to OUTPUT_DIR."""
    try:
        added = install_hook(output_dir, hook_file)
    except OSError as e:
        click.echo(f"Error installing Git hook: {e}", err=True)
        sys.exit(1)

    if added:
        click.echo("Composer export commands added to pre-commit hook successfully")
    else:
        click.echo("Git hook already contains composer export commands")


@hook.command()
@click.option(
    "--hook-file",
    default=str(HOOK_FILE),
    show_default=True,
    type=click.Path(dir_okay=False, path_type=Path),
)
def remove(hook_file: Path):
    """Remove the composer export step from the pre-commit hook."""
    try:
        removed = remove_hook(hook_file)
    except OSError as e:
        click.echo(f"Error removing Git hook: {e}", err=True)
        sys.exit(1)

    if removed:
        click.echo("Composer export commands removed from pre-commit hook")
    else:
        click.echo("Composer export section not found, nothing to remove")
