"""Interactive selection of project, conversation and output file.

Every prompt follows the same contract: empty input takes the default, ``q``
quits the program, anything else is validated and re-prompted on error.
With ``use_defaults`` the prompts are skipped and the defaults taken.
"""

import re
from pathlib import Path
from typing import Optional

import click

from .composers import (
    default_filename,
    get_log_summary,
    get_project_name,
    rank_projects,
    sort_by_recency,
)
from .core import Composer, ms_to_local
from .errors import ComposerExportError, UserQuit


QUIT = "q"
MAX_LISTED_CONVERSATIONS = 10

_FILENAME_RE = re.compile(r"^[A-Za-z0-9_.-]+\.md$", re.IGNORECASE)


def _ask(question: str) -> str:
    answer = click.prompt(question, default="", show_default=False, prompt_suffix=" ")
    if answer.strip().lower() == QUIT:
        raise UserQuit()
    return answer.strip()


def _ask_number(question: str, default: int, upper: int) -> int:
    """Prompt until the user picks a 1-based index in ``1..upper``."""
    while True:
        answer = _ask(question) or str(default)
        try:
            num = int(answer)
        except ValueError:
            num = 0
        if 1 <= num <= upper:
            return num
        click.echo(f"Invalid selection. Please enter a number between 1 and {upper}")


def format_date(ms: int) -> str:
    dt = ms_to_local(ms) if ms else None
    if dt is None:
        return "unknown"
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def select_project(
    projects: dict[str, list[Composer]],
    current_dir_name: str,
    use_defaults: bool = False,
) -> list[Composer]:
    """Pick a project; returns its composers, most recent first.

    The project named like the current directory is the default, else the
    most recently active one.
    """
    ranked = rank_projects(projects)
    if not ranked:
        raise ComposerExportError("No projects with composer conversations found")

    names = [name for name, _ in ranked]
    matched = current_dir_name in names
    default = names.index(current_dir_name) + 1 if matched else 1

    if use_defaults:
        return sort_by_recency(projects[names[default - 1]])

    click.echo("\nAvailable Projects:")
    for i, (name, latest) in enumerate(ranked, start=1):
        click.echo(f"{i}. {name} (last updated: {format_date(latest)})")

    if matched:
        question = (
            f"\nSelect a project (1-{len(ranked)}) "
            f"[default {default} - {current_dir_name}] or q to quit:"
        )
    else:
        question = f"\nSelect a project (1-{len(ranked)}) [default 1] or q to quit:"

    num = _ask_number(question, default, len(ranked))
    return sort_by_recency(projects[names[num - 1]])


def select_conversation(composers: list[Composer], use_defaults: bool = False) -> Composer:
    """Pick one of the ten most recent conversations of a project."""
    if not composers:
        raise ComposerExportError("The selected project has no conversations")
    if use_defaults:
        return composers[0]

    listed = composers[:MAX_LISTED_CONVERSATIONS]
    click.echo("\nRecent Composer Logs:")
    for i, composer in enumerate(listed, start=1):
        date = format_date(composer.recency_ms)
        click.echo(f"{i}. [{date}] [{get_project_name(composer)}] {get_log_summary(composer)}")

    question = f"\nSelect a log number (1-{len(listed)}) [default 1] or q to quit:"
    num = _ask_number(question, 1, len(listed))
    return listed[num - 1]


def normalize_filename(raw: str, default: str) -> Optional[str]:
    """Apply the filename rules; None means the name is not acceptable.

    Empty input takes ``default``; a missing ``.md`` extension is appended.
    """
    filename = raw.strip() or default
    if not filename.lower().endswith(".md"):
        filename += ".md"
    if _FILENAME_RE.match(filename):
        return filename
    return None


def prompt_filename(selected: Composer) -> str:
    default = default_filename(get_project_name(selected), selected.activity_datetime())
    while True:
        filename = normalize_filename(_ask(f"\nEnter filename (default: {default}):"), default)
        if filename is not None:
            return filename
        click.echo("Invalid filename. Please use only letters, numbers, dash, underscore, and dot.")


def prompt_output_dir(initial: Path) -> Path:
    """Confirm the output directory and create it."""
    while True:
        answer = _ask(f"\nEnter output directory (default: {initial}):")
        output_dir = Path(answer) if answer else Path(initial)
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            click.echo(f"Invalid path: {e}")
            continue
        return output_dir
