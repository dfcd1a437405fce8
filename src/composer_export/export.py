"""Export composer conversations to Markdown."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from .core import Bubble, Composer, ComposerDetail, ComposerMessage, Transcript

MODEL_TYPE = "composer"


def message_to_bubble(msg: ComposerMessage, model_type: str = MODEL_TYPE) -> Bubble:
    return Bubble(
        type=msg.role,
        text=msg.display_text,
        model_type=model_type,
        selections=list(msg.selections),
    )


def build_transcript(
    selected: Composer, details: Union[ComposerDetail, Composer, None]
) -> Transcript:
    """Merge a summary composer and its resolved details into a transcript.

    The detailed conversation is used whenever it exists, even if empty;
    otherwise the summary's own conversation, otherwise nothing.
    """
    conversation: Optional[list[ComposerMessage]] = None
    if details is not None:
        conversation = details.conversation
    if conversation is None:
        conversation = selected.conversation or []

    timestamp = selected.activity_datetime().astimezone(timezone.utc)
    return Transcript(
        id=selected.composer_id,
        title=selected.name or selected.composer_id,
        timestamp=timestamp.isoformat().replace("+00:00", "Z"),
        bubbles=[message_to_bubble(m) for m in conversation],
    )


def _format_created(timestamp: str) -> str:
    try:
        dt = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return timestamp
    if dt.tzinfo is not None:
        dt = dt.astimezone()
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def transcript_to_markdown(transcript: Transcript) -> str:
    """Render a transcript as Markdown."""
    lines = [
        f"# {transcript.title or f'Chat {transcript.id}'}",
        "",
        f"_Created: {_format_created(transcript.timestamp)}_",
        "",
        "---",
        "",
    ]

    for bubble in transcript.bubbles:
        speaker = f"AI ({bubble.model_type})" if bubble.type == "ai" else "User"
        lines.extend([f"### {speaker}", ""])

        if bubble.selections:
            lines.extend(["**Selected Code:**", ""])
            for selection in bubble.selections:
                lines.extend(["```", selection.text, "```", ""])

        if bubble.text:
            lines.extend([bubble.text, ""])

        lines.extend(["---", ""])

    return "\n".join(lines)


def write_transcript(markdown: str, output_dir: Path, filename: str) -> Path:
    """Write the rendered transcript, replacing any file of the same name."""
    path = Path(output_dir) / filename
    path.write_text(markdown, encoding="utf-8")
    return path
