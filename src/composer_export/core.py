"""Core data models for composer-export.

Records read from the editor's state databases are validated here, at the
store boundary. Anything that does not have the expected shape raises
``StoreReadFailure`` so callers only ever see typed records. A malformed
entry inside ``allComposers`` is skipped on its own.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from .errors import StoreReadFailure

logger = logging.getLogger(__name__)

USER_MESSAGE_TYPE = 1


def _expect_dict(value: Any, what: str) -> dict:
    if not isinstance(value, dict):
        raise StoreReadFailure(f"{what}: expected an object, got {type(value).__name__}")
    return value


def _optional_str(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise StoreReadFailure(f"field '{key}' is not a string")
    return value


def _optional_ms(data: dict, key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    # bool is an int subclass; a flag in a timestamp slot is malformed data
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise StoreReadFailure(f"field '{key}' is not a timestamp")
    return int(value)


def _parse_conversation(data: dict) -> Optional[list["ComposerMessage"]]:
    raw = data.get("conversation")
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise StoreReadFailure("field 'conversation' is not a list")
    return [ComposerMessage.from_dict(m) for m in raw]


def ms_to_local(ms: Optional[int]) -> Optional[datetime]:
    """Convert an epoch-millisecond timestamp to a local-time datetime."""
    if ms is None:
        return None
    try:
        return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).astimezone()
    except (ValueError, OSError, OverflowError):
        return None


@dataclass
class Selection:
    """A code selection attached to a message."""

    text: str


@dataclass
class ComposerMessage:
    """One turn of a composer conversation."""

    type: int  # 1 = user, anything else = assistant
    text: str = ""
    rich_text: str = ""
    bubble_id: str = ""
    timestamp: Optional[int] = None
    selections: list[Selection] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "ComposerMessage":
        data = _expect_dict(data, "conversation message")
        msg_type = data.get("type")
        if isinstance(msg_type, bool) or not isinstance(msg_type, int):
            raise StoreReadFailure("message 'type' is not an integer")

        selections = []
        context = data.get("context")
        raw_selections = context.get("selections") if isinstance(context, dict) else None
        if isinstance(raw_selections, list):
            for sel in raw_selections:
                if isinstance(sel, dict) and isinstance(sel.get("text"), str):
                    selections.append(Selection(text=sel["text"]))

        return cls(
            type=msg_type,
            text=_optional_str(data, "text"),
            rich_text=_optional_str(data, "richText"),
            bubble_id=_optional_str(data, "bubbleId"),
            timestamp=_optional_ms(data, "timestamp"),
            selections=selections,
        )

    @property
    def is_user(self) -> bool:
        return self.type == USER_MESSAGE_TYPE

    @property
    def role(self) -> str:
        return "user" if self.is_user else "ai"

    @property
    def display_text(self) -> str:
        return self.text or self.rich_text


@dataclass
class Composer:
    """A composer conversation summary from a workspace database."""

    composer_id: str
    name: str = ""
    text: str = ""
    rich_text: str = ""
    created_at: Optional[int] = None
    last_updated_at: Optional[int] = None
    conversation: Optional[list[ComposerMessage]] = None
    workspace_id: str = ""
    workspace_folder: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "Composer":
        data = _expect_dict(data, "composer")
        composer_id = data.get("composerId")
        if not isinstance(composer_id, str) or not composer_id:
            raise StoreReadFailure("composer has no 'composerId'")
        return cls(
            composer_id=composer_id,
            name=_optional_str(data, "name"),
            text=_optional_str(data, "text"),
            rich_text=_optional_str(data, "richText"),
            created_at=_optional_ms(data, "createdAt"),
            last_updated_at=_optional_ms(data, "lastUpdatedAt"),
            conversation=_parse_conversation(data),
        )

    @property
    def updated_ms(self) -> int:
        """Last update time, 0 when unknown."""
        return self.last_updated_at or 0

    @property
    def recency_ms(self) -> int:
        """Last update time, falling back to creation time, then 0."""
        return self.last_updated_at or self.created_at or 0

    def activity_datetime(self) -> datetime:
        """Local time of the last activity, or now if the record has none."""
        ms = self.last_updated_at or self.created_at
        return ms_to_local(ms) or datetime.now().astimezone()


@dataclass
class ComposerIndex:
    """The ``composer.composerData`` record of one workspace."""

    all_composers: list[Composer]
    selected_composer_id: Optional[str] = None
    version: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Any) -> "ComposerIndex":
        data = _expect_dict(data, "composer.composerData")
        raw = data.get("allComposers", [])
        if not isinstance(raw, list):
            raise StoreReadFailure("'allComposers' is not a list")

        composers = []
        for entry in raw:
            try:
                composers.append(Composer.from_dict(entry))
            except StoreReadFailure as e:
                logger.warning("Skipping malformed composer entry: %s", e)

        selected = data.get("selectedComposerId")
        version = data.get("composerDataVersion")
        return cls(
            all_composers=composers,
            selected_composer_id=selected if isinstance(selected, str) else None,
            version=version if isinstance(version, int) else None,
        )

    def find(self, composer_id: str) -> Optional[Composer]:
        for composer in self.all_composers:
            if composer.composer_id == composer_id:
                return composer
        return None


@dataclass
class ComposerDetail:
    """A full composer record from the global ``cursorDiskKV`` table."""

    composer_id: str
    conversation: Optional[list[ComposerMessage]] = None
    name: str = ""
    created_at: Optional[int] = None
    last_updated_at: Optional[int] = None
    bubble_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any, composer_id: str) -> "ComposerDetail":
        data = _expect_dict(data, f"composerData:{composer_id}")

        # Newer records keep only headers inline; bubbles live under their own keys
        headers = data.get("fullConversationHeadersOnly")
        bubble_ids = [
            h["bubbleId"]
            for h in (headers if isinstance(headers, list) else [])
            if isinstance(h, dict) and isinstance(h.get("bubbleId"), str)
        ]

        return cls(
            composer_id=composer_id,
            conversation=_parse_conversation(data),
            name=_optional_str(data, "name"),
            created_at=_optional_ms(data, "createdAt"),
            last_updated_at=_optional_ms(data, "lastUpdatedAt"),
            bubble_ids=bubble_ids,
        )


@dataclass
class Bubble:
    """A rendered turn: who spoke, what they said, what code they quoted."""

    type: str  # "user" | "ai"
    text: str = ""
    model_type: str = "composer"
    selections: list[Selection] = field(default_factory=list)


@dataclass
class Transcript:
    """A normalised conversation, ready for rendering."""

    id: str
    title: str
    timestamp: str  # ISO-8601
    bubbles: list[Bubble] = field(default_factory=list)
