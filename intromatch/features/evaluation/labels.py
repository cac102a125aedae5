"""
Relevance labels for offline evaluation and tuning.

Two sources feed the label set: a hand-curated golden set (written with
human-readable conversation titles and contact names) and labels derived
from user feedback and suggestion status. Golden labels take precedence
when both cover the same pair.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from intromatch.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

POSITIVE_FEEDBACK = frozenset({"thumbs_up", "saved", "intro_sent"})
NEGATIVE_FEEDBACK = frozenset({"thumbs_down"})
POSITIVE_STATUS = frozenset({"intro_made"})
NEGATIVE_STATUS = frozenset({"dismissed"})

PairKey = tuple[str, str]


class LabelFileError(Exception):
    """Raised when a label file cannot be read or does not match its schema."""

    def __init__(self, message: str, path: Path | None = None):
        super().__init__(message)
        self.path = path
        self.recoverable = False


class LabelResolutionError(Exception):
    """Raised when golden-set names do not resolve to stored ids."""

    def __init__(self, missing_conversations: list[str], missing_contacts: list[str]):
        parts = []
        if missing_conversations:
            parts.append(f"conversations not found: {', '.join(missing_conversations)}")
        if missing_contacts:
            parts.append(f"contacts not found: {', '.join(missing_contacts)}")
        super().__init__("Golden set did not resolve; " + "; ".join(parts))
        self.missing_conversations = missing_conversations
        self.missing_contacts = missing_contacts
        self.recoverable = False


class GoldenLabelEntry(BaseModel):
    conversation: str | None = None
    contact: str | None = None
    conversation_id: str | None = None
    contact_id: str | None = None
    label: Literal[0, 1]
    note: str | None = None


class GoldenSetFile(BaseModel):
    labels: list[GoldenLabelEntry] = Field(default_factory=list)


class FeedbackLabelEntry(BaseModel):
    conversation_id: str
    contact_id: str
    label: Literal[0, 1]
    source: str = "feedback"


class FeedbackLabelMeta(BaseModel):
    description: str
    exported_at: str
    total: int
    positive: int
    negative: int


class FeedbackLabelFile(BaseModel):
    meta: FeedbackLabelMeta | None = Field(default=None, alias="_meta")
    labels: list[FeedbackLabelEntry] = Field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Label:
    conversation_id: str
    contact_id: str
    label: int
    source: str

    @property
    def key(self) -> PairKey:
        return (self.conversation_id, self.contact_id)

    @property
    def is_positive(self) -> bool:
        return self.label == 1


@dataclass(slots=True)
class LabelSet:
    """Resolved labels keyed by (conversation_id, contact_id)."""

    labels: dict[PairKey, Label] = field(default_factory=dict)
    conversation_titles: dict[str, str] = field(default_factory=dict)
    contact_names: dict[str, str] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.labels)

    @property
    def positive_count(self) -> int:
        return sum(1 for label in self.labels.values() if label.is_positive)

    @property
    def negative_count(self) -> int:
        return len(self.labels) - self.positive_count

    def conversation_ids(self) -> list[str]:
        return list(dict.fromkeys(conversation_id for conversation_id, _ in self.labels))

    def positives(self, conversation_id: str) -> set[str]:
        return {
            label.contact_id
            for label in self.labels.values()
            if label.conversation_id == conversation_id and label.is_positive
        }

    def negatives(self, conversation_id: str) -> set[str]:
        return {
            label.contact_id
            for label in self.labels.values()
            if label.conversation_id == conversation_id and not label.is_positive
        }

    def title(self, conversation_id: str) -> str:
        return self.conversation_titles.get(conversation_id, conversation_id)


def _read_json(path: Path, model: type[BaseModel]) -> BaseModel:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise LabelFileError(f"Cannot read label file {path}: {e}", path=path) from e
    try:
        return model.model_validate_json(content)
    except ValidationError as e:
        raise LabelFileError(f"Malformed label file {path}: {e}", path=path) from e


def load_golden_set(path: Path, required: bool = True) -> list[GoldenLabelEntry]:
    if not path.exists():
        if required:
            raise LabelFileError(f"Golden set not found: {path}", path=path)
        logger.info("Golden set not present, skipping", path=str(path))
        return []
    entries = _read_json(path, GoldenSetFile).labels
    logger.info("Golden set loaded", path=str(path), entries=len(entries))
    return entries


def load_feedback_labels(path: Path) -> list[Label]:
    """Exported feedback labels; a missing file simply contributes nothing."""
    if not path.exists():
        logger.info("Feedback labels not present, skipping", path=str(path))
        return []
    entries = _read_json(path, FeedbackLabelFile).labels
    logger.info("Feedback labels loaded", path=str(path), entries=len(entries))
    return [
        Label(entry.conversation_id, entry.contact_id, entry.label, entry.source)
        for entry in entries
    ]


def names_to_resolve(entries: Iterable[GoldenLabelEntry]) -> tuple[list[str], list[str]]:
    """Conversation titles and contact names that need an id lookup."""
    titles: dict[str, None] = {}
    names: dict[str, None] = {}
    for entry in entries:
        if not entry.conversation_id and entry.conversation:
            titles[entry.conversation] = None
        if not entry.contact_id and entry.contact:
            names[entry.contact] = None
    return list(titles), list(names)


def resolve_golden_labels(
    entries: Iterable[GoldenLabelEntry],
    conversation_ids: Mapping[str, str],
    contact_ids: Mapping[str, str],
) -> list[Label]:
    """
    Turn golden entries into id-keyed labels.

    Raises:
        LabelResolutionError: If any title or name is missing from the lookups.
            Every unresolved name is reported, not just the first.
    """
    entries = list(entries)
    missing_conversations: dict[str, None] = {}
    missing_contacts: dict[str, None] = {}
    labels: list[Label] = []

    for entry in entries:
        conversation_id = entry.conversation_id or conversation_ids.get(entry.conversation or "")
        contact_id = entry.contact_id or contact_ids.get(entry.contact or "")
        if not conversation_id:
            missing_conversations[entry.conversation or "<unnamed>"] = None
        if not contact_id:
            missing_contacts[entry.contact or "<unnamed>"] = None
        if conversation_id and contact_id:
            labels.append(Label(conversation_id, contact_id, entry.label, "golden"))

    if missing_conversations or missing_contacts:
        logger.error(
            "Golden set names unresolved",
            missing_conversations=list(missing_conversations),
            missing_contacts=list(missing_contacts),
        )
        raise LabelResolutionError(list(missing_conversations), list(missing_contacts))
    return labels


def derive_feedback_labels(
    feedback_rows: Iterable[Mapping[str, Any]],
    status_rows: Iterable[Mapping[str, Any]],
) -> list[Label]:
    """
    Labels from explicit feedback, then from suggestion status.

    Positive feedback always sets the label; negative feedback only fills
    a pair with no label yet. Status labels never replace feedback labels.
    """
    by_key: dict[PairKey, Label] = {}

    for row in feedback_rows:
        conversation_id, contact_id = row.get("conversation_id"), row.get("contact_id")
        if not conversation_id or not contact_id:
            continue
        key = (str(conversation_id), str(contact_id))
        kind = row.get("feedback")
        if kind in POSITIVE_FEEDBACK:
            by_key[key] = Label(*key, 1, f"feedback:{kind}")
        elif kind in NEGATIVE_FEEDBACK and key not in by_key:
            by_key[key] = Label(*key, 0, f"feedback:{kind}")

    for row in status_rows:
        conversation_id, contact_id = row.get("conversation_id"), row.get("contact_id")
        if not conversation_id or not contact_id:
            continue
        key = (str(conversation_id), str(contact_id))
        if key in by_key:
            continue
        status = row.get("status")
        if status in POSITIVE_STATUS:
            by_key[key] = Label(*key, 1, f"status:{status}")
        elif status in NEGATIVE_STATUS:
            by_key[key] = Label(*key, 0, f"status:{status}")

    return list(by_key.values())


def merge_labels(golden: Iterable[Label], feedback: Iterable[Label]) -> LabelSet:
    """Golden labels first; feedback labels only fill pairs the golden set lacks."""
    label_set = LabelSet()
    for label in golden:
        label_set.labels[label.key] = label
    for label in feedback:
        label_set.labels.setdefault(label.key, label)
    return label_set


def build_export(labels: list[Label], exported_at: datetime | None = None) -> dict[str, Any]:
    exported_at = exported_at or datetime.now(UTC)
    positive = sum(1 for label in labels if label.is_positive)
    return {
        "_meta": {
            "description": "Labels derived from match_feedback and match_suggestions.status",
            "exported_at": exported_at.isoformat(),
            "total": len(labels),
            "positive": positive,
            "negative": len(labels) - positive,
        },
        "labels": [
            {
                "conversation_id": label.conversation_id,
                "contact_id": label.contact_id,
                "label": label.label,
                "source": label.source,
            }
            for label in labels
        ],
    }
