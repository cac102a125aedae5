import pytest

from intromatch.features.evaluation.dataset import EvaluationDataset
from intromatch.features.evaluation.labels import Label, LabelSet
from intromatch.features.evaluation.repository import StoredSuggestion
from intromatch.features.matching.domain.models import ConfidenceScores, ScoreBreakdown


def _stored(conversation_id: str, contact_id: str, **components) -> StoredSuggestion:
    breakdown = ScoreBreakdown(**components)
    return StoredSuggestion(
        conversation_id=conversation_id,
        contact_id=contact_id,
        score=1,
        raw_score=0.0,
        breakdown=breakdown,
        confidence=ConfidenceScores(),
    )


class FakeEvaluationRepository:
    """In-memory stand-in for EvaluationRepository."""

    def __init__(
        self,
        conversations: dict[str, str] | None = None,
        contacts: dict[str, str] | None = None,
        suggestions: dict[str, list[StoredSuggestion]] | None = None,
        failing: set[str] | None = None,
    ):
        self.conversations = conversations or {}
        self.contacts = contacts or {}
        self.suggestions = suggestions or {}
        self.failing = failing or set()

    async def resolve_conversation_titles(self, titles):
        return {title: cid for cid, title in self.conversations.items() if title in titles}

    async def resolve_contact_names(self, names):
        return {name: cid for cid, name in self.contacts.items() if name in names}

    async def fetch_conversation_titles(self, conversation_ids):
        return {
            cid: self.conversations[cid] for cid in conversation_ids if cid in self.conversations
        }

    async def fetch_contact_names(self, contact_ids):
        return {cid: self.contacts[cid] for cid in contact_ids if cid in self.contacts}

    async def fetch_suggestions(self, conversation_id):
        if conversation_id in self.failing:
            raise RuntimeError(f"boom for {conversation_id}")
        return self.suggestions.get(conversation_id, [])


@pytest.fixture
def make_stored():
    return _stored


@pytest.fixture
def make_dataset():
    def _make(
        suggestions: dict[str, list[StoredSuggestion]],
        labels: dict[tuple[str, str], int],
    ) -> EvaluationDataset:
        label_set = LabelSet(
            labels={
                key: Label(key[0], key[1], value, "golden") for key, value in labels.items()
            }
        )
        return EvaluationDataset(label_set=label_set, suggestions=suggestions)

    return _make


@pytest.fixture
def fake_repository():
    return FakeEvaluationRepository
