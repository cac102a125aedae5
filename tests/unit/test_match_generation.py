import pytest

from intromatch.features.matching.domain.models import (
    ContactProfile,
    ConversationSignals,
    SuggestionStatus,
    Thesis,
)
from intromatch.features.matching.pipeline.generation.service import (
    ConversationNotFoundError,
    MatchGenerationService,
)
from intromatch.features.matching.services.explanation_service import ExplanationError


class FakeMatchingRepository:
    def __init__(self, signals, contacts, acted_on=()):
        self.signals = signals
        self.contacts = contacts
        self.acted_on = set(acted_on)
        self.upserted = []

    async def load_signals(self, conversation_id):
        if self.signals is None:
            return None
        return self.signals, "owner-1"

    async def fetch_contacts(self, owner_id):
        return self.contacts

    async def upsert_suggestions(self, suggestions):
        self.upserted.extend(suggestions)
        # User-acted rows are left alone and not returned
        return [s for s in suggestions if s.contact_id not in self.acted_on]


class FakeExplanationService:
    enabled = True

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls = []

    async def explain(self, signals, contact, match):
        self.calls.append(contact.id)
        if contact.id in self.failing:
            raise ExplanationError("rate limited", contact_id=contact.id)
        return f"{contact.name} backs biotech founders."


def _contacts():
    return [
        ContactProfile("a", "Ann", theses=[Thesis(sectors=["Biotech"])], relationship_strength=90),
        ContactProfile("b", "Ben", theses=[Thesis(sectors=["Biotech"])], relationship_strength=60),
        ContactProfile("c", "Cal", relationship_strength=60),
        ContactProfile("d", "Dee", relationship_strength=0),
    ]


@pytest.mark.asyncio
async def test_generate_scores_explains_and_persists():
    repository = FakeMatchingRepository(
        ConversationSignals("conv-1", sectors=["Biotech"]), _contacts()
    )
    explanations = FakeExplanationService(failing={"b"})
    service = MatchGenerationService(
        repository,
        explanation_service=explanations,
        max_suggestions=20,
        explain_top_n=5,
        match_version="test-v1",
    )

    result = await service.generate("conv-1")

    assert [s.contact_id for s in result.suggestions] == ["a", "b", "c"]
    assert [s.score for s in result.suggestions] == [3, 3, 1]
    assert result.scored_count == 4
    assert sorted(explanations.calls) == ["a", "b"]
    assert result.explained_count == 1
    assert result.explanation_errors == 1
    assert result.suggestions[0].ai_explanation == "Ann backs biotech founders."
    assert result.suggestions[1].ai_explanation is None
    assert all(s.match_version == "test-v1" for s in result.suggestions)
    assert all(s.status == SuggestionStatus.PENDING for s in result.suggestions)


@pytest.mark.asyncio
async def test_generate_keeps_top_n_and_skips_user_acted_rows():
    repository = FakeMatchingRepository(
        ConversationSignals("conv-1", sectors=["Biotech"]), _contacts(), acted_on={"a"}
    )
    service = MatchGenerationService(repository, max_suggestions=2, explain_top_n=0)

    result = await service.generate("conv-1")

    assert [s.contact_id for s in repository.upserted] == ["a", "b"]
    assert [s.contact_id for s in result.suggestions] == ["b"]


@pytest.mark.asyncio
async def test_generate_without_entities_persists_nothing():
    repository = FakeMatchingRepository(ConversationSignals("conv-1"), _contacts())

    result = await MatchGenerationService(repository).generate("conv-1")

    assert result.suggestions == []
    assert repository.upserted == []


@pytest.mark.asyncio
async def test_generate_without_contacts_persists_nothing():
    repository = FakeMatchingRepository(ConversationSignals("conv-1", sectors=["Biotech"]), [])

    result = await MatchGenerationService(repository).generate("conv-1")

    assert result.suggestions == []
    assert repository.upserted == []


@pytest.mark.asyncio
async def test_generate_unknown_conversation():
    repository = FakeMatchingRepository(None, [])

    with pytest.raises(ConversationNotFoundError):
        await MatchGenerationService(repository).generate("missing")
