import math

import pytest

from intromatch.features.matching.domain.models import (
    COMPONENTS,
    ContactProfile,
    ConversationSignals,
    Thesis,
    WeightRegime,
    WeightVector,
)
from intromatch.features.matching.pipeline.scoring.service import ScoringService
from intromatch.features.matching.pipeline.scoring.similarity import (
    check_size_fit,
    cosine_similarity,
    jaccard_similarity,
    matches_any,
    parse_check_size,
)
from intromatch.features.matching.pipeline.scoring.weights import (
    DEFAULT_WEIGHTS,
    score_to_stars,
    weighted_score,
)


def _build_signals(**overrides):
    signals = ConversationSignals(conversation_id="conv-1")
    for key, value in overrides.items():
        setattr(signals, key, value)
    return signals


def _build_contact(**overrides):
    contact = ContactProfile(id="contact-1", name="Dana Whitfield")
    for key, value in overrides.items():
        setattr(contact, key, value)
    return contact


def test_biotech_seed_pair_scores_exactly_without_embeddings():
    service = ScoringService()
    signals = _build_signals(sectors=["Biotech"], stages=["Seed"])
    contact = _build_contact(
        theses=[Thesis(sectors=["Biotech"], stages=["Pre-seed"])],
        contact_types=["GP"],
        relationship_strength=80,
    )

    match = service.score_pair(signals, contact)

    assert match.regime == WeightRegime.WITHOUT_EMBEDDINGS
    assert match.breakdown.embedding is None
    assert match.breakdown.tag_overlap == pytest.approx(1 / 3)
    assert match.breakdown.relationship == pytest.approx(0.8)
    assert match.breakdown.semantic == 0.0
    assert match.breakdown.role_match == 0.0
    assert match.raw_score == pytest.approx(0.35 / 3 + 0.2 * 0.8)
    assert match.raw_score == pytest.approx(0.276667, abs=1e-6)
    assert match.stars == 2
    assert "Matches: Biotech, Seed" in match.reasons


def test_empty_inputs_stay_in_bounds():
    service = ScoringService()
    match = service.score_pair(ConversationSignals(conversation_id="c"), ContactProfile("x", ""))

    for name in COMPONENTS:
        assert 0.0 <= match.breakdown.component(name) <= 1.0
    assert match.breakdown.embedding is None
    assert 0.0 <= match.raw_score <= 1.0
    # Only the default relationship strength contributes
    assert match.raw_score == pytest.approx(0.2 * 0.5)


def test_malformed_relationship_strength_falls_back_to_zero():
    service = ScoringService()
    contact = _build_contact(relationship_strength="strong")

    breakdown, _ = service.compute_breakdown(_build_signals(sectors=["Biotech"]), contact)

    assert breakdown.relationship == 0.0


@pytest.mark.parametrize(
    "raw_score,stars",
    [(0.39, 2), (0.40, 3), (0.04999, 0), (0.05, 1), (0.20, 2), (1.0, 3), (0.0, 0)],
)
def test_star_thresholds(raw_score, stars):
    assert score_to_stars(raw_score) == stars


@pytest.mark.parametrize("regime", list(WeightRegime))
def test_default_weight_regimes_sum_to_one(regime):
    assert DEFAULT_WEIGHTS[regime].is_normalized()
    assert math.isclose(DEFAULT_WEIGHTS[regime].total(), 1.0, abs_tol=1e-6)


def test_embedding_selects_with_embeddings_regime():
    service = ScoringService()
    signals = _build_signals(sectors=["Biotech"], context_embedding=[1.0, 0.0])
    contact = _build_contact(bio_embedding=[1.0, 0.0])

    match = service.score_pair(signals, contact)

    assert match.breakdown.embedding == pytest.approx(1.0)
    assert match.regime == WeightRegime.WITH_EMBEDDINGS


def test_embedding_of_different_length_is_absent():
    service = ScoringService()
    signals = _build_signals(context_embedding=[1.0, 0.0])
    contact = _build_contact(bio_embedding=[1.0, 0.0, 0.0])

    breakdown, _ = service.compute_breakdown(signals, contact)

    assert breakdown.embedding is None


def test_injected_weights_replace_default_regime():
    service = ScoringService(
        weights={WeightRegime.WITHOUT_EMBEDDINGS: WeightVector(relationship=1.0)}
    )
    signals = _build_signals(sectors=["Biotech"])
    contact = _build_contact(relationship_strength=80)

    match = service.score_pair(signals, contact)

    assert match.raw_score == pytest.approx(0.8)


def test_unnormalized_injected_weights_are_refused():
    with pytest.raises(ValueError, match="sum to 0.500000"):
        ScoringService(weights={WeightRegime.WITHOUT_EMBEDDINGS: WeightVector(relationship=0.5)})


def test_nan_component_is_scored_as_zero(monkeypatch):
    service = ScoringService()
    monkeypatch.setattr(service, "_semantic", lambda signals, contact: float("nan"))

    match = service.score_pair(_build_signals(sectors=["Biotech"]), _build_contact())

    assert match.breakdown.semantic == 0.0
    assert not math.isnan(match.raw_score)
    assert match.raw_score == pytest.approx(0.2 * 0.5)


def test_score_contacts_drops_zero_star_pairs_and_orders_by_stars():
    service = ScoringService()
    signals = _build_signals(sectors=["Biotech"])
    strong = _build_contact(
        id="strong", theses=[Thesis(sectors=["Biotech"])], relationship_strength=90
    )
    silent = _build_contact(id="silent", relationship_strength=0)
    weak = _build_contact(id="weak", relationship_strength=60)

    matches = service.score_contacts(signals, [weak, silent, strong])

    assert [m.contact_id for m in matches] == ["strong", "weak"]
    assert matches[0].stars == 3
    assert matches[1].stars == 1


def test_name_mention_adds_boost_and_reason():
    service = ScoringService()
    signals = _build_signals(target_person="Dana Whitfield")

    match = service.score_pair(signals, _build_contact())

    assert match.breakdown.name_match == pytest.approx(1.0)
    assert match.raw_score == pytest.approx(0.2 * 0.5 + 0.3)
    assert match.stars == 3
    assert 'Name mentioned: "Dana Whitfield"' in match.reasons
    assert match.name_match_type == "exact"


def test_role_geo_interest_and_check_size_reasons():
    service = ScoringService()
    signals = _build_signals(
        investor_types=["VC"],
        geos=["Berlin"],
        personal_interests=["sailing", "chess"],
        check_sizes=["$2M"],
    )
    contact = _build_contact(
        contact_types=["VC Partner"],
        location="Berlin, Germany",
        personal_interests=["Sailing"],
        check_size_min=1_000_000,
        check_size_max=5_000_000,
    )

    match = service.score_pair(signals, contact)

    assert match.breakdown.role_match == pytest.approx(0.8)
    assert match.breakdown.geo_match == pytest.approx(1.0)
    assert match.breakdown.personal_affinity == pytest.approx(0.5)
    assert match.breakdown.check_size == pytest.approx(1.0)
    assert "VC Partner investor" in match.reasons
    assert "Location: Berlin, Germany" in match.reasons
    assert "Shared interests: sailing" in match.reasons
    assert "Check size fit" in match.reasons


def test_thesis_geo_only_scores_half():
    service = ScoringService()
    signals = _build_signals(geos=["Europe"])
    contact = _build_contact(theses=[Thesis(geos=["Europe"])], location="Austin")

    breakdown, _ = service.compute_breakdown(signals, contact)

    assert breakdown.geo_match == pytest.approx(0.5)


def test_semantic_counts_tags_found_in_profile_text():
    service = ScoringService()
    signals = _build_signals(sectors=["Climate", "Hardware"])
    contact = _build_contact(bio="Invests in climate startups across Europe")

    breakdown, _ = service.compute_breakdown(signals, contact)

    assert breakdown.semantic == pytest.approx(0.5)


def test_contact_types_only_count_as_tags_when_investors_requested():
    service = ScoringService()
    contact = _build_contact(contact_types=["GP"], is_investor=True)

    assert service.contact_tags(_build_signals(), contact) == set()
    assert service.contact_tags(_build_signals(investor_types=["GP"]), contact) == {
        "gp",
        "investor",
    }


def test_weighted_score_clamps_to_one():
    breakdown, _ = ScoringService().compute_breakdown(
        _build_signals(target_person="Dana Whitfield", sectors=["Biotech"]),
        _build_contact(theses=[Thesis(sectors=["Biotech"])], relationship_strength=100),
    )

    assert weighted_score(breakdown, WeightVector(relationship=1.0)) == 1.0


@pytest.mark.parametrize(
    "phrase,amount",
    [
        ("$5M", 5_000_000),
        ("$500K", 500_000),
        ("2.5m", 2_500_000),
        ("$5,000,000", 5_000_000),
        ("10 thousand", 10_000),
        ("3 million", 3_000_000),
        ("250000", 250_000),
        ("no numbers here", None),
    ],
)
def test_parse_check_size(phrase, amount):
    assert parse_check_size(phrase) == amount


def test_check_size_fit_shapes():
    assert check_size_fit(1, 2, 0, 3) == 1.0
    assert check_size_fit(1, 3, 2, 5) == pytest.approx(0.75)
    # Close but disjoint ranges are capped
    assert check_size_fit(1, 2, 5, 10) == pytest.approx(0.3)
    assert check_size_fit(1, 2, 100, 200) == pytest.approx(math.exp(-3 * 98 / 200))
    assert check_size_fit(1, 2, None, None) == 0.0
    assert check_size_fit(None, None, 1, 2) == 0.0


def test_similarity_helpers():
    assert cosine_similarity([1, 2, 3], [1, 2, 3]) == pytest.approx(1.0)
    assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
    assert cosine_similarity([1, 2, 3], [1, 2]) == 0.0
    assert cosine_similarity([0, 0], [0, 0]) == 0.0
    assert jaccard_similarity(["a", "b", "c"], ["b", "c", "d"]) == pytest.approx(0.5)
    assert jaccard_similarity([], []) == 0.0
    assert matches_any("san francisco bay area", ["san francisco"])
    assert matches_any("AI", ["artificial intelligence and AI"])
    assert not matches_any("biotech", ["fintech", "saas"])
