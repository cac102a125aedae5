import random
import re
from dataclasses import replace

import pytest

from intromatch.features.evaluation.bootstrap import ConfidenceInterval
from intromatch.features.matching.domain.models import (
    COMPONENTS,
    ContactProfile,
    ConversationSignals,
    ScoreBreakdown,
    Thesis,
    WeightVector,
)
from intromatch.features.matching.pipeline.scoring.service import ScoringService
from intromatch.features.matching.pipeline.scoring.weights import (
    DEFAULT_WEIGHTS,
    WITH_EMBEDDINGS_WEIGHTS,
)
from intromatch.features.tuning.grid_search import Trial, candidate_vector, grid_search
from intromatch.features.tuning.pairwise import PairwiseRanker, build_pairs, learn_weights
from intromatch.features.tuning.rescoring import (
    mean_precision_at_5,
    mean_reciprocal_rank,
    rank_by_weights,
    re_score,
)
from intromatch.features.tuning.service import (
    TuningStrategy,
    TuningVerdict,
    WeightTuner,
    decide_verdict,
)


@pytest.fixture
def tag_driven_dataset(make_dataset, make_stored):
    """The positive wins on tag overlap; the negative on relationship-style signals."""
    return make_dataset(
        {
            "c1": [
                make_stored("c1", "neg", semantic=1.0, role_match=1.0, relationship=1.0),
                make_stored("c1", "pos", tag_overlap=1.0),
            ]
        },
        {("c1", "pos"): 1, ("c1", "neg"): 0},
    )


def test_re_score_matches_live_scorer():
    service = ScoringService()
    signals = ConversationSignals(
        "conv-1", sectors=["Biotech"], stages=["Seed"], target_person="Dana W", geos=["Boston"]
    )
    contact = ContactProfile(
        id="p1",
        name="Dana Whitfield",
        location="Boston, MA",
        theses=[Thesis(sectors=["Biotech"])],
        relationship_strength=70,
    )

    match = service.score_pair(signals, contact)
    persisted = ScoreBreakdown.from_dict(match.breakdown.to_dict())

    assert re_score(persisted, DEFAULT_WEIGHTS[match.regime]) == pytest.approx(match.raw_score)


def test_baseline_ranking_and_metrics(tag_driven_dataset):
    rankings = rank_by_weights(tag_driven_dataset, WITH_EMBEDDINGS_WEIGHTS)

    assert rankings == {"c1": ["neg", "pos"]}
    assert mean_reciprocal_rank(tag_driven_dataset, WITH_EMBEDDINGS_WEIGHTS) == pytest.approx(0.5)
    assert mean_precision_at_5(tag_driven_dataset, WITH_EMBEDDINGS_WEIGHTS) == pytest.approx(1.0)


def test_conversations_without_positives_are_skipped(make_dataset, make_stored):
    dataset = make_dataset(
        {
            "c1": [make_stored("c1", "pos", tag_overlap=1.0)],
            "c2": [make_stored("c2", "neg", tag_overlap=1.0)],
        },
        {("c1", "pos"): 1, ("c2", "neg"): 0},
    )

    assert mean_reciprocal_rank(dataset, WITH_EMBEDDINGS_WEIGHTS) == pytest.approx(1.0)


def test_candidate_vector_fills_remaining_budget():
    candidate = candidate_vector(
        WITH_EMBEDDINGS_WEIGHTS, {"embedding": 0.3, "tagOverlap": 0.3, "personalAffinity": 0.1}
    )

    assert candidate.is_normalized()
    assert candidate.embedding == pytest.approx(0.3)
    # Fixed components keep their 2:2:1:2:1 proportions
    assert candidate.semantic == pytest.approx(0.3 * 0.10 / 0.40)
    assert candidate.check_size == pytest.approx(0.3 * 0.05 / 0.40)
    assert candidate_vector(
        WITH_EMBEDDINGS_WEIGHTS, {"embedding": 0.45, "tagOverlap": 0.45, "personalAffinity": 0.05}
    ) is None


def test_grid_search_finds_better_vector(tag_driven_dataset):
    result = grid_search(tag_driven_dataset, WITH_EMBEDDINGS_WEIGHTS)

    assert result.trials == 564
    assert result.best.mrr == pytest.approx(1.0)
    assert result.best.weights.is_normalized()
    assert result.best.weights.tag_overlap > WITH_EMBEDDINGS_WEIGHTS.tag_overlap


def test_nine_pairs_skip_the_learned_ranker(make_dataset, make_stored):
    suggestions = {"c1": []}
    labels = {}
    for index in range(3):
        suggestions["c1"].append(make_stored("c1", f"pos{index}", tag_overlap=1.0))
        suggestions["c1"].append(make_stored("c1", f"neg{index}", relationship=1.0))
        labels[("c1", f"pos{index}")] = 1
        labels[("c1", f"neg{index}")] = 0
    dataset = make_dataset(suggestions, labels)

    assert len(build_pairs(dataset)) == 9
    learned = learn_weights(dataset)
    assert learned.available is False
    assert "Only 9 pairwise comparisons" in learned.skipped_reason

    report = WeightTuner(bootstrap_samples=100, rng=random.Random(1)).tune(dataset)
    assert report.learned_trial is None
    assert report.strategy == TuningStrategy.GRID_SEARCH
    assert "Skipping learned ranker." in report.render()


def test_pairwise_ranker_learns_discriminating_component(make_dataset, make_stored):
    suggestions = {"c1": []}
    labels = {}
    for index in range(2):
        suggestions["c1"].append(make_stored("c1", f"pos{index}", tag_overlap=1.0))
        labels[("c1", f"pos{index}")] = 1
    for index in range(5):
        suggestions["c1"].append(make_stored("c1", f"neg{index}"))
        labels[("c1", f"neg{index}")] = 0
    dataset = make_dataset(suggestions, labels)

    learned = learn_weights(dataset, PairwiseRanker(rng=random.Random(5)))

    assert learned.pair_count == 10
    assert learned.available is True
    weights = learned.weights
    assert weights.is_normalized()
    assert all(value >= 0 for value in weights.to_dict().values())
    others = [value for name, value in weights.to_dict().items() if name != "tagOverlap"]
    assert weights.tag_overlap > max(others)


def test_pairwise_ranker_returns_none_when_all_weights_clamp():
    ranker = PairwiseRanker(epochs=300, rng=random.Random(0))
    # Every pair says the negative was better on every component
    pairs = [[-1.0] * 8 for _ in range(12)]

    assert ranker.fit(pairs) is None


def test_tuner_reports_significant_improvement(tag_driven_dataset):
    report = WeightTuner(bootstrap_samples=200, rng=random.Random(2)).tune(tag_driven_dataset)

    assert report.baseline.mrr == pytest.approx(0.5)
    assert report.best.mrr == pytest.approx(1.0)
    assert report.verdict == TuningVerdict.SIGNIFICANT
    assert "tagOverlap" in report.deltas()

    text = report.render()
    assert "Evaluated 564 weight combinations" in text
    assert "BEST WEIGHTS FOUND" in text
    assert "tag_overlap=" in text
    assert text.endswith("Verdict: significant")


def test_tuner_without_improvement_prints_no_weight_block(make_dataset, make_stored):
    dataset = make_dataset(
        {"c1": [make_stored("c1", "pos", tag_overlap=1.0), make_stored("c1", "neg")]},
        {("c1", "pos"): 1, ("c1", "neg"): 0},
    )

    report = WeightTuner(bootstrap_samples=100, rng=random.Random(4)).tune(dataset)

    assert report.verdict == TuningVerdict.NO_IMPROVEMENT
    assert report.best.weights == WITH_EMBEDDINGS_WEIGHTS
    assert report.deltas() == {}
    assert "WeightVector(" not in report.render()


def test_verdicts():
    narrow = ConfidenceInterval(0.40, 0.45, 0.42)
    wide = ConfidenceInterval(0.30, 0.90, 0.60)
    far = ConfidenceInterval(0.80, 0.90, 0.85)

    assert decide_verdict(0.42, 0.4205, narrow, narrow) == TuningVerdict.NO_IMPROVEMENT
    assert decide_verdict(0.42, 0.60, narrow, wide) == TuningVerdict.MAY_BE_NOISE
    assert decide_verdict(0.42, 0.85, narrow, far) == TuningVerdict.SIGNIFICANT


def _sevenths():
    return WeightVector.from_dict({name: 1 / 7 for name in COMPONENTS[:7]})


def test_rounded_weights_still_sum_to_one():
    weights = _sevenths()
    assert sum(round(weights.weight(name), 3) for name in COMPONENTS) == pytest.approx(1.001)

    rounded = weights.rounded(3)

    assert rounded.is_normalized()
    assert all(round(rounded.weight(name), 3) == rounded.weight(name) for name in COMPONENTS)


def test_copy_ready_block_parses_to_normalized_vector(tag_driven_dataset):
    report = WeightTuner(bootstrap_samples=200, rng=random.Random(2)).tune(tag_driven_dataset)
    report = replace(report, best=Trial(weights=_sevenths(), mrr=1.0, precision_at_5=1.0))

    block = report.render().split("WeightVector(", 1)[1]
    parsed = {
        attribute: float(value)
        for attribute, value in re.findall(r"^    (\w+)=([0-9.]+),$", block, re.MULTILINE)
    }

    assert len(parsed) == len(COMPONENTS)
    assert WeightVector(**parsed).is_normalized()


def test_normalizing_an_all_zero_vector_fails():
    assert WeightVector(tag_overlap=2.0, relationship=2.0).normalized().is_normalized()
    with pytest.raises(ValueError):
        WeightVector().normalized()
