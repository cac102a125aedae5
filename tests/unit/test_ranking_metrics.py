import math
import random

import pytest

from intromatch.features.evaluation.bootstrap import (
    ConfidenceInterval,
    bootstrap_ci,
    intervals_overlap,
)
from intromatch.features.evaluation.metrics import (
    EmptySlicePolicy,
    evaluate_ranking,
    hit_rate_at_1,
    ndcg_at_k,
    precision_at_k,
    reciprocal_rank,
)


def test_single_positive_in_second_place():
    ranked, positives = ["A", "B", "C"], {"B"}

    assert reciprocal_rank(ranked, positives) == pytest.approx(0.5)
    assert hit_rate_at_1(ranked, positives) == 0.0
    assert ndcg_at_k(ranked, positives, 1) == 0.0
    assert ndcg_at_k(ranked, positives, 2) == pytest.approx(1 / math.log2(3))
    assert ndcg_at_k(ranked, positives, 2) == pytest.approx(0.6309, abs=1e-4)


def test_no_suggestions_scores_zero():
    ranked, positives = [], {"X"}

    assert reciprocal_rank(ranked, positives) == 0.0
    assert precision_at_k(ranked, positives, 5) == 0.0
    assert ndcg_at_k(ranked, positives, 5) == 0.0
    assert hit_rate_at_1(ranked, positives) == 0.0


def test_empty_slice_without_positives_is_vacuous_pass():
    assert precision_at_k([], set(), 5) == 1.0
    assert precision_at_k([], set(), 5, EmptySlicePolicy.ZERO) == 0.0


def test_precision_normalizes_by_available_positives():
    ranked = ["A", "B", "C", "D", "E", "F"]

    assert precision_at_k(ranked, {"A", "F"}, 5) == pytest.approx(0.5)
    assert precision_at_k(ranked, {"A", "B"}, 5) == pytest.approx(1.0)
    # Ranked items without positives are all misses
    assert precision_at_k(ranked, set(), 5) == 0.0


def test_evaluate_ranking_diagnostics():
    names = {"A": "Ann", "B": "Ben", "C": "Cal", "Z": "Zoe", "Y": "Yan"}

    result = evaluate_ranking(
        conversation_id="conv-1",
        title="Seed round",
        ranked=["A", "B", "C"],
        positives={"B", "Z", "Y"},
        negatives={"A"},
        names=names,
    )

    assert result.total_matches == 3
    assert result.positive_count == 3
    assert result.reciprocal_rank == pytest.approx(0.5)
    assert result.precision_at_5 == pytest.approx(1 / 3)
    assert result.false_positives_in_top_5 == ["Ann"]
    assert result.missed_positives == ["Yan", "Zoe"]


def test_bootstrap_is_reproducible_with_seed():
    values = [0.0, 0.5, 1.0, 1.0, 0.25]

    first = bootstrap_ci(values, samples=500, rng=random.Random(7))
    second = bootstrap_ci(values, samples=500, rng=random.Random(7))

    assert first == second
    assert first.lo <= first.mean <= first.hi
    assert 0.0 <= first.lo and first.hi <= 1.0


def test_bootstrap_of_constant_values_collapses():
    interval = bootstrap_ci([0.4] * 6, samples=200, rng=random.Random(1))

    assert interval.lo == pytest.approx(0.4)
    assert interval.hi == pytest.approx(0.4)
    assert interval.mean == pytest.approx(0.4)


def test_bootstrap_of_empty_values():
    assert bootstrap_ci([]) == ConfidenceInterval(0.0, 0.0, 0.0)


def test_interval_overlap():
    a = ConfidenceInterval(0.1, 0.3, 0.2)

    assert intervals_overlap(a, ConfidenceInterval(0.3, 0.5, 0.4))
    assert not intervals_overlap(a, ConfidenceInterval(0.31, 0.5, 0.4))


def test_interval_formatting():
    interval = ConfidenceInterval(0.25, 0.75, 0.5)

    assert interval.format() == "50.0%  [25.0%, 75.0%]"
    assert interval.format(percent=False) == "0.500  [0.250, 0.750]"
