"""
Per-query rank metrics over a ``Results`` run and ``RelevanceJudgments``.

Results are read in trec_eval order (score descending, DocNo descending on
ties) regardless of the ranks stored in the run. A document is relevant when
its grade is non-zero; unjudged documents count as non-relevant.

Metrics (names as in trec_eval):
    ap             average precision over the first 1000 ranks
    ndcg_cut_10    binary-gain NDCG at 10
    ndcg_cut_1000  binary-gain NDCG at 1000
    P_10           precision at 10
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import NamedTuple

import numpy as np

from trec_ranking.judgments import RelevanceJudgments
from trec_ranking.results import Results

MAX_RANK = 1000

METRICS: tuple[str, ...] = ("ap", "ndcg_cut_10", "ndcg_cut_1000", "P_10")


class MetricScore(NamedTuple):
    metric: str
    query_id: str
    value: float


def _relevance_flags(
    query_id: str, results: Results, judgments: RelevanceJudgments, k: int
) -> np.ndarray:
    """Binary relevance of the top-k results of a query, in rank order."""
    ranked = results.query_results(query_id)[:k]
    return np.array(
        [judgments.is_relevant(query_id, result.docno) for result in ranked], dtype=bool
    )


def average_precision(query_id: str, results: Results, judgments: RelevanceJudgments) -> float:
    """
    Computes Average Precision (AP) for a single query.

    Args:
        query_id: Query to evaluate.
        results: Run containing the query's ranked results.
        judgments: Relevance judgments.

    Returns:
        Sum of precision at each relevant rank (up to rank 1000) divided by the
        number of relevant documents for the query. 0.0 if the query has no
        results.

    Raises:
        NotFoundError: If the query has no relevant judgments.
    """
    total_relevant = judgments.num_relevant(query_id)
    if query_id not in results:
        return 0.0

    num_relevant = 0
    sum_precisions = 0.0
    for n, is_relevant in enumerate(_relevance_flags(query_id, results, judgments, MAX_RANK), 1):
        if not is_relevant:
            continue
        if num_relevant == MAX_RANK:
            # Never true within MAX_RANK ranks; the value is overwritten below.
            precision_at_n = 0.0
        num_relevant += 1
        precision_at_n = num_relevant / n
        sum_precisions += precision_at_n

    return sum_precisions / total_relevant


def precision_at_k(
    query_id: str, results: Results, judgments: RelevanceJudgments, k: int = 10
) -> float:
    """
    Computes Precision@K.

    The denominator is the number of results actually inspected,
    ``min(k, len(results))``, not ``k``.

    Returns:
        Precision at rank k, 0.0 if the query has no results.
    """
    if query_id not in results:
        return 0.0
    flags = _relevance_flags(query_id, results, judgments, k)
    if flags.size == 0:
        return 0.0
    return float(flags.sum()) / flags.size


def ndcg_at_k(query_id: str, results: Results, judgments: RelevanceJudgments, k: int) -> float:
    """
    Computes Normalized Discounted Cumulative Gain (NDCG) at rank K with binary gains.

        DCG  = sum over relevant ranks r <= k of 1 / log2(r + 1)
        IDCG = sum over j = 1..min(num_relevant, k) of 1 / log2(j + 1)

    Returns:
        DCG / IDCG; 0.0 if the query has no results or IDCG is 0.
    """
    if query_id not in results:
        return 0.0
    flags = _relevance_flags(query_id, results, judgments, k)
    discounts = np.log2(np.arange(2, flags.size + 2, dtype=np.float64))
    dcg = float(np.sum(flags / discounts))

    ideal = min(judgments.num_relevant(query_id), k)
    idcg = float(np.sum(1.0 / np.log2(np.arange(2, ideal + 2, dtype=np.float64))))

    return dcg / idcg if idcg > 0 else 0.0


def score_query(
    metric: str, query_id: str, results: Results, judgments: RelevanceJudgments
) -> float:
    if metric == "ap":
        return average_precision(query_id, results, judgments)
    if metric == "ndcg_cut_10":
        return ndcg_at_k(query_id, results, judgments, 10)
    if metric == "ndcg_cut_1000":
        return ndcg_at_k(query_id, results, judgments, 1000)
    if metric == "P_10":
        return precision_at_k(query_id, results, judgments, 10)
    raise ValueError(f"Unknown metric: {metric!r}")


def evaluate(
    results: Results,
    judgments: RelevanceJudgments,
    metrics: Iterable[str] = METRICS,
) -> list[MetricScore]:
    """
    Evaluate every judged query.

    Scores are grouped by metric (in ``metrics`` order); within a metric,
    queries appear in ``judgments.query_ids()`` order.
    """
    query_ids = judgments.query_ids()
    return [
        MetricScore(metric, query_id, score_query(metric, query_id, results, judgments))
        for metric in metrics
        for query_id in query_ids
    ]


def mean_scores(scores: Iterable[MetricScore]) -> dict[str, float]:
    """Mean value per metric over all queries."""
    by_metric: dict[str, list[float]] = {}
    for score in scores:
        by_metric.setdefault(score.metric, []).append(score.value)
    return {metric: float(np.mean(values)) for metric, values in by_metric.items()}


def format_report(scores: Iterable[MetricScore]) -> str:
    """One ``metric query_id value`` line per score, values to 4 decimals."""
    return "".join(f"{s.metric} {s.query_id} {s.value:.4f}\n" for s in scores)
