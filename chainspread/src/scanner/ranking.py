"""Ordering and selection helpers for a tick's evaluations."""
from __future__ import annotations

import math
from typing import Iterable, List, Optional, Sequence, Tuple

from chainspread.src.scanner.models import TokenEvaluation


def profit_sort_key(value: float) -> Tuple[int, float]:
    """Sort key placing finite values first (descending), then infinities, then NaN."""

    if math.isnan(value):
        return (2, 0.0)
    if math.isinf(value):
        return (1, 0.0)
    return (0, -value)


def rank_evaluations(evaluations: Iterable[Optional[TokenEvaluation]]) -> List[TokenEvaluation]:
    """Return ``evaluations`` ordered by their best directional profit.

    ``None`` entries are dropped. The sort is stable, so evaluations with
    equal profit keep the order in which they were produced.
    """

    present = [evaluation for evaluation in evaluations if evaluation is not None]
    return sorted(present, key=lambda evaluation: profit_sort_key(evaluation.max_profit))


def select_displayable(
    evaluations: Sequence[TokenEvaluation],
    *,
    debug: bool = False,
    max_rows: Optional[int] = 20,
) -> List[TokenEvaluation]:
    """Rows shown in the console table: everything in debug mode, otherwise the top profitable ones."""

    if debug:
        return list(evaluations)
    rows = [evaluation for evaluation in evaluations if evaluation.is_profitable_and_ratio_profitable]
    if max_rows is not None and max_rows >= 0:
        rows = rows[:max_rows]
    return rows
