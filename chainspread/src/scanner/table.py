"""Console rendering of ranked evaluations."""
from __future__ import annotations

from typing import Callable, Optional, Sequence

import pandas as pd

from chainspread.src.scanner.models import TokenEvaluation
from chainspread.src.scanner.ranking import select_displayable

TABLE_COLUMNS = [
    "symbol",
    "chain",
    "venue",
    "chain_price",
    "bid",
    "ask",
    "forward_pct",
    "reverse_pct",
    "forward_ratio",
    "reverse_ratio",
    "movable",
    "liquidity",
    "liquidity_class",
    "tax",
]


def evaluations_to_frame(evaluations: Sequence[TokenEvaluation]) -> pd.DataFrame:
    return pd.DataFrame([evaluation.to_row() for evaluation in evaluations], columns=TABLE_COLUMNS)


def render_table(
    evaluations: Sequence[TokenEvaluation],
    *,
    debug: bool = False,
    max_rows: Optional[int] = 20,
) -> str:
    """Format ranked evaluations as a fixed-width table.

    Outside debug mode only evaluations that are both profitable and within
    their ratio bound are shown, capped at ``max_rows``.
    """

    rows = select_displayable(evaluations, debug=debug, max_rows=max_rows)
    if not rows:
        return "No opportunities above threshold."
    frame = evaluations_to_frame(rows)
    frame.index = range(1, len(frame) + 1)
    return frame.to_string(float_format=lambda value: f"{value:,.6g}", na_rep="-")


class TablePresenter:
    """Callable presenter printing :func:`render_table` output after each tick."""

    def __init__(
        self,
        *,
        debug: bool = False,
        max_rows: Optional[int] = 20,
        writer: Callable[[str], None] = print,
    ) -> None:
        self.debug = debug
        self.max_rows = max_rows
        self.writer = writer

    def __call__(self, evaluations: Sequence[TokenEvaluation]) -> None:
        self.writer(render_table(evaluations, debug=self.debug, max_rows=self.max_rows))
